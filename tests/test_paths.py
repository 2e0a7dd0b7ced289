"""Tests for dotted-path navigation."""

import pytest
from strata_config import InvalidPathError
from strata_config import KeyNotFoundError
from strata_config import TypeMismatchError
from strata_config.paths import MISSING
from strata_config.paths import assign
from strata_config.paths import check_type
from strata_config.paths import iter_leaves
from strata_config.paths import lookup
from strata_config.paths import remove
from strata_config.paths import split_path


class TestSplitPath:
    """Test dotted path validation."""

    def test_single_segment(self):
        """Test a plain key is a one-segment path."""
        assert split_path("debug") == ["debug"]

    def test_nested(self):
        """Test dotted segments split in order."""
        assert split_path("database.pool.size") == ["database", "pool", "size"]

    @pytest.mark.parametrize("path", ["", ".", "a.", ".a", "a..b"])
    def test_empty_segments_rejected(self, path):
        """Test empty paths and empty segments are invalid."""
        with pytest.raises(InvalidPathError):
            split_path(path)


class TestLookup:
    """Test lookup distinguishes absence from conflict."""

    def test_nested_value(self):
        """Test reading a nested leaf."""
        assert lookup({"a": {"b": {"c": 1}}}, "a.b.c") == 1

    def test_absent_is_missing(self):
        """Test a missing segment returns MISSING rather than raising."""
        assert lookup({"a": {"b": {}}}, "a.b.c") is MISSING
        assert lookup({}, "x.y") is MISSING

    def test_stored_null_is_not_missing(self):
        """Test a stored null is returned as None."""
        assert lookup({"a": None}, "a") is None

    def test_descending_through_scalar_is_conflict(self):
        """Test a path through a scalar is a structural error."""
        with pytest.raises(TypeMismatchError) as excinfo:
            lookup({"a": {"b": 2}}, "a.b.c")
        assert excinfo.value.path == "a.b"
        assert excinfo.value.actual == "integer"


class TestAssign:
    """Test assign creates parents and never partially mutates."""

    def test_creates_intermediate_mappings(self):
        """Test missing parents are created."""
        tree = {}
        assign(tree, "a.b.c", 1)
        assert tree == {"a": {"b": {"c": 1}}}

    def test_overwrites_leaf(self):
        """Test an existing leaf is replaced."""
        tree = {"a": {"b": 1, "c": 2}}
        assign(tree, "a.b", "x")
        assert tree == {"a": {"b": "x", "c": 2}}

    def test_conflict_leaves_tree_unchanged(self):
        """Test a non-mapping parent raises before anything is created."""
        tree = {"a": {"b": 2}}
        with pytest.raises(TypeMismatchError):
            assign(tree, "a.b.c.d", 1)
        assert tree == {"a": {"b": 2}}


class TestRemove:
    """Test remove."""

    def test_removes_leaf_keeps_parent(self):
        """Test removing the last child keeps the empty parent."""
        tree = {"a": {"b": 1}}
        remove(tree, "a.b")
        assert tree == {"a": {}}

    @pytest.mark.parametrize("path", ["missing", "missing.key", "a.missing", "a.b.c"])
    def test_missing_key(self, path):
        """Test removing something absent raises KeyNotFoundError."""
        tree = {"a": {"b": 1}}
        with pytest.raises(KeyNotFoundError):
            remove(tree, path)
        assert tree == {"a": {"b": 1}}


class TestHelpers:
    """Test leaf iteration and type checks."""

    def test_iter_leaves(self):
        """Test leaves are flattened to dotted paths."""
        tree = {"a": 1, "b": {"c": [1, 2], "d": {"e": None}}, "f": {}}
        assert dict(iter_leaves(tree)) == {"a": 1, "b.c": [1, 2], "b.d.e": None}

    def test_check_type_accepts_match(self):
        """Test a matching type passes."""
        check_type("x", str, "k")
        check_type(3, int, "k")
        check_type(True, bool, "k")

    @pytest.mark.parametrize(
        "value,expected_type",
        [("5", int), (5, str), (True, int), (1, float), (1.5, int), ({"a": 1}, list)],
    )
    def test_check_type_never_coerces(self, value, expected_type):
        """Test mismatched kinds raise instead of converting."""
        with pytest.raises(TypeMismatchError):
            check_type(value, expected_type, "k")
