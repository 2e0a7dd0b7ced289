"""Tests for layer sources."""

from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
from strata_config import ConfigFileError
from strata_config import ConfigFormat
from strata_config import ConfigParseError
from strata_config import FormatMismatchError
from strata_config import LayerSource
from strata_config import Scope
from strata_config import SourceKind
from strata_config.sources import fold_environment
from strata_config.sources import parse_env_value


class TestEnvironmentSource:
    """Test environment variable folding."""

    def test_prefix_and_separator(self):
        """Test APP__DATABASE__HOST maps to database.host."""
        environ = {"APP__DATABASE__HOST": "db", "APP__DEBUG": "true", "OTHER__X": "1", "APPX": "2"}
        source = LayerSource.from_env("APP", rank=3, environ=environ)

        assert source.tree == {"database": {"host": "db"}, "debug": True}
        assert source.origin.kind is SourceKind.ENVIRONMENT
        assert str(source.origin) == "env:APP__*"

    def test_custom_separator(self):
        """Test a single-underscore separator."""
        tree = fold_environment({"MY_SERVER_PORT": "80"}, "MY", "_")
        assert tree == {"server": {"port": 80}}

    def test_raw_values(self):
        """Test values stay strings when parsing is disabled."""
        tree = fold_environment({"APP__PORT": "80"}, "APP", "__", parse_values=False)
        assert tree == {"port": "80"}

    def test_snapshot_at_construction(self):
        """Test later environment changes do not leak into a built source."""
        environ = {"APP__A": "1"}
        source = LayerSource.from_env("APP", rank=0, environ=environ)
        environ["APP__B"] = "2"
        assert source.tree == {"a": 1}

    def test_reads_process_environment(self, monkeypatch):
        """Test os.environ is used by default."""
        monkeypatch.setenv("STRATATEST__LOG__LEVEL", "debug")
        source = LayerSource.from_env("STRATATEST", rank=0)
        assert source.tree == {"log": {"level": "debug"}}

    @pytest.mark.parametrize(
        "environ",
        [
            {"APP__DB": "x", "APP__DB__HOST": "y"},
            {"APP__db": "x", "APP__DB__HOST": "y"},
        ],
    )
    def test_conflicting_variables(self, environ):
        """Test a variable that is both a leaf and a parent is rejected."""
        with pytest.raises(ConfigParseError):
            fold_environment(environ, "APP", "__")

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("true", True),
            ("FALSE", False),
            ("42", 42),
            ("-7", -7),
            ("2.5", 2.5),
            ("1e3", "1e3"),
            ("nan", "nan"),
            ("localhost", "localhost"),
            ("", ""),
        ],
    )
    def test_parse_env_value(self, raw, expected):
        """Test booleans and numeric literals are recognized."""
        value = parse_env_value(raw)
        assert value == expected
        assert type(value) is type(expected)

    def test_overlong_integer_stays_string(self):
        """Test digit strings too long to convert are kept as text."""
        token = "1" * 5000
        source = LayerSource.from_env("APP", rank=0, environ={"APP__TOKEN": token})
        assert source.tree == {"token": token}


class TestMappingSource:
    """Test in-memory sources."""

    def test_copied_on_construction(self):
        """Test later changes to the caller's dict are not seen."""
        data = {"a": {"b": 1}}
        source = LayerSource.from_mapping(data, rank=9)
        data["a"]["b"] = 2
        assert source.tree == {"a": {"b": 1}}
        assert source.origin.identity == "overrides"

    def test_non_mapping_rejected(self):
        """Test non-mapping overrides are a parse error."""
        with pytest.raises(ConfigParseError):
            LayerSource.from_mapping(["a"], rank=0)


class TestFileSource:
    """Test file sources."""

    @pytest.fixture
    def tmpdir_path(self):
        """Create a temporary directory."""
        with TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)

    def test_lazy_parse(self, tmpdir_path):
        """Test the file is read on first access, then cached."""
        path = tmpdir_path / "settings.yaml"
        source = LayerSource.from_file(path, rank=0, scope=Scope.USER)
        path.write_text("a: 1\n")

        assert source.tree == {"a": 1}
        path.write_text("a: 2\n")
        assert source.tree == {"a": 1}
        assert source.origin.scope is Scope.USER
        assert source.origin.path == path

    def test_format_override(self, tmpdir_path):
        """Test an explicit format for an unusual extension."""
        path = tmpdir_path / "settings.cfg"
        path.write_text('{"a": 1}')
        source = LayerSource.from_file(path, rank=0, format=ConfigFormat.JSON)
        assert source.tree == {"a": 1}

    def test_unknown_format(self, tmpdir_path):
        """Test an undetectable format fails at construction."""
        with pytest.raises(FormatMismatchError):
            LayerSource.from_file(tmpdir_path / "settings.cfg", rank=0)

    def test_optional_missing(self, tmpdir_path):
        """Test an optional missing file resolves to None."""
        source = LayerSource.from_file(tmpdir_path / "missing.toml", rank=0, required=False)
        assert source.tree is None

    def test_required_missing(self, tmpdir_path):
        """Test a required missing file raises."""
        source = LayerSource.from_file(tmpdir_path / "missing.toml", rank=0)
        with pytest.raises(ConfigFileError):
            source.tree

    def test_malformed_names_file(self, tmpdir_path):
        """Test parse errors mention the offending file."""
        path = tmpdir_path / "bad.toml"
        path.write_text("a = \n")
        source = LayerSource.from_file(path, rank=0)
        with pytest.raises(ConfigParseError, match="bad.toml"):
            source.tree
