"""Dotted-path navigation over nested mapping trees.

These helpers work on any ``MutableMapping`` tree, so the same walk serves
plain dicts and tomlkit documents (whose tables are mappings too).
"""

from collections.abc import Iterator
from collections.abc import Mapping
from collections.abc import MutableMapping
from typing import Any
from typing import Callable

from .exceptions import InvalidPathError
from .exceptions import KeyNotFoundError
from .exceptions import TypeMismatchError


class _Missing:
    """Sentinel for an absent key (distinct from a stored null)."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def split_path(path: str) -> list[str]:
    """Split a dotted path into its segments.

    Raises:
        InvalidPathError: If the path is empty or has an empty segment
    """
    if not isinstance(path, str) or not path:
        raise InvalidPathError(f"Invalid dotted path: {path!r}")
    segments = path.split(".")
    if any(not segment for segment in segments):
        raise InvalidPathError(f"Invalid dotted path {path!r}: empty segment")
    return segments


def join_path(segments: tuple[str, ...] | list[str]) -> str:
    return ".".join(segments)


def kind_of(value: Any) -> str:
    """Name the ConfigValue kind of a Python value."""
    # bool first: bool is an int subclass
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "string"
    if value is None:
        return "null"
    if isinstance(value, Mapping):
        return "mapping"
    if isinstance(value, list):
        return "array"
    return type(value).__name__


def check_type(value: Any, expected_type: type | None, path: str) -> None:
    """Raise TypeMismatchError unless value is of expected_type.

    Never coerces: bool does not satisfy int/float, int does not satisfy float.
    """
    if expected_type is None:
        return
    if expected_type in (int, float) and isinstance(value, bool):
        matches = False
    else:
        matches = isinstance(value, expected_type)
    if not matches:
        raise TypeMismatchError(expected=_type_name(expected_type), actual=kind_of(value), path=path)


def _type_name(expected_type: type) -> str:
    names = {
        bool: "boolean",
        int: "integer",
        float: "float",
        str: "string",
        dict: "mapping",
        list: "array",
        type(None): "null",
    }
    return names.get(expected_type, expected_type.__name__)


def lookup(tree: Mapping[str, Any], path: str) -> Any:
    """Return the node at path, or MISSING if any segment is absent.

    Raises:
        TypeMismatchError: If a segment must be descended into but holds a non-mapping
    """
    segments = split_path(path)
    node: Any = tree
    for index, segment in enumerate(segments):
        if not isinstance(node, Mapping):
            raise TypeMismatchError(
                expected="mapping",
                actual=kind_of(node),
                path=join_path(segments[:index]),
            )
        if segment not in node:
            return MISSING
        node = node[segment]
    return node


def assign(
    tree: MutableMapping[str, Any],
    path: str,
    value: Any,
    new_mapping: Callable[[], Any] = dict,
) -> None:
    """Set value at path, creating missing intermediate mappings.

    The whole path is checked before anything is created, so a conflict
    leaves the tree untouched.

    Raises:
        TypeMismatchError: If an existing intermediate node is not a mapping
    """
    segments = split_path(path)

    node: Any = tree
    for index, segment in enumerate(segments[:-1]):
        if segment not in node:
            break
        node = node[segment]
        if not isinstance(node, MutableMapping):
            raise TypeMismatchError(
                expected="mapping",
                actual=kind_of(node),
                path=join_path(segments[: index + 1]),
            )

    node = tree
    for segment in segments[:-1]:
        if segment not in node:
            node[segment] = new_mapping()
        # re-read: containers may wrap what was assigned
        node = node[segment]
    node[segments[-1]] = value


def remove(tree: MutableMapping[str, Any], path: str) -> None:
    """Delete the key at path.

    Raises:
        KeyNotFoundError: If any segment is missing or cannot be descended into
    """
    segments = split_path(path)
    node: Any = tree
    for segment in segments[:-1]:
        if not isinstance(node, MutableMapping) or segment not in node:
            raise KeyNotFoundError(path)
        node = node[segment]
    if not isinstance(node, MutableMapping) or segments[-1] not in node:
        raise KeyNotFoundError(path)
    del node[segments[-1]]


def iter_leaves(tree: Mapping[str, Any], prefix: tuple[str, ...] = ()) -> Iterator[tuple[str, Any]]:
    """Yield (dotted_path, value) for every non-mapping value in tree.

    Empty mappings have no leaves and yield nothing.
    """
    for key, value in tree.items():
        path = prefix + (str(key),)
        if isinstance(value, Mapping):
            yield from iter_leaves(value, path)
        else:
            yield join_path(path), value
