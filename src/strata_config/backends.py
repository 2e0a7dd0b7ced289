"""Format backends: parse, navigate, mutate and serialize configuration documents.

Every backend offers the same small capability set (``FormatBackend``) and is
picked by ``ConfigFormat`` through ``get_backend()``. Backends are stateless;
the document they return from ``parse()`` carries all state.

- TOML keeps comments, whitespace and key order (tomlkit).
- JSON and YAML parse straight into plain dicts and re-serialize
  canonically, so formatting in the original bytes is lost on save.
"""

import copy
import datetime
import json
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any
from typing import Callable
from typing import Protocol

import tomlkit
import yaml
from tomlkit.exceptions import TOMLKitError

from .exceptions import ConfigParseError
from .exceptions import ConfigSerializationError
from .exceptions import FormatMismatchError
from .models import ConfigFormat
from .paths import MISSING
from .paths import assign
from .paths import join_path
from .paths import kind_of
from .paths import lookup
from .paths import remove

_SCALARS = (str, int, float, bool, type(None))


class FormatBackend(Protocol):
    """Capability interface shared by all format backends."""

    format: ConfigFormat

    def parse(self, data: bytes) -> Any:
        """Parse bytes into an editable document."""
        ...

    def load(self, data: bytes) -> dict[str, Any]:
        """Parse bytes into a plain dict tree (read-only use)."""
        ...

    def get(self, document: Any, path: str) -> Any:
        """Return a detached copy of the value at path, or MISSING."""
        ...

    def set(self, document: Any, path: str, value: Any) -> None: ...

    def unset(self, document: Any, path: str) -> None: ...

    def keys(self, document: Any) -> list[str]: ...

    def serialize(self, document: Any) -> bytes: ...


def _decode(data: bytes, fmt: ConfigFormat) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ConfigParseError(f"{fmt.value.upper()} content is not valid UTF-8: {e}") from e


def _require_mapping(tree: Any, fmt: ConfigFormat) -> dict[str, Any]:
    if tree is None:
        return {}
    if not isinstance(tree, dict):
        raise ConfigParseError(f"{fmt.value.upper()} document root must be a mapping, got {kind_of(tree)}")
    return _string_keys(tree, fmt, ())


def _string_keys(node: Any, fmt: ConfigFormat, prefix: tuple[str, ...]) -> Any:
    """Rebuild node with every mapping key as a string.

    YAML 1.1 reads keys such as ``on``, ``no`` or ``404`` as bool/int; those
    are stored under their canonical spelling ("true", "false", "404").
    """
    if isinstance(node, dict):
        result = {}
        for key, child in node.items():
            name = _key_name(key, fmt, prefix)
            if name in result:
                raise ConfigParseError(f"Duplicate {fmt.value.upper()} key '{join_path(prefix + (name,))}'")
            result[name] = _string_keys(child, fmt, prefix + (name,))
        return result
    if isinstance(node, list):
        return [_string_keys(child, fmt, prefix) for child in node]
    return node


def _key_name(key: Any, fmt: ConfigFormat, prefix: tuple[str, ...]) -> str:
    if isinstance(key, str):
        return key
    if isinstance(key, bool):
        return "true" if key else "false"
    if key is None:
        return "null"
    if isinstance(key, (int, float)):
        return str(key)
    if isinstance(key, (datetime.date, datetime.datetime)):
        return key.isoformat()
    where = join_path(prefix) if prefix else "document root"
    raise ConfigParseError(f"Unsupported {fmt.value.upper()} mapping key {key!r} under {where}")


class PlainTreeBackend:
    """Backend whose document is a plain dict tree.

    Args:
        format: Format this backend handles
        decode: Text -> Python tree
        encode: Python tree -> text
        parse_errors: Exceptions ``decode`` raises on malformed input
        encode_errors: Exceptions ``encode`` raises on unencodable trees
        extra_scalars: Scalar types accepted beyond the ConfigValue core
    """

    def __init__(
        self,
        format: ConfigFormat,
        decode: Callable[[str], Any],
        encode: Callable[[dict[str, Any]], str],
        parse_errors: tuple[type[Exception], ...],
        encode_errors: tuple[type[Exception], ...],
        extra_scalars: tuple[type, ...] = (),
    ):
        self.format = format
        self._decode = decode
        self._encode = encode
        self._parse_errors = parse_errors
        self._encode_errors = encode_errors
        self._scalars = _SCALARS + extra_scalars

    def parse(self, data: bytes) -> dict[str, Any]:
        text = _decode(data, self.format)
        if not text.strip():
            return {}
        try:
            tree = self._decode(text)
        except self._parse_errors as e:
            raise ConfigParseError(f"Invalid {self.format.value.upper()}: {e}") from e
        return _require_mapping(tree, self.format)

    def load(self, data: bytes) -> dict[str, Any]:
        return self.parse(data)

    def get(self, document: dict[str, Any], path: str) -> Any:
        node = lookup(document, path)
        if node is MISSING:
            return MISSING
        return copy.deepcopy(node)

    def set(self, document: dict[str, Any], path: str, value: Any) -> None:
        assign(document, path, self._normalize(value, path))

    def unset(self, document: dict[str, Any], path: str) -> None:
        remove(document, path)

    def keys(self, document: dict[str, Any]) -> list[str]:
        return [str(key) for key in document]

    def serialize(self, document: dict[str, Any]) -> bytes:
        try:
            return self._encode(document).encode("utf-8")
        except self._encode_errors as e:
            raise ConfigSerializationError(f"Cannot encode document as {self.format.value.upper()}: {e}") from e

    def _normalize(self, value: Any, path: str) -> Any:
        """Return a detached copy of value, or raise if it is not a ConfigValue."""
        if isinstance(value, self._scalars):
            return value
        if isinstance(value, Mapping):
            result = {}
            for key, child in value.items():
                if not isinstance(key, str):
                    raise ConfigSerializationError(f"Mapping key {key!r} under '{path}' is not a string")
                result[key] = self._normalize(child, f"{path}.{key}")
            return result
        if isinstance(value, (list, tuple)):
            return [self._normalize(child, path) for child in value]
        raise ConfigSerializationError(
            f"Cannot store {type(value).__name__} at '{path}' in {self.format.value.upper()}"
        )


def _dump_json(tree: dict[str, Any]) -> str:
    return json.dumps(tree, indent=2, ensure_ascii=False) + "\n"


def _dump_yaml(tree: dict[str, Any]) -> str:
    return yaml.safe_dump(tree, default_flow_style=False, sort_keys=False, allow_unicode=True)


def _unwrap(node: Any) -> Any:
    unwrap = getattr(node, "unwrap", None)
    if callable(unwrap):
        return unwrap()
    return copy.deepcopy(node)


class TomlBackend:
    """Formatting-preserving TOML backend.

    Documents are ``tomlkit`` documents. An unmodified document serializes
    back to the exact input bytes; replacing a value keeps its inline comment
    and indentation, and untouched lines are left as they were.
    """

    format = ConfigFormat.TOML

    def parse(self, data: bytes) -> tomlkit.TOMLDocument:
        text = _decode(data, self.format)
        try:
            return tomlkit.parse(text)
        except TOMLKitError as e:
            raise ConfigParseError(f"Invalid TOML: {e}") from e

    def load(self, data: bytes) -> dict[str, Any]:
        text = _decode(data, self.format)
        try:
            return tomllib.loads(text)
        except tomllib.TOMLDecodeError as e:
            raise ConfigParseError(f"Invalid TOML: {e}") from e

    def get(self, document: tomlkit.TOMLDocument, path: str) -> Any:
        node = lookup(document, path)
        if node is MISSING:
            return MISSING
        return _unwrap(node)

    def set(self, document: tomlkit.TOMLDocument, path: str, value: Any) -> None:
        # Convert up front so an unencodable value never reaches the document.
        try:
            tomlkit.item(value)
        except (TypeError, ValueError) as e:
            raise ConfigSerializationError(f"Cannot store {kind_of(value)} at '{path}' in TOML: {e}") from e
        assign(document, path, value)

    def unset(self, document: tomlkit.TOMLDocument, path: str) -> None:
        remove(document, path)

    def keys(self, document: tomlkit.TOMLDocument) -> list[str]:
        return [str(key) for key in document.keys()]

    def serialize(self, document: tomlkit.TOMLDocument) -> bytes:
        try:
            return document.as_string().encode("utf-8")
        except (TOMLKitError, TypeError, ValueError) as e:
            raise ConfigSerializationError(f"Cannot encode document as TOML: {e}") from e


_BACKENDS: dict[ConfigFormat, FormatBackend] = {
    ConfigFormat.TOML: TomlBackend(),
    ConfigFormat.JSON: PlainTreeBackend(
        ConfigFormat.JSON,
        decode=json.loads,
        encode=_dump_json,
        parse_errors=(json.JSONDecodeError,),
        encode_errors=(TypeError, ValueError),
    ),
    ConfigFormat.YAML: PlainTreeBackend(
        ConfigFormat.YAML,
        decode=yaml.safe_load,
        encode=_dump_yaml,
        parse_errors=(yaml.YAMLError,),
        encode_errors=(yaml.YAMLError,),
        extra_scalars=(datetime.date, datetime.datetime),
    ),
}


def get_backend(fmt: ConfigFormat) -> FormatBackend:
    """Return the backend registered for a format."""
    return _BACKENDS[fmt]


def resolve_format(path: Path | str, fmt: ConfigFormat | None = None) -> ConfigFormat:
    """Return the explicit format, or detect it from the path's extension.

    Raises:
        FormatMismatchError: If no format is given and the extension is unknown
    """
    if fmt is not None:
        return fmt
    detected = ConfigFormat.from_path(path)
    if detected is None:
        raise FormatMismatchError(f"Cannot determine configuration format for {path}")
    return detected
