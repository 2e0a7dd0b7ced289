"""Editable configuration documents bound to a single file."""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any
from typing import Callable

from .atomic import atomic_write
from .backends import FormatBackend
from .backends import get_backend
from .backends import resolve_format
from .exceptions import ConfigFileError
from .models import ConfigFormat
from .paths import MISSING
from .paths import check_type

logger = logging.getLogger(__name__)

# Called as validator(path, value); raises ConfigValidationError to reject.
SettingValidator = Callable[[str, Any], None]


class LayerEditor:
    """Edit one configuration layer (file) in place.

    Wraps a single format backend document bound to one path. Edits are held
    in memory and tracked by a dirty flag until ``save()`` writes them back
    atomically. Nothing is saved implicitly.

    A sequence of ``set``/``unset`` calls followed by one ``save`` behaves like
    a transaction: a failed call changes nothing, so stop at the first error
    and the file on disk never reflects half of the intended edits.

    Example:
        ```python
        editor = LayerEditor.open(Path("settings.toml"))
        editor.set("database.host", "db.example.com")
        if editor.is_dirty():
            editor.save()
        ```
    """

    def __init__(
        self,
        path: Path,
        format: ConfigFormat,
        document: Any,
        *,
        dirty: bool = False,
        validator: SettingValidator | None = None,
    ):
        self._path = Path(path)
        self._format = format
        self._backend: FormatBackend = get_backend(format)
        self._document = document
        self._dirty = dirty
        self._validator = validator

    @classmethod
    def open(
        cls,
        path: Path | str,
        format: ConfigFormat | None = None,
        validator: SettingValidator | None = None,
    ) -> "LayerEditor":
        """Open and parse an existing configuration file.

        Args:
            path: File to edit
            format: Explicit format; detected from the extension when omitted
            validator: Optional per-key check consulted by ``set``

        Raises:
            FormatMismatchError: If the format cannot be determined
            ConfigFileError: If the file cannot be read
            ConfigParseError: If the content is malformed
        """
        path = Path(path)
        fmt = resolve_format(path, format)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise ConfigFileError(f"Failed to read configuration from {path}: {e}") from e

        document = get_backend(fmt).parse(data)
        logger.debug(f"Opened {fmt.value} configuration {path}")
        return cls(path, fmt, document, validator=validator)

    @classmethod
    def create(
        cls,
        path: Path | str,
        format: ConfigFormat | None = None,
        validator: SettingValidator | None = None,
    ) -> "LayerEditor":
        """Start an empty document for a file that does not exist yet.

        The editor starts dirty; the file is written on the first ``save()``.
        """
        path = Path(path)
        fmt = resolve_format(path, format)
        document = get_backend(fmt).parse(b"")
        return cls(path, fmt, document, dirty=True, validator=validator)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def format(self) -> ConfigFormat:
        return self._format

    def get(self, key: str, default: Any = None, expected_type: type | None = None) -> Any:
        """Get a value by dotted path.

        Args:
            key: Dotted path, e.g. "database.host"
            default: Returned when the key is absent
            expected_type: If given, the stored value must already be of this type

        Returns:
            A detached copy of the stored value, or default

        Raises:
            TypeMismatchError: If the path crosses a non-mapping value, or the
                stored value is not of expected_type
        """
        value = self._backend.get(self._document, key)
        if value is MISSING:
            return default
        check_type(value, expected_type, key)
        return value

    def set(self, key: str, value: Any, expected_type: type | None = None) -> None:
        """Set a value by dotted path, creating missing parent mappings.

        Raises:
            TypeMismatchError: If value is not of expected_type, or an existing
                parent on the path is not a mapping
            ConfigValidationError: If the validator rejects the value
            ConfigSerializationError: If the format cannot store the value
        """
        check_type(value, expected_type, key)
        if self._validator is not None:
            self._validator(key, value)
        self._backend.set(self._document, key, value)
        self._dirty = True

    def update(self, values: Mapping[str, Any]) -> None:
        """Set several dotted paths as one all-or-nothing edit.

        Changes are applied to a scratch copy of the document, which replaces
        the live one only when every value has been accepted. If any value is
        rejected, the document and the dirty flag are left as they were.

        Raises:
            TypeMismatchError: If a parent on some path is not a mapping
            ConfigValidationError: If the validator rejects a value
            ConfigSerializationError: If the format cannot store a value
        """
        if not values:
            return
        scratch = self._backend.parse(self._backend.serialize(self._document))
        for key, value in values.items():
            if self._validator is not None:
                self._validator(key, value)
            self._backend.set(scratch, key, value)
        self._document = scratch
        self._dirty = True

    def unset(self, key: str) -> None:
        """Remove a key by dotted path.

        Parent mappings are kept even if they become empty.

        Raises:
            KeyNotFoundError: If the key does not exist
        """
        self._backend.unset(self._document, key)
        self._dirty = True

    def keys(self) -> list[str]:
        """Top-level keys in document order."""
        return self._backend.keys(self._document)

    def is_dirty(self) -> bool:
        return self._dirty

    def save(self) -> None:
        """Atomically write the document back to its file.

        The dirty flag is cleared only after the file has been replaced; on
        failure the file is untouched and the editor stays dirty.

        Raises:
            ConfigSerializationError: If the document cannot be encoded
            ConfigFileError: If writing or renaming fails
        """
        data = self._backend.serialize(self._document)
        atomic_write(self._path, data)
        self._dirty = False
        logger.info(f"Saved configuration to {self._path}")

    def __contains__(self, key: str) -> bool:
        return self._backend.get(self._document, key) is not MISSING

    def __repr__(self) -> str:
        return f"LayerEditor(path={str(self._path)!r}, format={self._format.value}, dirty={self._dirty})"
