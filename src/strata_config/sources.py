"""Layer sources: the ordered origins that composition merges.

A source is a file, a block of environment variables, or an in-memory map,
each with a precedence rank (higher wins). File sources are parsed lazily on
first access through the backends' plain-tree path; formatting preservation
only matters when editing, which goes through ``LayerEditor`` instead.
"""

import copy
import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from functools import cached_property
from pathlib import Path
from typing import Any

from .backends import get_backend
from .backends import resolve_format
from .exceptions import ConfigFileError
from .exceptions import ConfigParseError
from .exceptions import TypeMismatchError
from .models import ConfigFormat
from .models import Scope
from .models import SourceKind
from .models import SourceOrigin
from .paths import assign
from .paths import kind_of
from .paths import lookup

logger = logging.getLogger(__name__)

_INT_RE = re.compile(r"[+-]?\d+")
_FLOAT_RE = re.compile(r"[+-]?(\d+\.\d*|\.\d+)([eE][+-]?\d+)?")


@dataclass(frozen=True)
class LayerSource:
    """One configuration origin with its precedence rank.

    Use the ``from_file``, ``from_env`` and ``from_mapping`` constructors
    rather than building one directly.

    Attributes:
        rank: Precedence; higher ranks override lower ones
        origin: Identity recorded in provenance
        required: If False, a missing file contributes nothing instead of failing
        format: File format (file sources only)
        data: Already-parsed tree (environment and in-memory sources)
    """

    rank: int
    origin: SourceOrigin
    required: bool = True
    format: ConfigFormat | None = None
    data: Mapping[str, Any] | None = field(default=None, repr=False, compare=False)

    @classmethod
    def from_file(
        cls,
        path: Path | str,
        rank: int,
        *,
        required: bool = True,
        format: ConfigFormat | None = None,
        scope: Scope | None = None,
    ) -> "LayerSource":
        """File source; format detected from the extension unless given.

        Raises:
            FormatMismatchError: If the format cannot be determined
        """
        path = Path(path)
        fmt = resolve_format(path, format)
        origin = SourceOrigin(SourceKind.FILE, str(path), path=path, scope=scope)
        return cls(rank=rank, origin=origin, required=required, format=fmt)

    @classmethod
    def from_env(
        cls,
        prefix: str,
        rank: int,
        *,
        separator: str = "__",
        environ: Mapping[str, str] | None = None,
        parse_values: bool = True,
    ) -> "LayerSource":
        """Environment block: ``<prefix><separator>A<separator>B=v`` becomes ``a.b = v``.

        Args:
            prefix: Variable name prefix, e.g. "APP"
            rank: Precedence rank
            separator: Nesting separator, e.g. "__"
            environ: Variables to read (defaults to os.environ, snapshotted now)
            parse_values: Turn true/false and numeric literals into bool/int/float

        Raises:
            ConfigParseError: If two variables map to conflicting paths
        """
        environ = os.environ if environ is None else environ
        tree = fold_environment(environ, prefix, separator, parse_values=parse_values)
        origin = SourceOrigin(SourceKind.ENVIRONMENT, f"{prefix}{separator}*")
        return cls(rank=rank, origin=origin, data=tree)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], rank: int, *, name: str = "overrides") -> "LayerSource":
        """In-memory source, e.g. values derived from command-line flags."""
        if not isinstance(data, Mapping):
            raise ConfigParseError(f"In-memory source '{name}' must be a mapping, got {type(data).__name__}")
        origin = SourceOrigin(SourceKind.IN_MEMORY, name)
        return cls(rank=rank, origin=origin, data=copy.deepcopy(dict(data)))

    @cached_property
    def tree(self) -> dict[str, Any] | None:
        """Parsed value tree, or None for an optional file that does not exist.

        Raises:
            ConfigFileError: If a required file is missing or a file cannot be read
            ConfigParseError: If file content is malformed
        """
        if self.origin.kind is not SourceKind.FILE:
            return dict(self.data or {})

        path = self.origin.path
        try:
            data = path.read_bytes()
        except FileNotFoundError as e:
            if self.required:
                raise ConfigFileError(f"Required configuration file not found: {path}") from e
            return None
        except OSError as e:
            raise ConfigFileError(f"Failed to read configuration from {path}: {e}") from e

        try:
            return get_backend(self.format).load(data)
        except ConfigParseError as e:
            raise ConfigParseError(f"{path}: {e}") from e


def fold_environment(
    environ: Mapping[str, str],
    prefix: str,
    separator: str,
    *,
    parse_values: bool = True,
) -> dict[str, Any]:
    """Fold prefixed environment variables into a nested mapping.

    The prefix is stripped, the rest lower-cased and split on the separator:
    with prefix "APP" and separator "__", ``APP__DATABASE__HOST`` maps to
    ``database.host``. Variables without the prefix are ignored.
    """
    head = f"{prefix}{separator}"
    tree: dict[str, Any] = {}
    for name in sorted(environ):
        if not name.startswith(head) or len(name) == len(head):
            continue
        segments = name[len(head) :].lower().split(separator)
        if any(not segment for segment in segments):
            logger.debug(f"Ignoring environment variable {name}: empty path segment")
            continue
        raw = environ[name]
        value = parse_env_value(raw) if parse_values else raw
        path = ".".join(segments)
        try:
            if isinstance(lookup(tree, path), dict):
                raise TypeMismatchError(expected="mapping", actual=kind_of(value), path=path)
            assign(tree, path, value)
        except TypeMismatchError as e:
            raise ConfigParseError(f"Environment variable {name} conflicts with another variable: {e}") from e
    return tree


def parse_env_value(raw: str) -> Any:
    """Interpret an environment string as bool, int or float when it is one."""
    lowered = raw.strip().lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    if _INT_RE.fullmatch(raw.strip()):
        try:
            return int(raw)
        except ValueError:
            # Longer than the interpreter's int string conversion limit
            return raw
    if _FLOAT_RE.fullmatch(raw.strip()):
        return float(raw)
    return raw
