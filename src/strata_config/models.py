"""Data models for strata-config."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class Scope(Enum):
    """Configuration scope enumeration.

    Determines which settings file to target for write operations.
    """

    USER = "user"
    PROJECT = "project"
    LOCAL = "local"


class ConfigFormat(Enum):
    """Supported configuration file formats."""

    TOML = "toml"
    JSON = "json"
    YAML = "yaml"

    @classmethod
    def from_path(cls, path: Path | str) -> "ConfigFormat | None":
        """Detect format from a file extension (case-insensitive).

        Returns:
            Matching format, or None for unknown or missing extensions
        """
        suffix = Path(path).suffix.lower().lstrip(".")
        if suffix == "yml":
            return cls.YAML
        try:
            return cls(suffix)
        except ValueError:
            return None


class SourceKind(Enum):
    """Kind of origin a configuration layer comes from."""

    FILE = "file"
    ENVIRONMENT = "env"
    IN_MEMORY = "memory"


@dataclass(frozen=True)
class SourceOrigin:
    """Identity of one configuration origin.

    Attributes:
        kind: File, environment block, or in-memory map
        identity: Stable name of the origin (file path, env prefix, override name)
        path: File path for file origins
        scope: Scope the file belongs to, when known
    """

    kind: SourceKind
    identity: str
    path: Path | None = None
    scope: Scope | None = None

    def __str__(self) -> str:
        text = f"{self.kind.value}:{self.identity}"
        if self.scope is not None:
            text += f" ({self.scope.value})"
        return text


@dataclass(frozen=True)
class ConfigPaths:
    """Paths to the three configuration scopes.

    Immutable configuration for where settings files are located.
    Applications inject these paths to define their configuration policy;
    any supported format may be used for each scope.

    Attributes:
        user: Path to user-global settings file (required)
        project: Path to project settings file (optional)
        local: Path to local (machine-specific) settings file (optional)
    """

    user: Path
    project: Path | None = None
    local: Path | None = None
