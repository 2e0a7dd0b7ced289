"""strata-config: layered configuration with provenance and in-place editing.

This library merges configuration from ordered layers (TOML/JSON/YAML files,
environment variables, in-memory overrides) into one effective tree, records
which layer set each value, and edits individual files in place:
- TOML edits keep comments, whitespace and key order
- JSON and YAML edits rewrite the file canonically
- Saves are atomic (temp file in the same directory + rename)

Applications inject resolved paths to define their configuration policy.
The library provides the mechanism for reading, merging, and writing.

Public API:
    compose: Merge LayerSources into a MergeResult (config + provenance)
    LayerSource: One origin (file, environment block, in-memory map) with a rank
    LayerEditor: Edit one file in place with dirty tracking and atomic save
    ConfigManager: Three-scope composition with provenance-routed edits
    ConfigPaths, Scope, ConfigFormat, SourceKind, SourceOrigin: Models
    deep_merge: Utility function for deep dictionary merging
    ConfigError and subclasses: Exception types

Example:
    ```python
    from pathlib import Path
    from strata_config import LayerEditor, LayerSource, compose

    result = compose([
        LayerSource.from_file(Path("/etc/app/settings.yaml"), rank=0, required=False),
        LayerSource.from_file(Path("app.toml"), rank=1),
        LayerSource.from_env("APP", rank=2),
    ])
    result.get("database.host")
    result.source_of("database.host")

    editor = LayerEditor.open(Path("app.toml"))
    editor.set("database.port", 5433)
    editor.save()
    ```
"""

from .backends import FormatBackend
from .backends import get_backend
from .editor import LayerEditor
from .exceptions import ConfigError
from .exceptions import ConfigFileError
from .exceptions import ConfigParseError
from .exceptions import ConfigSerializationError
from .exceptions import ConfigValidationError
from .exceptions import FormatMismatchError
from .exceptions import InvalidPathError
from .exceptions import KeyNotFoundError
from .exceptions import TypeMismatchError
from .manager import ConfigManager
from .merge import MergeResult
from .merge import compose
from .merge import deep_merge
from .models import ConfigFormat
from .models import ConfigPaths
from .models import Scope
from .models import SourceKind
from .models import SourceOrigin
from .paths import MISSING
from .sources import LayerSource

__version__ = "0.1.0"

__all__ = [
    "compose",
    "deep_merge",
    "get_backend",
    "ConfigManager",
    "FormatBackend",
    "LayerEditor",
    "LayerSource",
    "MergeResult",
    "MISSING",
    "ConfigFormat",
    "ConfigPaths",
    "Scope",
    "SourceKind",
    "SourceOrigin",
    "ConfigError",
    "ConfigFileError",
    "ConfigParseError",
    "ConfigSerializationError",
    "ConfigValidationError",
    "FormatMismatchError",
    "InvalidPathError",
    "KeyNotFoundError",
    "TypeMismatchError",
]
