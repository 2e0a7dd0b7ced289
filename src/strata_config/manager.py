"""Configuration manager for the three-scope settings system."""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from .editor import LayerEditor
from .editor import SettingValidator
from .exceptions import ConfigError
from .exceptions import KeyNotFoundError
from .merge import MergeResult
from .merge import compose
from .models import ConfigPaths
from .models import Scope
from .models import SourceKind
from .models import SourceOrigin
from .paths import iter_leaves
from .sources import LayerSource

logger = logging.getLogger(__name__)

# Precedence ranks of the layers the manager builds (higher wins).
USER_RANK = 0
PROJECT_RANK = 1
LOCAL_RANK = 2
ENVIRONMENT_RANK = 3
OVERRIDES_RANK = 4


class ConfigManager:
    """Manages configuration across user/project/local scopes.

    Reads merge every scope (plus optional environment variables and
    in-memory overrides) with provenance. Writes go to a single scope's file:
    either the one named explicitly, or the one that currently provides the
    key, so an edit lands where the value actually lives.

    Resolution order (highest to lowest priority):
    1. In-memory overrides
    2. Environment variables (when env_prefix is given)
    3. Local settings (machine-specific)
    4. Project settings (repository)
    5. User settings (global)

    Edits are buffered in per-file editors until ``save()``; ``load()`` reads
    files, so unsaved edits are not visible to it.

    Args:
        paths: Configuration file paths for all three scopes
        env_prefix: Prefix of environment variables to layer on top, e.g. "APP"
        env_separator: Nesting separator inside variable names
        overrides: In-memory values with the highest precedence
        default_scope: Where keys that exist nowhere yet are written
        validator: Optional per-key check consulted on every set
    """

    def __init__(
        self,
        paths: ConfigPaths,
        *,
        env_prefix: str | None = None,
        env_separator: str = "__",
        overrides: Mapping[str, Any] | None = None,
        default_scope: Scope = Scope.LOCAL,
        validator: SettingValidator | None = None,
    ):
        """Initialize configuration manager with injected paths."""
        self.paths = paths
        self.env_prefix = env_prefix
        self.env_separator = env_separator
        self.overrides = dict(overrides) if overrides else {}
        self.default_scope = default_scope
        self.validator = validator
        self._editors: dict[Path, LayerEditor] = {}

    # ===== Composition =====

    def sources(self) -> list[LayerSource]:
        """Build the ordered layer list (lowest precedence first).

        Scope files are optional; unconfigured scopes are left out.
        """
        layers = []
        for scope, rank in ((Scope.USER, USER_RANK), (Scope.PROJECT, PROJECT_RANK), (Scope.LOCAL, LOCAL_RANK)):
            path = self._scope_paths()[scope]
            if path is not None:
                layers.append(LayerSource.from_file(path, rank, required=False, scope=scope))

        if self.env_prefix is not None:
            layers.append(LayerSource.from_env(self.env_prefix, ENVIRONMENT_RANK, separator=self.env_separator))

        if self.overrides:
            layers.append(LayerSource.from_mapping(self.overrides, OVERRIDES_RANK))

        return layers

    def load(self) -> MergeResult:
        """Merge all layers into effective settings with provenance."""
        return compose(self.sources())

    def get_merged_settings(self) -> dict[str, Any]:
        """Get merged settings from all layers.

        Returns:
            Merged settings dictionary
        """
        return self.load().config

    def get(self, key: str, default: Any = None) -> Any:
        """Get an effective value by dotted path."""
        return self.load().get(key, default)

    def source_of(self, key: str) -> SourceOrigin | None:
        """Origin that currently provides key, or None."""
        return self.load().source_of(key)

    # ===== Editing =====

    def editor(self, scope: Scope) -> LayerEditor:
        """Get the (cached) editor for a scope's file.

        Opens the file if it exists, otherwise starts a new empty document.
        """
        path = self._scope_to_path(scope)
        if path not in self._editors:
            if path.exists():
                self._editors[path] = LayerEditor.open(path, validator=self.validator)
            else:
                self._editors[path] = LayerEditor.create(path, validator=self.validator)
        return self._editors[path]

    def set(self, key: str, value: Any, scope: Scope | None = None) -> None:
        """Set a value in one scope's file.

        Args:
            key: Dotted path
            value: New value
            scope: Target scope; defaults to the scope currently providing the
                key, or default_scope for keys that exist nowhere yet

        Raises:
            ConfigError: If the key is provided by a non-file layer
        """
        target = scope or self._providing_scope(key) or self.default_scope
        self.editor(target).set(key, value)
        logger.info(f"Set '{key}' in {target.value} scope")

    def unset(self, key: str, scope: Scope | None = None) -> None:
        """Remove a key from one scope's file.

        Without a scope, removes it from the scope that currently provides it,
        which may uncover a value from a lower scope.

        Raises:
            KeyNotFoundError: If the key is not present
        """
        target = scope or self._providing_scope(key)
        if target is None:
            raise KeyNotFoundError(key)
        self.editor(target).unset(key)
        logger.info(f"Removed '{key}' from {target.value} scope")

    def update_settings(self, updates: dict[str, Any], scope: Scope = Scope.PROJECT) -> None:
        """Set every leaf of a nested dictionary in the specified scope.

        All leaves are applied together; if one is rejected, none are.

        Args:
            updates: Nested dictionary of values
            scope: Target scope (default: PROJECT)
        """
        self.editor(scope).update(dict(iter_leaves(updates)))

    def save(self) -> list[Path]:
        """Save every scope file with unsaved edits.

        Returns:
            Paths that were written
        """
        saved = []
        for path, editor in self._editors.items():
            if editor.is_dirty():
                editor.save()
                saved.append(path)
        return saved

    def is_dirty(self) -> bool:
        return any(editor.is_dirty() for editor in self._editors.values())

    def dirty_files(self) -> list[Path]:
        return [path for path, editor in self._editors.items() if editor.is_dirty()]

    def scope_to_path(self, scope: Scope) -> Path:
        """Get path for a given scope.

        Public accessor for scope-to-path mapping.

        Raises:
            ConfigError: If the scope has no configured path
        """
        return self._scope_to_path(scope)

    # ===== Private Helpers =====

    def _scope_paths(self) -> dict[Scope, Path | None]:
        return {
            Scope.USER: self.paths.user,
            Scope.PROJECT: self.paths.project,
            Scope.LOCAL: self.paths.local,
        }

    def _scope_to_path(self, scope: Scope) -> Path:
        path = self._scope_paths()[scope]
        if path is None:
            raise ConfigError(f"No configuration file configured for {scope.value} scope")
        return Path(path)

    def _providing_scope(self, key: str) -> Scope | None:
        """Scope whose file provides key, per provenance."""
        origin = self.source_of(key)
        if origin is None:
            return None
        if origin.kind is not SourceKind.FILE or origin.scope is None:
            raise ConfigError(f"Key '{key}' is provided by {origin}, which is not an editable file")
        return origin.scope
