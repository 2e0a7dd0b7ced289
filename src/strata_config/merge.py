"""Layer composition: deep merge with inline provenance bookkeeping."""

import copy
import logging
from collections.abc import Iterable
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from typing import Any

from .models import SourceOrigin
from .paths import MISSING
from .paths import iter_leaves
from .paths import join_path
from .paths import lookup
from .sources import LayerSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergeResult:
    """Effective configuration plus the provenance of every leaf.

    Attributes:
        config: Merged value tree
        provenance: Dotted leaf path -> origin that last set it
        layers: Sources that contributed, in the order applied
        skipped: Origins of optional sources that did not resolve
    """

    config: dict[str, Any]
    provenance: dict[str, SourceOrigin]
    layers: list[LayerSource] = field(default_factory=list)
    skipped: list[SourceOrigin] = field(default_factory=list)

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a dotted path in the effective configuration."""
        value = lookup(self.config, key)
        return default if value is MISSING else value

    def source_of(self, key: str) -> SourceOrigin | None:
        """Origin that determined the leaf at key, if any."""
        return self.provenance.get(key)

    def audit_report(self) -> str:
        """Render a human-readable table of where each setting came from."""
        ranks = {layer.origin: layer.rank for layer in self.layers}
        lines = ["Configuration Audit Report", "==========================", ""]
        for key in sorted(self.provenance):
            origin = self.provenance[key]
            lines.append(f"{key:<30} -> Layer {ranks.get(origin, '?')}: {origin}")
        return "\n".join(lines) + "\n"


def compose(sources: Iterable[LayerSource]) -> MergeResult:
    """Merge sources in ascending rank order into one configuration.

    Provenance is recorded in the same recursive pass that merges values, so
    the two can never disagree. Sources with equal rank apply in the order
    given. Inputs are never modified.

    Raises:
        ConfigFileError: If a required file source is missing or unreadable
        ConfigParseError: If any source's content is malformed
    """
    config: dict[str, Any] = {}
    provenance: dict[str, SourceOrigin] = {}
    applied: list[LayerSource] = []
    skipped: list[SourceOrigin] = []

    for source in sorted(sources, key=lambda s: s.rank):
        tree = source.tree
        if tree is None:
            logger.debug(f"Skipping optional layer {source.origin} (not found)")
            skipped.append(source.origin)
            continue
        _merge_into(config, tree, (), source.origin, provenance)
        applied.append(source)
        logger.debug(f"Applied layer {source.origin} at rank {source.rank}")

    return MergeResult(config=config, provenance=provenance, layers=applied, skipped=skipped)


def deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries with overlay precedence.

    Recursively merges nested dictionaries. Non-dict values in overlay
    completely replace corresponding values in base.

    Args:
        base: Base dictionary
        overlay: Overlay dictionary (takes precedence)

    Returns:
        New merged dictionary (base and overlay are not modified)

    Examples:
        >>> base = {"a": 1, "b": {"c": 2, "d": 3}}
        >>> overlay = {"b": {"c": 20}, "e": 5}
        >>> deep_merge(base, overlay)
        {'a': 1, 'b': {'c': 20, 'd': 3}, 'e': 5}

        >>> deep_merge({}, {"a": 1})
        {'a': 1}
    """
    result = copy.deepcopy(base)
    _merge_into(result, overlay, (), None, None)
    return result


def _merge_into(
    target: dict[str, Any],
    incoming: Mapping[str, Any],
    prefix: tuple[str, ...],
    origin: SourceOrigin | None,
    provenance: dict[str, SourceOrigin] | None,
) -> None:
    for key, value in incoming.items():
        path = prefix + (key,)
        existing = target.get(key, MISSING)

        if isinstance(existing, dict) and isinstance(value, Mapping):
            # Both sides are mappings - recurse
            _merge_into(existing, value, path, origin, provenance)
            continue

        # Incoming wins - replace completely
        replacement = _detach(value)
        target[key] = replacement
        if provenance is None:
            continue
        if isinstance(existing, dict):
            _forget_subtree(provenance, path)
        else:
            provenance.pop(join_path(path), None)
        if isinstance(replacement, dict):
            for leaf_path, _ in iter_leaves(replacement, path):
                provenance[leaf_path] = origin
        else:
            provenance[join_path(path)] = origin


def _detach(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _detach(child) for key, child in value.items()}
    return copy.deepcopy(value)


def _forget_subtree(provenance: dict[str, SourceOrigin], path: tuple[str, ...]) -> None:
    """Drop entries for leaves under a mapping that is being replaced."""
    head = join_path(path) + "."
    for key in [key for key in provenance if key.startswith(head)]:
        del provenance[key]
