"""
Ordered fallback chains.

Variables and navigation share one precedence law: candidates are listed
from lowest to highest priority for merges, and from most to least preferred
for first-match lookups. Call sites build the list; these helpers consume it.
"""

from typing import Any, Dict, Iterable, Mapping, Optional


def merge_layers(layers: Iterable[Optional[Mapping[str, Any]]]) -> Dict[str, Any]:
    """Merge mappings left to right; later layers overwrite earlier keys."""
    merged: Dict[str, Any] = {}
    for layer in layers:
        if layer:
            merged.update(layer)
    return merged


def is_empty(value: Any) -> bool:
    return value is None or value == ""


def first_non_empty(candidates: Iterable[Any]) -> Optional[Any]:
    """Return the first candidate that is neither None nor an empty string."""
    for candidate in candidates:
        if not is_empty(candidate):
            return candidate
    return None
