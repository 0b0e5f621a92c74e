"""JSON merge patch (RFC 7386) computation.

Controllers are patched with the minimal merge patch between a deep copy taken
before mutation and the mutated object, so concurrent edits to fields the
engine did not touch are never overwritten.
"""

from __future__ import annotations

import copy
from typing import Any


def create_merge_patch(original: dict[str, Any], modified: dict[str, Any]) -> dict[str, Any]:
    """Compute the merge patch that turns ``original`` into ``modified``.

    Args:
        original: Object state before mutation.
        modified: Object state after mutation.

    Returns:
        A merge patch containing only changed keys. Removed keys map to None;
        lists are replaced wholesale, as RFC 7386 prescribes.

    Example:
        >>> create_merge_patch({"a": 1, "b": {"c": 2}}, {"a": 1, "b": {"d": 3}})
        {'b': {'c': None, 'd': 3}}
    """
    patch: dict[str, Any] = {}

    for key in original.keys() - modified.keys():
        patch[key] = None

    for key, new_value in modified.items():
        if key not in original:
            patch[key] = copy.deepcopy(new_value)
            continue

        old_value = original[key]
        if isinstance(old_value, dict) and isinstance(new_value, dict):
            nested = create_merge_patch(old_value, new_value)
            if nested:
                patch[key] = nested
        elif old_value != new_value:
            patch[key] = copy.deepcopy(new_value)

    return patch
