"""Conversion of kubernetes SDK objects into plain API-shaped dicts.

The replacement engine works on JSON-shaped dicts in the API wire format
(camelCase keys) so that deep copies, merge-patch diffs and hashing operate on
exactly what the API server sees.
"""

from __future__ import annotations

import copy
from functools import lru_cache
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from kubernetes.client import ApiClient


@lru_cache(maxsize=1)
def _api_client() -> ApiClient:
    from kubernetes.client import ApiClient

    return ApiClient()


def to_dict(obj: Any) -> dict[str, Any]:
    """Return a deep, API-shaped dict copy of a kubernetes object.

    Args:
        obj: A kubernetes SDK model (e.g. ``V1Pod``), a dict, or None.

    Returns:
        A new dict; mutating it never affects ``obj``.
    """
    if obj is None:
        return {}
    if isinstance(obj, dict):
        return copy.deepcopy(obj)
    data = _api_client().sanitize_for_serialization(obj)
    if not isinstance(data, dict):
        raise TypeError(f"cannot convert {type(obj).__name__} to a dict")
    return data


def get_path(obj: dict[str, Any] | None, *keys: str, default: Any = None) -> Any:
    """Safely traverse nested dict keys."""
    current: Any = obj
    for key in keys:
        if not isinstance(current, dict):
            return default
        current = current.get(key)
        if current is None:
            return default
    return current


def ensure_map(obj: dict[str, Any], *keys: str) -> dict[str, Any]:
    """Return the nested dict at ``keys``, creating empty dicts along the way."""
    current = obj
    for key in keys:
        nested = current.get(key)
        if not isinstance(nested, dict):
            nested = {}
            current[key] = nested
        current = nested
    return current
