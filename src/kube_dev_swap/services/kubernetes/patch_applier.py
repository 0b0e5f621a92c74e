"""Generic patches applied to replacement pods."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import jsonpatch
import jsonpointer

from kube_dev_swap.integrations.kubernetes.exceptions import PodTransformError

if TYPE_CHECKING:
    from kube_dev_swap.integrations.kubernetes.models.replacement import PatchOperation


class PatchApplier(Protocol):
    """Applies patch operations to an API-shaped object."""

    def apply(self, obj: dict[str, Any], patches: list[PatchOperation]) -> dict[str, Any]:
        """Return a patched copy of ``obj``."""
        ...


class JsonPatchApplier:
    """RFC 6902 JSON patch applier using the ``jsonpatch`` library."""

    def apply(self, obj: dict[str, Any], patches: list[PatchOperation]) -> dict[str, Any]:
        """Apply ``patches`` to a copy of ``obj``.

        Raises:
            PodTransformError: If a patch cannot be applied.
        """
        if not patches:
            return obj
        try:
            document = jsonpatch.JsonPatch([p.to_json_patch() for p in patches])
            return document.apply(obj, in_place=False)
        except (jsonpatch.JsonPatchException, jsonpointer.JsonPointerException) as e:
            raise PodTransformError(f"applying patches: {e}", original_error=e) from e
