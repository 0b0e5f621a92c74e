"""Change detection for existing replacement pods.

A replacement pod carries two fingerprints: one of its parent's pod template
(after the same image substitution the replacement received) and one of the
replacement spec. If either differs from a freshly computed value, the
replacement is stale and must be rebuilt.
"""

from __future__ import annotations

import copy
import hashlib
import json
from typing import TYPE_CHECKING, Any

from kube_dev_swap.integrations.kubernetes.exceptions import FingerprintError
from kube_dev_swap.integrations.kubernetes.serialization import ensure_map

if TYPE_CHECKING:
    from kube_dev_swap.integrations.kubernetes.models.replacement import ReplacementSpec
    from kube_dev_swap.services.kubernetes.controllers import Controller
    from kube_dev_swap.services.kubernetes.pod_transform import PodTransform


def canonical_hash(data: Any) -> str:
    """SHA-256 hex digest of the canonical JSON form of ``data``.

    Keys are sorted, so two equal structures hash equally regardless of the
    order their fields were produced in.

    Raises:
        FingerprintError: If ``data`` is not JSON serializable.
    """
    try:
        encoded = json.dumps(
            data,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError) as e:
        raise FingerprintError(f"cannot serialize object for hashing: {e}", original_error=e) from e
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


class ChangeFingerprinter:
    """Computes the parent and config fingerprints stamped on replacements.

    Pure: reads nothing from the cluster.
    """

    def __init__(self, transform: PodTransform) -> None:
        self._transform = transform

    def fingerprint_controller(self, controller: Controller, spec: ReplacementSpec) -> str:
        """Hash the controller's pod template with the image substitution applied."""
        template = copy.deepcopy(controller.template())
        if spec.replace_image:
            self._transform.replace_image(ensure_map(template, "spec"), spec)
        return canonical_hash(template)

    def fingerprint_spec(self, spec: ReplacementSpec) -> str:
        """Hash the replacement spec."""
        return canonical_hash(spec.model_dump(by_alias=True, exclude_none=True, mode="json"))
