"""Label and annotation keys stamped by the pod replacement engine.

These keys are the only state the engine persists. Operators and monitoring
tools can rely on them to detect that a replacement is active
(``REPLACED_LABEL`` on a pod) or that a controller is quiesced
(``REPLICAS_ANNOTATION`` on a ReplicaSet, Deployment or StatefulSet).
"""

from __future__ import annotations

MARKER_PREFIX = "kswap.dev"

PARENT_KIND_ANNOTATION = f"{MARKER_PREFIX}/parent-kind"
PARENT_NAME_ANNOTATION = f"{MARKER_PREFIX}/parent-name"
PARENT_HASH_ANNOTATION = f"{MARKER_PREFIX}/parent-hash"
CONFIG_HASH_ANNOTATION = f"{MARKER_PREFIX}/config-hash"
MATCHED_CONTAINER_ANNOTATION = f"{MARKER_PREFIX}/container"

REPLICAS_ANNOTATION = f"{MARKER_PREFIX}/replicas"

REPLACED_LABEL = f"{MARKER_PREFIX}/replaced"
IMAGE_NAME_LABEL = f"{MARKER_PREFIX}/image-name"

# Labels the owning controller machinery inserts into its pods
CONTROLLER_POD_LABELS = (
    "pod-template-hash",
    "controller-revision-hash",
    "statefulset.kubernetes.io/pod-name",
)
