"""Models describing a pod replacement request and its outcome."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from kube_dev_swap.integrations.kubernetes.models.base import K8sEntityBase
from kube_dev_swap.integrations.kubernetes.models.markers import (
    IMAGE_NAME_LABEL,
    MATCHED_CONTAINER_ANNOTATION,
    PARENT_KIND_ANNOTATION,
    PARENT_NAME_ANNOTATION,
    REPLACED_LABEL,
)
from kube_dev_swap.integrations.kubernetes.serialization import get_path


class PatchOperation(BaseModel):
    """A single JSON patch (RFC 6902) operation applied to the replacement pod."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    op: Literal["add", "remove", "replace", "move", "copy", "test"]
    path: str
    value: Any = None
    from_: str | None = Field(default=None, alias="from")

    def to_json_patch(self) -> dict[str, Any]:
        """Render as a JSON patch operation dict."""
        operation: dict[str, Any] = {"op": self.op, "path": self.path}
        if self.op in ("add", "replace", "test"):
            operation["value"] = self.value
        if self.op in ("move", "copy"):
            operation["from"] = self.from_
        return operation


class ReplacementSpec(BaseModel):
    """What to replace and how.

    Exactly one selection criterion must be given: ``image_name`` (an image
    defined in the project config) or ``label_selector``.
    """

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    image_name: str | None = Field(default=None, alias="imageName")
    label_selector: dict[str, str] | None = Field(default=None, alias="labelSelector")
    namespace: str | None = None
    container_name: str | None = Field(default=None, alias="containerName")
    replace_image: str | None = Field(default=None, alias="replaceImage")
    patches: list[PatchOperation] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_selection(self) -> ReplacementSpec:
        """Require exactly one of image_name and label_selector."""
        if bool(self.image_name) == bool(self.label_selector):
            raise ValueError("exactly one of imageName or labelSelector must be defined")
        return self

    def selection_labels(self) -> dict[str, str]:
        """Labels that identify an existing replacement for this spec."""
        labels = {REPLACED_LABEL: "true"}
        if self.image_name:
            labels[IMAGE_NAME_LABEL] = self.image_name
        elif self.label_selector:
            labels.update(self.label_selector)
        return labels

    def describe(self) -> str:
        """Short human-readable description of the selection criteria."""
        if self.image_name:
            return f"imageName={self.image_name}"
        return ",".join(f"{k}={v}" for k, v in sorted((self.label_selector or {}).items()))


class SelectedPodContainer(BaseModel):
    """A pod plus the container within it that matched the selection."""

    model_config = ConfigDict(frozen=True)

    pod: dict[str, Any]
    container: dict[str, Any]

    @property
    def pod_name(self) -> str:
        return str(get_path(self.pod, "metadata", "name", default=""))

    @property
    def namespace(self) -> str:
        return str(get_path(self.pod, "metadata", "namespace", default=""))

    @property
    def container_name(self) -> str:
        return str(self.container.get("name", ""))

    @property
    def annotations(self) -> dict[str, str]:
        return dict(get_path(self.pod, "metadata", "annotations", default={}))


class ReplaceAction(StrEnum):
    """Outcome of a replace call."""

    CREATED = "created"
    RECREATED = "recreated"
    UNCHANGED = "unchanged"


class ReplaceResult(BaseModel):
    """Result of :meth:`PodReplacer.replace_pod`."""

    action: ReplaceAction
    pod_name: str
    namespace: str
    parent_kind: str
    parent_name: str


class ReplacedPodSummary(K8sEntityBase):
    """Display model for a replacement pod found in the cluster."""

    _entity_name: ClassVar[str] = "replaced_pod"

    phase: str = Field(default="Unknown", description="Pod phase")
    parent_kind: str | None = Field(default=None, description="Quiesced controller kind")
    parent_name: str | None = Field(default=None, description="Quiesced controller name")
    container: str | None = Field(default=None, description="Replaced container")
    terminating: bool = Field(default=False, description="Whether deletion is pending")

    @classmethod
    def from_dict(cls, pod: dict[str, Any]) -> ReplacedPodSummary:
        """Create from an API-shaped pod dict."""
        annotations = get_path(pod, "metadata", "annotations", default={})
        return cls(
            name=get_path(pod, "metadata", "name", default=""),
            namespace=get_path(pod, "metadata", "namespace"),
            uid=get_path(pod, "metadata", "uid"),
            creation_timestamp=get_path(pod, "metadata", "creationTimestamp"),
            labels=get_path(pod, "metadata", "labels"),
            phase=get_path(pod, "status", "phase", default="Unknown"),
            parent_kind=annotations.get(PARENT_KIND_ANNOTATION),
            parent_name=annotations.get(PARENT_NAME_ANNOTATION),
            container=annotations.get(MATCHED_CONTAINER_ANNOTATION),
            terminating=get_path(pod, "metadata", "deletionTimestamp") is not None,
        )
