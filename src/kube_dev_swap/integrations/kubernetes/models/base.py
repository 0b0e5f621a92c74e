"""Base models for Kubernetes resources."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

from kube_dev_swap.integrations.kubernetes.serialization import get_path


class K8sEntityBase(BaseModel):
    """Base class for Kubernetes display models."""

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    name: str = Field(description="Resource name")
    namespace: str | None = Field(default=None, description="Resource namespace")
    uid: str | None = Field(default=None, description="Kubernetes UID")
    creation_timestamp: str | None = Field(default=None, description="Creation time")
    labels: dict[str, str] | None = Field(default=None, description="Resource labels")
    annotations: dict[str, str] | None = Field(default=None, description="Resource annotations")

    _entity_name: ClassVar[str] = "entity"

    @property
    def age(self) -> str:
        """Human-readable age string."""
        if not self.creation_timestamp:
            return "Unknown"
        try:
            created = datetime.fromisoformat(self.creation_timestamp.replace("Z", "+00:00"))
        except (ValueError, TypeError):
            return "Unknown"
        delta = datetime.now(UTC) - created
        hours, remainder = divmod(delta.seconds, 3600)
        if delta.days > 0:
            return f"{delta.days}d"
        if hours > 0:
            return f"{hours}h"
        return f"{remainder // 60}m"


class OwnerReference(BaseModel):
    """Kubernetes owner reference."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    api_version: str | None = Field(default=None, alias="apiVersion")
    kind: str | None = None
    name: str | None = None
    uid: str | None = None
    controller: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> OwnerReference:
        """Create from an API-shaped owner reference dict."""
        return cls.model_validate(data or {})


def get_controller_of(obj: dict[str, Any]) -> OwnerReference | None:
    """Return the owner reference marked as controller, if any.

    Args:
        obj: API-shaped object dict.

    Returns:
        The controlling owner reference, or None when the object is unmanaged.
    """
    for ref in get_path(obj, "metadata", "ownerReferences", default=[]):
        owner = OwnerReference.from_dict(ref)
        if owner.controller:
            return owner
    return None
