"""Unit tests for JsonPatchApplier."""

from __future__ import annotations

import pytest

from kube_dev_swap.integrations.kubernetes.exceptions import PodTransformError
from kube_dev_swap.integrations.kubernetes.models.replacement import PatchOperation
from kube_dev_swap.services.kubernetes.patch_applier import JsonPatchApplier


def _pod() -> dict:
    return {
        "metadata": {"name": "web", "labels": {"app": "web"}},
        "spec": {"containers": [{"name": "app", "image": "nginx"}]},
    }


@pytest.mark.unit
@pytest.mark.kubernetes
class TestJsonPatchApplier:
    """Tests for JsonPatchApplier."""

    def test_applies_operations_in_order(self) -> None:
        patches = [
            PatchOperation(op="add", path="/spec/containers/0/env", value=[]),
            PatchOperation(op="add", path="/spec/containers/0/env/-", value={"name": "A"}),
            PatchOperation(op="replace", path="/metadata/labels/app", value="web-dev"),
            PatchOperation(op="remove", path="/spec/containers/0/image"),
        ]

        result = JsonPatchApplier().apply(_pod(), patches)

        assert result["spec"]["containers"][0] == {"name": "app", "env": [{"name": "A"}]}
        assert result["metadata"]["labels"]["app"] == "web-dev"

    def test_move_uses_from(self) -> None:
        patch = PatchOperation.model_validate(
            {"op": "move", "from": "/metadata/labels/app", "path": "/metadata/labels/tier"}
        )

        result = JsonPatchApplier().apply(_pod(), [patch])

        assert result["metadata"]["labels"] == {"tier": "web"}

    def test_input_is_not_mutated(self) -> None:
        pod = _pod()

        JsonPatchApplier().apply(pod, [PatchOperation(op="remove", path="/metadata/labels")])

        assert pod == _pod()

    def test_no_patches(self) -> None:
        pod = _pod()

        assert JsonPatchApplier().apply(pod, []) is pod

    @pytest.mark.parametrize(
        "patch",
        [
            PatchOperation(op="remove", path="/spec/volumes"),
            PatchOperation(op="test", path="/metadata/name", value="api"),
            PatchOperation(op="add", path="spec/x", value=1),
        ],
    )
    def test_failing_patch(self, patch: PatchOperation) -> None:
        with pytest.raises(PodTransformError, match="applying patches"):
            JsonPatchApplier().apply(_pod(), [patch])
