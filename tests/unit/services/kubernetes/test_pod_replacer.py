"""Tests for PodReplacer against an in-memory cluster."""

from __future__ import annotations

from typing import Any

import pytest
from fake_cluster import FakeCluster, container
from kubernetes.client import ApiException

from kube_dev_swap.core.config.models import ImageConfig
from kube_dev_swap.integrations.kubernetes.config import PodReplaceSettings
from kube_dev_swap.integrations.kubernetes.exceptions import (
    AmbiguousContainerError,
    KubernetesValidationError,
    OperationCancelledError,
    PodReplaceError,
    PodSelectionNotFoundError,
)
from kube_dev_swap.integrations.kubernetes.models.markers import (
    IMAGE_NAME_LABEL,
    PARENT_KIND_ANNOTATION,
    REPLACED_LABEL,
    REPLICAS_ANNOTATION,
)
from kube_dev_swap.integrations.kubernetes.models.replacement import (
    ReplaceAction,
    ReplacementSpec,
)
from kube_dev_swap.services.kubernetes.cancellation import CancellationToken
from kube_dev_swap.services.kubernetes.image_resolver import ConfigImageResolver
from kube_dev_swap.services.kubernetes.pod_replacer import PodReplacer

WEB = ReplacementSpec(label_selector={"app": "web"}, replace_image="busybox:1.36")


@pytest.fixture
def make_replacer(cluster: FakeCluster, fast_settings: PodReplaceSettings) -> Any:
    def make(
        target: FakeCluster | None = None,
        resolver: ConfigImageResolver | None = None,
        **kwargs: Any,
    ) -> PodReplacer:
        return PodReplacer(
            (target or cluster).client(),
            resolver or ConfigImageResolver(),
            settings=fast_settings,
            **kwargs,
        )

    return make


def _replacements(cluster: FakeCluster) -> list[dict]:
    return [
        pod
        for pod in cluster.pods.values()
        if (pod["metadata"].get("labels") or {}).get(REPLACED_LABEL) == "true"
    ]


@pytest.mark.unit
@pytest.mark.kubernetes
class TestReplacePod:
    """Tests for PodReplacer.replace_pod."""

    def test_replaces_deployment_pod(self, cluster: FakeCluster, make_replacer: Any) -> None:
        cluster.add_deployment("web", replicas=2)

        result = make_replacer().replace_pod(WEB)

        assert result.action == ReplaceAction.CREATED
        assert (result.parent_kind, result.parent_name) == ("Deployment", "web")
        deployment = cluster.controller("Deployment", "web")
        assert deployment["spec"]["replicas"] == 0
        assert deployment["metadata"]["annotations"][REPLICAS_ANNOTATION] == "2"
        assert cluster.controller("ReplicaSet", "web-5f7c9d")["spec"]["replicas"] == 0
        assert cluster.pod_names() == [result.pod_name]

        replacement = cluster.pod(result.pod_name)
        assert result.pod_name.endswith("-kswap")
        assert replacement["spec"]["containers"][0]["image"] == "busybox:1.36"
        assert replacement["metadata"]["labels"] == {"app": "web", REPLACED_LABEL: "true"}
        assert "ownerReferences" not in replacement["metadata"]

    def test_quiesce_happens_before_create(
        self, cluster: FakeCluster, make_replacer: Any
    ) -> None:
        cluster.add_deployment("web", replicas=2)

        result = make_replacer().replace_pod(WEB)

        assert cluster.mutations() == [
            ("patch", "Deployment", "web"),
            ("create", "Pod", result.pod_name),
        ]

    def test_bare_replica_set(self, cluster: FakeCluster, make_replacer: Any) -> None:
        cluster.add_replica_set("cache", replicas=3)

        result = make_replacer().replace_pod(
            ReplacementSpec(label_selector={"app": "cache"}, replace_image="redis:7")
        )

        assert result.parent_kind == "ReplicaSet"
        assert cluster.controller("ReplicaSet", "cache")["spec"]["replicas"] == 0
        assert cluster.mutations()[0] == ("patch", "ReplicaSet", "cache")

    def test_select_by_image_name(self, cluster: FakeCluster, make_replacer: Any) -> None:
        resolver = ConfigImageResolver(
            images={"api": ImageConfig(image="registry.local/api", tags=["dev"])}
        )
        cluster.add_deployment(
            "api",
            containers=[
                container("proxy", "envoyproxy/envoy:v1.30"),
                container("api", "registry.local/api:dev"),
            ],
        )
        spec = ReplacementSpec(image_name="api", replace_image="image(api):debug")

        result = make_replacer(resolver=resolver).replace_pod(spec)

        replacement = cluster.pod(result.pod_name)
        assert replacement["metadata"]["labels"][IMAGE_NAME_LABEL] == "api"
        assert [c["image"] for c in replacement["spec"]["containers"]] == [
            "envoyproxy/envoy:v1.30",
            "registry.local/api:debug",
        ]
        assert make_replacer(resolver=resolver).replace_pod(spec).action == ReplaceAction.UNCHANGED

    def test_no_target(self, cluster: FakeCluster, make_replacer: Any) -> None:
        cluster.add_deployment("web")

        with pytest.raises(PodSelectionNotFoundError):
            make_replacer().replace_pod(
                ReplacementSpec(label_selector={"app": "ghost"}, replace_image="busybox")
            )

        assert cluster.mutations() == []

    def test_second_replace_is_a_no_op(self, cluster: FakeCluster, make_replacer: Any) -> None:
        cluster.add_deployment("web", replicas=2)
        first = make_replacer().replace_pod(WEB)
        mutations = cluster.mutations()

        second = make_replacer().replace_pod(WEB)

        assert second.action == ReplaceAction.UNCHANGED
        assert second.pod_name == first.pod_name
        assert (second.parent_kind, second.parent_name) == ("Deployment", "web")
        assert cluster.mutations() == mutations
        assert len(cluster.patches) == 1
        assert len(_replacements(cluster)) == 1

    def test_unchanged_replacement_requiesces_parent(
        self, cluster: FakeCluster, make_replacer: Any
    ) -> None:
        cluster.add_deployment("web", replicas=2)
        make_replacer().replace_pod(WEB)
        # someone scaled the parent back up behind our back
        cluster.patch_controller("Deployment", "web", "default", {"spec": {"replicas": 1}})

        result = make_replacer().replace_pod(WEB)

        assert result.action == ReplaceAction.UNCHANGED
        deployment = cluster.controller("Deployment", "web")
        assert deployment["spec"]["replicas"] == 0
        assert deployment["metadata"]["annotations"][REPLICAS_ANNOTATION] == "1"

    def test_changed_spec_rebuilds_replacement(
        self, cluster: FakeCluster, make_replacer: Any
    ) -> None:
        cluster.add_deployment("web", replicas=2)
        first = make_replacer().replace_pod(WEB)

        changed = ReplacementSpec(label_selector={"app": "web"}, replace_image="busybox:1.37")
        second = make_replacer().replace_pod(changed)

        assert second.action == ReplaceAction.RECREATED
        assert first.pod_name not in cluster.pods_present_at_create[second.pod_name]
        replacements = _replacements(cluster)
        assert len(replacements) == 1
        assert replacements[0]["spec"]["containers"][0]["image"] == "busybox:1.37"
        deployment = cluster.controller("Deployment", "web")
        assert deployment["spec"]["replicas"] == 0
        assert deployment["metadata"]["annotations"][REPLICAS_ANNOTATION] == "2"

    def test_changed_parent_template_rebuilds_replacement(
        self, cluster: FakeCluster, make_replacer: Any
    ) -> None:
        cluster.add_deployment("web", replicas=2)
        make_replacer().replace_pod(WEB)
        template = cluster.controller("Deployment", "web")["spec"]["template"]
        template["spec"]["containers"][0]["env"] = [{"name": "LOG_LEVEL", "value": "debug"}]

        result = make_replacer().replace_pod(WEB)

        assert result.action == ReplaceAction.RECREATED
        assert len(_replacements(cluster)) == 1
        assert ("delete", "Pod", result.pod_name) not in cluster.mutations()
        assert cluster.controller("Deployment", "web")["metadata"]["annotations"][
            REPLICAS_ANNOTATION
        ] == "2"

    def test_replacement_without_parent_is_rebuilt(
        self, cluster: FakeCluster, make_replacer: Any
    ) -> None:
        cluster.add_deployment("web", replicas=1)
        first = make_replacer().replace_pod(WEB)
        annotations = cluster.pod(first.pod_name)["metadata"]["annotations"]
        del annotations[PARENT_KIND_ANNOTATION]
        cluster.patch_controller(
            "Deployment",
            "web",
            "default",
            {"metadata": {"annotations": {REPLICAS_ANNOTATION: None}}, "spec": {"replicas": 1}},
        )

        result = make_replacer().replace_pod(WEB)

        assert result.action == ReplaceAction.RECREATED
        assert ("delete", "Pod", first.pod_name) in cluster.mutations()
        assert len(_replacements(cluster)) == 1

    def test_unreadable_parent_leaves_existing_replacement_alone(
        self, cluster: FakeCluster, fast_settings: PodReplaceSettings
    ) -> None:
        cluster.add_deployment("web", replicas=2)
        first = PodReplacer(cluster.client(), ConfigImageResolver(), settings=fast_settings)
        result = first.replace_pod(WEB)
        mutations = cluster.mutations()
        client = cluster.client()
        client.apps_v1.read_namespaced_deployment.side_effect = ApiException(
            status=503, reason="Service Unavailable"
        )

        with pytest.raises(PodReplaceError) as exc:
            PodReplacer(client, ConfigImageResolver(), settings=fast_settings).replace_pod(WEB)

        assert exc.value.step == "get pod parent"
        assert cluster.mutations() == mutations
        assert cluster.pod_names() == [result.pod_name]
        deployment = cluster.controller("Deployment", "web")
        assert deployment["spec"]["replicas"] == 0
        assert deployment["metadata"]["annotations"][REPLICAS_ANNOTATION] == "2"

    def test_ambiguous_container_fails_before_any_mutation(
        self, cluster: FakeCluster, make_replacer: Any
    ) -> None:
        cluster.add_deployment(
            "web", replicas=2, containers=[container("app"), container("sidecar", "envoy:v1")]
        )

        with pytest.raises(AmbiguousContainerError):
            make_replacer().replace_pod(WEB)

        assert cluster.mutations() == []
        assert cluster.controller("Deployment", "web")["spec"]["replicas"] == 2

    def test_container_name_resolves_ambiguity(
        self, cluster: FakeCluster, make_replacer: Any
    ) -> None:
        cluster.add_deployment(
            "web", containers=[container("app"), container("sidecar", "envoy:v1")]
        )
        spec = ReplacementSpec(
            label_selector={"app": "web"}, container_name="sidecar", replace_image="envoy:dev"
        )

        result = make_replacer().replace_pod(spec)

        images = [c["image"] for c in cluster.pod(result.pod_name)["spec"]["containers"]]
        assert images == ["nginx:1.25", "envoy:dev"]

    def test_stateful_set_waits_until_original_is_gone(
        self, make_replacer: Any
    ) -> None:
        cluster = FakeCluster(grace_reads=3)
        cluster.add_stateful_set("db")

        result = make_replacer(cluster).replace_pod(
            ReplacementSpec(label_selector={"app": "db"}, replace_image="postgres:16-debug")
        )

        assert result.pod_name == "db-0-kswap"
        assert result.parent_kind == "StatefulSet"
        assert "db-0" not in cluster.pods_present_at_create["db-0-kswap"]
        labels = cluster.pod("db-0-kswap")["metadata"]["labels"]
        assert "controller-revision-hash" not in labels
        assert "statefulset.kubernetes.io/pod-name" not in labels

    def test_deployment_only_waits_for_termination_to_start(
        self, make_replacer: Any
    ) -> None:
        cluster = FakeCluster(grace_reads=3)
        cluster.add_deployment("web")
        original = cluster.pod_names()[0]

        result = make_replacer(cluster).replace_pod(WEB)

        assert original in cluster.pods_present_at_create[result.pod_name]

    def test_create_failure_is_wrapped_and_parent_restored(
        self, cluster: FakeCluster, fast_settings: PodReplaceSettings
    ) -> None:
        cluster.add_deployment("web", replicas=2)
        client = cluster.client()
        client.core_v1.create_namespaced_pod.side_effect = ApiException(
            status=422, reason="Invalid"
        )

        with pytest.raises(PodReplaceError) as exc:
            PodReplacer(client, ConfigImageResolver(), settings=fast_settings).replace_pod(WEB)

        assert exc.value.step == "create replacement pod"
        assert isinstance(exc.value.original_error, KubernetesValidationError)
        assert str(exc.value).startswith("create replacement pod: Invalid")
        deployment = cluster.controller("Deployment", "web")
        assert deployment["spec"]["replicas"] == 2
        assert REPLICAS_ANNOTATION not in deployment["metadata"]["annotations"]
        assert len(cluster.pod_names()) == 2

    def test_cancelled_before_start(self, cluster: FakeCluster, make_replacer: Any) -> None:
        cluster.add_deployment("web")
        token = CancellationToken()
        token.cancel()

        with pytest.raises(OperationCancelledError):
            make_replacer(cancel=token).replace_pod(WEB)

        assert cluster.mutations() == []

    def test_cancelled_after_quiesce_restores_parent(
        self, cluster: FakeCluster, fast_settings: PodReplaceSettings
    ) -> None:
        cluster.add_deployment("web", replicas=2)
        client = cluster.client()
        replacer = PodReplacer(client, ConfigImageResolver(), settings=fast_settings)

        def patch_then_cancel(name: str, namespace: str, body: dict, **kwargs: Any) -> dict:
            result = cluster.patch_controller("Deployment", name, namespace, body)
            replacer.cancel_token.cancel()
            return result

        client.apps_v1.patch_namespaced_deployment.side_effect = patch_then_cancel

        with pytest.raises(OperationCancelledError) as exc:
            replacer.replace_pod(WEB)

        assert exc.value.step == "wait for original pod to terminate"
        assert [call[0] for call in cluster.mutations()] == ["patch", "patch"]
        assert cluster.controller("Deployment", "web")["spec"]["replicas"] == 2
        assert _replacements(cluster) == []


@pytest.mark.unit
@pytest.mark.kubernetes
class TestRevertReplacePod:
    """Tests for PodReplacer.revert_replace_pod."""

    def test_revert_restores_replicas(self, cluster: FakeCluster, make_replacer: Any) -> None:
        cluster.add_deployment("web", replicas=3)
        result = make_replacer().replace_pod(WEB)

        reverted = make_replacer().revert_replace_pod(WEB)

        assert reverted is not None
        assert reverted.pod_name == result.pod_name
        deployment = cluster.controller("Deployment", "web")
        assert deployment["spec"]["replicas"] == 3
        assert REPLICAS_ANNOTATION not in deployment["metadata"]["annotations"]
        assert _replacements(cluster) == []
        assert len(cluster.pod_names()) == 3
        assert cluster.mutations()[-2:] == [
            ("delete", "Pod", result.pod_name),
            ("patch", "Deployment", "web"),
        ]

    def test_revert_stateful_set(self, make_replacer: Any) -> None:
        cluster = FakeCluster(grace_reads=2)
        cluster.add_stateful_set("db", replicas=1)
        spec = ReplacementSpec(label_selector={"app": "db"}, replace_image="postgres:16-debug")
        make_replacer(cluster).replace_pod(spec)

        make_replacer(cluster).revert_replace_pod(spec)

        assert cluster.controller("StatefulSet", "db")["spec"]["replicas"] == 1
        assert cluster.pod_names() == ["db-0"]

    def test_revert_without_replacement(self, cluster: FakeCluster, make_replacer: Any) -> None:
        cluster.add_deployment("web", replicas=2)

        assert make_replacer().revert_replace_pod(WEB) is None
        assert cluster.mutations() == []

    def test_revert_twice(self, cluster: FakeCluster, make_replacer: Any) -> None:
        cluster.add_deployment("web", replicas=2)
        make_replacer().replace_pod(WEB)
        make_replacer().revert_replace_pod(WEB)
        mutations = cluster.mutations()

        assert make_replacer().revert_replace_pod(WEB) is None
        assert cluster.mutations() == mutations

    def test_revert_with_missing_parent_deletes_pod_only(
        self, cluster: FakeCluster, make_replacer: Any
    ) -> None:
        cluster.add_deployment("web", replicas=2)
        result = make_replacer().replace_pod(WEB)
        del cluster.controllers[("Deployment", "default", "web")]

        reverted = make_replacer().revert_replace_pod(WEB)

        assert reverted is not None
        assert cluster.mutations()[-1] == ("delete", "Pod", result.pod_name)
        assert _replacements(cluster) == []

    def test_revert_with_unreadable_parent_deletes_nothing(
        self, cluster: FakeCluster, fast_settings: PodReplaceSettings
    ) -> None:
        cluster.add_deployment("web", replicas=2)
        first = PodReplacer(cluster.client(), ConfigImageResolver(), settings=fast_settings)
        result = first.replace_pod(WEB)
        mutations = cluster.mutations()
        client = cluster.client()
        client.apps_v1.read_namespaced_deployment.side_effect = ApiException(
            status=503, reason="Service Unavailable"
        )
        replacer = PodReplacer(client, ConfigImageResolver(), settings=fast_settings)

        with pytest.raises(PodReplaceError) as exc:
            replacer.revert_replace_pod(WEB)

        assert exc.value.step == "get pod parent"
        assert cluster.mutations() == mutations
        assert cluster.pod_names() == [result.pod_name]
        deployment = cluster.controller("Deployment", "web")
        assert deployment["spec"]["replicas"] == 0
        assert deployment["metadata"]["annotations"][REPLICAS_ANNOTATION] == "2"

        client.apps_v1.read_namespaced_deployment.side_effect = None
        assert replacer.revert_replace_pod(WEB) is not None
        assert cluster.controller("Deployment", "web")["spec"]["replicas"] == 2

    def test_replace_again_after_revert(self, cluster: FakeCluster, make_replacer: Any) -> None:
        cluster.add_deployment("web", replicas=2)
        make_replacer().replace_pod(WEB)
        make_replacer().revert_replace_pod(WEB)

        result = make_replacer().replace_pod(WEB)

        assert result.action == ReplaceAction.CREATED
        assert cluster.controller("Deployment", "web")["metadata"]["annotations"][
            REPLICAS_ANNOTATION
        ] == "2"


@pytest.mark.unit
@pytest.mark.kubernetes
class TestReplacedPodQueries:
    """Tests for find_replaced_pod and list_replaced_pods."""

    def test_find_requires_a_selection(self, make_replacer: Any) -> None:
        spec = ReplacementSpec.model_construct(
            image_name=None, label_selector=None, namespace=None, container_name=None
        )

        with pytest.raises(ValueError, match="neither image name nor label selector"):
            make_replacer().find_replaced_pod(spec)

    def test_find_ignores_unreplaced_pods(self, cluster: FakeCluster, make_replacer: Any) -> None:
        cluster.add_deployment("web")

        assert make_replacer().find_replaced_pod(WEB) is None

    def test_find_in_other_namespace(self, cluster: FakeCluster, make_replacer: Any) -> None:
        cluster.add_deployment("web", namespace="shop")
        spec = ReplacementSpec(
            label_selector={"app": "web"}, namespace="shop", replace_image="busybox"
        )
        result = make_replacer().replace_pod(spec)

        found = make_replacer().find_replaced_pod(spec)

        assert found is not None
        assert found.pod_name == result.pod_name
        assert found.namespace == "shop"
        assert make_replacer().find_replaced_pod(WEB) is None

    def test_list_replaced_pods(self, cluster: FakeCluster, make_replacer: Any) -> None:
        cluster.add_deployment("web")
        cluster.add_stateful_set("db")
        make_replacer().replace_pod(WEB)
        make_replacer().replace_pod(
            ReplacementSpec(label_selector={"app": "db"}, replace_image="postgres:16")
        )

        summaries = make_replacer().list_replaced_pods()

        assert sorted((s.parent_kind, s.parent_name) for s in summaries) == [
            ("Deployment", "web"),
            ("StatefulSet", "db"),
        ]
        assert all(s.container == "app" and s.phase == "Running" for s in summaries)
