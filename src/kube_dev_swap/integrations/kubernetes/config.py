"""Kubernetes integration configuration models."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator


class ClusterConfig(BaseModel):
    """Configuration for a single Kubernetes cluster."""

    model_config = ConfigDict(extra="forbid")

    context: str = ""
    kubeconfig: str = "~/.kube/config"
    namespace: str = "default"
    timeout: int = 300

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v

    @field_validator("kubeconfig")
    @classmethod
    def validate_kubeconfig(cls, v: str) -> str:
        """Expand ~ in kubeconfig path."""
        return str(Path(v).expanduser())


class KubernetesAuthConfig(BaseModel):
    """Kubernetes authentication configuration."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["kubeconfig", "token"] = "kubeconfig"
    token: str | None = None


class KubernetesDefaultsConfig(BaseModel):
    """Default settings for Kubernetes API calls."""

    model_config = ConfigDict(extra="forbid")

    timeout: int = 300
    retry_attempts: int = 3

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v

    @field_validator("retry_attempts")
    @classmethod
    def validate_retry_attempts(cls, v: int) -> int:
        """Validate retry_attempts is non-negative."""
        if v < 0:
            raise ValueError("retry_attempts must be non-negative")
        return v


class PodReplaceSettings(BaseModel):
    """Timeouts and naming used by the pod replacement engine.

    All durations are in seconds. The revert lookup waits longer than the
    replace lookup since revert is a deliberate, less latency-sensitive
    operation.
    """

    model_config = ConfigDict(extra="forbid")

    replaced_lookup_timeout: float = 2
    revert_lookup_timeout: float = 4
    select_timeout: float = 300
    terminate_timeout: float = 120
    delete_poll_interval: float = 1.0
    terminate_poll_interval: float = 2.0
    name_suffix: str = "kswap"

    @field_validator(
        "replaced_lookup_timeout",
        "revert_lookup_timeout",
        "select_timeout",
        "terminate_timeout",
        "delete_poll_interval",
        "terminate_poll_interval",
    )
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Validate durations are positive."""
        if v <= 0:
            raise ValueError("durations must be positive")
        return v

    @field_validator("name_suffix")
    @classmethod
    def validate_name_suffix(cls, v: str) -> str:
        """Suffix must be a usable DNS label fragment."""
        if not v or not v.replace("-", "").isalnum() or v != v.lower():
            raise ValueError("name_suffix must be lowercase alphanumerics and dashes")
        return v


class KubernetesPluginConfig(BaseModel):
    """Complete Kubernetes plugin configuration."""

    model_config = ConfigDict(extra="forbid")

    clusters: dict[str, ClusterConfig] = {}
    active_cluster: str | None = None
    defaults: KubernetesDefaultsConfig = KubernetesDefaultsConfig()
    auth: KubernetesAuthConfig = KubernetesAuthConfig()
    pod_replace: PodReplaceSettings = PodReplaceSettings()
    output_format: Literal["table", "json", "yaml"] = "table"

    @classmethod
    def from_env(cls, base_config: dict[str, Any] | None = None) -> KubernetesPluginConfig:
        """Create configuration with environment variable overrides.

        Environment variables take precedence over base_config values.

        Supported environment variables:
            KSWAP_K8S_CONTEXT: Override active Kubernetes context
            KSWAP_K8S_NAMESPACE: Override default namespace
            KSWAP_K8S_KUBECONFIG: Override kubeconfig path
            KSWAP_K8S_TOKEN: Bearer token for authentication
            KSWAP_K8S_TIMEOUT: Default API timeout in seconds
            KSWAP_K8S_OUTPUT: Output format (table, json, yaml)
            KSWAP_REPLACE_TIMEOUT: Pod termination timeout in seconds
        """
        config_dict = dict(base_config) if base_config else {}
        config_dict["defaults"] = dict(config_dict.get("defaults") or {})
        config_dict["auth"] = dict(config_dict.get("auth") or {})
        config_dict["pod_replace"] = dict(config_dict.get("pod_replace") or {})
        config_dict.setdefault("clusters", {})

        kubeconfig_override = os.environ.get("KSWAP_K8S_KUBECONFIG")
        namespace_override = os.environ.get("KSWAP_K8S_NAMESPACE")

        if context := os.environ.get("KSWAP_K8S_CONTEXT"):
            config_dict["active_cluster"] = context

        if token := os.environ.get("KSWAP_K8S_TOKEN"):
            config_dict["auth"]["token"] = token
            config_dict["auth"]["type"] = "token"

        if timeout := os.environ.get("KSWAP_K8S_TIMEOUT"):
            config_dict["defaults"]["timeout"] = int(timeout)

        if output_format := os.environ.get("KSWAP_K8S_OUTPUT"):
            config_dict["output_format"] = output_format

        if replace_timeout := os.environ.get("KSWAP_REPLACE_TIMEOUT"):
            config_dict["pod_replace"]["terminate_timeout"] = float(replace_timeout)

        instance = cls.model_validate(config_dict)

        if kubeconfig_override:
            for cluster_cfg in instance.clusters.values():
                cluster_cfg.kubeconfig = str(Path(kubeconfig_override).expanduser())

        if namespace_override:
            for cluster_cfg in instance.clusters.values():
                cluster_cfg.namespace = namespace_override
            if not instance.clusters:
                instance.clusters["default"] = ClusterConfig(namespace=namespace_override)

        return instance

    def _active_cluster_config(self) -> ClusterConfig | None:
        if self.active_cluster and self.active_cluster in self.clusters:
            return self.clusters[self.active_cluster]
        if self.clusters:
            return next(iter(self.clusters.values()))
        return None

    def get_active_context(self) -> str | None:
        """Get the active cluster context name.

        Returns the context of the named active cluster, the active cluster
        string itself when it is a raw context name, the context of the first
        configured cluster, or None (kubeconfig current-context).
        """
        if self.active_cluster and self.active_cluster not in self.clusters:
            return self.active_cluster
        cluster = self._active_cluster_config()
        if cluster is None or not cluster.context:
            return None
        return cluster.context

    def get_active_kubeconfig(self) -> str | None:
        """Get the kubeconfig path of the active cluster, if one is configured."""
        cluster = self._active_cluster_config()
        return cluster.kubeconfig if cluster else None

    def get_active_namespace(self) -> str:
        """Get the default namespace for the active cluster."""
        cluster = self._active_cluster_config()
        return cluster.namespace if cluster else "default"

    def get_active_timeout(self) -> int:
        """Get the API timeout for the active cluster."""
        if self.active_cluster and self.active_cluster in self.clusters:
            return self.clusters[self.active_cluster].timeout
        return self.defaults.timeout
