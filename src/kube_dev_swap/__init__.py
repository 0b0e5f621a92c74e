"""kube-dev-swap - swap pods of running Kubernetes workloads for development variants."""

__version__ = "0.1.0"
