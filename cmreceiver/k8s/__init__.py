"""Kubernetes control-plane access for cmreceiver."""

from cmreceiver.k8s.client import (
    ControlPlaneConfigError,
    FetchedObject,
    KubernetesConfigMapClient,
    ObjectFetcher,
    load_cluster_config,
)

__all__ = [
    "ControlPlaneConfigError",
    "FetchedObject",
    "KubernetesConfigMapClient",
    "ObjectFetcher",
    "load_cluster_config",
]
