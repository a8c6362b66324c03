"""Cluster profiles and the kind-backed cluster handle."""

from __future__ import annotations

from kindling.k8s.cluster import KindCluster, kind_config_manifest
from kindling.k8s.kubeconfig import has_context, kubeconfig_contexts
from kindling.k8s.provider import (
    Cluster,
    Provider,
    ProviderKind,
    default_provider,
    test_provider,
)

__all__ = [
    "Cluster",
    "KindCluster",
    "Provider",
    "ProviderKind",
    "default_provider",
    "has_context",
    "kind_config_manifest",
    "kubeconfig_contexts",
    "test_provider",
]
