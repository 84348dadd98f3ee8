"""ArgoCD CLI wrapper.

Usage:
    from src.infra.argocd import ArgoCD

    argocd = ArgoCD(config.argocd, shell.runner)
    argocd.sync_release(release)
"""

from .argocd import ArgoCD, SyncOptions, SyncResult
from .names import application_name, legacy_configs_application_name, release_selector
from .status import ApplicationStatus, HealthStatus, Resource, SyncStatus

__all__ = [
    "ArgoCD",
    "ApplicationStatus",
    "HealthStatus",
    "Resource",
    "SyncOptions",
    "SyncResult",
    "SyncStatus",
    "application_name",
    "legacy_configs_application_name",
    "release_selector",
]
