"""Status reports for the ArgoCD applications of releases."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from src.infra.argocd import HealthStatus, Resource, SyncStatus, application_name

if TYPE_CHECKING:
    from src.infra.argocd import ArgoCD
    from src.state import Release


@dataclass(frozen=True)
class Status:
    """Health of a release's primary application.

    Attributes:
        health: Overall application health
        sync: Overall application sync status
        unhealthy_resources: Resources that report a health other than Healthy
    """

    health: HealthStatus = HealthStatus.UNKNOWN
    sync: SyncStatus = SyncStatus.UNKNOWN
    unhealthy_resources: list[Resource] = field(default_factory=list)

    def is_healthy(self) -> bool:
        return self.health == HealthStatus.HEALTHY

    def headline(self) -> str:
        """One-line summary, e.g. ``Degraded, OutOfSync (2 unhealthy resources)``."""
        text = f"{self.health}, {self.sync}"
        if self.unhealthy_resources:
            count = len(self.unhealthy_resources)
            text += f" ({count} unhealthy resource{'s' if count != 1 else ''})"
        return text


class StatusReader:
    """Reads release status from ArgoCD."""

    def __init__(self, argocd: ArgoCD) -> None:
        self._argocd = argocd

    def status(self, release: Release) -> Status:
        """Current status of a release's primary application.

        Raises:
            ArgoCDError: If the application status cannot be read
        """
        app_status = self._argocd.app_status(application_name(release))
        return Status(
            health=app_status.health_status,
            sync=app_status.sync_status,
            unhealthy_resources=app_status.unhealthy_resources(),
        )
