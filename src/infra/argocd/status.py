"""ArgoCD application status, as reported by ``argocd app get -o yaml``."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class HealthStatus(str, Enum):
    """Health of an application or resource."""

    UNKNOWN = "Unknown"
    PROGRESSING = "Progressing"
    SUSPENDED = "Suspended"
    HEALTHY = "Healthy"
    DEGRADED = "Degraded"
    MISSING = "Missing"

    def __str__(self) -> str:
        return self.value


class SyncStatus(str, Enum):
    """Whether live state matches the desired state."""

    UNKNOWN = "Unknown"
    SYNCED = "Synced"
    OUT_OF_SYNC = "OutOfSync"

    def __str__(self) -> str:
        return self.value


class _Model(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ResourceHealth(_Model):
    status: HealthStatus = HealthStatus.UNKNOWN
    message: str = ""


class Resource(_Model):
    """A Kubernetes resource managed by an application."""

    kind: str = ""
    name: str = ""
    group: str = ""
    version: str = ""
    namespace: str = ""
    status: SyncStatus = SyncStatus.UNKNOWN
    health: ResourceHealth | None = None

    def is_healthy(self) -> bool:
        """Resources without a health assessment count as healthy."""
        return self.health is None or self.health.status == HealthStatus.HEALTHY


class _HealthSummary(_Model):
    status: HealthStatus = HealthStatus.UNKNOWN


class _SyncSummary(_Model):
    status: SyncStatus = SyncStatus.UNKNOWN


class ApplicationStatus(_Model):
    """Overall health and sync status of an application plus its resources."""

    health: _HealthSummary = Field(default_factory=_HealthSummary)
    sync: _SyncSummary = Field(default_factory=_SyncSummary)
    resources: list[Resource] = Field(default_factory=list)

    @property
    def health_status(self) -> HealthStatus:
        return self.health.status

    @property
    def sync_status(self) -> SyncStatus:
        return self.sync.status

    def unhealthy_resources(self) -> list[Resource]:
        return [r for r in self.resources if not r.is_healthy()]


class _Source(_Model):
    target_revision: str = Field(default="", alias="targetRevision")


class _Spec(_Model):
    source: _Source = Field(default_factory=_Source)


class Application(_Model):
    """The parts of an application definition that are read."""

    spec: _Spec = Field(default_factory=_Spec)
    status: ApplicationStatus = Field(default_factory=ApplicationStatus)
