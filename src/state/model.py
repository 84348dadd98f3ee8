"""Read-only model of the deployment state.

Environments and clusters are destinations; a release is one chart
deployed to one destination. Instances are immutable snapshots and are
safe to share between threads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class DestinationType(str, Enum):
    """Kind of deployment destination."""

    ENVIRONMENT = "environment"
    CLUSTER = "cluster"


class Lifecycle(str, Enum):
    """Environment lifecycle.

    Template environments are never deployed to directly; dynamic
    environments are spawned from a template.
    """

    STATIC = "static"
    TEMPLATE = "template"
    DYNAMIC = "dynamic"


@dataclass(frozen=True)
class AutoDelete:
    """Auto-delete policy of a dynamic environment."""

    enabled: bool = False
    after: datetime | None = None


@dataclass(frozen=True)
class Destination:
    """Common attributes of environments and clusters."""

    name: str
    base: str = ""

    @property
    def type(self) -> DestinationType:
        raise NotImplementedError

    def is_environment(self) -> bool:
        return self.type == DestinationType.ENVIRONMENT

    def is_cluster(self) -> bool:
        return self.type == DestinationType.CLUSTER


@dataclass(frozen=True)
class Environment(Destination):
    """A deployment environment (long-lived, template or dynamic)."""

    lifecycle: Lifecycle = Lifecycle.STATIC
    template_name: str = ""
    prevent_deletion: bool = False
    auto_delete: AutoDelete = field(default_factory=AutoDelete)
    created_at: datetime | None = None
    default_cluster: str = ""

    @property
    def type(self) -> DestinationType:
        return DestinationType.ENVIRONMENT


@dataclass(frozen=True)
class Cluster(Destination):
    """A Kubernetes cluster that hosts cluster-wide releases."""

    address: str = ""

    @property
    def type(self) -> DestinationType:
        return DestinationType.CLUSTER


@dataclass(frozen=True)
class Release:
    """An instance of a chart deployed to a destination.

    Attributes:
        name: Release name (usually the chart name)
        chart_name: Name of the chart this release deploys
        destination: Environment or cluster the release is deployed to
        namespace: Kubernetes namespace of the release
        chart_version: Chart version currently targeted
        app_version: Application version currently targeted
        terra_helmfile_ref: Git ref the GitOps controller renders the release from
        firecloud_develop_ref: Git ref used by the legacy configs application
        cluster_name: Cluster the release runs in
        cluster_address: API server address of that cluster
    """

    name: str
    chart_name: str
    destination: Destination
    namespace: str = ""
    chart_version: str = ""
    app_version: str = ""
    terra_helmfile_ref: str = "HEAD"
    firecloud_develop_ref: str = "dev"
    cluster_name: str = ""
    cluster_address: str = ""

    @property
    def full_name(self) -> str:
        """Globally unique release name, e.g. ``sam-dev``."""
        return f"{self.name}-{self.destination.name}"

    @property
    def is_app_release(self) -> bool:
        return self.destination.is_environment()

    @property
    def is_cluster_release(self) -> bool:
        return self.destination.is_cluster()

    def __str__(self) -> str:
        return self.full_name
