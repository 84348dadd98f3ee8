"""Build state snapshots from the environments, clusters and chart releases in Sherlock."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from loguru import logger

from src.state import AutoDelete, Cluster, Environment, Lifecycle, Release, State
from src.utils.errors import RegistryError

if TYPE_CHECKING:
    from .client import SherlockClient


def _parse_time(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Ignoring unparseable timestamp {value!r}")
        return None


def _to_environment(payload: dict[str, Any]) -> Environment:
    auto_delete = payload.get("autoDelete") or {}
    try:
        lifecycle = Lifecycle(payload.get("lifecycle") or "static")
    except ValueError as e:
        raise RegistryError(
            f"environment {payload.get('name')} has unknown lifecycle {payload.get('lifecycle')!r}"
        ) from e
    return Environment(
        name=payload["name"],
        base=payload.get("base") or "",
        lifecycle=lifecycle,
        template_name=payload.get("templateEnvironment") or "",
        prevent_deletion=bool(payload.get("preventDeletion")),
        auto_delete=AutoDelete(
            enabled=bool(auto_delete.get("enabled")),
            after=_parse_time(auto_delete.get("after")),
        ),
        created_at=_parse_time(payload.get("createdAt")),
        default_cluster=payload.get("defaultCluster") or "",
    )


def _to_cluster(payload: dict[str, Any]) -> Cluster:
    return Cluster(
        name=payload["name"],
        base=payload.get("base") or "",
        address=payload.get("address") or "",
    )


class SherlockStateLoader:
    """StateLoader backed by Sherlock's listing endpoints.

    Every ``load``/``reload`` issues fresh requests, so a reload reflects
    any changes made through the client since the previous call.
    """

    def __init__(self, client: SherlockClient) -> None:
        self._client = client

    def load(self) -> State:
        """Fetch a complete snapshot.

        Raises:
            RegistryError: If any listing request fails
        """
        environments = {e.name: e for e in map(_to_environment, self._client.list_environments())}
        clusters = {c.name: c for c in map(_to_cluster, self._client.list_clusters())}

        releases: list[Release] = []
        for payload in self._client.list_chart_releases():
            release = self._to_release(payload, environments, clusters)
            if release is not None:
                releases.append(release)

        logger.debug(
            f"Loaded {len(environments)} environments, {len(clusters)} clusters "
            f"and {len(releases)} releases from {self._client.address}"
        )
        return State(environments.values(), clusters.values(), releases)

    def reload(self) -> State:
        return self.load()

    @staticmethod
    def _to_release(
        payload: dict[str, Any],
        environments: dict[str, Environment],
        clusters: dict[str, Cluster],
    ) -> Release | None:
        cluster = clusters.get(payload.get("cluster") or "")
        if payload.get("destinationType") == "cluster" or not payload.get("environment"):
            destination: Environment | Cluster | None = cluster
        else:
            destination = environments.get(payload["environment"])

        if destination is None:
            logger.debug(f"Skipping chart release {payload.get('name')}: unknown destination")
            return None

        return Release(
            name=payload["chart"],
            chart_name=payload["chart"],
            destination=destination,
            namespace=payload.get("namespace") or "",
            chart_version=payload.get("chartVersionExact") or "",
            app_version=payload.get("appVersionExact") or "",
            terra_helmfile_ref=payload.get("helmfileRef") or "HEAD",
            firecloud_develop_ref=payload.get("firecloudDevelopRef") or "dev",
            cluster_name=cluster.name if cluster else "",
            cluster_address=cluster.address if cluster else "",
        )
