"""HTTP client for Sherlock, the chart version registry.

Sherlock records which chart versions exist and which version every
chart release should run. This client wraps the handful of endpoints
the release and deploy pipelines use.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import httpx
from loguru import logger

from src.utils.errors import RegistryError
from src.utils.secrets import mask_secret

from .auth import SherlockAuth

CHART_VERSIONS_PATH = "/api/v2/chart-versions"
CHANGESETS_PLAN_AND_APPLY_PATH = "/api/v2/procedures/changesets/plan-and-apply"
ENVIRONMENTS_PATH = "/api/v2/environments"
CLUSTERS_PATH = "/api/v2/clusters"
CHART_RELEASES_PATH = "/api/v2/chart-releases"
CI_RUNS_PATH = "/api/ci-runs/v3"

TEMPLATE_LIFECYCLE = "template"
LATEST_RESOLVER = "latest"
FOLLOW_RESOLVER = "follow"


class SherlockClient:
    """Client for a single Sherlock instance.

    Example:
        >>> with SherlockClient("https://sherlock.example.org", iap_token) as sherlock:
        ...     sherlock.report_new_chart_version("agora", "1.3.0", "1.2.0", "bump")
    """

    def __init__(
        self,
        address: str,
        iap_token: str,
        *,
        gha_oidc_token: str | None = None,
        trusted_addresses: Iterable[str] | None = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            address: Base URL of the Sherlock instance
            iap_token: Bearer token for the identity-aware proxy in front of Sherlock
            gha_oidc_token: CI identity token; enables chart release status reporting
            trusted_addresses: Addresses allowed to receive credentials (defaults to ``address``)
            timeout: Request timeout in seconds
            transport: Optional transport, used by tests
        """
        self._address = address.rstrip("/")
        mask_secret(iap_token, gha_oidc_token)
        self._gha_oidc_token = gha_oidc_token
        trusted = list(trusted_addresses) if trusted_addresses else [self._address]
        self._client = httpx.Client(
            base_url=self._address,
            auth=SherlockAuth(trusted, iap_token, gha_oidc_token),
            timeout=timeout,
            transport=transport,
        )

    @property
    def address(self) -> str:
        return self._address

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> SherlockClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # =========================================================================
    # Chart Versions
    # =========================================================================

    def report_new_chart_version(
        self, chart: str, new_version: str, last_version: str, description: str
    ) -> None:
        """Record a newly published chart version.

        Args:
            chart: Chart name
            new_version: Version that was published
            last_version: Previous version (parent), or "" for a first publish
            description: Human-readable description of the change

        Raises:
            RegistryError: If Sherlock rejects the request
        """
        body: dict[str, Any] = {
            "chart": chart,
            "chartVersion": new_version,
            "description": description,
        }
        if last_version:
            body["parentChartVersion"] = f"{chart}/{last_version}"

        self._request(
            "POST",
            CHART_VERSIONS_PATH,
            f"creating chart version {chart}/{new_version}",
            json=body,
        )

    def update_for_new_chart_version(
        self,
        chart: str,
        new_version: str,
        last_version: str,
        description: str,
        chart_releases: Iterable[str] = (),
    ) -> list[str]:
        """Report a new chart version and roll it out to chart releases.

        The steps run strictly in order and stop at the first failure:

        1. Report the new chart version.
        2. Set every listed chart release to the "latest" version resolver.
        3. Refresh template chart releases that follow the latest version of
           the chart, or follow one of the chart releases just updated.

        Args:
            chart: Chart name
            new_version: Version that was published
            last_version: Previous version, or ""
            description: Human-readable description of the change
            chart_releases: Full names of chart releases to advance

        Returns:
            Names of the template chart releases that were refreshed

        Raises:
            RegistryError: If any step fails
        """
        chart_releases = list(chart_releases)

        self.report_new_chart_version(chart, new_version, last_version, description)

        self._plan_and_apply(
            [{"chartRelease": name, "toChartVersionResolver": LATEST_RESOLVER} for name in chart_releases],
            f"updating chart releases to new version {chart}/{new_version}",
        )
        logger.info(
            f"Updated chart releases in Sherlock to new version {chart}/{new_version}: {chart_releases}"
        )

        to_refresh = self._find_template_followers(chart, chart_releases)
        if not to_refresh:
            logger.info("no template chart releases to refresh")
            return []

        self._plan_and_apply(
            [{"chartRelease": name} for name in to_refresh],
            f"refreshing template chart releases to reflect new version {chart}/{new_version}",
        )
        logger.info(
            f"Refreshed template chart releases in Sherlock to reflect new version "
            f"{chart}/{new_version}: {to_refresh}"
        )
        return to_refresh

    # =========================================================================
    # Chart Release Statuses
    # =========================================================================

    def update_chart_release_statuses(self, statuses: dict[str, str]) -> None:
        """Attach chart release statuses to the CI run that is making this request.

        Does nothing when no CI identity token is configured, since Sherlock
        could not correlate the request with a CI run.

        Raises:
            RegistryError: If Sherlock rejects the request
        """
        if not self._gha_oidc_token:
            logger.debug("No CI identity token available; not reporting chart release statuses")
            return

        payload = self._request(
            "PUT",
            CI_RUNS_PATH,
            "reporting chart release statuses",
            json={"chartReleaseStatuses": statuses},
        )
        if not isinstance(payload, dict):
            logger.warning("Sherlock accepted chart release statuses but returned no CI run")
            return

        chart_release_count = 0
        changeset_count = 0
        for resource in payload.get("relatedResources") or []:
            if not resource or not resource.get("resourceStatus"):
                continue
            if resource.get("resourceType") == "chart-release":
                chart_release_count += 1
            elif resource.get("resourceType") == "changeset":
                changeset_count += 1
        logger.debug(
            f"Sherlock CI run {payload.get('id')} updated; now providing custom statuses "
            f"for {chart_release_count} chart releases and {changeset_count} changesets"
        )

    # =========================================================================
    # State Queries
    # =========================================================================

    def list_environments(self, lifecycle: str | None = None) -> list[dict[str, Any]]:
        params = {"lifecycle": lifecycle} if lifecycle else None
        return self._request("GET", ENVIRONMENTS_PATH, "listing environments", params=params) or []

    def list_clusters(self) -> list[dict[str, Any]]:
        return self._request("GET", CLUSTERS_PATH, "listing clusters") or []

    def list_chart_releases(self, **filters: str) -> list[dict[str, Any]]:
        """List chart releases, optionally filtered by query parameters.

        Keyword arguments are sent as query parameters, e.g.
        ``chart="sam", environment="swatomation", chartVersionResolver="latest"``.
        """
        return (
            self._request(
                "GET", CHART_RELEASES_PATH, "listing chart releases", params=filters or None
            )
            or []
        )

    # =========================================================================
    # Internals
    # =========================================================================

    def _find_template_followers(self, chart: str, updated: list[str]) -> list[str]:
        templates = self.list_environments(lifecycle=TEMPLATE_LIFECYCLE)

        names: list[str] = []
        for template in templates:
            template_name = template["name"]
            using_latest = self.list_chart_releases(
                chart=chart,
                environment=template_name,
                chartVersionResolver=LATEST_RESOLVER,
            )
            names.extend(r["name"] for r in using_latest)

            for followed in updated:
                following = self.list_chart_releases(
                    chart=chart,
                    environment=template_name,
                    chartVersionResolver=FOLLOW_RESOLVER,
                    followChartRelease=followed,
                )
                names.extend(r["name"] for r in following)
        return names

    def _plan_and_apply(self, entries: list[dict[str, str]], operation: str) -> Any:
        return self._request(
            "POST",
            CHANGESETS_PLAN_AND_APPLY_PATH,
            operation,
            json={"chartReleases": entries},
        )

    def _request(self, method: str, path: str, operation: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RegistryError(
                f"error from Sherlock {operation}: HTTP {e.response.status_code}",
                details=e.response.text or None,
            ) from e
        except httpx.HTTPError as e:
            raise RegistryError(f"error from Sherlock {operation}: {e}") from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RegistryError(f"error from Sherlock {operation}: invalid JSON response") from e
