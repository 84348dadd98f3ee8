"""Roll newly published chart versions out to their autorelease targets.

For each released chart the deployer:

1. Resolves target chart releases from the chart's autorelease config
2. Points those releases at the new version in the registry
3. Reloads state so sync sees the updated releases
4. Syncs the releases in ArgoCD
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger

from src.utils.errors import ChartReleaseError

if TYPE_CHECKING:
    from src.charts.releaser import VersionPair
    from src.clients.sherlock import DeployedVersionUpdater
    from src.ops.sync import Syncer
    from src.state import Release, StateLoader

    from .config import ConfigLoader

MAX_PARALLEL_SYNC = 30


@dataclass(frozen=True)
class DeployOptions:
    """Deploy pipeline options.

    Attributes:
        dry_run: Do not update the registry or sync any ArgoCD apps
        ignore_sync_failure: Warn about sync failures instead of raising
        max_parallel_sync: Maximum number of releases synced at once
    """

    dry_run: bool = False
    ignore_sync_failure: bool = False
    max_parallel_sync: int = MAX_PARALLEL_SYNC


class Deployer:
    """Deploys released chart versions.

    Args:
        config_loader: Resolves autorelease targets per chart
        updater: Registries the target releases are updated in
        state_loader: Source of the state reloaded after the update
        syncer_factory: Builds the sync driver, called at most once and only
            when a sync is actually performed
        options: Deploy options
    """

    def __init__(
        self,
        config_loader: ConfigLoader,
        updater: DeployedVersionUpdater,
        state_loader: StateLoader,
        syncer_factory: Callable[[], Syncer],
        options: DeployOptions | None = None,
    ) -> None:
        self._config_loader = config_loader
        self._updater = updater
        self._state_loader = state_loader
        self._syncer_factory = syncer_factory
        self._syncer: Syncer | None = None
        self._options = options or DeployOptions()

    def deploy(self, versions: dict[str, VersionPair], description: str) -> None:
        """Deploy new chart versions to their autorelease targets.

        Args:
            versions: Published versions keyed by chart name
            description: Change description recorded in the registry

        Raises:
            ChartReleaseError: If target resolution, the registry update or
                (unless ignored) the sync fails
        """
        targets = self._update_registry(versions, description)
        targets = self._reload_releases(targets)
        self._sync(targets)

    def _update_registry(
        self, versions: dict[str, VersionPair], description: str
    ) -> list[Release]:
        targets: list[Release] = []

        for chart_name, pair in versions.items():
            try:
                releases = self._config_loader.find_releases_to_update(chart_name)
            except ChartReleaseError as e:
                raise ChartReleaseError(
                    f"error identifying releases to update for chart {chart_name}: {e.message}",
                    details=e.details,
                ) from e

            if not releases:
                logger.info(f"No releases found in Sherlock for chart {chart_name}, skipping")
                continue

            targets.extend(releases)

            names = ", ".join(r.full_name for r in releases)
            logger.info(
                f"Updating {len(releases)} releases in Sherlock for chart {chart_name} "
                f"to version {pair.new_version}: {names}"
            )
            if self._options.dry_run:
                logger.info("(skipping update since this is a dry run)")
                continue

            try:
                self._updater.update_chart_release_versions(chart_name, releases, pair, description)
            except ChartReleaseError as e:
                raise ChartReleaseError(
                    f"error updating chart releases for {chart_name}: {e.message}",
                    details=e.details,
                ) from e

        return targets

    def _reload_releases(self, releases: list[Release]) -> list[Release]:
        by_name = self._state_loader.reload().releases().by_full_name()

        reloaded: list[Release] = []
        for release in releases:
            current = by_name.get(release.full_name)
            if current is None:
                logger.warning(f"updated release {release.full_name} not found in state, skipping sync")
                continue
            reloaded.append(current)
        return reloaded

    def _sync(self, releases: list[Release]) -> None:
        logger.info(f"Syncing {len(releases)} releases...")

        if self._options.dry_run:
            logger.info("(skipping sync since this is a dry run)")
            return

        if not releases:
            return

        try:
            self._get_syncer().sync(releases, self._options.max_parallel_sync)
        except ChartReleaseError as e:
            if self._options.ignore_sync_failure:
                logger.warning(f"Error syncing releases: {e}")
                return
            raise ChartReleaseError(
                f"error syncing releases: {e.message}", details=e.details
            ) from e

        logger.info(f"Synced {len(releases)} releases")

    def _get_syncer(self) -> Syncer:
        if self._syncer is None:
            try:
                self._syncer = self._syncer_factory()
            except ChartReleaseError as e:
                raise ChartReleaseError(
                    f"error creating sync driver: {e.message}", details=e.details
                ) from e
        return self._syncer
