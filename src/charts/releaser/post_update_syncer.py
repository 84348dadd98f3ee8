"""Sync chart releases by name after their versions were changed in the registry."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from loguru import logger

from src.utils.errors import ChartReleaseError

if TYPE_CHECKING:
    from src.ops.sync import Syncer
    from src.state import Release, State

MAX_PARALLEL_SYNC = 30


class PostUpdateSyncer:
    """Looks up chart releases by full name and syncs them in parallel.

    Args:
        syncer_factory: Builds the sync driver; only called when there is work to do
        state: State the release names are resolved against
        dry_run: Log what would be synced without syncing
        max_parallel: Concurrency bound passed to the sync driver
    """

    def __init__(
        self,
        syncer_factory: Callable[[], Syncer],
        state: State,
        dry_run: bool = False,
        max_parallel: int = MAX_PARALLEL_SYNC,
    ) -> None:
        self._syncer_factory = syncer_factory
        self._state = state
        self._dry_run = dry_run
        self._max_parallel = max_parallel

    def sync(self, chart_release_names: list[str]) -> None:
        """Sync the named chart releases, e.g. ``["agora-dev", "yale-terra-dev"]``.

        Names that do not exist in state are skipped with a warning.
        """
        if self._dry_run:
            logger.info(
                f"{len(chart_release_names)} chart releases to sync; skipping since this is a dry run"
            )
            return

        logger.info(
            f"Syncing {len(chart_release_names)} chart releases: {', '.join(chart_release_names)}"
        )
        releases = self._names_to_releases(chart_release_names)
        if not releases:
            logger.info("No chart releases to sync")
            return

        try:
            syncer = self._syncer_factory()
        except ChartReleaseError as e:
            raise ChartReleaseError(
                f"error creating sync driver: {e.message}", details=e.details
            ) from e

        syncer.sync(releases, self._max_parallel)

    def _names_to_releases(self, names: list[str]) -> list[Release]:
        by_name = self._state.releases().by_full_name()
        releases: list[Release] = []
        for name in names:
            release = by_name.get(name)
            if release is None:
                logger.warning(f"Won't sync chart release {name} because it doesn't exist")
                continue
            releases.append(release)
        return releases
