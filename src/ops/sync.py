"""Parallel sync of releases' ArgoCD applications."""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from dataclasses import replace
from typing import TYPE_CHECKING

from loguru import logger

from src.infra.argocd import application_name
from src.utils import pool
from src.utils.errors import ArgoCDError

from .status import Status

if TYPE_CHECKING:
    from src.infra.argocd import ArgoCD, SyncOptions
    from src.state import Destination, Release

    from .status import StatusReader

WORK_DESCRIPTION = "services synced"
METRICS_POOL_NAME = "ops_sync"


class Syncer:
    """Syncs releases and reports their resulting status.

    Args:
        argocd: ArgoCD CLI wrapper
        status_reader: Reads release status once a sync finishes
        status_publisher: Optional callback receiving periodic
            ``{release full name: status}`` summaries, e.g.
            ``SherlockClient.update_chart_release_statuses``
    """

    def __init__(
        self,
        argocd: ArgoCD,
        status_reader: StatusReader,
        status_publisher: Callable[[dict[str, str]], None] | None = None,
    ) -> None:
        self._argocd = argocd
        self._status_reader = status_reader
        self._status_publisher = status_publisher

    def sync(
        self,
        releases: Sequence[Release],
        max_parallel: int,
        options: SyncOptions | None = None,
    ) -> dict[Release, Status]:
        """Sync releases with at most ``max_parallel`` in flight.

        Every release is attempted even if others fail.

        Returns:
            Status of every release whose status could be read

        Raises:
            PoolError: Listing every release that failed to sync or become healthy
        """
        opts = options or self._argocd.default_sync_options()
        statuses: dict[Release, Status] = {}
        lock = threading.Lock()

        destination = _single_destination(releases)

        jobs = []
        for release in releases:
            name = release.name if destination is not None else release.full_name
            jobs.append(
                pool.Job(
                    name=name,
                    run=self._sync_job(release, opts, statuses, lock),
                    group_key=release.full_name,
                )
            )
        jobs.sort(key=lambda j: j.name)

        summarizer = pool.LogSummarizerOptions(work_description=WORK_DESCRIPTION)
        if destination is not None:
            summarizer.footer = f"Check status in ArgoCD at {self._argocd.destination_url(destination)}"

        group_summarizer = pool.GroupSummarizerOptions(
            enabled=self._status_publisher is not None,
            callback=self._status_publisher,
        )

        pool.Pool(
            jobs,
            pool.Options(
                num_workers=max_parallel,
                stop_processing_on_error=False,
                summarizer=summarizer,
                group_summarizer=group_summarizer,
                metrics=pool.MetricsOptions(enabled=True, pool_name=METRICS_POOL_NAME),
            ),
        ).execute()

        return statuses

    def _sync_job(
        self,
        release: Release,
        options: SyncOptions,
        statuses: dict[Release, Status],
        lock: threading.Lock,
    ) -> Callable[[pool.StatusReporter], None]:
        def run(reporter: pool.StatusReporter) -> None:
            opts = replace(options, status_reporter=reporter)
            self._argocd.sync_release(release, replace(opts, wait_healthy=False))

            wait_error: ArgoCDError | None = None
            if opts.wait_healthy and opts.wait_healthy_timeout > 0:
                reporter.update(pool.Status(f"Waiting healthy {application_name(release)}"))
                try:
                    self._argocd.wait_healthy(application_name(release), opts.wait_healthy_timeout)
                except ArgoCDError as e:
                    wait_error = e
            else:
                logger.debug(f"Not waiting for {release.full_name} to be healthy")

            try:
                status = self._status_reader.status(release)
            except ArgoCDError as e:
                if wait_error is not None:
                    raise ArgoCDError(
                        f"error reading status of {release.full_name} after it failed to become healthy: {e.message}",
                        details=wait_error.details,
                    ) from e
                logger.warning(f"error reading status of {release.full_name}: {e}")
                return

            reporter.update(pool.Status(status.headline()))
            with lock:
                statuses[release] = status

            if wait_error is not None:
                raise ArgoCDError(
                    f"timed out waiting for healthy ({status.headline()})",
                    details=wait_error.details,
                ) from wait_error

        return run


def _single_destination(releases: Sequence[Release]) -> Destination | None:
    """The destination shared by every release, or None if there is more than one."""
    names = {r.destination.name for r in releases}
    if len(names) != 1:
        return None
    return releases[0].destination
