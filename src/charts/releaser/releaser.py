"""Chart release orchestration.

Releasing a chart also releases every chart downstream of it: if ``bar``
depends on ``foo``, releasing ``foo`` publishes new versions of both, with
``bar`` pinned to the new ``foo``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from src.utils.errors import ChartError, RegistryError, ReleaseError

from .types import VersionPair

if TYPE_CHECKING:
    from src.charts.publish import Publisher
    from src.charts.source import ChartsDir
    from src.clients.sherlock import DeployedVersionUpdater


class ChartReleaser:
    """Bumps, packages, publishes and registers charts.

    Args:
        charts_dir: Chart source directory
        publisher: Publisher for the destination chart repository
        updater: Registries new versions are reported to
    """

    def __init__(
        self,
        charts_dir: ChartsDir,
        publisher: Publisher,
        updater: DeployedVersionUpdater,
    ) -> None:
        self._charts_dir = charts_dir
        self._publisher = publisher
        self._updater = updater

    def release(self, chart_names: list[str], description: str) -> dict[str, VersionPair]:
        """Release the given charts and their downstream dependents.

        Args:
            chart_names: Charts to release, e.g. ``["foo"]``
            description: Change description recorded with each new version

        Returns:
            Published versions keyed by chart name, inputs first

        Raises:
            ChartError: If a chart is missing or a manifest or tool step fails
            ReleaseError: If registering the published versions fails; carries
                the versions that were already published
        """
        for name in chart_names:
            if not self._charts_dir.exists(name):
                raise ChartError(f"chart {name} does not exist in source directory")

        charts = self._charts_dir.with_transitive_dependents(
            self._charts_dir.get_charts(*chart_names)
        )
        names = [c.name for c in charts]
        logger.info(f"{len(names)} charts will be published: {', '.join(names)}")

        versions = self._bump_chart_versions(names)

        # helm dependency update on the charts plus their dependency closure, in topological order
        self._charts_dir.recursively_update_dependencies(*charts)

        for chart in charts:
            chart.generate_docs()
            chart.package_chart(self._publisher.chart_dir)

        count = self._publisher.publish()
        logger.info(f"{count} charts were uploaded to the repository")

        self._report_new_versions(versions, description)
        return versions

    def _bump_chart_versions(self, names: list[str]) -> dict[str, VersionPair]:
        versions: dict[str, VersionPair] = {}
        for name in names:
            chart = self._charts_dir.get_chart(name)
            last_version = self._publisher.index.most_recent_version(name)
            new_version = chart.bump_chart_version(last_version)
            self._charts_dir.update_dependent_version_constraints(chart, new_version)
            versions[name] = VersionPair(prior_version=last_version, new_version=new_version)
        return versions

    def _report_new_versions(self, versions: dict[str, VersionPair], description: str) -> None:
        for name, pair in versions.items():
            try:
                self._updater.report_new_chart_version(name, pair, description)
            except RegistryError as e:
                raise ReleaseError(
                    f"error reporting new version of chart {name}: {e.message}",
                    published_versions=versions,
                    details=e.details,
                ) from e
        logger.info(f"{len(versions)} new chart versions were reported to Sherlock")
