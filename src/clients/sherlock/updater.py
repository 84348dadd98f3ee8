"""Fan-out of new chart versions to one or more registries."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Protocol

from loguru import logger

from src.utils.errors import RegistryError

if TYPE_CHECKING:
    from src.charts.releaser.types import VersionPair
    from src.state import Release


class ChartVersionUpdater(Protocol):
    """The registry operations the release and deploy pipelines depend on."""

    def report_new_chart_version(
        self, chart: str, new_version: str, last_version: str, description: str
    ) -> None: ...

    def update_for_new_chart_version(
        self,
        chart: str,
        new_version: str,
        last_version: str,
        description: str,
        chart_releases: Iterable[str] = (),
    ) -> list[str]: ...


class DeployedVersionUpdater:
    """Sends chart version updates to hard-fail and soft-fail registries.

    Hard-fail updaters are called in order and the first error aborts the
    operation. Soft-fail updaters are called afterwards; their errors are
    logged at debug level and otherwise ignored.

    Args:
        updaters: Hard-fail updaters
        soft_fail_updaters: Soft-fail updaters
    """

    def __init__(
        self,
        updaters: Sequence[ChartVersionUpdater] = (),
        soft_fail_updaters: Sequence[ChartVersionUpdater] = (),
    ) -> None:
        self.updaters = list(updaters)
        self.soft_fail_updaters = list(soft_fail_updaters)

    def report_new_chart_version(
        self, chart: str, versions: VersionPair, description: str
    ) -> None:
        """Report a published chart version to every registry.

        Raises:
            RegistryError: If a hard-fail updater fails
        """
        for index, updater in enumerate(self.updaters):
            try:
                updater.report_new_chart_version(
                    chart, versions.new_version, versions.prior_version, description
                )
            except RegistryError as e:
                raise RegistryError(
                    f"error reporting {chart}/{versions.new_version} on registry updater {index}: {e}",
                    details=e.details,
                ) from e

        for index, updater in enumerate(self.soft_fail_updaters):
            try:
                updater.report_new_chart_version(
                    chart, versions.new_version, versions.prior_version, description
                )
            except RegistryError as e:
                logger.debug(
                    f"error reporting {chart}/{versions.new_version} on soft-fail registry updater {index}: {e}"
                )

    def update_chart_release_versions(
        self,
        chart: str,
        releases: Sequence[Release],
        versions: VersionPair,
        description: str,
    ) -> None:
        """Point the given chart releases at a newly published chart version.

        Raises:
            RegistryError: If a hard-fail updater fails
        """
        names = [r.full_name for r in releases]

        for index, updater in enumerate(self.updaters):
            try:
                updater.update_for_new_chart_version(
                    chart, versions.new_version, versions.prior_version, description, names
                )
            except RegistryError as e:
                raise RegistryError(
                    f"autorelease error on registry updater {index}: {e}", details=e.details
                ) from e

        for index, updater in enumerate(self.soft_fail_updaters):
            try:
                updater.update_for_new_chart_version(
                    chart, versions.new_version, versions.prior_version, description, names
                )
            except RegistryError as e:
                logger.debug(f"autorelease error on soft-fail registry updater {index}: {e}")
