"""Per-chart autorelease configuration.

A chart may contain an ``.autorelease.yaml`` controlling which chart
releases are advanced when a new version of the chart is published::

    enabled: true
    sherlock:
      chartReleasesToUseLatest:
        - agora-dev
        - agora-staging

Without the file (or with an empty list) the chart's ``<chart>-dev``
release is advanced if it exists.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.charts.source import AUTORELEASE_CONFIG_FILE

if TYPE_CHECKING:
    from src.charts.source import Chart, ChartsDir
    from src.state import Release, State

DEFAULT_TARGET_ENVIRONMENT = "dev"


class SherlockAutoreleaseConfig(BaseModel):
    """Registry-related autorelease options."""

    model_config = ConfigDict(populate_by_name=True)

    chart_releases_to_use_latest: list[str] = Field(
        default_factory=list, alias="chartReleasesToUseLatest"
    )


class AutoreleaseConfig(BaseModel):
    """Parsed ``.autorelease.yaml``."""

    enabled: bool = True
    sherlock: SherlockAutoreleaseConfig = Field(default_factory=SherlockAutoreleaseConfig)


def load_autorelease_config(chart: Chart) -> AutoreleaseConfig:
    """Load a chart's autorelease config, falling back to defaults on any error.

    Problems reading or parsing the file are logged as warnings and never
    raised.
    """
    config_file = chart.path / AUTORELEASE_CONFIG_FILE
    if not config_file.exists():
        return AutoreleaseConfig()

    try:
        content = config_file.read_text(encoding="utf-8")
    except OSError as e:
        logger.warning(
            f"unexpected error reading {config_file}: {e}, falling back to default config"
        )
        return AutoreleaseConfig()

    try:
        data = yaml.safe_load(content) or {}
        return AutoreleaseConfig.model_validate(data)
    except (yaml.YAMLError, ValidationError) as e:
        logger.warning(
            f"unexpected error parsing {config_file}: {e}, falling back to default config"
        )
        return AutoreleaseConfig()


class ConfigLoader:
    """Resolves the chart releases to advance when a chart is published.

    The release map is captured once at construction time and not
    refreshed afterwards.
    """

    def __init__(self, charts_dir: ChartsDir, state: State) -> None:
        self._charts_dir = charts_dir
        self._releases: dict[str, Release] = {
            r.full_name: r for r in state.releases().all()
        }

    def find_releases_to_update(self, chart_name: str) -> list[Release]:
        """Return the releases that should run the newly published chart version.

        Args:
            chart_name: Name of a chart in the source directory

        Returns:
            Releases that exist in state, in configured order

        Raises:
            ChartError: If the chart does not exist in the source directory
        """
        chart = self._charts_dir.get_chart(chart_name)
        config = load_autorelease_config(chart)

        if not config.enabled:
            logger.warning(
                f"autorelease disabled for chart {chart_name}, won't attempt a dev deploy"
            )
            return []

        explicit = config.sherlock.chart_releases_to_use_latest
        names = explicit or [f"{chart_name}-{DEFAULT_TARGET_ENVIRONMENT}"]

        releases: list[Release] = []
        for name in names:
            release = self._releases.get(name)
            if release is None:
                message = f"chart release {name} not found in state, won't try to update"
                if explicit:
                    logger.warning(message)
                else:
                    logger.debug(message)
                continue
            releases.append(release)
        return releases
