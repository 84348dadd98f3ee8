"""The chart source directory: every chart plus their dependency graph."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from src.charts.dependency import DependencyGraph
from src.utils.errors import ChartError

from .chart import Chart
from .constants import CHART_MANIFEST_FILE

if TYPE_CHECKING:
    from src.infra.shell import ShellCommands


class ChartsDir:
    """Collection of the charts in a source directory, keyed by name.

    Local dependencies that do not resolve to a chart in the directory
    are dropped from the dependency graph with a warning.
    """

    def __init__(self, source_dir: Path, shell: ShellCommands) -> None:
        """Load every ``*/Chart.yaml`` under ``source_dir``.

        Raises:
            ChartError: If a chart manifest cannot be loaded
            CycleDetectedError: If local chart dependencies form a cycle
        """
        self._source_dir = Path(source_dir)
        self._charts = self._load_charts(shell)
        self._graph = self._build_dependency_graph()

    @property
    def source_dir(self) -> Path:
        return self._source_dir

    @property
    def graph(self) -> DependencyGraph:
        return self._graph

    def chart_names(self) -> list[str]:
        return sorted(self._charts)

    def exists(self, name: str) -> bool:
        return name in self._charts

    def get_chart(self, name: str) -> Chart:
        """Return the named chart.

        Raises:
            ChartError: If the chart does not exist in the source directory
        """
        chart = self._charts.get(name)
        if chart is None:
            raise ChartError(f"chart {name} does not exist in source directory {self._source_dir}")
        return chart

    def get_charts(self, *names: str) -> list[Chart]:
        return [self.get_chart(name) for name in names]

    def with_transitive_dependents(self, charts: list[Chart]) -> list[Chart]:
        """Return the given charts followed by every chart that depends on them."""
        names = self._graph.with_transitive_dependents(*(c.name for c in charts))
        added = len(names) - len(charts)
        if added > 0:
            logger.info(f"Identified {added} additional downstream charts to publish")
        return self.get_charts(*names)

    def recursively_update_dependencies(self, *charts: Chart) -> None:
        """Run dependency updates for the charts and their whole dependency closure.

        Dependencies are updated before the charts that depend on them.
        """
        names = self._graph.find_transitive_dependencies(*(c.name for c in charts))
        for chart in self.get_charts(*names):
            logger.debug(f"Updating dependencies for chart {chart.name}")
            chart.update_dependencies()

    def update_dependent_version_constraints(self, chart: Chart, new_version: str) -> None:
        """Pin every direct dependent of ``chart`` to ``new_version``."""
        for dependent in self._graph.get_dependents(chart.name):
            logger.debug(f"Setting {chart.name} dependency version to {new_version} in {dependent}")
            self._charts[dependent].set_dependency_version(chart.name, new_version)

    # =========================================================================
    # Loading
    # =========================================================================

    def _load_charts(self, shell: ShellCommands) -> dict[str, Chart]:
        charts: dict[str, Chart] = {}
        for manifest in sorted(self._source_dir.glob(f"*/{CHART_MANIFEST_FILE}")):
            chart = Chart(manifest.parent, shell)
            charts[chart.name] = chart
        logger.debug(f"Loaded {len(charts)} charts from {self._source_dir}")
        return charts

    def _build_dependency_graph(self) -> DependencyGraph:
        dependencies: dict[str, list[str]] = {}
        for name, chart in self._charts.items():
            resolved = []
            for dep in chart.local_dependencies:
                if dep in self._charts:
                    resolved.append(dep)
                else:
                    logger.warning(
                        f"chart {name} dependency {dep} is not in source dir, ignoring"
                    )
            dependencies[name] = resolved
        return DependencyGraph(dependencies)
