"""Map a list of changed files in the chart monorepo to the charts to publish.

The rules are:

* Changes to ``charts/<chart>/...`` or ``values/(app|cluster)/<chart>...``
  publish the affected chart.
* Changes to ``values/app/global...`` publish the charts of every
  environment release; ``values/cluster/global...`` does the same for
  cluster releases.
* Changes to ``helmfile.yaml`` publish the chart of every release.
* Charts that transitively depend on any chart above are published too.
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from src.state import filters
from src.utils.errors import ChangedFilesError

if TYPE_CHECKING:
    from src.charts.source import ChartsDir
    from src.state import Filter, Release, StateLoader

_CHART_PATH = re.compile(r"^charts/[^/]")
_GLOBAL_VALUES_PATH = re.compile(r"^values/(app|cluster)/global")
_VALUES_PATH = re.compile(r"^values/[^/]")
_HELMFILE_PATH = re.compile(r"^helmfile\.yaml$")


@dataclass
class _GlobalFileMatches:
    include_env_releases: bool = False
    include_cluster_releases: bool = False
    include_all_releases: bool = False

    def to_release_filter(self) -> Filter[Release]:
        if self.include_all_releases:
            return filters.releases.any()

        # start by matching nothing
        release_filter = filters.releases.any().negate()
        if self.include_env_releases:
            release_filter = release_filter.or_(
                filters.releases.destination_matches(filters.destinations.is_environment())
            )
        if self.include_cluster_releases:
            release_filter = release_filter.or_(
                filters.releases.destination_matches(filters.destinations.is_cluster())
            )
        return release_filter


def _path_index(path: str, index: int) -> str:
    parts = path.split("/")
    return parts[index] if index < len(parts) else ""


def parse_changed_list(input_file: Path) -> list[str]:
    """Read a newline-separated list of repo-relative paths.

    Blank lines are skipped and surrounding whitespace is stripped.

    Raises:
        ChangedFilesError: If the file cannot be read or contains an absolute path
    """
    try:
        content = Path(input_file).read_text(encoding="utf-8")
    except OSError as e:
        raise ChangedFilesError(f"error reading changed list file {input_file}: {e}") from e

    paths: list[str] = []
    for line_number, line in enumerate(content.splitlines(), start=1):
        path = line.strip()
        if not path:
            continue
        if posixpath.isabs(path):
            raise ChangedFilesError(
                f"changed list file {input_file} contains absolute path but all paths "
                f"should be relative to the repo root (line {line_number}): {path}"
            )
        paths.append(path)
    return paths


class ChangedFiles:
    """Identify charts impacted by a set of changed files.

    Args:
        charts_dir: Chart source directory
        state_loader: Source of the release state used for global-values fan-out
    """

    def __init__(self, charts_dir: ChartsDir, state_loader: StateLoader) -> None:
        self._charts_dir = charts_dir
        self._state_loader = state_loader

    def chart_list(self, input_file: Path) -> list[str]:
        """Return the sorted names of impacted charts that exist in the source directory.

        Raises:
            ChangedFilesError: If the changed files list is invalid
        """
        impacted = self._identify_impacted_charts(input_file)
        return sorted(name for name in impacted if self._charts_dir.exists(name))

    def release_filter(self, input_file: Path) -> Filter[Release]:
        """Return a filter matching every release that uses an impacted chart.

        Unlike ``chart_list`` this includes charts that are not in the source
        directory, so releases of externally-published charts still match.
        """
        impacted = self._identify_impacted_charts(input_file)
        return filters.releases.has_chart_name(*sorted(impacted))

    def _identify_impacted_charts(self, input_file: Path) -> set[str]:
        try:
            changed = parse_changed_list(input_file)
        except ChangedFilesError as e:
            raise ChangedFilesError(f"error parsing {input_file}: {e}") from e

        matches = _GlobalFileMatches()
        chart_names: set[str] = set()

        for changed_file in changed:
            cleaned = posixpath.normpath(changed_file)

            if _CHART_PATH.match(cleaned):
                chart_names.add(_path_index(cleaned, 1))
            elif _GLOBAL_VALUES_PATH.match(cleaned):
                if _path_index(cleaned, 1) == "app":
                    matches.include_env_releases = True
                else:
                    matches.include_cluster_releases = True
            elif _VALUES_PATH.match(cleaned):
                # strip extensions like .yaml and .yaml.gotmpl
                component = _path_index(cleaned, 2).split(".")[0]
                if component:
                    chart_names.add(component)
            elif _HELMFILE_PATH.match(cleaned):
                matches.include_all_releases = True

        release_filter = matches.to_release_filter()
        state = self._state_loader.load()
        for release in state.releases().filter(release_filter):
            chart_names.add(release.chart_name)
        logger.debug(f"Releases matching {release_filter} contributed their charts")

        existing = [name for name in sorted(chart_names) if self._charts_dir.exists(name)]
        charts = self._charts_dir.get_charts(*existing)
        for chart in self._charts_dir.with_transitive_dependents(charts):
            chart_names.add(chart.name)

        return chart_names
