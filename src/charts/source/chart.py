"""A single chart in the chart source directory.

The chart manifest (Chart.yaml) is the only on-disk state a Chart owns.
Every manifest write is followed by a reload and a check that the write
took effect.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.charts import semver
from src.utils.errors import ChartError

from .constants import (
    CHART_MANIFEST_FILE,
    INITIAL_CHART_VERSION,
    LOCAL_REPOSITORY_PREFIX,
)

if TYPE_CHECKING:
    from src.infra.shell import CommandResult, ShellCommands


class ChartDependency(BaseModel):
    """A dependency entry in a chart manifest."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: str
    repository: str = ""
    version: str = ""

    def is_local(self) -> bool:
        return self.repository.startswith(LOCAL_REPOSITORY_PREFIX)


class ChartManifest(BaseModel):
    """The fields of Chart.yaml that release tooling reads."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: str
    version: str = ""
    dependencies: list[ChartDependency] = Field(default_factory=list)


def next_version(latest_published_version: str, source_version: str) -> str:
    """Choose the version to publish a chart at.

    The next version is a minor bump of the latest published version. A
    valid version already on disk wins if it is higher, so developers can
    force a major bump by editing Chart.yaml.

    Args:
        latest_published_version: Most recent version in the chart repository (may be empty)
        source_version: Version currently in the chart's manifest

    Returns:
        Version to write to the manifest
    """
    try:
        bumped = semver.minor_bump(latest_published_version)
    except ValueError:
        if semver.is_valid(source_version):
            return source_version
        return INITIAL_CHART_VERSION

    if not semver.is_valid(source_version):
        return bumped
    if semver.compare(source_version, bumped) > 0:
        return source_version
    return bumped


class Chart:
    """A chart directory containing a Chart.yaml manifest."""

    def __init__(self, chart_dir: Path, shell: ShellCommands) -> None:
        """Load the chart in ``chart_dir``.

        Args:
            chart_dir: Path to the chart directory
            shell: Shell commands used for helm and helm-docs invocations

        Raises:
            ChartError: If the manifest is missing or invalid
        """
        self._path = Path(chart_dir)
        self._shell = shell
        self._manifest = self._load_manifest()

    # =========================================================================
    # Attributes
    # =========================================================================

    @property
    def name(self) -> str:
        return self._manifest.name

    @property
    def path(self) -> Path:
        return self._path

    @property
    def manifest_file(self) -> Path:
        return self._path / CHART_MANIFEST_FILE

    @property
    def manifest_version(self) -> str:
        return self._manifest.version

    @property
    def dependencies(self) -> list[ChartDependency]:
        return list(self._manifest.dependencies)

    @property
    def local_dependencies(self) -> list[str]:
        """Names of dependencies served from sibling chart directories, sorted."""
        return sorted(d.name for d in self._manifest.dependencies if d.is_local())

    # =========================================================================
    # Manifest Mutation
    # =========================================================================

    def bump_chart_version(self, latest_published_version: str) -> str:
        """Write the next chart version to the manifest.

        Args:
            latest_published_version: Latest version in the chart repository, or ""

        Returns:
            The new chart version

        Raises:
            ChartError: If the manifest cannot be updated
        """
        version = next_version(latest_published_version, self.manifest_version)
        logger.debug(
            f"Bumping {self.name} from {self.manifest_version or '<none>'} to {version} "
            f"(latest published: {latest_published_version or '<none>'})"
        )

        data = self._read_raw_manifest()
        data["version"] = version
        self._write_raw_manifest(data)

        self._manifest = self._load_manifest()
        if self._manifest.version != version:
            raise ChartError(
                f"error updating {self.name} chart version to {version} in "
                f"{self.manifest_file}: version is still {self._manifest.version} after update"
            )
        return version

    def set_dependency_version(self, dependency_name: str, new_version: str) -> None:
        """Pin a dependency of this chart to a new version.

        Raises:
            ChartError: If the chart has no such dependency or the write fails
        """
        data = self._read_raw_manifest()
        entries = data.get("dependencies") or []
        entry = next((d for d in entries if d.get("name") == dependency_name), None)
        if entry is None:
            raise ChartError(
                f"error updating {self.name} dependency {dependency_name}: "
                f"dependency not found in {self.manifest_file}"
            )

        entry["version"] = new_version
        self._write_raw_manifest(data)

        self._manifest = self._load_manifest()
        reloaded = next(
            (d for d in self._manifest.dependencies if d.name == dependency_name), None
        )
        if reloaded is None or reloaded.version != new_version:
            actual = reloaded.version if reloaded else "<missing>"
            raise ChartError(
                f"error updating {self.name} dependency {dependency_name} to {new_version} "
                f"in {self.manifest_file}: version is still {actual} after update"
            )

    # =========================================================================
    # Tool Invocations
    # =========================================================================

    def update_dependencies(self) -> None:
        """Rebuild the chart's vendored dependencies."""
        self._check(
            self._shell.helm.dependency_update(self._path), "updating dependencies for"
        )

    def package_chart(self, destination: Path) -> None:
        """Package the chart into a .tgz archive under ``destination``."""
        self._check(self._shell.helm.package(self._path, destination), "packaging")

    def generate_docs(self) -> None:
        """Regenerate the chart's README."""
        self._check(self._shell.helm_docs.generate(self._path), "generating docs for")

    # =========================================================================
    # Internals
    # =========================================================================

    def _check(self, result: CommandResult, action: str) -> None:
        if not result.success:
            raise ChartError(f"error {action} chart {self.name}", details=result.output)

    def _read_raw_manifest(self) -> dict[str, Any]:
        try:
            with open(self.manifest_file) as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ChartError(f"error reading chart manifest {self.manifest_file}: {e}") from e
        if not isinstance(data, dict):
            raise ChartError(f"chart manifest {self.manifest_file} is not a YAML mapping")
        return data

    def _write_raw_manifest(self, data: dict[str, Any]) -> None:
        temp_path = self.manifest_file.with_suffix(".tmp")
        try:
            with open(temp_path, "w") as f:
                yaml.safe_dump(data, f, sort_keys=False, default_flow_style=False)
            temp_path.replace(self.manifest_file)
        except OSError as e:
            raise ChartError(f"error writing chart manifest {self.manifest_file}: {e}") from e

    def _load_manifest(self) -> ChartManifest:
        data = self._read_raw_manifest()
        try:
            return ChartManifest(**data)
        except ValidationError as e:
            raise ChartError(f"invalid chart manifest {self.manifest_file}: {e}") from e

    def __repr__(self) -> str:
        return f"Chart({self.name}, {self._path})"
