"""Read-only view of a Helm repository index (index.yaml)."""

from __future__ import annotations

from pathlib import Path

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.charts import semver
from src.utils.errors import ChartError


class IndexEntry(BaseModel):
    """One published version of a chart."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    version: str = ""


class Index(BaseModel):
    """Published chart versions, keyed by chart name."""

    entries: dict[str, list[IndexEntry]] = Field(default_factory=dict)

    @classmethod
    def load_from_file(cls, path: Path) -> Index:
        """Parse an index file.

        Raises:
            ChartError: If the file cannot be read or parsed
        """
        try:
            content = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise ChartError(f"error reading index file {path}: {e}") from e
        try:
            data = yaml.safe_load(content) or {}
            return cls.model_validate({"entries": data.get("entries") or {}})
        except (yaml.YAMLError, ValidationError, AttributeError) as e:
            raise ChartError(f"error parsing index file {path}: {e}") from e

    def versions(self, chart_name: str) -> list[str]:
        """Valid semantic versions published for a chart, in index order."""
        if not self.entries:
            logger.warning(f"index is empty, can't look up chart version for {chart_name}")
            return []

        entries = self.entries.get(chart_name)
        if entries is None:
            logger.debug(f"index does not have an entry for chart {chart_name}")
            return []

        versions: list[str] = []
        for entry in entries:
            if not semver.is_valid(entry.version):
                logger.warning(
                    f"index has invalid semver {entry.version!r} for chart {chart_name}, ignoring"
                )
                continue
            versions.append(entry.version)
        return versions

    def has_version(self, chart_name: str, version: str) -> bool:
        return version in self.versions(chart_name)

    def most_recent_version(self, chart_name: str) -> str:
        """Highest published version of a chart, or "" if it was never published."""
        return semver.max_version(self.versions(chart_name))
