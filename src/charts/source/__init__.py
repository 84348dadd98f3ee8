"""Chart source directory model: charts, manifests and their dependencies."""

from .chart import Chart, ChartDependency, ChartManifest, next_version
from .charts_dir import ChartsDir
from .constants import (
    AUTORELEASE_CONFIG_FILE,
    CHART_MANIFEST_FILE,
    INITIAL_CHART_VERSION,
    LOCAL_REPOSITORY_PREFIX,
)

__all__ = [
    "Chart",
    "ChartDependency",
    "ChartManifest",
    "ChartsDir",
    "next_version",
    "AUTORELEASE_CONFIG_FILE",
    "CHART_MANIFEST_FILE",
    "INITIAL_CHART_VERSION",
    "LOCAL_REPOSITORY_PREFIX",
]
