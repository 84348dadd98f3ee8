"""Chart source directory constants."""

# Manifest file at the root of every chart directory
CHART_MANIFEST_FILE = "Chart.yaml"

# Version assigned to a chart that has never been published
INITIAL_CHART_VERSION = "0.1.0"

# Repository prefix marking a dependency on a sibling chart directory
LOCAL_REPOSITORY_PREFIX = "file://.."

# Per-chart autorelease policy file
AUTORELEASE_CONFIG_FILE = ".autorelease.yaml"
