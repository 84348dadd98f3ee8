"""chartrelease configuration."""

from .config_loader import CONFIG_FILE, default_config_path, load_config
from .models import (
    ArgoCDConfig,
    ChartReleaseConfig,
    ChartsConfig,
    PublishConfig,
    SherlockConfig,
    SyncConfig,
)

__all__ = [
    "ArgoCDConfig",
    "ChartReleaseConfig",
    "ChartsConfig",
    "CONFIG_FILE",
    "PublishConfig",
    "SherlockConfig",
    "SyncConfig",
    "default_config_path",
    "load_config",
]
