"""Client for Sherlock, the chart version registry."""

from .auth import GHA_OIDC_HEADER, SherlockAuth
from .client import SherlockClient
from .state_loader import SherlockStateLoader
from .updater import ChartVersionUpdater, DeployedVersionUpdater

__all__ = [
    "GHA_OIDC_HEADER",
    "SherlockAuth",
    "SherlockClient",
    "SherlockStateLoader",
    "ChartVersionUpdater",
    "DeployedVersionUpdater",
]
