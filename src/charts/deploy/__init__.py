"""Deploy pipeline: registry updates and ArgoCD syncs for released charts."""

from .config import AutoreleaseConfig, ConfigLoader, load_autorelease_config
from .deployer import Deployer, DeployOptions

__all__ = [
    "AutoreleaseConfig",
    "ConfigLoader",
    "Deployer",
    "DeployOptions",
    "load_autorelease_config",
]
