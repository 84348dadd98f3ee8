"""Deployment state: environments, clusters, releases and filters over them."""

from . import filters
from .filters import Filter
from .model import (
    AutoDelete,
    Cluster,
    Destination,
    DestinationType,
    Environment,
    Lifecycle,
    Release,
)
from .state import State, StateLoader, StaticStateLoader

__all__ = [
    "filters",
    "Filter",
    "AutoDelete",
    "Cluster",
    "Destination",
    "DestinationType",
    "Environment",
    "Lifecycle",
    "Release",
    "State",
    "StateLoader",
    "StaticStateLoader",
]
