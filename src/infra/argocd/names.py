"""Naming conventions for the ArgoCD applications of a release."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.state import Destination, Release

APPLICATION_NAMESPACE = "argocd"
CONFIGS_NAME = "configs"


def application_name(release: Release) -> str:
    """Primary application of a release, e.g. ``cromwell-dev``."""
    return f"{release.name}-{release.destination.name}"


def legacy_configs_application_name(release: Release) -> str:
    """Legacy configs application of a release, e.g. ``cromwell-configs-dev``."""
    return f"{release.name}-{CONFIGS_NAME}-{release.destination.name}"


def release_selector(release: Release) -> dict[str, str]:
    """Labels selecting every application that belongs to a release."""
    if release.is_app_release:
        return {"app": release.name, "env": release.destination.name}
    return {"release": release.name, "cluster": release.destination.name, "type": "cluster"}


def destination_selector(destination: Destination) -> dict[str, str]:
    """Labels selecting every application in a destination."""
    if destination.is_environment():
        return {"env": destination.name}
    return {"type": "cluster", "cluster": destination.name}


def join_selector(labels: Mapping[str, str]) -> str:
    """Join labels into a selector string, e.g. ``{"c": "d", "a": "b"}`` -> ``a=b,c=d``."""
    return ",".join(sorted(f"{k}={v}" for k, v in labels.items()))
