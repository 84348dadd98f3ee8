"""Exception types shared across the chart release tooling."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.charts.releaser.types import VersionPair


class ChartReleaseError(Exception):
    """Raised when a chart release operation fails."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ChangedFilesError(ChartReleaseError):
    """Raised when a changed-files list cannot be parsed."""


class ChartError(ChartReleaseError):
    """Raised when a chart manifest cannot be read, written or packaged."""


class CycleDetectedError(ChartReleaseError):
    """Raised when the chart dependency graph contains a cycle."""


class RegistryError(ChartReleaseError):
    """Raised when a request to the version registry fails."""


class ArgoCDError(ChartReleaseError):
    """Raised when an argocd command fails."""


class ReleaseError(ChartReleaseError):
    """Raised when the release pipeline fails after charts were published.

    Attributes:
        published_versions: Versions that were published before the failure
    """

    def __init__(
        self,
        message: str,
        published_versions: dict[str, VersionPair] | None = None,
        details: str | None = None,
    ):
        super().__init__(message, details)
        self.published_versions = published_versions or {}


class ToolNotFoundError(ChartReleaseError):
    """Raised when an external program (helm, helm-docs, argocd) cannot be run."""
