"""Types shared by the release and deploy pipelines."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class VersionPair:
    """Chart versions before and after a release.

    Attributes:
        prior_version: Latest version before the release; empty on first publish
        new_version: Version that was published
    """

    prior_version: str
    new_version: str

    def __str__(self) -> str:
        return f"{self.prior_version or '<none>'} -> {self.new_version}"
