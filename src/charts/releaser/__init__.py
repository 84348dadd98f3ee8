"""Chart release pipeline."""

from .post_update_syncer import PostUpdateSyncer
from .releaser import ChartReleaser
from .types import VersionPair

__all__ = ["ChartReleaser", "PostUpdateSyncer", "VersionPair"]
