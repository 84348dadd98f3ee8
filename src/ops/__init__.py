"""Operations on deployed releases: sync and status."""

from .status import Status, StatusReader
from .sync import Syncer

__all__ = ["Status", "StatusReader", "Syncer"]
