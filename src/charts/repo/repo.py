"""Chart repository storage.

A repository holds packaged chart archives under ``charts/`` and an
``index.yaml`` at its root. Publishers lock the repository while they
upload so concurrent releases cannot clobber each other's index.
"""

from __future__ import annotations

import os
import shutil
from abc import ABC, abstractmethod
from pathlib import Path

from loguru import logger

from src.utils.errors import ChartError

INDEX_FILE = "index.yaml"
CHARTS_DIR = "charts"
LOCK_FILE = ".repo.lock"


class Repo(ABC):
    """Abstract chart repository."""

    @property
    @abstractmethod
    def repo_url(self) -> str:
        """Public URL charts in this repository are served from."""

    @abstractmethod
    def lock(self) -> None:
        """Acquire the repository lock, failing if it is already held."""

    @abstractmethod
    def unlock(self) -> None:
        """Release the repository lock."""

    @abstractmethod
    def has_index(self) -> bool:
        """Return True if the repository has an index file."""

    @abstractmethod
    def download_index(self, destination: Path) -> None:
        """Copy the repository index to a local file."""

    @abstractmethod
    def upload_index(self, source: Path) -> None:
        """Replace the repository index with a local file."""

    @abstractmethod
    def upload_chart(self, source: Path) -> None:
        """Upload a packaged chart archive."""


class LocalRepo(Repo):
    """Chart repository kept in a local (or mounted) directory.

    Args:
        directory: Repository root directory, created if missing
        url: URL the directory is served from; defaults to a file:// URL
    """

    def __init__(self, directory: Path, url: str | None = None) -> None:
        self._directory = Path(directory)
        self._url = (url or self._directory.resolve().as_uri()).rstrip("/")
        self._directory.mkdir(parents=True, exist_ok=True)

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def repo_url(self) -> str:
        return self._url

    def lock(self) -> None:
        lock_file = self._directory / LOCK_FILE
        try:
            fd = os.open(lock_file, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError as e:
            raise ChartError(
                f"repository {self._url} is locked by another process",
                details=f"Remove {lock_file} if no other release is running.",
            ) from e
        os.close(fd)
        logger.debug(f"Locked chart repository {self._url}")

    def unlock(self) -> None:
        (self._directory / LOCK_FILE).unlink(missing_ok=True)
        logger.debug(f"Unlocked chart repository {self._url}")

    def has_index(self) -> bool:
        return (self._directory / INDEX_FILE).is_file()

    def download_index(self, destination: Path) -> None:
        shutil.copyfile(self._directory / INDEX_FILE, destination)

    def upload_index(self, source: Path) -> None:
        # copy then rename so readers never see a partial index
        temp_path = self._directory / f"{INDEX_FILE}.tmp"
        shutil.copyfile(source, temp_path)
        temp_path.replace(self._directory / INDEX_FILE)

    def upload_chart(self, source: Path) -> None:
        charts_dir = self._directory / CHARTS_DIR
        charts_dir.mkdir(exist_ok=True)
        shutil.copyfile(source, charts_dir / Path(source).name)
