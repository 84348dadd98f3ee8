"""Stage packaged charts and upload them to a chart repository.

Usage:
    publisher = Publisher(repo, shell)
    chart.package_chart(publisher.chart_dir)
    count = publisher.publish()

A publisher holds the repository lock from construction until ``publish``
or ``close``, so it should always be closed (it is a context manager).
"""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

import yaml
from loguru import logger

from src.charts.repo import CHARTS_DIR, INDEX_FILE, Index, Repo
from src.utils.errors import ChartError, ChartReleaseError

if TYPE_CHECKING:
    from src.infra.shell import ShellCommands

PREV_INDEX_FILE = "prev-index.yaml"


class Publisher:
    """Publishes charts packaged into a staging directory.

    Args:
        repo: Destination chart repository
        shell: Shell commands used to run ``helm repo index``
        staging_dir: Parent directory for staging files; a temp dir by default
        dry_run: Build the index but do not lock or upload anything
    """

    def __init__(
        self,
        repo: Repo,
        shell: ShellCommands,
        staging_dir: Path | None = None,
        dry_run: bool = False,
    ) -> None:
        self._repo = repo
        self._shell = shell
        self._dry_run = dry_run
        self._closed = False

        if staging_dir is not None:
            Path(staging_dir).mkdir(parents=True, exist_ok=True)
        self._root = Path(tempfile.mkdtemp(prefix="chart-publisher-", dir=staging_dir))
        self._chart_dir = self._root / CHARTS_DIR
        self._chart_dir.mkdir()
        self._prev_index_file = self._root / PREV_INDEX_FILE

        if dry_run:
            logger.warning("not locking repo, this is a dry run")
        else:
            self._repo.lock()

        try:
            self._index = self._initialize_index()
        except ChartReleaseError:
            self.close()
            raise

    @property
    def chart_dir(self) -> Path:
        """Directory charts should be packaged into."""
        return self._chart_dir

    @property
    def index(self) -> Index:
        """Repository index as it was before this publisher was created."""
        return self._index

    def publish(self) -> int:
        """Index and upload every chart packaged into ``chart_dir``.

        The publisher is closed afterwards, whether or not the upload succeeded.

        Returns:
            Number of charts uploaded (0 for a dry run)

        Raises:
            ChartReleaseError: If the publisher was already closed or nothing was packaged
            ChartError: If indexing or uploading fails
        """
        if self._closed:
            raise ChartReleaseError("publish() called on a publisher that is already closed")

        try:
            charts = sorted(self._chart_dir.glob("*.tgz"))
            if not charts:
                raise ChartReleaseError(f"no charts were packaged into {self._chart_dir}")

            result = self._shell.helm.repo_index(
                self._root, self._repo.repo_url, merge=self._prev_index_file
            )
            if not result.success:
                raise ChartError("error generating chart repository index", details=result.output)

            if self._dry_run:
                logger.warning(f"not uploading any charts, this is a dry run ({len(charts)} staged)")
                return 0

            for chart in charts:
                logger.debug(f"Uploading {chart.name} to {self._repo.repo_url}")
                self._repo.upload_chart(chart)
            self._repo.upload_index(self._root / INDEX_FILE)
            return len(charts)
        finally:
            self.close()

    def close(self) -> None:
        """Release the repository lock and delete staging files. Idempotent."""
        if self._closed:
            return
        self._closed = True
        if not self._dry_run:
            self._repo.unlock()
        shutil.rmtree(self._root, ignore_errors=True)

    def __enter__(self) -> Publisher:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _initialize_index(self) -> Index:
        if self._repo.has_index():
            self._repo.download_index(self._prev_index_file)
            return Index.load_from_file(self._prev_index_file)

        logger.debug(f"repository {self._repo.repo_url} has no index, starting from an empty one")
        with open(self._prev_index_file, "w") as f:
            yaml.safe_dump({"apiVersion": "v1", "entries": {}}, f)
        return Index()
