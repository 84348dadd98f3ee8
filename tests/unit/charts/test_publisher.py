"""Tests for the chart repository, its index and the publisher."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest
import yaml

from src.charts.publish import Publisher
from src.charts.repo import Index, LocalRepo
from src.infra.shell import CommandResult, ShellCommands
from src.utils.errors import ChartError, ChartReleaseError
from tests.fixtures import ok


def _write_index(path: Path, entries: dict) -> None:
    path.write_text(yaml.safe_dump({"apiVersion": "v1", "entries": entries}))


class TestIndex:
    """Tests for reading index.yaml."""

    def test_most_recent_version(self, tmp_path: Path) -> None:
        """The highest valid version wins regardless of order."""
        path = tmp_path / "index.yaml"
        _write_index(
            path,
            {"agora": [{"version": "0.9.0"}, {"version": "0.10.0"}, {"version": "bogus"}]},
        )

        index = Index.load_from_file(path)

        assert index.most_recent_version("agora") == "0.10.0"
        assert index.versions("agora") == ["0.9.0", "0.10.0"]
        assert index.has_version("agora", "0.9.0")

    def test_unknown_chart(self, tmp_path: Path) -> None:
        """Charts missing from the index have no versions."""
        path = tmp_path / "index.yaml"
        _write_index(path, {"agora": [{"version": "1.0.0"}]})

        assert Index.load_from_file(path).most_recent_version("sam") == ""

    def test_empty_index(self) -> None:
        """An empty index has no versions for anything."""
        assert Index().versions("agora") == []

    def test_unparseable_index(self, tmp_path: Path) -> None:
        """Garbage in the index file raises ChartError."""
        path = tmp_path / "index.yaml"
        path.write_text("entries: [unclosed")

        with pytest.raises(ChartError, match="error parsing index file"):
            Index.load_from_file(path)


class TestLocalRepo:
    """Tests for the directory-backed repository."""

    def test_lock_is_exclusive(self, tmp_path: Path) -> None:
        """A second lock fails until the first is released."""
        repo = LocalRepo(tmp_path / "repo", url="https://charts.example.org/")

        repo.lock()
        with pytest.raises(ChartError, match="locked by another process"):
            repo.lock()
        repo.unlock()
        repo.lock()

        assert repo.repo_url == "https://charts.example.org"

    def test_default_url_is_file_uri(self, tmp_path: Path) -> None:
        """Without a URL the directory's file URI is used."""
        repo = LocalRepo(tmp_path / "repo")

        assert repo.repo_url.startswith("file://")

    def test_uploads(self, tmp_path: Path) -> None:
        """Charts land under charts/ and the index at the root."""
        repo = LocalRepo(tmp_path / "repo")
        archive = tmp_path / "agora-1.0.0.tgz"
        archive.write_bytes(b"chart")
        index = tmp_path / "new-index.yaml"
        _write_index(index, {})

        repo.upload_chart(archive)
        repo.upload_index(index)

        assert (tmp_path / "repo" / "charts" / "agora-1.0.0.tgz").read_bytes() == b"chart"
        assert repo.has_index()


class TestPublisher:
    """Tests for staging and publishing charts."""

    @pytest.fixture
    def repo(self, tmp_path: Path) -> LocalRepo:
        """Repository with one published agora version."""
        repo = LocalRepo(tmp_path / "repo")
        _write_index(tmp_path / "repo" / "index.yaml", {"agora": [{"version": "1.2.3"}]})
        return repo

    @pytest.fixture
    def indexing_runner(self, mock_runner: MagicMock) -> MagicMock:
        """Runner whose ``helm repo index`` writes an index file."""

        def run(cmd, cwd=None, **kwargs):
            if cmd[:3] == ["helm", "repo", "index"]:
                _write_index(Path(cwd) / "index.yaml", {"agora": [{"version": "1.3.0"}]})
            return ok()

        mock_runner.run.side_effect = run
        return mock_runner

    def _stage(self, publisher: Publisher, name: str = "agora-1.3.0.tgz") -> None:
        (publisher.chart_dir / name).write_bytes(b"chart")

    def test_loads_existing_index_and_locks(
        self, repo: LocalRepo, shell_commands: ShellCommands, tmp_path: Path
    ) -> None:
        """Construction locks the repository and reads its index."""
        publisher = Publisher(repo, shell_commands, staging_dir=tmp_path / "stage")

        assert publisher.index.most_recent_version("agora") == "1.2.3"
        assert (tmp_path / "repo" / ".repo.lock").exists()
        publisher.close()
        assert not (tmp_path / "repo" / ".repo.lock").exists()

    def test_publish_uploads_and_unlocks(
        self,
        repo: LocalRepo,
        shell_commands: ShellCommands,
        indexing_runner: MagicMock,
        tmp_path: Path,
    ) -> None:
        """Staged charts and the merged index are uploaded."""
        publisher = Publisher(repo, shell_commands)
        staging_root = publisher.chart_dir.parent
        self._stage(publisher)

        assert publisher.publish() == 1

        cmd = indexing_runner.run.call_args[0][0]
        assert "--merge" in cmd
        assert str(staging_root / "prev-index.yaml") in cmd
        assert (tmp_path / "repo" / "charts" / "agora-1.3.0.tgz").exists()
        assert Index.load_from_file(tmp_path / "repo" / "index.yaml").has_version("agora", "1.3.0")
        assert not (tmp_path / "repo" / ".repo.lock").exists()
        assert not staging_root.exists()

    def test_dry_run_uploads_nothing(
        self,
        repo: LocalRepo,
        shell_commands: ShellCommands,
        indexing_runner: MagicMock,
        tmp_path: Path,
    ) -> None:
        """A dry run indexes but neither locks nor uploads."""
        publisher = Publisher(repo, shell_commands, dry_run=True)
        assert not (tmp_path / "repo" / ".repo.lock").exists()
        self._stage(publisher)

        assert publisher.publish() == 0
        assert not (tmp_path / "repo" / "charts").exists()

    def test_nothing_packaged(self, repo: LocalRepo, shell_commands: ShellCommands) -> None:
        """Publishing with an empty staging directory is an error."""
        publisher = Publisher(repo, shell_commands)

        with pytest.raises(ChartReleaseError, match="no charts were packaged"):
            publisher.publish()

    def test_publish_twice(
        self, repo: LocalRepo, shell_commands: ShellCommands, indexing_runner: MagicMock
    ) -> None:
        """A publisher can only publish once."""
        publisher = Publisher(repo, shell_commands)
        self._stage(publisher)
        publisher.publish()

        with pytest.raises(ChartReleaseError, match="already closed"):
            publisher.publish()

    def test_index_failure(
        self,
        repo: LocalRepo,
        shell_commands: ShellCommands,
        mock_runner: MagicMock,
        tmp_path: Path,
    ) -> None:
        """A failed helm repo index aborts the upload and unlocks."""
        mock_runner.run.return_value = CommandResult(
            success=False, stdout="", stderr="bad chart", returncode=1
        )
        publisher = Publisher(repo, shell_commands)
        self._stage(publisher)

        with pytest.raises(ChartError, match="error generating chart repository index"):
            publisher.publish()
        assert not (tmp_path / "repo" / ".repo.lock").exists()

    def test_empty_repository(self, tmp_path: Path, shell_commands: ShellCommands) -> None:
        """A repository without an index starts from an empty one."""
        with Publisher(LocalRepo(tmp_path / "fresh"), shell_commands) as publisher:
            assert publisher.index.most_recent_version("agora") == ""
            assert (publisher.chart_dir.parent / "prev-index.yaml").exists()
