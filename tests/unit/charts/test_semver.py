"""Tests for semantic version helpers and next-version selection."""

import pytest

from src.charts import semver
from src.charts.source import next_version


class TestSemver:
    """Tests for version parsing and comparison."""

    @pytest.mark.parametrize(
        ("version", "valid"),
        [("1.2.3", True), ("v0.1.0", True), ("1.0.0-rc.1+build.5", True), ("1.2", False), ("", False)],
    )
    def test_is_valid(self, version: str, valid: bool) -> None:
        """Only full major.minor.patch versions are valid."""
        assert semver.is_valid(version) is valid

    def test_prerelease_sorts_before_release(self) -> None:
        """A prerelease is lower than the release of the same core version."""
        assert semver.compare("1.0.0-alpha", "1.0.0") == -1
        assert semver.compare("1.0.0-alpha.2", "1.0.0-alpha.10") == -1
        assert semver.compare("1.0.0+build", "1.0.0") == 0

    def test_minor_bump(self) -> None:
        """Minor bump resets the patch level."""
        assert semver.minor_bump("1.2.3") == "1.3.0"

    def test_minor_bump_rejects_invalid(self) -> None:
        """Bumping an invalid version raises ValueError."""
        with pytest.raises(ValueError):
            semver.minor_bump("")

    def test_max_version_skips_invalid(self) -> None:
        """Invalid entries are ignored when picking the highest version."""
        assert semver.max_version(["0.9.0", "garbage", "0.10.0"]) == "0.10.0"
        assert semver.max_version(["garbage"]) == ""


class TestNextVersion:
    """Tests for choosing the version a chart is published at."""

    def test_bumps_latest_published(self) -> None:
        """The latest published version gets a minor bump."""
        assert next_version("0.5.0", "0.1.0") == "0.6.0"

    def test_higher_source_version_wins(self) -> None:
        """A manually raised manifest version is kept."""
        assert next_version("0.5.0", "1.0.0") == "1.0.0"

    def test_never_published_uses_source_version(self) -> None:
        """With nothing published the manifest version is used."""
        assert next_version("", "0.3.0") == "0.3.0"

    def test_never_published_with_invalid_source(self) -> None:
        """With nothing valid anywhere the initial version is used."""
        assert next_version("", "nope") == "0.1.0"
