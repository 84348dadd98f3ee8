"""Unit tests for config_loader module."""

from pathlib import Path

import pytest

from src.config import CONFIG_FILE, default_config_path, load_config
from src.config.config_utils import substitute_env_vars


class TestLoadConfig:
    """Tests for loading chartrelease.yaml."""

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        """A missing config file yields the default configuration."""
        config = load_config(tmp_path / CONFIG_FILE)

        assert config.charts.source_dir == "charts"
        assert config.sync.max_parallel == 30
        assert config.argocd.command_retries == 4

    def test_values_and_env_substitution(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Values are read from the config section with ${...} substitution."""
        monkeypatch.setenv("ARGO_HOST", "argocd.example.org")
        path = tmp_path / CONFIG_FILE
        path.write_text(
            "config:\n"
            "  charts:\n"
            "    source_dir: helm/charts\n"
            "  sherlock:\n"
            "    addresses: ['https://sherlock.example.org/']\n"
            "  argocd:\n"
            "    host: ${ARGO_HOST}\n"
            "    token: ${ARGO_TOKEN:-unset}\n"
            "  sync:\n"
            "    ignore_failure: true\n"
        )

        config = load_config(path)

        assert config.charts.source_dir == "helm/charts"
        assert config.sherlock.addresses == ["https://sherlock.example.org"]
        assert config.argocd.host == "argocd.example.org"
        assert config.argocd.token == "unset"
        assert config.sync.ignore_failure

    def test_missing_required_env_var(self, tmp_path: Path) -> None:
        """A required variable that is unset is an error."""
        path = tmp_path / CONFIG_FILE
        path.write_text("config:\n  argocd:\n    token: ${ARGO_TOKEN_NOT_SET:?set an argo token}\n")

        with pytest.raises(ValueError, match="set an argo token"):
            load_config(path)

    def test_missing_config_key(self, tmp_path: Path) -> None:
        """The file must have a top-level config key."""
        path = tmp_path / CONFIG_FILE
        path.write_text("charts:\n  source_dir: charts\n")

        with pytest.raises(ValueError, match="missing 'config' key"):
            load_config(path)

    def test_invalid_values(self, tmp_path: Path) -> None:
        """Validation errors are reported as ValueError."""
        path = tmp_path / CONFIG_FILE
        path.write_text("config:\n  sync:\n    max_parallel: 0\n")

        with pytest.raises(ValueError, match="Invalid configuration"):
            load_config(path)

    def test_empty_sherlock_addresses_rejected(self, tmp_path: Path) -> None:
        """At least one registry address is required."""
        path = tmp_path / CONFIG_FILE
        path.write_text("config:\n  sherlock:\n    addresses: []\n")

        with pytest.raises(ValueError, match="at least one Sherlock address"):
            load_config(path)

    def test_token_defaults_from_environment(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Tokens not in the file come from the environment."""
        monkeypatch.setenv("ARGOCD_AUTH_TOKEN", "from-env")
        monkeypatch.setenv("IAP_TOKEN", "iap")

        config = load_config(tmp_path / CONFIG_FILE)

        assert config.argocd.token == "from-env"
        assert config.sherlock.iap_token == "iap"


class TestConfigPath:
    """Tests for locating the config file."""

    def test_default_path(self, tmp_path: Path) -> None:
        """By default the file lives in the project root."""
        assert default_config_path(tmp_path) == tmp_path / CONFIG_FILE

    def test_env_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """CHARTRELEASE_CONFIG overrides the location."""
        monkeypatch.setenv("CHARTRELEASE_CONFIG", "/etc/chartrelease.yaml")

        assert default_config_path(tmp_path) == Path("/etc/chartrelease.yaml")


class TestSubstituteEnvVars:
    """Tests for ${...} substitution."""

    def test_default_used_when_unset(self) -> None:
        """Defaults fill in unset variables."""
        assert substitute_env_vars("x=${NOT_SET_ANYWHERE:-fallback}") == "x=fallback"

    def test_required_variable(self) -> None:
        """A bare reference to an unset variable raises."""
        with pytest.raises(ValueError, match="NOT_SET_ANYWHERE not set"):
            substitute_env_vars("${NOT_SET_ANYWHERE}")
