"""Configuration models for chartrelease.

All sections are optional in the config file; omitted values take the
defaults below.
"""

from __future__ import annotations

import os
import re

from pydantic import BaseModel, Field, field_validator

DEFAULT_RETRYABLE_ERRORS = [
    "rpc error: code = Unavailable",
    "503 Service Unavailable",
    "context deadline exceeded",
    "connection reset by peer",
]

DEFAULT_UNRETRYABLE_ERRORS = [
    "rpc error: code = Canceled",
    "failed with status code 401",
]


# =============================================================================
# Charts and Publishing
# =============================================================================


class ChartsConfig(BaseModel):
    """Location of the chart sources."""

    source_dir: str = Field(default="charts", description="Directory containing one directory per chart")


class PublishConfig(BaseModel):
    """Destination chart repository."""

    repo_dir: str = Field(default="chart-repo", description="Directory holding the chart repository")
    repo_url: str | None = Field(
        default=None, description="URL charts are served from (file:// URL of repo_dir by default)"
    )
    staging_dir: str | None = Field(
        default=None, description="Parent directory for staging files (system temp dir by default)"
    )


# =============================================================================
# Registry
# =============================================================================


class SherlockConfig(BaseModel):
    """Sherlock registry connection settings."""

    addresses: list[str] = Field(
        default_factory=lambda: ["https://sherlock.dsp-devops-prod.broadinstitute.org"],
        description="Registry base URLs; the first is used for requests, all are trusted",
    )
    soft_fail_addresses: list[str] = Field(
        default_factory=list,
        description="Additional registries reported to whose errors are only logged",
    )
    iap_token: str = Field(
        default_factory=lambda: os.getenv("IAP_TOKEN", ""),
        description="Bearer token for the identity-aware proxy",
    )
    gha_oidc_token: str = Field(
        default_factory=lambda: os.getenv("GHA_OIDC_TOKEN", ""),
        description="GitHub Actions OIDC token, when available",
    )
    timeout_seconds: float = Field(default=30.0, gt=0)

    @field_validator("addresses")
    @classmethod
    def validate_addresses(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("at least one Sherlock address is required")
        return [address.rstrip("/") for address in v]


# =============================================================================
# ArgoCD
# =============================================================================


class ArgoCDConfig(BaseModel):
    """ArgoCD CLI settings."""

    host: str = Field(default="argocd.dsp-devops-prod.broadinstitute.org")
    grpc_web: bool = Field(default=True, description="Pass --grpc-web to every command")
    tls: bool = Field(default=True, description="Connect over TLS (--plaintext otherwise)")
    token: str = Field(
        default_factory=lambda: os.getenv("ARGOCD_AUTH_TOKEN", ""), description="ArgoCD auth token"
    )
    iap_token: str = Field(
        default_factory=lambda: os.getenv("IAP_TOKEN", ""),
        description="Token sent in the Proxy-Authorization header",
    )

    diff_retries: int = Field(default=3, ge=1)
    diff_retry_interval_seconds: float = Field(default=5.0, ge=0)
    command_retries: int = Field(default=4, ge=1, description="Attempts for other argocd commands")
    command_retry_interval_seconds: float = Field(default=10.0, ge=0)

    wait_in_progress_timeout_seconds: int = Field(default=300, ge=0)
    sync_timeout_seconds: int = Field(default=900, ge=0)
    sync_retries: int = Field(default=4, ge=0, description="Value of argocd app sync --retry-limit")
    wait_healthy_timeout_seconds: int = Field(default=900, ge=0)
    wait_exist_timeout_seconds: int = Field(default=300, ge=0)
    wait_exist_poll_interval_seconds: float = Field(default=5.0, gt=0)

    retryable_errors: list[str] = Field(
        default_factory=lambda: list(DEFAULT_RETRYABLE_ERRORS),
        description="Regexes matched against stderr of failed commands that may be retried",
    )
    unretryable_errors: list[str] = Field(
        default_factory=lambda: list(DEFAULT_UNRETRYABLE_ERRORS),
        description="Regexes that prevent a retry even when a retryable regex matches",
    )

    @field_validator("retryable_errors", "unretryable_errors")
    @classmethod
    def validate_patterns(cls, v: list[str]) -> list[str]:
        for pattern in v:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"invalid regular expression {pattern!r}: {e}") from e
        return v


# =============================================================================
# Sync
# =============================================================================


class SyncConfig(BaseModel):
    """Post-release sync behavior."""

    max_parallel: int = Field(default=30, ge=1)
    ignore_failure: bool = Field(
        default=False, description="Log sync failures as warnings instead of failing"
    )


class ChartReleaseConfig(BaseModel):
    """Root configuration (the ``config:`` section of chartrelease.yaml)."""

    charts: ChartsConfig = Field(default_factory=ChartsConfig)
    publish: PublishConfig = Field(default_factory=PublishConfig)
    sherlock: SherlockConfig = Field(default_factory=SherlockConfig)
    argocd: ArgoCDConfig = Field(default_factory=ArgoCDConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
