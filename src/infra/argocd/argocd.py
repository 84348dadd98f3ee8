"""Wrapper around the ``argocd`` CLI.

The ArgoCD API is gRPC and built for asynchronous UI clients; the CLI
already implements the blocking sync and wait semantics we need, so
every operation here is an ``argocd`` invocation run through a
CommandRunner.
"""

from __future__ import annotations

import re
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING
from urllib.parse import urlencode

import yaml
from loguru import logger
from pydantic import ValidationError

from src.utils.errors import ArgoCDError
from src.utils.pool import Status, StatusReporter
from src.utils.secrets import mask_secret

from .names import (
    APPLICATION_NAMESPACE,
    application_name,
    destination_selector,
    join_selector,
    legacy_configs_application_name,
    release_selector,
)
from .status import Application, ApplicationStatus

if TYPE_CHECKING:
    from src.config import ArgoCDConfig
    from src.infra.shell import CommandResult, CommandRunner
    from src.state import Destination, Release

ARGOCD_PROG = "argocd"
SERVER_ENV_VAR = "ARGOCD_SERVER"
TOKEN_ENV_VAR = "ARGOCD_AUTH_TOKEN"

NO_MATCHING_RESOURCE = "No matching resource found"


@dataclass(frozen=True)
class SyncOptions:
    """Options for syncing an application.

    Attributes:
        hard_refresh: Hard refresh (re-render manifests) before diffing
        sync_if_no_diff: Sync even when the refresh shows no differences
        never_sync: Refresh only, never sync
        wait_healthy: Wait for the application to become healthy after syncing
        wait_healthy_timeout: Seconds to wait for the application to become healthy
        skip_legacy_configs_restart: Do not restart deployments after a legacy configs sync
        status_reporter: Receives progress messages while the sync runs
    """

    hard_refresh: bool = True
    sync_if_no_diff: bool = False
    never_sync: bool = False
    wait_healthy: bool = True
    wait_healthy_timeout: int = 900
    skip_legacy_configs_restart: bool = False
    status_reporter: StatusReporter | None = None

    def report(self, message: str) -> None:
        if self.status_reporter is not None:
            self.status_reporter.update(Status(message))


@dataclass(frozen=True)
class SyncResult:
    """Outcome of a sync; ``synced`` is False when no sync was attempted."""

    synced: bool = False


class ArgoCD:
    """Runs ``argocd`` commands for releases and their applications.

    Args:
        config: ArgoCD CLI settings
        runner: Command runner used to execute the CLI
        sleep: Sleep function used between retries and polls
    """

    def __init__(
        self,
        config: ArgoCDConfig,
        runner: CommandRunner,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._runner = runner
        self._sleep = sleep
        mask_secret(config.token, config.iap_token)
        self._retryable = [re.compile(p) for p in config.retryable_errors]
        self._unretryable = [re.compile(p) for p in config.unretryable_errors]

    def default_sync_options(self) -> SyncOptions:
        return SyncOptions(wait_healthy_timeout=self._config.wait_healthy_timeout_seconds)

    # =========================================================================
    # Releases
    # =========================================================================

    def sync_release(self, release: Release, options: SyncOptions | None = None) -> None:
        """Sync a release's application, including its legacy configs app if it has one.

        The legacy configs app is synced first at the release's firecloud-develop
        ref. If it had changes, deployments in the primary app are restarted once
        the primary app is healthy so they pick up the new configuration.

        Raises:
            ArgoCDError: If any step fails
        """
        opts = options or self.default_sync_options()
        primary_app = application_name(release)
        legacy_app = legacy_configs_application_name(release)
        has_legacy_app = self._has_legacy_configs_app(release)

        legacy_synced = False
        if has_legacy_app:
            self.set_ref(legacy_app, release.firecloud_develop_ref)
            legacy_synced = self.sync_app(legacy_app, opts).synced

        self.set_ref(primary_app, release.terra_helmfile_ref)
        self.sync_app(primary_app, replace(opts, wait_healthy=False))

        if has_legacy_app:
            if opts.skip_legacy_configs_restart:
                logger.debug(f"Won't restart deployments in {primary_app} (legacy config restarts are skipped)")
            elif legacy_synced:
                logger.debug(f"Waiting for {primary_app} to become healthy before restarting deployments")
                opts.report(f"Waiting healthy {primary_app}")
                self.wait_healthy(primary_app, opts.wait_healthy_timeout)

                logger.debug(f"Restarting deployments in {primary_app} to pick up legacy config changes")
                opts.report(f"Restart deployments {primary_app}")
                self.restart_deployments(primary_app)
            else:
                logger.debug(f"No changes in {legacy_app}, won't restart deployments")

        if opts.wait_healthy:
            opts.report(f"Waiting healthy {primary_app}")
            self.wait_healthy(primary_app, opts.wait_healthy_timeout)

    def destination_url(self, destination: Destination) -> str:
        """URL of the ArgoCD UI filtered to a destination's applications."""
        scheme = "https" if self._config.tls else "http"
        query = urlencode({"labels": join_selector(destination_selector(destination))})
        return f"{scheme}://{self._config.host}/applications?{query}"

    # =========================================================================
    # Applications
    # =========================================================================

    def sync_app(self, app: str, options: SyncOptions | None = None) -> SyncResult:
        """Refresh an application and sync it if it has differences.

        Raises:
            ArgoCDError: If refreshing, waiting or syncing fails
        """
        opts = options or self.default_sync_options()

        opts.report(f"Refreshing {app}")
        has_differences = self._diff_with_retries(app, opts.hard_refresh)

        if not has_differences:
            if opts.sync_if_no_diff:
                logger.debug(f"{app} is in sync, will sync anyway")
            elif opts.never_sync:
                logger.debug(f"{app} is in sync, wouldn't sync due to options")
                return SyncResult()
            else:
                logger.debug(f"{app} is in sync, won't trigger a new sync")
                return SyncResult()
        elif opts.never_sync:
            logger.debug(f"{app} is out of sync, won't sync due to options")
            return SyncResult()

        opts.report(f"Waiting in-progress {app}")
        self._wait_for_in_progress_operation(app)

        opts.report(f"Syncing {app}")
        self._sync(app)

        if opts.wait_healthy:
            opts.report(f"Waiting healthy {app}")
            self.wait_healthy(app, opts.wait_healthy_timeout)

        logger.debug(f"Successfully synced {app}")
        return SyncResult(synced=True)

    def hard_refresh(self, app: str) -> None:
        """Force ArgoCD to re-render an application's manifests."""
        self._diff_with_retries(app, hard_refresh=True)

    def app_status(self, app: str) -> ApplicationStatus:
        """Health and sync status of an application.

        Raises:
            ArgoCDError: If the application cannot be fetched or parsed
        """
        result = self._run_with_retries(["app", "get", app, "-o", "yaml"])
        self._check(result, f"getting argo app {app}")
        try:
            data = yaml.safe_load(result.stdout) or {}
            return Application.model_validate(data).status
        except (yaml.YAMLError, ValidationError) as e:
            raise ArgoCDError(f"error parsing argo app {app}: {e}") from e

    def wait_healthy(self, app: str, timeout: int) -> None:
        logger.debug(f"Waiting up to {timeout} seconds for {app} to become healthy")
        result = self._run_with_retries(
            ["app", "wait", app, "--timeout", str(timeout), "--health"]
        )
        self._check(result, f"waiting for {app} to become healthy")

    def wait_exist(
        self,
        app: str,
        timeout: float | None = None,
        poll_interval: float | None = None,
    ) -> None:
        """Poll until an application exists.

        Raises:
            ArgoCDError: If the application does not exist within the timeout
        """
        if timeout is None:
            timeout = self._config.wait_exist_timeout_seconds
        if poll_interval is None:
            poll_interval = self._config.wait_exist_poll_interval_seconds

        logger.info(f"Waiting up to {timeout}s for {app} to exist")
        deadline = time.monotonic() + timeout
        while True:
            if self._run_once(["app", "get", app]).success:
                logger.debug(f"{app} exists")
                return
            if time.monotonic() + poll_interval > deadline:
                raise ArgoCDError(
                    f"timed out after {timeout}s waiting for Argo application {app} to exist"
                )
            logger.debug(f"{app} does not exist, will check again in {poll_interval}s")
            self._sleep(poll_interval)

    def set_ref(self, app: str, ref: str) -> None:
        """Point an application at a git ref."""
        logger.info(f"Setting app {app} to ref {ref}")
        result = self._run_with_retries(["app", "set", app, "--revision", ref, "--validate=false"])
        self._check(result, f"setting {app} to revision {ref!r}")

    def list_apps(self, selector: Mapping[str, str]) -> list[str]:
        """Names of the applications matching a label selector, e.g. ``argocd/sam-dev``."""
        result = self._run_with_retries(
            ["app", "list", "--output", "name", "--selector", join_selector(selector)]
        )
        self._check(result, f"listing argo apps matching {join_selector(selector)}")
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def restart_deployments(self, app: str) -> None:
        """Rolling-restart every Deployment in an application."""
        result = self._run_with_retries(["app", "actions", "list", "--kind=Deployment", app])
        if not result.success:
            if NO_MATCHING_RESOURCE in result.stderr:
                logger.debug(f"No deployments found in {app}, won't attempt a restart")
                return
            self._check(result, f"listing actions for {app}")

        logger.debug(f"Restarting all deployments in {app}")
        result = self._run_with_retries(
            ["app", "actions", "run", "--kind=Deployment", app, "restart", "--all"]
        )
        self._check(result, f"restarting deployments in {app}")

    # =========================================================================
    # Internals
    # =========================================================================

    def _has_legacy_configs_app(self, release: Release) -> bool:
        expected = f"{APPLICATION_NAMESPACE}/{legacy_configs_application_name(release)}"
        return expected in self.list_apps(release_selector(release))

    def _wait_for_in_progress_operation(self, app: str) -> None:
        timeout = self._config.wait_in_progress_timeout_seconds
        logger.debug(f"Waiting up to {timeout} seconds for in-progress operations on {app} to complete")
        result = self._run_with_retries(
            ["app", "wait", app, "--operation", "--timeout", str(timeout)]
        )
        self._check(result, f"waiting for in-progress operations on {app}")

    def _sync(self, app: str) -> None:
        logger.debug(f"Syncing ArgoCD app: {app}")
        result = self._run_with_retries(
            [
                "app",
                "sync",
                app,
                "--retry-limit",
                str(self._config.sync_retries),
                "--prune",
                "--timeout",
                str(self._config.sync_timeout_seconds),
            ]
        )
        self._check(result, f"syncing {app}")

    def _diff_with_retries(self, app: str, hard_refresh: bool) -> bool:
        """Return True if the application has differences.

        ``argocd app diff`` exits 1 when there are differences; any other
        non-zero exit is an error.
        """
        args = ["app", "diff", app]
        if hard_refresh:
            args.append("--hard-refresh")

        attempts = self._config.diff_retries
        interval = self._config.diff_retry_interval_seconds
        for attempt in range(1, attempts + 1):
            result = self._run_once(args)
            if result.success:
                return False
            if result.returncode == 1:
                return True

            logger.warning(f"attempt {attempt} to diff {app} returned error: {result.output}")
            if attempt == attempts or not self._is_retryable(result):
                break
            logger.warning(f"Will retry diff of {app} in {interval}s")
            self._sleep(interval)

        raise ArgoCDError(f"error diffing {app}", details=result.output)

    def _is_retryable(self, result: CommandResult) -> bool:
        if any(r.search(result.stderr) for r in self._unretryable):
            return False
        return any(r.search(result.stderr) for r in self._retryable)

    def _run_with_retries(self, args: Sequence[str]) -> CommandResult:
        attempts = self._config.command_retries
        interval = self._config.command_retry_interval_seconds
        for attempt in range(1, attempts + 1):
            result = self._run_once(args)
            if result.success or not self._is_retryable(result) or attempt == attempts:
                return result
            logger.debug(
                f"argocd {' '.join(args)} failed (attempt {attempt}/{attempts}), retrying in {interval}s"
            )
            self._sleep(interval)
        return result

    def _run_once(self, args: Sequence[str]) -> CommandResult:
        env: dict[str, str] = {}
        if self._config.host:
            env[SERVER_ENV_VAR] = self._config.host
        if self._config.token:
            env[TOKEN_ENV_VAR] = self._config.token

        cmd = [ARGOCD_PROG]
        if self._config.iap_token:
            cmd.extend(["--header", f"Proxy-Authorization: Bearer {self._config.iap_token}"])
        if self._config.grpc_web:
            cmd.append("--grpc-web")
        if not self._config.tls:
            cmd.append("--plaintext")
        cmd.extend(args)

        return self._runner.run(cmd, env=env)

    @staticmethod
    def _check(result: CommandResult, action: str) -> None:
        if not result.success:
            raise ArgoCDError(f"error {action}", details=result.output)
