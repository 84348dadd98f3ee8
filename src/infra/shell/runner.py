"""Command runner for executing external tools.

This module provides the base command execution functionality used by
the Helm, helm-docs and argocd command wrappers.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

from loguru import logger

from src.utils.errors import ToolNotFoundError
from src.utils.secrets import redact

from .types import CommandResult


class CommandRunner:
    """Low-level command executor with consistent result handling.

    All tool-specific command classes use this runner for actual command
    execution, which keeps them testable with a mocked runner.
    """

    def __init__(self, project_root: Path) -> None:
        """Initialize the command runner.

        Args:
            project_root: Path to the project root directory.
                         Commands will be executed from this directory by default.
        """
        self.project_root = project_root

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        capture_output: bool = True,
        check: bool = False,
    ) -> CommandResult:
        """Execute a command and return structured result.

        Args:
            cmd: Command and arguments as a sequence
            cwd: Working directory (defaults to project_root)
            env: Extra environment variables, merged over the current environment
            capture_output: Whether to capture stdout/stderr
            check: Whether to raise exception on non-zero exit code

        Returns:
            CommandResult with success status, output, and return code

        Raises:
            subprocess.CalledProcessError: If check=True and command fails
            ToolNotFoundError: If the program is not installed
        """
        full_env = None
        if env:
            full_env = os.environ.copy()
            full_env.update(env)

        # Registered credentials (e.g. proxy headers) are masked
        logger.debug(redact(f"Running: {' '.join(cmd)} (cwd={cwd or self.project_root})"))
        try:
            result = subprocess.run(
                list(cmd),
                cwd=cwd or self.project_root,
                env=full_env,
                capture_output=capture_output,
                text=True,
                check=check,
            )
        except FileNotFoundError as e:
            raise ToolNotFoundError(
                f"could not run {cmd[0]}, is it installed and on PATH?", details=str(e)
            ) from e
        return CommandResult(
            success=result.returncode == 0,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
            returncode=result.returncode,
        )
