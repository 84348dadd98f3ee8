"""Main CLI application module.

This module provides the main entry point for the chartrelease CLI.

Command Groups:
- charts: Chart change detection, release, deploy and sync
"""

import sys
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from src.utils.secrets import redact_record

from .commands import charts_app
from .context import build_cli_context
from .shared.console import console

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")

# Create the main CLI application
app = typer.Typer(
    help="🛠️  chartrelease - Helm chart release and deploy tool",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(charts_app, name="charts")


@app.callback()
def setup(
    ctx: typer.Context,
    log_level: Annotated[
        str,
        typer.Option("--log-level", "-l", help="Log level (TRACE, DEBUG, INFO, WARNING, ERROR)"),
    ] = "INFO",
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to chartrelease.yaml"),
    ] = None,
) -> None:
    """Configure logging and build the command context."""
    level = log_level.upper()
    if level not in LOG_LEVELS:
        raise typer.BadParameter(f"unknown log level {log_level!r}", param_hint="--log-level")
    logger.remove()
    logger.configure(patcher=redact_record)
    logger.add(sys.stderr, level=level)

    try:
        ctx.obj = build_cli_context(config)
    except ValueError as e:
        console.handle_error("Invalid configuration", str(e))


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
