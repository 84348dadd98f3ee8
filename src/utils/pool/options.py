"""Configuration for the worker pool and its summarizers."""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from opentelemetry.metrics import MeterProvider


@dataclass
class LogSummarizerOptions:
    """Periodic human-readable progress summary written to the log.

    Example output::

        2/5 items processed queued=1 running=2 success=1 error=1
        foo:    error   t=2m30s err=something bad happened
        bar:    running downloading file t=30s
        quux:   queued

    Attributes:
        enabled: Whether to log summaries at all
        interval: Seconds between summaries
        log_level: Loguru level name used for summary lines
        work_description: Description used in the summary header
        footer: Optional line logged after each summary
        max_line_items: Maximum number of per-item lines per summary
    """

    enabled: bool = True
    interval: float = 30.0
    log_level: str = "INFO"
    work_description: str = "items processed"
    footer: str = ""
    max_line_items: int = 50


@dataclass
class GroupSummarizerOptions:
    """Periodic machine-readable summary of grouped items.

    The callback receives ``{group_key: "<phase>" | "<phase>: <message>"}``
    for every job that carries a group key.
    """

    enabled: bool = False
    interval: float = 30.0
    callback: Callable[[dict[str, str]], None] | None = None


@dataclass
class MetricsOptions:
    """Per-job OpenTelemetry metrics.

    Attributes:
        enabled: Whether to record a completion count and duration for every job
        pool_name: Value of the ``pool`` attribute on recorded metrics
        meter_provider: Provider to record to (defaults to the global provider)
    """

    enabled: bool = False
    pool_name: str = "unknown"
    meter_provider: MeterProvider | None = None


@dataclass
class Options:
    """Worker pool options.

    Attributes:
        num_workers: Maximum number of jobs to run concurrently
        stop_processing_on_error: Abandon queued jobs after the first failure
        timeout: Optional deadline in seconds for the whole pool
        summarizer: Log summarizer options
        group_summarizer: Group summarizer options
        metrics: Job metrics options
    """

    num_workers: int = field(default_factory=lambda: os.cpu_count() or 1)
    stop_processing_on_error: bool = True
    timeout: float | None = None
    summarizer: LogSummarizerOptions = field(default_factory=LogSummarizerOptions)
    group_summarizer: GroupSummarizerOptions = field(
        default_factory=GroupSummarizerOptions
    )
    metrics: MetricsOptions = field(default_factory=MetricsOptions)
