"""Jobs, work items and per-item status tracking for the worker pool."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol


class Phase(str, Enum):
    """Lifecycle phase of a work item."""

    QUEUED = "queued"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Status:
    """Progress report published by a running job.

    Attributes:
        message: Short human-readable description of what the job is doing
        context: Extra key/value pairs included in summaries
    """

    message: str = ""
    context: dict[str, Any] = field(default_factory=dict)


class StatusReporter(Protocol):
    """Handle a job uses to publish its current status."""

    def update(self, status: Status) -> None: ...


@dataclass
class Job:
    """A named unit of work executed by a Pool.

    Attributes:
        name: Short description used in log messages
        run: Callable performing the work; raising marks the job as failed
        group_key: Optional key; jobs that carry one are reported to the
            group summarizer callback
        labels: Extra attributes recorded with the job's metrics
    """

    name: str
    run: Callable[[StatusReporter], None]
    group_key: str | None = None
    labels: dict[str, str] = field(default_factory=dict)


class WorkItem:
    """Wraps a job with its phase, timing, latest status and error.

    All state transitions and reads happen under the item's lock, so an
    item can be inspected by summarizers while a worker executes it.
    """

    def __init__(self, job: Job, item_id: int) -> None:
        self._job = job
        self._id = item_id
        self._name = job.name or f"job-{item_id}"
        self._lock = threading.Lock()
        self._phase = Phase.QUEUED
        self._status: Status | None = None
        self._error: BaseException | None = None
        self._start: float | None = None
        self._end: float | None = None

    @property
    def id(self) -> int:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @property
    def group_key(self) -> str | None:
        return self._job.group_key

    @property
    def labels(self) -> dict[str, str]:
        return self._job.labels

    def phase(self) -> Phase:
        with self._lock:
            return self._phase

    def status(self) -> Status | None:
        with self._lock:
            return self._status

    def error(self) -> BaseException | None:
        with self._lock:
            return self._error

    def has_error(self) -> bool:
        return self.error() is not None

    def update(self, status: Status) -> None:
        """Replace the item's current status. Never blocks on the reader."""
        with self._lock:
            self._status = status

    def duration(self) -> float:
        """Elapsed seconds: 0 while queued, running time so far, or total."""
        with self._lock:
            if self._phase == Phase.QUEUED or self._start is None:
                return 0.0
            if self._phase == Phase.RUNNING:
                return time.monotonic() - self._start
            return (self._end or self._start) - self._start

    def execute(self) -> None:
        """Run the job, recording the outcome on the item."""
        with self._lock:
            self._phase = Phase.RUNNING
            self._start = time.monotonic()

        error: BaseException | None = None
        try:
            self._job.run(self)
        except Exception as exc:
            error = exc

        with self._lock:
            self._end = time.monotonic()
            self._error = error
            self._phase = Phase.ERROR if error is not None else Phase.SUCCESS


def format_duration(seconds: float) -> str:
    """Format seconds rounded to the nearest second, e.g. ``1m53s``."""
    total = int(round(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{minutes}m{secs}s"
    return f"{secs}s"
