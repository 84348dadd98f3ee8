"""Bounded-concurrency worker pool.

Workers are plain threads draining a single pre-filled queue. A shared
cancellation event stops workers from picking up new items; items that
are already running always finish.
"""

from __future__ import annotations

import queue
import threading
from collections.abc import Sequence

from loguru import logger

from src.utils.errors import ChartReleaseError

from .metrics import JobMetrics
from .options import Options
from .summarizer import new_group_summarizer, new_log_summarizer
from .work_item import Job, WorkItem


class PoolError(ChartReleaseError):
    """Aggregate of every failed job in a pool execution.

    Attributes:
        errors: ``(job name, exception)`` pairs in input order
    """

    def __init__(self, errors: list[tuple[str, BaseException]]):
        self.errors = errors
        message = f"{len(errors)} execution errors:\n" + "".join(
            f"{name}: {err}\n" for name, err in errors
        )
        super().__init__(message)


class PoolTimeoutError(ChartReleaseError):
    """Raised when a pool does not finish within its timeout.

    Attributes:
        timeout: The bound that expired, in seconds
        errors: Job failures recorded before the pool stopped
    """

    def __init__(self, timeout: float, errors: list[tuple[str, BaseException]]):
        self.timeout = timeout
        self.errors = errors
        details = "".join(f"{name}: {err}\n" for name, err in errors) or None
        super().__init__(f"pool execution timed out after {timeout}s", details)


class Pool:
    """Runs a fixed list of jobs with at most ``num_workers`` in parallel.

    Example:
        >>> pool = Pool([Job("a", run_a), Job("b", run_b)], Options(num_workers=2))
        >>> pool.execute()
    """

    def __init__(self, jobs: Sequence[Job], options: Options | None = None) -> None:
        self._options = options or Options()
        self._items = [WorkItem(job, i) for i, job in enumerate(jobs)]
        self._queue: queue.Queue[WorkItem] = queue.Queue()
        self._cancelled = threading.Event()
        self._timed_out = threading.Event()
        self._metrics: JobMetrics | None = None
        if self._options.metrics.enabled:
            self._metrics = JobMetrics(
                self._options.metrics.pool_name, self._options.metrics.meter_provider
            )

    @property
    def items(self) -> list[WorkItem]:
        return list(self._items)

    def num_workers(self) -> int:
        """Number of workers, never more than the number of items."""
        return min(self._options.num_workers, len(self._items))

    def execute(self) -> None:
        """Run all jobs and block until they finish.

        Raises:
            PoolTimeoutError: If the pool timeout expired before the queue drained
            PoolError: If one or more jobs failed
        """
        logger.debug(
            f"Executing {len(self._items)} job(s) with {self.num_workers()} worker(s)"
        )

        for item in self._items:
            self._queue.put(item)

        log_summarizer = new_log_summarizer(self._items, self._options.summarizer)
        group_summarizer = new_group_summarizer(
            self._items, self._options.group_summarizer
        )
        log_summarizer.start()
        group_summarizer.start()

        timer: threading.Timer | None = None
        if self._options.timeout is not None:
            timer = threading.Timer(self._options.timeout, self._on_timeout)
            timer.daemon = True
            timer.start()

        workers = [
            threading.Thread(target=self._work, args=(i,), daemon=True)
            for i in range(self.num_workers())
        ]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()

        if timer is not None:
            timer.cancel()
        log_summarizer.stop()
        group_summarizer.stop()

        errors: list[tuple[str, BaseException]] = []
        for item in self._items:
            error = item.error()
            if error is not None:
                errors.append((item.name, error))

        if self._timed_out.is_set():
            raise PoolTimeoutError(self._options.timeout or 0.0, errors)
        if errors:
            raise PoolError(errors)

    def cancel(self) -> None:
        """Stop workers from starting new items."""
        self._cancelled.set()

    def _on_timeout(self) -> None:
        logger.debug(f"Pool timed out after {self._options.timeout}s; cancelling")
        self._timed_out.set()
        self._cancelled.set()

    def _work(self, worker_id: int) -> None:
        while True:
            if self._cancelled.is_set():
                logger.trace(f"worker-{worker_id}: execution cancelled, returning")
                return
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                logger.trace(f"worker-{worker_id}: queue empty, returning")
                return

            logger.trace(f"worker-{worker_id}: starting job {item.name} ({item.id})")
            item.execute()
            if self._metrics is not None:
                self._metrics.record(item)
            logger.trace(
                f"worker-{worker_id}: finished job {item.name} "
                f"result={item.phase()} duration={item.duration():.2f}s"
            )

            if item.has_error() and self._options.stop_processing_on_error:
                logger.trace(f"worker-{worker_id}: error encountered; cancelling pool")
                self._cancelled.set()
                return
