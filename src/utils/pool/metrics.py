"""OpenTelemetry metrics for worker pool jobs.

Metrics Emitted:
    Counters:
        - chartrelease_pool_jobs_total: Completed jobs by pool, job and outcome

    Histograms:
        - chartrelease_pool_job_duration_seconds: Job run time by pool, job and outcome

Without a configured MeterProvider the OpenTelemetry API is a no-op, so
enabling metrics costs nothing unless an exporter is installed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from opentelemetry import metrics

if TYPE_CHECKING:
    from opentelemetry.metrics import Counter, Histogram, MeterProvider

    from .work_item import WorkItem

METER_NAME = "chartrelease.pool"


class JobMetrics:
    """Records the outcome and duration of each completed pool job.

    Example:
        >>> job_metrics = JobMetrics("ops_sync")
        >>> job_metrics.record_job("sam-dev", 12.5, success=True)
    """

    JOBS_TOTAL = "chartrelease_pool_jobs_total"
    JOB_DURATION_SECONDS = "chartrelease_pool_job_duration_seconds"

    def __init__(self, pool_name: str, meter_provider: MeterProvider | None = None) -> None:
        """Initialize the recorder.

        Args:
            pool_name: Value of the ``pool`` attribute on every data point
            meter_provider: Provider to record to (defaults to the global provider)
        """
        self._pool_name = pool_name
        if meter_provider is not None:
            meter = meter_provider.get_meter(METER_NAME)
        else:
            meter = metrics.get_meter(METER_NAME)
        self._jobs: Counter = meter.create_counter(
            self.JOBS_TOTAL,
            unit="1",
            description="Number of completed pool jobs by outcome",
        )
        self._duration: Histogram = meter.create_histogram(
            self.JOB_DURATION_SECONDS,
            unit="s",
            description="Run time of pool jobs in seconds",
        )

    def record_job(
        self,
        job: str,
        duration: float,
        *,
        success: bool,
        labels: dict[str, str] | None = None,
    ) -> None:
        attributes: dict[str, Any] = dict(labels or {})
        attributes.update(
            {
                "pool": self._pool_name,
                "job": job,
                "outcome": "success" if success else "error",
            }
        )
        self._jobs.add(1, attributes=attributes)
        self._duration.record(duration, attributes=attributes)

    def record(self, item: WorkItem) -> None:
        """Record a finished work item."""
        self.record_job(
            item.name, item.duration(), success=not item.has_error(), labels=item.labels
        )
