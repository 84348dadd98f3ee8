"""Generic worker pool for concurrent job execution.

Usage:
    from src.utils.pool import Job, Options, Pool, Status

    def run(reporter):
        reporter.update(Status("downloading"))
        ...

    Pool([Job("fetch", run)], Options(num_workers=4)).execute()
"""

from .metrics import JobMetrics
from .options import GroupSummarizerOptions, LogSummarizerOptions, MetricsOptions, Options
from .pool import Pool, PoolError, PoolTimeoutError
from .work_item import Job, Phase, Status, StatusReporter, WorkItem

__all__ = [
    "GroupSummarizerOptions",
    "JobMetrics",
    "LogSummarizerOptions",
    "MetricsOptions",
    "Options",
    "Pool",
    "PoolError",
    "PoolTimeoutError",
    "Job",
    "Phase",
    "Status",
    "StatusReporter",
    "WorkItem",
]
