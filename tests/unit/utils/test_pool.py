"""Tests for the worker pool and its summarizers."""

import threading
import time

import pytest

from src.utils.pool import (
    GroupSummarizerOptions,
    Job,
    LogSummarizerOptions,
    Options,
    Phase,
    Pool,
    PoolError,
    PoolTimeoutError,
    Status,
    WorkItem,
)
from src.utils.pool.summarizer import build_group_summary, build_summary
from src.utils.pool.work_item import format_duration


def _quiet(**kwargs) -> Options:
    return Options(summarizer=LogSummarizerOptions(enabled=False), **kwargs)


class TestPool:
    """Tests for Pool.execute."""

    def test_runs_every_job(self) -> None:
        """All jobs run once when none fail."""
        ran: list[str] = []
        lock = threading.Lock()

        def make(name: str):
            def run(reporter):
                with lock:
                    ran.append(name)

            return Job(name, run)

        Pool([make(n) for n in "abcde"], _quiet(num_workers=3)).execute()

        assert sorted(ran) == list("abcde")

    def test_failure_halts_queue(self) -> None:
        """With one worker, a failure stops later jobs from starting."""
        calls = {"A": 0, "B": 0, "C": 0}

        def ok_job(name):
            def run(reporter):
                calls[name] += 1

            return run

        def failing(reporter):
            calls["B"] += 1
            raise RuntimeError("B exploded")

        pool = Pool(
            [Job("A", ok_job("A")), Job("B", failing), Job("C", ok_job("C"))],
            _quiet(num_workers=1, stop_processing_on_error=True),
        )

        with pytest.raises(PoolError) as exc_info:
            pool.execute()

        assert [name for name, _ in exc_info.value.errors] == ["B"]
        assert "B exploded" in str(exc_info.value)
        assert calls == {"A": 1, "B": 1, "C": 0}
        assert pool.items[2].phase() == Phase.QUEUED

    def test_continues_after_failure_when_configured(self) -> None:
        """Without stop_processing_on_error every job still runs."""
        ran: list[str] = []

        def fail(reporter):
            raise ValueError("bad")

        jobs = [Job("A", fail), Job("B", lambda r: ran.append("B")), Job("C", fail)]

        with pytest.raises(PoolError) as exc_info:
            Pool(jobs, _quiet(num_workers=1, stop_processing_on_error=False)).execute()

        assert ran == ["B"]
        assert [name for name, _ in exc_info.value.errors] == ["A", "C"]

    def test_worker_count_never_exceeds_jobs(self) -> None:
        """Workers are capped at the number of items."""
        pool = Pool([Job("a", lambda r: None)], Options(num_workers=8))

        assert pool.num_workers() == 1

    def test_timeout(self) -> None:
        """A pool that outlives its timeout raises PoolTimeoutError."""
        release = threading.Event()

        def slow(reporter):
            release.wait(2)

        jobs = [Job("slow", slow), Job("never", lambda r: None)]
        pool = Pool(jobs, _quiet(num_workers=1, timeout=0.05))

        timer = threading.Timer(0.3, release.set)
        timer.start()
        try:
            with pytest.raises(PoolTimeoutError, match="timed out after 0.05s"):
                pool.execute()
        finally:
            timer.cancel()
            release.set()

        assert pool.items[1].phase() == Phase.QUEUED

    def test_group_summarizer_reports_final_state(self) -> None:
        """The group callback receives the final phase of grouped jobs."""
        reports: list[dict[str, str]] = []

        def run(reporter):
            reporter.update(Status("syncing"))

        jobs = [Job("sam", run, group_key="sam-dev"), Job("plain", lambda r: None)]
        options = _quiet(
            num_workers=2,
            group_summarizer=GroupSummarizerOptions(
                enabled=True, interval=60, callback=reports.append
            ),
        )

        Pool(jobs, options).execute()

        assert reports[0] == {"sam-dev": "queued"}
        assert reports[-1] == {"sam-dev": "success: syncing"}


class TestSummaries:
    """Tests for summary formatting."""

    @pytest.fixture
    def items(self) -> list[WorkItem]:
        """Items in each phase."""

        def fail(reporter):
            raise RuntimeError("something bad happened")

        def report(reporter):
            reporter.update(Status("downloading file", {"attempt": 2}))

        ok = WorkItem(Job("foo", report), 0)
        bad = WorkItem(Job("rawls", fail), 1)
        queued = WorkItem(Job("quux", lambda r: None, group_key="quux-dev"), 2)
        ok.execute()
        bad.execute()
        return [ok, bad, queued]

    def test_header_counts_phases(self, items: list[WorkItem]) -> None:
        """The header counts processed items and each phase."""
        lines = build_summary(items, LogSummarizerOptions(work_description="services synced"))

        assert lines[0] == "2/3 services synced queued=1 running=0 success=1 error=1"

    def test_item_lines(self, items: list[WorkItem]) -> None:
        """Item lines carry phase, status, context and error."""
        lines = build_summary(items, LogSummarizerOptions(footer="see ArgoCD"))

        assert lines[1].startswith("foo:")
        assert "downloading file attempt=2 t=0s" in lines[1]
        assert "err=something bad happened" in lines[2]
        assert lines[3].split() == ["quux:", "queued"]
        assert lines[-1] == "see ArgoCD"

    def test_line_cap_drops_queued_first(self, items: list[WorkItem]) -> None:
        """Queued items are the first dropped when over the cap."""
        lines = build_summary(items, LogSummarizerOptions(max_line_items=2))

        assert len(lines) == 3
        assert not any(line.startswith("quux") for line in lines)

    def test_group_summary(self, items: list[WorkItem]) -> None:
        """Only grouped items appear in the group summary."""
        assert build_group_summary(items) == {"quux-dev": "queued"}


class TestWorkItem:
    """Tests for work item timing and formatting."""

    def test_duration_is_zero_while_queued(self) -> None:
        """A queued item has no duration."""
        assert WorkItem(Job("a", lambda r: None), 0).duration() == 0.0

    def test_duration_after_run(self) -> None:
        """A finished item reports its run time."""
        item = WorkItem(Job("a", lambda r: time.sleep(0.01)), 0)
        item.execute()

        assert item.phase() == Phase.SUCCESS
        assert item.duration() >= 0.01

    @pytest.mark.parametrize(
        ("seconds", "expected"), [(0.4, "0s"), (59.6, "1m0s"), (113, "1m53s"), (3725, "1h2m5s")]
    )
    def test_format_duration(self, seconds: float, expected: str) -> None:
        """Durations are rounded to whole seconds."""
        assert format_duration(seconds) == expected
