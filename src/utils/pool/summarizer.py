"""Progress summaries for a running pool.

The log summarizer writes a header and one line per item, for example::

    5/23 services synced queued=2 running=16 success=4 error=1
    thurloe:          running syncing legacy configs attempt=2 t=20s
    rawls:            error   t=17m10s err=timed out waiting for healthy
    workspacemanager: queued

The group summarizer hands a ``{group_key: phase}`` map to a callback so
callers can publish progress somewhere other than the log.
"""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

from .options import GroupSummarizerOptions, LogSummarizerOptions
from .repeater import Repeater
from .work_item import Phase, WorkItem, format_duration

# Phases dropped from the per-item listing, in order, until it fits.
_EXCLUSION_ORDER = (Phase.QUEUED, Phase.SUCCESS, Phase.RUNNING)


def _right_pad(text: str, width: int) -> str:
    return f"{text:<{width}}"


def build_summary(
    items: Sequence[WorkItem], options: LogSummarizerOptions
) -> list[str]:
    """Build the summary lines for the current state of ``items``.

    Args:
        items: Work items in input order
        options: Summarizer options (description, footer, line cap)

    Returns:
        Header line, per-item lines and optional footer
    """
    counts = dict.fromkeys(Phase, 0)
    phases: list[Phase] = []
    name_width = 0
    for item in items:
        phase = item.phase()
        phases.append(phase)
        counts[phase] += 1
        name_width = max(name_width, len(item.name))

    processed = counts[Phase.SUCCESS] + counts[Phase.ERROR]
    header = f"{processed}/{len(items)} {options.work_description}"
    header += "".join(
        f" {phase}={counts[phase]}"
        for phase in (Phase.QUEUED, Phase.RUNNING, Phase.SUCCESS, Phase.ERROR)
    )
    lines = [header]

    excluded: set[Phase] = set()
    remaining = len(items)
    for phase in _EXCLUSION_ORDER:
        if remaining <= options.max_line_items:
            break
        excluded.add(phase)
        remaining -= counts[phase]

    phase_width = max(len(p.value) for p in Phase)
    logged = 0
    for item, phase in zip(items, phases, strict=True):
        if logged >= options.max_line_items:
            break
        if phase in excluded:
            continue

        parts = [
            _right_pad(f"{item.name}:", name_width + 1),
            _right_pad(str(phase), phase_width),
        ]
        status = item.status()
        if status is not None:
            if status.message:
                parts.append(status.message)
            parts.extend(f"{k}={v}" for k, v in status.context.items())
        if phase != Phase.QUEUED:
            parts.append(f"t={format_duration(item.duration())}")
        error = item.error()
        if error is not None:
            parts.append(f"err={error}")

        lines.append(" ".join(parts).rstrip())
        logged += 1

    if options.footer:
        lines.append(options.footer)

    return lines


def log_summary(items: Sequence[WorkItem], options: LogSummarizerOptions) -> None:
    """Write the current pool summary to the log."""
    for line in build_summary(items, options):
        logger.log(options.log_level, line)


def build_group_summary(items: Sequence[WorkItem]) -> dict[str, str]:
    """Map each grouped item's key to its phase and latest status message."""
    summary: dict[str, str] = {}
    for item in items:
        if item.group_key is None:
            continue
        phase = item.phase()
        status = item.status()
        if status is not None and status.message:
            summary[item.group_key] = f"{phase}: {status.message}"
        else:
            summary[item.group_key] = str(phase)
    return summary


def new_log_summarizer(
    items: Sequence[WorkItem], options: LogSummarizerOptions
) -> Repeater:
    return Repeater(
        lambda: log_summary(items, options),
        options.interval,
        enabled=options.enabled,
    )


def new_group_summarizer(
    items: Sequence[WorkItem], options: GroupSummarizerOptions
) -> Repeater:
    """Build a repeater that reports group summaries before, during and after."""

    def report() -> None:
        if options.callback is None:
            return
        try:
            options.callback(build_group_summary(items))
        except Exception as exc:
            logger.trace(f"Group summary callback failed: {exc}")

    return Repeater(
        report,
        options.interval,
        enabled=options.enabled,
        run_on_start=True,
        run_on_stop=True,
    )
