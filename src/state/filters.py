"""Composable filters over releases, environments and destinations.

A filter pairs a predicate with a canonical string form so that the
selection a command operates on can be logged exactly. Filters are
immutable and can be combined with ``and_``, ``or_`` and ``negate``.

Usage:
    from src.state import filters

    f = filters.releases.has_chart_name("sam").and_(
        filters.releases.destination_matches(filters.destinations.is_environment())
    )
    matching = f.filter(state.releases().all())
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta
from typing import Generic, TypeVar

from .model import Destination, DestinationType, Environment, Lifecycle, Release

T = TypeVar("T")


class Filter(Generic[T]):
    """A predicate with a printable, deterministic string form."""

    def __init__(self, predicate: Callable[[T], bool], text: str) -> None:
        self._predicate = predicate
        self._text = text

    def matches(self, item: T) -> bool:
        """Return True if the item satisfies this filter."""
        return self._predicate(item)

    def filter(self, items: Iterable[T]) -> list[T]:
        """Return matching items, preserving input order."""
        return [item for item in items if self._predicate(item)]

    def and_(self, other: Filter[T]) -> Filter[T]:
        return and_(self, other)

    def or_(self, other: Filter[T]) -> Filter[T]:
        return or_(self, other)

    def negate(self) -> Filter[T]:
        return Filter(lambda item: not self._predicate(item), f"not({self._text})")

    def __str__(self) -> str:
        return self._text

    def __repr__(self) -> str:
        return f"Filter({self._text})"


# =============================================================================
# Generic combinators
# =============================================================================


def any_() -> Filter:
    """Filter that matches everything."""
    return Filter(lambda _: True, "any()")


def and_(*filters: Filter[T]) -> Filter[T]:
    """Filter matching items that satisfy every given filter.

    With no arguments this is ``any()``; a single filter is returned as-is.
    """
    if not filters:
        return any_()
    if len(filters) == 1:
        return filters[0]
    return Filter(
        lambda item: all(f.matches(item) for f in filters),
        f"and({', '.join(str(f) for f in filters)})",
    )


def or_(*filters: Filter[T]) -> Filter[T]:
    """Filter matching items that satisfy at least one given filter.

    With no arguments this is ``any()``; a single filter is returned as-is.
    """
    if not filters:
        return any_()
    if len(filters) == 1:
        return filters[0]
    return Filter(
        lambda item: any(f.matches(item) for f in filters),
        f"or({', '.join(str(f) for f in filters)})",
    )


def _quote(values: Iterable[str]) -> str:
    return ", ".join(json.dumps(v) for v in values)


def _format_duration(duration: timedelta) -> str:
    total = int(duration.total_seconds())
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours}h{minutes}m{seconds}s"


# =============================================================================
# Destination filters
# =============================================================================


class DestinationFilters:
    """Filter constructors for environments and clusters alike."""

    def any(self) -> Filter[Destination]:
        return any_()

    def is_environment(self) -> Filter[Destination]:
        return Filter(lambda d: d.is_environment(), "isEnvironment()")

    def is_cluster(self) -> Filter[Destination]:
        return Filter(lambda d: d.is_cluster(), "isCluster()")

    def of_type_name(self, *type_names: str) -> Filter[Destination]:
        wanted = set(type_names)
        return Filter(lambda d: d.type.value in wanted, f"ofType({_quote(type_names)})")

    def of_type(self, *types: DestinationType) -> Filter[Destination]:
        return self.of_type_name(*(t.value for t in types))

    def has_name(self, *names: str) -> Filter[Destination]:
        wanted = set(names)
        return Filter(lambda d: d.name in wanted, f"hasName({_quote(names)})")

    def has_base(self, *bases: str) -> Filter[Destination]:
        wanted = set(bases)
        return Filter(lambda d: d.base in wanted, f"hasBase({_quote(bases)})")

    def is_environment_matching(
        self, env_filter: Filter[Environment]
    ) -> Filter[Destination]:
        """Match destinations that are environments accepted by env_filter."""

        def predicate(d: Destination) -> bool:
            return isinstance(d, Environment) and env_filter.matches(d)

        return Filter(predicate, f"isEnvironmentMatching({env_filter})")

    def and_(self, *filters: Filter[Destination]) -> Filter[Destination]:
        return and_(*filters)

    def or_(self, *filters: Filter[Destination]) -> Filter[Destination]:
        return or_(*filters)


# =============================================================================
# Environment filters
# =============================================================================


class EnvironmentFilters:
    """Filter constructors for environments."""

    def any(self) -> Filter[Environment]:
        return any_()

    def has_base(self, *bases: str) -> Filter[Environment]:
        wanted = set(bases)
        return Filter(lambda e: e.base in wanted, f"hasBase({_quote(bases)})")

    def has_lifecycle(self, lifecycle: Lifecycle) -> Filter[Environment]:
        return self.has_lifecycle_name(lifecycle.value)

    def has_lifecycle_name(self, *lifecycles: str) -> Filter[Environment]:
        wanted = set(lifecycles)
        return Filter(
            lambda e: e.lifecycle.value in wanted,
            f"hasLifecycle({_quote(lifecycles)})",
        )

    def has_template(self, template: Environment) -> Filter[Environment]:
        return self.has_template_name(template.name)

    def has_template_name(self, *template_names: str) -> Filter[Environment]:
        """Match dynamic environments created from one of the named templates."""
        wanted = set(template_names)

        def predicate(e: Environment) -> bool:
            return e.lifecycle == Lifecycle.DYNAMIC and e.template_name in wanted

        return Filter(predicate, f"hasTemplate({_quote(template_names)})")

    def name_includes(self, substring: str) -> Filter[Environment]:
        return Filter(
            lambda e: substring in e.name, f"nameIncludes({json.dumps(substring)})"
        )

    def older_than(self, duration: timedelta) -> Filter[Environment]:
        """Match environments created more than ``duration`` ago."""

        def predicate(e: Environment) -> bool:
            if e.created_at is None:
                return False
            return e.created_at < datetime.now(UTC) - duration

        return Filter(predicate, f"olderThan({_format_duration(duration)})")

    def auto_deletable(self) -> Filter[Environment]:
        """Match dynamic environments whose auto-delete deadline has passed."""

        def predicate(e: Environment) -> bool:
            if e.lifecycle != Lifecycle.DYNAMIC or e.prevent_deletion:
                return False
            if not e.auto_delete.enabled or e.auto_delete.after is None:
                return False
            return e.auto_delete.after < datetime.now(UTC)

        return Filter(predicate, "autoDeletable()")

    def and_(self, *filters: Filter[Environment]) -> Filter[Environment]:
        return and_(*filters)

    def or_(self, *filters: Filter[Environment]) -> Filter[Environment]:
        return or_(*filters)


# =============================================================================
# Release filters
# =============================================================================


class ReleaseFilters:
    """Filter constructors for releases."""

    def any(self) -> Filter[Release]:
        return any_()

    def has_name(self, *names: str) -> Filter[Release]:
        wanted = set(names)
        return Filter(lambda r: r.name in wanted, f"hasName({_quote(names)})")

    def has_full_name(self, *full_names: str) -> Filter[Release]:
        wanted = set(full_names)
        return Filter(
            lambda r: r.full_name in wanted, f"hasFullName({_quote(full_names)})"
        )

    def has_chart_name(self, *chart_names: str) -> Filter[Release]:
        wanted = set(chart_names)
        return Filter(
            lambda r: r.chart_name in wanted, f"hasChartName({_quote(chart_names)})"
        )

    def has_destination_name(self, *destination_names: str) -> Filter[Release]:
        wanted = set(destination_names)
        return Filter(
            lambda r: r.destination.name in wanted,
            f"hasDestinationName({_quote(destination_names)})",
        )

    def destination_matches(
        self, destination_filter: Filter[Destination]
    ) -> Filter[Release]:
        return Filter(
            lambda r: destination_filter.matches(r.destination),
            f"destinationMatches({destination_filter})",
        )

    def belongs_to_environment(self, env: Environment) -> Filter[Release]:
        return self.destination_matches(
            and_(destinations.is_environment(), destinations.has_name(env.name))
        )

    def and_(self, *filters: Filter[Release]) -> Filter[Release]:
        return and_(*filters)

    def or_(self, *filters: Filter[Release]) -> Filter[Release]:
        return or_(*filters)


destinations = DestinationFilters()
environments = EnvironmentFilters()
releases = ReleaseFilters()
