"""State snapshot and loader interface."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Generic, Protocol, TypeVar

from .filters import Filter
from .model import Cluster, Environment, Release

T = TypeVar("T")


class _Collection(Generic[T]):
    """Ordered, read-only collection of state objects."""

    def __init__(self, items: Iterable[T]) -> None:
        self._items = list(items)

    def all(self) -> list[T]:
        return list(self._items)

    def filter(self, f: Filter[T]) -> list[T]:
        return f.filter(self._items)

    def __len__(self) -> int:
        return len(self._items)


class Environments(_Collection[Environment]):
    def get(self, name: str) -> Environment | None:
        return next((e for e in self._items if e.name == name), None)


class Clusters(_Collection[Cluster]):
    def get(self, name: str) -> Cluster | None:
        return next((c for c in self._items if c.name == name), None)


class Releases(_Collection[Release]):
    def get(self, full_name: str) -> Release | None:
        return next((r for r in self._items if r.full_name == full_name), None)

    def by_full_name(self) -> dict[str, Release]:
        return {r.full_name: r for r in self._items}


class State:
    """Immutable snapshot of all environments, clusters and releases."""

    def __init__(
        self,
        environments: Iterable[Environment] = (),
        clusters: Iterable[Cluster] = (),
        releases: Iterable[Release] = (),
    ) -> None:
        self._environments = Environments(environments)
        self._clusters = Clusters(clusters)
        self._releases = Releases(releases)

    def environments(self) -> Environments:
        return self._environments

    def clusters(self) -> Clusters:
        return self._clusters

    def releases(self) -> Releases:
        return self._releases


class StateLoader(Protocol):
    """Source of state snapshots.

    ``reload`` must return a fresh snapshot reflecting any writes made to
    the registry since the previous load.
    """

    def load(self) -> State: ...

    def reload(self) -> State: ...


class StaticStateLoader:
    """StateLoader that always returns the same snapshot."""

    def __init__(self, state: State) -> None:
        self._state = state

    def load(self) -> State:
        return self._state

    def reload(self) -> State:
        return self._state
