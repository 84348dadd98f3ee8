"""Dependency graph of charts in a source directory.

Edges point from a dependency to the charts that depend on it. The graph
is built once and never mutated.
"""

from __future__ import annotations

import heapq
from collections import deque
from collections.abc import Iterable, Mapping

from src.utils.errors import CycleDetectedError


class DependencyGraph:
    """DAG of local chart dependencies keyed by chart name.

    Args:
        dependencies: Mapping of chart name to the names of charts it depends on.
            Dependencies that are not themselves keys of the mapping are ignored.

    Raises:
        CycleDetectedError: If the dependencies contain a cycle
    """

    def __init__(self, dependencies: Mapping[str, Iterable[str]]) -> None:
        self._dependencies: dict[str, list[str]] = {}
        self._dependents: dict[str, list[str]] = {name: [] for name in dependencies}

        for name, deps in dependencies.items():
            resolved = sorted({d for d in deps if d in dependencies})
            self._dependencies[name] = resolved
            for dep in resolved:
                self._dependents[dep].append(name)

        for dependents in self._dependents.values():
            dependents.sort()

        self._check_for_cycles()
        self._topo_index = self._compute_topo_order()

    # =========================================================================
    # Queries
    # =========================================================================

    def nodes(self) -> list[str]:
        return sorted(self._dependencies)

    def get_dependencies(self, name: str) -> list[str]:
        """Direct dependencies of a chart."""
        return list(self._dependencies.get(name, []))

    def get_dependents(self, name: str) -> list[str]:
        """Direct dependents of a chart."""
        return list(self._dependents.get(name, []))

    def with_transitive_dependents(self, *names: str) -> list[str]:
        """Return the inputs followed by every chart that transitively depends on them."""
        return self._closure(names, self._dependents)

    def find_transitive_dependencies(self, *names: str) -> list[str]:
        """Return the inputs plus all their transitive dependencies, in topological order."""
        result = self._closure(names, self._dependencies)
        self.topo_sort(result)
        return result

    def topo_sort(self, names: list[str]) -> None:
        """Sort names in place so dependencies come before their dependents.

        Charts with no ordering constraint between them are ordered
        alphabetically. Names not in the graph sort last.
        """
        last = len(self._topo_index)
        names.sort(key=lambda n: (self._topo_index.get(n, last), n))

    # =========================================================================
    # Internals
    # =========================================================================

    @staticmethod
    def _closure(start: Iterable[str], edges: Mapping[str, list[str]]) -> list[str]:
        result: list[str] = []
        seen: set[str] = set()
        pending: deque[str] = deque()

        for name in start:
            if name not in seen:
                seen.add(name)
                result.append(name)
                pending.append(name)

        while pending:
            current = pending.popleft()
            for neighbor in edges.get(current, []):
                if neighbor not in seen:
                    seen.add(neighbor)
                    result.append(neighbor)
                    pending.append(neighbor)

        return result

    def _check_for_cycles(self) -> None:
        visiting: set[str] = set()
        done: set[str] = set()

        def visit(name: str, path: list[str]) -> None:
            if name in done:
                return
            if name in visiting:
                cycle = path[path.index(name) :] + [name]
                raise CycleDetectedError(f"cycle detected: {' -> '.join(cycle)}")
            visiting.add(name)
            path.append(name)
            for dep in self._dependencies[name]:
                visit(dep, path)
            path.pop()
            visiting.discard(name)
            done.add(name)

        for name in sorted(self._dependencies):
            visit(name, [])

    def _compute_topo_order(self) -> dict[str, int]:
        remaining = {name: len(deps) for name, deps in self._dependencies.items()}
        ready = [name for name, count in remaining.items() if count == 0]
        heapq.heapify(ready)

        order: dict[str, int] = {}
        while ready:
            name = heapq.heappop(ready)
            order[name] = len(order)
            for dependent in self._dependents[name]:
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    heapq.heappush(ready, dependent)

        return order
