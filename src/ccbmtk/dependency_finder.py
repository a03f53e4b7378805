"""ccbmtk: A coupled carbon-cycle box model toolkit.

Copyright (C), 2020 Ulrich G. Wortmann

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.

This program is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
GNU General Public License for more details.

You should have received a copy of the GNU General Public License
along with this program.  If not, see <https://www.gnu.org/licenses/>.
"""

from __future__ import annotations

import heapq

from .ccbmtk_base import CoreError


class DependencyFinder:
    """Order component names so that every component comes after the
    components it depends on.

    Example::

        df = DependencyFinder()
        df.add_dependency("carbon-cycle-solver", "ocean")
        df.add_dependency("ocean", "temperature")
        df.create_ordering()
        df.get_ordering()  # ['temperature', 'ocean', 'carbon-cycle-solver']
    """

    def __init__(self) -> None:
        self.nodes: set[str] = set()
        self.edges: dict[str, set[str]] = {}  # node -> nodes that depend on it
        self.ordering: list[str] = []

    def add_node(self, name: str) -> None:
        self.nodes.add(name)
        self.edges.setdefault(name, set())

    def add_dependency(self, depender: str, dependee: str) -> None:
        """Record that `depender` needs `dependee` to run first."""
        self.add_node(depender)
        self.add_node(dependee)
        self.edges[dependee].add(depender)

    def create_ordering(self) -> list[str]:
        """Sort the nodes topologically, breaking ties by name.

        :raises CoreError: if the dependencies contain a cycle
        """
        indegree = {n: 0 for n in self.nodes}
        for dependers in self.edges.values():
            for n in dependers:
                indegree[n] += 1

        ready = [n for n, d in indegree.items() if d == 0]
        heapq.heapify(ready)
        ordering = []
        while ready:
            n = heapq.heappop(ready)
            ordering.append(n)
            for m in self.edges[n]:
                indegree[m] -= 1
                if indegree[m] == 0:
                    heapq.heappush(ready, m)

        if len(ordering) != len(self.nodes):
            cycle = sorted(n for n, d in indegree.items() if d > 0)
            raise CoreError(f"there is a cycle in the component dependencies: {cycle}")

        self.ordering = ordering
        return ordering

    def get_ordering(self) -> list[str]:
        return list(self.ordering)
