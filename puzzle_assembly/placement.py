"""Join bookkeeping for assembly: which sides are bound to which."""

from typing import TYPE_CHECKING, List, Optional, Tuple

from .models import SIDES_PER_FIGURE, Side

if TYPE_CHECKING:
    from .graph import Graph


class DisjointSet:
    """Union-find over integer ids with path compression and union by rank."""

    def __init__(self, size: int):
        """Create ``size`` singleton sets."""
        self._parent = list(range(size))
        self._rank = [0] * size

    def find(self, item: int) -> int:
        """Return the representative of ``item``'s set."""
        root = item
        while self._parent[root] != root:
            root = self._parent[root]
        while self._parent[item] != root:
            self._parent[item], item = root, self._parent[item]
        return root

    def union(self, a: int, b: int) -> bool:
        """Merge the sets of ``a`` and ``b``; False if they were already one set."""
        ra, rb = self.find(a), self.find(b)
        if ra == rb:
            return False
        if self._rank[ra] < self._rank[rb]:
            ra, rb = rb, ra
        self._parent[rb] = ra
        if self._rank[ra] == self._rank[rb]:
            self._rank[ra] += 1
        return True

    def are_joined(self, a: int, b: int) -> bool:
        """Whether ``a`` and ``b`` are in the same set."""
        return self.find(a) == self.find(b)


class Placement:
    """Mutable record of side joins for ``n`` figures.

    A side is joined at most once, and joins are never undone.
    """

    def __init__(self, n: int):
        """Create an empty placement for ``n`` figures."""
        self.n = n
        self._neighbours: List[List[Optional[Side]]] = [[None] * SIDES_PER_FIGURE for _ in range(n)]

    @classmethod
    def from_graph(cls, graph: "Graph") -> "Placement":
        """Join every edge of a graph in order, skipping edges whose sides are taken."""
        placement = cls(graph.n)
        for edge in graph.all_edges:
            placement.join_sides(*edge.sides())
        return placement

    def neighbour(self, side: Side) -> Optional[Side]:
        """The side joined to ``side``, if any."""
        return self._neighbours[side.fig][side.side]

    def is_joined(self, side: Side) -> bool:
        """Whether ``side`` is already bound."""
        return self.neighbour(side) is not None

    def join_sides(self, s1: Side, s2: Side) -> bool:
        """Bind two free sides of different figures.

        Returns:
            True if the join was recorded, False if either side is taken or
            both belong to the same figure.
        """
        if s1.fig == s2.fig or self.is_joined(s1) or self.is_joined(s2):
            return False
        self._neighbours[s1.fig][s1.side] = s2
        self._neighbours[s2.fig][s2.side] = s1
        return True

    def all_neighbours(self) -> List[Tuple[Side, Side]]:
        """Every joined pair, once in each orientation, in figure-then-side order."""
        pairs = []
        for fig, sides in enumerate(self._neighbours):
            for side, other in enumerate(sides):
                if other is not None:
                    pairs.append((Side(fig, side), other))
        return pairs
