"""Candidate edge graph: every pairwise side alignment between figures."""

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from functools import cached_property
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .border_matcher import align_sides, try_match_existing
from .config import get_settings
from .errors import GraphMismatchError
from .models import SIDES_PER_FIGURE, Edge, Figure, Side, as_anchor, figures_hash
from .observer import AssemblyObserver, emit
from .placement import Placement

# Score reported for side pairs that have no edge
MISSING_SCORE = float(np.finfo(np.float64).max / 10.0)


class SideMatrix:
    """Dense ``(figure, side) x (figure, side)`` lookup keyed by :class:`Side`.

    Values live in one contiguous array; row and column offsets are
    ``fig * 4 + side``.
    """

    def __init__(self, n: int, fill: float, value_shape: Tuple[int, ...] = ()):
        """Allocate a matrix for ``n`` figures filled with ``fill``."""
        self.n = n
        self.data = np.full((n * SIDES_PER_FIGURE, n * SIDES_PER_FIGURE) + value_shape, fill, dtype=np.float64)

    @staticmethod
    def _offset(side: Side) -> int:
        return side.fig * SIDES_PER_FIGURE + side.side

    def __getitem__(self, key: Tuple[Side, Side]) -> np.ndarray:
        s1, s2 = key
        return self.data[self._offset(s1), self._offset(s2)]

    def __setitem__(self, key: Tuple[Side, Side], value: object) -> None:
        s1, s2 = key
        self.data[self._offset(s1), self._offset(s2)] = value


@dataclass(frozen=True)
class BorderFigure:
    """A figure known to lie on the puzzle's outer frame.

    ``sides`` are its two sides adjacent to the flat frame side, the only ones
    that can meet other frame pieces.
    """

    figure: int
    sides: Tuple[int, int]


@dataclass
class Graph:
    """All candidate edges for a fixed figure set.

    The graph is tied to its figure set through ``parsed_puzzles_hash``; call
    :meth:`check_figures` before combining the two.
    """

    n: int
    all_edges: List[Edge]
    parsed_puzzles_hash: int

    def check_figures(self, figures: Sequence[Figure]) -> None:
        """Refuse to work with a figure set the graph was not built from.

        Raises:
            GraphMismatchError: On a figure count or hash mismatch.
        """
        if self.n != len(figures):
            raise GraphMismatchError(f"Graph has {self.n} figures, figure set has {len(figures)}")
        actual = figures_hash(figures)
        if actual != self.parsed_puzzles_hash:
            raise GraphMismatchError(
                f"Graph was built for figure set {self.parsed_puzzles_hash:#018x}, got {actual:#018x}"
            )

    @cached_property
    def _scores(self) -> SideMatrix:
        scores = SideMatrix(self.n, MISSING_SCORE)
        for edge in self.all_edges:
            s1, s2 = edge.sides()
            scores[s1, s2] = edge.score
            scores[s2, s1] = edge.score
        return scores

    def score_matrix(self) -> SideMatrix:
        """Symmetric side-to-side score lookup, :data:`MISSING_SCORE` where no edge exists."""
        return self._scores

    @cached_property
    def _anchors(self) -> SideMatrix:
        anchors = SideMatrix(self.n, np.nan, (2, 2))
        for edge in self.all_edges:
            anchors[edge.sides()] = [edge.base_p1, edge.base_p2]
        return anchors

    def score(self, s1: Side, s2: Side) -> float:
        """Score of the edge between two sides, in either order."""
        return float(self.score_matrix()[s1, s2])

    def anchors(self, s1: Side, s2: Side) -> Optional[Tuple[np.ndarray, np.ndarray]]:
        """Anchors placing ``s2``'s figure in ``s1``'s frame, if that edge was recorded."""
        pair = self._anchors[s1, s2]
        if np.isnan(pair).any():
            return None
        return pair[0].copy(), pair[1].copy()

    def subgraph(self, placement: Placement) -> "Graph":
        """Keep only the edges whose sides are joined in ``placement``."""
        joined = set(placement.all_neighbours())
        return Graph(
            n=self.n,
            all_edges=[e for e in self.all_edges if e.sides() in joined],
            parsed_puzzles_hash=self.parsed_puzzles_hash,
        )

    def probably_correct_directions(self) -> List[bool]:
        """Flag figures that touch an edge already adjacent in the photograph."""
        flags = [False] * self.n
        for edge in self.all_edges:
            if edge.existing_edge:
                flags[edge.fig1] = True
                flags[edge.fig2] = True
        return flags


def _compare_pair(
    figures: Sequence[Figure],
    fig1: int,
    fig2: int,
    sides1: Sequence[int],
    sides2: Sequence[int],
) -> List[Edge]:
    """Align every allowed side of ``fig1`` with every allowed side of ``fig2``."""
    edges = []
    for side1 in sides1:
        for side2 in sides2:
            existing = try_match_existing(figures[fig1], side1, figures[fig2], side2, fig1, fig2) is not None
            match = align_sides(figures[fig1], side1, figures[fig2], side2, fig1, fig2)
            if match is None:
                continue
            base_p1, base_p2 = match.anchors()
            edges.append(
                Edge(
                    fig1=fig1,
                    fig2=fig2,
                    side1=side1,
                    side2=side2,
                    score=float(match.score),
                    existing_edge=existing,
                    base_p1=as_anchor(base_p1),
                    base_p2=as_anchor(base_p2),
                )
            )
    return edges


# Figure set shared with pool workers, set once per worker process
_worker_figures: Sequence[Figure] = ()


def _init_worker(figures: Sequence[Figure]) -> None:
    global _worker_figures
    _worker_figures = figures


def _compare_pair_worker(task: Tuple[int, int, Tuple[int, ...], Tuple[int, ...]]) -> List[Edge]:
    """Compare one figure pair inside a pool worker.

    This function is designed to be called by ProcessPoolExecutor.
    """
    fig1, fig2, sides1, sides2 = task
    return _compare_pair(_worker_figures, fig1, fig2, sides1, sides2)


def build_graph(
    figures: Sequence[Figure],
    *,
    border_figures: Optional[Sequence[BorderFigure]] = None,
    workers: Optional[int] = None,
    observer: Optional[AssemblyObserver] = None,
) -> Graph:
    """Compare all sides of all pairs of good figures.

    Figure pairs are independent and CPU-bound, so they are spread over a
    process pool; results are collected in pair order, which keeps the edge
    list deterministic.

    Args:
        figures: The full figure set; indices into it identify figures.
        border_figures: If given, only these figures and only their listed
            sides are compared (frame-only pass).
        workers: Worker process count, defaults to ``GRAPH_WORKERS``.
        observer: Receiver for progress events.

    Returns:
        The candidate graph, stamped with the figure set's hash.
    """
    workers = get_settings().GRAPH_WORKERS if workers is None else workers
    good = [figure.is_good_puzzle() for figure in figures]

    allowed: Dict[int, Tuple[int, ...]]
    if border_figures is None:
        allowed = {fig: tuple(range(SIDES_PER_FIGURE)) for fig in range(len(figures))}
    else:
        allowed = {bf.figure: tuple(bf.sides) for bf in border_figures}

    pairs = [
        (fig1, fig2)
        for fig1 in range(len(figures))
        for fig2 in range(fig1 + 1, len(figures))
        if good[fig1] and good[fig2] and fig1 in allowed and fig2 in allowed
    ]
    tasks = [(fig1, fig2, allowed[fig1], allowed[fig2]) for fig1, fig2 in pairs]
    emit(observer, "graph.started", logging.INFO, figures=len(figures), pairs=len(pairs), workers=workers)

    all_edges: List[Edge] = []
    if workers > 1 and len(tasks) > 1:
        with ProcessPoolExecutor(max_workers=workers, initializer=_init_worker, initargs=(list(figures),)) as executor:
            for pair, edges in zip(pairs, executor.map(_compare_pair_worker, tasks)):
                _collect(all_edges, pair, edges, observer)
    else:
        for pair, (fig1, fig2, sides1, sides2) in zip(pairs, tasks):
            _collect(all_edges, pair, _compare_pair(figures, fig1, fig2, sides1, sides2), observer)

    emit(observer, "graph.finished", logging.INFO, edges=len(all_edges))
    return Graph(n=len(figures), all_edges=all_edges, parsed_puzzles_hash=figures_hash(figures))


def _collect(
    all_edges: List[Edge],
    pair: Tuple[int, int],
    edges: List[Edge],
    observer: Optional[AssemblyObserver],
) -> None:
    all_edges.extend(edges)
    for edge in edges:
        if edge.existing_edge:
            emit(observer, "graph.existing_edge", logging.INFO, fig1=edge.fig1, fig2=edge.fig2)
    emit(observer, "graph.pair_done", fig1=pair[0], fig2=pair[1], edges=len(edges))
