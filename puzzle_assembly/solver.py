"""Assembly of figures into a layout from the candidate graph.

Assembly runs in two stages. A seeding strategy joins high-confidence side
pairs into a :class:`~puzzle_assembly.placement.Placement`; then
:func:`place_on_surface` grows each connected group along a minimum spanning
tree, refines the group jointly, and packs it onto the shared canvas.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple

import numpy as np

from .border_matcher import FigurePose, align_sides, similarity
from .config import get_settings
from .geometry import CoordinateSystem
from .graph import Graph
from .models import Figure, Side, all_sides
from .observer import AssemblyObserver, emit
from .optimizer import local_optimize_coordinate_systems
from .packing import RectsFitter
from .placement import DisjointSet, Placement

Positions = List[Optional[np.ndarray]]
SidePair = Tuple[Side, Side]


@dataclass(frozen=True)
class Four:
    """Four figures meeting in a 2x2 block.

    ``s0`` faces ``s1``'s figure across ``s1.opposite()``, ``s0.next()`` faces
    ``s2``'s figure, and ``s3`` closes the block against both ``s1`` and ``s2``.
    """

    s0: Side
    s1: Side
    s2: Side
    s3: Side
    max_dist: float

    def sides(self) -> Tuple[Side, Side, Side, Side]:
        """The four anchor sides."""
        return self.s0, self.s1, self.s2, self.s3

    def figures(self) -> Set[int]:
        """Figures used by the block."""
        return {s.fig for s in self.sides()}

    def neighbours(self) -> List[SidePair]:
        """The four internal joints of the block."""
        return [
            (self.s0, self.s1.opposite()),
            (self.s0.next(), self.s2.previous()),
            (self.s1.next(), self.s3.previous()),
            (self.s2, self.s3.opposite()),
        ]


def greedy_placement(
    graph: Graph,
    max_score: Optional[float] = None,
    observer: Optional[AssemblyObserver] = None,
) -> Placement:
    """Join edges best-first while both sides are free, up to ``max_score``."""
    max_score = get_settings().GREEDY_MAX_SCORE if max_score is None else max_score
    placement = Placement(graph.n)
    for edge in sorted(graph.all_edges, key=lambda e: e.score):
        if edge.score > max_score:
            break
        if placement.join_sides(*edge.sides()):
            emit(observer, "seed.join", score=edge.score, fig1=edge.fig1, fig2=edge.fig2)
    return placement


def find_fours(graph: Graph, max_score: Optional[float] = None) -> List[Four]:
    """Enumerate 2x2 blocks whose four joints all score within ``max_score``.

    Returns:
        Blocks over four distinct figures, best (lowest worst joint) first.
    """
    max_score = get_settings().FOUR_MAX_SCORE if max_score is None else max_score
    scores = graph.score_matrix()

    close: Dict[Side, List[Side]] = {}
    for edge in graph.all_edges:
        if edge.score <= max_score:
            s1, s2 = edge.sides()
            close.setdefault(s1, []).append(s2)
            close.setdefault(s2, []).append(s1)
    for partners in close.values():
        partners.sort()

    fours = []
    for s0 in all_sides(graph.n):
        for t1 in close.get(s0, []):
            s1 = t1.opposite()
            d0 = float(scores[s0, t1])
            for t2 in close.get(s0.next(), []):
                s2 = t2.next()
                d1 = float(scores[s0.next(), t2])
                for t3 in close.get(s1.next(), []):
                    s3 = t3.next()
                    d2 = float(scores[s1.next(), t3])
                    d3 = float(scores[s2, s3.opposite()])
                    if d3 > max_score:
                        continue
                    four = Four(s0, s1, s2, s3, max(d0, d1, d2, d3))
                    if len(four.figures()) == 4:
                        fours.append(four)
    fours.sort(key=lambda f: f.max_dist)
    return fours


def four_placement(
    graph: Graph,
    max_score: Optional[float] = None,
    observer: Optional[AssemblyObserver] = None,
) -> Placement:
    """Seed a placement with non-overlapping 2x2 blocks, best first."""
    placement = Placement(graph.n)
    used = [False] * graph.n
    for four in find_fours(graph, max_score):
        if any(used[fig] for fig in four.figures()):
            continue
        emit(observer, "seed.four", max_dist=four.max_dist, figures=sorted(four.figures()))
        for fig in four.figures():
            used[fig] = True
        for s1, s2 in four.neighbours():
            if not placement.join_sides(s1, s2):
                raise AssertionError(f"side already taken while seeding {four}")
    return placement


def refine_component(
    joined: Sequence[SidePair],
    positions: Positions,
    figures: Sequence[Figure],
    component: Sequence[int],
    max_iterations: Optional[int] = None,
    observer: Optional[AssemblyObserver] = None,
) -> None:
    """Jointly nudge every placed figure of a component to tighten its joints.

    The objective is the sum of :func:`similarity` over the component's joined
    pairs. Each round runs the optimizer over all figures at once and commits
    the result only if it scores strictly better; rounds stop at the first
    non-improvement or after ``max_iterations``.

    ``positions`` is updated in place.
    """
    max_iterations = get_settings().REFINE_MAX_ITERATIONS if max_iterations is None else max_iterations
    local_ids = {fig: idx for idx, fig in enumerate(component)}
    pairs = [
        (s1, s2)
        for s1, s2 in joined
        if s1.fig < s2.fig
        and s1.fig in local_ids
        and s2.fig in local_ids
        and positions[s1.fig] is not None
        and positions[s2.fig] is not None
    ]
    if not pairs:
        return

    # Only the joined sides enter the score
    side_points = {
        side: figures[side.fig].border[figures[side.fig].side_indices(side.side)] for pair in pairs for side in pair
    }

    for iteration in range(max_iterations):
        poses = [FigurePose.of(figures[fig], positions[fig]) for fig in component]

        def joint_score(targets: Sequence[CoordinateSystem]) -> float:
            total = 0.0
            for s1, s2 in pairs:
                i1, i2 = local_ids[s1.fig], local_ids[s2.fig]
                b1 = targets[i1].to_real(poses[i1].source.create(side_points[s1]))
                b2 = targets[i2].to_real(poses[i2].source.create(side_points[s2]))
                total += similarity(b1, b2[::-1])
            return total

        start = [pose.target for pose in poses]
        start_score = joint_score(start)
        optimized = local_optimize_coordinate_systems(start, joint_score)
        new_score = joint_score(optimized)
        emit(observer, "refine.iteration", iteration=iteration, score=new_score, previous=start_score)
        if not new_score < start_score:
            break
        for idx, fig in enumerate(component):
            positions[fig] = FigurePose(poses[idx].source, optimized[idx]).apply(figures[fig].border)


def place_on_surface(
    graph: Graph,
    placement: Placement,
    figures: Sequence[Figure],
    observer: Optional[AssemblyObserver] = None,
    packer: Optional[RectsFitter] = None,
) -> Positions:
    """Lay out every joined group of figures on one canvas.

    Joined pairs form a minimum spanning forest (Kruskal, weighted by graph
    score). Each tree is walked breadth-first from its lowest-numbered figure:
    the root keeps its traced border, every child is aligned against its
    parent's joined side and carried into the parent's placed frame, and the
    group is refined after each child. Finished groups are packed side by side.

    Args:
        graph: Candidate graph matching ``figures``.
        placement: Joins to honour.
        figures: Figure set the graph was built from.
        observer: Receiver for progress events.
        packer: Canvas packer, a fresh :class:`RectsFitter` by default.

    Returns:
        Placed border per figure, None for figures that could not be attached.
    """
    graph.check_figures(figures)
    emit(observer, "surface.started", logging.INFO, figures=graph.n)
    scores = graph.score_matrix()
    joined = sorted(placement.all_neighbours(), key=lambda pair: float(scores[pair]))

    dsu = DisjointSet(graph.n)
    tree: List[List[SidePair]] = [[] for _ in range(graph.n)]
    for s1, s2 in joined:
        if dsu.union(s1.fig, s2.fig):
            tree[s1.fig].append((s1, s2))
            tree[s2.fig].append((s2, s1))

    packer = packer or RectsFitter()
    positions: Positions = [None] * graph.n
    for root in range(graph.n):
        if positions[root] is not None or not tree[root]:
            continue
        emit(observer, "surface.root", logging.INFO, figure=root)
        positions[root] = figures[root].border.copy()
        queue = deque([root])
        component = [root]
        while queue:
            parent = queue.popleft()
            for s1, s2 in tree[parent]:
                if positions[s2.fig] is not None:
                    continue
                match = align_sides(figures[s1.fig], s1.side, figures[s2.fig], s2.side, s1.fig, s2.fig)
                if match is None:
                    emit(observer, "surface.unaligned", logging.WARNING, parent=s1.fig, figure=s2.fig)
                    continue
                pose = FigurePose.of(figures[s1.fig], positions[s1.fig])
                positions[s2.fig] = pose.apply(match.rhs)
                component.append(s2.fig)
                queue.append(s2.fig)
                emit(observer, "surface.child", figure=s2.fig, parent=s1.fig, score=match.score)
                refine_component(joined, positions, figures, component, observer=observer)

        footprint = np.vstack([positions[fig] for fig in component])
        shift = packer.add_points(footprint)
        for fig in component:
            positions[fig] = positions[fig] + shift
        emit(observer, "surface.packed", logging.INFO, root=root, figures=len(component), shift=shift.tolist())
    return positions


def solve_graph_simple(
    graph: Graph,
    figures: Sequence[Figure],
    max_score: Optional[float] = None,
    observer: Optional[AssemblyObserver] = None,
) -> Positions:
    """Assemble from greedily accepted best edges."""
    graph.check_figures(figures)
    placement = greedy_placement(graph, max_score, observer)
    return place_on_surface(graph, placement, figures, observer)


def solve_graph(
    graph: Graph,
    figures: Sequence[Figure],
    max_score: Optional[float] = None,
    observer: Optional[AssemblyObserver] = None,
) -> Positions:
    """Assemble from non-overlapping 2x2 blocks."""
    graph.check_figures(figures)
    placement = four_placement(graph, max_score, observer)
    return place_on_surface(graph, placement, figures, observer)
