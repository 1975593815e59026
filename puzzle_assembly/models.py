"""Data models for puzzle pieces, their sides, and candidate joints."""

import hashlib
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import ArrayLike

from .config import get_settings
from .errors import DegenerateAnchorsError
from .geometry import as_points, bounding_box, find_center

SIDES_PER_FIGURE = 4


@dataclass(frozen=True, order=True)
class Side:
    """One of the four sides of a figure.

    Sides are numbered in border traversal order, so ``next`` is the side that
    starts where this one ends.
    """

    fig: int
    side: int

    def next(self) -> "Side":
        """The side following this one on the same figure."""
        return Side(self.fig, (self.side + 1) % SIDES_PER_FIGURE)

    def opposite(self) -> "Side":
        """The side across the figure from this one."""
        return Side(self.fig, (self.side + 2) % SIDES_PER_FIGURE)

    def previous(self) -> "Side":
        """The side preceding this one on the same figure."""
        return Side(self.fig, (self.side + 3) % SIDES_PER_FIGURE)


def all_sides(n: int) -> List[Side]:
    """Every side of ``n`` figures, in figure-then-side order."""
    return [Side(fig, side) for fig in range(n) for side in range(SIDES_PER_FIGURE)]


@dataclass(eq=False)
class Figure:
    """A traced puzzle piece: a cyclic border plus four corner indices."""

    border: np.ndarray
    corners: Tuple[int, ...]

    def __post_init__(self) -> None:
        self.border = as_points(self.border)
        self.corners = tuple(int(c) for c in self.corners)

    def __len__(self) -> int:
        return len(self.border)

    def side_indices(self, side: int) -> np.ndarray:
        """Border indices of a side, from its start corner to its end corner inclusive."""
        n = len(self.border)
        start = self.corners[side]
        end = self.corners[(side + 1) % len(self.corners)]
        length = (end - start) % n + 1
        return (start + np.arange(length)) % n

    def side_length(self, side: int) -> int:
        """Number of border points on a side."""
        start = self.corners[side]
        end = self.corners[(side + 1) % len(self.corners)]
        return (end - start) % len(self.border) + 1

    def is_good_puzzle(
        self,
        min_points: Optional[int] = None,
        min_side_points: Optional[int] = None,
    ) -> bool:
        """Check that the figure is sane enough to take part in matching.

        A good figure has enough border points, exactly four distinct corners
        that walk once around the border in increasing order, sides long enough
        to estimate a frame from, and distinct ``border[0]``/``border[len // 2]``
        which anchor its pose.

        Args:
            min_points: Minimum border length, defaults to ``MIN_FIGURE_POINTS``.
            min_side_points: Minimum points per side, defaults to ``MIN_SIDE_POINTS``.

        Returns:
            True if the figure may be matched.
        """
        settings = get_settings()
        min_points = settings.MIN_FIGURE_POINTS if min_points is None else min_points
        min_side_points = settings.MIN_SIDE_POINTS if min_side_points is None else min_side_points

        n = len(self.border)
        if n < max(min_points, SIDES_PER_FIGURE) or len(self.corners) != SIDES_PER_FIGURE:
            return False
        if any(c < 0 or c >= n for c in self.corners) or len(set(self.corners)) != SIDES_PER_FIGURE:
            return False
        wraps = sum(
            1 for i in range(SIDES_PER_FIGURE) if self.corners[i] > self.corners[(i + 1) % SIDES_PER_FIGURE]
        )
        if wraps != 1:
            return False
        if any(self.side_length(side) < min_side_points for side in range(SIDES_PER_FIGURE)):
            return False
        return not np.array_equal(self.border[0], self.border[n // 2])


def figures_hash(figures: Sequence[Figure]) -> int:
    """Stable 64-bit fingerprint of a figure set.

    A graph stores this value and refuses to be used with any other set.
    """
    digest = hashlib.blake2b(digest_size=8)
    digest.update(len(figures).to_bytes(8, "little"))
    for figure in figures:
        digest.update(len(figure).to_bytes(8, "little"))
        digest.update(np.asarray(figure.corners, dtype="<i8").tobytes())
        digest.update(np.ascontiguousarray(figure.border, dtype="<f8").tobytes())
    return int.from_bytes(digest.digest(), "little")


@dataclass(frozen=True)
class Edge:
    """Result of aligning ``side2`` of ``fig2`` onto ``side1`` of ``fig1``.

    ``base_p1`` and ``base_p2`` are where ``fig2``'s ``border[0]`` and
    ``border[len // 2]`` land in ``fig1``'s frame, which is enough to rebuild
    the alignment without running the optimizer again.
    """

    fig1: int
    fig2: int
    side1: int
    side2: int
    score: float
    existing_edge: bool
    base_p1: Tuple[float, float]
    base_p2: Tuple[float, float]

    def __post_init__(self) -> None:
        if tuple(self.base_p1) == tuple(self.base_p2):
            raise DegenerateAnchorsError(
                f"Edge {self.fig1}:{self.side1} - {self.fig2}:{self.side2} has coinciding anchors {self.base_p1}"
            )

    def sides(self) -> Tuple[Side, Side]:
        """The joined sides as ``(Side(fig1, side1), Side(fig2, side2))``."""
        return Side(self.fig1, self.side1), Side(self.fig2, self.side2)


@dataclass(eq=False)
class MatchResult:
    """Outcome of a pairwise alignment.

    ``lhs`` is the reference figure's whole border in its own coordinates and
    ``rhs`` the candidate figure's whole border carried into that frame.
    """

    score: float
    lhs: np.ndarray
    rhs: np.ndarray
    lhs_id: Optional[int] = None
    rhs_id: Optional[int] = None
    lhs_center: np.ndarray = field(init=False)
    rhs_center: np.ndarray = field(init=False)

    def __post_init__(self) -> None:
        self.lhs = as_points(self.lhs)
        self.rhs = as_points(self.rhs)
        self.lhs_center = find_center(self.lhs)
        self.rhs_center = find_center(self.rhs)

    def offset(self) -> np.ndarray:
        """Translation that moves both borders into the non-negative quadrant."""
        low, _ = bounding_box(np.vstack([self.lhs, self.rhs]))
        return -low

    def anchors(self) -> Tuple[np.ndarray, np.ndarray]:
        """Aligned positions of the candidate's ``border[0]`` and ``border[len // 2]``."""
        return self.rhs[0].copy(), self.rhs[len(self.rhs) // 2].copy()


def as_anchor(point: ArrayLike) -> Tuple[float, float]:
    """Convert a point to the plain ``(x, y)`` tuple stored on an edge."""
    x, y = np.asarray(point, dtype=np.float64).reshape(2)
    return float(x), float(y)
