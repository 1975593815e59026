"""Border classification, similarity scoring, and pairwise side alignment.

Scores are "smaller is better": an average squared distance between the two
borders, summed over both matching directions.
"""

from typing import Optional, Sequence

import numpy as np
from numpy.typing import ArrayLike

from .config import get_settings
from .errors import DegenerateAnchorsError
from .geometry import CoordinateSystem, as_point, as_points, find_center, map_between
from .models import Figure, MatchResult
from .optimizer import local_optimize_coordinate_systems


def extract_side(figure: Figure, side_index: int, positions: Optional[np.ndarray] = None) -> np.ndarray:
    """Return the points of one side, walking the border from corner to corner.

    Args:
        figure: Figure whose corners define the side.
        side_index: Side number, 0-3.
        positions: Optional placed border with the same length as the figure's
            border; when given, the side is read from it instead.

    Returns:
        ``(K, 2)`` array of the side's points, both corners included.
    """
    source = figure.border if positions is None else positions
    return as_points(source[figure.side_indices(side_index)])


def is_picture_border(points: ArrayLike, ratio: Optional[float] = None) -> bool:
    """Check whether a side is flat, i.e. part of the picture's outer frame.

    A side is flat when no point strays from the chord between its ends by
    ``ratio`` of the chord length or more.
    """
    ratio = get_settings().PICTURE_BORDER_RATIO if ratio is None else ratio
    pts = as_points(points)
    chord = pts[-1] - pts[0]
    length = float(np.hypot(chord[0], chord[1]))
    if length == 0.0:
        return False
    unit = chord / length
    rel = pts - pts[0]
    max_dist = float(np.abs(rel[:, 0] * unit[1] - rel[:, 1] * unit[0]).max())
    return max_dist < ratio * length


def _one_way_score(source: np.ndarray, target: np.ndarray, window: int) -> float:
    """Average squared distance from each ``source`` point to a monotonically advancing window of ``target`` points."""
    pos = 0
    total = 0.0
    for point in source:
        dists = ((target[pos : pos + window] - point) ** 2).sum(axis=1)
        shift = int(dists.argmin())
        pos += shift
        total += float(dists[shift])
    return total / len(source)


def similarity(lhs: ArrayLike, rhs: ArrayLike, window: Optional[int] = None) -> float:
    """Score how well two ordered point sequences overlay each other.

    For every point of one sequence only the next ``window`` points of the
    other, starting at the last matched index, are considered, so matches never
    move backwards and the cost stays linear in the sequence lengths. The score
    is the mean squared distance in each direction, summed over both directions.

    Args:
        lhs: First sequence, shape ``(N, 2)``.
        rhs: Second sequence, shape ``(M, 2)``.
        window: Look-ahead size, defaults to ``SIMILARITY_WINDOW``.

    Returns:
        Non-negative score, lower is better.
    """
    window = get_settings().SIMILARITY_WINDOW if window is None else window
    a = as_points(lhs)
    b = as_points(rhs)
    if len(a) == 0 or len(b) == 0:
        raise ValueError("Cannot compare empty borders")
    return _one_way_score(a, b, window) + _one_way_score(b, a, window)


def estimate_coordinate_system(border: ArrayLike, margin: Optional[int] = None) -> Optional[CoordinateSystem]:
    """Guess a frame for a side from the centroids of its two halves.

    ``margin`` points are dropped at both ends, the rest is split in the
    middle, and the frame runs from the first half's centroid to the second's.

    Returns:
        The frame, or None if the side is too short or the centroids coincide.
    """
    margin = get_settings().ESTIMATION_MARGIN if margin is None else margin
    pts = as_points(border)
    if len(pts) <= margin * 2 + 3:
        return None
    mid = len(pts) // 2
    p1 = find_center(pts[margin:mid])
    p2 = find_center(pts[mid : len(pts) - margin])
    if np.array_equal(p1, p2):
        return None
    return CoordinateSystem(p1, p2 - p1)


class FigurePose:
    """Rigid mapping from a figure's traced coordinates to a placed pose.

    The pose is pinned by where ``border[0]`` and ``border[len // 2]`` end up.
    """

    def __init__(self, source: CoordinateSystem, target: CoordinateSystem):
        """Initialize the pose from the traced frame and the placed frame."""
        self.source = source
        self.target = target

    @staticmethod
    def source_frame(figure: Figure) -> CoordinateSystem:
        """Frame through ``border[0]`` and ``border[len // 2]`` of the traced figure."""
        return CoordinateSystem.through(figure.border[0], figure.border[len(figure) // 2])

    @classmethod
    def of(cls, figure: Figure, positions: np.ndarray) -> "FigurePose":
        """Recover the pose of a figure from its placed border."""
        if len(positions) != len(figure):
            raise ValueError(f"Placed border has {len(positions)} points, figure has {len(figure)}")
        return cls(cls.source_frame(figure), CoordinateSystem.through(positions[0], positions[len(positions) // 2]))

    @classmethod
    def from_anchors(cls, figure: Figure, base_p1: ArrayLike, base_p2: ArrayLike) -> "FigurePose":
        """Build the pose that sends ``border[0]`` to ``base_p1`` and ``border[len // 2]`` to ``base_p2``.

        Raises:
            DegenerateAnchorsError: If the two anchors coincide.
        """
        p1, p2 = as_point(base_p1), as_point(base_p2)
        if np.array_equal(p1, p2):
            raise DegenerateAnchorsError(f"Anchors coincide at {p1.tolist()}")
        return cls(cls.source_frame(figure), CoordinateSystem.through(p1, p2))

    def apply(self, points: ArrayLike) -> np.ndarray:
        """Map traced points into the placed pose."""
        return map_between(self.source, self.target, points)


def pose_from_anchors(figure: Figure, base_p1: ArrayLike, base_p2: ArrayLike) -> np.ndarray:
    """Rebuild a figure's aligned border from the two anchors stored on an edge."""
    return FigurePose.from_anchors(figure, base_p1, base_p2).apply(figure.border)


def align_sides(
    lhs_figure: Figure,
    lhs_side: int,
    rhs_figure: Figure,
    rhs_side: int,
    lhs_id: Optional[int] = None,
    rhs_id: Optional[int] = None,
    refine_skip_score: Optional[float] = None,
) -> Optional[MatchResult]:
    """Find the rigid transform laying a candidate side onto a reference side.

    The candidate (``rhs``) side is reversed, because adjoining pieces trace
    their shared cut in opposite directions. Both sides get a coarse frame from
    :func:`estimate_coordinate_system`; when the coarse overlay already scores
    within ``refine_skip_score`` it is kept, otherwise the candidate frame is
    refined with :func:`local_optimize_coordinate_systems`.

    Args:
        lhs_figure: Reference figure, which stays where it is.
        lhs_side: Side of the reference figure.
        rhs_figure: Candidate figure to move.
        rhs_side: Side of the candidate figure.
        lhs_id: Identifier recorded on the result.
        rhs_id: Identifier recorded on the result.
        refine_skip_score: Defaults to ``REFINE_SKIP_SCORE``.

    Returns:
        The match, or None if either side is flat or has no usable frame.
    """
    refine_skip_score = get_settings().REFINE_SKIP_SCORE if refine_skip_score is None else refine_skip_score
    lhs = extract_side(lhs_figure, lhs_side)
    rhs = extract_side(rhs_figure, rhs_side)[::-1]

    if is_picture_border(lhs) or is_picture_border(rhs):
        return None

    to_cs = estimate_coordinate_system(lhs)
    from_cs = estimate_coordinate_system(rhs)
    if to_cs is None or from_cs is None:
        return None

    def score(systems: Sequence[CoordinateSystem]) -> float:
        return similarity(lhs, map_between(systems[0], to_cs, rhs))

    best = score([from_cs])
    if best > refine_skip_score:
        from_cs = local_optimize_coordinate_systems([from_cs], score)[0]
        best = score([from_cs])

    return MatchResult(
        score=best,
        lhs=lhs_figure.border,
        rhs=map_between(from_cs, to_cs, rhs_figure.border),
        lhs_id=lhs_id,
        rhs_id=rhs_id,
    )


def try_match_existing(
    lhs_figure: Figure,
    lhs_side: int,
    rhs_figure: Figure,
    rhs_side: int,
    lhs_id: Optional[int] = None,
    rhs_id: Optional[int] = None,
    max_score: Optional[float] = None,
) -> Optional[MatchResult]:
    """Check whether two sides already lie against each other as photographed.

    No frame is estimated and nothing is moved.

    Returns:
        The match, or None if the raw score exceeds ``max_score``
        (``EXISTING_EDGE_MAX_SCORE`` by default).
    """
    max_score = get_settings().EXISTING_EDGE_MAX_SCORE if max_score is None else max_score
    lhs = extract_side(lhs_figure, lhs_side)
    rhs = extract_side(rhs_figure, rhs_side)[::-1]
    score = similarity(lhs, rhs)
    if score > max_score:
        return None
    return MatchResult(score=score, lhs=lhs_figure.border, rhs=rhs_figure.border, lhs_id=lhs_id, rhs_id=rhs_id)
