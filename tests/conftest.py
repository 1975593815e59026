"""Shared fixtures: synthetic square pieces cut from a 2x2 puzzle.

Pieces are traced counter-clockwise starting at the bottom-left corner, so
side 0 is the bottom, 1 the right, 2 the top and 3 the left side. An inner cut
is a cosine bump ``(center, width, height)`` along a side, positive heights
pointing outwards. The neighbour sees the same cut as ``(1 - center, width,
-height)``.
"""

from typing import Callable, Dict, Generator, List, Optional, Sequence, Tuple

import numpy as np
import pytest

from puzzle_assembly import Figure, Side, build_graph
from puzzle_assembly.config import get_settings
from puzzle_assembly.graph import Graph
from puzzle_assembly.observer import DiagnosticEvent

Profile = Optional[Tuple[float, float, float]]

PIECE_SIZE = 100.0
POINTS_PER_SIDE = 20
UNIT_CORNERS = ((0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0))

# Inner cuts of the 2x2 puzzle
CUT_BOTTOM_ROW = (0.5, 0.4, 15.0)
CUT_TOP_ROW = (0.4, 0.3, -18.0)
CUT_LEFT_COLUMN = (0.55, 0.35, 20.0)
CUT_RIGHT_COLUMN = (0.45, 0.45, -14.0)

# Figure order: bottom-left, bottom-right, top-left, top-right
GRID_OFFSETS = ((0.0, 0.0), (PIECE_SIZE, 0.0), (0.0, PIECE_SIZE), (PIECE_SIZE, PIECE_SIZE))
SCRAMBLE_ANGLES = (0.3, 1.9, -2.4, 4.0)
SCRAMBLE_OFFSETS = ((0.0, 0.0), (400.0, 40.0), (-60.0, 420.0), (380.0, 400.0))

# Every inner joint of the 2x2 puzzle
JOINTS = (
    (Side(0, 1), Side(1, 3)),
    (Side(2, 1), Side(3, 3)),
    (Side(0, 2), Side(2, 0)),
    (Side(1, 2), Side(3, 0)),
)


def mirror(profile: Profile) -> Profile:
    """The same cut as seen from the neighbouring piece."""
    if profile is None:
        return None
    center, width, height = profile
    return 1.0 - center, width, -height


def bump(t: float, profile: Profile) -> float:
    """Outward displacement of a side at parameter ``t``."""
    if profile is None:
        return 0.0
    center, width, height = profile
    u = (t - center) / width
    if abs(u) > 0.5:
        return 0.0
    return height * 0.5 * (1.0 + np.cos(2.0 * np.pi * u))


def make_piece(
    profiles: Sequence[Profile],
    size: float = PIECE_SIZE,
    points_per_side: int = POINTS_PER_SIDE,
) -> Figure:
    """Trace a square piece with the given cut on each side."""
    points = []
    for side in range(4):
        start = np.array(UNIT_CORNERS[side]) * size
        end = np.array(UNIT_CORNERS[(side + 1) % 4]) * size
        direction = end - start
        normal = np.array([direction[1], -direction[0]]) / size
        for k in range(points_per_side):
            t = k / points_per_side
            points.append(start + t * direction + bump(t, profiles[side]) * normal)
    corners = tuple(side * points_per_side for side in range(4))
    return Figure(border=np.array(points), corners=corners)


def transform(figure: Figure, angle: float, offset: Sequence[float]) -> Figure:
    """Rotate a figure about the origin, then translate it."""
    rotation = np.array([[np.cos(angle), -np.sin(angle)], [np.sin(angle), np.cos(angle)]])
    border = figure.border @ rotation.T + np.asarray(offset, dtype=np.float64)
    return Figure(border=border, corners=figure.corners)


def grid_pieces() -> List[Figure]:
    """The four pieces of the 2x2 puzzle in their own local frames."""
    profiles: List[List[Profile]] = [
        [None, CUT_BOTTOM_ROW, CUT_LEFT_COLUMN, None],
        [None, None, CUT_RIGHT_COLUMN, mirror(CUT_BOTTOM_ROW)],
        [mirror(CUT_LEFT_COLUMN), CUT_TOP_ROW, None, None],
        [mirror(CUT_RIGHT_COLUMN), None, None, mirror(CUT_TOP_ROW)],
    ]
    return [make_piece(p) for p in profiles]


class CollectingObserver:
    """Observer that keeps every event for inspection."""

    def __init__(self) -> None:
        """Initialize with no events."""
        self.events: List[DiagnosticEvent] = []

    def on_event(self, event: DiagnosticEvent) -> None:
        """Store the event."""
        self.events.append(event)

    def names(self) -> List[str]:
        """Names of the collected events in order."""
        return [event.name for event in self.events]

    def count(self, name: str) -> int:
        """How many events with ``name`` were collected."""
        return sum(1 for event in self.events if event.name == name)


@pytest.fixture(autouse=True)
def fresh_settings() -> Generator[None, None, None]:
    """Drop cached settings around each test so environment overrides apply."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def piece_factory() -> Callable[..., Figure]:
    """Factory for synthetic pieces."""
    return make_piece


@pytest.fixture
def solved_figures() -> List[Figure]:
    """The 2x2 puzzle as photographed already assembled."""
    return [transform(piece, 0.0, offset) for piece, offset in zip(grid_pieces(), GRID_OFFSETS)]


@pytest.fixture(scope="session")
def scrambled_figures() -> List[Figure]:
    """The 2x2 puzzle with every piece rotated and moved apart."""
    return [
        transform(piece, angle, offset)
        for piece, angle, offset in zip(grid_pieces(), SCRAMBLE_ANGLES, SCRAMBLE_OFFSETS)
    ]


@pytest.fixture(scope="session")
def scrambled_graph(scrambled_figures: List[Figure]) -> Graph:
    """Candidate graph of the scrambled puzzle, built once per session."""
    get_settings.cache_clear()
    return build_graph(scrambled_figures)


@pytest.fixture
def joints() -> Tuple[Tuple[Side, Side], ...]:
    """Inner joints of the 2x2 puzzle."""
    return JOINTS


@pytest.fixture
def observer() -> CollectingObserver:
    """A fresh collecting observer."""
    return CollectingObserver()


@pytest.fixture
def correct_pairs() -> Dict[Side, Side]:
    """Each inner side mapped to the side it is cut against."""
    pairs = {}
    for s1, s2 in JOINTS:
        pairs[s1] = s2
        pairs[s2] = s1
    return pairs


@pytest.fixture
def place_figure() -> Callable[[Figure, float, Sequence[float]], Figure]:
    """Rotate-then-translate helper for building photographed figures."""
    return transform
