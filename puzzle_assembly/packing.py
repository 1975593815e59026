"""Non-overlapping placement of finished components on a shared canvas."""

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
from numpy.typing import ArrayLike

from .config import get_settings
from .geometry import bounding_box


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle ``[x0, x1] x [y0, y1]``."""

    x0: float
    y0: float
    x1: float
    y1: float

    def overlaps(self, other: "Rect") -> bool:
        """True if the interiors intersect; touching edges do not count."""
        return self.x0 < other.x1 and other.x0 < self.x1 and self.y0 < other.y1 and other.y0 < self.y1


class RectsFitter:
    """Packs bounding boxes of point sets next to each other without overlap.

    Candidate spots are the canvas origin and the right and top neighbourhoods
    of every rectangle placed so far; the spot keeping the canvas closest to
    square wins.
    """

    def __init__(self, gap: Optional[float] = None):
        """Initialize the fitter.

        Args:
            gap: Spacing left between neighbouring rectangles, defaults to ``PACKING_GAP``.
        """
        self.gap = get_settings().PACKING_GAP if gap is None else gap
        self.rects: List[Rect] = []

    def _candidates(self) -> List[Tuple[float, float]]:
        spots = [(0.0, 0.0)]
        for rect in self.rects:
            spots.append((rect.x1 + self.gap, rect.y0))
            spots.append((rect.x0, rect.y1 + self.gap))
        if self.rects:
            # Always free: right of everything
            spots.append((max(r.x1 for r in self.rects) + self.gap, 0.0))
        return spots

    def add_points(self, points: ArrayLike) -> np.ndarray:
        """Register a footprint and return the shift that places it.

        Args:
            points: Points of the footprint in their current coordinates.

        Returns:
            ``(2,)`` translation to add to every point of the footprint.
        """
        low, high = bounding_box(points)
        width, height = high - low
        extent_x = max((r.x1 for r in self.rects), default=0.0)
        extent_y = max((r.y1 for r in self.rects), default=0.0)

        best: Optional[Tuple[Tuple[float, float, float], Rect]] = None
        for x, y in self._candidates():
            rect = Rect(x, y, x + width, y + height)
            if any(rect.overlaps(other) for other in self.rects):
                continue
            key = (max(extent_x, rect.x1, extent_y, rect.y1), y, x)
            if best is None or key < best[0]:
                best = (key, rect)

        if best is None:
            raise RuntimeError(f"No free spot for a {width} x {height} footprint")
        placed = best[1]
        self.rects.append(placed)
        return np.array([placed.x0, placed.y0]) - low
