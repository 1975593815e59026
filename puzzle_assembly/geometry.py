"""2D geometry primitives shared by the matcher and the assembler.

Points are numpy float64 arrays: a single point has shape ``(2,)`` and a
sequence of points has shape ``(N, 2)``. Every helper here accepts either.
"""

from typing import Tuple

import numpy as np
from numpy.typing import ArrayLike

from .errors import DegenerateCoordinateSystemError


def as_points(points: ArrayLike) -> np.ndarray:
    """Convert a point sequence to an ``(N, 2)`` float64 array.

    Args:
        points: Anything numpy can turn into pairs of coordinates.

    Returns:
        A new ``(N, 2)`` array.
    """
    return np.asarray(points, dtype=np.float64).reshape(-1, 2)


def as_point(point: ArrayLike) -> np.ndarray:
    """Convert a single point to a ``(2,)`` float64 array."""
    return np.asarray(point, dtype=np.float64).reshape(2)


def find_center(points: ArrayLike) -> np.ndarray:
    """Return the centroid of a non-empty point sequence."""
    pts = as_points(points)
    if len(pts) == 0:
        raise ValueError("Cannot find the center of an empty point sequence")
    return pts.mean(axis=0)


def bounding_box(points: ArrayLike) -> Tuple[np.ndarray, np.ndarray]:
    """Return the ``(min_xy, max_xy)`` corners of a non-empty point sequence."""
    pts = as_points(points)
    if len(pts) == 0:
        raise ValueError("Cannot bound an empty point sequence")
    return pts.min(axis=0), pts.max(axis=0)


class CoordinateSystem:
    """An origin plus a direction defining a rigid local frame.

    The direction is normalized on construction, so mapping through two
    coordinate systems is always a rotation plus a translation. The local
    ``x`` axis runs along the direction, the local ``y`` axis is the direction
    rotated by 90 degrees counter-clockwise.
    """

    __slots__ = ("origin", "x_dir", "y_dir")

    def __init__(self, origin: ArrayLike, direction: ArrayLike):
        """Create a coordinate system.

        Args:
            origin: Point in real space where the local frame starts.
            direction: Non-zero vector giving the local x axis.

        Raises:
            DegenerateCoordinateSystemError: If the direction has zero length.
        """
        direction = as_point(direction)
        length = float(np.hypot(direction[0], direction[1]))
        if length == 0.0 or not np.isfinite(length):
            raise DegenerateCoordinateSystemError(f"Direction {direction.tolist()} cannot define a frame")
        self.origin = as_point(origin)
        self.x_dir = direction / length
        self.y_dir = np.array([-self.x_dir[1], self.x_dir[0]])

    @classmethod
    def through(cls, start: ArrayLike, end: ArrayLike) -> "CoordinateSystem":
        """Create the frame anchored at ``start`` pointing towards ``end``."""
        start = as_point(start)
        return cls(start, as_point(end) - start)

    @property
    def direction(self) -> np.ndarray:
        """Unit vector of the local x axis."""
        return self.x_dir

    def create(self, points: ArrayLike) -> np.ndarray:
        """Express real-space point(s) in this frame's local coordinates."""
        rel = np.asarray(points, dtype=np.float64) - self.origin
        return np.stack([rel @ self.x_dir, rel @ self.y_dir], axis=-1)

    def to_real(self, local: ArrayLike) -> np.ndarray:
        """Map local coordinates back to real space; inverse of :meth:`create`."""
        local = np.asarray(local, dtype=np.float64)
        return self.origin + local[..., :1] * self.x_dir + local[..., 1:2] * self.y_dir

    def moved(self, delta: ArrayLike) -> "CoordinateSystem":
        """Return a copy whose origin is shifted by ``delta``."""
        return CoordinateSystem(self.origin + as_point(delta), self.x_dir)

    def turned(self, delta: ArrayLike) -> "CoordinateSystem":
        """Return a copy whose (unit) direction is nudged by ``delta``."""
        return CoordinateSystem(self.origin, self.x_dir + as_point(delta))

    def __repr__(self) -> str:
        return f"CoordinateSystem(origin={self.origin.tolist()}, direction={self.x_dir.tolist()})"


def map_between(source: CoordinateSystem, target: CoordinateSystem, points: ArrayLike) -> np.ndarray:
    """Carry points expressed relative to ``source`` into the same pose relative to ``target``."""
    return target.to_real(source.create(points))
