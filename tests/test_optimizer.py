"""Tests for the coordinate-descent optimizer."""

import numpy as np
import pytest

from puzzle_assembly.geometry import CoordinateSystem
from puzzle_assembly.optimizer import local_optimize_coordinate_systems

TARGET_ORIGIN = np.array([3.7, -2.2])
TARGET_DIRECTION = np.array([1.0, 0.5]) / np.hypot(1.0, 0.5)


def distance_to_target(systems):
    """Squared distance of the first frame from a fixed target frame."""
    cs = systems[0]
    return float(((cs.origin - TARGET_ORIGIN) ** 2).sum() + ((cs.direction - TARGET_DIRECTION) ** 2).sum())


class TestLocalOptimize:
    """Test suite for local_optimize_coordinate_systems."""

    def test_converges_on_quadratic(self):
        """Test that a smooth bowl is descended to its minimum."""
        start = [CoordinateSystem([0.0, 0.0], [1.0, 0.0])]
        result = local_optimize_coordinate_systems(start, distance_to_target)

        assert np.allclose(result[0].origin, TARGET_ORIGIN, atol=0.05)
        assert np.allclose(result[0].direction, TARGET_DIRECTION, atol=0.05)

    def test_never_worse_than_start(self):
        """Test that a start at the minimum is returned unchanged."""
        start = [CoordinateSystem(TARGET_ORIGIN, TARGET_DIRECTION)]
        result = local_optimize_coordinate_systems(start, distance_to_target)

        assert distance_to_target(result) <= distance_to_target(start)
        assert np.allclose(result[0].origin, TARGET_ORIGIN)

    def test_start_is_not_modified(self):
        """Test that the input list keeps its frames."""
        start = [CoordinateSystem([0.0, 0.0], [1.0, 0.0])]
        local_optimize_coordinate_systems(start, distance_to_target)
        assert np.allclose(start[0].origin, [0.0, 0.0])

    def test_optimizes_several_frames_jointly(self):
        """Test that every frame in the list is moved."""

        def spread(systems):
            a, b = systems
            return float(((a.origin - [1.0, 1.0]) ** 2).sum() + ((b.origin - [-4.0, 2.0]) ** 2).sum())

        start = [CoordinateSystem([0.0, 0.0], [1.0, 0.0]), CoordinateSystem([0.0, 0.0], [0.0, 1.0])]
        result = local_optimize_coordinate_systems(start, spread)

        assert len(result) == 2
        assert np.allclose(result[0].origin, [1.0, 1.0], atol=0.05)
        assert np.allclose(result[1].origin, [-4.0, 2.0], atol=0.05)

    def test_terminates_on_flat_scorer(self):
        """Test that a scorer with no slope still stops once the steps shrink."""
        calls = []

        def flat(systems):
            calls.append(1)
            return 1.0

        start = [CoordinateSystem([0.0, 0.0], [1.0, 0.0])]
        result = local_optimize_coordinate_systems(start, flat)

        assert np.allclose(result[0].origin, [0.0, 0.0])
        assert len(calls) < 1000

    def test_invalid_decay(self):
        """Test that a decay outside (0, 1) is rejected."""
        start = [CoordinateSystem([0.0, 0.0], [1.0, 0.0])]
        with pytest.raises(ValueError):
            local_optimize_coordinate_systems(start, distance_to_target, decay=1.0)
