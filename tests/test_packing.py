"""Tests for packing components on the canvas."""

import numpy as np
import pytest

from puzzle_assembly.packing import Rect, RectsFitter


def test_first_footprint_moves_to_origin():
    """Test that the first footprint's bounding box starts at the origin."""
    fitter = RectsFitter(gap=5.0)
    points = np.array([[-20.0, 30.0], [10.0, 50.0]])
    shift = fitter.add_points(points)
    assert np.allclose((points + shift).min(axis=0), [0.0, 0.0])


def test_footprints_never_overlap():
    """Test that packed rectangles never share interior area."""
    fitter = RectsFitter(gap=10.0)
    rng = np.random.default_rng(7)
    for _ in range(12):
        size = rng.uniform(20.0, 150.0, size=2)
        origin = rng.uniform(-500.0, 500.0, size=2)
        fitter.add_points(np.array([origin, origin + size]))

    assert len(fitter.rects) == 12
    for i, a in enumerate(fitter.rects):
        for b in fitter.rects[i + 1 :]:
            assert not a.overlaps(b)


def test_canvas_stays_compact():
    """Test that equal squares fill a square rather than a row."""
    fitter = RectsFitter(gap=0.0)
    for _ in range(4):
        fitter.add_points(np.array([[0.0, 0.0], [10.0, 10.0]]))
    width = max(r.x1 for r in fitter.rects)
    height = max(r.y1 for r in fitter.rects)
    assert width == height == 20.0


def test_touching_rects_do_not_overlap():
    """Test that shared edges are allowed."""
    assert not Rect(0.0, 0.0, 1.0, 1.0).overlaps(Rect(1.0, 0.0, 2.0, 1.0))
    assert Rect(0.0, 0.0, 1.0, 1.0).overlaps(Rect(0.5, 0.5, 2.0, 2.0))


def test_no_free_spot_raises(monkeypatch):
    """Test that running out of candidate spots is reported, not ignored."""
    fitter = RectsFitter(gap=0.0)
    fitter.add_points(np.array([[0.0, 0.0], [10.0, 10.0]]))
    monkeypatch.setattr(fitter, "_candidates", lambda: [(0.0, 0.0)])
    with pytest.raises(RuntimeError):
        fitter.add_points(np.array([[0.0, 0.0], [5.0, 5.0]]))
