"""Derivative-free local search over a list of coordinate systems."""

from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from .config import get_settings
from .errors import DegenerateCoordinateSystemError
from .geometry import CoordinateSystem

Scorer = Callable[[Sequence[CoordinateSystem]], float]
Perturb = Callable[[CoordinateSystem, np.ndarray], CoordinateSystem]

# Fixed order keeps runs reproducible
MOVES = (
    np.array([1.0, 0.0]),
    np.array([-1.0, 0.0]),
    np.array([0.0, 1.0]),
    np.array([0.0, -1.0]),
)


def _sweep(
    systems: List[CoordinateSystem],
    scorer: Scorer,
    best: float,
    perturb: Perturb,
) -> Tuple[bool, float]:
    """Try every move on every system in index order, keeping strict improvements."""
    changed = False
    for idx in range(len(systems)):
        for move in MOVES:
            previous = systems[idx]
            try:
                systems[idx] = perturb(previous, move)
            except DegenerateCoordinateSystemError:
                # A move that collapses the direction is simply not a candidate
                continue
            score = scorer(systems)
            if score < best:
                best = score
                changed = True
            else:
                systems[idx] = previous
    return changed, best


def local_optimize_coordinate_systems(
    start: Sequence[CoordinateSystem],
    scorer: Scorer,
    *,
    coord_step: Optional[float] = None,
    dir_step: Optional[float] = None,
    decay: Optional[float] = None,
    min_step: Optional[float] = None,
    forced_decay_passes: Optional[int] = None,
) -> List[CoordinateSystem]:
    """Coordinate-descent hill climbing over origins and directions.

    Each pass nudges every system's origin by ``coord_step`` in the four axis
    directions, then every direction by ``dir_step``. A step size shrinks by
    ``decay`` after a pass that found no improvement for it, and both shrink
    every ``forced_decay_passes`` passes regardless. The search stops once both
    steps are below ``min_step``.

    The scorer receives the working list and must not keep a reference to it.
    The returned state never scores worse than ``start``.

    Args:
        start: Initial coordinate systems; not modified.
        scorer: Function to minimize.
        coord_step: Initial origin step, defaults to ``OPTIMIZER_COORD_STEP``.
        dir_step: Initial direction step, defaults to ``OPTIMIZER_DIR_STEP``.
        decay: Step multiplier, defaults to ``OPTIMIZER_DECAY``.
        min_step: Termination threshold, defaults to ``OPTIMIZER_MIN_STEP``.
        forced_decay_passes: Passes between unconditional decays, defaults to
            ``OPTIMIZER_FORCED_DECAY_PASSES``.

    Returns:
        The refined coordinate systems, in the same order as ``start``.
    """
    settings = get_settings()
    coord_step = settings.OPTIMIZER_COORD_STEP if coord_step is None else coord_step
    dir_step = settings.OPTIMIZER_DIR_STEP if dir_step is None else dir_step
    decay = settings.OPTIMIZER_DECAY if decay is None else decay
    min_step = settings.OPTIMIZER_MIN_STEP if min_step is None else min_step
    forced_decay_passes = settings.OPTIMIZER_FORCED_DECAY_PASSES if forced_decay_passes is None else forced_decay_passes
    if not 0 < decay < 1:
        raise ValueError(f"decay must be in (0, 1), got {decay}")

    systems = list(start)
    best = scorer(systems)
    passes = 0
    while coord_step > min_step or dir_step > min_step:
        passes += 1
        if passes > forced_decay_passes:
            passes = 0
        forced = passes == forced_decay_passes

        step = coord_step
        changed, best = _sweep(systems, scorer, best, lambda cs, move: cs.moved(move * step))
        if not changed or forced:
            coord_step *= decay

        turn = dir_step
        changed, best = _sweep(systems, scorer, best, lambda cs, move: cs.turned(move * turn))
        if not changed or forced:
            dir_step *= decay

    return systems
