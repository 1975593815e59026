"""Puzzle assembly - border matching and layout reconstruction for jigsaw pieces.

This package compares the traced outlines of puzzle pieces, builds a graph of
candidate joints between their sides, and assembles the best joints into a
consistent layout on a shared canvas.
"""

from .border_matcher import (
    FigurePose,
    align_sides,
    estimate_coordinate_system,
    extract_side,
    is_picture_border,
    pose_from_anchors,
    similarity,
    try_match_existing,
)
from .config import Settings, get_settings
from .errors import (
    DegenerateAnchorsError,
    DegenerateCoordinateSystemError,
    GraphMismatchError,
    PreconditionError,
    PuzzleAssemblyError,
    RecordFormatError,
)
from .geometry import CoordinateSystem, bounding_box, find_center
from .graph import MISSING_SCORE, BorderFigure, Graph, SideMatrix, build_graph
from .models import Edge, Figure, MatchResult, Side, figures_hash
from .observer import AssemblyObserver, DiagnosticEvent, LoggingObserver, NullObserver
from .optimizer import local_optimize_coordinate_systems
from .packing import RectsFitter
from .placement import DisjointSet, Placement
from .records import load_figures, load_graph, load_solution, save_figures, save_graph, save_solution
from .solver import (
    Four,
    find_fours,
    four_placement,
    greedy_placement,
    place_on_surface,
    refine_component,
    solve_graph,
    solve_graph_simple,
)

__all__ = [
    # Models
    "Edge",
    "Figure",
    "MatchResult",
    "Side",
    "figures_hash",
    # Geometry
    "CoordinateSystem",
    "bounding_box",
    "find_center",
    # Border matching
    "FigurePose",
    "align_sides",
    "estimate_coordinate_system",
    "extract_side",
    "is_picture_border",
    "pose_from_anchors",
    "similarity",
    "try_match_existing",
    "local_optimize_coordinate_systems",
    # Graph
    "MISSING_SCORE",
    "BorderFigure",
    "Graph",
    "SideMatrix",
    "build_graph",
    # Assembly
    "DisjointSet",
    "Placement",
    "RectsFitter",
    "Four",
    "find_fours",
    "four_placement",
    "greedy_placement",
    "place_on_surface",
    "refine_component",
    "solve_graph",
    "solve_graph_simple",
    # Diagnostics
    "AssemblyObserver",
    "DiagnosticEvent",
    "LoggingObserver",
    "NullObserver",
    # Persistence
    "load_figures",
    "load_graph",
    "load_solution",
    "save_figures",
    "save_graph",
    "save_solution",
    # Configuration and errors
    "Settings",
    "get_settings",
    "PuzzleAssemblyError",
    "PreconditionError",
    "GraphMismatchError",
    "DegenerateAnchorsError",
    "DegenerateCoordinateSystemError",
    "RecordFormatError",
]
