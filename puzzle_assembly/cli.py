#!/usr/bin/env python
"""Command line entry point for graph construction and assembly.

Usage:
    # Compare every pair of figures and store the candidate graph:
    puzzle-assembly build-graph figures.json graph.json --workers 8

    # Frame-only pass using the border detector's output:
    puzzle-assembly build-graph figures.json frame_graph.json --border-figures frame.json

    # Assemble a layout:
    puzzle-assembly solve figures.json graph.json solution.json --strategy fours

    # Show how one pair of sides fits together:
    puzzle-assembly pair figures.json graph.json 3 1 7 2
"""

import argparse
import json
import logging
import sys
from typing import List, Optional, Sequence

from tqdm import tqdm  # type: ignore[import-untyped]

from .border_matcher import pose_from_anchors
from .config import get_settings
from .errors import PuzzleAssemblyError
from .graph import BorderFigure, build_graph
from .models import Side
from .observer import DiagnosticEvent, LoggingObserver
from .records import load_figures, load_graph, save_graph, save_solution
from .solver import solve_graph, solve_graph_simple

logger = logging.getLogger(__name__)


class TqdmObserver(LoggingObserver):
    """Logs events and advances a progress bar for every compared figure pair."""

    def __init__(self) -> None:
        """Initialize the observer without a bar; it is created on ``graph.started``."""
        super().__init__()
        self._bar: Optional[tqdm] = None

    def on_event(self, event: DiagnosticEvent) -> None:
        """Drive the progress bar, then log the event."""
        if event.name == "graph.started":
            self._bar = tqdm(total=event.fields["pairs"], desc="Comparing figures", unit="pair")
        elif event.name == "graph.pair_done" and self._bar is not None:
            self._bar.update(1)
        elif event.name == "graph.finished" and self._bar is not None:
            self._bar.close()
            self._bar = None
        super().on_event(event)


def _load_border_figures(path: str) -> List[BorderFigure]:
    with open(path) as f:
        data = json.load(f)
    return [BorderFigure(figure=int(item["figure"]), sides=(int(item["sides"][0]), int(item["sides"][1]))) for item in data]


def cmd_build_graph(args: argparse.Namespace) -> int:
    """Build and save the candidate graph."""
    figures = load_figures(args.figures)
    border_figures = _load_border_figures(args.border_figures) if args.border_figures else None
    graph = build_graph(figures, border_figures=border_figures, workers=args.workers, observer=TqdmObserver())
    save_graph(graph, args.graph)
    logger.info("Saved %d edges for %d figures to %s", len(graph.all_edges), graph.n, args.graph)
    return 0


def cmd_solve(args: argparse.Namespace) -> int:
    """Assemble a layout and save it."""
    figures = load_figures(args.figures)
    graph = load_graph(args.graph)
    solver = solve_graph if args.strategy == "fours" else solve_graph_simple
    positions = solver(graph, figures, max_score=args.max_score, observer=LoggingObserver())
    save_solution(positions, args.solution)
    placed = sum(pos is not None for pos in positions)
    logger.info("Placed %d of %d figures, saved to %s", placed, len(positions), args.solution)
    return 0


def cmd_pair(args: argparse.Namespace) -> int:
    """Print a pair of sides aligned from the anchors stored in the graph."""
    figures = load_figures(args.figures)
    graph = load_graph(args.graph)
    graph.check_figures(figures)
    s1, s2 = Side(args.fig1, args.side1), Side(args.fig2, args.side2)
    anchors = graph.anchors(s1, s2)
    if anchors is None and graph.anchors(s2, s1) is not None:
        s1, s2 = s2, s1
        anchors = graph.anchors(s1, s2)
    if anchors is None:
        logger.error("No edge between %s and %s", s1, s2)
        return 1
    aligned = pose_from_anchors(figures[s2.fig], *anchors)
    result = {
        "score": graph.score(s1, s2),
        "lhs": {"figure": s1.fig, "side": s1.side, "border": figures[s1.fig].border.tolist()},
        "rhs": {"figure": s2.fig, "side": s2.side, "border": aligned.tolist()},
    }
    json.dump(result, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(description="Match puzzle piece borders and assemble a layout")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug events")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build-graph", help="Compare all figure sides")
    build.add_argument("figures", help="Figure set JSON")
    build.add_argument("graph", help="Output graph JSON")
    build.add_argument("--workers", type=int, default=None, help="Worker processes (default: settings)")
    build.add_argument("--border-figures", default=None, help="JSON list of {figure, sides} frame pieces")
    build.set_defaults(func=cmd_build_graph)

    solve = subparsers.add_parser("solve", help="Assemble figures from a graph")
    solve.add_argument("figures", help="Figure set JSON")
    solve.add_argument("graph", help="Graph JSON")
    solve.add_argument("solution", help="Output solution JSON")
    solve.add_argument("--strategy", choices=["greedy", "fours"], default="fours", help="Seeding strategy")
    solve.add_argument("--max-score", type=float, default=None, help="Seeding acceptance threshold")
    solve.set_defaults(func=cmd_solve)

    pair = subparsers.add_parser("pair", help="Show one aligned pair of sides")
    pair.add_argument("figures", help="Figure set JSON")
    pair.add_argument("graph", help="Graph JSON")
    for name in ("fig1", "side1", "fig2", "side2"):
        pair.add_argument(name, type=int)
    pair.set_defaults(func=cmd_pair)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the command line interface."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.debug("Settings: %s", get_settings().model_dump())
    try:
        return args.func(args)
    except PuzzleAssemblyError as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
