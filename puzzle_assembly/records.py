"""Persisted shapes of figure sets, candidate graphs, and solutions.

All records are JSON. Graphs keep the field names ``n``, ``all_edges`` and
``parsed_puzzles_hash``; a solution is a list with one entry per figure, either
null or the figure's placed border as ``[x, y]`` pairs.
"""

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np
from pydantic import BaseModel, Field, TypeAdapter, ValidationError, model_validator

from .errors import RecordFormatError
from .graph import Graph
from .models import SIDES_PER_FIGURE, Edge, Figure

Point2 = Tuple[float, float]


class FigureRecord(BaseModel):
    """One traced piece."""

    border: List[Point2] = Field(..., min_length=1, description="Cyclic border points")
    corners: List[int] = Field(..., min_length=4, max_length=4, description="Indices of the four corners")

    @model_validator(mode="after")
    def check_corners(self) -> "FigureRecord":
        """Corner indices must point into the border."""
        if any(c < 0 or c >= len(self.border) for c in self.corners):
            raise ValueError(f"corner indices {self.corners} out of range for {len(self.border)} border points")
        return self

    def to_figure(self) -> Figure:
        """Build the in-memory figure."""
        return Figure(border=np.array(self.border, dtype=np.float64), corners=tuple(self.corners))

    @classmethod
    def from_figure(cls, figure: Figure) -> "FigureRecord":
        """Serialize a figure."""
        return cls(border=[tuple(p) for p in figure.border.tolist()], corners=list(figure.corners))


class FigureSetRecord(BaseModel):
    """The image pipeline's output: every figure of one photograph."""

    figures: List[FigureRecord]


class EdgeRecord(BaseModel):
    """Persisted :class:`~puzzle_assembly.models.Edge`."""

    fig1: int = Field(..., ge=0)
    fig2: int = Field(..., ge=0)
    side1: int = Field(..., ge=0, lt=SIDES_PER_FIGURE)
    side2: int = Field(..., ge=0, lt=SIDES_PER_FIGURE)
    score: float
    existing_edge: bool
    base_p1: Point2
    base_p2: Point2

    def to_edge(self) -> Edge:
        """Build the in-memory edge (rejects coinciding anchors)."""
        return Edge(**self.model_dump())


class GraphRecord(BaseModel):
    """Persisted :class:`~puzzle_assembly.graph.Graph`."""

    n: int = Field(..., ge=0)
    all_edges: List[EdgeRecord]
    parsed_puzzles_hash: int = Field(..., ge=0, lt=2**64)

    @model_validator(mode="after")
    def check_figure_ids(self) -> "GraphRecord":
        """Every edge must reference figures below ``n``."""
        for edge in self.all_edges:
            if edge.fig1 >= self.n or edge.fig2 >= self.n:
                raise ValueError(f"edge {edge.fig1}-{edge.fig2} references a figure outside 0..{self.n - 1}")
        return self

    def to_graph(self) -> Graph:
        """Build the in-memory graph."""
        return Graph(
            n=self.n,
            all_edges=[edge.to_edge() for edge in self.all_edges],
            parsed_puzzles_hash=self.parsed_puzzles_hash,
        )

    @classmethod
    def from_graph(cls, graph: Graph) -> "GraphRecord":
        """Serialize a graph."""
        return cls(
            n=graph.n,
            all_edges=[EdgeRecord(**asdict(edge)) for edge in graph.all_edges],
            parsed_puzzles_hash=graph.parsed_puzzles_hash,
        )


SolutionRecord = TypeAdapter(List[Optional[List[Point2]]])


def _read_json(path: str | Path) -> Any:
    with open(path) as f:
        return json.load(f)


def _write_json(data: Any, path: str | Path) -> None:
    with open(path, "w") as f:
        json.dump(data, f, indent=2)
        f.write("\n")


def load_figures(path: str | Path) -> List[Figure]:
    """Load a figure set written by the image pipeline."""
    try:
        record = FigureSetRecord.model_validate(_read_json(path))
    except ValidationError as e:
        raise RecordFormatError(f"Malformed figure set {path}: {e}") from e
    return [figure.to_figure() for figure in record.figures]


def save_figures(figures: Sequence[Figure], path: str | Path) -> None:
    """Write a figure set."""
    record = FigureSetRecord(figures=[FigureRecord.from_figure(f) for f in figures])
    _write_json(record.model_dump(), path)


def load_graph(path: str | Path) -> Graph:
    """Load a candidate graph."""
    try:
        record = GraphRecord.model_validate(_read_json(path))
    except ValidationError as e:
        raise RecordFormatError(f"Malformed graph {path}: {e}") from e
    return record.to_graph()


def save_graph(graph: Graph, path: str | Path) -> None:
    """Write a candidate graph."""
    _write_json(GraphRecord.from_graph(graph).model_dump(), path)


def load_solution(path: str | Path, expected_n: int) -> List[Optional[np.ndarray]]:
    """Load placed borders, one entry per figure.

    Raises:
        RecordFormatError: If the file is malformed or its length is not ``expected_n``.
    """
    try:
        entries = SolutionRecord.validate_python(_read_json(path))
    except ValidationError as e:
        raise RecordFormatError(f"Malformed solution {path}: {e}") from e
    if len(entries) != expected_n:
        raise RecordFormatError(f"Solution {path} has {len(entries)} entries, puzzle has {expected_n} figures")
    return [None if entry is None else np.array(entry, dtype=np.float64).reshape(-1, 2) for entry in entries]


def save_solution(positions: Sequence[Optional[np.ndarray]], path: str | Path) -> None:
    """Write placed borders."""
    _write_json([None if pos is None else np.asarray(pos).tolist() for pos in positions], path)
