"""Tests for persisted figure sets, graphs and solutions."""

import json

import numpy as np
import pytest

from puzzle_assembly.errors import RecordFormatError
from puzzle_assembly.graph import Graph
from puzzle_assembly.models import Edge, figures_hash
from puzzle_assembly.records import (
    load_figures,
    load_graph,
    load_solution,
    save_figures,
    save_graph,
    save_solution,
)


def test_figures_round_trip(tmp_path, solved_figures):
    """Test that a saved figure set loads with the same fingerprint."""
    path = tmp_path / "figures.json"
    save_figures(solved_figures, path)
    loaded = load_figures(path)

    assert len(loaded) == 4
    assert loaded[2].corners == solved_figures[2].corners
    assert figures_hash(loaded) == figures_hash(solved_figures)


def test_figures_with_bad_corners(tmp_path):
    """Test that corner indices outside the border are rejected."""
    path = tmp_path / "figures.json"
    path.write_text(json.dumps({"figures": [{"border": [[0, 0], [1, 0], [1, 1]], "corners": [0, 1, 2, 3]}]}))
    with pytest.raises(RecordFormatError):
        load_figures(path)


def test_graph_round_trip(tmp_path):
    """Test that edges and the fingerprint survive saving."""
    graph = Graph(
        n=3,
        all_edges=[
            Edge(0, 1, 1, 3, 0.125, False, (10.5, -2.0), (60.25, 33.0)),
            Edge(1, 2, 0, 2, 7.5, True, (0.0, 0.0), (1.0, 1.0)),
        ],
        parsed_puzzles_hash=2**64 - 5,
    )
    path = tmp_path / "graph.json"
    save_graph(graph, path)

    data = json.loads(path.read_text())
    assert set(data) == {"n", "all_edges", "parsed_puzzles_hash"}

    loaded = load_graph(path)
    assert loaded.n == 3
    assert loaded.parsed_puzzles_hash == graph.parsed_puzzles_hash
    assert loaded.all_edges == graph.all_edges


def test_graph_edge_outside_figure_range(tmp_path):
    """Test that edges must reference known figures."""
    path = tmp_path / "graph.json"
    edge = {
        "fig1": 0,
        "fig2": 5,
        "side1": 0,
        "side2": 1,
        "score": 1.0,
        "existing_edge": False,
        "base_p1": [0.0, 0.0],
        "base_p2": [1.0, 0.0],
    }
    path.write_text(json.dumps({"n": 2, "all_edges": [edge], "parsed_puzzles_hash": 1}))
    with pytest.raises(RecordFormatError):
        load_graph(path)


def test_solution_round_trip(tmp_path):
    """Test that placed and unplaced figures are both kept."""
    positions = [np.array([[0.0, 1.0], [2.0, 3.0]]), None, np.array([[5.0, 5.0]])]
    path = tmp_path / "solution.json"
    save_solution(positions, path)

    loaded = load_solution(path, expected_n=3)
    assert loaded[1] is None
    assert np.array_equal(loaded[0], positions[0])
    assert loaded[2].shape == (1, 2)


def test_solution_length_mismatch(tmp_path):
    """Test that a solution for another figure count is refused."""
    path = tmp_path / "solution.json"
    save_solution([None, None], path)
    with pytest.raises(RecordFormatError):
        load_solution(path, expected_n=3)


def test_malformed_solution(tmp_path):
    """Test that a solution entry must be a list of points."""
    path = tmp_path / "solution.json"
    path.write_text(json.dumps([[[0.0, 1.0, 2.0]]]))
    with pytest.raises(RecordFormatError):
        load_solution(path, expected_n=1)
