"""Tests for diagnostic events."""

import logging

from puzzle_assembly.observer import DiagnosticEvent, LoggingObserver, NullObserver, emit


def test_describe():
    """Test the rendered form of an event."""
    assert DiagnosticEvent("graph.finished", fields={"edges": 12}).describe() == "graph.finished edges=12"
    assert DiagnosticEvent("surface.started").describe() == "surface.started"


def test_logging_observer_uses_event_level(caplog):
    """Test that events are logged at their own level."""
    observer = LoggingObserver(logging.getLogger("puzzle_assembly.test"))
    with caplog.at_level(logging.INFO, logger="puzzle_assembly.test"):
        observer.on_event(DiagnosticEvent("seed.four", logging.INFO, {"max_dist": 0.5}))
        observer.on_event(DiagnosticEvent("refine.iteration", logging.DEBUG, {"iteration": 0}))

    assert [r.getMessage() for r in caplog.records] == ["seed.four max_dist=0.5"]
    assert caplog.records[0].levelno == logging.INFO


def test_emit_defaults_to_logging(caplog):
    """Test that events without an observer go to the module logger."""
    with caplog.at_level(logging.WARNING, logger="puzzle_assembly.observer"):
        emit(None, "surface.unaligned", logging.WARNING, parent=0, figure=3)
    assert "surface.unaligned parent=0 figure=3" in caplog.text


def test_null_observer_drops_events(caplog):
    """Test that the null observer logs nothing."""
    with caplog.at_level(logging.DEBUG):
        emit(NullObserver(), "graph.started", logging.INFO, pairs=3)
    assert caplog.records == []


def test_emit_passes_fields(observer):
    """Test that keyword fields reach the observer."""
    emit(observer, "graph.pair_done", fig1=0, fig2=2, edges=4)
    event = observer.events[0]
    assert event.name == "graph.pair_done"
    assert event.level == logging.DEBUG
    assert dict(event.fields) == {"fig1": 0, "fig2": 2, "edges": 4}
