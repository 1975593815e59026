"""Diagnostic events emitted while building graphs and assembling puzzles.

The engine never writes progress output itself. Long-running operations take an
``observer`` and report what they are doing through it; by default events go to
the standard ``logging`` module.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiagnosticEvent:
    """A named, leveled progress event with structured fields."""

    name: str
    level: int = logging.DEBUG
    fields: Mapping[str, Any] = field(default_factory=dict)

    def describe(self) -> str:
        """Render the event as ``name key=value ...``."""
        rendered = " ".join(f"{key}={value}" for key, value in self.fields.items())
        return f"{self.name} {rendered}" if rendered else self.name


class AssemblyObserver(Protocol):
    """Receiver for diagnostic events."""

    def on_event(self, event: DiagnosticEvent) -> None:
        """Handle one event."""
        ...


class NullObserver:
    """Observer that drops every event."""

    def on_event(self, event: DiagnosticEvent) -> None:
        """Ignore the event."""


class LoggingObserver:
    """Observer that forwards events to a logger at the event's level."""

    def __init__(self, target: Optional[logging.Logger] = None):
        """Initialize the observer.

        Args:
            target: Logger to write to, defaults to this module's logger.
        """
        self._logger = target or logger

    def on_event(self, event: DiagnosticEvent) -> None:
        """Log the event if its level is enabled."""
        if self._logger.isEnabledFor(event.level):
            self._logger.log(event.level, "%s", event.describe())


def emit(observer: Optional[AssemblyObserver], name: str, level: int = logging.DEBUG, **fields: Any) -> None:
    """Send an event to ``observer``, or to a :class:`LoggingObserver` when none is given."""
    (observer or LoggingObserver()).on_event(DiagnosticEvent(name, level, fields))
