"""Exception hierarchy for the matching and assembly engine."""


class PuzzleAssemblyError(Exception):
    """Base class for all errors raised by puzzle_assembly."""


class PreconditionError(PuzzleAssemblyError, ValueError):
    """A caller handed the engine inputs it must never compute with."""


class GraphMismatchError(PreconditionError):
    """The candidate graph was built from a different figure set."""


class DegenerateAnchorsError(PreconditionError):
    """Two anchor points that should define a transform coincide."""


class DegenerateCoordinateSystemError(PreconditionError):
    """A coordinate system was requested with a zero-length direction."""


class RecordFormatError(PuzzleAssemblyError, ValueError):
    """A persisted figure set, graph or solution has the wrong shape."""
