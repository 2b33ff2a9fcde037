"""Visibility Bounded Context - Error Hierarchy.

Custom exceptions for viewshed sweeps and quadrant merging.
"""

from __future__ import annotations


class VisibilityError(Exception):
    """Base error for visibility operations."""


class InvalidPartitionError(VisibilityError, ValueError):
    """Quadrant assignment cannot be mapped to a perimeter arc.

    Raised when ``number_of_quadrants`` is not 1, 2 or 4, or when
    ``which_quadrant`` is outside ``[1, number_of_quadrants]``.
    """


class ObserverOutOfBoundsError(VisibilityError):
    """Observer cell does not index into the elevation grid.

    Attributes:
        x: Observer row
        y: Observer column
        shape: Elevation grid shape
    """

    def __init__(self, x: int, y: int, shape: tuple[int, int]) -> None:
        self.x = x
        self.y = y
        self.shape = shape
        super().__init__(f"Observer ({x}, {y}) outside grid of shape {shape}")


class VoidObserverError(VisibilityError):
    """Observer stands on a VOID sample; its eye elevation is undefined."""


class GridShapeMismatchError(VisibilityError):
    """Partial visibility grids do not describe the same observer window."""


class MergeConflictError(VisibilityError):
    """A partial result was received twice or does not belong to the sweep."""


class IncompleteMergeError(VisibilityError):
    """Final result requested before every quadrant reported."""

    def __init__(self, received: int, expected: int) -> None:
        self.received = received
        self.expected = expected
        super().__init__(f"Received {received} of {expected} quadrant results")


class WindowOutOfBoundsError(VisibilityError):
    """Observer window ``(x - r .. x + r, y - r .. y + r)`` leaves the grid.

    Cells outside the grid would read as occluded, so callers that need a
    full viewshed reject such windows up front.
    """

    def __init__(self, origin: tuple[int, int], side: int, shape: tuple[int, int]) -> None:
        self.origin = origin
        self.side = side
        self.shape = shape
        super().__init__(
            f"Window at {origin} of side {side} does not fit grid of shape {shape}"
        )
