"""Visibility Bounded Context - Value Objects.

Plain serializable values that cross process or device boundaries: the
observer, the quadrant work assignment, the work unit shipped to a worker
and the visibility grid it sends back. None of them carries display state.

Grid coordinates: an observer at ``(x, y)`` indexes ``elevation[x, y]``
(x = row, y = column). A VisibilityGrid is offset so that the observer
sits at its center cell ``(radius, radius)``.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any

import numpy as np
from numpy.typing import NDArray
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)

from domain.visibility.errors import InvalidPartitionError

SUPPORTED_QUADRANT_COUNTS = (1, 2, 4)


class CellState(IntEnum):
    """Classification of one cell of a VisibilityGrid."""

    OBSERVER = -1
    OCCLUDED = 0
    VISIBLE = 1


def check_partition(number_of_quadrants: int, which_quadrant: int) -> None:
    """Reject assignments that do not map to a well-defined perimeter arc.

    Raises:
        InvalidPartitionError: On an unsupported count or out-of-range quadrant
    """
    if number_of_quadrants not in SUPPORTED_QUADRANT_COUNTS:
        raise InvalidPartitionError(
            f"number_of_quadrants must be one of {SUPPORTED_QUADRANT_COUNTS}, "
            f"got {number_of_quadrants}"
        )
    if not (1 <= which_quadrant <= number_of_quadrants):
        raise InvalidPartitionError(
            f"which_quadrant must be in [1, {number_of_quadrants}], "
            f"got {which_quadrant}"
        )


def _freeze(data: Any, dtype: type) -> NDArray[Any]:
    frozen = np.array(data, dtype=dtype, copy=True, order="C")
    frozen.flags.writeable = False
    return frozen


# ---------------------------------------------------------------------------
# Observer
# ---------------------------------------------------------------------------
class Observer(BaseModel):
    """Viewpoint in grid coordinates (Value Object).

    Invariants:
        OB-1: height >= 0 (meters above local terrain)
        OB-2: radius > 0 (Chebyshev distance in cells)
    """

    x: int  # Row in the elevation grid
    y: int  # Column in the elevation grid
    height: float = Field(ge=0)
    radius: int = Field(gt=0)

    model_config = ConfigDict(frozen=True)

    @property
    def side(self) -> int:
        """Side of the square visibility window: ``2 * radius + 1``."""
        return 2 * self.radius + 1

    @property
    def window_origin(self) -> tuple[int, int]:
        """Elevation-grid index of the visibility window's ``(0, 0)`` cell."""
        return self.x - self.radius, self.y - self.radius


# ---------------------------------------------------------------------------
# QuadrantAssignment
# ---------------------------------------------------------------------------
class QuadrantAssignment(BaseModel):
    """Which arc of the observer's perimeter one compute agent sweeps.

    Invariants:
        QA-1: number_of_quadrants in {1, 2, 4}
        QA-2: 1 <= which_quadrant <= number_of_quadrants
    """

    number_of_quadrants: int = 1
    which_quadrant: int = 1

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_assignment(self) -> "QuadrantAssignment":
        check_partition(self.number_of_quadrants, self.which_quadrant)
        return self


FULL_SWEEP = QuadrantAssignment(number_of_quadrants=1, which_quadrant=1)


# ---------------------------------------------------------------------------
# VisibilityGrid
# ---------------------------------------------------------------------------
class VisibilityGrid(BaseModel):
    """Per-cell visibility around one observer (Value Object).

    ``data`` is an int8 ``(2r+1) x (2r+1)`` array of CellState values,
    read-only once constructed. ``assignments`` lists the quadrants whose
    sweeps contributed; a grid is complete when they cover the perimeter.
    """

    data: NDArray[np.int8]
    observer: Observer
    assignments: tuple[QuadrantAssignment, ...]

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @field_validator("data", mode="before")
    @classmethod
    def coerce_data(cls, value: Any) -> Any:
        # JSON payloads carry nested lists
        if isinstance(value, np.ndarray):
            return value
        return np.asarray(value, dtype=np.int8)

    @field_serializer("data")
    def serialize_data(self, data: NDArray[np.int8]) -> list[list[int]]:
        return data.tolist()

    @model_validator(mode="after")
    def validate_grid(self) -> "VisibilityGrid":
        side = self.observer.side
        if self.data.shape != (side, side):
            raise ValueError(
                f"Data shape {self.data.shape} does not match window {side}x{side}"
            )
        if not np.isin(self.data, [state.value for state in CellState]).all():
            raise ValueError("Data contains values outside {-1, 0, 1}")
        if not self.assignments:
            raise ValueError("At least one quadrant assignment is required")
        counts = {a.number_of_quadrants for a in self.assignments}
        if len(counts) != 1:
            raise ValueError(f"Mixed quadrant counts: {sorted(counts)}")
        if len(set(self.assignments)) != len(self.assignments):
            raise ValueError("Duplicate quadrant assignments")
        object.__setattr__(self, "data", _freeze(self.data, np.int8))
        return self

    @property
    def number_of_quadrants(self) -> int:
        return self.assignments[0].number_of_quadrants

    @property
    def is_complete(self) -> bool:
        """True once every quadrant of the partition has contributed."""
        return len(self.assignments) == self.number_of_quadrants

    def cell(self, i: int, j: int) -> CellState:
        return CellState(int(self.data[i, j]))

    def visible_count(self) -> int:
        return int(np.count_nonzero(self.data == CellState.VISIBLE))

    def to_global_index(self, i: int, j: int) -> tuple[int, int]:
        """Map a window cell to its elevation-grid index."""
        row0, col0 = self.observer.window_origin
        return row0 + i, col0 + j


# ---------------------------------------------------------------------------
# ViewshedWork
# ---------------------------------------------------------------------------
class ViewshedWork(BaseModel):
    """Self-contained unit of work for a remote sweep (Value Object).

    Carries only the elevation window a sweep can touch, with the observer
    re-based into that window. ``origin`` is the window's offset in the
    source grid; results are indexed relative to the observer either way.
    """

    observer: Observer
    assignment: QuadrantAssignment
    elevation: NDArray[np.int16]
    origin: tuple[int, int] = (0, 0)

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @field_validator("elevation", mode="before")
    @classmethod
    def coerce_elevation(cls, value: Any) -> Any:
        if isinstance(value, np.ndarray):
            return value
        return np.asarray(value, dtype=np.int16)

    @field_serializer("elevation")
    def serialize_elevation(self, elevation: NDArray[np.int16]) -> list[list[int]]:
        return elevation.tolist()

    @model_validator(mode="after")
    def validate_work(self) -> "ViewshedWork":
        if self.elevation.ndim != 2:
            raise ValueError(f"Elevation must be 2D, got {self.elevation.ndim}D")
        rows, cols = self.elevation.shape
        if not (0 <= self.observer.x < rows and 0 <= self.observer.y < cols):
            raise ValueError(
                f"Observer ({self.observer.x}, {self.observer.y}) outside "
                f"elevation window {self.elevation.shape}"
            )
        object.__setattr__(self, "elevation", _freeze(self.elevation, np.int16))
        return self
