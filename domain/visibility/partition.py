"""Visibility Bounded Context - Partition & Merge Protocol.

The observer's perimeter square is walked clockwise from its lower-left
corner as four edges:

1. lower-left -> top-left   (corners included)
2. top-left -> top-right    (corners excluded)
3. top-right -> lower-right (corners included)
4. lower-right -> lower-left (corners excluded)

A partition into N quadrants hands each quadrant ``4 / N`` consecutive
edges, so every split covers the same ``8 * radius`` cells exactly once.
Partial grids merge cell by cell with "visible wins".
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

import numpy as np

from domain.visibility.errors import (
    GridShapeMismatchError,
    IncompleteMergeError,
    MergeConflictError,
)
from domain.visibility.rasterizer import Cell
from domain.visibility.value_objects import (
    FULL_SWEEP,
    CellState,
    Observer,
    QuadrantAssignment,
    VisibilityGrid,
    check_partition,
)

logger = logging.getLogger(__name__)

EDGE_COUNT = 4


# ---------------------------------------------------------------------------
# Perimeter
# ---------------------------------------------------------------------------
def perimeter_edges(x: int, y: int, radius: int) -> tuple[list[Cell], ...]:
    """The four perimeter edges around ``(x, y)`` in clockwise order."""
    r = radius
    lower_left_to_top_left = [(a, y - r) for a in range(x - r, x + r + 1)]
    top_left_to_top_right = [(x + r, b) for b in range(y - r + 1, y + r)]
    top_right_to_lower_right = [(a, y + r) for a in range(x + r, x - r - 1, -1)]
    lower_right_to_lower_left = [(x - r, b) for b in range(y + r - 1, y - r, -1)]
    return (
        lower_left_to_top_left,
        top_left_to_top_right,
        top_right_to_lower_right,
        lower_right_to_lower_left,
    )


def perimeter_cells(
    observer: Observer, assignment: QuadrantAssignment = FULL_SWEEP
) -> list[Cell]:
    """Perimeter cells belonging to one quadrant, in traversal order.

    Raises:
        InvalidPartitionError: If the assignment is not a supported split
    """
    check_partition(assignment.number_of_quadrants, assignment.which_quadrant)
    edges = perimeter_edges(observer.x, observer.y, observer.radius)
    per_quadrant = EDGE_COUNT // assignment.number_of_quadrants
    start = (assignment.which_quadrant - 1) * per_quadrant

    cells: list[Cell] = []
    for edge in edges[start : start + per_quadrant]:
        cells.extend(edge)
    return cells


def partition(number_of_quadrants: int) -> list[QuadrantAssignment]:
    """Split a full sweep into independent work units.

    Raises:
        InvalidPartitionError: If the count is not 1, 2 or 4
    """
    check_partition(number_of_quadrants, 1)
    return [
        QuadrantAssignment(number_of_quadrants=number_of_quadrants, which_quadrant=q)
        for q in range(1, number_of_quadrants + 1)
    ]


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------
def merge_visibility_grids(grids: Iterable[VisibilityGrid]) -> VisibilityGrid:
    """Combine partial grids of one observer: a cell is visible if any is.

    Cells not visible anywhere keep the first grid's state. Merging a grid
    with itself returns an equal grid.

    Raises:
        ValueError: If no grid is given
        GridShapeMismatchError: If the grids belong to different observers
        MergeConflictError: If the grids come from different partitions
    """
    grids = list(grids)
    if not grids:
        raise ValueError("Nothing to merge")

    first = grids[0]
    for grid in grids[1:]:
        if grid.observer != first.observer:
            raise GridShapeMismatchError(
                f"Observer {grid.observer} does not match {first.observer}"
            )
        if grid.number_of_quadrants != first.number_of_quadrants:
            raise MergeConflictError(
                f"Cannot merge a {grid.number_of_quadrants}-quadrant result into a "
                f"{first.number_of_quadrants}-quadrant sweep"
            )

    merged = np.array(first.data, copy=True)
    for grid in grids[1:]:
        merged[grid.data == CellState.VISIBLE] = CellState.VISIBLE

    assignments = {a for grid in grids for a in grid.assignments}
    return VisibilityGrid(
        data=merged,
        observer=first.observer,
        assignments=tuple(sorted(assignments, key=lambda a: a.which_quadrant)),
    )


class ViewshedMerger:
    """Counting join over the partial results of one partitioned sweep.

    Partials may arrive in any order; ``snapshot()`` is usable for
    incremental display, ``result()`` only once every quadrant reported.
    Owned by a single caller; not shared between threads.
    """

    def __init__(self, observer: Observer, number_of_quadrants: int) -> None:
        check_partition(number_of_quadrants, 1)
        self.observer = observer
        self.number_of_quadrants = number_of_quadrants
        self._received: set[int] = set()
        self._merged: VisibilityGrid | None = None

    @property
    def received(self) -> int:
        return len(self._received)

    @property
    def missing(self) -> list[int]:
        """Quadrants that have not reported yet."""
        return [
            q for q in range(1, self.number_of_quadrants + 1) if q not in self._received
        ]

    @property
    def is_complete(self) -> bool:
        return self.received == self.number_of_quadrants

    def add(self, partial: VisibilityGrid) -> VisibilityGrid:
        """Fold one partial result in and return the merged-so-far grid.

        Raises:
            GridShapeMismatchError: If the partial is for another observer
            MergeConflictError: If it belongs to another split or is a duplicate
        """
        if partial.observer != self.observer:
            raise GridShapeMismatchError(
                f"Observer {partial.observer} does not match {self.observer}"
            )
        if partial.number_of_quadrants != self.number_of_quadrants:
            raise MergeConflictError(
                f"Expected {self.number_of_quadrants}-quadrant results, "
                f"got {partial.number_of_quadrants}"
            )
        quadrants = {a.which_quadrant for a in partial.assignments}
        duplicates = quadrants & self._received
        if duplicates:
            raise MergeConflictError(f"Quadrant(s) {sorted(duplicates)} already merged")

        if self._merged is None:
            self._merged = partial
        else:
            self._merged = merge_visibility_grids([self._merged, partial])
        self._received |= quadrants

        logger.debug(
            "Merged quadrant(s) %s: %d of %d received",
            sorted(quadrants),
            self.received,
            self.number_of_quadrants,
        )
        if self.is_complete:
            logger.info(
                "Viewshed complete: %d quadrant(s), %d visible cells",
                self.number_of_quadrants,
                self._merged.visible_count(),
            )
        return self._merged

    def snapshot(self) -> VisibilityGrid | None:
        """Merged-so-far grid, or None before the first partial arrives."""
        return self._merged

    def result(self) -> VisibilityGrid:
        """The complete merged grid.

        Raises:
            IncompleteMergeError: If some quadrant has not reported
        """
        if not self.is_complete or self._merged is None:
            raise IncompleteMergeError(self.received, self.number_of_quadrants)
        return self._merged
