"""Visibility Bounded Context - Domain Services.

Radial-sweep viewshed (Franklin & Ray style, as summarized in section 5.1 of
Andrade et al., "Efficient viewshed computation on terrain in external
memory", GeoInformatica 2011):

1. The observer's eye sits ``height`` meters above its own cell.
2. Walk the perimeter of the ``(2r+1)`` square centered on the observer.
3. For each perimeter cell, rasterize the sight line from the observer.
4. Along that line keep the greatest slope seen so far, ``mu = -inf``;
   a cell whose slope is below ``mu`` is hidden, otherwise it is visible
   and ``mu`` becomes its slope.

Each probe keeps its own horizon. A cell reached by several probes keeps
the verdict of the last one in perimeter order.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import Executor, as_completed
from typing import Union

import numpy as np
from numpy.typing import NDArray

from domain.terrain.services import cell_size_at
from domain.terrain.errors import UnsupportedRegionError
from domain.terrain.value_objects import (
    VOID,
    BoundingBox,
    ElevationDataGrid,
    GeoPoint,
    lattice_edge,
    lattice_index,
)
from domain.visibility.errors import (
    ObserverOutOfBoundsError,
    VoidObserverError,
    WindowOutOfBoundsError,
)
from domain.visibility.partition import ViewshedMerger, partition, perimeter_cells
from domain.visibility.rasterizer import bresenham_line
from domain.visibility.value_objects import (
    FULL_SWEEP,
    CellState,
    Observer,
    QuadrantAssignment,
    ViewshedWork,
    VisibilityGrid,
    check_partition,
)

logger = logging.getLogger(__name__)

Elevation = Union[ElevationDataGrid, NDArray[np.generic]]


def _elevation_array(elevation: Elevation) -> NDArray[np.float64]:
    data = elevation.data if isinstance(elevation, ElevationDataGrid) else elevation
    array = np.asarray(data, dtype=np.float64)
    if array.ndim != 2:
        raise ValueError(f"Elevation must be 2D, got {array.ndim}D")
    return array


def _check_observer(data: NDArray[np.float64], observer: Observer) -> float:
    """Return the observer's ground elevation after validating its cell."""
    rows, cols = data.shape
    if not (0 <= observer.x < rows and 0 <= observer.y < cols):
        raise ObserverOutOfBoundsError(observer.x, observer.y, (rows, cols))
    ground = float(data[observer.x, observer.y])
    if math.isnan(ground) or ground == VOID:
        raise VoidObserverError(
            f"Observer ({observer.x}, {observer.y}) stands on a VOID sample"
        )
    return ground


# ---------------------------------------------------------------------------
# Main Service: sweep
# ---------------------------------------------------------------------------
def sweep(
    elevation: Elevation,
    observer: Observer,
    assignment: QuadrantAssignment = FULL_SWEEP,
) -> VisibilityGrid:
    """Classify every cell on the quadrant's sight lines.

    The slope is the raw ``rise / run`` ratio (no arctangent) and ties are
    visible: a cell is hidden only when its slope is strictly below the
    horizon. Sight-line cells outside the elevation grid are skipped and
    stay OCCLUDED. VOID samples enter the slope as their raw value, so a
    VOID cell met while the horizon is still ``-inf`` reads as VISIBLE.

    Args:
        elevation: ElevationDataGrid or 2D array indexed ``[x, y]``
        observer: Observer in grid coordinates
        assignment: Which perimeter arc to sweep

    Returns:
        VisibilityGrid of side ``2 * radius + 1`` centered on the observer

    Raises:
        InvalidPartitionError: Unsupported assignment (before any work)
        ObserverOutOfBoundsError: Observer cell outside the grid
        VoidObserverError: Observer cell holds no data
    """
    check_partition(assignment.number_of_quadrants, assignment.which_quadrant)
    data = _elevation_array(elevation)
    ground = _check_observer(data, observer)

    rows, cols = data.shape
    obs_x, obs_y = observer.x, observer.y
    eye_z = ground + observer.height
    row0, col0 = observer.window_origin

    visibility = np.zeros((observer.side, observer.side), dtype=np.int8)

    for target_x, target_y in perimeter_cells(observer, assignment):
        greatest_slope = -math.inf
        # First cell is the observer itself (distance 0)
        for x, y in bresenham_line(obs_x, obs_y, target_x, target_y)[1:]:
            if not (0 <= x < rows and 0 <= y < cols):
                continue
            distance = math.sqrt((x - obs_x) ** 2 + (y - obs_y) ** 2)
            slope = (data[x, y] - eye_z) / distance
            if slope < greatest_slope:
                visibility[x - row0, y - col0] = CellState.OCCLUDED
            else:
                greatest_slope = slope
                visibility[x - row0, y - col0] = CellState.VISIBLE

    visibility[observer.radius, observer.radius] = CellState.OBSERVER

    return VisibilityGrid(data=visibility, observer=observer, assignments=(assignment,))


# ---------------------------------------------------------------------------
# Distributed work units
# ---------------------------------------------------------------------------
def extract_work(
    elevation: Elevation,
    observer: Observer,
    assignment: QuadrantAssignment = FULL_SWEEP,
) -> ViewshedWork:
    """Cut the elevation window a sweep can reach and package it for a worker.

    The window is the ``(2r+1)`` square around the observer, clipped to the
    grid; sweeping it gives the same result as sweeping the whole grid.
    """
    check_partition(assignment.number_of_quadrants, assignment.which_quadrant)
    data = _elevation_array(elevation)
    _check_observer(data, observer)

    rows, cols = data.shape
    r = observer.radius
    top, left = max(0, observer.x - r), max(0, observer.y - r)
    bottom, right = min(rows, observer.x + r + 1), min(cols, observer.y + r + 1)

    local = Observer(
        x=observer.x - top,
        y=observer.y - left,
        height=observer.height,
        radius=r,
    )
    return ViewshedWork(
        observer=local,
        assignment=assignment,
        elevation=np.asarray(data[top:bottom, left:right], dtype=np.int16),
        origin=(top, left),
    )


def run_work(work: ViewshedWork) -> VisibilityGrid:
    """Sweep a shipped work unit; the result refers to the source-grid observer."""
    partial = sweep(work.elevation, work.observer, work.assignment)
    top, left = work.origin
    source_observer = Observer(
        x=work.observer.x + top,
        y=work.observer.y + left,
        height=work.observer.height,
        radius=work.observer.radius,
    )
    return VisibilityGrid(
        data=partial.data,
        observer=source_observer,
        assignments=partial.assignments,
    )


def compute_viewshed(
    elevation: Elevation,
    observer: Observer,
    number_of_quadrants: int = 1,
    executor: Executor | None = None,
) -> VisibilityGrid:
    """Run every quadrant of a split and merge the partial grids.

    Quadrants run serially, or concurrently on ``executor`` when given
    (threads or processes: each sweep only reads the elevation). Results
    are merged as they complete; the call returns once all have reported.

    Raises:
        InvalidPartitionError: Unsupported quadrant count
        ObserverOutOfBoundsError: Observer cell outside the grid
        VoidObserverError: Observer cell holds no data
    """
    assignments = partition(number_of_quadrants)
    _check_observer(_elevation_array(elevation), observer)
    merger = ViewshedMerger(observer, number_of_quadrants)

    if executor is None:
        for assignment in assignments:
            merger.add(sweep(elevation, observer, assignment))
        return merger.result()

    futures = {
        executor.submit(sweep, elevation, observer, assignment): assignment
        for assignment in assignments
    }
    for future in as_completed(futures):
        assignment = futures[future]
        merger.add(future.result())
        logger.debug(
            "Quadrant %d/%d finished",
            assignment.which_quadrant,
            assignment.number_of_quadrants,
        )
    return merger.result()


# ---------------------------------------------------------------------------
# Geographic inputs
# ---------------------------------------------------------------------------
def radius_in_cells(grid: ElevationDataGrid, point: GeoPoint, distance_m: float) -> int:
    """Viewing radius in cells covering ``distance_m`` around a point.

    Uses the finer of the two cell dimensions so the radius is reached in
    every direction; never less than one cell.

    Raises:
        ValueError: If distance_m is not positive
    """
    return radius_for_distance(point, distance_m, grid.resolution)


def radius_for_distance(point: GeoPoint, distance_m: float, resolution: int) -> int:
    """Same as :func:`radius_in_cells`, before any grid has been assembled."""
    if distance_m <= 0:
        raise ValueError("distance_m must be positive")
    x_m, y_m = cell_size_at(point, resolution - 1)
    return max(1, math.ceil(distance_m / min(x_m, y_m)))


def observer_window_box(point: GeoPoint, radius: int, resolution: int) -> BoundingBox:
    """Lattice-aligned box holding the ``(2r+1)`` window centered on ``point``.

    Assembling exactly this box yields a ``(2r+1, 2r+1)`` grid with the
    point's cell in the middle, whatever the latitude.

    Raises:
        UnsupportedRegionError: Window reaches a pole or the antimeridian
    """
    n = resolution - 1
    lat_k = lattice_index(point.latitude, n)
    lon_k = lattice_index(point.longitude, n)
    min_x = lattice_edge(lon_k - radius, n)
    max_x = lattice_edge(lon_k + radius + 1, n)
    min_y = lattice_edge(lat_k - radius, n)
    max_y = lattice_edge(lat_k + radius + 1, n)
    if min_x < -180 or max_x > 180 or min_y < -90 or max_y > 90:
        raise UnsupportedRegionError(
            f"Window of radius {radius} around "
            f"({point.latitude}, {point.longitude}) leaves the globe"
        )
    return BoundingBox(min_x=min_x, min_y=min_y, max_x=max_x, max_y=max_y)


def check_window(elevation: Elevation, observer: Observer) -> None:
    """Reject observers whose full ``(2r+1)`` window is not inside the grid.

    Raises:
        WindowOutOfBoundsError: Some window cell lies outside the grid
    """
    rows, cols = _elevation_array(elevation).shape
    row0, col0 = observer.window_origin
    side = observer.side
    if row0 < 0 or col0 < 0 or row0 + side > rows or col0 + side > cols:
        raise WindowOutOfBoundsError((row0, col0), side, (rows, cols))


def observer_at(
    grid: ElevationDataGrid, point: GeoPoint, height: float, radius: int
) -> Observer:
    """Translate a geographic viewpoint into grid coordinates.

    Raises:
        PointOutOfBoundsError: If the point is outside the grid
    """
    x, y = grid.coordinate_to_index(point)
    return Observer(x=x, y=y, height=height, radius=radius)
