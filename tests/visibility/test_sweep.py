"""Tests for the radial sweep, work units and the quadrant driver.

Visibility windows are indexed ``[i, j]`` with the observer at
``(radius, radius)``; window cell ``(i, j)`` is elevation cell
``(x - radius + i, y - radius + j)``.
"""

from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from domain.terrain.errors import PointOutOfBoundsError, UnsupportedRegionError
from domain.terrain.services import cell_size_m
from domain.terrain.value_objects import VOID, GeoPoint
from domain.visibility.errors import (
    InvalidPartitionError,
    ObserverOutOfBoundsError,
    VoidObserverError,
    WindowOutOfBoundsError,
)
from domain.visibility.partition import merge_visibility_grids, partition
from domain.visibility.services import (
    check_window,
    compute_viewshed,
    extract_work,
    observer_at,
    observer_window_box,
    radius_for_distance,
    radius_in_cells,
    run_work,
    sweep,
)
from domain.visibility.value_objects import (
    CellState,
    Observer,
    QuadrantAssignment,
    ViewshedWork,
)
from tests.conftest_utils import make_grid

# Hidden cells: straight behind the pillar at (3, 4) and behind (4, 4)
TWO_PILLARS_EXPECTED = np.array(
    [
        [1, 1, 1, 1, 1],
        [1, 1, 1, 1, 1],
        [1, 1, -1, 1, 0],
        [1, 1, 1, 1, 0],
        [1, 1, 1, 1, 0],
    ],
    dtype=np.int8,
)


# ===========================================================================
# Known scenes
# ===========================================================================
def test_two_pillars_known_result(two_pillars, pillar_observer):
    grid = sweep(two_pillars, pillar_observer)

    np.testing.assert_array_equal(grid.data, TWO_PILLARS_EXPECTED)
    assert grid.observer == pillar_observer
    assert grid.is_complete


def test_pillars_themselves_are_visible(two_pillars, pillar_observer):
    grid = sweep(two_pillars, pillar_observer)

    # Elevation (3, 4) and (4, 4) in window coordinates
    assert grid.cell(2, 3) == CellState.VISIBLE
    assert grid.cell(3, 3) == CellState.VISIBLE


def test_flat_terrain_everything_visible(flat_plain):
    observer = Observer(x=20, y=20, height=2, radius=10)

    grid = sweep(flat_plain, observer)

    expected = np.ones((21, 21), dtype=np.int8)
    expected[10, 10] = CellState.OBSERVER
    np.testing.assert_array_equal(grid.data, expected)
    assert grid.visible_count() == 21 * 21 - 1


def test_zero_height_on_flat_terrain_ties_are_visible(flat_plain):
    observer = Observer(x=20, y=20, height=0, radius=5)

    grid = sweep(flat_plain, observer)

    assert grid.visible_count() == 11 * 11 - 1


def test_wall_hides_lower_cells_behind_it():
    data = np.zeros((21, 21), dtype=np.int16)
    data[:, 13] = 100
    observer = Observer(x=10, y=10, height=1, radius=8)

    grid = sweep(data, observer)

    # Window column j maps to elevation column 2 + j
    behind = grid.data[:, 12:]
    in_front = grid.data[:, :11]
    # Straight ahead the wall itself is seen
    assert grid.cell(8, 11) == CellState.VISIBLE
    assert (behind == CellState.OCCLUDED).all()
    assert (in_front[in_front != CellState.OBSERVER] == CellState.VISIBLE).all()


def test_equal_slope_is_not_hidden():
    data = np.zeros((1, 7), dtype=np.int16)
    # Slopes from the eye (z = 0): 1/1, 2/2, 3/3 - all equal to the horizon
    data[0, 4:7] = [1, 2, 3]
    observer = Observer(x=0, y=3, height=0, radius=3)

    grid = sweep(data, observer)

    assert grid.data[3, 4:7].tolist() == [1, 1, 1]


def test_observer_cell_marked():
    grid = sweep(np.zeros((5, 5), dtype=np.int16), Observer(x=2, y=2, height=1, radius=2))

    assert grid.cell(2, 2) == CellState.OBSERVER
    assert np.count_nonzero(grid.data == CellState.OBSERVER) == 1


def test_cells_outside_the_grid_stay_occluded():
    data = np.zeros((3, 3), dtype=np.int16)
    observer = Observer(x=0, y=0, height=1, radius=2)

    grid = sweep(data, observer)

    # Only window rows/cols 2..4 overlap the elevation grid
    assert (grid.data[:2, :] == CellState.OCCLUDED).all()
    assert (grid.data[:, :2] == CellState.OCCLUDED).all()
    inside = grid.data[2:, 2:]
    assert (inside[inside != CellState.OBSERVER] == CellState.VISIBLE).all()


def test_sweep_accepts_elevation_grid(two_pillars, pillar_observer):
    grid = make_grid(two_pillars)

    result = sweep(grid, pillar_observer)

    np.testing.assert_array_equal(result.data, TWO_PILLARS_EXPECTED)


def test_sweep_does_not_modify_elevation(two_pillars, pillar_observer):
    before = two_pillars.copy()

    sweep(two_pillars, pillar_observer)

    np.testing.assert_array_equal(two_pillars, before)


# ===========================================================================
# Errors
# ===========================================================================
def test_observer_outside_grid_raises():
    with pytest.raises(ObserverOutOfBoundsError) as exc_info:
        sweep(np.zeros((4, 4), np.int16), Observer(x=4, y=0, height=1, radius=1))

    assert exc_info.value.shape == (4, 4)


def test_observer_on_void_raises():
    data = np.zeros((4, 4), dtype=np.int16)
    data[1, 1] = VOID

    with pytest.raises(VoidObserverError):
        sweep(data, Observer(x=1, y=1, height=1, radius=1))


def test_void_cell_next_to_observer_reads_visible():
    data = np.full((5, 5), 100, dtype=np.int16)
    data[2, 3] = VOID

    grid = sweep(data, Observer(x=2, y=2, height=2, radius=2))

    # First cell on every sight line through it, horizon still -inf
    assert grid.cell(2, 3) == CellState.VISIBLE


def test_invalid_assignment_raises_before_work():
    bogus = QuadrantAssignment.model_construct(number_of_quadrants=3, which_quadrant=1)

    with pytest.raises(InvalidPartitionError):
        sweep(np.zeros((4, 4), np.int16), Observer(x=1, y=1, height=1, radius=1), bogus)


def test_non_2d_elevation_raises():
    with pytest.raises(ValueError, match="2D"):
        sweep(np.zeros(4, np.int16), Observer(x=1, y=1, height=1, radius=1))


# ===========================================================================
# Quadrants
# ===========================================================================
@pytest.mark.parametrize("n", [2, 4])
def test_flat_terrain_split_equals_single_sweep(flat_plain, n):
    observer = Observer(x=15, y=22, height=5, radius=9)

    single = sweep(flat_plain, observer)
    split = compute_viewshed(flat_plain, observer, n)

    np.testing.assert_array_equal(split.data, single.data)
    assert split.number_of_quadrants == n
    assert split.is_complete


def test_each_quadrant_only_touches_its_arc(flat_plain):
    observer = Observer(x=20, y=20, height=5, radius=4)

    parts = [sweep(flat_plain, observer, a) for a in partition(4)]

    # Every non-observer cell is visible in at least one quadrant
    merged = merge_visibility_grids(parts)
    assert merged.visible_count() == 9 * 9 - 1
    # and no single quadrant sees everything
    assert all(p.visible_count() < merged.visible_count() for p in parts)


def test_merged_split_sees_at_least_every_partial(two_pillars, pillar_observer):
    parts = [sweep(two_pillars, pillar_observer, a) for a in partition(4)]

    merged = compute_viewshed(two_pillars, pillar_observer, 4)

    for p in parts:
        assert (merged.data[p.data == CellState.VISIBLE] == CellState.VISIBLE).all()


def test_compute_viewshed_on_thread_pool(two_pillars, pillar_observer):
    serial = compute_viewshed(two_pillars, pillar_observer, 4)

    with ThreadPoolExecutor(max_workers=4) as executor:
        threaded = compute_viewshed(two_pillars, pillar_observer, 4, executor)

    np.testing.assert_array_equal(threaded.data, serial.data)
    assert threaded.assignments == serial.assignments


def test_compute_viewshed_single_quadrant_is_sweep(two_pillars, pillar_observer):
    result = compute_viewshed(two_pillars, pillar_observer)

    np.testing.assert_array_equal(result.data, TWO_PILLARS_EXPECTED)


def test_compute_viewshed_unsupported_count_raises(two_pillars, pillar_observer):
    with pytest.raises(InvalidPartitionError):
        compute_viewshed(two_pillars, pillar_observer, 3)


# ===========================================================================
# Work units
# ===========================================================================
def test_extract_work_crops_window(two_pillars, pillar_observer):
    work = extract_work(two_pillars, pillar_observer)

    assert work.elevation.shape == (5, 5)
    assert work.origin == (1, 1)
    assert (work.observer.x, work.observer.y) == (2, 2)
    np.testing.assert_array_equal(work.elevation, two_pillars[1:6, 1:6])


def test_extract_work_clips_at_grid_edge():
    data = np.arange(36, dtype=np.int16).reshape(6, 6)
    observer = Observer(x=0, y=5, height=1, radius=2)

    work = extract_work(data, observer)

    assert work.origin == (0, 3)
    assert work.elevation.shape == (3, 3)
    assert (work.observer.x, work.observer.y) == (0, 2)


@pytest.mark.parametrize("n", [1, 2, 4])
def test_run_work_matches_sweep(two_pillars, pillar_observer, n):
    for assignment in partition(n):
        expected = sweep(two_pillars, pillar_observer, assignment)

        result = run_work(extract_work(two_pillars, pillar_observer, assignment))

        np.testing.assert_array_equal(result.data, expected.data)
        assert result.observer == pillar_observer
        assert result.assignments == (assignment,)


def test_run_work_matches_sweep_at_grid_corner():
    rng = np.random.default_rng(3)
    data = rng.integers(0, 50, size=(12, 12)).astype(np.int16)
    observer = Observer(x=11, y=0, height=2, radius=4)

    result = run_work(extract_work(data, observer))

    np.testing.assert_array_equal(result.data, sweep(data, observer).data)


def test_work_survives_json_round_trip(two_pillars, pillar_observer):
    work = extract_work(two_pillars, pillar_observer, partition(2)[1])

    restored = ViewshedWork.model_validate(json.loads(work.model_dump_json()))

    np.testing.assert_array_equal(run_work(restored).data, run_work(work).data)
    assert restored.origin == work.origin
    assert restored.assignment == work.assignment


# ===========================================================================
# Geographic inputs
# ===========================================================================
def test_radius_in_cells_covers_distance():
    grid = make_grid(np.zeros((10, 10), dtype=np.int16), resolution=1201)
    point = GeoPoint(latitude=0.0, longitude=0.0)

    radius = radius_in_cells(grid, point, 1000.0)

    step = min(cell_size_m(grid, point))
    assert radius * step >= 1000.0
    assert (radius - 1) * step < 1000.0


def test_radius_in_cells_minimum_one():
    grid = make_grid(np.zeros((10, 10), dtype=np.int16), resolution=1201)

    assert radius_in_cells(grid, GeoPoint(latitude=0.0, longitude=0.0), 1.0) == 1


def test_radius_in_cells_rejects_non_positive():
    grid = make_grid(np.zeros((10, 10), dtype=np.int16), resolution=1201)

    with pytest.raises(ValueError):
        radius_in_cells(grid, GeoPoint(latitude=0.0, longitude=0.0), 0.0)


def test_observer_at_maps_point_to_cell():
    grid = make_grid(np.zeros((4, 4), dtype=np.int16))

    observer = observer_at(grid, GeoPoint(latitude=0.75, longitude=0.0), 5.0, 2)

    assert (observer.x, observer.y) == (0, 0)
    assert observer.height == 5.0
    assert observer.radius == 2


def test_observer_at_outside_grid_raises():
    grid = make_grid(np.zeros((4, 4), dtype=np.int16))

    with pytest.raises(PointOutOfBoundsError):
        observer_at(grid, GeoPoint(latitude=5.0, longitude=0.0), 5.0, 2)


def test_radius_for_distance_matches_grid_radius():
    grid = make_grid(np.zeros((10, 10), dtype=np.int16), resolution=1201)
    point = GeoPoint(latitude=45.0, longitude=6.0)

    assert radius_for_distance(point, 1500.0, 1201) == radius_in_cells(
        grid, point, 1500.0
    )


# ===========================================================================
# Observer windows
# ===========================================================================
@pytest.mark.parametrize("latitude", [0.3, 60.3, -45.7])
def test_observer_window_box_is_square_in_cells(latitude):
    n = 1200
    box = observer_window_box(GeoPoint(latitude=latitude, longitude=10.3), 44, 1201)

    assert (box.max_x - box.min_x) * n == pytest.approx(89)
    assert (box.max_y - box.min_y) * n == pytest.approx(89)


def test_observer_window_box_past_antimeridian_raises():
    with pytest.raises(UnsupportedRegionError):
        observer_window_box(GeoPoint(latitude=0.0, longitude=-179.999), 10, 1201)


def test_check_window_accepts_window_inside_grid():
    check_window(np.zeros((5, 5), np.int16), Observer(x=2, y=2, height=1, radius=2))


@pytest.mark.parametrize(("x", "y"), [(1, 2), (2, 3), (0, 0), (4, 4)])
def test_check_window_rejects_window_leaving_grid(x, y):
    with pytest.raises(WindowOutOfBoundsError) as exc_info:
        check_window(
            np.zeros((5, 5), np.int16), Observer(x=x, y=y, height=1, radius=2)
        )

    assert exc_info.value.shape == (5, 5)
    assert exc_info.value.side == 5
