"""Tests for the Bresenham sight-line rasterizer."""

from __future__ import annotations

import pytest

from domain.visibility.rasterizer import bresenham_line


def test_horizontal_line():
    assert bresenham_line(0, 0, 5, 0) == [(x, 0) for x in range(6)]


def test_vertical_line_downward():
    assert bresenham_line(2, 4, 2, 0) == [(2, y) for y in range(4, -1, -1)]


def test_diagonal_line():
    assert bresenham_line(0, 0, 3, 3) == [(0, 0), (1, 1), (2, 2), (3, 3)]
    assert bresenham_line(0, 0, -3, 3) == [(0, 0), (-1, 1), (-2, 2), (-3, 3)]


def test_single_point():
    assert bresenham_line(2, 2, 2, 2) == [(2, 2)]


@pytest.mark.parametrize(
    ("x0", "y0", "x1", "y1"),
    [
        (0, 0, 7, 3),
        (0, 0, 3, 7),
        (5, 5, -2, 1),
        (-4, 2, 6, -5),
        (10, 10, 10, 3),
        (3, 3, 1, 5),
    ],
)
def test_line_properties(x0, y0, x1, y1):
    cells = bresenham_line(x0, y0, x1, y1)

    # Endpoints inclusive
    assert cells[0] == (x0, y0)
    assert cells[-1] == (x1, y1)
    # One cell per step along the dominant axis
    assert len(cells) == max(abs(x1 - x0), abs(y1 - y0)) + 1
    # 8-connected: every step moves at most one unit on each axis
    for (ax, ay), (bx, by) in zip(cells, cells[1:]):
        assert max(abs(bx - ax), abs(by - ay)) == 1


@pytest.mark.parametrize(
    ("x0", "y0", "x1", "y1"),
    [(0, 0, 7, 3), (0, 0, 3, 7), (5, 5, -2, 1), (-4, 2, 6, -5), (0, 0, 4, 2)],
)
def test_swapping_endpoints_reverses_the_line(x0, y0, x1, y1):
    forward = bresenham_line(x0, y0, x1, y1)
    backward = bresenham_line(x1, y1, x0, y0)

    assert backward == list(reversed(forward))
