"""Visibility Bounded Context - Line Rasterizer.

Integer-only Bresenham digital line used as the sight-line sampling path.
"""

from __future__ import annotations

Cell = tuple[int, int]


def _walk(x0: int, y0: int, x1: int, y1: int) -> list[Cell]:
    dx = abs(x1 - x0)
    dy = abs(y1 - y0)
    sx = 1 if x0 < x1 else -1
    sy = 1 if y0 < y1 else -1

    cells: list[Cell] = []
    if dx >= dy:
        # x dominant: one step in x per cell, at most one in y
        err = 2 * dy - dx
        y = y0
        for x in range(x0, x1 + sx, sx):
            cells.append((x, y))
            if err > 0:
                y += sy
                err -= 2 * dx
            err += 2 * dy
    else:
        err = 2 * dx - dy
        x = x0
        for y in range(y0, y1 + sy, sy):
            cells.append((x, y))
            if err > 0:
                x += sx
                err -= 2 * dy
            err += 2 * dx
    return cells


def bresenham_line(x0: int, y0: int, x1: int, y1: int) -> list[Cell]:
    """Cells from ``(x0, y0)`` to ``(x1, y1)`` inclusive, in order.

    Each step advances exactly one unit along the dominant axis and at most
    one along the other. The line is always traced from the lexicographically
    smaller endpoint, so swapping the endpoints yields the exact reverse
    sequence.

    Example:
        >>> bresenham_line(0, 0, 5, 0)
        [(0, 0), (1, 0), (2, 0), (3, 0), (4, 0), (5, 0)]
    """
    if (x1, y1) < (x0, y0):
        cells = _walk(x1, y1, x0, y0)
        cells.reverse()
        return cells
    return _walk(x0, y0, x1, y1)
