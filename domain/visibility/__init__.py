"""Visibility Bounded Context.

Responsible for viewshed computation over an assembled elevation grid:
- Value Objects: Observer, QuadrantAssignment, VisibilityGrid, ViewshedWork
- Rasterizer: bresenham_line (sight-line sampling path)
- Partition: perimeter_cells, partition, merge_visibility_grids, ViewshedMerger
- Services: sweep, compute_viewshed, extract_work, run_work
"""
