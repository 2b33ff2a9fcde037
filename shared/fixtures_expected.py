"""Single source of truth for expected synthetic tile fixtures.

This module defines the list of expected fixture filenames used by both:
- scripts/gen_tiles.py (generation verification)
- tests/infrastructure/test_tile_fixtures.py (existence verification)

Location: shared/ (not tests/) to avoid scripts->tests dependency.

When adding/removing fixtures, update ONLY this list.
"""

from __future__ import annotations

# Samples per side of the synthetic tiles (small, so fixtures stay tiny)
FIXTURE_RESOLUTION: int = 11

# Sorted alphabetically for deterministic comparison.
EXPECTED_TILES: list[str] = sorted(
    [
        "N00E000.hgt",  # flat plateau at 100 m
        "N00E001.hgt",  # north-south ridge through the middle column
        "N01E000.hgt",  # west-to-east gradient
        "N01E001.hgt",  # all VOID
        "S01W001.hgt",  # truncated: wrong byte length
    ]
)

# Count derived from list for verification
EXPECTED_TILE_COUNT: int = len(EXPECTED_TILES)
