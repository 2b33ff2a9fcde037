#!/usr/bin/env python3
"""Generate synthetic SRTM ``.hgt`` fixtures for tile loading tests.

Fixtures are minimal synthetic tiles - not real terrain data. They use a
tiny resolution so the whole set stays a few kilobytes.

Usage:
    python scripts/gen_tiles.py

Output:
    tests/fixtures/tiles/*.hgt

Dependencies:
    This script imports from shared/fixtures_expected.py (not tests/) to avoid
    circular dependencies between scripts and tests packages.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
from numpy.typing import NDArray

from domain.terrain.tiles import encode_tile, tile_filename
from domain.terrain.value_objects import VOID
from shared.fixtures_expected import (
    EXPECTED_TILE_COUNT,
    EXPECTED_TILES,
    FIXTURE_RESOLUTION,
)

# Output directory
FIXTURES_DIR = Path(__file__).parent.parent / "tests" / "fixtures" / "tiles"

R = FIXTURE_RESOLUTION


def ensure_dir() -> None:
    """Ensure fixtures directory exists."""
    FIXTURES_DIR.mkdir(parents=True, exist_ok=True)
    print(f"Output directory: {FIXTURES_DIR}")


def write_tile(latitude: int, longitude: int, samples: NDArray[np.int16]) -> Path:
    """Write a full ``R x R`` sample block under its SRTM name."""
    path = FIXTURES_DIR / tile_filename(latitude, longitude)
    path.write_bytes(encode_tile(samples))
    return path


def gen_flat() -> None:
    """Plateau at 100 m everywhere."""
    path = write_tile(0, 0, np.full((R, R), 100, dtype=np.int16))
    print(f"  Created: {path.name} ({R}x{R}, flat 100 m)")


def gen_ridge() -> None:
    """Flat 10 m terrain with a 500 m north-south ridge in the middle column."""
    samples = np.full((R, R), 10, dtype=np.int16)
    samples[:, R // 2] = 500
    path = write_tile(0, 1, samples)
    print(f"  Created: {path.name} ({R}x{R}, ridge at column {R // 2})")


def gen_gradient() -> None:
    """Elevation rising 10 m per column, west to east."""
    samples = np.tile(np.arange(R, dtype=np.int16) * 10, (R, 1))
    path = write_tile(1, 0, samples)
    print(f"  Created: {path.name} ({R}x{R}, 0-{(R - 1) * 10} m gradient)")


def gen_void() -> None:
    """Every sample VOID."""
    path = write_tile(1, 1, np.full((R, R), VOID, dtype=np.int16))
    print(f"  Created: {path.name} ({R}x{R}, all VOID)")


def gen_truncated() -> None:
    """Valid name, one sample short of a full tile."""
    raw = encode_tile(np.zeros((R, R), dtype=np.int16))[:-2]
    path = FIXTURES_DIR / tile_filename(-1, -1)
    path.write_bytes(raw)
    print(f"  Created: {path.name} ({len(raw)}B, truncated)")


def main() -> int:
    """Generate all fixtures.

    Returns:
        0 on success, 1 on failure
    """
    print("=" * 60)
    print("Generating synthetic SRTM tiles")
    print("=" * 60)

    try:
        ensure_dir()
    except OSError as e:
        print(f"ERROR: Cannot create fixtures directory: {e}")
        return 1
    print()

    gen_flat()
    gen_ridge()
    gen_gradient()
    gen_void()
    gen_truncated()

    found = sorted(f.name for f in FIXTURES_DIR.glob("*.hgt") if f.is_file())
    missing = set(EXPECTED_TILES) - set(found)
    extra = set(found) - set(EXPECTED_TILES)

    if len(found) != EXPECTED_TILE_COUNT or missing or extra:
        print("ERROR: Fixture filenames do not match expected list!")
        if missing:
            print(f"  Missing (expected but not generated): {sorted(missing)}")
        if extra:
            print(f"  Extra (generated but not expected): {sorted(extra)}")
        print("\nUpdate shared/fixtures_expected.py to match generated fixtures.")
        return 1

    print()
    print("=" * 60)
    print(f"Done! Generated {EXPECTED_TILE_COUNT} tiles in {FIXTURES_DIR}")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
