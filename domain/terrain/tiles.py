"""Terrain Bounded Context - SRTM tile naming and decoding.

Pure functions over tile bytes and names. Reading bytes from disk is the
job of the infrastructure tile repository.

Height files are flat big-endian signed 16-bit samples, ``resolution`` rows
of ``resolution`` samples, stored north to south then west to east. File
names refer to the lower-left corner, e.g. ``N37W105.hgt``.
"""

from __future__ import annotations

import re

import numpy as np

from domain.terrain.errors import InvalidTileNameError, SizeMismatchError
from domain.terrain.value_objects import SRTM_RESOLUTIONS, ElevationTile

TILE_SUFFIX = ".hgt"

_TILE_NAME = re.compile(r"^([NS])(\d{2})([EW])(\d{3})\.hgt$", re.IGNORECASE)

# Big-endian int16, as distributed
_HGT_DTYPE = np.dtype(">i2")


def tile_filename(latitude: int, longitude: int) -> str:
    """Return the ``{N|S}dd{E|W}ddd.hgt`` name of the tile at a corner."""
    lat_str = f"{'N' if latitude >= 0 else 'S'}{abs(latitude):02d}"
    lon_str = f"{'E' if longitude >= 0 else 'W'}{abs(longitude):03d}"
    return f"{lat_str}{lon_str}{TILE_SUFFIX}"


def parse_tile_filename(name: str) -> tuple[int, int]:
    """Return the ``(latitude, longitude)`` lower-left corner encoded in a name.

    Raises:
        InvalidTileNameError: If the name does not follow the convention
    """
    match = _TILE_NAME.match(name)
    if match is None:
        raise InvalidTileNameError(f"Not an SRTM tile name: {name!r}")
    hemi_lat, lat, hemi_lon, lon = match.groups()
    latitude = int(lat) if hemi_lat.upper() == "N" else -int(lat)
    longitude = int(lon) if hemi_lon.upper() == "E" else -int(lon)
    if latitude > 89 or longitude > 179 or latitude < -90 or longitude < -180:
        raise InvalidTileNameError(f"Tile corner out of range: {name!r}")
    return latitude, longitude


def expected_byte_length(resolution: int) -> int:
    return resolution * resolution * _HGT_DTYPE.itemsize


def infer_resolution(byte_length: int) -> int:
    """Pick the SRTM tier matching a file length.

    Raises:
        SizeMismatchError: If no tier matches
    """
    for resolution in SRTM_RESOLUTIONS:
        if expected_byte_length(resolution) == byte_length:
            return resolution
    raise SizeMismatchError(None, byte_length)


def decode_tile(
    raw: bytes,
    latitude: int,
    longitude: int,
    resolution: int | None = None,
) -> ElevationTile:
    """Decode raw ``.hgt`` bytes into an ElevationTile.

    The top row and rightmost column duplicate the neighbouring tiles and are
    dropped, so the kept block is ``(resolution - 1)`` square.

    Args:
        raw: File contents
        latitude: Lower-left corner latitude (integer degrees)
        longitude: Lower-left corner longitude (integer degrees)
        resolution: Samples per side; inferred from the length if None

    Raises:
        SizeMismatchError: If the length is not ``resolution^2 * 2``
    """
    if resolution is None:
        resolution = infer_resolution(len(raw))
    elif len(raw) != expected_byte_length(resolution):
        raise SizeMismatchError(expected_byte_length(resolution), len(raw))

    samples = np.frombuffer(raw, dtype=_HGT_DTYPE).reshape(resolution, resolution)
    trimmed = samples[1:, :-1].astype(np.int16)

    return ElevationTile(
        latitude=latitude,
        longitude=longitude,
        resolution=resolution,
        data=trimmed,
    )


def encode_tile(samples: np.ndarray) -> bytes:
    """Encode a full ``resolution x resolution`` sample block as ``.hgt`` bytes."""
    if samples.ndim != 2 or samples.shape[0] != samples.shape[1]:
        raise ValueError(f"Tile samples must be square 2D, got {samples.shape}")
    return np.ascontiguousarray(samples, dtype=_HGT_DTYPE).tobytes()
