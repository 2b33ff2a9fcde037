"""Runtime settings for the viewshed application layer.

Domain services take explicit parameters only; this model collects them
from the environment for scripts and other entry points.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from domain.terrain.services import DEFAULT_MAX_TILES_PER_AXIS
from domain.terrain.value_objects import SRTM3_RESOLUTION, SRTM_RESOLUTIONS

ENV_PREFIX = "VIEWSHED_"


class ViewshedSettings(BaseModel):
    """Settings for tile lookup, assembly limits and quadrant workers."""

    tile_dir: Path = Path("tiles")
    resolution: int = SRTM3_RESOLUTION
    max_workers: int = Field(default=4, ge=1)
    max_bytes: int | None = Field(default=None, gt=0)
    max_tiles_per_axis: int | None = Field(default=DEFAULT_MAX_TILES_PER_AXIS, gt=0)

    model_config = ConfigDict(frozen=True)

    @field_validator("resolution")
    @classmethod
    def validate_resolution(cls, value: int) -> int:
        if value not in SRTM_RESOLUTIONS:
            raise ValueError(f"resolution must be one of {SRTM_RESOLUTIONS}, got {value}")
        return value

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ViewshedSettings":
        """Build settings from ``VIEWSHED_*`` variables; unset ones keep defaults.

        ``VIEWSHED_MAX_BYTES=none`` and ``VIEWSHED_MAX_TILES_PER_AXIS=none``
        disable the corresponding limit.
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        for name in cls.model_fields:
            raw = env.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is None:
                continue
            values[name] = None if raw.strip().lower() == "none" else raw
        return cls.model_validate(values)
