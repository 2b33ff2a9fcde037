"""Root pytest configuration for all tests.

Provides the small elevation scenes shared by the visibility tests.
Tests marked ``integration`` write real files (GeoTIFFs through GDAL,
generated tile sets); ``-m "not integration"`` skips them.
"""

from __future__ import annotations

import numpy as np
import pytest

from domain.visibility.value_objects import Observer


@pytest.fixture
def two_pillars() -> np.ndarray:
    """10x10 plain at 1 m with two 10 m cells next to each other."""
    data = np.ones((10, 10), dtype=np.int16)
    data[4, 4] = 10
    data[3, 4] = 10
    return data


@pytest.fixture
def pillar_observer() -> Observer:
    """Observer beside the pillars, 3 m above ground, looking 2 cells out."""
    return Observer(x=3, y=3, height=3, radius=2)


@pytest.fixture
def flat_plain() -> np.ndarray:
    return np.full((40, 40), 250, dtype=np.int16)
