import numpy as np
import pytest

from pointclass.core import PointSet


@pytest.fixture
def grid_point_set():
    """Płaska siatka 20 x 20 punktów co 1 m (z = 0)"""
    xs, ys = np.meshgrid(np.arange(20, dtype=np.float64), np.arange(20, dtype=np.float64), indexing='ij')
    coords = np.column_stack([xs.ravel(), ys.ravel(), np.zeros(xs.size)])
    return PointSet(coords=coords)


@pytest.fixture
def rng():
    return np.random.default_rng(42)
