"""
Cechy geometryczne w wielu skalach

Skala i to chmura base zdecymowana z rozdzielczością start_resolution * 2^i.
Dla każdego punktu skali liczone są cechy z wartości własnych macierzy
kowariancji sąsiedztwa (promień radius * 2^i), a następnie przypisywane
punktom base przez mapę decymacji.
"""

import numpy as np
from typing import List, Tuple
from dataclasses import dataclass
import logging

from ..config import TRAINING
from ..core.point_set import PointSet, voxel_decimate, build_base

logger = logging.getLogger(__name__)

FEATURE_NAMES = (
    'linearity',
    'planarity',
    'scattering',
    'verticality',
    'omnivariance',
    'anisotropy',
    'eigenentropy',
    'height_above_min',
    'height_range'
)


@dataclass(eq=False)
class Scale:
    """Pojedyncza skala cech"""
    index: int
    resolution: float
    radius: float
    point_set: PointSet  # chmura zdecymowana dla tej skali
    base_map: np.ndarray  # (N_base,) indeks punktu skali dla każdego punktu base


def compute_scales(
    num_scales: int,
    point_set: PointSet,
    start_resolution: float,
    radius: float
) -> List[Scale]:
    """
    Tworzy skale cech i ustawia point_set.base (decymacja z start_resolution)

    Args:
        num_scales: liczba skal
        point_set: pełna chmura punktów
        start_resolution: rozdzielczość pierwszej skali (metry)
        radius: promień sąsiedztwa na pierwszej skali (metry)
    """
    base = build_base(point_set, start_resolution)

    scales = []
    for i in range(num_scales):
        factor = 2.0 ** i
        if i == 0:
            scale_set, base_map = base, np.arange(base.count())
        else:
            scale_set, base_map = voxel_decimate(base, start_resolution * factor)

        scales.append(Scale(
            index=i,
            resolution=start_resolution * factor,
            radius=radius * factor,
            point_set=scale_set,
            base_map=base_map
        ))
        logger.info(f"Scale {i}: resolution {start_resolution * factor:.3f}m, "
                    f"{scale_set.count():,} points")

    return scales


def _eigen_features(coords: np.ndarray, tree, radius: float, k_max: int) -> np.ndarray:
    """Cechy (N, 9) z sąsiedztwa o promieniu radius (max k_max sąsiadów)"""
    n_points = len(coords)
    k = min(k_max, n_points)
    distances, indices = tree.query(coords, k=k, distance_upper_bound=radius)
    if k == 1:
        distances = distances[:, None]
        indices = indices[:, None]

    valid = np.isfinite(distances)
    # pierwszy sąsiad to zawsze sam punkt (również dla radius == 0)
    indices[:, 0] = np.where(valid[:, 0], indices[:, 0], np.arange(n_points))
    valid[:, 0] = True
    safe_idx = np.where(valid, indices, 0)
    neighbors = coords[safe_idx]  # (N, k, 3)
    weights = valid[..., None].astype(np.float64)
    counts = valid.sum(axis=1)[:, None]  # >= 1 (sam punkt)

    mean = (neighbors * weights).sum(axis=1) / counts
    centered = (neighbors - mean[:, None, :]) * weights
    cov = np.einsum('nki,nkj->nij', centered, centered) / counts[..., None]

    eigenvalues, eigenvectors = np.linalg.eigh(cov)
    # eigh: rosnąco -> l1 >= l2 >= l3
    eigenvalues = np.maximum(eigenvalues[:, ::-1], 1e-12)
    normal = eigenvectors[:, :, 0]

    total = eigenvalues.sum(axis=1, keepdims=True)
    l1, l2, l3 = (eigenvalues / total).T

    z = np.where(valid, neighbors[..., 2], np.nan)
    z_min = np.nanmin(z, axis=1)
    z_max = np.nanmax(z, axis=1)

    features = np.column_stack([
        (l1 - l2) / l1,
        (l2 - l3) / l1,
        l3 / l1,
        1.0 - np.abs(normal[:, 2]),
        np.cbrt(l1 * l2 * l3),
        (l1 - l3) / l1,
        -(l1 * np.log(l1) + l2 * np.log(l2) + l3 * np.log(l3)),
        coords[:, 2] - z_min,
        z_max - z_min
    ])
    return features


def get_features(scales: List[Scale], k_max: int = TRAINING.K_NEIGHBORS_MAX) -> Tuple[np.ndarray, List[str]]:
    """
    Liczy macierz cech dla punktów base

    Returns:
        (features (N_base, 9 * num_scales) float32, nazwy cech)
    """
    columns = []

    for scale in scales:
        coords = scale.point_set.coords
        scale_features = _eigen_features(coords, scale.point_set.get_index(), scale.radius, k_max)
        columns.append(scale_features[scale.base_map])

    names = feature_names(len(scales))
    features = np.hstack(columns).astype(np.float32)
    features[~np.isfinite(features)] = 0.0

    logger.info(f"Extracted {features.shape[1]} features for {features.shape[0]:,} points")
    return features, names


def feature_names(num_scales: int) -> List[str]:
    """Nazwy kolumn macierzy z get_features() dla num_scales skal"""
    return [f"{name}_{i}" for i in range(num_scales) for name in FEATURE_NAMES]
