"""
Reprezentacja chmury punktów w pamięci

PointSet przechowuje współrzędne, etykiety (kody treningowe), kolory
oraz mapę punktów (point map) łączącą punkty wyjściowe z punktami
zdecymowanej chmury roboczej (base), na której liczone są cechy i klasyfikacja.
"""

import numpy as np
from typing import Dict, Optional, Tuple
from dataclasses import dataclass, field
from scipy.spatial import cKDTree
import threading
import logging

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class PointSet:
    """
    Chmura punktów

    Attributes:
        coords: (N, 3) współrzędne XYZ
        labels: (N,) kody treningowe lub None
        colors: (N, 3) RGB [0-255] lub None
        source_codes: (N,) oryginalne kody ASPRS z pliku lub None
        point_map: (N,) indeks punktu w chmurze base dla każdego punktu
        base: zdecymowana chmura robocza (None = ta chmura jest sama dla siebie base)
    """
    coords: np.ndarray
    labels: Optional[np.ndarray] = None
    colors: Optional[np.ndarray] = None
    source_codes: Optional[np.ndarray] = None
    point_map: Optional[np.ndarray] = None
    base: Optional['PointSet'] = None
    _index: Optional[cKDTree] = field(default=None, init=False, repr=False)
    _index_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self):
        self.coords = np.asarray(self.coords, dtype=np.float64)
        if self.point_map is None:
            self.point_map = np.arange(len(self.coords))
        if self.base is None:
            self.base = self

    def count(self) -> int:
        return len(self.coords)

    def has_labels(self) -> bool:
        return self.labels is not None and len(self.labels) == self.count()

    def has_colors(self) -> bool:
        return self.colors is not None and len(self.colors) == self.count()

    def get_index(self) -> cKDTree:
        """KD-Tree budowane leniwie, współdzielone (tylko odczyt) między wątkami"""
        with self._index_lock:
            if self._index is None:
                logger.debug(f"Building KD-Tree for {self.count():,} points...")
                self._index = cKDTree(self.coords)
            return self._index

    def bbox(self) -> Dict[str, Tuple[float, float]]:
        """Granice chmury {'x': (min, max), 'y': ..., 'z': ...}"""
        mins = self.coords.min(axis=0)
        maxs = self.coords.max(axis=0)
        return {
            'x': (float(mins[0]), float(maxs[0])),
            'y': (float(mins[1]), float(maxs[1])),
            'z': (float(mins[2]), float(maxs[2]))
        }

    def spacing(self) -> float:
        """Mediana odległości do najbliższego sąsiada (metry)"""
        if self.count() < 2:
            return 0.0
        distances, _ = self.get_index().query(self.coords, k=2)
        return float(np.median(distances[:, 1]))


def voxel_decimate(point_set: PointSet, resolution: float) -> Tuple[PointSet, np.ndarray]:
    """
    Decymacja na siatce wokseli

    Z każdego woksela zostaje pierwszy punkt. Zwraca chmurę zdecymowaną
    oraz mapę (N,) punktów wejściowych na indeksy w chmurze zdecymowanej.

    Args:
        point_set: chmura wejściowa
        resolution: rozmiar woksela (metry), <= 0 oznacza brak decymacji
    """
    coords = point_set.coords

    if resolution <= 0 or point_set.count() == 0:
        return PointSet(coords=coords.copy()), np.arange(point_set.count())

    keys = np.floor((coords - coords.min(axis=0)) / resolution).astype(np.int64)
    _, first_idx, inverse = np.unique(keys, axis=0, return_index=True, return_inverse=True)

    # kolejność wokseli według pierwszego punktu (stabilna względem wejścia)
    order = np.argsort(first_idx)
    rank = np.empty_like(order)
    rank[order] = np.arange(len(order))

    decimated = PointSet(coords=coords[first_idx[order]])
    point_map = rank[inverse.reshape(-1)]

    logger.debug(f"Voxel decimation @ {resolution:.3f}m: {point_set.count():,} -> {decimated.count():,}")
    return decimated, point_map


def build_base(point_set: PointSet, resolution: float) -> PointSet:
    """Ustawia point_set.base i point_set.point_map dla podanej rozdzielczości"""
    base, point_map = voxel_decimate(point_set, resolution)
    point_set.base = base
    point_set.point_map = point_map
    logger.info(f"Base point set: {base.count():,} / {point_set.count():,} points "
                f"(resolution {resolution:.3f}m)")
    return base
