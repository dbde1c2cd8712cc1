"""
Moduł do dzielenia chmur punktów na partycje (siatka 2D)

Partycje są jednostką pracy regularyzacji graph-cut: każdy punkt należy
do dokładnie jednej partycji, partycje przetwarzane są niezależnie.
"""

import numpy as np
from typing import List, Dict, Tuple
from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Partition:
    """Reprezentacja pojedynczej partycji"""
    partition_id: int
    bounds: Dict[str, Tuple[float, float]]  # {'x': (min, max), 'y': (min, max), 'z': (min, max)}
    indices: np.ndarray  # Globalne indeksy punktów w tej partycji

    @property
    def point_count(self) -> int:
        return len(self.indices)

    def contains(self, coords: np.ndarray) -> np.ndarray:
        """Maska (N,) punktów wewnątrz granic (granice domknięte)"""
        mask = np.ones(len(coords), dtype=bool)
        for axis, key in enumerate(('x', 'y', 'z')):
            lo, hi = self.bounds[key]
            mask &= (coords[:, axis] >= lo) & (coords[:, axis] <= hi)
        return mask

    def __repr__(self):
        return f"Partition(id={self.partition_id}, points={self.point_count:,})"


class TilingEngine:
    """
    Podział chmury punktów na siatkę prostokątów w płaszczyźnie XY

    Liczba komórek przybliża zadaną liczbę podziałów (min. min_subdivisions),
    a komórki są możliwie kwadratowe przy danych proporcjach bounding boxa.
    """

    def __init__(self, coords: np.ndarray):
        """
        Args:
            coords: (N, 3) Współrzędne XYZ
        """
        self.coords = coords
        self.n_points = len(coords)

        self.bounds = {
            'x': (float(coords[:, 0].min()), float(coords[:, 0].max())),
            'y': (float(coords[:, 1].min()), float(coords[:, 1].max())),
            'z': (float(coords[:, 2].min()), float(coords[:, 2].max()))
        }

    def grid_shape(self, min_subdivisions: int = 4) -> Tuple[int, int]:
        """Liczba komórek (nb_x, nb_y)"""
        dx = self.bounds['x'][1] - self.bounds['x'][0]
        dy = self.bounds['y'][1] - self.bounds['y'][0]
        area = dx * dy

        if area <= 0:
            return 1, 1

        cell_area = area / min_subdivisions
        cell_side = np.sqrt(cell_area)
        nb_x = int(dx / cell_side) + 1
        nb_y = int(area / nb_x / cell_area) + 1
        return nb_x, nb_y

    def create_boxes(self, min_subdivisions: int = 4) -> List[Dict[str, Tuple[float, float]]]:
        """Granice komórek w kolejności x-major (ostatnia komórka dociągnięta do max)"""
        x_min, x_max = self.bounds['x']
        y_min, y_max = self.bounds['y']
        dx = x_max - x_min
        dy = y_max - y_min
        nb_x, nb_y = self.grid_shape(min_subdivisions)

        boxes = []
        for x in range(nb_x):
            for y in range(nb_y):
                boxes.append({
                    'x': (x_min + dx * (x / nb_x),
                          x_max if x == nb_x - 1 else x_min + dx * ((x + 1) / nb_x)),
                    'y': (y_min + dy * (y / nb_y),
                          y_max if y == nb_y - 1 else y_min + dy * ((y + 1) / nb_y)),
                    'z': self.bounds['z']
                })

        logger.info(f"Using {nb_x * nb_y} divisions with size {dx / nb_x:.2f} x {dy / nb_y:.2f}")
        return boxes

    def create_partitions(self, min_subdivisions: int = 4) -> List[Partition]:
        """
        Dzieli chmurę na partycje

        Punkt trafia do PIERWSZEJ komórki, która go zawiera; punkt leżący
        na granicy dwóch komórek należy więc do komórki o niższym id.
        Punkty poza wszystkimi komórkami trafiają do komórki 0.

        Returns:
            Lista partycji (również pustych), rozłączne pokrycie zbioru punktów
        """
        boxes = self.create_boxes(min_subdivisions)

        assignment = np.full(self.n_points, -1, dtype=np.int64)
        for box_id, box in enumerate(boxes):
            unassigned = assignment < 0
            if not unassigned.any():
                break
            inside = np.ones(self.n_points, dtype=bool)
            for axis, key in enumerate(('x', 'y', 'z')):
                lo, hi = box[key]
                inside &= (self.coords[:, axis] >= lo) & (self.coords[:, axis] <= hi)
            assignment[unassigned & inside] = box_id

        assignment[assignment < 0] = 0

        partitions = [
            Partition(partition_id=box_id, bounds=box, indices=np.where(assignment == box_id)[0])
            for box_id, box in enumerate(boxes)
        ]

        non_empty = sum(1 for p in partitions if p.point_count > 0)
        logger.info(f"Assigned {self.n_points:,} points to {non_empty} non-empty partitions")
        return partitions
