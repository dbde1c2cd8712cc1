"""
Moduł do wczytywania chmur punktów LAS/LAZ

Używa laspy do odczytu plików LAS/LAZ. Klasyfikacja z pliku (kody ASPRS)
jest tłumaczona na kody treningowe katalogu etykiet.
"""

import laspy
import numpy as np
from pathlib import Path
from typing import Dict
import logging

from .labels import asprs_to_train_codes, LABEL_UNASSIGNED, LABEL_UNCLASSIFIED
from .point_set import PointSet

logger = logging.getLogger(__name__)


class LASLoader:
    """Wczytywanie chmur punktów LAS/LAZ do PointSet"""

    def __init__(self, file_path: str):
        """
        Args:
            file_path: Ścieżka do pliku LAS/LAZ
        """
        self.file_path = Path(file_path)
        if not self.file_path.exists():
            raise FileNotFoundError(f"Plik nie istnieje: {file_path}")

        self.header = None

    def load(self) -> PointSet:
        """
        Wczytuje chmurę punktów

        Returns:
            PointSet z etykietami (jeśli plik zawiera jakakolwiek klasyfikacje)
            i kolorami RGB [0-255] (jeśli dostępne)
        """
        logger.info(f"Wczytywanie: {self.file_path.name}")

        with laspy.open(self.file_path) as f:
            las = f.read()
        self.header = las.header

        coords = np.vstack([las.x, las.y, las.z]).T
        n_points = len(coords)
        logger.info(f"Wczytano {n_points:,} punktów")

        colors = None
        if self._has_dimension(las, 'red'):
            rgb = np.vstack([las.red, las.green, las.blue]).T
            # 16-bit -> 8-bit
            if rgb.max() > 255:
                rgb = rgb // 256
            colors = rgb.astype(np.uint8)
            logger.info("Znaleziono kolory RGB")

        labels = None
        source_codes = None
        if self._has_dimension(las, 'classification'):
            source_codes = np.array(las.classification, dtype=np.uint8)
            # same zera = pole klasyfikacji nieużywane
            if source_codes.any():
                labels = asprs_to_train_codes()[source_codes]
                n_assigned = int(((labels != LABEL_UNASSIGNED) & (labels != LABEL_UNCLASSIFIED)).sum())
                logger.info(f"Znaleziono klasyfikacje: {n_assigned:,} punktów z etykieta treningowa")

        return PointSet(
            coords=coords,
            labels=labels,
            colors=colors,
            source_codes=source_codes
        )

    @staticmethod
    def _has_dimension(las, name: str) -> bool:
        return name in set(las.point_format.dimension_names)

    @staticmethod
    def get_file_info(file_path: str) -> Dict:
        """Szybka informacja o pliku (bez wczytywania punktów)"""
        with laspy.open(file_path) as f:
            header = f.header
            return {
                'n_points': header.point_count,
                'version': str(header.version),
                'point_format': header.point_format.id,
                'mins': list(header.mins),
                'maxs': list(header.maxs)
            }
