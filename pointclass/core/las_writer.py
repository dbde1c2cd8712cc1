"""
Moduł do zapisu chmur punktów LAS/LAZ z klasyfikacją

Zapisuje PointSet po remapowaniu: pole 'classification' zawiera kody ASPRS,
kolory (tryb kolorów) zapisywane są jako RGB 16-bit.
"""

import laspy
import numpy as np
from pathlib import Path
from typing import Optional
import logging

from .point_set import PointSet

logger = logging.getLogger(__name__)


class LASWriter:
    """Zapis chmur punktów z wynikami klasyfikacji"""

    @staticmethod
    def write(
        output_path: str,
        point_set: PointSet,
        original_header: Optional[laspy.LasHeader] = None
    ) -> None:
        """
        Zapisuje chmurę punktów do pliku LAS/LAZ

        Args:
            output_path: Ścieżka wyjściowa (*.las lub *.laz)
            point_set: chmura z kodami ASPRS w labels i/lub kolorami
            original_header: Oryginalny header (scales/offsets)
        """
        output_path = Path(output_path)
        n_points = point_set.count()

        logger.info(f"Zapisywanie {n_points:,} punktów do: {output_path.name}")

        has_colors = point_set.has_colors()
        # LAS 1.2: point format 3 (z RGB) lub 1 (bez RGB)
        point_format = 3 if has_colors else 1
        header = laspy.LasHeader(point_format=point_format, version="1.2")

        if original_header is not None:
            header.scales = original_header.scales
            header.offsets = original_header.offsets
        else:
            header.offsets = point_set.coords.min(axis=0)
            header.scales = np.array([0.001, 0.001, 0.001])  # 1mm precision

        las = laspy.LasData(header)
        las.x = point_set.coords[:, 0]
        las.y = point_set.coords[:, 1]
        las.z = point_set.coords[:, 2]

        if point_set.has_labels():
            las.classification = point_set.labels.astype(np.uint8)

        if has_colors:
            # [0-255] -> uint16 [0-65535]
            colors = point_set.colors.astype(np.uint16) * 257
            las.red = colors[:, 0]
            las.green = colors[:, 1]
            las.blue = colors[:, 2]

        output_path.parent.mkdir(parents=True, exist_ok=True)
        las.write(output_path)

        file_size_mb = output_path.stat().st_size / (1024 * 1024)
        logger.info(f"Zapisano: {output_path.name} ({file_size_mb:.1f} MB)")

        if point_set.has_labels():
            unique, counts = np.unique(point_set.labels, return_counts=True)
            logger.info("Statystyki klasyfikacji:")
            for cls, count in zip(unique, counts):
                pct = count / n_points * 100
                logger.info(f"  Klasa {cls}: {count:,} punktów ({pct:.1f}%)")
