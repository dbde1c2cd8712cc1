"""
Moduły podstawowe (core) do obsługi chmur punktów

- PointSet: chmura punktów + mapa decymacji
- LASLoader / LASWriter: wczytywanie i zapis LAS/LAZ
- TilingEngine: podział na partycje dla graph-cut
- labels: katalog klas i mapowania kodów ASPRS
"""

from .labels import (
    Label,
    LABEL_UNASSIGNED,
    LABEL_UNCLASSIFIED,
    get_training_labels,
    asprs_to_train_codes,
    train_to_asprs_codes
)
from .point_set import PointSet, voxel_decimate, build_base
from .las_loader import LASLoader
from .las_writer import LASWriter
from .tiling_engine import TilingEngine, Partition

__all__ = [
    'Label',
    'LABEL_UNASSIGNED',
    'LABEL_UNCLASSIFIED',
    'get_training_labels',
    'asprs_to_train_codes',
    'train_to_asprs_codes',
    'PointSet',
    'voxel_decimate',
    'build_base',
    'LASLoader',
    'LASWriter',
    'TilingEngine',
    'Partition'
]
