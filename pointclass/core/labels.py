"""
Katalog etykiet klas

Indeks etykiety na liście get_training_labels() to wewnętrzny kod klasy
(train code) używany przez trening i inference. Pliki LAS przechowują kody ASPRS.
"""

import numpy as np
from typing import List, Tuple
from dataclasses import dataclass

LABEL_UNCLASSIFIED = 254
LABEL_UNASSIGNED = 255

ASPRS_NEVER_CLASSIFIED = 0
ASPRS_UNCLASSIFIED = 1


@dataclass(frozen=True)
class Label:
    """Definicja pojedynczej klasy"""
    name: str
    asprs_code: int
    color: Tuple[int, int, int]  # RGB [0-255]

    def get_name(self) -> str:
        return self.name

    def get_asprs_code(self) -> int:
        return self.asprs_code

    def get_color(self) -> Tuple[int, int, int]:
        return self.color


_TRAINING_LABELS = (
    Label("ground", 2, (159, 129, 74)),
    Label("low_vegetation", 3, (130, 191, 74)),
    Label("medium_vegetation", 4, (64, 164, 45)),
    Label("high_vegetation", 5, (22, 110, 32)),
    Label("building", 6, (214, 66, 54)),
    Label("water", 9, (55, 126, 184)),
    Label("road_surface", 11, (120, 120, 120)),
)


def get_training_labels() -> List[Label]:
    """Zwraca listę klas w kolejności kodów treningowych"""
    return list(_TRAINING_LABELS)


def asprs_to_train_codes() -> np.ndarray:
    """
    Tablica (256,) mapująca kod ASPRS na kod treningowy

    Kody spoza katalogu mapowane są na LABEL_UNASSIGNED,
    kody 0 i 1 (niesklasyfikowane) na LABEL_UNCLASSIFIED.
    """
    mapping = np.full(256, LABEL_UNASSIGNED, dtype=np.uint8)
    mapping[ASPRS_NEVER_CLASSIFIED] = LABEL_UNCLASSIFIED
    mapping[ASPRS_UNCLASSIFIED] = LABEL_UNCLASSIFIED
    for train_code, label in enumerate(_TRAINING_LABELS):
        mapping[label.asprs_code] = train_code
    return mapping


def train_to_asprs_codes() -> np.ndarray:
    """Tablica (256,) mapująca kod treningowy z powrotem na kod ASPRS"""
    mapping = np.full(256, ASPRS_NEVER_CLASSIFIED, dtype=np.uint8)
    mapping[LABEL_UNCLASSIFIED] = ASPRS_UNCLASSIFIED
    for train_code, label in enumerate(_TRAINING_LABELS):
        mapping[train_code] = label.asprs_code
    return mapping
