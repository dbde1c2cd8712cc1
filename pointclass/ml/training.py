"""
Training Data - zbalansowany wybór próbek treningowych

BalancedSampleExtractor wybiera z jednej chmury po tyle samo punktów
z każdej klasy (minimum liczności klas, ograniczone max_samples).
get_training_data iteruje po plikach, liczy cechy i przekazuje próbki do ujścia.
"""

import numpy as np
from typing import Callable, Dict, List, Optional, Sequence
from dataclasses import dataclass, field
import logging

from ..core.labels import Label, LABEL_UNASSIGNED, get_training_labels, asprs_to_train_codes
from ..core.las_loader import LASLoader
from ..core.point_set import PointSet
from ..features import compute_scales, get_features

logger = logging.getLogger(__name__)

# store(features, index, label)
StoreFunc = Callable[[np.ndarray, int, int], None]
# init(n_features, n_labels)
InitFunc = Callable[[int, int], None]


@dataclass
class ExtractionReport:
    """Wynik ekstrakcji próbek z jednej chmury"""
    samples_per_label: int
    added: Dict[int, int] = field(default_factory=dict)
    available: Dict[int, int] = field(default_factory=dict)

    @property
    def n_samples(self) -> int:
        return sum(self.added.values())


class BalancedSampleExtractor:
    """
    Usage:
        extractor = BalancedSampleExtractor(labels, max_samples=10000, asprs_classes=[2, 6])
        report = extractor.extract(point_set, features, store)
    """

    def __init__(
        self,
        labels: List[Label],
        max_samples: int,
        asprs_classes: Optional[Sequence[int]] = None
    ):
        """
        Args:
            labels: katalog klas
            max_samples: maksymalna liczba próbek na klasę
            asprs_classes: kody ASPRS klas do treningu (None/puste = wszystkie)
        """
        self.labels = labels
        self.n_labels = len(labels)
        self.max_samples = max_samples

        self.train_class = None
        if asprs_classes:
            asprs_to_train = asprs_to_train_codes()
            self.train_class = np.zeros(256, dtype=bool)
            for code in asprs_classes:
                if 0 <= code <= 255:
                    self.train_class[asprs_to_train[code]] = True
            self.train_class[LABEL_UNASSIGNED] = False

    def extract(
        self,
        point_set: PointSet,
        features: np.ndarray,
        store: StoreFunc,
        rng: Optional[np.random.Generator] = None
    ) -> ExtractionReport:
        """
        Args:
            point_set: chmura z etykietami i point_map do chmury base
            features: (N_base, F) cechy punktów base
            store: ujście próbek store(features, base_index, label)
            rng: generator do tasowania (None = losowe ziarno)
        """
        if not point_set.has_labels():
            raise ValueError("Point set has no labels")

        labels = np.asarray(point_set.labels, dtype=np.int64)
        eligible = (labels != LABEL_UNASSIGNED) & (labels < self.n_labels)
        if self.train_class is not None:
            eligible &= self.train_class[np.clip(labels, 0, 255)]

        # każdy punkt base tylko raz (pierwszy punkt wyjściowy wygrywa)
        candidates = np.where(eligible)[0]
        base_idx = point_set.point_map[candidates]
        _, first = np.unique(base_idx, return_index=True)
        first.sort()
        idxes = base_idx[first]
        classes = labels[candidates[first]]

        count = np.bincount(classes, minlength=self.n_labels)
        nonzero = count[count > 0]
        samples_per_label = int(min(nonzero.min(), self.max_samples)) if len(nonzero) else 0

        logger.info(f"Samples per label: {samples_per_label}")

        rng = rng or np.random.default_rng()
        order = rng.permutation(len(idxes))

        added = np.zeros(self.n_labels, dtype=np.int64)
        for pos in order:
            g = int(classes[pos])
            if added[g] < samples_per_label:
                store(features, int(idxes[pos]), g)
                added[g] += 1

        for i, label in enumerate(self.labels):
            logger.info(f" * {label.get_name()}: {added[i]} / {count[i]}")

        return ExtractionReport(
            samples_per_label=samples_per_label,
            added={i: int(added[i]) for i in range(self.n_labels)},
            available={i: int(count[i]) for i in range(self.n_labels)}
        )


def get_training_data(
    filenames: Sequence[str],
    start_resolution: float,
    num_scales: int,
    radius: float,
    max_samples: int,
    asprs_classes: Sequence[int],
    store: StoreFunc,
    init: InitFunc
) -> float:
    """
    Zbiera próbki treningowe z wielu plików

    Chmury bez etykiet są pomijane. Pierwsza użyta chmura ustala
    rozdzielczość startowa (gdy start_resolution <= 0) i wywołuje init().

    Returns:
        Użyta rozdzielczość startowa
    """
    labels = get_training_labels()
    extractor = BalancedSampleExtractor(labels, max_samples, asprs_classes)
    initialized = False

    for filename in filenames:
        logger.info(f"Processing {filename}")
        point_set = LASLoader(filename).load()
        if not point_set.has_labels():
            logger.warning(f"{filename} has no labels, skipping...")
            continue

        if start_resolution <= 0:
            start_resolution = point_set.spacing()
            logger.info(f"Starting resolution: {start_resolution:.4f}")

        scales = compute_scales(num_scales, point_set, start_resolution, radius)
        features, _ = get_features(scales)
        logger.info(f"Features: {features.shape[1]}")

        if not initialized:
            init(features.shape[1], len(labels))
            initialized = True

        extractor.extract(point_set, features, store)

    return start_resolution
