"""
Statistics - ewaluacja klasyfikacji względem etykiet referencyjnych

Akumuluje macierz pomylek (predykcja, prawda) i liczy metryki per klasa.
"""

import numpy as np
from typing import Dict, List, Optional
from dataclasses import dataclass, asdict
from pathlib import Path
import threading
import json
import logging

from ..core.labels import Label

logger = logging.getLogger(__name__)


@dataclass
class ClassMetrics:
    """Metryki dla pojedynczej klasy"""
    class_id: int
    class_name: str
    precision: float
    recall: float
    f1_score: float
    support: int  # liczba próbek referencyjnych
    iou: float  # Intersection over Union


class Statistics:
    """
    Usage:
        stats = Statistics(labels)
        stats.record(predicted, truth)
        stats.finalize()
        stats.print()
        stats.write_to_file("stats.json")
    """

    def __init__(self, labels: List[Label]):
        self.labels = labels
        self.n_classes = len(labels)
        # wiersze: prawda, kolumny: predykcja
        self.confusion_matrix = np.zeros((self.n_classes, self.n_classes), dtype=np.int64)
        self.accuracy: Optional[float] = None
        self.per_class: List[ClassMetrics] = []
        self._lock = threading.Lock()

    def record(self, predicted: int, truth: int) -> None:
        """Rejestruje pojedynczą parę; prawda spoza katalogu jest pomijana"""
        if 0 <= truth < self.n_classes and 0 <= predicted < self.n_classes:
            with self._lock:
                self.confusion_matrix[truth, predicted] += 1

    def record_many(self, predicted: np.ndarray, truth: np.ndarray) -> None:
        """Wektorowa wersja record()"""
        predicted = np.asarray(predicted, dtype=np.int64)
        truth = np.asarray(truth, dtype=np.int64)
        valid = (truth >= 0) & (truth < self.n_classes) & (predicted >= 0) & (predicted < self.n_classes)
        with self._lock:
            np.add.at(self.confusion_matrix, (truth[valid], predicted[valid]), 1)

    def finalize(self) -> None:
        cm = self.confusion_matrix
        total = cm.sum()
        self.accuracy = float(np.trace(cm) / total) if total > 0 else 0.0

        self.per_class = []
        for idx, label in enumerate(self.labels):
            tp = cm[idx, idx]
            fp = cm[:, idx].sum() - tp
            fn = cm[idx, :].sum() - tp

            precision = tp / (tp + fp) if (tp + fp) > 0 else 0.0
            recall = tp / (tp + fn) if (tp + fn) > 0 else 0.0
            f1 = 2 * precision * recall / (precision + recall) if (precision + recall) > 0 else 0.0
            union = tp + fp + fn
            iou = tp / union if union > 0 else 0.0

            self.per_class.append(ClassMetrics(
                class_id=idx,
                class_name=label.get_name(),
                precision=float(precision),
                recall=float(recall),
                f1_score=float(f1),
                support=int(cm[idx, :].sum()),
                iou=float(iou)
            ))

    def to_dict(self) -> Dict:
        if self.accuracy is None:
            self.finalize()
        return {
            'accuracy': self.accuracy,
            'n_samples': int(self.confusion_matrix.sum()),
            'per_class': [asdict(m) for m in self.per_class],
            'confusion_matrix': self.confusion_matrix.tolist(),
            'labels': [label.get_name() for label in self.labels]
        }

    def print(self) -> None:
        if self.accuracy is None:
            self.finalize()
        logger.info("=" * 70)
        logger.info(f"Accuracy: {self.accuracy * 100:.2f}% ({int(self.confusion_matrix.sum()):,} points)")
        for m in self.per_class:
            if m.support == 0 and self.confusion_matrix[:, m.class_id].sum() == 0:
                continue
            logger.info(f"  {m.class_name:20s} P={m.precision:.3f} R={m.recall:.3f} "
                        f"F1={m.f1_score:.3f} IoU={m.iou:.3f} ({m.support:,})")
        logger.info("=" * 70)

    def write_to_file(self, path: str) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Statistics saved to {path}")
