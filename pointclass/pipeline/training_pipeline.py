"""
Pipeline treningowy

Pliki LAS/LAZ z etykietami -> cechy wieloskalowe -> zbalansowane próbki
-> klasyfikator -> plik modelu.
"""

import numpy as np
from typing import Dict, List
from dataclasses import dataclass, field
from pathlib import Path
import time
import logging

from ..config import TRAINING
from ..core.labels import get_training_labels
from ..features import feature_names
from ..ml.classifiers import ClassifierType, PointCloudClassifier, create_classifier
from ..ml.training import get_training_data

logger = logging.getLogger(__name__)


@dataclass
class TrainingConfig:
    """Konfiguracja treningu"""
    input_files: List[str] = field(default_factory=list)
    model_path: str = "model.bin"
    classifier_type: ClassifierType = ClassifierType.RANDOM_FOREST

    # Cechy
    num_scales: int = TRAINING.NUM_SCALES
    radius: float = TRAINING.RADIUS
    start_resolution: float = TRAINING.START_RESOLUTION

    # Próbkowanie
    max_samples: int = TRAINING.MAX_SAMPLES
    asprs_classes: List[int] = field(default_factory=list)

    # Model
    n_trees: int = TRAINING.N_TREES
    max_depth: int = TRAINING.MAX_DEPTH
    n_jobs: int = 4


class TrainingPipeline:
    """
    Usage:
        pipeline = TrainingPipeline(TrainingConfig(input_files=[...], model_path="model.bin"))
        classifier = pipeline.run()
    """

    def __init__(self, config: TrainingConfig):
        self.config = config
        self.labels = get_training_labels()
        self._rows: List[np.ndarray] = []
        self._targets: List[int] = []
        self.n_features = 0

    def _init(self, n_features: int, n_labels: int) -> None:
        self.n_features = n_features
        logger.info(f"Training set: {n_features} features, {n_labels} labels")

    def _store(self, features: np.ndarray, index: int, label: int) -> None:
        self._rows.append(features[index])
        self._targets.append(label)

    def _create_classifier(self) -> PointCloudClassifier:
        if self.config.classifier_type == ClassifierType.RANDOM_FOREST:
            return create_classifier(
                self.config.classifier_type,
                n_classes=len(self.labels),
                n_trees=self.config.n_trees,
                max_depth=self.config.max_depth,
                n_jobs=self.config.n_jobs
            )
        return create_classifier(
            self.config.classifier_type,
            n_classes=len(self.labels),
            n_estimators=self.config.n_trees,
            max_depth=min(self.config.max_depth, 8)
        )

    def run(self) -> PointCloudClassifier:
        cfg = self.config
        start_time = time.time()

        logger.info("=" * 70)
        logger.info(f"TRAINING ({cfg.classifier_type.value}) on {len(cfg.input_files)} file(s)")
        logger.info("=" * 70)

        start_resolution = get_training_data(
            cfg.input_files,
            cfg.start_resolution,
            cfg.num_scales,
            cfg.radius,
            cfg.max_samples,
            cfg.asprs_classes,
            self._store,
            self._init
        )

        if not self._rows:
            raise ValueError("No training samples collected (no labeled input files?)")

        X = np.vstack(self._rows)
        y = np.asarray(self._targets, dtype=np.int64)
        logger.info(f"Collected {len(X):,} samples")

        classifier = self._create_classifier()
        classifier.fit(X, y, feature_names=feature_names(cfg.num_scales))
        classifier.metadata = {
            'start_resolution': start_resolution,
            'num_scales': cfg.num_scales,
            'radius': cfg.radius,
            'labels': [label.get_name() for label in self.labels],
            'class_distribution': self._class_distribution(y)
        }

        model_path = Path(cfg.model_path)
        model_path.parent.mkdir(parents=True, exist_ok=True)
        classifier.save(str(model_path))

        logger.info(f"Training finished in {time.time() - start_time:.1f}s")
        return classifier

    @staticmethod
    def _class_distribution(y: np.ndarray) -> Dict[int, int]:
        unique, counts = np.unique(y, return_counts=True)
        return dict(zip(unique.astype(int).tolist(), counts.astype(int).tolist()))
