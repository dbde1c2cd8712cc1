"""
Główny pipeline klasyfikacji chmur punktów

Orchestrator łączący wszystkie komponenty:
- Wczytywanie LAS/LAZ
- Cechy wieloskalowe (na zdecymowanej chmurze base)
- Klasyfikacja + regularyzacja
- Remapowanie na punkty wyjściowe (+ ewaluacja)
- Zapis wyników
"""

import numpy as np
from typing import Dict, List, Optional
from dataclasses import dataclass, field
import time
import logging

from ..config import CLASSIFICATION, GRAPHCUT
from ..core import LASLoader, LASWriter, get_training_labels
from ..features import compute_scales, get_features
from ..ml.classifiers import load_model
from ..ml.regularization import LabelRegularizer, parse_regularization
from ..ml.remap import OutputRemapper

logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    """Niespójna konfiguracja (np. model i cechy o różnej liczbie kolumn)"""


@dataclass
class ClassifyConfig:
    """Konfiguracja klasyfikacji"""
    input_path: str
    output_path: str
    model_path: str
    regularization: str = CLASSIFICATION.REGULARIZATION
    reg_radius: float = CLASSIFICATION.REG_RADIUS
    use_colors: bool = False
    unclassified_only: bool = False
    evaluate: bool = False
    skip: List[int] = field(default_factory=list)
    stats_file: Optional[str] = None
    n_threads: int = CLASSIFICATION.N_THREADS
    contain_failures: bool = False


class ClassificationPipeline:
    """
    Pipeline klasyfikacji chmur punktów

    Usage:
        pipeline = ClassificationPipeline(ClassifyConfig("in.las", "out.las", "model.bin"))
        stats = pipeline.run()
    """

    def __init__(self, config: ClassifyConfig):
        self.config = config
        # błąd trybu regularyzacji wychodzi przed wczytaniem danych
        self.regularization = parse_regularization(config.regularization)
        self.labels = get_training_labels()

    def run(self) -> Dict:
        """
        Returns:
            Dict ze statystykami:
                - n_points, n_base_points
                - processing_time
                - classification_stats: {kod ASPRS: liczba punktów}
                - evaluation: metryki (jeśli evaluate)
        """
        cfg = self.config
        start_time = time.time()

        logger.info("=" * 70)
        logger.info("ROZPOCZYNAM KLASYFIKACJE")
        logger.info("=" * 70)

        logger.info("KROK 1/5: Wczytywanie modelu i chmury punktów...")
        classifier = load_model(cfg.model_path)
        meta = classifier.metadata
        loader = LASLoader(cfg.input_path)
        point_set = loader.load()

        start_resolution = meta.get('start_resolution', -1.0)
        if start_resolution <= 0:
            start_resolution = point_set.spacing()

        logger.info("KROK 2/5: Cechy wieloskalowe...")
        scales = compute_scales(meta.get('num_scales', 1), point_set, start_resolution, meta.get('radius', 1.0))
        features, _ = get_features(scales)

        if features.shape[1] != classifier.n_features:
            raise ConfigurationError(
                f"Model expects {classifier.n_features} features, computed {features.shape[1]}"
            )
        if classifier.n_classes != len(self.labels):
            raise ConfigurationError(
                f"Model has {classifier.n_classes} classes, label catalog has {len(self.labels)}"
            )

        logger.info("KROK 3/5: Klasyfikacja...")
        regularizer = LabelRegularizer(
            self.regularization,
            reg_radius=cfg.reg_radius,
            n_threads=cfg.n_threads,
            strength=GRAPHCUT.STRENGTH,
            neighbors=GRAPHCUT.NEIGHBORS,
            min_subdivisions=GRAPHCUT.MIN_SUBDIVISIONS,
            contain_failures=cfg.contain_failures
        )
        base_labels = regularizer.classify(point_set.base, classifier.evaluate, features, len(self.labels))

        logger.info("KROK 4/5: Remapowanie etykiet...")
        remapper = OutputRemapper(
            self.labels,
            use_colors=cfg.use_colors,
            unclassified_only=cfg.unclassified_only,
            evaluate=cfg.evaluate,
            skip=cfg.skip,
            stats_file=cfg.stats_file
        )
        evaluation = remapper.remap(point_set, base_labels)

        logger.info("KROK 5/5: Zapisywanie wyników...")
        LASWriter.write(cfg.output_path, point_set, original_header=loader.header)

        processing_time = time.time() - start_time
        classification_stats = {}
        if point_set.has_labels():
            unique, counts = np.unique(point_set.labels, return_counts=True)
            classification_stats = {int(c): int(n) for c, n in zip(unique, counts)}

        stats = {
            'n_points': point_set.count(),
            'n_base_points': point_set.base.count(),
            'processing_time': processing_time,
            'points_per_second': point_set.count() / max(processing_time, 1e-9),
            'classification_stats': classification_stats
        }
        if evaluation is not None:
            stats['evaluation'] = evaluation.to_dict()

        logger.info("=" * 70)
        logger.info("KLASYFIKACJA ZAKOŃCZONA!")
        logger.info(f"  Czas: {processing_time:.1f}s")
        logger.info(f"  Prędkość: {stats['points_per_second']:,.0f} pkt/s")
        logger.info("=" * 70)

        return stats
