"""
ML Module - Machine Learning dla klasyfikacji chmur punktów

Zawiera:
- Kryterium podziału Giniego (split_criterion.py)
- Las drzew z losowymi progami (forest.py)
- Klasyfikatory i zapis modeli (classifiers.py)
- Zbalansowany wybór próbek treningowych (training.py)
- Regularyzacja etykiet: arg-max, local smooth, graph cut (regularization.py, graphcut.py)
- Remapowanie etykiet na punkty wyjściowe (remap.py)
- Statystyki ewaluacji (statistics.py)
"""

from .split_criterion import (
    SplitCriterion,
    FeatureSplitter,
    GiniSplitCriterion,
    AxisAlignedSplitter,
    gini_square_term
)

from .forest import RandomizedTree, RandomizedForest

from .classifiers import (
    ClassifierType,
    PointCloudClassifier,
    RandomForestPointClassifier,
    GradientBoostedPointClassifier,
    create_classifier,
    fingerprint,
    load_model
)

from .training import (
    BalancedSampleExtractor,
    ExtractionReport,
    get_training_data
)

from .graphcut import AlphaExpansionSolver, labeling_energy

from .regularization import (
    Regularization,
    LabelRegularizer,
    InvalidRegularizationError,
    parse_regularization,
    best_class
)

from .statistics import Statistics, ClassMetrics

from .remap import OutputRemapper

__all__ = [
    # Split
    'SplitCriterion',
    'FeatureSplitter',
    'GiniSplitCriterion',
    'AxisAlignedSplitter',
    'gini_square_term',

    # Forest
    'RandomizedTree',
    'RandomizedForest',

    # Classifiers
    'ClassifierType',
    'PointCloudClassifier',
    'RandomForestPointClassifier',
    'GradientBoostedPointClassifier',
    'create_classifier',
    'fingerprint',
    'load_model',

    # Training
    'BalancedSampleExtractor',
    'ExtractionReport',
    'get_training_data',

    # Regularization
    'AlphaExpansionSolver',
    'labeling_energy',
    'Regularization',
    'LabelRegularizer',
    'InvalidRegularizationError',
    'parse_regularization',
    'best_class',

    # Output
    'Statistics',
    'ClassMetrics',
    'OutputRemapper',
]
