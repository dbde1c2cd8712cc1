"""
pointclass - klasyfikacja semantyczna chmur punktów

Moduły:
- core: PointSet, LAS/LAZ I/O, partycjonowanie, katalog etykiet
- features: cechy geometryczne w wielu skalach
- ml: las drzew (kryterium Giniego), regularyzacja etykiet, remapowanie, statystyki
- pipeline: pipeline treningowy i klasyfikacyjny

Przykład użycia:
    from pointclass import ClassificationPipeline, ClassifyConfig

    pipeline = ClassificationPipeline(ClassifyConfig(
        input_path="input.las",
        output_path="output.las",
        model_path="model.bin",
        regularization="local_smooth"
    ))
    stats = pipeline.run()
"""

from .core import PointSet, LASLoader, LASWriter, TilingEngine, Partition
from .ml import (
    GiniSplitCriterion,
    BalancedSampleExtractor,
    LabelRegularizer,
    Regularization,
    OutputRemapper,
    Statistics
)
from .pipeline import TrainingPipeline, TrainingConfig, ClassificationPipeline, ClassifyConfig

__version__ = "1.0.0"
__all__ = [
    'PointSet',
    'LASLoader',
    'LASWriter',
    'TilingEngine',
    'Partition',
    'GiniSplitCriterion',
    'BalancedSampleExtractor',
    'LabelRegularizer',
    'Regularization',
    'OutputRemapper',
    'Statistics',
    'TrainingPipeline',
    'TrainingConfig',
    'ClassificationPipeline',
    'ClassifyConfig'
]
