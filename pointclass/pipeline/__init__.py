"""
Pipelines - trening i klasyfikacja plików LAS/LAZ
"""

from .training_pipeline import TrainingPipeline, TrainingConfig
from .classification_pipeline import ClassificationPipeline, ClassifyConfig, ConfigurationError

__all__ = [
    'TrainingPipeline',
    'TrainingConfig',
    'ClassificationPipeline',
    'ClassifyConfig',
    'ConfigurationError'
]
