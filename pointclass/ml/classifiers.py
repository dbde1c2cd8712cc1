"""
ML Classifiers - Klasyfikatory Machine Learning dla chmur punktów

Zawiera:
- RandomForestPointClassifier - las drzew z kryterium Giniego (forest.py)
- GradientBoostedPointClassifier - Gradient Boosting (scikit-learn)

Klasyfikatory uczą się na cechach wieloskalowych i przewidują kody treningowe
katalogu etykiet. Funkcja oceniająca evaluate(features, out) wypełnia
prawdopodobieństwa klas dla bloku punktów.
"""

import numpy as np
from typing import Dict, Optional, List, Any
from enum import Enum
from abc import ABC, abstractmethod
import pickle
import logging

from sklearn.ensemble import GradientBoostingClassifier

from .forest import RandomizedForest

logger = logging.getLogger(__name__)


class ClassifierType(Enum):
    RANDOM_FOREST = "random_forest"
    GRADIENT_BOOSTED_TREES = "gradient_boosted_trees"


class PointCloudClassifier(ABC):
    """Abstrakcyjna klasa bazowa dla klasyfikatorów"""

    classifier_type: ClassifierType

    def __init__(self, n_classes: int):
        self.n_classes = n_classes
        self.feature_names: List[str] = []
        self.metadata: Dict[str, Any] = {}
        self.is_fitted = False

    @abstractmethod
    def fit(self, X: np.ndarray, y: np.ndarray, feature_names: Optional[List[str]] = None) -> 'PointCloudClassifier':
        """Trenuje klasyfikator"""
        pass

    @abstractmethod
    def predict_proba(self, X: np.ndarray) -> np.ndarray:
        """(N, n_classes) prawdopodobieństwa klas"""
        pass

    @property
    def n_features(self) -> int:
        return len(self.feature_names)

    def evaluate(self, features: np.ndarray, out: np.ndarray) -> None:
        """
        Funkcja oceniająca: wypełnia out prawdopodobieństwami klas

        Args:
            features: (M, F) lub (F,) cechy punktów
            out: (M, n_classes) lub (n_classes,) bufor wyjściowy
        """
        if not self.is_fitted:
            raise ValueError("Model not fitted. Call fit() first.")
        features = np.asarray(features)
        if features.shape[-1] != self.n_features:
            raise ValueError(f"Expected {self.n_features} features, got {features.shape[-1]}")
        out[...] = self.predict_proba(features.reshape(-1, self.n_features)).reshape(out.shape)

    def predict(self, X: np.ndarray) -> np.ndarray:
        return np.argmax(self.predict_proba(X), axis=1)

    def _state(self) -> Dict[str, Any]:
        return {}

    def _restore(self, state: Dict[str, Any]) -> None:
        pass

    def save(self, path: str) -> None:
        """Zapisuje model do pliku"""
        data = {
            'type': self.classifier_type.value,
            'n_classes': self.n_classes,
            'feature_names': self.feature_names,
            'metadata': self.metadata,
            'is_fitted': self.is_fitted,
            **self._state()
        }
        with open(path, 'wb') as f:
            pickle.dump(data, f)
        logger.info(f"Model saved to {path}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PointCloudClassifier':
        instance = cls(n_classes=data['n_classes'])
        instance.feature_names = data['feature_names']
        instance.metadata = data.get('metadata', {})
        instance.is_fitted = data['is_fitted']
        instance._restore(data)
        return instance


class RandomForestPointClassifier(PointCloudClassifier):
    """
    Random Forest dla chmur punktów

    Usage:
        clf = RandomForestPointClassifier(n_classes=7, n_trees=100)
        clf.fit(X_train, y_train, feature_names)
        clf.save("model.bin")
    """

    classifier_type = ClassifierType.RANDOM_FOREST

    def __init__(
        self,
        n_classes: int,
        n_trees: int = 100,
        max_depth: int = 20,
        min_samples_split: int = 4,
        n_jobs: int = 1
    ):
        super().__init__(n_classes)
        self.model = RandomizedForest(
            n_classes=n_classes,
            n_trees=n_trees,
            max_depth=max_depth,
            min_samples_split=min_samples_split,
            n_jobs=n_jobs
        )

    def fit(self, X, y, feature_names=None):
        logger.info(f"Training Random Forest on {len(X):,} samples, {X.shape[1]} features")
        self.feature_names = feature_names or [f"feature_{i}" for i in range(X.shape[1])]
        self.model.fit(X, y)
        self.is_fitted = True
        return self

    def predict_proba(self, X):
        if not self.is_fitted:
            raise ValueError("Model not fitted. Call fit() first.")
        return self.model.predict_proba(X)

    def _state(self):
        return {'model': self.model}

    def _restore(self, state):
        self.model = state['model']


class GradientBoostedPointClassifier(PointCloudClassifier):
    """Gradient Boosting (scikit-learn); kolumny proba rozszerzone do wszystkich klas"""

    classifier_type = ClassifierType.GRADIENT_BOOSTED_TREES

    def __init__(
        self,
        n_classes: int,
        n_estimators: int = 100,
        max_depth: int = 6,
        learning_rate: float = 0.1
    ):
        super().__init__(n_classes)
        self.model = GradientBoostingClassifier(
            n_estimators=n_estimators,
            max_depth=max_depth,
            learning_rate=learning_rate,
            verbose=0
        )

    def fit(self, X, y, feature_names=None):
        logger.info(f"Training Gradient Boosting on {len(X):,} samples, {X.shape[1]} features")
        self.feature_names = feature_names or [f"feature_{i}" for i in range(X.shape[1])]
        self.model.fit(X, y)
        self.is_fitted = True
        return self

    def predict_proba(self, X):
        if not self.is_fitted:
            raise ValueError("Model not fitted. Call fit() first.")
        proba = np.zeros((len(X), self.n_classes))
        proba[:, self.model.classes_.astype(int)] = self.model.predict_proba(X)
        return proba

    def _state(self):
        return {'model': self.model}

    def _restore(self, state):
        self.model = state['model']


_CLASSIFIERS = {
    ClassifierType.RANDOM_FOREST: RandomForestPointClassifier,
    ClassifierType.GRADIENT_BOOSTED_TREES: GradientBoostedPointClassifier,
}


def create_classifier(classifier_type: ClassifierType, n_classes: int, **kwargs) -> PointCloudClassifier:
    return _CLASSIFIERS[classifier_type](n_classes=n_classes, **kwargs)


def fingerprint(path: str) -> ClassifierType:
    """Rozpoznaje typ klasyfikatora zapisanego w pliku modelu"""
    with open(path, 'rb') as f:
        data = pickle.load(f)
    try:
        return ClassifierType(data['type'])
    except (KeyError, TypeError, ValueError):
        raise ValueError(f"Unknown model file: {path}")


def load_model(path: str) -> PointCloudClassifier:
    """Wczytuje model z pliku; typ klasyfikatora rozpoznaje fingerprint()"""
    classifier_type = fingerprint(path)
    with open(path, 'rb') as f:
        data = pickle.load(f)

    instance = _CLASSIFIERS[classifier_type].from_dict(data)
    logger.info(f"Model loaded from {path} ({classifier_type.value}, {instance.n_features} features)")
    return instance
