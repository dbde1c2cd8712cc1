"""
Split Criterion - wybór progu podziału węzła drzewa decyzyjnego

Węzeł drzewa składa dwa niezależne elementy:
- SplitCriterion: ocena jakości podziału (tutaj: ważona nieczystość Giniego)
- FeatureSplitter: wybór cech kandydujących i zbieranie próbek dla cechy

Oba są wstrzykiwane do drzewa (forest.py), zamiast dziedziczenia.
"""

import numpy as np
from typing import Iterable, List, Tuple
from dataclasses import dataclass
from abc import ABC, abstractmethod

NO_SPLIT = (0.0, float('inf'))


@dataclass(eq=False)
class SampleSet:
    """
    Próbki (wartość cechy, kod klasy) jednego węzła dla jednej cechy

    Attributes:
        values: (N,) wartości cechy
        classes: (N,) kody klas
    """
    values: np.ndarray
    classes: np.ndarray

    def __post_init__(self):
        self.values = np.asarray(self.values, dtype=np.float64)
        self.classes = np.asarray(self.classes, dtype=np.int64)

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[float, int]]) -> 'SampleSet':
        pairs = list(pairs)
        return cls(
            values=[value for value, _ in pairs],
            classes=[cls_ for _, cls_ in pairs]
        )

    def __len__(self) -> int:
        return len(self.values)

    def sort(self) -> None:
        """Sortowanie w miejscu po (wartość, klasa)"""
        order = np.lexsort((self.classes, self.values))
        self.values = self.values[order]
        self.classes = self.classes[order]

    def pairs(self) -> List[Tuple[float, int]]:
        return list(zip(self.values.tolist(), self.classes.tolist()))


def gini_square_term(frequencies) -> int:
    """Suma kwadratów liczności klas"""
    return sum(f * f for f in frequencies)


class SplitCriterion(ABC):
    """Kryterium wyboru progu dla jednej cechy w jednym węźle"""

    @abstractmethod
    def determine_best_threshold(
        self,
        samples: SampleSet,
        classes_l: List[int],
        classes_r: List[int],
        rng: np.random.Generator
    ) -> Tuple[float, float]:
        """
        Zwraca (threshold, loss); (0, inf) gdy cecha nie daje podziału
        """
        pass


class FeatureSplitter(ABC):
    """Dostarcza cechy kandydujące i próbki dla kryterium podziału"""

    @abstractmethod
    def candidate_features(self, n_features: int, rng: np.random.Generator) -> np.ndarray:
        pass

    @abstractmethod
    def samples(self, X: np.ndarray, y: np.ndarray, indices: np.ndarray, feature: int) -> SampleSet:
        pass


class GiniSplitCriterion(SplitCriterion):
    """
    Losowy próg minimalizujący ważoną nieczystość Giniego

    Dla posortowanych próbek sprawdzane są wszystkie cięcia pomiędzy
    sąsiednimi różnymi wartościami. Strata cięcia po i próbkach:

        loss = n_l - sum(left^2) / n_l + n_r - sum(right^2) / n_r

    Wygrywa pierwsze (najniższe i) cięcie o minimalnej stracie. Próg leży
    w losowym miejscu pomiędzy dwiema wartościami otaczającymi to cięcie.
    Wszystkie cięcia liczone są naraz z sum skumulowanych histogramów.
    """

    def __init__(self, n_classes: int):
        self.n_classes = n_classes

    def determine_best_threshold(
        self,
        samples: SampleSet,
        classes_l: List[int],
        classes_r: List[int],
        rng: np.random.Generator
    ) -> Tuple[float, float]:
        """
        Args:
            samples: próbki węzła; sortowane w miejscu
            classes_l: histogram lewej strony (na wyjściu: wszystkie próbki poza ostatnią)
            classes_r: histogram prawej strony (na wyjściu: tylko ostatnia próbka)
            rng: źródło losowości dla położenia progu

        Returns:
            (threshold, loss)
        """
        samples.sort()
        values, classes = samples.values, samples.classes
        n = len(values)

        one_hot = np.zeros((n, self.n_classes), dtype=np.int64)
        one_hot[np.arange(n), classes] = 1
        # left[i - 1] = histogram pierwszych i próbek
        left = np.cumsum(one_hot, axis=0)[:-1]
        total = one_hot.sum(axis=0)

        if n >= 1:
            classes_l[:] = (left[-1] if n >= 2 else np.zeros(self.n_classes, dtype=np.int64)).tolist()
            classes_r[:] = one_hot[-1].tolist()
        else:
            classes_l[:] = [0] * self.n_classes
            classes_r[:] = [0] * self.n_classes

        if n < 2:
            return NO_SPLIT

        right = total - left
        n_l = np.arange(1, n, dtype=np.float64)
        n_r = n - n_l
        sq_l = (left * left).sum(axis=1).astype(np.float64)
        sq_r = (right * right).sum(axis=1).astype(np.float64)
        loss = n_l - sq_l / n_l + n_r - sq_r / n_r

        # równe wartości nie mogą zostać rozdzielone
        loss[values[:-1] == values[1:]] = np.inf
        best = int(np.argmin(loss))
        if not np.isfinite(loss[best]):
            return NO_SPLIT

        fraction = rng.random()
        threshold = fraction * values[best] + (1 - fraction) * values[best + 1]
        return float(threshold), float(loss[best])


class AxisAlignedSplitter(FeatureSplitter):
    """Losowy podzbiór cech, progi wzdłuż osi jednej cechy"""

    def __init__(self, n_candidates: int = 0):
        """
        Args:
            n_candidates: liczba cech na węzeł (0 = sqrt(n_features))
        """
        self.n_candidates = n_candidates

    def candidate_features(self, n_features: int, rng: np.random.Generator) -> np.ndarray:
        n = self.n_candidates or max(1, int(np.sqrt(n_features)))
        return rng.choice(n_features, size=min(n, n_features), replace=False)

    def samples(self, X: np.ndarray, y: np.ndarray, indices: np.ndarray, feature: int) -> SampleSet:
        return SampleSet(values=X[indices, feature], classes=y[indices])
