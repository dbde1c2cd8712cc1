"""
Label Regularization - spójne przestrzennie etykietowanie punktów

Trzy wymienne strategie:
- NONE: niezależny arg-max per punkt
- LOCAL_SMOOTH: uśrednianie prawdopodobieństw w promieniu, potem arg-max
- GRAPH_CUT: minimalizacja energii (alpha-expansion) w partycjach siatki 2D

Praca równoległa: ThreadPoolExecutor nad rozłącznymi zakresami indeksów
(lub partycjami); każde zadanie ma własne bufory i pisze tylko swoje indeksy.
"""

import numpy as np
from typing import Callable, List, Optional, Tuple
from enum import Enum
from concurrent.futures import ThreadPoolExecutor
import time
import logging

from ..config import CLASSIFICATION, GRAPHCUT
from ..core.point_set import PointSet
from ..core.tiling_engine import TilingEngine, Partition
from .graphcut import AlphaExpansionSolver

logger = logging.getLogger(__name__)

# evaluate(features (M, F), out (M, K))
EvaluateFunc = Callable[[np.ndarray, np.ndarray], None]


class InvalidRegularizationError(ValueError):
    """Nieznany tryb regularyzacji (błąd konfiguracji, przerywa przebieg)"""


class Regularization(Enum):
    NONE = "none"
    LOCAL_SMOOTH = "local_smooth"
    GRAPH_CUT = "graphcut"


def parse_regularization(value: str) -> Regularization:
    """
    Parsuje nazwę trybu: 'none', 'local_smooth' / 'localsmooth', 'graphcut' / 'graph_cut'
    """
    key = str(value).strip().lower().replace('-', '_')
    aliases = {
        'none': Regularization.NONE,
        'local_smooth': Regularization.LOCAL_SMOOTH,
        'localsmooth': Regularization.LOCAL_SMOOTH,
        'graphcut': Regularization.GRAPH_CUT,
        'graph_cut': Regularization.GRAPH_CUT,
    }
    if key not in aliases:
        raise InvalidRegularizationError(f"Invalid regularization: {value}")
    return aliases[key]


def best_class(probs: np.ndarray) -> np.ndarray:
    """
    Arg-max po ostatniej osi ze ścisłym porównaniem od (0, 0.0)

    Remisy -> najniższy indeks; wiersze bez dodatniej wartości -> klasa 0.
    """
    best = np.argmax(probs, axis=-1)
    best[probs.max(axis=-1) <= 0] = 0
    return best


def _chunks(n: int, chunk_size: int) -> List[Tuple[int, int]]:
    return [(start, min(start + chunk_size, n)) for start in range(0, n, chunk_size)]


class LabelRegularizer:
    """
    Usage:
        regularizer = LabelRegularizer(Regularization.LOCAL_SMOOTH, reg_radius=2.5)
        labels = regularizer.classify(point_set.base, classifier.evaluate, features, n_labels)
    """

    def __init__(
        self,
        regularization: Regularization,
        reg_radius: float = CLASSIFICATION.REG_RADIUS,
        n_threads: int = CLASSIFICATION.N_THREADS,
        chunk_size: int = CLASSIFICATION.CHUNK_SIZE,
        strength: float = GRAPHCUT.STRENGTH,
        neighbors: int = GRAPHCUT.NEIGHBORS,
        min_subdivisions: int = GRAPHCUT.MIN_SUBDIVISIONS,
        epsilon: float = GRAPHCUT.PROBABILITY_EPSILON,
        solver: Optional[AlphaExpansionSolver] = None,
        contain_failures: bool = False
    ):
        """
        Args:
            regularization: tryb regularyzacji
            reg_radius: promień uśredniania dla LOCAL_SMOOTH (metry)
            n_threads: liczba wątków
            chunk_size: punktów na zadanie (NONE, LOCAL_SMOOTH)
            strength: waga krawędzi sąsiedztwa (GRAPH_CUT)
            neighbors: liczba sąsiadów k-NN (GRAPH_CUT)
            min_subdivisions: docelowa liczba partycji (GRAPH_CUT)
            epsilon: dolne ograniczenie prawdopodobieństwa w -log(p)
            solver: solver energii (domyślnie AlphaExpansionSolver)
            contain_failures: błąd solvera w partycji -> arg-max zamiast przerwania
        """
        if not isinstance(regularization, Regularization):
            raise InvalidRegularizationError(f"Invalid regularization: {regularization!r}")

        self.regularization = regularization
        self.reg_radius = reg_radius
        self.n_threads = max(1, n_threads)
        self.chunk_size = max(1, chunk_size)
        self.strength = strength
        self.neighbors = neighbors
        self.min_subdivisions = max(4, min_subdivisions)
        self.epsilon = epsilon
        self.solver = solver or AlphaExpansionSolver(max_cycles=GRAPHCUT.MAX_CYCLES)
        self.contain_failures = contain_failures

    def classify(
        self,
        point_set: PointSet,
        evaluate: EvaluateFunc,
        features: np.ndarray,
        n_labels: int
    ) -> np.ndarray:
        """
        Etykietuje wszystkie punkty chmury

        Args:
            point_set: chmura robocza (base), na której liczone były cechy
            evaluate: funkcja oceniająca klasyfikatora
            features: (N, F) cechy punktów
            n_labels: liczba klas

        Returns:
            (N,) kody treningowe
        """
        if len(features) != point_set.count():
            raise ValueError(f"Features/points length mismatch: {len(features)} != {point_set.count()}")

        logger.info(f"Classifying {point_set.count():,} points ({self.regularization.value})...")
        start_time = time.time()

        if self.regularization == Regularization.NONE:
            labels = self._classify_none(evaluate, features, n_labels)
        elif self.regularization == Regularization.LOCAL_SMOOTH:
            labels = self._classify_local_smooth(point_set, evaluate, features, n_labels)
        elif self.regularization == Regularization.GRAPH_CUT:
            labels = self._classify_graphcut(point_set, evaluate, features, n_labels)
        else:
            raise InvalidRegularizationError(f"Invalid regularization: {self.regularization!r}")

        logger.info(f"Classification done in {time.time() - start_time:.2f}s")
        return labels

    def _classify_none(self, evaluate: EvaluateFunc, features: np.ndarray, n_labels: int) -> np.ndarray:
        n_points = len(features)
        labels = np.zeros(n_points, dtype=np.int64)

        def work(bounds):
            start, end = bounds
            probs = np.zeros((end - start, n_labels))
            evaluate(features[start:end], probs)
            labels[start:end] = best_class(probs)

        self._run(work, _chunks(n_points, self.chunk_size))
        return labels

    def _classify_local_smooth(
        self,
        point_set: PointSet,
        evaluate: EvaluateFunc,
        features: np.ndarray,
        n_labels: int
    ) -> np.ndarray:
        n_points = len(features)
        values = np.full((n_points, n_labels), -1.0)
        labels = np.zeros(n_points, dtype=np.int64)
        chunks = _chunks(n_points, self.chunk_size)

        def evaluate_chunk(bounds):
            start, end = bounds
            probs = np.zeros((end - start, n_labels))
            evaluate(features[start:end], probs)
            values[start:end] = probs

        # faza 1 kończy się przed startem fazy 2 (_run czeka na wszystkie zadania)
        self._run(evaluate_chunk, chunks)

        logger.info("Local smoothing...")
        index = point_set.get_index()
        coords = point_set.coords

        def smooth_chunk(bounds):
            start, end = bounds
            matches = index.query_ball_point(coords[start:end], self.reg_radius)
            mean = np.zeros(n_labels)
            for offset, neighbors in enumerate(matches):
                i = start + offset
                if len(neighbors) == 0:
                    # punkt nie znalazł nawet siebie (np. promień ujemny)
                    mean[:] = values[i]
                else:
                    mean[:] = values[neighbors].mean(axis=0)
                labels[i] = best_class(mean[None, :])[0]

        self._run(smooth_chunk, chunks)
        return labels

    def _classify_graphcut(
        self,
        point_set: PointSet,
        evaluate: EvaluateFunc,
        features: np.ndarray,
        n_labels: int
    ) -> np.ndarray:
        logger.info("Using graph cut...")
        n_points = len(features)
        labels = np.zeros(n_points, dtype=np.int64)

        partitions = TilingEngine(point_set.coords).create_partitions(self.min_subdivisions)

        partition_of = np.empty(n_points, dtype=np.int64)
        local_of = np.empty(n_points, dtype=np.int64)
        for partition in partitions:
            partition_of[partition.indices] = partition.partition_id
            local_of[partition.indices] = np.arange(partition.point_count)

        index = point_set.get_index()

        def solve_partition(partition: Partition):
            indices = partition.indices
            assigned = self._solve_partition(
                partition, point_set.coords, index, partition_of, local_of,
                evaluate, features[indices], n_labels
            )
            labels[indices] = assigned

        self._run(solve_partition, [p for p in partitions if p.point_count > 0])
        return labels

    def _solve_partition(
        self,
        partition: Partition,
        coords: np.ndarray,
        index,
        partition_of: np.ndarray,
        local_of: np.ndarray,
        evaluate: EvaluateFunc,
        features: np.ndarray,
        n_labels: int
    ) -> np.ndarray:
        indices = partition.indices
        k = min(self.neighbors, len(coords))
        _, neighbor_idx = index.query(coords[indices], k=k)
        neighbor_idx = np.asarray(neighbor_idx).reshape(len(indices), -1)

        # kd-tree zwraca len(coords) gdy brakuje sąsiada
        valid = neighbor_idx < len(coords)
        safe = np.where(valid, neighbor_idx, 0)
        rows = np.broadcast_to(np.arange(len(indices))[:, None], neighbor_idx.shape)
        same = valid & (partition_of[safe] == partition.partition_id) & (local_of[safe] != rows)

        edges = np.column_stack([rows[same], local_of[safe][same]])
        edge_weights = np.full(len(edges), self.strength)

        probs = np.zeros((len(indices), n_labels))
        evaluate(features, probs)
        unary_costs = -np.log(np.maximum(probs, self.epsilon)).T  # (K, N)
        initial = best_class(probs)

        try:
            return self.solver.solve(edges, edge_weights, unary_costs, initial)
        except Exception as e:
            logger.error(f"Graph cut failed in partition {partition.partition_id}: {e}")
            if not self.contain_failures:
                raise
            logger.warning(f"Partition {partition.partition_id}: falling back to arg-max labels")
            return initial

    def _run(self, work, items) -> None:
        """Wykonuje work(item) dla wszystkich elementów; wyjątki są propagowane"""
        if self.n_threads == 1 or len(items) <= 1:
            for item in items:
                work(item)
            return

        with ThreadPoolExecutor(max_workers=self.n_threads) as executor:
            for _ in executor.map(work, items):
                pass
