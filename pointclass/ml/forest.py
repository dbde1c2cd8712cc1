"""
Randomized Forest - las drzew decyzyjnych z losowymi progami

Drzewo rośnie rekurencyjnie; w każdym węźle FeatureSplitter wybiera
cechy kandydujące, a SplitCriterion wyznacza najlepszy próg dla każdej
z nich. Węzeł dzieli się według cechy o najmniejszej stracie.
"""

import numpy as np
from typing import List, Optional
from concurrent.futures import ProcessPoolExecutor
import logging

from .split_criterion import SplitCriterion, FeatureSplitter, GiniSplitCriterion, AxisAlignedSplitter

logger = logging.getLogger(__name__)

LEAF = -1


class RandomizedTree:
    """
    Pojedyncze drzewo, przechowywane jako tablice węzłów

    Węzeł i: feature[i] (LEAF dla liścia), threshold[i], left[i], right[i],
    value[i] = znormalizowany histogram klas.
    """

    def __init__(
        self,
        criterion: SplitCriterion,
        splitter: FeatureSplitter,
        n_classes: int,
        max_depth: int = 20,
        min_samples_split: int = 4
    ):
        self.criterion = criterion
        self.splitter = splitter
        self.n_classes = n_classes
        self.max_depth = max_depth
        self.min_samples_split = min_samples_split

        self.feature: List[int] = []
        self.threshold: List[float] = []
        self.left: List[int] = []
        self.right: List[int] = []
        self.value: List[np.ndarray] = []

    def fit(self, X: np.ndarray, y: np.ndarray, rng: np.random.Generator) -> 'RandomizedTree':
        self.feature, self.threshold, self.left, self.right, self.value = [], [], [], [], []
        classes_l: List[int] = []
        classes_r: List[int] = []

        # (węzeł, indeksy próbek, głębokość)
        root = self._add_node(y)
        stack = [(root, np.arange(len(y)), 0)]

        while stack:
            node, indices, depth = stack.pop()
            labels = y[indices]
            hist = np.bincount(labels, minlength=self.n_classes)

            if (depth >= self.max_depth
                    or len(indices) < self.min_samples_split
                    or hist.max() == len(indices)):
                continue

            best_loss = float('inf')
            best_feature = LEAF
            best_thresh = 0.0
            for f in self.splitter.candidate_features(X.shape[1], rng):
                samples = self.splitter.samples(X, y, indices, int(f))
                thresh, loss = self.criterion.determine_best_threshold(samples, classes_l, classes_r, rng)
                if loss < best_loss:
                    best_loss, best_feature, best_thresh = loss, int(f), thresh

            if best_feature == LEAF:
                continue

            go_left = X[indices, best_feature] < best_thresh
            left_idx, right_idx = indices[go_left], indices[~go_left]
            if len(left_idx) == 0 or len(right_idx) == 0:
                continue

            self.feature[node] = best_feature
            self.threshold[node] = best_thresh
            self.left[node] = self._add_node(y[left_idx])
            self.right[node] = self._add_node(y[right_idx])
            stack.append((self.left[node], left_idx, depth + 1))
            stack.append((self.right[node], right_idx, depth + 1))

        self._freeze()
        return self

    def _add_node(self, labels: np.ndarray) -> int:
        hist = np.bincount(labels, minlength=self.n_classes).astype(np.float64)
        self.feature.append(LEAF)
        self.threshold.append(0.0)
        self.left.append(LEAF)
        self.right.append(LEAF)
        self.value.append(hist / max(hist.sum(), 1.0))
        return len(self.feature) - 1

    def _freeze(self):
        self.feature = np.asarray(self.feature, dtype=np.int64)
        self.threshold = np.asarray(self.threshold, dtype=np.float64)
        self.left = np.asarray(self.left, dtype=np.int64)
        self.right = np.asarray(self.right, dtype=np.int64)
        self.value = np.vstack(self.value)

    @property
    def node_count(self) -> int:
        return len(self.feature)

    def apply(self, X: np.ndarray) -> np.ndarray:
        """Indeks liścia dla każdego wiersza X"""
        nodes = np.zeros(len(X), dtype=np.int64)
        active = self.feature[nodes] != LEAF
        while active.any():
            idx = np.where(active)[0]
            current = nodes[idx]
            go_left = X[idx, self.feature[current]] < self.threshold[current]
            nodes[idx] = np.where(go_left, self.left[current], self.right[current])
            active[idx] = self.feature[nodes[idx]] != LEAF
        return nodes

    def predict_proba(self, X: np.ndarray) -> np.ndarray:
        return self.value[self.apply(X)]


class RandomizedForest:
    """
    Las drzew z kryterium Giniego

    Drzewa rosną w osobnych procesach (ProcessPoolExecutor), bo podział
    węzła wykonuje kod Pythona trzymający GIL. Dane treningowe trafiają
    do każdego procesu raz, przez initializer.

    Usage:
        forest = RandomizedForest(n_classes=7, n_trees=50)
        forest.fit(X, y)
        proba = forest.predict_proba(X)
    """

    def __init__(
        self,
        n_classes: int,
        n_trees: int = 100,
        max_depth: int = 20,
        min_samples_split: int = 4,
        n_candidates: int = 0,
        bootstrap: bool = True,
        n_jobs: int = 1,
        seed: Optional[int] = None
    ):
        self.n_classes = n_classes
        self.n_trees = n_trees
        self.max_depth = max_depth
        self.min_samples_split = min_samples_split
        self.n_candidates = n_candidates
        self.bootstrap = bootstrap
        self.n_jobs = n_jobs
        self.seed = seed
        self.trees: List[RandomizedTree] = []

    def _make_tree(self) -> RandomizedTree:
        return RandomizedTree(
            criterion=GiniSplitCriterion(self.n_classes),
            splitter=AxisAlignedSplitter(self.n_candidates),
            n_classes=self.n_classes,
            max_depth=self.max_depth,
            min_samples_split=self.min_samples_split
        )

    def fit(self, X: np.ndarray, y: np.ndarray) -> 'RandomizedForest':
        X = np.asarray(X, dtype=np.float64)
        y = np.asarray(y, dtype=np.int64)
        if len(X) != len(y):
            raise ValueError(f"Features/labels length mismatch: {len(X)} != {len(y)}")

        logger.info(f"Growing {self.n_trees} trees on {len(X):,} samples, {X.shape[1]} features")

        # niezależne generatory dla drzew (seed=None -> niedeterministycznie)
        seeds = np.random.SeedSequence(self.seed).spawn(self.n_trees)
        tasks = [(self._make_tree(), seed_seq, self.bootstrap) for seed_seq in seeds]

        n_workers = min(max(1, self.n_jobs), self.n_trees)
        if n_workers == 1:
            _init_worker(X, y)
            try:
                self.trees = [_grow_tree(task) for task in tasks]
            finally:
                _init_worker(None, None)
        else:
            with ProcessPoolExecutor(max_workers=n_workers, initializer=_init_worker, initargs=(X, y)) as executor:
                self.trees = list(executor.map(_grow_tree, tasks))

        nodes = sum(t.node_count for t in self.trees)
        logger.info(f"Forest ready: {nodes:,} nodes")
        return self

    def predict_proba(self, X: np.ndarray) -> np.ndarray:
        if not self.trees:
            raise ValueError("Forest not fitted. Call fit() first.")
        X = np.asarray(X, dtype=np.float64)
        proba = np.zeros((len(X), self.n_classes))
        for tree in self.trees:
            proba += tree.predict_proba(X)
        return proba / len(self.trees)


# Dane treningowe procesu roboczego (ustawiane przez _init_worker)
_worker_data: dict = {}


def _init_worker(X: Optional[np.ndarray], y: Optional[np.ndarray]) -> None:
    _worker_data['X'] = X
    _worker_data['y'] = y


def _grow_tree(task) -> RandomizedTree:
    """Rośnie jedno drzewo; funkcja modułu, żeby dało się ją przekazać do procesu"""
    tree, seed_seq, bootstrap = task
    X, y = _worker_data['X'], _worker_data['y']
    rng = np.random.default_rng(seed_seq)
    if bootstrap:
        sample = rng.integers(0, len(X), size=len(X))
    else:
        sample = np.arange(len(X))
    return tree.fit(X[sample], y[sample], rng)
