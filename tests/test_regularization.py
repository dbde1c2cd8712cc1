"""
Tests for label regularization (arg-max, local smoothing, graph cut)
"""

import numpy as np
import pytest

from pointclass.core import PointSet, TilingEngine
from pointclass.ml.graphcut import AlphaExpansionSolver, labeling_energy
from pointclass.ml.regularization import (
    LabelRegularizer,
    Regularization,
    InvalidRegularizationError,
    parse_regularization,
    best_class
)


def copy_probabilities(features, out):
    """Cechy to gotowe prawdopodobieństwa klas"""
    out[...] = features


def _grid_probs(n_points, noisy_index, noisy_probs):
    probs = np.tile([0.9, 0.1], (n_points, 1))
    probs[noisy_index] = noisy_probs
    return probs


@pytest.mark.parametrize("mode", list(Regularization))
def test_confident_uniform_prediction(mode, rng):
    point_set = PointSet(coords=rng.uniform(0, 10, size=(100, 3)))
    features = np.tile([0.9, 0.05, 0.05], (100, 1))

    labels = LabelRegularizer(mode, reg_radius=2.0, n_threads=2).classify(
        point_set, copy_probabilities, features, 3
    )

    assert labels.shape == (100,)
    assert np.all(labels == 0)


def test_none_is_per_point_argmax(rng):
    point_set = PointSet(coords=rng.uniform(0, 10, size=(50, 3)))
    features = rng.uniform(size=(50, 4))
    regularizer = LabelRegularizer(Regularization.NONE, chunk_size=7)

    first = regularizer.classify(point_set, copy_probabilities, features, 4)
    second = regularizer.classify(point_set, copy_probabilities, features, 4)

    assert np.array_equal(first, features.argmax(axis=1))
    assert np.array_equal(first, second)


def test_threaded_and_sequential_results_match(rng):
    point_set = PointSet(coords=rng.uniform(0, 10, size=(300, 3)))
    features = rng.uniform(size=(300, 3))

    sequential = LabelRegularizer(Regularization.LOCAL_SMOOTH, reg_radius=1.5, n_threads=1, chunk_size=13)
    threaded = LabelRegularizer(Regularization.LOCAL_SMOOTH, reg_radius=1.5, n_threads=4, chunk_size=13)

    assert np.array_equal(
        sequential.classify(point_set, copy_probabilities, features, 3),
        threaded.classify(point_set, copy_probabilities, features, 3)
    )


def test_local_smooth_with_zero_radius_is_argmax(rng):
    point_set = PointSet(coords=rng.uniform(0, 10, size=(80, 3)))
    features = rng.uniform(size=(80, 3))

    labels = LabelRegularizer(Regularization.LOCAL_SMOOTH, reg_radius=0.0).classify(
        point_set, copy_probabilities, features, 3
    )

    assert np.array_equal(labels, features.argmax(axis=1))


def test_local_smooth_removes_isolated_label(grid_point_set):
    noisy = 3 * 20 + 4
    features = _grid_probs(grid_point_set.count(), noisy, [0.4, 0.6])

    raw = LabelRegularizer(Regularization.NONE).classify(grid_point_set, copy_probabilities, features, 2)
    smooth = LabelRegularizer(Regularization.LOCAL_SMOOTH, reg_radius=1.5).classify(
        grid_point_set, copy_probabilities, features, 2
    )

    assert raw[noisy] == 1
    assert np.all(smooth == 0)


def test_graphcut_removes_isolated_label(grid_point_set):
    noisy = 3 * 20 + 4
    features = _grid_probs(grid_point_set.count(), noisy, [0.45, 0.55])

    labels = LabelRegularizer(Regularization.GRAPH_CUT, n_threads=2).classify(
        grid_point_set, copy_probabilities, features, 2
    )

    assert np.all(labels == 0)


def test_graphcut_keeps_strong_regions(grid_point_set):
    coords = grid_point_set.coords
    features = np.where(coords[:, :1] < 10, [0.95, 0.05], [0.05, 0.95])

    labels = LabelRegularizer(Regularization.GRAPH_CUT).classify(grid_point_set, copy_probabilities, features, 2)

    assert np.array_equal(labels, (coords[:, 0] >= 10).astype(int))


def test_graphcut_handles_zero_probabilities(grid_point_set):
    features = np.tile([1.0, 0.0], (grid_point_set.count(), 1))

    labels = LabelRegularizer(Regularization.GRAPH_CUT).classify(grid_point_set, copy_probabilities, features, 2)

    assert np.all(labels == 0)


class FailingSolver:
    def solve(self, edges, edge_weights, unary_costs, initial_labels):
        raise RuntimeError("max-flow failed")


def test_graphcut_solver_failure_is_fatal(grid_point_set):
    features = np.tile([0.2, 0.8], (grid_point_set.count(), 1))
    regularizer = LabelRegularizer(Regularization.GRAPH_CUT, solver=FailingSolver())

    with pytest.raises(RuntimeError):
        regularizer.classify(grid_point_set, copy_probabilities, features, 2)


def test_graphcut_solver_failure_can_fall_back_to_argmax(grid_point_set):
    features = np.tile([0.2, 0.8], (grid_point_set.count(), 1))
    regularizer = LabelRegularizer(Regularization.GRAPH_CUT, solver=FailingSolver(), contain_failures=True)

    labels = regularizer.classify(grid_point_set, copy_probabilities, features, 2)

    assert np.all(labels == 1)


class RecordingSolver:
    """Zapamiętuje argumenty solve() i zwraca etykiety początkowe"""

    def __init__(self):
        self.calls = []

    def solve(self, edges, edge_weights, unary_costs, initial_labels):
        self.calls.append((
            np.asarray(edges),
            np.asarray(edge_weights),
            np.asarray(unary_costs),
            np.asarray(initial_labels)
        ))
        return np.asarray(initial_labels)


def test_graphcut_builds_partition_local_problems(grid_point_set, rng):
    n_points = grid_point_set.count()
    features = rng.uniform(size=(n_points, 3))
    features[::7, 1] = 0.0  # -log(0) ograniczone przez epsilon
    solver = RecordingSolver()
    regularizer = LabelRegularizer(Regularization.GRAPH_CUT, n_threads=1, solver=solver)

    labels = regularizer.classify(grid_point_set, copy_probabilities, features, 3)

    partitions = [
        p for p in TilingEngine(grid_point_set.coords).create_partitions(regularizer.min_subdivisions)
        if p.point_count > 0
    ]
    partition_of = np.empty(n_points, dtype=np.int64)
    for partition in partitions:
        partition_of[partition.indices] = partition.partition_id

    assert len(solver.calls) == len(partitions)
    for partition, (edges, weights, unary, initial) in zip(partitions, solver.calls):
        n = partition.point_count
        probs = features[partition.indices]

        assert edges.ndim == 2 and edges.shape[1] == 2 and len(edges) > 0
        assert np.all((edges >= 0) & (edges < n))
        assert np.all(edges[:, 0] != edges[:, 1])
        assert np.all(partition_of[partition.indices[edges]] == partition.partition_id)
        assert weights.shape == (len(edges),)
        assert np.allclose(weights, regularizer.strength)

        assert unary.shape == (3, n)
        assert np.all(np.isfinite(unary))
        assert np.allclose(unary, -np.log(np.maximum(probs, regularizer.epsilon)).T)
        assert np.array_equal(initial, probs.argmax(axis=1))
        assert np.array_equal(labels[partition.indices], initial)


def test_length_mismatch_raises(grid_point_set):
    with pytest.raises(ValueError):
        LabelRegularizer(Regularization.NONE).classify(grid_point_set, copy_probabilities, np.zeros((3, 2)), 2)


def test_invalid_regularization():
    with pytest.raises(InvalidRegularizationError):
        LabelRegularizer("graphcut")
    with pytest.raises(InvalidRegularizationError):
        parse_regularization("median")


@pytest.mark.parametrize("name, expected", [
    ("none", Regularization.NONE),
    ("Local-Smooth", Regularization.LOCAL_SMOOTH),
    ("localsmooth", Regularization.LOCAL_SMOOTH),
    ("graphcut", Regularization.GRAPH_CUT),
    ("graph_cut", Regularization.GRAPH_CUT),
])
def test_parse_regularization(name, expected):
    assert parse_regularization(name) == expected


def test_best_class_ties_and_empty_rows():
    probs = np.array([
        [0.2, 0.5, 0.5],
        [0.0, 0.0, 0.0],
        [-1.0, -0.5, -2.0],
        [0.1, 0.0, 0.7],
    ])
    assert best_class(probs).tolist() == [1, 0, 0, 2]


def test_solver_two_points():
    unary = np.array([
        [0.0, 0.6],
        [1.0, 0.5],
    ])
    labels = AlphaExpansionSolver().solve([(0, 1)], [1.0], unary, [0, 1])

    assert labels.tolist() == [0, 0]
    assert labeling_energy([(0, 1)], [1.0], unary, labels) == pytest.approx(0.6)


def test_solver_never_increases_energy(rng):
    n_points, n_labels = 40, 4
    unary = rng.uniform(0, 3, size=(n_labels, n_points))
    pairs = rng.integers(0, n_points, size=(120, 2))
    edges = [(int(p), int(q)) for p, q in pairs if p != q]
    weights = rng.uniform(0.1, 1.0, size=len(edges)).tolist()
    initial = rng.integers(0, n_labels, size=n_points)

    labels = AlphaExpansionSolver().solve(edges, weights, unary, initial)

    assert labels.shape == (n_points,)
    assert labeling_energy(edges, weights, unary, labels) <= labeling_energy(edges, weights, unary, initial) + 1e-9


def test_solver_keeps_isolated_points():
    unary = np.array([[1.0, 1.0], [1.0, 1.0]])
    labels = AlphaExpansionSolver().solve([], [], unary, [1, 0])
    assert labels.tolist() == [1, 0]


def test_solver_rejects_label_length_mismatch():
    with pytest.raises(ValueError):
        AlphaExpansionSolver().solve([], [], np.zeros((2, 3)), [0, 1])
