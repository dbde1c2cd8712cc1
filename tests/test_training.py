"""
Tests for balanced training sample extraction
"""

import numpy as np
import pytest

from pointclass.core import PointSet, get_training_labels, LABEL_UNASSIGNED, LABEL_UNCLASSIFIED
from pointclass.ml import training
from pointclass.ml.training import BalancedSampleExtractor, get_training_data


class _Sink:
    def __init__(self):
        self.samples = []

    def __call__(self, features, index, label):
        self.samples.append((index, label, features[index].copy()))


def _labeled_point_set(labels, point_map=None):
    labels = np.asarray(labels, dtype=np.uint8)
    coords = np.column_stack([np.arange(len(labels), dtype=np.float64), np.zeros(len(labels)), np.zeros(len(labels))])
    point_set = PointSet(coords=coords, labels=labels)
    if point_map is not None:
        point_set.point_map = np.asarray(point_map)
    return point_set


def test_extract_balances_classes():
    labels = [0] * 10 + [1] * 3 + [4] * 5 + [LABEL_UNASSIGNED] * 2 + [LABEL_UNCLASSIFIED] * 2
    point_set = _labeled_point_set(labels)
    features = np.arange(len(labels), dtype=np.float32)[:, None]
    sink = _Sink()

    extractor = BalancedSampleExtractor(get_training_labels(), max_samples=100)
    report = extractor.extract(point_set, features, sink, rng=np.random.default_rng(0))

    assert report.samples_per_label == 3
    assert report.added[0] == 3 and report.added[1] == 3 and report.added[4] == 3
    assert report.n_samples == 9
    stored_labels = [label for _, label, _ in sink.samples]
    assert sorted(stored_labels) == [0, 0, 0, 1, 1, 1, 4, 4, 4]
    for index, label, row in sink.samples:
        assert labels[index] == label
        assert row[0] == index


def test_extract_respects_max_samples():
    labels = [0] * 20 + [2] * 30
    sink = _Sink()

    report = BalancedSampleExtractor(get_training_labels(), max_samples=5).extract(
        _labeled_point_set(labels), np.zeros((50, 1)), sink
    )

    assert report.samples_per_label == 5
    assert len(sink.samples) == 10


def test_extract_stores_each_base_point_once():
    # 6 punktów wyjściowych, 3 punkty base
    labels = [0, 0, 0, 1, 1, 1]
    point_set = _labeled_point_set(labels, point_map=[0, 0, 1, 2, 2, 2])
    sink = _Sink()

    report = BalancedSampleExtractor(get_training_labels(), max_samples=10).extract(
        point_set, np.zeros((3, 1)), sink
    )

    assert report.available[0] == 2
    assert report.available[1] == 1
    assert report.samples_per_label == 1
    indices = [index for index, _, _ in sink.samples]
    assert len(indices) == len(set(indices))


def test_extract_subset_of_asprs_classes():
    labels = [0] * 4 + [4] * 4 + [6] * 4
    sink = _Sink()

    # 2 = ground (train 0), 6 = building (train 4)
    report = BalancedSampleExtractor(get_training_labels(), max_samples=10, asprs_classes=[2, 6]).extract(
        _labeled_point_set(labels), np.zeros((12, 1)), sink
    )

    assert {label for _, label, _ in sink.samples} == {0, 4}
    assert report.added[6] == 0


def test_extract_with_no_eligible_points():
    labels = [LABEL_UNCLASSIFIED] * 4
    sink = _Sink()

    report = BalancedSampleExtractor(get_training_labels(), max_samples=10).extract(
        _labeled_point_set(labels), np.zeros((4, 1)), sink
    )

    assert report.samples_per_label == 0
    assert sink.samples == []


def test_extract_requires_labels():
    point_set = PointSet(coords=np.zeros((3, 3)))
    with pytest.raises(ValueError):
        BalancedSampleExtractor(get_training_labels(), max_samples=10).extract(point_set, np.zeros((3, 1)), _Sink())


def test_get_training_data_skips_unlabeled_files(monkeypatch):
    class UnlabeledLoader:
        def __init__(self, file_path):
            self.file_path = file_path

        def load(self):
            return PointSet(coords=np.random.default_rng(0).uniform(size=(10, 3)))

    monkeypatch.setattr(training, "LASLoader", UnlabeledLoader)
    calls = []

    resolution = get_training_data(
        ["a.las", "b.las"], 1.0, 2, 0.5, 100, [],
        store=lambda *args: calls.append(('store', args)),
        init=lambda *args: calls.append(('init', args))
    )

    assert resolution == 1.0
    assert calls == []


def test_get_training_data_initializes_once(monkeypatch):
    rng = np.random.default_rng(3)

    class LabeledLoader:
        def __init__(self, file_path):
            self.file_path = file_path

        def load(self):
            coords = rng.uniform(0, 10, size=(200, 3))
            labels = np.where(coords[:, 2] > 5, 4, 0).astype(np.uint8)
            return PointSet(coords=coords, labels=labels)

    monkeypatch.setattr(training, "LASLoader", LabeledLoader)
    inits = []
    stored = []

    resolution = get_training_data(
        ["a.las", "b.las"], -1.0, 2, 1.0, 20, [],
        store=lambda features, index, label: stored.append(label),
        init=lambda n_features, n_labels: inits.append((n_features, n_labels))
    )

    assert resolution > 0
    assert inits == [(18, len(get_training_labels()))]
    assert set(stored) == {0, 4}
