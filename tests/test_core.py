"""
Tests for the label catalog, point sets and LAS I/O
"""

import numpy as np
import pytest

from pointclass.core import (
    PointSet,
    LASLoader,
    LASWriter,
    LABEL_UNASSIGNED,
    LABEL_UNCLASSIFIED,
    get_training_labels,
    asprs_to_train_codes,
    train_to_asprs_codes,
    voxel_decimate,
    build_base
)


def test_asprs_mapping():
    to_train = asprs_to_train_codes()
    to_asprs = train_to_asprs_codes()

    assert to_train[0] == LABEL_UNCLASSIFIED
    assert to_train[1] == LABEL_UNCLASSIFIED
    assert to_train[7] == LABEL_UNASSIGNED
    for code, label in enumerate(get_training_labels()):
        assert to_train[label.get_asprs_code()] == code
        assert to_asprs[code] == label.get_asprs_code()
    assert to_asprs[LABEL_UNCLASSIFIED] == 1
    assert to_asprs[LABEL_UNASSIGNED] == 0


def test_voxel_decimate_keeps_first_point_per_voxel():
    coords = np.array([
        [0.1, 0.1, 0.0],
        [2.5, 0.0, 0.0],
        [0.2, 0.3, 0.1],
        [2.9, 0.4, 0.0],
        [5.0, 5.0, 5.0],
    ])
    decimated, point_map = voxel_decimate(PointSet(coords=coords), 1.0)

    assert decimated.count() == 3
    assert np.array_equal(decimated.coords, coords[[0, 1, 4]])
    assert point_map.tolist() == [0, 1, 0, 1, 2]


def test_voxel_decimate_without_resolution(rng):
    coords = rng.uniform(size=(10, 3))
    decimated, point_map = voxel_decimate(PointSet(coords=coords), 0.0)

    assert decimated.count() == 10
    assert np.array_equal(point_map, np.arange(10))


def test_build_base_sets_point_map(rng):
    point_set = PointSet(coords=rng.uniform(0, 10, size=(500, 3)))
    assert point_set.base is point_set

    base = build_base(point_set, 2.0)

    assert point_set.base is base
    assert base.count() < point_set.count()
    assert point_set.point_map.max() < base.count()
    # każdy punkt leży w tym samym wokselu co jego punkt base
    mins = point_set.coords.min(axis=0)
    voxel = np.floor((point_set.coords - mins) / 2.0)
    base_voxel = np.floor((base.coords[point_set.point_map] - mins) / 2.0)
    assert np.array_equal(voxel, base_voxel)


def test_spacing(grid_point_set):
    assert grid_point_set.spacing() == pytest.approx(1.0)


def test_loader_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        LASLoader(str(tmp_path / "missing.las"))


def test_las_roundtrip(tmp_path, rng):
    coords = rng.uniform(0, 50, size=(100, 3)).round(3)
    codes = rng.choice([1, 2, 6, 7], size=100).astype(np.uint8)
    colors = rng.integers(0, 256, size=(100, 3)).astype(np.uint8)
    path = tmp_path / "cloud.las"

    LASWriter.write(str(path), PointSet(coords=coords, labels=codes, colors=colors))
    loaded = LASLoader(str(path)).load()

    assert loaded.count() == 100
    assert np.allclose(loaded.coords, coords, atol=1e-3)
    assert np.array_equal(loaded.colors, colors)
    assert np.array_equal(loaded.source_codes, codes)
    assert np.array_equal(loaded.labels, asprs_to_train_codes()[codes])


def test_loader_without_classification_has_no_labels(tmp_path, rng):
    path = tmp_path / "plain.las"
    LASWriter.write(str(path), PointSet(coords=rng.uniform(size=(20, 3))))

    loaded = LASLoader(str(path)).load()

    assert not loaded.has_labels()
    assert not loaded.has_colors()


def test_bbox_and_file_info(tmp_path):
    coords = np.array([[0.0, 1.0, 2.0], [4.0, -1.0, 3.0], [2.0, 0.0, 2.5]])
    path = tmp_path / "small.las"
    LASWriter.write(str(path), PointSet(coords=coords))

    assert PointSet(coords=coords).bbox() == {'x': (0.0, 4.0), 'y': (-1.0, 1.0), 'z': (2.0, 3.0)}
    info = LASLoader.get_file_info(str(path))
    assert info['n_points'] == 3
    assert info['point_format'] == 1
