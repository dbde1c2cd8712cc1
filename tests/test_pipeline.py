"""
End-to-end tests: training and classification of a synthetic LAS scene
"""

import json

import numpy as np
import pytest

import cli
from pointclass.core import PointSet, LASLoader, LASWriter
from pointclass.ml.classifiers import ClassifierType, load_model
from pointclass.pipeline import (
    TrainingPipeline,
    TrainingConfig,
    ClassificationPipeline,
    ClassifyConfig,
    ConfigurationError
)


def _scene(rng):
    """Grunt 30 x 30 m i budynek 8 x 8 m z dachem dwuspadowym"""
    ground = rng.uniform(0, 30, size=(2500, 2))
    in_footprint = (ground[:, 0] > 11) & (ground[:, 0] < 19) & (ground[:, 1] > 11) & (ground[:, 1] < 19)
    ground = ground[~in_footprint]
    ground = np.column_stack([ground, rng.normal(scale=0.02, size=len(ground))])

    roof_xy = rng.uniform(11, 19, size=(600, 2))
    roof = np.column_stack([roof_xy, 4.0 + (4.0 - np.abs(roof_xy[:, 0] - 15.0))])

    walls = []
    for _ in range(4):
        t = rng.uniform(11, 19, size=200)
        z = rng.uniform(0, 4, size=200)
        walls.append((t, z))
    wall = np.vstack([
        np.column_stack([np.full(200, 11.0), walls[0][0], walls[0][1]]),
        np.column_stack([np.full(200, 19.0), walls[1][0], walls[1][1]]),
        np.column_stack([walls[2][0], np.full(200, 11.0), walls[2][1]]),
        np.column_stack([walls[3][0], np.full(200, 19.0), walls[3][1]]),
    ])

    coords = np.vstack([ground, roof, wall])
    codes = np.concatenate([
        np.full(len(ground), 2),
        np.full(len(roof) + len(wall), 6)
    ]).astype(np.uint8)
    return coords, codes


@pytest.fixture(scope="module")
def scene_file(tmp_path_factory):
    coords, codes = _scene(np.random.default_rng(7))
    path = tmp_path_factory.mktemp("scene") / "scene.las"
    LASWriter.write(str(path), PointSet(coords=coords, labels=codes))
    return path


@pytest.fixture(scope="module")
def model_file(scene_file, tmp_path_factory):
    path = tmp_path_factory.mktemp("model") / "model.bin"
    config = TrainingConfig(
        input_files=[str(scene_file)],
        model_path=str(path),
        num_scales=2,
        radius=1.0,
        start_resolution=0.5,
        max_samples=300,
        n_trees=5,
        max_depth=10,
        n_jobs=2
    )
    TrainingPipeline(config).run()
    return path


def test_training_pipeline_saves_model(model_file):
    classifier = load_model(str(model_file))

    assert classifier.classifier_type == ClassifierType.RANDOM_FOREST
    assert classifier.n_features == 18
    assert classifier.metadata['num_scales'] == 2
    assert classifier.metadata['start_resolution'] == 0.5
    # zbalansowane próbki: tyle samo gruntu i budynku
    distribution = classifier.metadata['class_distribution']
    assert set(distribution) == {0, 4}
    assert distribution[0] == distribution[4]


def test_training_without_labeled_files_fails(tmp_path):
    path = tmp_path / "plain.las"
    LASWriter.write(str(path), PointSet(coords=np.random.default_rng(0).uniform(size=(50, 3))))

    config = TrainingConfig(input_files=[str(path)], model_path=str(tmp_path / "model.bin"), num_scales=1)
    with pytest.raises(ValueError):
        TrainingPipeline(config).run()


@pytest.mark.parametrize("regularization", ["none", "local_smooth"])
def test_classification_pipeline(scene_file, model_file, tmp_path, regularization):
    output = tmp_path / "classified.las"
    config = ClassifyConfig(
        input_path=str(scene_file),
        output_path=str(output),
        model_path=str(model_file),
        regularization=regularization,
        reg_radius=1.0,
        evaluate=True
    )

    stats = ClassificationPipeline(config).run()

    assert stats['n_points'] == LASLoader(str(scene_file)).load().count()
    assert stats['n_base_points'] <= stats['n_points']
    assert stats['evaluation']['accuracy'] > 0.7

    result = LASLoader(str(output)).load()
    assert result.count() == stats['n_points']
    assert set(np.unique(result.source_codes).tolist()) <= {2, 3, 4, 5, 6, 9, 11}


def test_classification_rejects_invalid_regularization(scene_file, model_file, tmp_path):
    with pytest.raises(ValueError):
        ClassificationPipeline(ClassifyConfig(
            input_path=str(scene_file),
            output_path=str(tmp_path / "out.las"),
            model_path=str(model_file),
            regularization="median"
        ))


def test_classification_checks_feature_count(scene_file, model_file, tmp_path):
    classifier = load_model(str(model_file))
    classifier.metadata['num_scales'] = 3
    bad_model = tmp_path / "bad.bin"
    classifier.save(str(bad_model))

    with pytest.raises(ConfigurationError):
        ClassificationPipeline(ClassifyConfig(
            input_path=str(scene_file),
            output_path=str(tmp_path / "out.las"),
            model_path=str(bad_model)
        )).run()


def test_cli_classify(scene_file, model_file, tmp_path):
    output = tmp_path / "out" / "classified.las"
    stats_file = tmp_path / "stats.json"
    report = tmp_path / "report.json"

    code = cli.main([
        "--quiet", "classify", str(scene_file), str(output),
        "--model", str(model_file),
        "--regularization", "none",
        "--eval",
        "--stats-file", str(stats_file),
        "--report", str(report),
        "--threads", "1"
    ])

    assert code == 0
    assert output.exists()
    assert json.loads(stats_file.read_text())['n_samples'] > 0
    assert json.loads(report.read_text())['metadata']['regularization'] == "none"


def test_cli_reports_errors(scene_file, tmp_path, capsys):
    code = cli.main([
        "--quiet", "classify", str(scene_file), str(tmp_path / "out.las"),
        "--model", str(tmp_path / "missing.bin")
    ])

    assert code == 1
    assert "Błąd" in capsys.readouterr().err


def test_cli_train(scene_file, tmp_path):
    model = tmp_path / "cli_model.bin"

    code = cli.main([
        "--quiet", "train", str(scene_file),
        "--model", str(model),
        "--scales", "1",
        "--radius", "1.0",
        "--resolution", "0.5",
        "--trees", "2",
        "--max-depth", "5",
        "--max-samples", "50",
        "--classes", "2", "6"
    ])

    assert code == 0
    assert load_model(str(model)).n_features == 9


def test_cli_help_lists_classes(capsys):
    with pytest.raises(SystemExit):
        cli.main(["--help"])

    out = capsys.readouterr().out
    assert "chmur punktów" in out
    assert "Roślinność niska" in out
