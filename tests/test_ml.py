import json
import threading

import numpy as np
import pytest
import torch
from pygesture.errors import InsufficientDataError, TrainingInProgressError
from pygesture.ml import GestureNet, GestureClassifier, TrainingConfig, EpochProgress
from pygesture.processing import GestureLabel, SensorFrame, NUM_CLASSES, NUM_FEATURES

FIST = SensorFrame(flex1=3000, flex2=3000, az=16384)
OPEN = SensorFrame(flex1=1000, flex2=1000, az=16384)


def make_classifier(root, n_samples=10, **overrides):
    cfg = dict(epochs=2, batch_size=4)
    cfg.update(overrides)
    clf = GestureClassifier(root_dir=str(root), config=TrainingConfig(**cfg))
    for i in range(n_samples):
        clf.add_sample(FIST if i % 2 else OPEN, GestureLabel.FIST if i % 2 else GestureLabel.OPEN_HAND)
    return clf


def test_gesture_net_shapes():
    model = GestureNet()
    x = torch.randn(5, NUM_FEATURES)
    assert model(x).shape == (5, NUM_CLASSES)
    probs = model.predict_proba(x)
    assert probs.shape == (5, NUM_CLASSES)
    assert torch.allclose(probs.sum(dim=1), torch.ones(5), atol=1e-5)


def test_gesture_net_descriptor():
    model = GestureNet()
    desc = model.describe()
    assert desc["hidden"] == [64, 32]
    assert desc["dropout"] == pytest.approx(0.2)
    clone = GestureNet.from_descriptor(desc)
    assert [p.shape for p in clone.parameters()] == [p.shape for p in model.parameters()]


def test_training_config_defaults():
    cfg = TrainingConfig()
    assert (cfg.epochs, cfg.batch_size, cfg.validation_split, cfg.min_samples) == (50, 32, 0.2, 10)
    assert TrainingConfig.from_dict({"epochs": 5, "bogus": 1}).epochs == 5


def test_untrained_predict(tmp_path):
    clf = GestureClassifier(root_dir=str(tmp_path))
    pred = clf.predict(FIST)
    assert pred.label.is_known
    assert 0.0 <= pred.confidence <= 1.0
    assert len(pred.distribution) == NUM_CLASSES
    assert sum(pred.distribution) == pytest.approx(1.0, abs=1e-5)
    assert pred.confidence == pytest.approx(max(pred.distribution))
    assert clf.model is not None


def test_train_requires_minimum_samples(tmp_path):
    clf = make_classifier(tmp_path, n_samples=9)
    with pytest.raises(InsufficientDataError) as exc:
        clf.train()
    assert exc.value.available == 9
    assert exc.value.required == 10
    assert clf.model is None
    assert len(clf.samples) == 9
    assert not clf.store.exists()


def test_train_reports_epochs(tmp_path):
    clf = make_classifier(tmp_path, n_samples=10)
    seen = []
    history = clf.train(on_epoch=seen.append)

    assert len(seen) == 2
    assert all(isinstance(p, EpochProgress) for p in seen)
    assert [p.epoch for p in seen] == [1, 2]
    assert history.n_train == 8 and history.n_val == 2
    assert seen[-1].val_loss is not None
    assert 0.0 <= seen[-1].accuracy <= 1.0
    assert clf.store.exists()
    assert not clf.is_training


def test_train_without_validation_split(tmp_path):
    clf = make_classifier(tmp_path, validation_split=0.0)
    history = clf.train()
    assert history.n_val == 0
    assert history.final.val_loss is None
    assert history.final.val_accuracy is None
    assert "N/A" in str(history.final)


def test_concurrent_train_rejected(tmp_path):
    clf = make_classifier(tmp_path)
    errors = []

    def on_epoch(progress):
        assert clf.is_training
        try:
            clf.train()
        except TrainingInProgressError as e:
            errors.append(e)

    clf.train(on_epoch=on_epoch)
    assert len(errors) == 2
    # lock released after the run
    clf.train()


def test_predict_uses_previous_model_during_training(tmp_path):
    clf = make_classifier(tmp_path)
    clf.initialize()
    before = clf.model
    during = []

    def on_epoch(progress):
        during.append(clf.model)
        clf.predict(FIST)

    clf.train(on_epoch=on_epoch)
    assert all(m is before for m in during)
    assert clf.model is not before


def test_train_async(tmp_path):
    clf = make_classifier(tmp_path)
    gate = threading.Event()
    started = threading.Event()

    def on_epoch(progress):
        started.set()
        gate.wait(timeout=10)

    future = clf.train_async(on_epoch=on_epoch)
    try:
        assert started.wait(timeout=10)
        assert clf.is_training
        with pytest.raises(TrainingInProgressError):
            clf.train_async()
        with pytest.raises(TrainingInProgressError):
            clf.train()
    finally:
        gate.set()
    history = future.result(timeout=30)
    assert len(history.epochs) == 2
    assert not clf.is_training
    clf.close()


def test_train_async_reports_insufficient_data(tmp_path):
    clf = make_classifier(tmp_path, n_samples=3)
    future = clf.train_async()
    with pytest.raises(InsufficientDataError):
        future.result(timeout=10)
    assert not clf.is_training
    clf.close()


def test_save_and_load_round_trip(tmp_path):
    clf = make_classifier(tmp_path)
    clf.train()
    expected = clf.predict(FIST)

    restored = GestureClassifier(root_dir=str(tmp_path))
    assert restored.initialize() is True
    got = restored.predict(FIST)
    assert got.label == expected.label
    assert np.allclose(got.distribution, expected.distribution, atol=1e-6)


def test_load_missing_returns_false(tmp_path):
    clf = GestureClassifier(root_dir=str(tmp_path))
    assert clf.load() is False
    assert clf.initialize() is False
    assert clf.model is not None


def test_load_corrupt_weights(tmp_path):
    clf = make_classifier(tmp_path)
    clf.train()
    with open(clf.store.model_path, "wb") as f:
        f.write(b"not a torch file")
    assert GestureClassifier(root_dir=str(tmp_path)).load() is False


def test_load_rejects_other_normalization(tmp_path):
    clf = make_classifier(tmp_path)
    clf.train()
    with open(clf.store.metadata_path, "r", encoding="utf-8") as f:
        meta = json.load(f)
    meta["normalization"]["flex_scale"] = 1023.0
    with open(clf.store.metadata_path, "w", encoding="utf-8") as f:
        json.dump(meta, f)
    assert GestureClassifier(root_dir=str(tmp_path)).load() is False


def test_save_failure_is_not_fatal(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory")
    clf = make_classifier(blocker)
    history = clf.train()
    assert len(history.epochs) == 2
    assert clf.save() is False
    assert clf.model is not None


def test_reset(tmp_path):
    clf = make_classifier(tmp_path)
    clf.train()
    clf.reset()
    assert clf.model is None
    assert len(clf.samples) == 0
    assert not clf.store.exists()
    assert GestureClassifier(root_dir=str(tmp_path)).load() is False
    # behaves like first use
    assert clf.predict(FIST).label.is_known
