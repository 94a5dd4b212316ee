import json
import os

import pytest
from pygesture.errors import ModelLoadError
from pygesture.io import (
    ModelStore,
    export_training_stats,
    load_config_file,
    load_simple_config,
    save_simple_config,
)
from pygesture.ml import GestureNet, TrainingStats
from pygesture.processing import GestureLabel


def test_simple_config_round_trip(tmp_path):
    path = tmp_path / "glove.cfg"
    save_simple_config({"ml_enabled": True, "epochs": 20, "confidence_threshold": 0.6, "host_ip": "10.0.0.5",
                        "flex_low": -5}, path)
    cfg = load_simple_config(path)
    assert cfg == {"ml_enabled": True, "epochs": 20, "confidence_threshold": 0.6, "host_ip": "10.0.0.5",
                   "flex_low": -5}


def test_simple_config_skips_comments(tmp_path):
    path = tmp_path / "glove.cfg"
    path.write_text("# comment\n\nport = 5560\nnot a setting\n")
    assert load_simple_config(path) == {"port": 5560}


def test_load_config_file(tmp_path):
    assert load_config_file(tmp_path / "missing.json") == {}

    js = tmp_path / "glove.json"
    js.write_text(json.dumps({"training": {"epochs": 3}}))
    assert load_config_file(js) == {"training": {"epochs": 3}}

    bad = tmp_path / "bad.json"
    bad.write_text("[1, 2]")
    with pytest.raises(ValueError):
        load_config_file(bad)


def test_export_training_stats(tmp_path):
    stats = TrainingStats(total_samples=3, samples_per_class={GestureLabel.FIST: 2, GestureLabel.IDLE: 1})
    path = export_training_stats(stats, directory=str(tmp_path))
    name = os.path.basename(path)
    assert name.startswith("gesture-training-data-") and name.endswith(".json")

    with open(path, "r", encoding="utf-8") as f:
        doc = json.load(f)
    assert doc["stats"] == {"totalSamples": 3, "samplesPerClass": {"0": 1, "1": 2}}
    assert "timestamp" in doc


def test_export_explicit_path(tmp_path):
    target = tmp_path / "out" / "stats.json"
    path = export_training_stats({"totalSamples": 0, "samplesPerClass": {}}, path=str(target))
    assert path == str(target)
    assert target.exists()


def test_model_store_round_trip(tmp_path):
    store = ModelStore(tmp_path)
    assert not store.exists()
    model = GestureNet()
    store.save(model, extra={"note": "test"})
    assert store.exists()
    assert store.model_path.endswith(os.path.join("model", "gesture-model.pth"))

    meta = store.load_metadata()
    assert meta["architecture"]["hidden"] == [64, 32]
    assert meta["extra"] == {"note": "test"}

    restored = store.load(GestureNet)
    for a, b in zip(model.state_dict().values(), restored.state_dict().values()):
        assert (a == b).all()


def test_model_store_missing_and_delete(tmp_path):
    store = ModelStore(tmp_path, slot="other")
    with pytest.raises(ModelLoadError):
        store.load(GestureNet)
    assert store.delete() is False
    store.save(GestureNet())
    assert store.delete() is True
    assert not store.exists()


def test_model_store_corrupt_metadata(tmp_path):
    store = ModelStore(tmp_path)
    store.save(GestureNet())
    with open(store.metadata_path, "w", encoding="utf-8") as f:
        f.write("{ not json")
    with pytest.raises(ModelLoadError):
        store.load(GestureNet)
