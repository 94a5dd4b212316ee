import pytest
from pygesture.applications import GesturePipeline, PipelineConfig
from pygesture.errors import RecordingPreconditionError
from pygesture.io import save_simple_config
from pygesture.ml import GestureSource, TrainingConfig
from pygesture.processing import GestureLabel

FIST_TEXT = "1:FIST|3000,3000,0,0,16384,0,0,0"
OPEN_TEXT = "2:OPEN_HAND|1000,1000,0,0,16384,0,0,0"


@pytest.fixture
def pipeline(tmp_path):
    config = PipelineConfig(root_dir=str(tmp_path), auto_tick=False,
                            training=TrainingConfig(epochs=2, batch_size=4))
    pipe = GesturePipeline(config)
    yield pipe
    pipe.close()


def test_config_from_dict():
    cfg = PipelineConfig.from_dict({"ml_enabled": True, "epochs": 7, "training": {"batch_size": 8}, "other": 1})
    assert cfg.ml_enabled is True
    assert cfg.training.epochs == 7
    assert cfg.training.batch_size == 8
    assert cfg.confidence_threshold == 0.5
    assert cfg.history_size == 10


def test_config_from_file(tmp_path):
    path = tmp_path / "glove.cfg"
    save_simple_config({"ml_enabled": True, "port": 5599, "epochs": 4}, path)
    cfg = PipelineConfig.from_file(path)
    assert cfg.ml_enabled is True
    assert cfg.port == 5599
    assert cfg.training.epochs == 4


def test_rule_label_when_ml_disabled(pipeline):
    seen = []
    pipeline.on_gesture = seen.append
    result = pipeline.handle_frame(FIST_TEXT)
    assert result.label is GestureLabel.FIST
    assert result.source is GestureSource.RULE
    assert result.prediction is None
    assert seen == [result]
    assert pipeline.current is result


def test_malformed_frame_keeps_previous(pipeline):
    first = pipeline.handle_frame(FIST_TEXT)
    assert pipeline.handle_frame("1:FIST|oops") is None
    assert pipeline.current is first
    assert len(pipeline.history()) == 1


def test_history_is_bounded(pipeline):
    for _ in range(12):
        pipeline.handle_frame(OPEN_TEXT)
    pipeline.handle_frame(FIST_TEXT)
    history = pipeline.history()
    assert len(history) == 10
    assert history[0].gesture is GestureLabel.FIST


def test_ml_mode_attaches_prediction(pipeline):
    pipeline.ml_enabled = True
    result = pipeline.handle_frame(FIST_TEXT)
    assert result.prediction is not None
    if result.source is GestureSource.MODEL:
        assert result.confidence > 0.5
    else:
        assert result.label is GestureLabel.FIST


def test_disconnect_resets_to_idle(pipeline):
    pipeline.handle_frame(FIST_TEXT)
    pipeline.handle_disconnect()
    assert pipeline.current.label is GestureLabel.IDLE


def test_record_train_and_export(pipeline, tmp_path):
    with pytest.raises(RecordingPreconditionError):
        pipeline.start_recording(GestureLabel.FIST)

    pipeline.handle_frame(FIST_TEXT)
    pipeline.start_recording(GestureLabel.FIST)
    for _ in range(5):
        pipeline.session.tick()
    pipeline.stop_recording()

    pipeline.handle_frame(OPEN_TEXT)
    pipeline.start_recording(GestureLabel.OPEN_HAND)
    for _ in range(5):
        pipeline.session.tick()
    pipeline.stop_recording()

    stats = pipeline.stats()
    assert stats.total_samples == 10
    assert stats.samples_per_class == {GestureLabel.FIST: 5, GestureLabel.OPEN_HAND: 5}

    history = pipeline.train()
    assert len(history.epochs) == 2
    assert pipeline.classifier.store.exists()

    path = pipeline.export_stats(directory=str(tmp_path))
    assert path.endswith(".json")

    pipeline.reset_model()
    assert pipeline.stats().total_samples == 0
    assert pipeline.session.session_counts == {}
    assert not pipeline.classifier.store.exists()
