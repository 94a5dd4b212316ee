"""
pygesture.applications._pipeline
================================
Host side of the glove: receive frames, refine the device's label with the
trainable classifier, and record labeled samples.

Quickstart
----------
>>> pipe = GesturePipeline(PipelineConfig(root_dir="data", ml_enabled=True))
>>> pipe.classifier.initialize()
>>> pipe.connect()                      # subscribe to the device link
>>> pipe.start_recording(GestureLabel.FIST)
>>> ...                                  # hold the gesture
>>> pipe.stop_recording()
>>> pipe.train()
>>> pipe.current.label
"""
from __future__ import annotations

import threading
from collections import deque
from concurrent.futures import Future
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Deque, Dict, List, Optional, Union

from pygesture.interface import FrameSubscriber, WireFrame, try_decode_frame
from pygesture.io import export_training_stats, load_config_file
from pygesture.logging import get_logger
from pygesture.ml import (
    ArbitrationPolicy,
    ArbitratedGesture,
    GestureClassifier,
    GestureSource,
    RecordingTicker,
    TrainingConfig,
    TrainingHistory,
    TrainingSessionController,
    TrainingStats,
    DEFAULT_CONFIDENCE_THRESHOLD,
    RECORDING_PERIOD_MS,
)
from pygesture.processing import GestureLabel

log = get_logger("applications.pipeline")

GestureHandler = Callable[[ArbitratedGesture], None]

_IDLE = ArbitratedGesture(label=GestureLabel.IDLE, source=GestureSource.RULE)


@dataclass
class PipelineConfig:
    """Host settings.

    Parameters
    ----------
    root_dir : str or None
        Directory holding the persisted model (``<root_dir>/model``).
    ml_enabled : bool
        Start with ML mode on.
    confidence_threshold : float
        Model confidence that must be exceeded for the model label to win.
    history_size : int
        Number of recent frames kept for display.
    host_ip, port :
        Device publisher endpoint.
    stale_after_s : float
        Silence after which the link counts as dropped.
    auto_tick : bool
        Run a :class:`RecordingTicker` while recording.
    training : TrainingConfig
        Classifier hyperparameters. Flat keys matching TrainingConfig fields are
        accepted by :meth:`from_dict`.
    """
    root_dir: Optional[str] = None
    ml_enabled: bool = False
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    history_size: int = 10
    host_ip: str = "127.0.0.1"
    port: Union[str, int] = "5560"
    stale_after_s: float = 2.0
    auto_tick: bool = True
    recording_period_ms: int = RECORDING_PERIOD_MS
    training: TrainingConfig = field(default_factory=TrainingConfig)

    @classmethod
    def from_dict(cls, values: Optional[Dict[str, Any]]) -> "PipelineConfig":
        values = dict(values or {})
        own = {f.name for f in fields(cls)} - {"training"}
        train_keys = {f.name for f in fields(TrainingConfig)}

        training = values.pop("training", None)
        if isinstance(training, TrainingConfig):
            training = {f.name: getattr(training, f.name) for f in fields(TrainingConfig)}
        training = dict(training or {})
        training.update({k: v for k, v in values.items() if k in train_keys})

        kwargs = {k: v for k, v in values.items() if k in own}
        return cls(training=TrainingConfig.from_dict(training), **kwargs)

    @classmethod
    def from_file(cls, path: str) -> "PipelineConfig":
        return cls.from_dict(load_config_file(path))


class GesturePipeline:
    """
    Composes the link, classifier, arbitration and recording for one glove.

    Frames may arrive from the :class:`FrameSubscriber` thread while a model is
    trained on the classifier's worker; predictions keep using the previous
    model until training finishes.

    Parameters
    ----------
    config : PipelineConfig or dict, optional
    classifier : GestureClassifier, optional
        Shared classifier instance; built from ``config`` when omitted.
    on_gesture : callable, optional
        Called with each :class:`ArbitratedGesture`, and with IDLE when the
        link drops.
    """

    def __init__(self, config: Union[PipelineConfig, Dict[str, Any], None] = None,
                 classifier: Optional[GestureClassifier] = None,
                 on_gesture: Optional[GestureHandler] = None):
        if not isinstance(config, PipelineConfig):
            config = PipelineConfig.from_dict(config)
        self.config = config
        self.classifier = classifier or GestureClassifier(root_dir=config.root_dir, config=config.training)
        self.policy = ArbitrationPolicy(enabled=config.ml_enabled, threshold=config.confidence_threshold)
        self.session = TrainingSessionController(self.classifier.samples, classifier=self.classifier)
        self.on_gesture = on_gesture

        self.subscriber: Optional[FrameSubscriber] = None
        self._ticker: Optional[RecordingTicker] = None
        self._history: Deque[WireFrame] = deque(maxlen=int(config.history_size))
        self._current: ArbitratedGesture = _IDLE
        self._lock = threading.Lock()

    # --- state ----
    @property
    def ml_enabled(self) -> bool:
        return self.policy.enabled

    @ml_enabled.setter
    def ml_enabled(self, value: bool) -> None:
        self.policy.enabled = bool(value)
        log.info(f"ML mode {'enabled' if self.policy.enabled else 'disabled'}")

    @property
    def current(self) -> ArbitratedGesture:
        with self._lock:
            return self._current

    def history(self) -> List[WireFrame]:
        """Most recent frames first."""
        with self._lock:
            return list(self._history)

    def _publish(self, result: ArbitratedGesture) -> None:
        with self._lock:
            self._current = result
        if self.on_gesture:
            self.on_gesture(result)

    # --- link events ----
    def handle_frame(self, message: Union[WireFrame, str, bytes]) -> Optional[ArbitratedGesture]:
        """
        Process one incoming frame and return the arbitrated gesture.

        Malformed text is dropped and returns None; the previous gesture stays.
        """
        wire = message if isinstance(message, WireFrame) else try_decode_frame(message)
        if wire is None:
            return None

        self.session.on_frame(wire.frame)
        with self._lock:
            self._history.appendleft(wire)

        prediction = self.classifier.predict(wire.frame) if self.policy.enabled else None
        result = self.policy.arbitrate(wire.gesture, prediction)
        self._publish(result)
        return result

    def handle_connect(self) -> None:
        log.info("Device link connected")

    def handle_disconnect(self) -> None:
        log.info("Device link lost; gesture reset to IDLE")
        self._publish(_IDLE)

    def connect(self) -> FrameSubscriber:
        """Subscribe to the device publisher on a background thread."""
        if self.subscriber is None:
            self.subscriber = FrameSubscriber(
                host_ip=self.config.host_ip,
                port=self.config.port,
                on_frame=self.handle_frame,
                on_connect=self.handle_connect,
                on_disconnect=self.handle_disconnect,
                history_size=self.config.history_size,
                stale_after_s=self.config.stale_after_s,
            )
        self.subscriber.start()
        return self.subscriber

    def disconnect(self) -> None:
        if self.subscriber is not None:
            self.subscriber.stop()
            self.handle_disconnect()

    # --- recording ----
    def start_recording(self, label) -> None:
        self.session.start_recording(label)
        if self.config.auto_tick:
            self._ticker = RecordingTicker(self.session, period_ms=self.config.recording_period_ms)
            self._ticker.start()

    def stop_recording(self) -> None:
        if self._ticker is not None:
            self._ticker.stop()
            self._ticker = None
        self.session.stop_recording()

    def clear_samples(self) -> None:
        self.session.clear_samples()

    def stats(self) -> TrainingStats:
        return self.classifier.stats()

    def export_stats(self, path: Optional[str] = None, directory: str = ".") -> str:
        return export_training_stats(self.stats(), path=path, directory=directory)

    # --- training ----
    def train(self, on_epoch=None) -> TrainingHistory:
        return self.classifier.train(on_epoch=on_epoch)

    def train_async(self, on_epoch=None) -> Future:
        return self.classifier.train_async(on_epoch=on_epoch)

    def reset_model(self) -> None:
        self.stop_recording()
        self.classifier.reset()
        self.session.reset_counts()

    # --- lifecycle ----
    def close(self) -> None:
        self.stop_recording()
        if self.subscriber is not None:
            self.subscriber.stop()
            self.subscriber = None
        self.classifier.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
