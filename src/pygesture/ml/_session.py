"""
Recording sessions: capture the live sensor feed as labeled training samples.

The controller is a two-state machine (IDLE, RECORDING) driven by an external
scheduler calling :meth:`TrainingSessionController.tick` every 100 ms. Hosts
without a scheduler of their own can use :class:`RecordingTicker`.
"""
from __future__ import annotations

import enum
import threading
from typing import Dict, Optional

from pygesture.errors import RecordingPreconditionError, RecordingStateError
from pygesture.logging import get_logger
from pygesture.processing import GestureLabel, SensorFrame
from ._sample_store import GestureSample, TrainingSampleStore

log = get_logger("ml.session")

RECORDING_PERIOD_MS = 100


class SessionState(enum.Enum):
    IDLE = "idle"
    RECORDING = "recording"


class TrainingSessionController:
    """
    Parameters
    ----------
    samples : TrainingSampleStore
        Store the recorded samples are appended to.
    classifier : optional
        Anything with an ``is_training`` property. Recording and clearing are
        refused while it reports True.
    """

    def __init__(self, samples: TrainingSampleStore, classifier=None):
        self.samples = samples
        self.classifier = classifier
        self.state = SessionState.IDLE
        self.label: Optional[GestureLabel] = None
        self.session_counts: Dict[GestureLabel, int] = {}
        self._last_frame: Optional[SensorFrame] = None
        self._lock = threading.Lock()

    @property
    def is_recording(self) -> bool:
        return self.state is SessionState.RECORDING

    @property
    def last_frame(self) -> Optional[SensorFrame]:
        with self._lock:
            return self._last_frame

    def _training(self) -> bool:
        return bool(self.classifier is not None and self.classifier.is_training)

    def on_frame(self, frame: SensorFrame) -> None:
        with self._lock:
            self._last_frame = frame

    def start_recording(self, label) -> None:
        gesture = GestureLabel.from_id(label)
        if not gesture.is_known:
            raise ValueError(f"Cannot record samples for unknown gesture id {label!r}")
        with self._lock:
            if self.state is SessionState.RECORDING:
                raise RecordingStateError(f"Already recording {self.label.name}.")
            if self._training():
                raise RecordingStateError("Cannot record while a model is training.")
            if self._last_frame is None or self._last_frame.is_blank():
                raise RecordingPreconditionError(
                    "No live sensor data. Connect the device before recording."
                )
            self.label = gesture
            self.state = SessionState.RECORDING
        log.info(f"Recording samples for {gesture.name}")

    def tick(self) -> Optional[GestureSample]:
        """Append the most recent frame under the active label. No-op when idle."""
        with self._lock:
            if self.state is not SessionState.RECORDING:
                return None
            frame, label = self._last_frame, self.label
            sample = self.samples.add(frame, label)
            self.session_counts[label] = self.session_counts.get(label, 0) + 1
        return sample

    def stop_recording(self) -> None:
        with self._lock:
            if self.state is SessionState.IDLE:
                return
            label = self.label
            self.state = SessionState.IDLE
            self.label = None
        log.info(f"Stopped recording {label.name} ({self.session_counts.get(label, 0)} samples this session)")

    def reset_counts(self) -> None:
        with self._lock:
            self.session_counts = {}

    def clear_samples(self) -> None:
        with self._lock:
            if self.state is SessionState.RECORDING:
                raise RecordingStateError("Stop recording before clearing samples.")
            if self._training():
                raise RecordingStateError("Cannot clear samples while a model is training.")
            self.samples.clear()
            self.session_counts = {}
        log.info("Cleared all training samples")


class RecordingTicker:
    """Background thread that calls ``controller.tick()`` every ``period_ms``."""

    def __init__(self, controller: TrainingSessionController, period_ms: int = RECORDING_PERIOD_MS):
        self.controller = controller
        self.period_ms = period_ms
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        period = self.period_ms / 1000.0
        while not self._stop.wait(period):
            self.controller.tick()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="RecordingTicker", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 1.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
