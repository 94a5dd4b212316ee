"""
In-memory store of labeled training samples.

Samples live only for the lifetime of the process; the trained model is the
only thing persisted.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

import numpy as np

from pygesture.processing import GestureLabel, SensorFrame, normalize_frame, NUM_FEATURES


@dataclass(frozen=True, eq=False)
class GestureSample:
    features: np.ndarray
    label: GestureLabel


@dataclass
class TrainingStats:
    total_samples: int = 0
    samples_per_class: Dict[GestureLabel, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        """camelCase view used by the export document."""
        return {
            "totalSamples": self.total_samples,
            "samplesPerClass": {int(k): v for k, v in sorted(self.samples_per_class.items())},
        }


class TrainingSampleStore:
    """
    Accumulates normalized, labeled frames for the classifier.

    All access is serialized behind a lock so a recording ticker thread and a
    training worker can share one store.
    """

    def __init__(self) -> None:
        self._samples: List[GestureSample] = []
        self._lock = threading.Lock()

    def add(self, frame: SensorFrame, label) -> GestureSample:
        """Normalize ``frame`` and append it as a new sample of ``label``."""
        gesture = GestureLabel.from_id(label)
        if not gesture.is_known:
            raise ValueError(f"Cannot record samples for unknown gesture id {label!r}")
        sample = GestureSample(features=normalize_frame(frame), label=gesture)
        with self._lock:
            self._samples.append(sample)
        return sample

    def clear(self) -> None:
        with self._lock:
            self._samples = []

    def stats(self) -> TrainingStats:
        counts: Dict[GestureLabel, int] = {}
        with self._lock:
            for s in self._samples:
                counts[s.label] = counts.get(s.label, 0) + 1
            total = len(self._samples)
        return TrainingStats(total_samples=total, samples_per_class=counts)

    def snapshot(self) -> Tuple[np.ndarray, np.ndarray]:
        """Copy all samples into ``(X, y)`` arrays, shapes (N, 8) and (N,)."""
        with self._lock:
            samples = list(self._samples)
        if not samples:
            return np.zeros((0, NUM_FEATURES), dtype=np.float32), np.zeros((0,), dtype=np.int64)
        X = np.stack([s.features for s in samples]).astype(np.float32, copy=True)
        y = np.array([int(s.label) for s in samples], dtype=np.int64)
        return X, y

    def samples(self) -> List[GestureSample]:
        with self._lock:
            return list(self._samples)

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)
