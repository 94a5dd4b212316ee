"""
Feature normalization for the gesture classifier.

Recording and inference must go through :func:`normalize_frame`. A model
trained under one scale and queried under another silently degrades, so the
contract returned by :func:`normalization_contract` is stored with every
persisted model and checked on load.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable

import numpy as np

from ._frames import SensorFrame, SENSOR_FIELDS

FLEX_SCALE = 4095.0     # 12-bit ADC full scale
MOTION_SCALE = 32768.0  # signed 16-bit range
FEATURE_NAMES = SENSOR_FIELDS
NUM_FEATURES = len(FEATURE_NAMES)

_SCALES = np.array([FLEX_SCALE] * 2 + [MOTION_SCALE] * 6, dtype=np.float64)


def normalize_frame(frame: SensorFrame) -> np.ndarray:
    """
    Map a raw frame to an 8-element float32 feature vector.

    Flex channels land in [0, 1] and motion channels in roughly [-1, 1].
    Out-of-range raw values propagate unclamped.
    """
    raw = np.asarray(frame.as_tuple(), dtype=np.float64)
    return (raw / _SCALES).astype(np.float32)


def normalize_frames(frames: Iterable[SensorFrame]) -> np.ndarray:
    """Stack :func:`normalize_frame` over many frames, shape (N, 8)."""
    rows = [normalize_frame(f) for f in frames]
    if not rows:
        return np.zeros((0, NUM_FEATURES), dtype=np.float32)
    return np.vstack(rows)


def normalization_contract() -> Dict[str, Any]:
    return {
        "feature_names": list(FEATURE_NAMES),
        "flex_scale": FLEX_SCALE,
        "motion_scale": MOTION_SCALE,
        "clamped": False,
    }
