from ._gestures import GestureLabel, NUM_CLASSES, gesture_name
from ._frames import SensorFrame, SENSOR_FIELDS
from ._normalize import (
    normalize_frame,
    normalize_frames,
    normalization_contract,
    FEATURE_NAMES,
    NUM_FEATURES,
    FLEX_SCALE,
    MOTION_SCALE,
)
from ._detector import RuleBasedDetector, DetectorConfig, DetectorDecision
