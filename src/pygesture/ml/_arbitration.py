import enum
from dataclasses import dataclass
from typing import Optional

from pygesture.processing import GestureLabel
from ._classifier import Prediction

DEFAULT_CONFIDENCE_THRESHOLD = 0.5


class GestureSource(enum.Enum):
    RULE = "rule"
    MODEL = "model"


@dataclass(frozen=True)
class ArbitratedGesture:
    label: GestureLabel
    source: GestureSource
    confidence: float = 0.0
    prediction: Optional[Prediction] = None


class ArbitrationPolicy:
    """
    Chooses between the device's rule-based label and the model's prediction.

    The model wins only when ML mode is enabled and its confidence is strictly
    above ``threshold``. Each frame is decided on its own; there is no
    smoothing between frames.
    """

    def __init__(self, enabled: bool = False, threshold: float = DEFAULT_CONFIDENCE_THRESHOLD):
        self.enabled = bool(enabled)
        self.threshold = float(threshold)

    def arbitrate(self, rule_label, prediction: Optional[Prediction] = None) -> ArbitratedGesture:
        if self.enabled and prediction is not None and prediction.confidence > self.threshold:
            return ArbitratedGesture(
                label=prediction.label,
                source=GestureSource.MODEL,
                confidence=prediction.confidence,
                prediction=prediction,
            )
        return ArbitratedGesture(
            label=GestureLabel.from_id(rule_label),
            source=GestureSource.RULE,
            confidence=0.0,
            prediction=prediction,
        )

    def __repr__(self) -> str:
        return f"ArbitrationPolicy(enabled={self.enabled}, threshold={self.threshold})"
