from ._models import GestureNet
from ._sample_store import GestureSample, TrainingSampleStore, TrainingStats
from ._classifier import (
    GestureClassifier,
    TrainingConfig,
    TrainingHistory,
    EpochProgress,
    Prediction,
)
from ._arbitration import ArbitrationPolicy, ArbitratedGesture, GestureSource, DEFAULT_CONFIDENCE_THRESHOLD
from ._session import TrainingSessionController, RecordingTicker, SessionState, RECORDING_PERIOD_MS
