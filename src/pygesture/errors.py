"""
Error kinds raised by the gesture-decision pipeline.

None of these are fatal to the host process. Callers either recover locally
(skip a malformed frame, build a fresh model) or surface the message to the
user.
"""


class GestureError(Exception):
    """Base class for all pygesture errors."""
    pass


class FrameParseError(GestureError, ValueError):
    """Raised when wire text does not match ``<id>:<name>|<8 ints>``."""
    pass


class InsufficientDataError(GestureError):
    """Raised when training is requested with too few recorded samples."""

    def __init__(self, available: int, required: int):
        super().__init__(f"Need at least {required} samples to train, have {available}.")
        self.available = available
        self.required = required


class TrainingInProgressError(GestureError):
    """Raised when a training run is requested while another one is still fitting."""
    pass


class ModelLoadError(GestureError):
    """Raised when no persisted model exists or its record is unreadable."""
    pass


class ModelSaveError(GestureError):
    """Raised when writing the model record fails."""
    pass


class RecordingPreconditionError(GestureError):
    """Raised when recording is started without a live sensor feed."""
    pass


class RecordingStateError(GestureError):
    """Raised when a recording control is used in the wrong session state."""
    pass
