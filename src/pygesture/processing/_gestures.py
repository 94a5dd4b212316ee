"""
Closed set of gesture labels shared by the device detector, the wire codec
and the classifier.
"""
from __future__ import annotations

from enum import IntEnum
from typing import List


class GestureLabel(IntEnum):
    """Gesture identities. The integer id is the sole identity on the wire.

    ``UNKNOWN`` is a fallback for ids outside the classifiable range; it is
    never predicted and never recorded.
    """
    UNKNOWN = -1
    IDLE = 0
    FIST = 1
    OPEN_HAND = 2
    WAVE_LEFT = 3
    WAVE_RIGHT = 4
    TILT_UP = 5
    TILT_DOWN = 6
    TILT_RIGHT = 7
    TILT_LEFT = 8

    @classmethod
    def from_id(cls, gesture_id) -> "GestureLabel":
        try:
            label = cls(int(gesture_id))
        except (TypeError, ValueError):
            return cls.UNKNOWN
        return label

    @classmethod
    def classes(cls) -> List["GestureLabel"]:
        """Classifiable labels in id order (excludes UNKNOWN)."""
        return [g for g in cls if g is not cls.UNKNOWN]

    @property
    def is_known(self) -> bool:
        return self is not GestureLabel.UNKNOWN


NUM_CLASSES = len(GestureLabel.classes())


def gesture_name(gesture_id) -> str:
    """Canonical uppercase name for an id, ``"UNKNOWN"`` if out of range."""
    return GestureLabel.from_id(gesture_id).name
