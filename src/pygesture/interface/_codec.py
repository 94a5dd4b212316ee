"""
Text wire protocol between the glove and the host.

One notification carries one frame::

    <id>:<name>|<flex1>,<flex2>,<ax>,<ay>,<az>,<gx>,<gy>,<gz>

e.g. ``1:FIST|3000,3000,0,0,16384,0,0,0``. There is no length prefix; the
transport delivers exactly one complete string per message.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Union

from pygesture.errors import FrameParseError
from pygesture.logging import get_logger
from pygesture.processing import GestureLabel, SensorFrame, SENSOR_FIELDS

log = get_logger("interface.codec")

LABEL_SEPARATOR = ":"
SEGMENT_SEPARATOR = "|"
FIELD_SEPARATOR = ","

_NAME_RE = re.compile(r"[A-Z][A-Z0-9_]*")
_INT_RE = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class WireFrame:
    """A decoded frame. ``label_id`` is kept as sent, even when out of range."""
    label_id: int
    name: str
    frame: SensorFrame

    @property
    def gesture(self) -> GestureLabel:
        return GestureLabel.from_id(self.label_id)


def _parse_int(text: str, what: str) -> int:
    s = text.strip()
    if not _INT_RE.fullmatch(s):
        raise FrameParseError(f"{what} is not an integer: {text!r}")
    return int(s)


def encode_frame(label: Union[int, GestureLabel], name: Optional[str], frame: SensorFrame) -> str:
    """
    Serialise a gesture and its sensor readings into one wire frame.

    ``name`` defaults to the canonical name of ``label``.
    """
    label_id = int(label)
    if name is None:
        name = GestureLabel.from_id(label_id).name
    if not _NAME_RE.fullmatch(name):
        raise ValueError(f"Gesture name must be an uppercase ASCII token, got {name!r}")
    sensors = FIELD_SEPARATOR.join(str(int(v)) for v in frame.as_tuple())
    return f"{label_id}{LABEL_SEPARATOR}{name}{SEGMENT_SEPARATOR}{sensors}"


def decode_frame(text: Union[str, bytes]) -> WireFrame:
    """
    Parse one wire frame.

    Raises
    ------
    FrameParseError
        For any malformed input. No other exception escapes.
    """
    if isinstance(text, (bytes, bytearray)):
        try:
            text = bytes(text).decode("utf-8")
        except UnicodeDecodeError as e:
            raise FrameParseError(f"Frame is not valid UTF-8: {e}") from e
    if not isinstance(text, str):
        raise FrameParseError(f"Frame must be text, got {type(text).__name__}")

    segments = text.strip().split(SEGMENT_SEPARATOR)
    if len(segments) != 2:
        raise FrameParseError(
            f"Expected exactly one '{SEGMENT_SEPARATOR}' separator, found {len(segments) - 1}"
        )
    label_part, sensor_part = segments

    if LABEL_SEPARATOR not in label_part:
        raise FrameParseError(f"Label segment lacks '{LABEL_SEPARATOR}': {label_part!r}")
    id_text, name = label_part.split(LABEL_SEPARATOR, 1)
    label_id = _parse_int(id_text, "Gesture id")
    name = name.strip()
    if not _NAME_RE.fullmatch(name):
        raise FrameParseError(f"Gesture name is not an uppercase token: {name!r}")

    fields = sensor_part.split(FIELD_SEPARATOR)
    if len(fields) != len(SENSOR_FIELDS):
        raise FrameParseError(f"Expected {len(SENSOR_FIELDS)} sensor fields, got {len(fields)}")
    values = [_parse_int(v, f"Sensor field '{n}'") for n, v in zip(SENSOR_FIELDS, fields)]

    return WireFrame(label_id=label_id, name=name, frame=SensorFrame(*values))


def try_decode_frame(text: Union[str, bytes]) -> Optional[WireFrame]:
    """Total form of :func:`decode_frame`: returns None for malformed input."""
    try:
        return decode_frame(text)
    except FrameParseError as e:
        log.debug(f"Dropping malformed frame {text!r}: {e}")
        return None
