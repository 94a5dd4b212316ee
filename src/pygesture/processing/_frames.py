from __future__ import annotations

from dataclasses import dataclass, astuple
from typing import Iterable, Tuple

SENSOR_FIELDS: Tuple[str, ...] = ("flex1", "flex2", "ax", "ay", "az", "gx", "gy", "gz")


@dataclass(frozen=True)
class SensorFrame:
    """One sampling tick of raw readings: two flex ADC channels, then the
    accelerometer and gyroscope axes as signed 16-bit integers."""
    flex1: int = 0
    flex2: int = 0
    ax: int = 0
    ay: int = 0
    az: int = 0
    gx: int = 0
    gy: int = 0
    gz: int = 0

    @classmethod
    def from_sequence(cls, values: Iterable[int]) -> "SensorFrame":
        values = [int(v) for v in values]
        if len(values) != len(SENSOR_FIELDS):
            raise ValueError(f"Expected {len(SENSOR_FIELDS)} sensor values, got {len(values)}")
        return cls(*values)

    def as_tuple(self) -> Tuple[int, ...]:
        return astuple(self)

    def is_blank(self) -> bool:
        """True when every channel reads zero, i.e. no live feed yet."""
        return all(v == 0 for v in self.as_tuple())
