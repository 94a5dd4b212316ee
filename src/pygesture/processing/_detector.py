"""
Rule-based gesture detection as it runs on the glove firmware.

Each sampling tick classifies the raw frame with fixed thresholds, then a
debounce counter and a send-interval gate decide whether the tick may be
transmitted. The detector is a plain state machine: the caller owns the clock
and the link state, which keeps it deterministic under test.
"""
from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

from ._frames import SensorFrame
from ._gestures import GestureLabel


@dataclass
class DetectorConfig:
    """Thresholds and timing for :class:`RuleBasedDetector`.

    All thresholds are in device ADC units.

    Parameters
    ----------
    flex_high, flex_low : int
        Flex readings for a fully bent / fully open hand.
    gyro_threshold : int
        |gz| above this is a wave.
    acc_threshold : int
        |ax| or |ay| above this is a tilt.
    hysteresis : int
        Offset applied to the flex limits so readings hovering near a limit do
        not toggle between gestures.
    debounce_count : int
        Consecutive identical classifications required before sending.
    min_send_interval_ms : int
        Minimum spacing between transmitted frames.
    sample_period_ms : int
        Firmware loop period.
    """
    flex_high: int = 2600
    flex_low: int = 1200
    gyro_threshold: int = 8000
    acc_threshold: int = 14000
    hysteresis: int = 200
    debounce_count: int = 3
    min_send_interval_ms: int = 120
    sample_period_ms: int = 30

    @classmethod
    def from_dict(cls, values: Optional[Dict[str, Any]]) -> "DetectorConfig":
        """Build from a config mapping, ignoring keys that are not detector settings."""
        values = values or {}
        known = {f.name for f in fields(cls)}
        return cls(**{k: int(v) for k, v in values.items() if k in known})


@dataclass(frozen=True)
class DetectorDecision:
    """Outcome of one detector tick."""
    raw: GestureLabel
    gesture: GestureLabel
    consecutive_count: int
    transmit: bool


class RuleBasedDetector:
    """
    Threshold classifier with debounce and rate-limited transmission.

    Examples
    --------
    >>> det = RuleBasedDetector()
    >>> fist = SensorFrame(flex1=3000, flex2=3000)
    >>> [det.update(fist, now_ms=t * 30, link_active=True).transmit for t in range(3)]
    [False, False, True]
    """

    def __init__(self, config: Optional[DetectorConfig] = None):
        self.config = config or DetectorConfig()
        self.reset()

    def reset(self) -> None:
        self.current_gesture = GestureLabel.IDLE
        self.consecutive_count = 0
        self.last_send_ms: Optional[float] = None

    def classify(self, frame: SensorFrame) -> GestureLabel:
        """Classify a single raw frame. First matching rule wins."""
        cfg = self.config

        if frame.gz < -cfg.gyro_threshold:
            return GestureLabel.WAVE_LEFT
        if frame.gz > cfg.gyro_threshold:
            return GestureLabel.WAVE_RIGHT

        if frame.ay < -cfg.acc_threshold:
            return GestureLabel.TILT_UP
        if frame.ay > cfg.acc_threshold:
            return GestureLabel.TILT_DOWN

        if frame.ax > cfg.acc_threshold:
            return GestureLabel.TILT_RIGHT
        if frame.ax < -cfg.acc_threshold:
            return GestureLabel.TILT_LEFT

        fist_level = cfg.flex_high - cfg.hysteresis
        if frame.flex1 > fist_level and frame.flex2 > fist_level:
            return GestureLabel.FIST

        open_level = cfg.flex_low + cfg.hysteresis
        if frame.flex1 < open_level and frame.flex2 < open_level:
            return GestureLabel.OPEN_HAND

        return GestureLabel.IDLE

    def update(self, frame: SensorFrame, now_ms: float, link_active: bool = True) -> DetectorDecision:
        """
        Advance the state machine by one tick.

        Parameters
        ----------
        frame : SensorFrame
            Raw readings for this tick.
        now_ms : float
            Monotonic timestamp of the tick in milliseconds.
        link_active : bool
            Whether a host is connected. Nothing is sent while disconnected,
            but debounce state keeps tracking the hand.

        Returns
        -------
        DetectorDecision
            ``transmit`` is True when the caller should send
            ``decision.gesture`` together with ``frame``.
        """
        raw = self.classify(frame)
        ceiling = self.config.debounce_count

        if raw == self.current_gesture:
            self.consecutive_count = min(self.consecutive_count + 1, ceiling)
        else:
            self.current_gesture = raw
            # counter restarts; the changed tick is the first observation
            self.consecutive_count = 1

        transmit = (
            link_active
            and self.consecutive_count == ceiling
            and self._send_window_open(now_ms)
        )
        if transmit:
            self.last_send_ms = now_ms

        return DetectorDecision(
            raw=raw,
            gesture=self.current_gesture,
            consecutive_count=self.consecutive_count,
            transmit=transmit,
        )

    def _send_window_open(self, now_ms: float) -> bool:
        if self.last_send_ms is None:
            return True
        return (now_ms - self.last_send_ms) >= self.config.min_send_interval_ms

    def __repr__(self) -> str:
        return (f"RuleBasedDetector(current={self.current_gesture.name}, "
                f"count={self.consecutive_count}, last_send_ms={self.last_send_ms})")
