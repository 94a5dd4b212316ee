import time
import threading
from typing import Callable, Iterable, List, Optional

from pygesture.logging import get_logger
from pygesture.processing import RuleBasedDetector, DetectorConfig, DetectorDecision, SensorFrame

log = get_logger("interface.device")


class FramePlayback:
    """
    Sensor source that replays a fixed sequence of frames, one per read.

    Parameters:
        frames (iterable of SensorFrame): Frames to replay in order.
        loopback (bool): Restart from the first frame when exhausted; otherwise
            keep returning the last frame.
    """
    def __init__(self, frames: Iterable[SensorFrame], loopback: bool = True):
        self.frames: List[SensorFrame] = list(frames)
        if not self.frames:
            raise ValueError("FramePlayback needs at least one frame.")
        self.loopback = bool(loopback)
        self.current_index = 0

    def __call__(self) -> SensorFrame:
        frame = self.frames[self.current_index]
        if self.current_index + 1 < len(self.frames):
            self.current_index += 1
        elif self.loopback:
            self.current_index = 0
        return frame

    def is_done(self) -> bool:
        return not self.loopback and self.current_index == len(self.frames) - 1


class GestureDevice:
    """
    The glove firmware loop: read sensors, classify, conditionally transmit.

    Single writer of all detector state. Each :meth:`step` is one iteration of
    the loop; :meth:`start` runs it on a background thread every
    ``config.sample_period_ms``.

    Parameters:
        read_sensors (callable): Returns the current SensorFrame.
        link: Object with a ``link_active`` property and ``send(label, frame)``,
            typically a :class:`FramePublisher`.
        config (DetectorConfig): Detector thresholds and timing.
        clock (callable): Monotonic clock in seconds, injectable for tests.
    """
    def __init__(self, read_sensors: Callable[[], SensorFrame], link, config: Optional[DetectorConfig] = None,
                 clock: Callable[[], float] = time.monotonic, verbose: bool = False):
        self.read_sensors = read_sensors
        self.link = link
        self.detector = RuleBasedDetector(config)
        self.clock = clock
        self.verbose = verbose

        self.streaming = False
        self._thread = None
        self._stop = threading.Event()

    @property
    def config(self) -> DetectorConfig:
        return self.detector.config

    def step(self, now_ms: Optional[float] = None) -> DetectorDecision:
        frame = self.read_sensors()
        if now_ms is None:
            now_ms = self.clock() * 1000.0
        decision = self.detector.update(frame, now_ms, link_active=self.link.link_active)
        if decision.transmit:
            text = self.link.send(decision.gesture, frame)
            if self.verbose:
                log.debug(f"Sent {text}")
        return decision

    def run(self):
        """Repeat :meth:`step` every ``sample_period_ms`` until :meth:`stop` is called."""
        period = self.config.sample_period_ms / 1000.0
        while not self._stop.is_set():
            t0 = self.clock()
            try:
                self.step()
            except Exception as e:
                log.error(f"Device loop error: {e}")
            elapsed = self.clock() - t0
            self._stop.wait(max(0.0, period - elapsed))

    def start(self):
        if self.streaming:
            log.info("Device loop already running")
            return
        self._stop.clear()
        self.streaming = True
        self._thread = threading.Thread(target=self.run, name="GestureDevice", daemon=True)
        self._thread.start()
        log.info(f"Device loop started ({self.config.sample_period_ms} ms period)")

    def stop(self, timeout: float = 2.0):
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None
        self.streaming = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
