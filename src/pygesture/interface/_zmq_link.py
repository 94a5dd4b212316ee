from __future__ import annotations

import time
import threading
from collections import deque
from typing import Callable, Deque, List, Optional

import zmq

from pygesture.logging import get_logger
from pygesture.processing import GestureLabel, SensorFrame
from .base import BaseLink, LinkDescriptor
from ._codec import WireFrame, encode_frame, try_decode_frame

log = get_logger("interface.zmq")

FrameHandler = Callable[[WireFrame], None]
LinkHandler = Callable[[], None]


def _addr(host: str, endpoint: str | int) -> str:
    """Return a valid ZMQ endpoint. If endpoint already has '://', return as-is.
       Otherwise, treat it as a port and build 'tcp://{host}:{port}'."""
    ep = str(endpoint)
    if "://" in ep:
        return ep
    if "://" in host:
        return f"{host}:{int(ep)}"
    return f"tcp://{host}:{int(ep)}"


class FramePublisher(BaseLink):
    """
    Device end of the link: sends one UTF-8 wire frame per ZMQ message.

    Uses an XPUB socket so subscriber arrivals and departures are visible;
    ``link_active`` is True while at least one host is subscribed, which is
    what the detector's transmit gate needs.
    """

    def __init__(self, host_ip: str = "127.0.0.1", port: str | int = "5560",
                 descriptor: Optional[LinkDescriptor] = None, bind: bool = True):
        super().__init__(descriptor)
        self.host_ip = "*" if bind and host_ip in ("0.0.0.0", "") else str(host_ip)
        self.port = port
        self.bind = bool(bind)
        self._ctx = zmq.Context.instance()
        self._sock: Optional[zmq.Socket] = None
        self._subscribers = 0
        self._lock = threading.Lock()
        self.frames_sent = 0

    def start(self) -> None:
        if self._sock is not None:
            return
        sock = self._ctx.socket(zmq.XPUB)
        sock.setsockopt(zmq.LINGER, 0)
        addr = _addr(self.host_ip, self.port)
        if self.bind:
            sock.bind(addr)
        else:
            sock.connect(addr)
        self._sock = sock
        self.streaming = True
        self.ready_event.set()
        log.info(f"Publishing '{self.descriptor.device_name}' frames on {addr}")

    def stop(self, timeout: Optional[float] = None) -> None:
        with self._lock:
            if self._sock is not None:
                self._sock.close(0)
                self._sock = None
            self._subscribers = 0
        self.streaming = False
        self.ready_event.clear()

    def _drain_subscriptions(self) -> None:
        # XPUB reports b"\x01<topic>" on subscribe and b"\x00<topic>" on unsubscribe
        while True:
            try:
                msg = self._sock.recv(flags=zmq.NOBLOCK)
            except zmq.Again:
                return
            if not msg:
                continue
            if msg[0] == 1:
                self._subscribers += 1
                log.info("Host subscribed to frame link")
            elif msg[0] == 0:
                self._subscribers = max(0, self._subscribers - 1)
                log.info("Host left frame link")

    @property
    def link_active(self) -> bool:
        with self._lock:
            if self._sock is None:
                return False
            self._drain_subscriptions()
            return self._subscribers > 0

    def send_text(self, text: str) -> None:
        with self._lock:
            if self._sock is None:
                raise RuntimeError("FramePublisher is not started.")
            self._sock.send(text.encode(self.descriptor.encoding))
            self.frames_sent += 1

    def send(self, label: GestureLabel, frame: SensorFrame) -> str:
        text = encode_frame(label, label.name, frame)
        self.send_text(text)
        return text


class FrameSubscriber(BaseLink):
    """
    Host end of the link: receives frames on a background thread.

    Malformed frames are dropped and the previous frame is kept. The link is
    considered lost when nothing arrives for ``stale_after_s`` seconds and
    restored on the next valid frame; ``on_disconnect`` / ``on_connect`` are
    called on those transitions.

    Parameters
    ----------
    host_ip : str
        Device host (or a full endpoint passed as ``port``).
    port : str | int
        Device publisher port.
    on_frame : callable, optional
        Called with each decoded :class:`WireFrame`, from the receive thread.
    history_size : int
        Number of recent frames kept for :meth:`recent`.
    stale_after_s : float
        Silence after which the link counts as dropped.
    """

    def __init__(self, host_ip: str = "127.0.0.1", port: str | int = "5560",
                 descriptor: Optional[LinkDescriptor] = None,
                 on_frame: Optional[FrameHandler] = None,
                 on_connect: Optional[LinkHandler] = None,
                 on_disconnect: Optional[LinkHandler] = None,
                 history_size: int = 10, stale_after_s: float = 2.0,
                 auto_start: bool = False):
        super().__init__(descriptor)
        self.host_ip = str(host_ip)
        self.port = port
        self.on_frame = on_frame
        self.on_connect = on_connect
        self.on_disconnect = on_disconnect
        self.stale_after_s = float(stale_after_s)

        self._ctx = zmq.Context.instance()
        self._poller = zmq.Poller()
        self._sock: Optional[zmq.Socket] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

        self._latest: Optional[WireFrame] = None
        self._history: Deque[WireFrame] = deque(maxlen=int(history_size))
        self._last_rx = 0.0
        self._connected = False
        self.frames_received = 0
        self.frames_dropped = 0

        if auto_start:
            self.start()

    # --- internal ----
    def _setup(self) -> None:
        self._teardown()
        addr = _addr(self.host_ip, self.port)
        self._sock = self._ctx.socket(zmq.SUB)
        self._sock.setsockopt(zmq.LINGER, 0)
        self._sock.connect(addr)
        self._sock.setsockopt(zmq.SUBSCRIBE, b"")
        self._poller.register(self._sock, zmq.POLLIN)
        log.info(f"Subscribed to '{self.descriptor.device_name}' frames at {addr}")

    def _teardown(self) -> None:
        if self._sock is None:
            return
        try:
            self._poller.unregister(self._sock)
        except KeyError:
            pass
        self._sock.close(0)
        self._sock = None

    def handle_message(self, payload: bytes) -> Optional[WireFrame]:
        """Decode one message and update link state. Returns None if dropped."""
        wire = try_decode_frame(payload)
        now = time.monotonic()
        if wire is None:
            with self._lock:
                self.frames_dropped += 1
            return None

        with self._lock:
            self._latest = wire
            self._history.appendleft(wire)
            self._last_rx = now
            self.frames_received += 1
            was_connected = self._connected
            self._connected = True
        self.ready_event.set()

        if not was_connected and self.on_connect:
            self.on_connect()
        if self.on_frame:
            self.on_frame(wire)
        return wire

    def check_stale(self) -> bool:
        """Flag the link as dropped after prolonged silence. Returns link state."""
        with self._lock:
            lost = self._connected and (time.monotonic() - self._last_rx) > self.stale_after_s
            if lost:
                self._connected = False
        if lost:
            log.warning(f"No frames for {self.stale_after_s:.1f}s; link considered dropped")
            if self.on_disconnect:
                self.on_disconnect()
        return self.link_active

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                socks = dict(self._poller.poll(50))
                if self._sock in socks:
                    try:
                        payload = self._sock.recv(flags=zmq.NOBLOCK)
                    except zmq.Again:
                        payload = None
                    if payload is not None:
                        self.handle_message(payload)
                self.check_stale()
            except zmq.ZMQError as e:
                log.error(f"Receive loop error: {e}")
                time.sleep(0.1)
            except Exception as e:
                log.error(f"Frame handler error: {e}")

    # --- lifecycle ----
    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._setup()
        self._stop.clear()
        self.streaming = True
        self._thread = threading.Thread(target=self._run, name="FrameSubscriber", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = 2.0) -> None:
        self._stop.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._thread = None
        self._teardown()
        self.streaming = False
        with self._lock:
            self._connected = False
        self.ready_event.clear()

    # --- access ----
    @property
    def link_active(self) -> bool:
        with self._lock:
            return self._connected

    def latest(self) -> Optional[WireFrame]:
        with self._lock:
            return self._latest

    def recent(self) -> List[WireFrame]:
        """Most recent frames first."""
        with self._lock:
            return list(self._history)

    def get_connection_status(self) -> dict:
        with self._lock:
            return {
                "connected": self._connected,
                "streaming": self.streaming,
                "frames_received": self.frames_received,
                "frames_dropped": self.frames_dropped,
            }
