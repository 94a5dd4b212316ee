import time

import pytest
from pygesture.interface import (
    DEFAULT_LINK,
    FramePlayback,
    FramePublisher,
    FrameSubscriber,
    GestureDevice,
    encode_frame,
)
from pygesture.processing import DetectorConfig, GestureLabel, SensorFrame

FIST = SensorFrame(flex1=3000, flex2=3000, az=16384)
OPEN = SensorFrame(flex1=1000, flex2=1000, az=16384)


class RecordingLink:
    def __init__(self, active=True):
        self.link_active = active
        self.sent = []

    def send(self, label, frame):
        text = encode_frame(label, None, frame)
        self.sent.append(text)
        return text


def test_link_descriptor():
    assert DEFAULT_LINK.device_name == "ESP32_Gesture"
    assert DEFAULT_LINK.service_uuid == "4fafc201-1fb5-459e-8fcc-c5c9c331914b"
    assert DEFAULT_LINK.characteristic_uuid == "beb5483e-36e1-4688-b7f5-ea07361b26a8"


def test_playback():
    source = FramePlayback([FIST, OPEN], loopback=False)
    assert [source(), source(), source()] == [FIST, OPEN, OPEN]
    assert source.is_done()
    looped = FramePlayback([FIST, OPEN])
    assert [looped() for _ in range(3)] == [FIST, OPEN, FIST]
    with pytest.raises(ValueError):
        FramePlayback([])


def test_device_sends_fist_after_debounce():
    link = RecordingLink()
    device = GestureDevice(FramePlayback([FIST]), link)
    decisions = [device.step(now_ms=i * 30) for i in range(3)]
    assert [d.transmit for d in decisions] == [False, False, True]
    assert link.sent == ["1:FIST|3000,3000,0,0,16384,0,0,0"]


def test_device_silent_without_host():
    link = RecordingLink(active=False)
    device = GestureDevice(FramePlayback([FIST]), link)
    for i in range(5):
        device.step(now_ms=i * 30)
    assert link.sent == []
    # detector state survives the link coming up
    link.link_active = True
    assert device.step(now_ms=150).transmit
    assert len(link.sent) == 1


def test_device_uses_config():
    link = RecordingLink()
    device = GestureDevice(FramePlayback([FIST]), link, config=DetectorConfig(debounce_count=1))
    assert device.step(now_ms=0).transmit
    assert device.config.debounce_count == 1


def test_subscriber_handles_messages_without_socket():
    frames, events = [], []
    sub = FrameSubscriber(on_frame=frames.append, on_connect=lambda: events.append("up"),
                          on_disconnect=lambda: events.append("down"), history_size=3, stale_after_s=0.0)

    assert sub.handle_message(b"1:FIST|3000,3000,0,0,16384,0,0,0") is not None
    assert sub.handle_message(b"garbage") is None
    for _ in range(3):
        sub.handle_message("2:OPEN_HAND|1000,1000,0,0,16384,0,0,0")

    assert sub.latest().gesture is GestureLabel.OPEN_HAND
    assert len(sub.recent()) == 3
    assert len(frames) == 4
    status = sub.get_connection_status()
    assert status["frames_received"] == 4
    assert status["frames_dropped"] == 1
    assert events == ["up"]

    time.sleep(0.01)
    assert sub.check_stale() is False
    assert events == ["up", "down"]
    sub.handle_message(b"0:IDLE|2000,2000,0,0,16384,0,0,0")
    assert events == ["up", "down", "up"]


def test_publisher_to_subscriber_inproc():
    endpoint = "inproc://pygesture-test-link"
    received = []
    pub = FramePublisher(port=endpoint)
    pub.start()
    sub = FrameSubscriber(port=endpoint, on_frame=received.append)
    sub.start()
    try:
        deadline = time.monotonic() + 5.0
        while not pub.link_active and time.monotonic() < deadline:
            time.sleep(0.01)
        assert pub.link_active

        while not received and time.monotonic() < deadline:
            pub.send(GestureLabel.FIST, FIST)
            time.sleep(0.05)
        assert received
        assert received[0].gesture is GestureLabel.FIST
        assert received[0].frame == FIST
        assert sub.link_active
    finally:
        sub.stop()
        pub.stop()
    assert not pub.link_active


class FlakyLink(RecordingLink):
    def __init__(self):
        super().__init__(active=True)
        self.failures = 0

    def send(self, label, frame):
        if self.failures == 0:
            self.failures += 1
            raise RuntimeError("FramePublisher is not started.")
        return super().send(label, frame)


def test_device_loop_survives_send_error():
    link = FlakyLink()
    config = DetectorConfig(debounce_count=1, min_send_interval_ms=0, sample_period_ms=10)
    device = GestureDevice(FramePlayback([FIST]), link, config=config)
    device.start()
    try:
        deadline = time.monotonic() + 5.0
        while not link.sent and time.monotonic() < deadline:
            time.sleep(0.01)
        assert device._thread.is_alive()
    finally:
        device.stop()
    assert link.failures == 1
    assert link.sent


def test_subscriber_stop_clears_connection():
    events = []
    sub = FrameSubscriber(on_connect=lambda: events.append("up"), on_disconnect=lambda: events.append("down"))
    sub.handle_message(b"1:FIST|3000,3000,0,0,16384,0,0,0")
    assert sub.link_active and sub.ready_event.is_set()

    sub.stop()
    assert not sub.link_active
    assert not sub.ready_event.is_set()
    assert sub.get_connection_status()["connected"] is False
    assert sub.check_stale() is False
    assert events == ["up"]

    # the next frame after a restart is a fresh connection
    sub.handle_message(b"1:FIST|3000,3000,0,0,16384,0,0,0")
    assert events == ["up", "up"]


def test_receive_loop_survives_handler_error():
    endpoint = "inproc://pygesture-test-handler-error"
    received = []

    def on_frame(wire):
        received.append(wire)
        if len(received) == 1:
            raise RuntimeError("handler failed")

    pub = FramePublisher(port=endpoint)
    pub.start()
    sub = FrameSubscriber(port=endpoint, on_frame=on_frame)
    sub.start()
    try:
        deadline = time.monotonic() + 5.0
        while not pub.link_active and time.monotonic() < deadline:
            time.sleep(0.01)
        while len(received) < 3 and time.monotonic() < deadline:
            pub.send(GestureLabel.FIST, FIST)
            time.sleep(0.05)
        assert len(received) >= 3
        assert sub._thread.is_alive()
    finally:
        sub.stop()
        pub.stop()
