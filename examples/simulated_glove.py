#!/usr/bin/env python3
"""
Run the glove firmware loop against scripted sensor frames and publish the
debounced gestures on the frame link.

Example:
  python simulated_glove.py --port 5560 --hold 1.5
"""
import time
import argparse

from pygesture.logging import configure
from pygesture.interface import FramePublisher, GestureDevice, FramePlayback
from pygesture.io import load_config_file
from pygesture.processing import DetectorConfig, SensorFrame

# one pose per gesture, in the order they are replayed
POSES = [
    SensorFrame(flex1=2000, flex2=2000, az=16384),                # IDLE
    SensorFrame(flex1=3000, flex2=3000, az=16384),                # FIST
    SensorFrame(flex1=1000, flex2=1000, az=16384),                # OPEN_HAND
    SensorFrame(flex1=2000, flex2=2000, az=16384, gz=-12000),     # WAVE_LEFT
    SensorFrame(flex1=2000, flex2=2000, az=16384, gz=12000),      # WAVE_RIGHT
    SensorFrame(flex1=2000, flex2=2000, ay=-16000, az=8000),      # TILT_UP
    SensorFrame(flex1=2000, flex2=2000, ay=16000, az=8000),       # TILT_DOWN
    SensorFrame(flex1=2000, flex2=2000, ax=16000, az=8000),       # TILT_RIGHT
    SensorFrame(flex1=2000, flex2=2000, ax=-16000, az=8000),      # TILT_LEFT
]


def main():
    parser = argparse.ArgumentParser(description="Simulated gesture glove")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", default="5560")
    parser.add_argument("--config", default=None, help="Detector settings (.json or key=value)")
    parser.add_argument("--hold", type=float, default=1.5, help="Seconds each pose is held")
    parser.add_argument("--cycles", type=int, default=3)
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    configure("DEBUG" if args.verbose else "INFO")
    config = DetectorConfig.from_dict(load_config_file(args.config)) if args.config else DetectorConfig()

    ticks_per_pose = max(1, int(args.hold * 1000 / config.sample_period_ms))
    frames = [pose for pose in POSES for _ in range(ticks_per_pose)]

    with FramePublisher(host_ip=args.host, port=args.port) as link:
        device = GestureDevice(FramePlayback(frames), link, config=config, verbose=args.verbose)
        device.start()
        try:
            time.sleep(args.cycles * len(POSES) * args.hold)
        except KeyboardInterrupt:
            pass
        finally:
            device.stop()
        print(f"Sent {link.frames_sent} frames")


if __name__ == "__main__":
    main()
