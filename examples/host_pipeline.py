#!/usr/bin/env python3
"""
Host side: subscribe to the glove, record a few seconds per gesture, train the
classifier and then print arbitrated gestures with ML mode on.

Example:
  python host_pipeline.py --root data --record FIST OPEN_HAND --seconds 3
"""
import time
import argparse

from pygesture.logging import configure
from pygesture.applications import GesturePipeline, PipelineConfig
from pygesture.errors import GestureError
from pygesture.processing import GestureLabel


def main():
    parser = argparse.ArgumentParser(description="Gesture host pipeline")
    parser.add_argument("--root", default="data", help="Directory holding the saved model")
    parser.add_argument("--config", default=None, help="Pipeline settings (.json or key=value)")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", default="5560")
    parser.add_argument("--record", nargs="*", default=[], help="Gesture names to record in turn")
    parser.add_argument("--seconds", type=float, default=3.0, help="Recording time per gesture")
    parser.add_argument("--run", type=float, default=20.0, help="Seconds to print live gestures")
    args = parser.parse_args()

    configure("INFO")
    config = PipelineConfig.from_file(args.config) if args.config else PipelineConfig()
    config.root_dir, config.host_ip, config.port = args.root, args.host, args.port

    def show(result):
        print(f"{result.label.name:<11} {result.source.value:<5} {result.confidence:.2f}")

    with GesturePipeline(config) as pipe:
        print("Loaded saved model" if pipe.classifier.initialize() else "Starting with an untrained model")
        pipe.connect()
        time.sleep(1.0)

        for name in args.record:
            label = GestureLabel[name.upper()]
            input(f"Hold {label.name} and press Enter...")
            try:
                pipe.start_recording(label)
            except GestureError as e:
                print(f"Cannot record: {e}")
                continue
            time.sleep(args.seconds)
            pipe.stop_recording()

        if args.record:
            try:
                pipe.train(on_epoch=print)
            except GestureError as e:
                print(f"Training skipped: {e}")
            pipe.export_stats(directory=args.root)

        pipe.ml_enabled = True
        pipe.on_gesture = show
        time.sleep(args.run)


if __name__ == "__main__":
    main()
