#!/usr/bin/env python3
"""
Touchscreen Sketch - Main Entry Point
Listens to a multitouch device and prints gestures and fitted stroke geometry.
"""

import argparse
import logging
import select

from touchscreen_sketch.config.settings import load_settings
from touchscreen_sketch.core.input_pipeline import InputPipeline
from touchscreen_sketch.device.device_manager import DeviceManager
from touchscreen_sketch.device.event_translator import EvdevEventTranslator
from touchscreen_sketch.gestures.gesture_recognizer import GestureRecognizer
from touchscreen_sketch.gestures.touch_state import TouchStateMachine
from touchscreen_sketch.strokes.corner_detector import CornerDetector
from touchscreen_sketch.strokes.stroke_processor import StrokeProcessor
from touchscreen_sketch.strokes.stroke_to_geometry import StrokeToGeometryConverter
from touchscreen_sketch.utils.logger import TouchLogger

POLL_INTERVAL = 0.02


def build_pipeline(config_path=None, touch_logger=None) -> InputPipeline:
    """Create a pipeline, applying the JSON settings file if one is given."""
    if not config_path:
        return InputPipeline(touch_logger=touch_logger)

    settings = load_settings(config_path)
    corner_detector = CornerDetector(settings['corner'])
    return InputPipeline(
        config=settings['pipeline'],
        touch_state=TouchStateMachine(settings['touch_state']),
        recognizer=GestureRecognizer(settings['gesture']),
        stroke_processor=StrokeProcessor(settings['stroke'], corner_detector),
        converter=StrokeToGeometryConverter(settings['conversion'], corner_detector),
        touch_logger=touch_logger,
    )


def main():
    """Main entry point for the touchscreen sketch listener."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument('--debug-file', help="Mirror event lines to this file")
    parser.add_argument('--config', help="JSON settings file")
    parser.add_argument('--verbose', action='store_true', help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(asctime)s %(name)s %(levelname)s: %(message)s')

    device_manager = DeviceManager()
    device = device_manager.find_device()
    if not device:
        print("❌ No touchscreen found")
        return

    info = device_manager.get_device_info()
    print(f"✅ Found: {device.name}")
    print(f"📺 Screen: {info['screen_width']}x{info['screen_height']}")
    print("🎯 Ready! Draw with one finger, pan/zoom with two, hold three to undo.")

    touch_logger = TouchLogger(args.debug_file)
    pipeline = build_pipeline(args.config, touch_logger)
    translator = EvdevEventTranslator(clock=pipeline.clock, max_pressure=info['max_pressure'])

    try:
        while True:
            readable, _, _ = select.select([device.fd], [], [], POLL_INTERVAL)
            if readable:
                for event in device.read():
                    for pointer_event in translator.feed(event):
                        pipeline.handle_event(pointer_event)
            pipeline.poll()
    except KeyboardInterrupt:
        print("\n👋 Stopping...")
    finally:
        touch_logger.close()


if __name__ == "__main__":
    main()
