"""Shared fixtures for the touchscreen_sketch tests."""

import math

import pytest

from touchscreen_sketch.core.pointer_events import PointerEvent, PointerEventType, PointerState
from touchscreen_sketch.core.scheduler import ManualClock
from touchscreen_sketch.gestures.gesture_recognizer import GestureRecognizer
from touchscreen_sketch.gestures.touch_state import TouchStateMachine
from touchscreen_sketch.utils.gesture_utils import Point


def make_pointer(pointer_id, x, y, t=0.0, **kwargs):
    return PointerState(pointer_id=pointer_id, position=Point(x, y), timestamp=t, **kwargs)


def polyline(*vertices, spacing=2.0):
    """Evenly spaced points along straight edges between the vertices."""
    points = [Point(*vertices[0])]
    for (x0, y0), (x1, y1) in zip(vertices, vertices[1:]):
        start, end = Point(x0, y0), Point(x1, y1)
        steps = int(round(start.distance_to(end) / spacing))
        for i in range(1, steps + 1):
            points.append(start.lerp(end, i / steps))
    return points


def arc_points(center, radius, count, start=0.0, sweep=2 * math.pi):
    """count + 1 points from start to start + sweep; a full sweep closes the loop."""
    return [
        Point(center[0] + radius * math.cos(start + sweep * i / count),
              center[1] + radius * math.sin(start + sweep * i / count))
        for i in range(count + 1)
    ]


class GestureDriver:
    """Feeds pointer events through a touch state machine and a recognizer."""

    def __init__(self, recognizer=None):
        self.state = TouchStateMachine()
        self.recognizer = recognizer or GestureRecognizer(clock=ManualClock())
        self.gestures = []

    def send(self, kind, pointer_id, x, y, t):
        event = PointerEvent(kind, make_pointer(pointer_id, x, y, t))
        self.state.handle_event(event)
        recognized = self.recognizer.process(event, self.state.pointers, self.state.mode)
        self.gestures.extend(recognized)
        return recognized

    def down(self, pointer_id, x, y, t):
        return self.send(PointerEventType.DOWN, pointer_id, x, y, t)

    def move(self, pointer_id, x, y, t):
        return self.send(PointerEventType.MOVE, pointer_id, x, y, t)

    def up(self, pointer_id, x, y, t):
        return self.send(PointerEventType.UP, pointer_id, x, y, t)

    def cancel(self, pointer_id, x, y, t):
        return self.send(PointerEventType.CANCEL, pointer_id, x, y, t)

    def update(self, t):
        recognized = self.recognizer.update(self.state.pointers, self.state.mode, t)
        self.gestures.extend(recognized)
        return recognized

    def of_type(self, gesture_type):
        return [g for g in self.gestures if g.type == gesture_type]


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def gesture_driver():
    return GestureDriver()
