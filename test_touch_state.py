"""Tests for the touch mode state machine."""

import math

import pytest

from conftest import make_pointer
from touchscreen_sketch.config.settings import TouchStateConfig
from touchscreen_sketch.gestures.touch_state import (
    DrawingData,
    GesturePhase,
    MultiTouchData,
    PanZoomData,
    TouchMode,
    TouchStateMachine,
    UndoData,
    mode_for_pointer_count,
)
from touchscreen_sketch.utils.gesture_utils import Point


@pytest.fixture
def transitions():
    return []


@pytest.fixture
def machine(transitions):
    return TouchStateMachine(on_transition=transitions.append)


def test_mode_follows_pointer_count():
    expected = [TouchMode.IDLE, TouchMode.DRAWING, TouchMode.PAN_ZOOM,
                TouchMode.UNDO, TouchMode.MULTI_TOUCH, TouchMode.MULTI_TOUCH]
    assert [mode_for_pointer_count(n) for n in range(6)] == expected


def test_modes_through_a_pinch(machine):
    machine.handle_pointer_down(make_pointer(1, 0, 0, 0.0))
    assert machine.mode == TouchMode.DRAWING
    machine.handle_pointer_down(make_pointer(2, 100, 0, 0.1))
    assert machine.mode == TouchMode.PAN_ZOOM
    machine.handle_pointer_move(make_pointer(2, 120, 0, 0.2))
    assert machine.mode == TouchMode.PAN_ZOOM
    machine.handle_pointer_up(make_pointer(1, 0, 0, 0.3))
    assert machine.mode == TouchMode.DRAWING
    machine.handle_pointer_up(make_pointer(2, 120, 0, 0.4))
    assert machine.mode == TouchMode.IDLE
    assert machine.current_gesture is None


def test_mode_switch_is_one_transition(machine, transitions):
    machine.handle_pointer_down(make_pointer(1, 0, 0, 0.0))
    machine.handle_pointer_down(make_pointer(2, 100, 0, 0.5))

    assert len(transitions) == 2
    switch = transitions[-1]
    assert switch.mode_changed
    assert switch.previous_mode == TouchMode.DRAWING
    assert switch.ended.mode == TouchMode.DRAWING
    assert switch.ended.phase == GesturePhase.ENDED
    assert switch.ended.duration == pytest.approx(0.5)
    assert switch.started.mode == TouchMode.PAN_ZOOM
    assert switch.started.phase == GesturePhase.BEGAN
    assert switch.updated is None


def test_drawing_updates(machine, transitions):
    machine.handle_pointer_down(make_pointer(1, 0, 0, 0.0))
    machine.handle_pointer_move(make_pointer(1, 3, 4, 0.1))
    machine.handle_pointer_move(make_pointer(1, 3.5, 4, 0.2))

    gesture = transitions[-1].updated
    assert gesture.phase == GesturePhase.CHANGED
    assert gesture.duration == pytest.approx(0.2)
    data = gesture.data
    assert isinstance(data, DrawingData)
    assert data.start_position == Point(0, 0)
    assert data.current_position == Point(3.5, 4)
    assert data.total_distance == pytest.approx(5.5)
    # Steps under the minimum distance do not add stroke points
    assert data.stroke_points == (Point(0, 0), Point(3, 4))
    assert data.velocity.x == pytest.approx(5)


def test_untracked_pointer_events_are_ignored(machine, transitions):
    assert machine.handle_pointer_move(make_pointer(7, 0, 0, 0.0)) is None
    assert machine.handle_pointer_up(make_pointer(7, 0, 0, 0.0)) is None
    assert machine.handle_pointer_cancel(make_pointer(7, 0, 0, 0.0)) is None
    assert transitions == []
    assert machine.mode == TouchMode.IDLE


def test_cancel_marks_gesture_cancelled(machine):
    machine.handle_pointer_down(make_pointer(1, 0, 0, 0.0))
    machine.handle_pointer_down(make_pointer(2, 50, 0, 0.0))
    transition = machine.handle_pointer_cancel(make_pointer(2, 50, 0, 0.3))

    assert transition.ended.mode == TouchMode.PAN_ZOOM
    assert transition.ended.phase == GesturePhase.CANCELLED
    assert transition.started.mode == TouchMode.DRAWING
    assert machine.mode == TouchMode.DRAWING


def test_cancel_without_mode_change_starts_nothing(machine):
    for i in range(5):
        machine.handle_pointer_down(make_pointer(i, i * 10, 0, 0.0))
    assert machine.mode == TouchMode.MULTI_TOUCH

    transition = machine.handle_pointer_cancel(make_pointer(4, 40, 0, 0.1))
    assert transition.ended.phase == GesturePhase.CANCELLED
    assert transition.started is None
    assert machine.mode == TouchMode.MULTI_TOUCH
    assert machine.current_gesture is None


def test_pan_zoom_payload(machine):
    machine.handle_pointer_down(make_pointer(1, 0, 0, 0.0))
    machine.handle_pointer_down(make_pointer(2, 100, 0, 0.0))
    transition = machine.handle_pointer_move(make_pointer(2, 0, 100, 0.1))

    data = transition.updated.data
    assert isinstance(data, PanZoomData)
    assert data.initial_centroid == Point(50, 0)
    assert data.current_centroid == Point(0, 50)
    assert data.pan_delta == Point(-50, 50)
    assert data.initial_spread == pytest.approx(50)
    assert data.zoom_factor == pytest.approx(1.0)
    assert data.rotation == pytest.approx(math.pi / 2)


def test_undo_and_multi_touch_payloads(machine):
    for i in range(3):
        machine.handle_pointer_down(make_pointer(i, i * 10, 0, 1.0))
    undo = machine.current_gesture
    assert isinstance(undo.data, UndoData)
    assert undo.data.trigger_position == Point(10, 0)
    assert undo.data.confirmation_time == pytest.approx(1.5)

    machine.handle_pointer_move(make_pointer(0, 0, 0, 1.2))
    assert machine.current_gesture.data.hold_duration == pytest.approx(0.2)

    machine.handle_pointer_down(make_pointer(3, 30, 0, 1.3))
    assert isinstance(machine.current_gesture.data, MultiTouchData)
    assert len(machine.current_gesture.data.positions) == 4


def test_pointers_sorted_by_id(machine):
    machine.handle_pointer_down(make_pointer(9, 0, 0, 0.0))
    machine.handle_pointer_down(make_pointer(3, 5, 5, 0.0))
    assert [p.pointer_id for p in machine.pointers] == [3, 9]
    assert machine.is_tracking(9)
    assert machine.pointer_count == 2


def test_history_is_bounded():
    machine = TouchStateMachine(TouchStateConfig(GESTURE_HISTORY_SIZE=3))
    for i in range(5):
        t = float(i)
        machine.handle_pointer_down(make_pointer(1, 0, 0, t))
        machine.handle_pointer_up(make_pointer(1, 0, 0, t + 0.5))
    history = machine.get_gesture_history()
    assert len(history) == 3
    assert all(g.phase == GesturePhase.ENDED for g in history)


def test_reset_cancels_live_gesture(machine):
    machine.handle_pointer_down(make_pointer(1, 0, 0, 0.0))
    transition = machine.reset(0.5)

    assert transition.ended.phase == GesturePhase.CANCELLED
    assert transition.mode == TouchMode.IDLE
    assert machine.pointers == []
    assert machine.reset() is None
