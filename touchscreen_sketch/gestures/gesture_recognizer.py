"""
Fine-grained gesture recognition.

Runs alongside the touch state machine and recognizes taps, long presses,
swipes, two-finger pan/zoom/rotate and the three-finger undo hold. Each
gesture family keeps its own accumulator, created lazily when its pointer
configuration appears and dropped when it goes away. Time thresholds are
checked whenever an event arrives or update() is called; nothing runs in
the background.
"""

import logging
from collections import deque
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from ..config.settings import GestureConfig
from ..core.pointer_events import (
    PointerEvent,
    PointerEventType,
    PointerState,
    calculate_centroid,
    calculate_spread,
)
from ..core.scheduler import MonotonicClock
from ..utils.gesture_utils import GeometryUtils, Point
from .touch_state import GesturePhase, TouchMode

logger = logging.getLogger(__name__)


class GestureType(str, Enum):
    TAP = 'tap'
    LONG_PRESS = 'long_press'
    SWIPE = 'swipe'
    PAN = 'pan'
    ZOOM = 'zoom'
    ROTATE = 'rotate'
    UNDO = 'undo'


@dataclass(frozen=True)
class TapData:
    position: Point
    tap_count: int


@dataclass(frozen=True)
class LongPressData:
    position: Point
    hold_duration: float


@dataclass(frozen=True)
class SwipeData:
    direction: Point
    velocity: float
    distance: float


@dataclass(frozen=True)
class PanData:
    translation: Point
    centroid: Point


@dataclass(frozen=True)
class ZoomData:
    scale: float
    center: Point


@dataclass(frozen=True)
class RotationData:
    rotation: float
    center: Point


@dataclass(frozen=True)
class UndoHoldData:
    position: Point
    hold_duration: float
    confirmation: float


GesturePayload = Union[TapData, LongPressData, SwipeData, PanData, ZoomData,
                       RotationData, UndoHoldData]


@dataclass(frozen=True)
class RecognizedGesture:
    type: GestureType
    phase: GesturePhase
    timestamp: float
    duration: float
    pointers: Tuple[PointerState, ...]
    centroid: Point
    confidence: float
    data: GesturePayload

    @property
    def start_time(self) -> float:
        return self.timestamp - self.duration


@dataclass
class _PressState:
    pointer_id: int
    start_time: float
    start_position: Point
    last_position: Point
    moved: bool = False
    swiped: bool = False
    long_pressed: bool = False


@dataclass
class _TapState:
    last_tap_time: float
    tap_count: int


@dataclass
class _TwoPointerState:
    pointer_ids: Tuple[int, ...]
    start_time: float
    initial_centroid: Point
    initial_spread: float
    last_angle: float
    rotation: float = 0.0


@dataclass
class _UndoState:
    start_time: float
    confirmed: bool = False


_TWO_POINTER_TYPES = (GestureType.PAN, GestureType.ZOOM, GestureType.ROTATE)


class GestureRecognizer:
    """Recognizes gestures from successive pointer snapshots."""

    def __init__(self, config: Optional[GestureConfig] = None,
                 clock: Optional[Callable[[], float]] = None):
        self.config = config or GestureConfig()
        self.clock = clock or MonotonicClock()

        self._live: Dict[GestureType, RecognizedGesture] = {}
        self._history = deque(maxlen=self.config.HISTORY_SIZE)

        self._press: Optional[_PressState] = None
        self._tap: Optional[_TapState] = None
        self._two: Optional[_TwoPointerState] = None
        self._undo: Optional[_UndoState] = None

    @property
    def active_gestures(self) -> List[RecognizedGesture]:
        return list(self._live.values())

    def process(self, event: PointerEvent, pointers: Sequence[PointerState],
                touch_mode: TouchMode) -> List[RecognizedGesture]:
        """Evaluate one pointer event.

        Args:
            event: The event just applied
            pointers: Pointers still down after the event
            touch_mode: Mode of the touch state machine after the event

        Returns:
            Gestures whose phase changed because of this event
        """
        now = event.timestamp
        if event.type == PointerEventType.CANCEL:
            return self._cancel_all(now)

        pointers = tuple(pointers)
        recognized = []
        recognized += self._recognize_press(event, pointers, touch_mode, now)
        recognized += self._recognize_two_pointer(pointers, touch_mode, now)
        recognized += self._recognize_undo(pointers, now)
        self._log(recognized)
        return recognized

    def update(self, pointers: Sequence[PointerState], touch_mode: TouchMode,
               timestamp: Optional[float] = None) -> List[RecognizedGesture]:
        """Check time-based thresholds (long press, undo hold) without a new event."""
        now = self.clock() if timestamp is None else timestamp
        pointers = tuple(pointers)
        recognized = []
        if self._press is not None and touch_mode == TouchMode.DRAWING and len(pointers) == 1:
            recognized += self._update_press(self._press, pointers[0].position, pointers, now)
        if self._undo is not None and len(pointers) >= 3:
            recognized += self._recognize_undo(pointers, now)
        self._log(recognized)
        return recognized

    def reset(self):
        """Forget live gestures and all accumulators."""
        self._live.clear()
        self._press = None
        self._tap = None
        self._two = None
        self._undo = None

    def get_gesture_history(self, max_age: Optional[float] = None,
                            now: Optional[float] = None) -> List[RecognizedGesture]:
        """Terminal gestures, oldest first, optionally limited to the last max_age seconds."""
        if max_age is None:
            return list(self._history)
        now = self.clock() if now is None else now
        return [g for g in self._history if now - g.timestamp <= max_age]

    # Single pointer: tap, long press, swipe

    def _recognize_press(self, event: PointerEvent, pointers: Tuple[PointerState, ...],
                         touch_mode: TouchMode, now: float) -> List[RecognizedGesture]:
        if touch_mode == TouchMode.DRAWING and len(pointers) == 1:
            pointer = pointers[0]
            press = self._press
            if press is None or press.pointer_id != pointer.pointer_id:
                self._press = None
                if event.type == PointerEventType.DOWN:
                    self._press = _PressState(pointer.pointer_id, now,
                                              pointer.position, pointer.position)
                return []
            return self._update_press(press, pointer.position, pointers, now)

        press = self._press
        if press is None:
            return []
        self._press = None

        lifted = (event.type == PointerEventType.UP and not pointers
                  and event.pointer.pointer_id == press.pointer_id)
        if not lifted:
            return self._finish_live([GestureType.LONG_PRESS], GesturePhase.CANCELLED, now)

        position = event.pointer.position
        lifted_pointers = (event.pointer,)
        results = self._update_press(press, position, lifted_pointers, now, lifting=True)
        if GestureType.LONG_PRESS in self._live:
            results += self._finish_live([GestureType.LONG_PRESS], GesturePhase.ENDED, now)
        elif press.long_pressed:
            # Timed out without an update in between: report the finished press once
            distance = position.distance_to(press.start_position)
            results.append(self._emit(
                GestureType.LONG_PRESS, GesturePhase.ENDED, now, press.start_time,
                lifted_pointers, self._long_press_confidence(distance),
                LongPressData(position, now - press.start_time),
            ))
        elif self._is_tap(press, position, now):
            results.append(self._emit_tap(press, position, lifted_pointers, now))
        return results

    def _update_press(self, press: _PressState, position: Point,
                      pointers: Tuple[PointerState, ...], now: float,
                      lifting: bool = False) -> List[RecognizedGesture]:
        config = self.config
        results = []
        displacement = position - press.start_position
        distance = displacement.length()
        elapsed = now - press.start_time

        if distance > config.TAP_RADIUS:
            press.moved = True

        long_press_live = GestureType.LONG_PRESS in self._live

        if not press.swiped and not long_press_live and elapsed > 0:
            velocity = distance / elapsed
            if distance >= config.SWIPE_MIN_DISTANCE and velocity >= config.SWIPE_MIN_VELOCITY:
                press.swiped = True
                results.append(self._emit(
                    GestureType.SWIPE, GesturePhase.ENDED, now, press.start_time, pointers,
                    min(1.0, velocity / (3 * config.SWIPE_MIN_VELOCITY)),
                    SwipeData(displacement.normalized(), velocity, distance),
                ))

        if long_press_live:
            if position != press.last_position:
                results.append(self._emit(
                    GestureType.LONG_PRESS, GesturePhase.CHANGED, now, press.start_time,
                    pointers, self._long_press_confidence(distance),
                    LongPressData(position, elapsed),
                ))
        elif (not (press.moved or press.swiped or press.long_pressed)
              and elapsed * 1000 >= config.LONG_PRESS_TIMEOUT):
            press.long_pressed = True
            if not lifting:
                results.append(self._emit(
                    GestureType.LONG_PRESS, GesturePhase.BEGAN, now, press.start_time, pointers,
                    self._long_press_confidence(distance), LongPressData(position, elapsed),
                ))

        press.last_position = position
        return results

    def _is_tap(self, press: _PressState, position: Point, now: float) -> bool:
        if press.moved or press.swiped or press.long_pressed:
            return False
        if (now - press.start_time) * 1000 > self.config.TAP_TIMEOUT:
            return False
        return position.distance_to(press.start_position) <= self.config.TAP_RADIUS

    def _emit_tap(self, press: _PressState, position: Point,
                  pointers: Tuple[PointerState, ...], now: float) -> RecognizedGesture:
        tap = self._tap
        if tap is not None and (now - tap.last_tap_time) * 1000 <= self.config.MULTI_TAP_INTERVAL:
            count = tap.tap_count + 1
        else:
            count = 1
        self._tap = _TapState(now, count)

        movement = position.distance_to(press.start_position)
        confidence = 1.0 - 0.3 * movement / self.config.TAP_RADIUS
        return self._emit(GestureType.TAP, GesturePhase.ENDED, now, press.start_time,
                          pointers, confidence, TapData(position, count))

    def _long_press_confidence(self, distance: float) -> float:
        return max(0.0, 1.0 - 0.2 * distance / self.config.TAP_RADIUS)

    # Two pointers: pan, zoom, rotate

    def _recognize_two_pointer(self, pointers: Tuple[PointerState, ...],
                               touch_mode: TouchMode, now: float) -> List[RecognizedGesture]:
        if touch_mode != TouchMode.PAN_ZOOM or len(pointers) != 2:
            if self._two is None:
                return []
            self._two = None
            return self._finish_live(_TWO_POINTER_TYPES, GesturePhase.ENDED, now)

        config = self.config
        ids = tuple(p.pointer_id for p in pointers)
        centroid = calculate_centroid(pointers)
        spread = calculate_spread(pointers)
        angle = (pointers[1].position - pointers[0].position).angle()

        state = self._two
        if state is None or state.pointer_ids != ids:
            results = self._finish_live(_TWO_POINTER_TYPES, GesturePhase.ENDED, now)
            self._two = _TwoPointerState(ids, now, centroid, spread, angle)
            return results

        state.rotation += GeometryUtils.normalize_angle(angle - state.last_angle)
        state.last_angle = angle

        translation = centroid - state.initial_centroid
        scale = spread / state.initial_spread if state.initial_spread > 0 else 1.0
        measures = {
            GestureType.PAN: (translation.length(), config.PAN_THRESHOLD,
                              PanData(translation, centroid)),
            GestureType.ZOOM: (abs(scale - 1.0), config.ZOOM_THRESHOLD,
                               ZoomData(scale, centroid)),
            GestureType.ROTATE: (abs(state.rotation), config.ROTATION_THRESHOLD,
                                 RotationData(state.rotation, centroid)),
        }

        results = []
        for gesture_type in _TWO_POINTER_TYPES:
            measured, threshold, data = measures[gesture_type]
            live = gesture_type in self._live
            if not live:
                if measured < threshold:
                    continue
                if not config.ENABLE_SIMULTANEOUS_GESTURES and any(
                        t in self._live for t in _TWO_POINTER_TYPES):
                    continue
            results.append(self._emit(
                gesture_type, GesturePhase.CHANGED, now, state.start_time, pointers,
                min(1.0, measured / (2 * threshold)), data,
            ))
        return results

    # Three or more pointers: undo hold

    def _recognize_undo(self, pointers: Tuple[PointerState, ...],
                        now: float) -> List[RecognizedGesture]:
        if len(pointers) < 3:
            if self._undo is None:
                return []
            self._undo = None
            return self._finish_live([GestureType.UNDO], GesturePhase.FAILED, now)

        centroid = calculate_centroid(pointers)
        state = self._undo
        if state is None:
            self._undo = _UndoState(now)
            return [self._emit(GestureType.UNDO, GesturePhase.BEGAN, now, now, pointers,
                               0.0, UndoHoldData(centroid, 0.0, 0.0))]
        if state.confirmed:
            return []

        held = now - state.start_time
        progress = min(1.0, held * 1000 / self.config.UNDO_HOLD_DURATION)
        if progress >= 1.0:
            state.confirmed = True
            phase = GesturePhase.ENDED
        else:
            phase = GesturePhase.CHANGED
        return [self._emit(GestureType.UNDO, phase, now, state.start_time, pointers,
                           progress, UndoHoldData(centroid, held, progress))]

    # Life-cycle bookkeeping

    def _emit(self, gesture_type: GestureType, phase: GesturePhase, now: float,
              start_time: float, pointers: Tuple[PointerState, ...], confidence: float,
              data: GesturePayload) -> RecognizedGesture:
        live = gesture_type in self._live
        if phase == GesturePhase.BEGAN and live:
            phase = GesturePhase.CHANGED
        elif phase == GesturePhase.CHANGED and not live:
            phase = GesturePhase.BEGAN

        gesture = RecognizedGesture(
            type=gesture_type,
            phase=phase,
            timestamp=now,
            duration=max(0.0, now - start_time),
            pointers=tuple(pointers),
            centroid=calculate_centroid(pointers),
            confidence=max(0.0, min(1.0, confidence)),
            data=data,
        )
        if phase.is_terminal:
            self._live.pop(gesture_type, None)
            self._history.append(gesture)
        else:
            self._live[gesture_type] = gesture
        return gesture

    def _finish_live(self, gesture_types, phase: GesturePhase,
                     now: float) -> List[RecognizedGesture]:
        finished = []
        for gesture_type in gesture_types:
            live = self._live.pop(gesture_type, None)
            if live is None:
                continue
            gesture = replace(live, phase=phase, timestamp=now,
                              duration=max(0.0, now - live.start_time))
            self._history.append(gesture)
            finished.append(gesture)
        return finished

    def _cancel_all(self, now: float) -> List[RecognizedGesture]:
        cancelled = self._finish_live(list(self._live), GesturePhase.CANCELLED, now)
        self._press = None
        self._two = None
        self._undo = None
        self._log(cancelled)
        return cancelled

    def _log(self, gestures: List[RecognizedGesture]):
        for gesture in gestures:
            logger.debug("%s %s (confidence %.2f)", gesture.type.value,
                         gesture.phase.value, gesture.confidence)
