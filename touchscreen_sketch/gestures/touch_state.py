"""
Touch mode tracking.

The mode is derived purely from how many pointers are down. Every mode has
one gesture that lives while the mode is active; switching modes ends it
and starts the next one.
"""

import logging
from collections import deque
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Union

from ..config.settings import TouchStateConfig
from ..core.pointer_events import (
    PointerEvent,
    PointerEventType,
    PointerState,
    calculate_centroid,
    calculate_spread,
    primary_pointer,
)
from ..utils.gesture_utils import ZERO, GeometryUtils, Point, VelocityCalculator

logger = logging.getLogger(__name__)


class TouchMode(str, Enum):
    IDLE = 'idle'
    DRAWING = 'drawing'
    PAN_ZOOM = 'pan_zoom'
    UNDO = 'undo'
    MULTI_TOUCH = 'multi_touch'


class GesturePhase(str, Enum):
    POSSIBLE = 'possible'
    BEGAN = 'began'
    CHANGED = 'changed'
    ENDED = 'ended'
    CANCELLED = 'cancelled'
    FAILED = 'failed'

    @property
    def is_terminal(self) -> bool:
        return self in (GesturePhase.ENDED, GesturePhase.CANCELLED, GesturePhase.FAILED)


def mode_for_pointer_count(count: int) -> TouchMode:
    if count == 0:
        return TouchMode.IDLE
    if count == 1:
        return TouchMode.DRAWING
    if count == 2:
        return TouchMode.PAN_ZOOM
    if count == 3:
        return TouchMode.UNDO
    return TouchMode.MULTI_TOUCH


@dataclass(frozen=True)
class DrawingData:
    start_position: Point
    current_position: Point
    total_distance: float
    velocity: Point
    stroke_points: Tuple[Point, ...]


@dataclass(frozen=True)
class PanZoomData:
    initial_centroid: Point
    current_centroid: Point
    initial_spread: float
    current_spread: float
    pan_delta: Point
    zoom_factor: float
    rotation: float
    # Angle of the lowest-id pointer pair when the gesture began
    initial_angle: float


@dataclass(frozen=True)
class UndoData:
    trigger_position: Point
    hold_duration: float
    confirmation_time: float


@dataclass(frozen=True)
class MultiTouchData:
    positions: Tuple[Point, ...]


GestureData = Union[DrawingData, PanZoomData, UndoData, MultiTouchData]


@dataclass(frozen=True)
class TouchGesture:
    mode: TouchMode
    phase: GesturePhase
    start_time: float
    duration: float
    pointer_count: int
    primary_pointer: Optional[PointerState]
    centroid: Point
    data: GestureData


@dataclass(frozen=True)
class TouchTransition:
    """Everything one pointer event changed.

    ended holds the gesture that finished (phase ENDED or CANCELLED),
    started the gesture that began, updated the live gesture that changed.
    """
    event_type: PointerEventType
    previous_mode: TouchMode
    mode: TouchMode
    ended: Optional[TouchGesture] = None
    started: Optional[TouchGesture] = None
    updated: Optional[TouchGesture] = None

    @property
    def mode_changed(self) -> bool:
        return self.previous_mode != self.mode


class TouchStateMachine:
    """Tracks down pointers, the current TouchMode and its live gesture."""

    def __init__(self, config: Optional[TouchStateConfig] = None,
                 on_transition: Optional[Callable[[TouchTransition], None]] = None):
        self.config = config or TouchStateConfig()
        self.on_transition = on_transition

        self._pointers: Dict[int, PointerState] = {}
        self._mode = TouchMode.IDLE
        self._gesture: Optional[TouchGesture] = None
        self._history = deque(maxlen=self.config.GESTURE_HISTORY_SIZE)

    @property
    def mode(self) -> TouchMode:
        return self._mode

    @property
    def current_gesture(self) -> Optional[TouchGesture]:
        return self._gesture

    @property
    def pointers(self) -> List[PointerState]:
        """Down pointers ordered by id."""
        return [self._pointers[key] for key in sorted(self._pointers)]

    @property
    def pointer_count(self) -> int:
        return len(self._pointers)

    def is_tracking(self, pointer_id: int) -> bool:
        return pointer_id in self._pointers

    def handle_event(self, event: PointerEvent) -> Optional[TouchTransition]:
        """Apply one pointer event; returns the resulting transition, if any."""
        handlers = {
            PointerEventType.DOWN: self.handle_pointer_down,
            PointerEventType.MOVE: self.handle_pointer_move,
            PointerEventType.UP: self.handle_pointer_up,
            PointerEventType.CANCEL: self.handle_pointer_cancel,
        }
        return handlers[event.type](event.pointer)

    def handle_pointer_down(self, pointer: PointerState) -> Optional[TouchTransition]:
        self._pointers[pointer.pointer_id] = pointer
        return self._apply(PointerEventType.DOWN, pointer.timestamp)

    def handle_pointer_move(self, pointer: PointerState) -> Optional[TouchTransition]:
        if pointer.pointer_id not in self._pointers:
            return None
        self._pointers[pointer.pointer_id] = pointer
        return self._apply(PointerEventType.MOVE, pointer.timestamp)

    def handle_pointer_up(self, pointer: PointerState) -> Optional[TouchTransition]:
        if pointer.pointer_id not in self._pointers:
            return None
        del self._pointers[pointer.pointer_id]
        return self._apply(PointerEventType.UP, pointer.timestamp)

    def handle_pointer_cancel(self, pointer: PointerState) -> Optional[TouchTransition]:
        if pointer.pointer_id not in self._pointers:
            return None
        del self._pointers[pointer.pointer_id]

        previous_mode = self._mode
        self._mode = mode_for_pointer_count(len(self._pointers))
        ended = self._finish_gesture(GesturePhase.CANCELLED, pointer.timestamp)

        # Same-type end and start never share one notification
        started = None
        if self._mode != previous_mode and self._mode != TouchMode.IDLE:
            started = self._start_gesture(pointer.timestamp)

        return self._notify(TouchTransition(
            PointerEventType.CANCEL, previous_mode, self._mode, ended=ended, started=started
        ))

    def reset(self, timestamp: Optional[float] = None) -> Optional[TouchTransition]:
        """Drop every pointer and return to idle, cancelling the live gesture."""
        if timestamp is None:
            timestamp = self._gesture.start_time + self._gesture.duration if self._gesture else 0.0
        previous_mode = self._mode
        ended = self._finish_gesture(GesturePhase.CANCELLED, timestamp)
        self._pointers.clear()
        self._mode = TouchMode.IDLE

        if ended is None and previous_mode == TouchMode.IDLE:
            return None
        return self._notify(TouchTransition(
            PointerEventType.CANCEL, previous_mode, TouchMode.IDLE, ended=ended
        ))

    def get_gesture_history(self) -> List[TouchGesture]:
        return list(self._history)

    def _apply(self, event_type: PointerEventType, timestamp: float) -> Optional[TouchTransition]:
        previous_mode = self._mode
        new_mode = mode_for_pointer_count(len(self._pointers))

        if new_mode != previous_mode:
            ended = self._finish_gesture(GesturePhase.ENDED, timestamp)
            self._mode = new_mode
            started = self._start_gesture(timestamp) if new_mode != TouchMode.IDLE else None
            logger.debug("Touch mode %s -> %s", previous_mode.value, new_mode.value)
            return self._notify(TouchTransition(
                event_type, previous_mode, new_mode, ended=ended, started=started
            ))

        if self._gesture is None:
            return None
        self._gesture = self._update_gesture(self._gesture, timestamp)
        return self._notify(TouchTransition(
            event_type, previous_mode, new_mode, updated=self._gesture
        ))

    def _notify(self, transition: TouchTransition) -> TouchTransition:
        if self.on_transition is not None:
            self.on_transition(transition)
        return transition

    def _finish_gesture(self, phase: GesturePhase, timestamp: float) -> Optional[TouchGesture]:
        if self._gesture is None:
            return None
        finished = replace(self._gesture, phase=phase,
                           duration=max(0.0, timestamp - self._gesture.start_time))
        self._gesture = None
        self._history.append(finished)
        return finished

    def _start_gesture(self, timestamp: float) -> TouchGesture:
        pointers = self.pointers
        centroid = calculate_centroid(pointers)
        self._gesture = TouchGesture(
            mode=self._mode,
            phase=GesturePhase.BEGAN,
            start_time=timestamp,
            duration=0.0,
            pointer_count=len(pointers),
            primary_pointer=primary_pointer(pointers),
            centroid=centroid,
            data=self._initial_data(pointers, centroid, timestamp),
        )
        return self._gesture

    def _initial_data(self, pointers: List[PointerState], centroid: Point,
                      timestamp: float) -> GestureData:
        if self._mode == TouchMode.DRAWING:
            position = pointers[0].position
            return DrawingData(position, position, 0.0, ZERO, (position,))
        if self._mode == TouchMode.PAN_ZOOM:
            spread = calculate_spread(pointers)
            angle = self._pair_angle(pointers)
            return PanZoomData(centroid, centroid, spread, spread, ZERO, 1.0, 0.0, angle)
        if self._mode == TouchMode.UNDO:
            return UndoData(centroid, 0.0, timestamp + self.config.UNDO_HOLD_TIME / 1000.0)
        return MultiTouchData(tuple(p.position for p in pointers))

    def _update_gesture(self, gesture: TouchGesture, timestamp: float) -> TouchGesture:
        pointers = self.pointers
        centroid = calculate_centroid(pointers)
        data = gesture.data

        if isinstance(data, DrawingData):
            position = pointers[0].position
            step = data.current_position.distance_to(position)
            stroke_points = data.stroke_points
            if step > self.config.STROKE_POINT_MIN_DISTANCE:
                stroke_points = stroke_points + (position,)
            previous_time = gesture.start_time + gesture.duration
            data = DrawingData(
                start_position=data.start_position,
                current_position=position,
                total_distance=data.total_distance + step,
                velocity=VelocityCalculator.calculate_velocity(
                    data.current_position, previous_time, position, timestamp),
                stroke_points=stroke_points,
            )
        elif isinstance(data, PanZoomData):
            spread = calculate_spread(pointers)
            data = replace(
                data,
                current_centroid=centroid,
                current_spread=spread,
                pan_delta=centroid - data.initial_centroid,
                zoom_factor=spread / data.initial_spread if data.initial_spread > 0 else 1.0,
                rotation=GeometryUtils.normalize_angle(self._pair_angle(pointers) - data.initial_angle),
            )
        elif isinstance(data, UndoData):
            data = replace(data, hold_duration=timestamp - gesture.start_time)
        else:
            data = MultiTouchData(tuple(p.position for p in pointers))

        return replace(
            gesture,
            phase=GesturePhase.CHANGED,
            duration=timestamp - gesture.start_time,
            pointer_count=len(pointers),
            primary_pointer=primary_pointer(pointers),
            centroid=centroid,
            data=data,
        )

    @staticmethod
    def _pair_angle(pointers: List[PointerState]) -> float:
        if len(pointers) < 2:
            return 0.0
        return (pointers[1].position - pointers[0].position).angle()
