"""
Normalized pointer events.

Every input source (evdev, pygame, tests) is translated into these values
before it reaches the touch state machine, the gesture recognizer or the
stroke processor.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from ..utils.gesture_utils import GeometryUtils, Point
from ..utils.transforms import MultiPoint


class PointerEventType(str, Enum):
    DOWN = 'down'
    MOVE = 'move'
    UP = 'up'
    CANCEL = 'cancel'


@dataclass(frozen=True)
class PointerState:
    """Snapshot of one pointer at one moment.

    Attributes:
        pointer_id: Identifier stable for the lifetime of the contact
        position: Raw screen position in pixels
        timestamp: Monotonic time in seconds
        pressure: Normalized pressure in [0, 1]
        tilt_x: Pen tilt along x in degrees
        tilt_y: Pen tilt along y in degrees
        is_primary: True for the first contact of a multi-touch sequence
        button: Device button index (0 for touch contacts)
        world: Optional multi-coordinate view of the position
    """
    pointer_id: int
    position: Point
    timestamp: float
    pressure: float = 0.5
    tilt_x: float = 0.0
    tilt_y: float = 0.0
    is_primary: bool = False
    button: int = 0
    world: Optional[MultiPoint] = None

    def __post_init__(self):
        object.__setattr__(self, 'pressure', max(0.0, min(1.0, float(self.pressure))))


@dataclass(frozen=True)
class PointerEvent:
    type: PointerEventType
    pointer: PointerState

    @property
    def timestamp(self) -> float:
        return self.pointer.timestamp


def calculate_centroid(pointers: Sequence[PointerState]) -> Point:
    return GeometryUtils.calculate_centroid([p.position for p in pointers])


def calculate_spread(pointers: Sequence[PointerState]) -> float:
    return GeometryUtils.calculate_spread([p.position for p in pointers])


def primary_pointer(pointers: Sequence[PointerState]) -> Optional[PointerState]:
    """The pointer flagged primary, else the first one."""
    for pointer in pointers:
        if pointer.is_primary:
            return pointer
    return pointers[0] if pointers else None
