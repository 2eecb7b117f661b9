"""
Translation of evdev multitouch (protocol B) events into pointer events.

evdev reports contact changes slot by slot and commits them with
SYN_REPORT. The translator collects the changes of one frame and emits
DOWN, MOVE and UP pointer events when the frame is committed.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from evdev import ecodes

from ..core.pointer_events import PointerEvent, PointerEventType, PointerState
from ..core.scheduler import MonotonicClock
from ..utils.gesture_utils import Point

logger = logging.getLogger(__name__)


@dataclass
class _Contact:
    tracking_id: int
    x: float = 0.0
    y: float = 0.0
    pressure: Optional[int] = None
    is_new: bool = True
    lifted: bool = False
    dirty: bool = False


class EvdevEventTranslator:
    """Stateful evdev -> PointerEvent translator for one device."""

    def __init__(self, clock: Optional[Callable[[], float]] = None,
                 max_pressure: Optional[int] = None):
        self.clock = clock or MonotonicClock()
        self.max_pressure = max_pressure

        self._slots: Dict[int, _Contact] = {}
        self._current_slot = 0
        self._primary_id: Optional[int] = None

    @property
    def active_contacts(self) -> int:
        return sum(1 for c in self._slots.values() if not c.is_new and not c.lifted)

    def feed(self, event) -> List[PointerEvent]:
        """Consume one evdev event; returns pointer events when a frame completes."""
        if event.type == ecodes.EV_ABS:
            self._handle_abs_event(event)
        elif event.type == ecodes.EV_SYN:
            if event.code == ecodes.SYN_REPORT:
                return self._flush()
            if event.code == ecodes.SYN_DROPPED:
                logger.warning("Input events dropped by the kernel, cancelling contacts")
                return self.cancel_all()
        return []

    def _handle_abs_event(self, event):
        """Handle absolute coordinate events."""
        if event.code == ecodes.ABS_MT_SLOT:
            self._current_slot = event.value
            return

        if event.code == ecodes.ABS_MT_TRACKING_ID:
            self._handle_tracking_id(event.value)
            return

        contact = self._slots.get(self._current_slot)
        if contact is None:
            return
        if event.code == ecodes.ABS_MT_POSITION_X:
            contact.x = float(event.value)
            contact.dirty = True
        elif event.code == ecodes.ABS_MT_POSITION_Y:
            contact.y = float(event.value)
            contact.dirty = True
        elif event.code == ecodes.ABS_MT_PRESSURE:
            contact.pressure = event.value
            contact.dirty = True

    def _handle_tracking_id(self, value: int):
        """Handle finger tracking ID changes."""
        slot = self._current_slot
        if value == -1:
            # Finger lifted
            contact = self._slots.get(slot)
            if contact is not None:
                contact.lifted = True
        else:
            # Finger placed
            self._slots[slot] = _Contact(tracking_id=value)

    def _flush(self) -> List[PointerEvent]:
        now = self.clock()
        events = []

        for slot in sorted(self._slots):
            contact = self._slots[slot]
            if contact.is_new:
                contact.is_new = False
                if self._primary_id is None:
                    self._primary_id = contact.tracking_id
                events.append(PointerEvent(PointerEventType.DOWN, self._state(contact, now)))
            elif contact.dirty and not contact.lifted:
                events.append(PointerEvent(PointerEventType.MOVE, self._state(contact, now)))

            if contact.lifted:
                events.append(PointerEvent(PointerEventType.UP, self._state(contact, now)))
                self._release(slot)
            else:
                contact.dirty = False

        return events

    def cancel_all(self) -> List[PointerEvent]:
        """Cancel every contact that has been reported down."""
        now = self.clock()
        events = [
            PointerEvent(PointerEventType.CANCEL, self._state(contact, now))
            for slot, contact in sorted(self._slots.items())
            if not contact.is_new
        ]
        self._slots.clear()
        self._primary_id = None
        return events

    def _release(self, slot: int):
        contact = self._slots.pop(slot)
        if contact.tracking_id == self._primary_id:
            self._primary_id = None

    def _state(self, contact: _Contact, now: float) -> PointerState:
        if contact.pressure is not None and self.max_pressure:
            pressure = contact.pressure / self.max_pressure
        else:
            pressure = 0.5
        return PointerState(
            pointer_id=contact.tracking_id,
            position=Point(contact.x, contact.y),
            timestamp=now,
            pressure=pressure,
            is_primary=contact.tracking_id == self._primary_id,
        )
