"""
Console and debug-file logging for touch modes, gestures and strokes.
"""

import datetime
import logging
from typing import List, Optional

logger = logging.getLogger(__name__)

_GESTURE_ICONS = {
    'tap': '👆',
    'long_press': '🤚',
    'swipe': '👋',
    'pan': '✋',
    'zoom': '🔍',
    'rotate': '🔄',
    'undo': '↩️',
}


class TouchLogger:
    """Prints human-readable event lines and mirrors them to a debug file."""

    def __init__(self, debug_file: Optional[str] = None, echo: bool = True):
        self.echo = echo
        self.debug_file = None
        if debug_file:
            try:
                self.debug_file = open(debug_file, 'w', encoding='utf-8')
                self.debug_file.write(f"Debug logging started at {datetime.datetime.now()}\n")
                self.debug_file.flush()
            except OSError as e:
                logger.warning("Could not open debug file %s: %s", debug_file, e)

    def _timestamp(self) -> str:
        return datetime.datetime.now().strftime("%H:%M:%S.%f")[:-3]

    def _write(self, lines: List[str], detail: Optional[str] = None):
        timestamp = self._timestamp()
        if self.echo:
            print(f"[{timestamp}] {lines[0]}")
            for line in lines[1:]:
                print(f"   {line}")

        if self.debug_file:
            try:
                self.debug_file.write(f"[{timestamp}] {detail or ' | '.join(lines)}\n")
                self.debug_file.flush()
            except OSError as e:
                logger.warning("Debug file write failed: %s", e)

    def log_mode_change(self, previous, current):
        """Log a touch mode transition."""
        self._write([f"🔀 MODE: {previous.value} -> {current.value}"])

    def log_gesture(self, gesture):
        """Log a recognized gesture."""
        gesture_type = gesture.type.value
        icon = _GESTURE_ICONS.get(gesture_type, '•')
        lines = [f"{icon} {gesture_type.upper()} {gesture.phase.value}: "
                 f"{len(gesture.pointers)} finger(s) [confidence {gesture.confidence:.2f}]"]

        data = gesture.data
        if gesture_type == 'tap':
            lines.append(f"Tap count: {data.tap_count}")
        elif gesture_type == 'swipe':
            lines.append(f"Direction: ({data.direction.x:.2f}, {data.direction.y:.2f}) "
                         f"[{int(data.distance)}px at {int(data.velocity)}px/s]")
        elif gesture_type == 'pan':
            lines.append(f"Translation: ({data.translation.x:.1f}, {data.translation.y:.1f})")
        elif gesture_type == 'zoom':
            lines.append(f"Scale: {data.scale:.2f}")
        elif gesture_type == 'rotate':
            lines.append(f"Rotation: {data.rotation:.3f} rad")
        elif gesture_type == 'undo':
            lines.append(f"Confirmation: {data.confirmation * 100:.0f}%")

        for i, pointer in enumerate(gesture.pointers):
            lines.append(f"Finger {i+1}: ({int(pointer.position.x)}, {int(pointer.position.y)})")

        self._write(lines, detail=repr(gesture))

    def log_stroke_completed(self, stroke, results):
        """Log a finished stroke and the geometry fitted to it."""
        lines = [f"✏️ STROKE {stroke.stroke_id}: {len(stroke.points)} points, "
                 f"{stroke.total_length:.0f}px, quality {stroke.quality_score:.2f}"]
        if stroke.corner_indices:
            lines.append(f"Corners at: {list(stroke.corner_indices)}")
        if not results:
            lines.append("No geometry above the confidence floor")
        for result in results:
            lines.append(f"{result.geometry_type.value}: confidence {result.confidence:.2f}, "
                         f"error {result.error:.2f}px")
        self._write(lines)

    def log_stroke_cancelled(self, stroke_id: str):
        self._write([f"🚫 STROKE {stroke_id} cancelled"])

    def close(self):
        """Close the debug file."""
        if self.debug_file:
            self.debug_file.close()
            self.debug_file = None
