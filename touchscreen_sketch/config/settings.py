"""
Configuration settings for stroke processing and gesture recognition.

Every settings class exposes its defaults as uppercase class attributes, the
same way the components read them. Instances accept keyword overrides for a
single component without touching the shared defaults:

    detector = CornerDetector(CornerConfig(MIN_SEGMENT_LENGTH=10))
"""

import json
import math
from types import MappingProxyType
from typing import Any, Dict


class _Settings:
    """Base class for settings with per-instance uppercase overrides."""

    def __init__(self, **overrides: Any):
        for name, value in overrides.items():
            if not name.isupper() or not hasattr(type(self), name):
                raise ValueError(f"Unknown {type(self).__name__} setting: {name}")
            if isinstance(value, dict):
                value = MappingProxyType(dict(value))
            setattr(self, name, value)

    @classmethod
    def from_dict(cls, values: Dict[str, Any]):
        """Build settings from a mapping; keys may be lower or upper case."""
        return cls(**{key.upper(): value for key, value in values.items()})

    def as_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in dir(self) if name.isupper()}

    def __repr__(self):
        return f"{type(self).__name__}({self.as_dict()})"


class CornerConfig(_Settings):
    """Corner detection tunables."""

    # Minimum curvature (1/px) a corner must reach. At 2px spacing and a
    # 5-sample window a 30 degree turn measures roughly 0.05.
    CURVATURE_THRESHOLD = 0.05
    MIN_SEGMENT_LENGTH = 15.0
    SMOOTHING_WINDOW = 5
    CONFIDENCE_THRESHOLD = 0.6
    ADAPTIVE_THRESHOLD = True
    FILTER_NEARBY_CORNERS = True

    # Refinement and confidence windows (in samples)
    REFINE_RADIUS = 3
    REFINE_OFFSET = 2
    PROMINENCE_RADIUS = 5

    # Run classification
    LINEARITY_SCALE = 10.0
    LINE_LINEARITY = 0.8


class StrokeConfig(_Settings):
    """Stroke capture and finalisation tunables."""

    TARGET_SPACING = 2.0
    SMOOTHING_FACTOR = 0.3
    VELOCITY_WINDOW_SIZE = 3
    ENABLE_REALTIME_SMOOTHING = True
    MAX_POINTS_PER_STROKE = 2000

    # Smoothing kernel half-width and how far behind the newest sample
    # real-time smoothing stays (in samples)
    SMOOTHING_RADIUS = 2
    REALTIME_SMOOTHING_LAG = 2

    # Quality scoring
    SHORT_STROKE_LENGTH = 10.0
    SPARSE_STROKE_POINTS = 5


class ConversionConfig(_Settings):
    """Stroke-to-geometry fitting tunables (distances in pixels)."""

    LINE_THRESHOLD = 3.0
    ARC_THRESHOLD = 5.0
    CIRCLE_THRESHOLD = 8.0
    MIN_SEGMENT_LENGTH = 20.0
    ENABLE_CIRCLE_DETECTION = True
    CONFIDENCE_THRESHOLD = 0.6

    CLOSURE_SPACING_FACTOR = 3.0
    CIRCLE_MIN_POINTS = 5
    LINEARITY_SCALE = 5.0
    DETERMINANT_TOLERANCE = 1e-10

    # Selection score adjustments
    SIMPLICITY_BONUS = MappingProxyType({
        'line': 0.1,
        'arc': 0.05,
        'circle': 0.0,
        'unknown': -0.1,
    })
    MAX_ERROR_PENALTY = 0.2


class TouchStateConfig(_Settings):
    """Touch mode tracking tunables."""

    # Timing configurations (in milliseconds)
    UNDO_HOLD_TIME = 500

    # Distance configurations (in pixels)
    STROKE_POINT_MIN_DISTANCE = 1.0

    GESTURE_HISTORY_SIZE = 50


class GestureConfig(_Settings):
    """Gesture recognition thresholds."""

    # Distance configurations (in pixels)
    PAN_THRESHOLD = 10.0
    TAP_RADIUS = 20.0
    SWIPE_MIN_DISTANCE = 50.0

    # Ratio / angle thresholds
    ZOOM_THRESHOLD = 0.1
    ROTATION_THRESHOLD = math.pi / 18

    # Timing configurations (in milliseconds)
    TAP_TIMEOUT = 300
    LONG_PRESS_TIMEOUT = 500
    UNDO_HOLD_DURATION = 800
    MULTI_TAP_INTERVAL = 400

    # Velocity (pixels per second)
    SWIPE_MIN_VELOCITY = 100.0

    ENABLE_SIMULTANEOUS_GESTURES = True
    HISTORY_SIZE = 100


class PipelineConfig(_Settings):
    """Input pipeline tunables."""

    # Delay between stroke end and curve fitting (in milliseconds)
    STROKE_PROCESSING_DELAY = 100
    ENABLE_GESTURE_RECOGNITION = True

    # Geometry preview of the stroke being drawn
    ENABLE_REALTIME_PREVIEW = True
    PREVIEW_UPDATE_INTERVAL = 50  # ms


_SECTIONS = {
    'corner': CornerConfig,
    'stroke': StrokeConfig,
    'conversion': ConversionConfig,
    'touch_state': TouchStateConfig,
    'gesture': GestureConfig,
    'pipeline': PipelineConfig,
}


def load_settings(path: str) -> Dict[str, _Settings]:
    """Load settings from a JSON file with one object per section.

    Sections missing from the file get their defaults. Unknown sections or
    keys raise ValueError.
    """
    with open(path, 'r') as f:
        data = json.load(f)

    unknown = set(data) - set(_SECTIONS)
    if unknown:
        raise ValueError(f"Unknown settings sections: {sorted(unknown)}")

    return {
        name: settings_cls.from_dict(data.get(name, {}))
        for name, settings_cls in _SECTIONS.items()
    }
