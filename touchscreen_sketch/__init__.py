"""
Touchscreen Sketch Package
Turns multi-touch pointer input into gestures and fitted stroke geometry.
"""

from .core.input_pipeline import InputPipeline, PipelineHandlers
from .gestures.gesture_recognizer import GestureRecognizer
from .gestures.touch_state import TouchStateMachine
from .strokes.stroke_processor import StrokeProcessor
from .strokes.stroke_to_geometry import StrokeToGeometryConverter

__version__ = "2.0.0"
__all__ = [
    "InputPipeline",
    "PipelineHandlers",
    "GestureRecognizer",
    "TouchStateMachine",
    "StrokeProcessor",
    "StrokeToGeometryConverter",
]
