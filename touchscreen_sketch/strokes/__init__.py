"""
Stroke capture, corner detection and geometry fitting.
"""

from .corner_detector import CornerDetectionResult, CornerDetector
from .stroke_processor import ProcessedStroke, StrokeProcessor, StrokeSample, StrokeStateError
from .stroke_to_geometry import GeometryFitResult, GeometryType, StrokeToGeometryConverter

__all__ = [
    'CornerDetectionResult',
    'CornerDetector',
    'ProcessedStroke',
    'StrokeProcessor',
    'StrokeSample',
    'StrokeStateError',
    'GeometryFitResult',
    'GeometryType',
    'StrokeToGeometryConverter',
]
