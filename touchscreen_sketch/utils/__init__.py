"""
Utilities package for geometry, coordinate transforms and event logging.

This package provides the vector math shared by the stroke and gesture
components.
"""

from .gesture_utils import (
    Point,
    GeometryUtils,
    VelocityCalculator,
    PathUtils,
)
from .transforms import AffineTransform, CoordinateSystem, MultiPoint, TransformContext

__all__ = [
    'Point',
    'GeometryUtils',
    'VelocityCalculator',
    'PathUtils',
    'AffineTransform',
    'CoordinateSystem',
    'MultiPoint',
    'TransformContext',
]
