"""
Affine transforms and multi-coordinate points.

Raw device input arrives in screen pixels; drawings live in world space. A
TransformContext describes how to get from one to the other, and MultiPoint
carries a position that can be read in any of the three systems.
"""

import math
from enum import Enum
from typing import Dict, Optional

import numpy as np

from .gesture_utils import Point


class CoordinateSystem(str, Enum):
    SCREEN = 'screen'
    VIEWPORT = 'viewport'
    WORLD = 'world'


class AffineTransform:
    """2D affine transform stored as a 3x3 homogeneous matrix."""

    def __init__(self, matrix: Optional[np.ndarray] = None):
        if matrix is None:
            matrix = np.identity(3)
        matrix = np.asarray(matrix, dtype=float)
        if matrix.shape != (3, 3):
            raise ValueError(f"Affine matrix must be 3x3, got {matrix.shape}")
        self._matrix = matrix

    @classmethod
    def identity(cls) -> 'AffineTransform':
        return cls()

    @classmethod
    def translation(cls, tx: float, ty: float) -> 'AffineTransform':
        return cls(np.array([[1.0, 0.0, tx],
                             [0.0, 1.0, ty],
                             [0.0, 0.0, 1.0]]))

    @classmethod
    def scaling(cls, sx: float, sy: Optional[float] = None) -> 'AffineTransform':
        if sy is None:
            sy = sx
        return cls(np.diag([sx, sy, 1.0]))

    @classmethod
    def rotation(cls, angle: float) -> 'AffineTransform':
        c = math.cos(angle)
        s = math.sin(angle)
        return cls(np.array([[c, -s, 0.0],
                             [s, c, 0.0],
                             [0.0, 0.0, 1.0]]))

    @property
    def matrix(self) -> np.ndarray:
        return self._matrix.copy()

    def compose(self, other: 'AffineTransform') -> 'AffineTransform':
        """Transform that applies self first, then other."""
        return AffineTransform(other._matrix @ self._matrix)

    def inverse(self) -> 'AffineTransform':
        det = np.linalg.det(self._matrix[:2, :2])
        if abs(det) < 1e-12:
            raise ValueError("Affine transform is singular and cannot be inverted")
        return AffineTransform(np.linalg.inv(self._matrix))

    def apply(self, point: Point) -> Point:
        x, y, _ = self._matrix @ np.array([point.x, point.y, 1.0])
        return Point(x, y)

    def apply_vector(self, vector: Point) -> Point:
        """Apply the linear part only (no translation)."""
        x, y = self._matrix[:2, :2] @ np.array([vector.x, vector.y])
        return Point(x, y)

    def is_identity(self, tolerance: float = 1e-12) -> bool:
        return bool(np.allclose(self._matrix, np.identity(3), atol=tolerance))

    def __eq__(self, other):
        if not isinstance(other, AffineTransform):
            return NotImplemented
        return bool(np.allclose(self._matrix, other._matrix))

    def __repr__(self):
        return f"AffineTransform({self._matrix.tolist()})"


class TransformContext:
    """Screen -> viewport -> world conversion parameters.

    Screen coordinates are raw device pixels. Viewport coordinates divide
    out the device pixel ratio. World coordinates come from applying the
    world transform to viewport coordinates.
    """

    def __init__(self, device_pixel_ratio: float = 1.0,
                 world_transform: Optional[AffineTransform] = None):
        if device_pixel_ratio <= 0:
            raise ValueError("device_pixel_ratio must be positive")
        self.device_pixel_ratio = float(device_pixel_ratio)
        self.world_transform = world_transform or AffineTransform.identity()

        screen_to_viewport = AffineTransform.scaling(1.0 / self.device_pixel_ratio)
        screen_to_world = screen_to_viewport.compose(self.world_transform)
        self._to_screen = {
            CoordinateSystem.SCREEN: AffineTransform.identity(),
            CoordinateSystem.VIEWPORT: screen_to_viewport.inverse(),
            CoordinateSystem.WORLD: screen_to_world.inverse(),
        }
        self._from_screen = {
            CoordinateSystem.SCREEN: AffineTransform.identity(),
            CoordinateSystem.VIEWPORT: screen_to_viewport,
            CoordinateSystem.WORLD: screen_to_world,
        }

    def convert(self, point: Point, source: CoordinateSystem,
                target: CoordinateSystem) -> Point:
        if source == target:
            return point
        screen = self._to_screen[source].apply(point)
        return self._from_screen[target].apply(screen)

    def from_screen(self, point: Point) -> 'MultiPoint':
        return MultiPoint(point, CoordinateSystem.SCREEN, self)

    def from_viewport(self, point: Point) -> 'MultiPoint':
        return MultiPoint(point, CoordinateSystem.VIEWPORT, self)

    def from_world(self, point: Point) -> 'MultiPoint':
        return MultiPoint(point, CoordinateSystem.WORLD, self)

    def with_world_transform(self, world_transform: AffineTransform) -> 'TransformContext':
        return TransformContext(self.device_pixel_ratio, world_transform)

    def __repr__(self):
        return (f"TransformContext(device_pixel_ratio={self.device_pixel_ratio}, "
                f"world_transform={self.world_transform!r})")


class MultiPoint:
    """A position readable in screen, viewport or world coordinates.

    Only the native coordinates are stored; the others are computed on
    first access and cached.
    """

    def __init__(self, coordinates: Point, system: CoordinateSystem,
                 context: TransformContext):
        self.system = system
        self.context = context
        self._cache: Dict[CoordinateSystem, Point] = {system: coordinates}

    def in_system(self, system: CoordinateSystem) -> Point:
        if system not in self._cache:
            native = self._cache[self.system]
            self._cache[system] = self.context.convert(native, self.system, system)
        return self._cache[system]

    @property
    def screen(self) -> Point:
        return self.in_system(CoordinateSystem.SCREEN)

    @property
    def viewport(self) -> Point:
        return self.in_system(CoordinateSystem.VIEWPORT)

    @property
    def world(self) -> Point:
        return self.in_system(CoordinateSystem.WORLD)

    def distance_to(self, other: 'MultiPoint',
                    system: CoordinateSystem = CoordinateSystem.WORLD) -> float:
        return self.in_system(system).distance_to(other.in_system(system))

    def lerp(self, other: 'MultiPoint', t: float,
             system: CoordinateSystem = CoordinateSystem.WORLD) -> 'MultiPoint':
        blended = self.in_system(system).lerp(other.in_system(system), t)
        return MultiPoint(blended, system, self.context)

    def with_context(self, context: TransformContext) -> 'MultiPoint':
        """Same native coordinates re-read through a different context."""
        return MultiPoint(self._cache[self.system], self.system, context)

    def __repr__(self):
        return f"MultiPoint({self._cache[self.system]!r}, {self.system.value})"
