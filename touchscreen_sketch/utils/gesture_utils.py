"""
Shared geometric utilities for stroke and gesture processing.

This module provides the 2D vector type and the small set of geometric
helpers used by the corner detector, the stroke processor, the geometry
converter and the gesture recognizer.
"""

import math
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np


class Point:
    """Immutable 2D vector / point."""

    __slots__ = ('x', 'y')

    def __init__(self, x: float, y: float):
        object.__setattr__(self, 'x', float(x))
        object.__setattr__(self, 'y', float(y))

    def __setattr__(self, name, value):
        raise AttributeError("Point is immutable")

    def __repr__(self):
        return f"Point({self.x:.1f}, {self.y:.1f})"

    def __eq__(self, other):
        if not isinstance(other, Point):
            return NotImplemented
        return abs(self.x - other.x) < 1e-10 and abs(self.y - other.y) < 1e-10

    def __hash__(self):
        return hash((round(self.x, 9), round(self.y, 9)))

    def __iter__(self):
        yield self.x
        yield self.y

    def __add__(self, other: 'Point') -> 'Point':
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: 'Point') -> 'Point':
        return Point(self.x - other.x, self.y - other.y)

    def __mul__(self, scalar: float) -> 'Point':
        return Point(self.x * scalar, self.y * scalar)

    __rmul__ = __mul__

    def __truediv__(self, scalar: float) -> 'Point':
        return Point(self.x / scalar, self.y / scalar)

    def __neg__(self) -> 'Point':
        return Point(-self.x, -self.y)

    def dot(self, other: 'Point') -> float:
        return self.x * other.x + self.y * other.y

    def cross(self, other: 'Point') -> float:
        """Z component of the 3D cross product."""
        return self.x * other.y - self.y * other.x

    def length(self) -> float:
        return math.hypot(self.x, self.y)

    def length_squared(self) -> float:
        return self.x * self.x + self.y * self.y

    def normalized(self) -> 'Point':
        """Unit vector in the same direction; the zero vector stays zero."""
        length = self.length()
        if length == 0:
            return Point(0.0, 0.0)
        return Point(self.x / length, self.y / length)

    def distance_to(self, other: 'Point') -> float:
        """Calculate Euclidean distance to another point."""
        return math.hypot(self.x - other.x, self.y - other.y)

    def distance_squared_to(self, other: 'Point') -> float:
        dx = self.x - other.x
        dy = self.y - other.y
        return dx * dx + dy * dy

    def lerp(self, other: 'Point', t: float) -> 'Point':
        return Point(self.x + (other.x - self.x) * t, self.y + (other.y - self.y) * t)

    def rotate(self, angle: float) -> 'Point':
        """Rotate counter-clockwise around the origin."""
        cos_a = math.cos(angle)
        sin_a = math.sin(angle)
        return Point(self.x * cos_a - self.y * sin_a, self.x * sin_a + self.y * cos_a)

    def angle(self) -> float:
        return math.atan2(self.y, self.x)

    def to_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


ZERO = Point(0.0, 0.0)


class GeometryUtils:
    """Utility class for geometric calculations."""

    @staticmethod
    def calculate_centroid(points: Sequence[Point]) -> Point:
        """Calculate the centroid of a list of points."""
        if not points:
            return ZERO
        sum_x = sum(p.x for p in points)
        sum_y = sum(p.y for p in points)
        return Point(sum_x / len(points), sum_y / len(points))

    @staticmethod
    def calculate_spread(points: Sequence[Point]) -> float:
        """Mean distance of the points from their centroid (0 for < 2 points)."""
        if len(points) < 2:
            return 0.0
        centroid = GeometryUtils.calculate_centroid(points)
        return sum(p.distance_to(centroid) for p in points) / len(points)

    @staticmethod
    def calculate_path_length(points: Sequence[Point]) -> float:
        """Calculate total path length."""
        if len(points) < 2:
            return 0.0

        length = 0.0
        for i in range(1, len(points)):
            length += points[i - 1].distance_to(points[i])
        return length

    @staticmethod
    def calculate_perpendicular_distance(point: Point, line_start: Point, line_end: Point) -> float:
        """Distance from point to the infinite line through line_start/line_end.

        Falls back to the point distance when the line is degenerate.
        """
        direction = line_end - line_start
        length = direction.length()
        if length < 1e-10:
            return point.distance_to(line_start)
        return abs(direction.cross(point - line_start)) / length

    @staticmethod
    def circumcircle_curvature(p1: Point, p2: Point, p3: Point) -> float:
        """Curvature (1/R) of the circle through three points.

        Uses 4 * area / (a * b * c). Degenerate triangles give zero.
        """
        area = abs((p2 - p1).cross(p3 - p1)) / 2.0
        if area < 1e-10:
            return 0.0

        a = p2.distance_to(p3)
        b = p1.distance_to(p3)
        c = p1.distance_to(p2)
        product = a * b * c
        if product < 1e-10:
            return 0.0
        return 4.0 * area / product

    @staticmethod
    def turning_angle(p1: Point, p2: Point, p3: Point) -> float:
        """Unsigned change of direction at p2, in [0, pi]."""
        v1 = (p2 - p1).normalized()
        v2 = (p3 - p2).normalized()
        if v1 == ZERO or v2 == ZERO:
            return 0.0
        return math.acos(max(-1.0, min(1.0, v1.dot(v2))))

    @staticmethod
    def circle_from_three_points(p1: Point, p2: Point, p3: Point,
                                 tolerance: float = 1e-10) -> Optional[Tuple[Point, float]]:
        """Circumscribed circle as (center, radius), None for collinear points."""
        mid1 = p1.lerp(p2, 0.5)
        mid2 = p2.lerp(p3, 0.5)
        d1 = p2 - p1
        d2 = p3 - p2
        # Perpendicular bisector directions
        perp1 = Point(-d1.y, d1.x)
        perp2 = Point(-d2.y, d2.x)

        det = perp1.cross(perp2)
        if abs(det) < tolerance:
            return None

        t = (mid2 - mid1).cross(perp2) / det
        center = mid1 + perp1 * t
        return center, center.distance_to(p1)

    @staticmethod
    def normalize_angle(angle: float) -> float:
        """Wrap an angle into (-pi, pi]."""
        wrapped = math.fmod(angle + math.pi, 2 * math.pi)
        if wrapped <= 0:
            wrapped += 2 * math.pi
        return wrapped - math.pi

    @staticmethod
    def coefficient_of_variation(values: Iterable[float]) -> float:
        """Population standard deviation over mean; 0 when the mean is 0."""
        data = np.asarray(list(values), dtype=float)
        if data.size == 0:
            return 0.0
        mean = float(np.mean(data))
        if abs(mean) < 1e-12:
            return 0.0
        return float(np.std(data)) / abs(mean)


class VelocityCalculator:
    """Utility class for velocity calculations."""

    @staticmethod
    def calculate_velocity(start: Point, start_time: float,
                           end: Point, end_time: float) -> Point:
        """Velocity vector in pixels per second; zero for non-positive time deltas."""
        dt = end_time - start_time
        if dt <= 0:
            return ZERO
        return (end - start) / dt

    @staticmethod
    def calculate_speeds(velocities: Sequence[Point]) -> List[float]:
        return [v.length() for v in velocities]


class PathUtils:
    """Utility class for path processing operations."""

    @staticmethod
    def get_path_bounds(points: Sequence[Point]) -> Tuple[Point, Point]:
        """Return the (min, max) corners of the axis-aligned bounding box."""
        if not points:
            return ZERO, ZERO
        xs = [p.x for p in points]
        ys = [p.y for p in points]
        return Point(min(xs), min(ys)), Point(max(xs), max(ys))

    @staticmethod
    def to_array(points: Sequence[Point]) -> np.ndarray:
        """Points as an (n, 2) float array."""
        if not points:
            return np.zeros((0, 2))
        return np.array([(p.x, p.y) for p in points], dtype=float)
