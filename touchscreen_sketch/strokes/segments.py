"""
Line and arc segments produced by geometry fitting.
"""

import math
from dataclasses import dataclass
from typing import List, Optional

from ..utils.gesture_utils import GeometryUtils, Point

TWO_PI = 2 * math.pi


@dataclass(frozen=True)
class LineSegment:
    start: Point
    end: Point

    @property
    def length(self) -> float:
        return self.start.distance_to(self.end)

    @property
    def direction(self) -> Point:
        return (self.end - self.start).normalized()

    def point_at(self, t: float) -> Point:
        return self.start.lerp(self.end, t)

    def closest_point_to(self, point: Point) -> Point:
        delta = self.end - self.start
        length_sq = delta.length_squared()
        if length_sq < 1e-20:
            return self.start
        t = max(0.0, min(1.0, (point - self.start).dot(delta) / length_sq))
        return self.point_at(t)

    def distance_to_point(self, point: Point) -> float:
        return point.distance_to(self.closest_point_to(point))


@dataclass(frozen=True)
class ArcSegment:
    """Circular arc from start_angle sweeping sweep_angle radians.

    A positive sweep runs counter-clockwise (in y-up terms). A full circle
    has a sweep of +/- 2 pi.
    """
    center: Point
    radius: float
    start_angle: float
    sweep_angle: float

    @classmethod
    def full_circle(cls, center: Point, radius: float) -> 'ArcSegment':
        return cls(center, radius, 0.0, TWO_PI)

    @classmethod
    def from_three_points(cls, start: Point, middle: Point, end: Point,
                          tolerance: float = 1e-10) -> Optional['ArcSegment']:
        """Arc from start through middle to end; None if the points are collinear."""
        circle = GeometryUtils.circle_from_three_points(start, middle, end, tolerance)
        if circle is None:
            return None
        center, radius = circle

        start_angle = (start - center).angle()
        middle_angle = (middle - center).angle()
        end_angle = (end - center).angle()

        ccw_sweep = (end_angle - start_angle) % TWO_PI
        ccw_middle = (middle_angle - start_angle) % TWO_PI
        if ccw_middle <= ccw_sweep:
            sweep = ccw_sweep
        else:
            sweep = ccw_sweep - TWO_PI
        return cls(center, radius, start_angle, sweep)

    @property
    def end_angle(self) -> float:
        return self.start_angle + self.sweep_angle

    @property
    def is_full_circle(self) -> bool:
        return abs(abs(self.sweep_angle) - TWO_PI) < 1e-9

    @property
    def length(self) -> float:
        return abs(self.sweep_angle) * self.radius

    def point_at_angle(self, angle: float) -> Point:
        return self.center + Point(math.cos(angle), math.sin(angle)) * self.radius

    def point_at(self, t: float) -> Point:
        return self.point_at_angle(self.start_angle + self.sweep_angle * t)

    @property
    def start_point(self) -> Point:
        return self.point_at(0.0)

    @property
    def end_point(self) -> Point:
        return self.point_at(1.0)

    def contains_angle(self, angle: float) -> bool:
        if self.is_full_circle:
            return True
        offset = (angle - self.start_angle) % TWO_PI
        if self.sweep_angle >= 0:
            return offset <= self.sweep_angle + 1e-12
        return offset == 0 or offset >= TWO_PI + self.sweep_angle - 1e-12

    def distance_to_point(self, point: Point) -> float:
        """Radial distance within the sweep, else distance to the nearer endpoint."""
        if self.contains_angle((point - self.center).angle()):
            return abs(point.distance_to(self.center) - self.radius)
        return min(point.distance_to(self.start_point), point.distance_to(self.end_point))

    def sample_points(self, count: int = 32) -> List[Point]:
        count = max(2, count)
        return [self.point_at(i / (count - 1)) for i in range(count)]
