"""
Stroke capture and finalisation.

The processor owns a single in-progress stroke. Samples are appended while
the pointer moves; `end()` turns the buffer into a ProcessedStroke by
deduplicating, smoothing and resampling it, detecting corners and scoring
its quality.
"""

import logging
import math
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..config.settings import StrokeConfig
from ..core.pointer_events import PointerState
from ..utils.gesture_utils import (
    ZERO,
    GeometryUtils,
    PathUtils,
    Point,
    VelocityCalculator,
)
from ..utils.transforms import MultiPoint
from .corner_detector import CornerDetectionResult, CornerDetector

logger = logging.getLogger(__name__)


class StrokeStateError(RuntimeError):
    """Raised when a stroke operation is called with no stroke in progress."""


@dataclass(frozen=True)
class StrokeSample:
    """One captured pointer sample. Velocity is in pixels per second."""
    position: Point
    timestamp: float
    pressure: float = 0.5
    tilt_x: float = 0.0
    tilt_y: float = 0.0
    velocity: Point = ZERO
    world: Optional[MultiPoint] = None

    @classmethod
    def from_pointer(cls, pointer: PointerState) -> 'StrokeSample':
        return cls(
            position=pointer.position,
            timestamp=pointer.timestamp,
            pressure=pointer.pressure,
            tilt_x=pointer.tilt_x,
            tilt_y=pointer.tilt_y,
            world=pointer.world,
        )


@dataclass(frozen=True)
class BoundingBox:
    min: Point
    max: Point

    @property
    def width(self) -> float:
        return self.max.x - self.min.x

    @property
    def height(self) -> float:
        return self.max.y - self.min.y


@dataclass(frozen=True)
class ProcessedStroke:
    """A finished stroke with its derived data.

    Attributes:
        stroke_id: Identifier returned by StrokeProcessor.start()
        points: Samples as captured (after real-time smoothing)
        smoothed_points: Samples after deduplication and smoothing passes
        resampled_points: Uniformly spaced positions used for analysis
        corners: Corner detection result over resampled_points
        quality_score: 0-1 estimate of how clean the input was
    """
    stroke_id: str
    points: Tuple[StrokeSample, ...]
    smoothed_points: Tuple[StrokeSample, ...]
    resampled_points: Tuple[Point, ...]
    corners: CornerDetectionResult
    start_time: float
    end_time: float
    bounding_box: BoundingBox
    total_length: float
    average_velocity: Point
    max_velocity: float
    average_pressure: float
    quality_score: float

    @property
    def corner_indices(self) -> Tuple[int, ...]:
        return self.corners.corner_indices

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


class StrokeProcessor:
    """Captures one stroke at a time and finalises it."""

    def __init__(self, config: Optional[StrokeConfig] = None,
                 corner_detector: Optional[CornerDetector] = None):
        self.config = config or StrokeConfig()
        self.corner_detector = corner_detector or CornerDetector()

        self._stroke_counter = 0
        self._stroke_id: Optional[str] = None
        self._points: List[StrokeSample] = []
        self._last_smoothed_index = -1

    @property
    def is_active(self) -> bool:
        return self._stroke_id is not None

    @property
    def stroke_id(self) -> Optional[str]:
        return self._stroke_id

    @property
    def active_points(self) -> Tuple[StrokeSample, ...]:
        """Snapshot of the points captured so far."""
        return tuple(self._points)

    def start(self, sample: StrokeSample) -> str:
        """Begin a new stroke with its first sample and return its id."""
        if self._stroke_id is not None:
            logger.warning("Discarding unfinished stroke %s", self._stroke_id)

        self._stroke_counter += 1
        self._stroke_id = f"stroke_{self._stroke_counter}"
        self._points = [replace(sample, velocity=ZERO)]
        self._last_smoothed_index = -1
        logger.debug("Started %s at %s", self._stroke_id, sample.position)
        return self._stroke_id

    def add(self, sample: StrokeSample) -> bool:
        """Append a sample; returns False if the point cap dropped it."""
        if self._stroke_id is None:
            raise StrokeStateError("add() called with no active stroke")

        if len(self._points) >= self.config.MAX_POINTS_PER_STROKE:
            logger.warning("Stroke %s reached %d points, dropping sample",
                           self._stroke_id, self.config.MAX_POINTS_PER_STROKE)
            return False

        window = self._points[-self.config.VELOCITY_WINDOW_SIZE:]
        reference = window[0]
        velocity = VelocityCalculator.calculate_velocity(
            reference.position, reference.timestamp, sample.position, sample.timestamp
        )
        self._points.append(replace(sample, velocity=velocity))

        if self.config.ENABLE_REALTIME_SMOOTHING and len(self._points) >= 3:
            self._smooth_trailing_points()
        return True

    def end(self) -> ProcessedStroke:
        """Finish the active stroke and return the processed result."""
        if self._stroke_id is None:
            raise StrokeStateError("end() called with no active stroke")

        stroke_id = self._stroke_id
        samples = self._points
        self._reset()

        stroke = self._process(stroke_id, samples)
        logger.debug("Finished %s: %d points, %d corners, quality %.2f",
                     stroke_id, len(samples), stroke.corners.corner_count,
                     stroke.quality_score)
        return stroke

    def cancel(self) -> bool:
        """Discard the active stroke; returns True if there was one."""
        if self._stroke_id is None:
            return False
        logger.debug("Cancelled %s", self._stroke_id)
        self._reset()
        return True

    def _reset(self):
        self._stroke_id = None
        self._points = []
        self._last_smoothed_index = -1

    def _smooth_trailing_points(self):
        """Smooth points that are at least REALTIME_SMOOTHING_LAG behind the newest."""
        radius = self.config.SMOOTHING_RADIUS
        last_allowed = len(self._points) - 1 - self.config.REALTIME_SMOOTHING_LAG
        first = max(self._last_smoothed_index + 1, radius)
        for i in range(first, last_allowed + 1):
            self._points[i] = self._smooth_point(self._points, i)
            self._last_smoothed_index = i

    def _smooth_point(self, points: Sequence[StrokeSample], index: int) -> StrokeSample:
        """Blend a point toward the triangular-weighted mean of its neighbours."""
        radius = self.config.SMOOTHING_RADIUS
        factor = self.config.SMOOTHING_FACTOR
        sum_x = sum_y = sum_pressure = total_weight = 0.0

        for i in range(max(0, index - radius), min(len(points), index + radius + 1)):
            weight = 1.0 - abs(i - index) / (radius + 1)
            sum_x += points[i].position.x * weight
            sum_y += points[i].position.y * weight
            sum_pressure += points[i].pressure * weight
            total_weight += weight

        original = points[index]
        average = Point(sum_x / total_weight, sum_y / total_weight)
        pressure = original.pressure + (sum_pressure / total_weight - original.pressure) * factor
        return replace(original, position=original.position.lerp(average, factor),
                       pressure=pressure)

    def _process(self, stroke_id: str, samples: List[StrokeSample]) -> ProcessedStroke:
        deduplicated = self._remove_duplicates(samples)
        smoothed = self._apply_smoothing(deduplicated)
        resampled = self._resample([s.position for s in smoothed])
        corners = self.corner_detector.detect_corners(resampled)

        positions = [s.position for s in samples]
        low, high = PathUtils.get_path_bounds(positions)
        total_length = GeometryUtils.calculate_path_length(positions)
        velocities = [s.velocity for s in samples]
        speeds = VelocityCalculator.calculate_speeds(velocities)

        return ProcessedStroke(
            stroke_id=stroke_id,
            points=tuple(samples),
            smoothed_points=tuple(smoothed),
            resampled_points=tuple(resampled),
            corners=corners,
            start_time=samples[0].timestamp,
            end_time=samples[-1].timestamp,
            bounding_box=BoundingBox(low, high),
            total_length=total_length,
            average_velocity=GeometryUtils.calculate_centroid(velocities),
            max_velocity=max(speeds),
            average_pressure=float(np.mean([s.pressure for s in samples])),
            quality_score=self._quality_score(samples, total_length),
        )

    def _remove_duplicates(self, samples: List[StrokeSample]) -> List[StrokeSample]:
        min_distance = self.config.TARGET_SPACING * 0.5
        kept = [samples[0]]
        for sample in samples[1:]:
            if sample.position.distance_to(kept[-1].position) >= min_distance:
                kept.append(sample)

        # The final sample always survives so the stroke keeps its endpoint
        if kept[-1] is not samples[-1]:
            if len(kept) > 1:
                kept[-1] = samples[-1]
            else:
                kept.append(samples[-1])
        return kept

    def _apply_smoothing(self, samples: List[StrokeSample]) -> List[StrokeSample]:
        passes = math.ceil(self.config.SMOOTHING_FACTOR * 3)
        result = list(samples)
        if len(result) < 5:
            return result

        for _ in range(passes):
            for i in range(2, len(result) - 2):
                result[i] = self._smooth_point(result, i)
        return result

    def _resample(self, positions: List[Point]) -> List[Point]:
        """Resample to uniform arc-length spacing, keeping both endpoints."""
        if len(positions) < 2:
            return list(positions)

        spacing = self.config.TARGET_SPACING
        result = [positions[0]]
        accumulated = 0.0

        for previous, current in zip(positions, positions[1:]):
            segment = previous.distance_to(current)
            if segment == 0:
                continue
            accumulated += segment
            while accumulated >= spacing:
                excess = accumulated - spacing
                result.append(previous.lerp(current, 1.0 - excess / segment))
                accumulated = excess

        if result[-1].distance_to(positions[-1]) > 1e-9:
            result.append(positions[-1])
        return result

    def _quality_score(self, samples: List[StrokeSample], total_length: float) -> float:
        score = 1.0

        if total_length < self.config.SHORT_STROKE_LENGTH:
            score *= 0.5
        if len(samples) < self.config.SPARSE_STROKE_POINTS:
            score *= 0.7

        # Jitter: total turning angle per unit length
        positions = [s.position for s in samples]
        total_angle = 0.0
        for p1, p2, p3 in zip(positions, positions[1:], positions[2:]):
            total_angle += GeometryUtils.turning_angle(p1, p2, p3)
        jitter = total_angle / total_length if total_length > 0 else 0.0
        score *= max(0.1, 1.0 - jitter)

        speeds = VelocityCalculator.calculate_speeds([s.velocity for s in samples[1:]])
        if speeds:
            consistency = max(0.0, 1.0 - GeometryUtils.coefficient_of_variation(speeds))
            score *= 0.5 + 0.5 * consistency

        return max(0.0, min(1.0, score))
