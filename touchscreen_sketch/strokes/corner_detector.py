"""
Curvature-based corner detection.

A stroke is split at points of high curvature into runs that are then
labelled line-like or curve-like. Curvature at each interior point is the
inverse radius of the circle through the point and its neighbours one
window away on either side; the series is smoothed with a small Gaussian
kernel before local maxima are picked.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..config.settings import CornerConfig
from ..utils.gesture_utils import GeometryUtils, Point

logger = logging.getLogger(__name__)


class RunType(str, Enum):
    LINE = 'line'
    CURVE = 'curve'


@dataclass(frozen=True)
class SegmentRun:
    """Contiguous point range [start_index, end_index] between corners."""
    start_index: int
    end_index: int
    kind: RunType
    quality: float

    @property
    def point_count(self) -> int:
        return self.end_index - self.start_index + 1


@dataclass(frozen=True)
class CornerDetectionResult:
    corner_indices: Tuple[int, ...]
    curvatures: Tuple[float, ...]
    confidence: Tuple[float, ...]
    segments: Tuple[SegmentRun, ...]

    @property
    def corner_count(self) -> int:
        return len(self.corner_indices)


class AdaptiveThresholdPolicy:
    """Threshold from the curvature distribution.

    max(median + k * (Q75 - median), fraction * max, minimum). The factors
    were tuned by hand; swap in another policy if they do not suit the input
    device.
    """

    def __init__(self, spread_factor: float = 2.0, max_fraction: float = 0.3):
        self.spread_factor = spread_factor
        self.max_fraction = max_fraction

    def __call__(self, curvatures: np.ndarray, minimum: float) -> float:
        if len(curvatures) == 0:
            return minimum
        values = np.sort(np.asarray(curvatures, dtype=float))
        n = len(values)
        median = values[n // 2]
        q75 = values[int(n * 0.75)]
        maximum = values[-1]
        return float(max(median + self.spread_factor * (q75 - median),
                         self.max_fraction * maximum,
                         minimum))


class FixedThresholdPolicy:
    """Always use the configured curvature threshold."""

    def __call__(self, curvatures: np.ndarray, minimum: float) -> float:
        return minimum


def calculate_linearity(points: Sequence[Point], scale: float) -> float:
    """1 - scale * (max deviation from the chord) / chord length, floored at 0."""
    if len(points) < 3:
        return 1.0
    first, last = points[0], points[-1]
    chord = first.distance_to(last)
    if chord < 1e-6:
        # Closed loop: only linear if every point sits on the endpoint
        return 1.0 if all(p.distance_to(first) < 1e-6 for p in points) else 0.0
    max_deviation = max(
        GeometryUtils.calculate_perpendicular_distance(p, first, last) for p in points
    )
    return max(0.0, 1.0 - scale * max_deviation / chord)


class CornerDetector:
    """Finds corners in a point sequence and partitions it into runs."""

    def __init__(self, config: Optional[CornerConfig] = None, threshold_policy=None):
        self.config = config or CornerConfig()
        if threshold_policy is None:
            if self.config.ADAPTIVE_THRESHOLD:
                threshold_policy = AdaptiveThresholdPolicy()
            else:
                threshold_policy = FixedThresholdPolicy()
        self.threshold_policy = threshold_policy

    def detect_corners(self, points: Sequence[Point]) -> CornerDetectionResult:
        """Detect corners in an ordered point sequence.

        Args:
            points: Stroke positions, ideally resampled to uniform spacing

        Returns:
            CornerDetectionResult with sorted unique corner indices, the
            smoothed curvature of every point, one confidence per corner
            and the line/curve runs between corners.
        """
        n = len(points)
        if n < 3:
            segments = (SegmentRun(0, n - 1, RunType.LINE, 1.0),) if n else ()
            return CornerDetectionResult((), tuple(0.0 for _ in points), (), segments)

        raw = self._calculate_curvatures(points)
        smoothed = self._smooth_curvatures(raw)
        candidates = self._find_candidates(points, smoothed)
        refined = self._refine_corners(points, candidates)

        corners: List[int] = []
        confidences: List[float] = []
        for index in refined:
            confidence = self._corner_confidence(points, smoothed, index)
            if confidence >= self.config.CONFIDENCE_THRESHOLD:
                corners.append(index)
                confidences.append(confidence)
            else:
                logger.debug("Dropping corner %d with confidence %.2f", index, confidence)

        segments = self._build_segments(points, corners)
        return CornerDetectionResult(
            corner_indices=tuple(corners),
            curvatures=tuple(float(k) for k in smoothed),
            confidence=tuple(confidences),
            segments=tuple(segments),
        )

    def _calculate_curvatures(self, points: Sequence[Point]) -> np.ndarray:
        n = len(points)
        window = max(1, int(self.config.SMOOTHING_WINDOW))
        curvatures = np.zeros(n)
        for i in range(window, n - window):
            curvatures[i] = GeometryUtils.circumcircle_curvature(
                points[i - window], points[i], points[i + window]
            )
        return curvatures

    def _smooth_curvatures(self, curvatures: np.ndarray) -> np.ndarray:
        """Convolve with a normalized Gaussian kernel (sigma = size / 6)."""
        size = int(self.config.SMOOTHING_WINDOW)
        n = len(curvatures)
        if size < 2 or n < size:
            return curvatures.copy()

        half = size // 2
        sigma = size / 6.0
        offsets = np.arange(size) - half
        kernel = np.exp(-(offsets ** 2) / (2 * sigma ** 2))
        kernel /= kernel.sum()

        smoothed = curvatures.copy()
        for i in range(half, n - half):
            smoothed[i] = float(np.dot(kernel, curvatures[i - half:i - half + size]))
        return smoothed

    def _find_candidates(self, points: Sequence[Point], curvatures: np.ndarray) -> List[int]:
        threshold = self.threshold_policy(curvatures, self.config.CURVATURE_THRESHOLD)
        accepted: List[int] = []

        for i in range(1, len(points) - 1):
            k = curvatures[i]
            if k <= threshold or k <= curvatures[i - 1] or k <= curvatures[i + 1]:
                continue
            if self.config.FILTER_NEARBY_CORNERS and any(
                points[i].distance_to(points[c]) < self.config.MIN_SEGMENT_LENGTH
                for c in accepted
            ):
                continue
            accepted.append(i)

        return accepted

    def _refine_corners(self, points: Sequence[Point], candidates: List[int]) -> List[int]:
        """Move each corner to the sharpest point within the search radius."""
        n = len(points)
        radius = self.config.REFINE_RADIUS
        offset = self.config.REFINE_OFFSET
        refined = set()

        for corner in candidates:
            best_index = corner
            best_curvature = 0.0
            for i in range(max(0, corner - radius), min(n - 1, corner + radius) + 1):
                k = GeometryUtils.circumcircle_curvature(
                    points[max(0, i - offset)], points[i], points[min(n - 1, i + offset)]
                )
                if k > best_curvature:
                    best_curvature = k
                    best_index = i
            if 0 < best_index < n - 1:
                refined.add(best_index)

        return sorted(refined)

    def _corner_confidence(self, points: Sequence[Point], curvatures: np.ndarray,
                           index: int) -> float:
        n = len(points)
        curvature = float(curvatures[index])
        max_curvature = float(curvatures.max())
        if max_curvature <= 0:
            return 0.0

        magnitude = curvature / max_curvature

        radius = self.config.PROMINENCE_RADIUS
        local = curvatures[max(0, index - radius):min(n, index + radius + 1)]
        local_mean = float(np.mean(local))
        prominence = curvature / local_mean if local_mean > 0 else 1.0
        prominence = min(1.0, prominence / 2.0)

        window = max(1, int(self.config.SMOOTHING_WINDOW))
        before = points[max(0, index - window)]
        here = points[index]
        after = points[min(n - 1, index + window)]
        circle_estimate = GeometryUtils.circumcircle_curvature(before, here, after)
        mean_side = (before.distance_to(here) + here.distance_to(after)) / 2.0
        angle_estimate = (GeometryUtils.turning_angle(before, here, after) / mean_side
                          if mean_side > 1e-10 else 0.0)
        largest = max(circle_estimate, angle_estimate)
        agreement = min(circle_estimate, angle_estimate) / largest if largest > 1e-10 else 0.0

        return max(0.0, min(1.0, magnitude * prominence * agreement))

    def _build_segments(self, points: Sequence[Point], corners: List[int]) -> List[SegmentRun]:
        n = len(points)
        boundaries = [0] + [c for c in corners if 0 < c < n - 1] + [n - 1]
        segments = []

        for start, end in zip(boundaries, boundaries[1:]):
            if end - start < 2:
                segments.append(SegmentRun(start, end, RunType.LINE, 1.0))
                continue

            linearity = calculate_linearity(points[start:end + 1], self.config.LINEARITY_SCALE)
            if linearity >= self.config.LINE_LINEARITY:
                segments.append(SegmentRun(start, end, RunType.LINE, linearity))
            else:
                segments.append(SegmentRun(start, end, RunType.CURVE, 1.0 - linearity))

        return segments