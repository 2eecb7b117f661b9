"""
Stroke-to-geometry conversion.

Each run between two corners is fitted three ways - a line through its
endpoints, an arc through its first, middle and last points, and a
least-squares circle - and the best-scoring candidate is kept.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..config.settings import ConversionConfig
from ..utils.gesture_utils import GeometryUtils, PathUtils, Point
from .corner_detector import CornerDetector, calculate_linearity
from .segments import ArcSegment, LineSegment
from .stroke_processor import ProcessedStroke

logger = logging.getLogger(__name__)


class GeometryType(str, Enum):
    LINE = 'line'
    ARC = 'arc'
    CIRCLE = 'circle'
    UNKNOWN = 'unknown'


@dataclass(frozen=True)
class GeometryFitResult:
    geometry_type: GeometryType
    segment: Union[LineSegment, ArcSegment]
    confidence: float
    error: float
    points: Tuple[Point, ...]
    metadata: Dict[str, Any] = field(default_factory=dict)


def _threshold_factor(error: float, threshold: float) -> float:
    """1 within the threshold, falling linearly to 0 at twice the threshold."""
    if error <= threshold:
        return 1.0
    return max(0.0, 1.0 - (error - threshold) / threshold)


def _rms(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return math.sqrt(sum(v * v for v in values) / len(values))


class StrokeToGeometryConverter:
    """Fits lines, arcs and circles to processed strokes."""

    def __init__(self, config: Optional[ConversionConfig] = None,
                 corner_detector: Optional[CornerDetector] = None):
        self.config = config or ConversionConfig()
        self.corner_detector = corner_detector or CornerDetector()

    def convert_stroke(self, stroke: ProcessedStroke) -> List[GeometryFitResult]:
        """Fit every corner-delimited run of a processed stroke."""
        return self._convert_runs(
            stroke.resampled_points,
            [(run.start_index, run.end_index) for run in stroke.corners.segments],
        )

    def convert_points(self, points: Sequence[Point]) -> List[GeometryFitResult]:
        """Detect corners in raw positions, then fit each run."""
        corners = self.corner_detector.detect_corners(points)
        return self._convert_runs(
            points, [(run.start_index, run.end_index) for run in corners.segments]
        )

    def _convert_runs(self, points: Sequence[Point],
                      runs: List[Tuple[int, int]]) -> List[GeometryFitResult]:
        results = []
        for start, end in runs:
            run_points = list(points[start:end + 1])
            length = GeometryUtils.calculate_path_length(run_points)
            if length < self.config.MIN_SEGMENT_LENGTH:
                logger.debug("Skipping run %d-%d: length %.1f", start, end, length)
                continue

            best = self.fit_run(run_points)
            if best is None or best.confidence < self.config.CONFIDENCE_THRESHOLD:
                continue
            results.append(best)
        return results

    def fit_run(self, points: Sequence[Point]) -> Optional[GeometryFitResult]:
        """Fit one run with every method and return the best candidate."""
        points = list(points)
        if len(points) < 2:
            return None

        candidates = []
        for fit in (self.fit_line, self.fit_arc, self.fit_circle):
            result = fit(points)
            if result is not None:
                candidates.append(result)

        best = None
        best_score = -1.0
        for candidate in candidates:
            score = self._selection_score(candidate)
            if score > best_score:
                best = candidate
                best_score = score
        return best

    def _selection_score(self, result: GeometryFitResult) -> float:
        bonus = self.config.SIMPLICITY_BONUS.get(result.geometry_type.value, 0.0)
        penalty = min(self.config.MAX_ERROR_PENALTY, result.error / 10.0)
        return max(0.0, min(1.0, result.confidence + bonus - penalty))

    def fit_line(self, points: Sequence[Point]) -> Optional[GeometryFitResult]:
        if len(points) < 2:
            return None
        start, end = points[0], points[-1]

        distances = [GeometryUtils.calculate_perpendicular_distance(p, start, end)
                     for p in points]
        error = _rms(distances)
        linearity = calculate_linearity(points, self.config.LINEARITY_SCALE)
        confidence = _threshold_factor(error, self.config.LINE_THRESHOLD) * linearity

        return GeometryFitResult(
            geometry_type=GeometryType.LINE,
            segment=LineSegment(start, end),
            confidence=confidence,
            error=error,
            points=tuple(points),
            metadata={'method': 'endpoints', 'linearity': linearity},
        )

    def fit_arc(self, points: Sequence[Point]) -> Optional[GeometryFitResult]:
        if len(points) < 3:
            return None

        arc = ArcSegment.from_three_points(
            points[0], points[len(points) // 2], points[-1],
            self.config.DETERMINANT_TOLERANCE,
        )
        if arc is None:
            return None

        error = _rms([arc.distance_to_point(p) for p in points])
        consistency = self._curvature_consistency(points)
        confidence = _threshold_factor(error, self.config.ARC_THRESHOLD) * consistency

        return GeometryFitResult(
            geometry_type=GeometryType.ARC,
            segment=arc,
            confidence=confidence,
            error=error,
            points=tuple(points),
            metadata={'method': 'three_point', 'curvature_consistency': consistency},
        )

    def fit_circle(self, points: Sequence[Point]) -> Optional[GeometryFitResult]:
        config = self.config
        if not config.ENABLE_CIRCLE_DETECTION or len(points) < config.CIRCLE_MIN_POINTS:
            return None

        average_spacing = GeometryUtils.calculate_path_length(points) / (len(points) - 1)
        closure = points[0].distance_to(points[-1])
        closure_limit = config.CLOSURE_SPACING_FACTOR * average_spacing
        if average_spacing <= 0 or closure > closure_limit:
            return None

        circle = self._least_squares_circle(points)
        if circle is None:
            return None
        center, radius = circle

        residuals = [p.distance_to(center) - radius for p in points]
        error = _rms(residuals)
        relative_rms = _rms([r / radius for r in residuals]) if radius > 0 else 1.0
        closure_quality = 1.0 - min(1.0, closure / closure_limit)
        radius_consistency = max(0.0, 1.0 - 2.0 * relative_rms)
        confidence = (_threshold_factor(error, config.CIRCLE_THRESHOLD)
                      * closure_quality * radius_consistency)

        return GeometryFitResult(
            geometry_type=GeometryType.CIRCLE,
            segment=ArcSegment.full_circle(center, radius),
            confidence=confidence,
            error=error,
            points=tuple(points),
            metadata={
                'method': 'algebraic_least_squares',
                'closure_quality': closure_quality,
                'radius_consistency': radius_consistency,
            },
        )

    def _least_squares_circle(self, points: Sequence[Point]) -> Optional[Tuple[Point, float]]:
        """Algebraic circle fit from centered power-sum moments.

        Solves [Suu Suv; Suv Svv] [uc vc]^T = 0.5 [Suuu + Suvv; Svvv + Svuu]^T
        where u, v are coordinates relative to the mean.
        """
        data = PathUtils.to_array(points)
        mean = data.mean(axis=0)
        u = data[:, 0] - mean[0]
        v = data[:, 1] - mean[1]

        suu = np.sum(u * u)
        svv = np.sum(v * v)
        suv = np.sum(u * v)
        matrix = np.array([[suu, suv], [suv, svv]])
        scale = (suu + svv) ** 2
        if scale == 0 or abs(np.linalg.det(matrix)) < self.config.DETERMINANT_TOLERANCE * scale:
            return None

        rhs = 0.5 * np.array([
            np.sum(u ** 3) + np.sum(u * v * v),
            np.sum(v ** 3) + np.sum(v * u * u),
        ])
        uc, vc = np.linalg.solve(matrix, rhs)
        center = Point(mean[0] + uc, mean[1] + vc)

        radius = math.sqrt(float(np.mean((data[:, 0] - center.x) ** 2
                                         + (data[:, 1] - center.y) ** 2)))
        return center, radius

    @staticmethod
    def _curvature_consistency(points: Sequence[Point], offset: int = 2) -> float:
        """1 - coefficient of variation of pointwise curvature (1 if < 5 points)."""
        if len(points) < 5:
            return 1.0
        curvatures = [
            GeometryUtils.circumcircle_curvature(points[i - offset], points[i], points[i + offset])
            for i in range(offset, len(points) - offset)
        ]
        return max(0.0, 1.0 - GeometryUtils.coefficient_of_variation(curvatures))
