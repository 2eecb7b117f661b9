"""Tests for fitting lines, arcs and circles to strokes."""

import math

import pytest

from conftest import arc_points, polyline
from touchscreen_sketch.config.settings import ConversionConfig
from touchscreen_sketch.strokes.segments import ArcSegment, LineSegment
from touchscreen_sketch.strokes.stroke_processor import StrokeProcessor, StrokeSample
from touchscreen_sketch.strokes.stroke_to_geometry import GeometryType, StrokeToGeometryConverter
from touchscreen_sketch.utils.gesture_utils import Point


def test_closed_circle_fits_circle():
    points = arc_points((100, 100), 50, 64)
    converter = StrokeToGeometryConverter()

    circle = converter.fit_circle(points)
    assert circle.segment.center.x == pytest.approx(100)
    assert circle.segment.center.y == pytest.approx(100)
    assert circle.segment.radius == pytest.approx(50)
    assert circle.segment.is_full_circle
    assert circle.error < 1e-6
    assert circle.confidence > 0.99

    best = converter.fit_run(points)
    assert best.geometry_type == GeometryType.CIRCLE


def test_circle_detection_can_be_disabled():
    converter = StrokeToGeometryConverter(ConversionConfig(ENABLE_CIRCLE_DETECTION=False))
    assert converter.fit_circle(arc_points((0, 0), 30, 48)) is None


def test_open_curve_is_not_a_circle():
    semicircle = arc_points((100, 100), 50, 32, sweep=math.pi)
    assert StrokeToGeometryConverter().fit_circle(semicircle) is None


def test_semicircle_fits_arc():
    semicircle = arc_points((100, 100), 50, 32, sweep=math.pi)
    best = StrokeToGeometryConverter().fit_run(semicircle)

    assert best.geometry_type == GeometryType.ARC
    arc = best.segment
    assert isinstance(arc, ArcSegment)
    assert arc.radius == pytest.approx(50)
    assert arc.sweep_angle == pytest.approx(math.pi)
    assert best.error < 1e-6


def test_arc_sweep_follows_the_middle_point():
    clockwise = arc_points((0, 0), 20, 16, sweep=-math.pi)
    arc = StrokeToGeometryConverter().fit_arc(clockwise).segment
    assert arc.sweep_angle == pytest.approx(-math.pi)
    assert arc.contains_angle(-math.pi / 2)
    assert not arc.contains_angle(math.pi / 2)


def test_collinear_points_have_no_arc():
    points = [Point(0, 0), Point(5, 0), Point(10, 0)]
    assert StrokeToGeometryConverter().fit_arc(points) is None


def test_two_points_fit_a_perfect_line():
    result = StrokeToGeometryConverter().fit_run([Point(0, 0), Point(30, 40)])
    assert result.geometry_type == GeometryType.LINE
    assert result.error == 0
    assert result.segment == LineSegment(Point(0, 0), Point(30, 40))
    assert result.segment.length == pytest.approx(50)


def test_convert_points_splits_at_corners():
    results = StrokeToGeometryConverter().convert_points(polyline((0, 0), (50, 0), (50, 50)))

    assert [r.geometry_type for r in results] == [GeometryType.LINE, GeometryType.LINE]
    first, second = results[0].segment, results[1].segment
    assert first.start == Point(0, 0)
    assert first.end == Point(50, 0)
    assert second.start == Point(50, 0)
    assert second.end == Point(50, 50)


def test_short_runs_are_skipped():
    assert StrokeToGeometryConverter().convert_points(polyline((0, 0), (10, 0))) == []


def test_convert_stroke_uses_resampled_points():
    processor = StrokeProcessor()
    processor.start(StrokeSample(Point(0, 0), 0.0))
    for i in range(1, 21):
        processor.add(StrokeSample(Point(0, i * 5), i * 0.1))
    stroke = processor.end()

    results = StrokeToGeometryConverter().convert_stroke(stroke)
    assert len(results) == 1
    line = results[0]
    assert line.geometry_type == GeometryType.LINE
    assert line.segment.start == Point(0, 0)
    assert line.segment.end == Point(0, 100)
    assert line.confidence == pytest.approx(1.0)


def test_line_segment_distance():
    segment = LineSegment(Point(0, 0), Point(10, 0))
    assert segment.distance_to_point(Point(5, 3)) == pytest.approx(3)
    assert segment.distance_to_point(Point(13, 4)) == pytest.approx(5)
    assert segment.direction == Point(1, 0)
