"""End-to-end tests for the input pipeline."""

import pytest

from conftest import make_pointer
from touchscreen_sketch.config.settings import PipelineConfig
from touchscreen_sketch.core.input_pipeline import InputPipeline, PipelineHandlers
from touchscreen_sketch.gestures.gesture_recognizer import GestureType
from touchscreen_sketch.gestures.touch_state import TouchMode
from touchscreen_sketch.strokes.stroke_processor import StrokeProcessor
from touchscreen_sketch.strokes.stroke_to_geometry import GeometryType, StrokeToGeometryConverter
from touchscreen_sketch.utils.gesture_utils import Point
from touchscreen_sketch.utils.logger import TouchLogger
from touchscreen_sketch.utils.transforms import TransformContext


class Recorder:
    """Collects every pipeline callback in call order."""

    def __init__(self):
        self.calls = []

    def handlers(self, with_errors=True):
        def record(name):
            return lambda *args: self.calls.append((name,) + args)
        return PipelineHandlers(
            on_stroke_started=record('started'),
            on_stroke_progress=record('progress'),
            on_stroke_completed=record('completed'),
            on_stroke_cancelled=record('cancelled'),
            on_mode_changed=record('mode'),
            on_gesture_recognized=record('gesture'),
            on_undo_requested=record('undo'),
            on_error=record('error') if with_errors else None,
        )

    def named(self, name):
        return [call[1:] for call in self.calls if call[0] == name]


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def pipeline(clock, recorder):
    return InputPipeline(handlers=recorder.handlers(), clock=clock)


def send(pipeline, clock, method, pointer_id, x, y, t):
    clock.set(t)
    getattr(pipeline, method)(make_pointer(pointer_id, x, y, t))


def draw_vertical_stroke(pipeline, clock, start_time=0.0):
    send(pipeline, clock, 'pointer_down', 1, 0, 0, start_time)
    t = start_time
    for i in range(1, 21):
        t = start_time + i * 0.1
        send(pipeline, clock, 'pointer_move', 1, 0, i * 5, t)
    send(pipeline, clock, 'pointer_up', 1, 0, 100, t + 0.05)
    return t + 0.05


def test_single_finger_stroke_becomes_a_line(pipeline, clock, recorder):
    end_time = draw_vertical_stroke(pipeline, clock)

    assert recorder.named('mode') == [(TouchMode.IDLE, TouchMode.DRAWING),
                                      (TouchMode.DRAWING, TouchMode.IDLE)]
    assert len(recorder.named('started')) == 1
    assert len(recorder.named('progress')) == 21
    # Fitting waits for the processing delay
    assert recorder.named('completed') == []
    assert pipeline.has_pending_fit

    clock.set(end_time + 0.2)
    pipeline.poll()

    completed = recorder.named('completed')
    assert len(completed) == 1
    stroke, results = completed[0]
    assert stroke.stroke_id == recorder.named('started')[0][0]
    assert len(results) == 1
    assert results[0].geometry_type == GeometryType.LINE
    assert results[0].segment.start == Point(0, 0)
    assert results[0].segment.end == Point(0, 100)
    assert not pipeline.has_pending_fit

    metrics = pipeline.metrics
    assert metrics.strokes_processed == 1
    assert metrics.events_handled == 22
    assert metrics.last_processing_ms >= 0


def test_second_finger_cancels_the_stroke(pipeline, clock, recorder):
    send(pipeline, clock, 'pointer_down', 1, 0, 0, 0.0)
    send(pipeline, clock, 'pointer_move', 1, 0, 10, 0.1)
    send(pipeline, clock, 'pointer_down', 2, 50, 50, 0.2)

    stroke_id = recorder.named('started')[0][0]
    assert recorder.named('cancelled') == [(stroke_id,)]
    assert pipeline.mode == TouchMode.PAN_ZOOM

    send(pipeline, clock, 'pointer_up', 2, 50, 50, 0.3)
    send(pipeline, clock, 'pointer_move', 1, 0, 20, 0.4)
    send(pipeline, clock, 'pointer_up', 1, 0, 20, 0.5)
    clock.set(1.0)
    pipeline.poll()

    assert len(recorder.named('started')) == 1
    assert recorder.named('completed') == []
    assert recorder.named('mode')[-2:] == [(TouchMode.PAN_ZOOM, TouchMode.DRAWING),
                                           (TouchMode.DRAWING, TouchMode.IDLE)]
    assert pipeline.metrics.strokes_cancelled == 1


def test_reset_cancels_pending_fit(pipeline, clock, recorder):
    draw_vertical_stroke(pipeline, clock)
    stroke_id = recorder.named('started')[0][0]

    pipeline.reset()
    assert recorder.named('cancelled') == [(stroke_id,)]
    assert not pipeline.has_pending_fit

    clock.advance(1.0)
    pipeline.poll()
    assert recorder.named('completed') == []


def test_new_stroke_flushes_pending_fit(pipeline, clock, recorder):
    end_time = draw_vertical_stroke(pipeline, clock)
    send(pipeline, clock, 'pointer_down', 1, 200, 200, end_time + 0.01)

    order = [call[0] for call in recorder.calls if call[0] in ('started', 'completed')]
    assert order == ['started', 'completed', 'started']


def test_three_finger_hold_requests_undo(pipeline, clock, recorder):
    for pointer_id, x in ((1, 0), (2, 50), (3, 100)):
        send(pipeline, clock, 'pointer_down', pointer_id, x, 0, 0.0)
    assert pipeline.mode == TouchMode.UNDO

    clock.set(0.9)
    pipeline.poll()

    undo = recorder.named('undo')
    assert len(undo) == 1
    assert undo[0][0].data.confirmation == 1.0
    gesture_types = [call[0].type for call in recorder.named('gesture')]
    assert gesture_types.count(GestureType.UNDO) == 2


def test_samples_carry_world_coordinates(pipeline, clock, recorder):
    pipeline.update_transform_context(TransformContext(device_pixel_ratio=2.0))
    send(pipeline, clock, 'pointer_down', 1, 100, 100, 0.0)

    stroke_id, sample = recorder.named('started')[0]
    assert sample.position == Point(100, 100)
    assert sample.world.world == Point(50, 50)


class FailingProcessor(StrokeProcessor):
    def add(self, sample):
        raise ValueError("bad sample")


def test_errors_go_to_the_error_handler(clock, recorder):
    pipeline = InputPipeline(handlers=recorder.handlers(), clock=clock,
                             stroke_processor=FailingProcessor())
    send(pipeline, clock, 'pointer_down', 1, 0, 0, 0.0)
    send(pipeline, clock, 'pointer_move', 1, 10, 0, 0.1)

    errors = recorder.named('error')
    assert len(errors) == 1
    assert isinstance(errors[0][0], ValueError)
    assert len(recorder.named('cancelled')) == 1
    assert not pipeline.stroke_processor.is_active


def test_errors_raise_without_a_handler(clock, recorder):
    pipeline = InputPipeline(handlers=recorder.handlers(with_errors=False), clock=clock,
                             stroke_processor=FailingProcessor())
    send(pipeline, clock, 'pointer_down', 1, 0, 0, 0.0)
    with pytest.raises(ValueError):
        send(pipeline, clock, 'pointer_move', 1, 10, 0, 0.1)


def test_touch_logger_writes_debug_file(tmp_path, clock):
    debug_file = tmp_path / 'touch.log'
    touch_logger = TouchLogger(str(debug_file), echo=False)
    pipeline = InputPipeline(clock=clock, touch_logger=touch_logger)

    end_time = draw_vertical_stroke(pipeline, clock)
    clock.set(end_time + 0.2)
    pipeline.poll()
    touch_logger.close()

    text = debug_file.read_text(encoding='utf-8')
    assert 'MODE: idle -> drawing' in text
    assert 'STROKE stroke_1' in text


class CountingConverter(StrokeToGeometryConverter):
    def __init__(self, fail=False):
        super().__init__()
        self.fail = fail
        self.preview_calls = []

    def convert_points(self, points):
        self.preview_calls.append(len(points))
        if self.fail:
            raise RuntimeError("preview fit failed")
        return super().convert_points(points)


def draw_horizontal_moves(pipeline, clock, count=10):
    send(pipeline, clock, 'pointer_down', 1, 0, 0, 0.0)
    for i in range(1, count + 1):
        send(pipeline, clock, 'pointer_move', 1, i * 5, 0, i * 0.02)


def test_progress_carries_throttled_preview(clock, recorder):
    converter = CountingConverter()
    pipeline = InputPipeline(handlers=recorder.handlers(), clock=clock, converter=converter)
    draw_horizontal_moves(pipeline, clock)

    # Refits at 0.04s, 0.10s and 0.16s; other moves reuse the last preview
    assert converter.preview_calls == [3, 6, 9]

    progress = recorder.named('progress')
    assert progress[0][2] is None
    assert progress[1][2] == []
    last_preview = progress[-1][2]
    assert [r.geometry_type for r in last_preview] == [GeometryType.LINE]
    assert last_preview[0].segment.start == Point(0, 0)
    assert last_preview[0].segment.end == Point(40, 0)


def test_preview_can_be_disabled(clock, recorder):
    converter = CountingConverter()
    pipeline = InputPipeline(config=PipelineConfig(ENABLE_REALTIME_PREVIEW=False),
                             handlers=recorder.handlers(), clock=clock, converter=converter)
    draw_horizontal_moves(pipeline, clock)

    assert converter.preview_calls == []
    assert all(call[2] is None for call in recorder.named('progress'))


def test_preview_failure_does_not_stop_drawing(clock, recorder):
    converter = CountingConverter(fail=True)
    pipeline = InputPipeline(handlers=recorder.handlers(), clock=clock, converter=converter)
    draw_horizontal_moves(pipeline, clock)

    assert len(converter.preview_calls) == 3
    assert recorder.named('error') == []
    assert recorder.named('cancelled') == []
    assert len(recorder.named('progress')) == 10
    assert pipeline.stroke_processor.is_active
