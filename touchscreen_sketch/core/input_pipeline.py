"""
Input pipeline that coordinates mode tracking, gesture recognition and
stroke processing.

Pointer events go in through handle_event() (or the pointer_* shortcuts).
The touch state machine decides the mode, the gesture recognizer reports
gestures, and while drawing the samples go to the stroke processor. When a
stroke ends, curve fitting is deferred by a short cancellable delay on the
scheduler; run it by calling poll() from the host loop or by handling the
next event.
"""

import logging
import time
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

from ..config.settings import PipelineConfig
from ..gestures.gesture_recognizer import GestureRecognizer, GestureType, RecognizedGesture
from ..gestures.touch_state import (
    GesturePhase,
    TouchMode,
    TouchStateMachine,
    TouchTransition,
)
from ..strokes.stroke_processor import ProcessedStroke, StrokeProcessor, StrokeSample
from ..strokes.stroke_to_geometry import GeometryFitResult, StrokeToGeometryConverter
from ..utils.logger import TouchLogger
from ..utils.transforms import TransformContext
from .pointer_events import PointerEvent, PointerEventType, PointerState
from .scheduler import CallbackScheduler, MonotonicClock, ScheduledCall

logger = logging.getLogger(__name__)


@dataclass
class PipelineHandlers:
    """Optional callbacks fired by the pipeline."""
    on_stroke_started: Optional[Callable[[str, StrokeSample], None]] = None
    on_stroke_progress: Optional[Callable[[str, Tuple[StrokeSample, ...],
                                          Optional[List[GeometryFitResult]]], None]] = None
    on_stroke_completed: Optional[Callable[[ProcessedStroke, List[GeometryFitResult]], None]] = None
    on_stroke_cancelled: Optional[Callable[[str], None]] = None
    on_mode_changed: Optional[Callable[[TouchMode, TouchMode], None]] = None
    on_gesture_recognized: Optional[Callable[[RecognizedGesture], None]] = None
    on_undo_requested: Optional[Callable[[RecognizedGesture], None]] = None
    on_error: Optional[Callable[[Exception], None]] = None


@dataclass
class PipelineMetrics:
    events_handled: int = 0
    strokes_processed: int = 0
    strokes_cancelled: int = 0
    average_processing_ms: float = 0.0
    last_processing_ms: float = 0.0


class InputPipeline:
    """Turns pointer events into mode changes, gestures and fitted strokes."""

    def __init__(self, config: Optional[PipelineConfig] = None,
                 handlers: Optional[PipelineHandlers] = None,
                 clock: Optional[Callable[[], float]] = None,
                 scheduler: Optional[CallbackScheduler] = None,
                 transform_context: Optional[TransformContext] = None,
                 touch_state: Optional[TouchStateMachine] = None,
                 recognizer: Optional[GestureRecognizer] = None,
                 stroke_processor: Optional[StrokeProcessor] = None,
                 converter: Optional[StrokeToGeometryConverter] = None,
                 touch_logger: Optional[TouchLogger] = None):
        self.config = config or PipelineConfig()
        self.handlers = handlers or PipelineHandlers()
        self.clock = clock or MonotonicClock()
        self.scheduler = scheduler or CallbackScheduler(self.clock)
        self.transform_context = transform_context or TransformContext()

        self.touch_state = touch_state or TouchStateMachine()
        self.recognizer = recognizer or GestureRecognizer(clock=self.clock)
        self.stroke_processor = stroke_processor or StrokeProcessor()
        self.converter = converter or StrokeToGeometryConverter()
        self.touch_logger = touch_logger

        self._metrics = PipelineMetrics()
        self._pending_fit: Optional[ScheduledCall] = None
        self._pending_stroke_id: Optional[str] = None
        self._preview: Optional[List[GeometryFitResult]] = None
        self._last_preview_time: Optional[float] = None

    @property
    def mode(self) -> TouchMode:
        return self.touch_state.mode

    @property
    def metrics(self) -> PipelineMetrics:
        return replace(self._metrics)

    @property
    def has_pending_fit(self) -> bool:
        return self._pending_fit is not None and self._pending_fit.pending

    def pointer_down(self, pointer: PointerState):
        self.handle_event(PointerEvent(PointerEventType.DOWN, pointer))

    def pointer_move(self, pointer: PointerState):
        self.handle_event(PointerEvent(PointerEventType.MOVE, pointer))

    def pointer_up(self, pointer: PointerState):
        self.handle_event(PointerEvent(PointerEventType.UP, pointer))

    def pointer_cancel(self, pointer: PointerState):
        self.handle_event(PointerEvent(PointerEventType.CANCEL, pointer))

    def handle_event(self, event: PointerEvent):
        """Process one pointer event synchronously."""
        self._metrics.events_handled += 1
        try:
            self.scheduler.run_due()

            pointer = event.pointer
            if pointer.world is None:
                pointer = replace(pointer, world=self.transform_context.from_screen(pointer.position))
                event = PointerEvent(event.type, pointer)

            transition = self.touch_state.handle_event(event)
            if transition is not None:
                self._handle_transition(transition, pointer)

            if self.config.ENABLE_GESTURE_RECOGNITION:
                gestures = self.recognizer.process(
                    event, self.touch_state.pointers, self.touch_state.mode)
                for gesture in gestures:
                    self._dispatch_gesture(gesture)
        except Exception as exc:
            self._handle_error(exc)

    def poll(self, now: Optional[float] = None):
        """Run due deferred work and time-based gesture checks."""
        now = self.clock() if now is None else now
        try:
            self.scheduler.run_due(now)
            if self.config.ENABLE_GESTURE_RECOGNITION and self.touch_state.pointer_count:
                gestures = self.recognizer.update(
                    self.touch_state.pointers, self.touch_state.mode, now)
                for gesture in gestures:
                    self._dispatch_gesture(gesture)
        except Exception as exc:
            self._handle_error(exc)

    def update_transform_context(self, context: TransformContext):
        """Use a new transform for samples captured from now on."""
        self.transform_context = context
        logger.debug("Transform context updated: %r", context)

    def reset(self):
        """Drop all input state: pending fits, the active stroke and all gestures."""
        self._cancel_pending_fit()
        self._cancel_stroke()
        transition = self.touch_state.reset(self.clock())
        if transition is not None:
            self._handle_transition(transition, None)
        self.recognizer.reset()

    def _handle_transition(self, transition: TouchTransition, pointer: Optional[PointerState]):
        ended = transition.ended
        if ended is not None and ended.mode == TouchMode.DRAWING:
            if ended.phase == GesturePhase.ENDED and transition.mode == TouchMode.IDLE:
                if pointer is not None and transition.event_type == PointerEventType.UP:
                    self._add_sample(pointer)
                self._finish_stroke()
            else:
                self._cancel_stroke()

        if transition.mode_changed:
            if self.touch_logger:
                self.touch_logger.log_mode_change(transition.previous_mode, transition.mode)
            if self.handlers.on_mode_changed:
                self.handlers.on_mode_changed(transition.previous_mode, transition.mode)

        # Only a fresh single touch draws; lifting fingers off a pinch does not
        started = transition.started
        if (started is not None and started.mode == TouchMode.DRAWING
                and transition.previous_mode == TouchMode.IDLE and pointer is not None):
            self._start_stroke(pointer)

        updated = transition.updated
        if updated is not None and updated.mode == TouchMode.DRAWING and pointer is not None:
            self._add_sample(pointer)

    def _start_stroke(self, pointer: PointerState):
        self._flush_pending_fit()
        self._preview = None
        self._last_preview_time = None
        sample = StrokeSample.from_pointer(pointer)
        stroke_id = self.stroke_processor.start(sample)
        if self.handlers.on_stroke_started:
            self.handlers.on_stroke_started(stroke_id, sample)

    def _add_sample(self, pointer: PointerState):
        processor = self.stroke_processor
        if not processor.is_active:
            return
        last = processor.active_points[-1]
        if pointer.position == last.position and pointer.timestamp == last.timestamp:
            return
        if not processor.add(StrokeSample.from_pointer(pointer)):
            return
        if self.config.ENABLE_REALTIME_PREVIEW:
            self._update_preview(processor.active_points)
        if self.handlers.on_stroke_progress:
            self.handlers.on_stroke_progress(processor.stroke_id, processor.active_points,
                                             self._preview)

    def _update_preview(self, points: Tuple[StrokeSample, ...]):
        """Refit the in-progress stroke at most once per PREVIEW_UPDATE_INTERVAL."""
        if len(points) < 3:
            return
        now = self.clock()
        last = self._last_preview_time
        if last is not None and (now - last) * 1000 < self.config.PREVIEW_UPDATE_INTERVAL:
            return
        self._last_preview_time = now
        try:
            self._preview = self.converter.convert_points([p.position for p in points])
        except Exception as exc:
            # A failed preview never interrupts drawing
            logger.warning("Stroke preview failed: %s", exc)

    def _finish_stroke(self):
        if not self.stroke_processor.is_active:
            return
        stroke = self.stroke_processor.end()
        delay = self.config.STROKE_PROCESSING_DELAY / 1000.0
        self._pending_stroke_id = stroke.stroke_id
        self._pending_fit = self.scheduler.schedule(
            delay, lambda: self._fit_stroke(stroke), name=f"fit {stroke.stroke_id}")

    def _fit_stroke(self, stroke: ProcessedStroke):
        self._pending_fit = None
        self._pending_stroke_id = None

        started = time.perf_counter()
        results = self.converter.convert_stroke(stroke)
        elapsed_ms = (time.perf_counter() - started) * 1000

        metrics = self._metrics
        metrics.strokes_processed += 1
        metrics.last_processing_ms = elapsed_ms
        count = metrics.strokes_processed
        metrics.average_processing_ms += (elapsed_ms - metrics.average_processing_ms) / count

        logger.debug("Fitted %s into %d primitive(s) in %.1fms",
                     stroke.stroke_id, len(results), elapsed_ms)
        if self.touch_logger:
            self.touch_logger.log_stroke_completed(stroke, results)
        if self.handlers.on_stroke_completed:
            self.handlers.on_stroke_completed(stroke, results)

    def _flush_pending_fit(self):
        if self._pending_fit is not None:
            self._pending_fit.fire()

    def _cancel_pending_fit(self):
        if self._pending_fit is None:
            return
        stroke_id = self._pending_stroke_id
        self._pending_fit.cancel()
        self._pending_fit = None
        self._pending_stroke_id = None
        self._notify_cancelled(stroke_id)

    def _cancel_stroke(self):
        stroke_id = self.stroke_processor.stroke_id
        if self.stroke_processor.cancel():
            self._notify_cancelled(stroke_id)

    def _notify_cancelled(self, stroke_id: str):
        self._metrics.strokes_cancelled += 1
        if self.touch_logger:
            self.touch_logger.log_stroke_cancelled(stroke_id)
        if self.handlers.on_stroke_cancelled:
            self.handlers.on_stroke_cancelled(stroke_id)

    def _dispatch_gesture(self, gesture: RecognizedGesture):
        if self.touch_logger:
            self.touch_logger.log_gesture(gesture)
        if self.handlers.on_gesture_recognized:
            self.handlers.on_gesture_recognized(gesture)
        if (gesture.type == GestureType.UNDO and gesture.phase == GesturePhase.ENDED
                and self.handlers.on_undo_requested):
            self.handlers.on_undo_requested(gesture)

    def _handle_error(self, exc: Exception):
        logger.exception("Error while handling input")
        self._cancel_stroke()
        if self.handlers.on_error is None:
            raise exc
        self.handlers.on_error(exc)
