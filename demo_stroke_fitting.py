#!/usr/bin/env python3
"""Stroke Fitting Demo with Visual Feedback.

Draw with the mouse; when the button is released the stroke is split at its
corners and each run is replaced by the line, arc or circle that fits it
best.
"""

import math
from typing import List, Optional, Tuple

import pygame

from touchscreen_sketch.core.input_pipeline import InputPipeline, PipelineHandlers
from touchscreen_sketch.core.pointer_events import PointerState
from touchscreen_sketch.strokes.segments import ArcSegment, LineSegment
from touchscreen_sketch.strokes.stroke_to_geometry import GeometryFitResult
from touchscreen_sketch.utils.gesture_utils import Point

MOUSE_POINTER_ID = 1


class StrokeFittingDemo:
    """Interactive demo for stroke-to-geometry fitting."""

    def __init__(self) -> None:
        pygame.init()
        self.screen = pygame.display.set_mode((1600, 1000))
        pygame.display.set_caption("Stroke Fitting Demo")

        self.pipeline = InputPipeline(handlers=PipelineHandlers(
            on_stroke_progress=self.on_stroke_progress,
            on_stroke_completed=self.on_stroke_completed,
        ))
        self.current_path: List[Tuple[float, float]] = []
        self.raw_paths: List[List[Tuple[float, float]]] = []
        self.shapes: List[GeometryFitResult] = []
        self.preview: List[GeometryFitResult] = []
        self.last_summary: Optional[str] = None
        self.is_drawing = False

        # Colors
        self.BLACK = (0, 0, 0)
        self.WHITE = (255, 255, 255)
        self.RED = (255, 0, 0)
        self.GREEN = (0, 160, 0)
        self.BLUE = (0, 0, 255)
        self.GRAY = (170, 170, 170)

        # Fonts
        self.font = pygame.font.Font(None, 40)
        self.small_font = pygame.font.Font(None, 30)

    def run(self) -> None:
        """Run the demo loop."""
        clock = pygame.time.Clock()
        while True:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    return
                elif event.type == pygame.MOUSEBUTTONDOWN:
                    if event.button == 1:  # Left click
                        self.is_drawing = True
                        self.pipeline.pointer_down(self.make_pointer(event.pos))
                elif event.type == pygame.MOUSEMOTION:
                    if self.is_drawing:
                        self.pipeline.pointer_move(self.make_pointer(event.pos))
                elif event.type == pygame.MOUSEBUTTONUP:
                    if event.button == 1:
                        self.is_drawing = False
                        self.pipeline.pointer_up(self.make_pointer(event.pos))
                elif event.type == pygame.KEYDOWN:
                    if event.key == pygame.K_c:
                        self.clear_screen()

            self.pipeline.poll()
            self.draw()
            clock.tick(60)

    def make_pointer(self, pos: Tuple[int, int]) -> PointerState:
        x, y = pos
        return PointerState(
            pointer_id=MOUSE_POINTER_ID,
            position=Point(x, y),
            timestamp=self.pipeline.clock(),
            is_primary=True,
        )

    def on_stroke_progress(self, stroke_id, points, preview) -> None:
        self.current_path = [p.position.to_tuple() for p in points]
        self.preview = preview or []

    def on_stroke_completed(self, stroke, results) -> None:
        self.raw_paths.append([p.position.to_tuple() for p in stroke.points])
        self.current_path = []
        self.preview = []
        self.shapes.extend(results)
        kinds = ", ".join(r.geometry_type.value for r in results) or "nothing"
        self.last_summary = (f"{stroke.stroke_id}: {kinds} "
                             f"(quality {stroke.quality_score:.2f})")

    def clear_screen(self) -> None:
        """Clear the drawing and results."""
        self.pipeline.reset()
        self.current_path = []
        self.raw_paths = []
        self.shapes = []
        self.preview = []
        self.last_summary = None

    def draw_shape(self, result: GeometryFitResult, width: int = 4) -> None:
        segment = result.segment
        if isinstance(segment, LineSegment):
            pygame.draw.line(self.screen, self.BLUE, segment.start.to_tuple(),
                             segment.end.to_tuple(), width)
        elif isinstance(segment, ArcSegment):
            count = max(8, int(abs(segment.sweep_angle) / (2 * math.pi) * 96))
            pts = [p.to_tuple() for p in segment.sample_points(count)]
            pygame.draw.lines(self.screen, self.GREEN, False, pts, width)

    def draw(self) -> None:
        """Render the UI, raw strokes and fitted geometry."""
        self.screen.fill(self.WHITE)

        instructions = [
            "Draw lines, arcs and circles with the left mouse button.",
            "C: Clear",
        ]
        y = 10
        for line in instructions:
            txt = self.small_font.render(line, True, self.BLACK)
            self.screen.blit(txt, (10, y))
            y += 30

        for path in self.raw_paths:
            if len(path) > 1:
                pygame.draw.lines(self.screen, self.GRAY, False, path, 2)
        if len(self.current_path) > 1:
            pygame.draw.lines(self.screen, self.RED, False, self.current_path, 3)

        for result in self.shapes:
            self.draw_shape(result)
        for result in self.preview:
            self.draw_shape(result, width=1)

        if self.last_summary:
            self.screen.blit(self.font.render(self.last_summary, True, self.GREEN), (10, 940))
        pygame.display.flip()


def main() -> None:
    """Entry point for the demo."""
    demo = StrokeFittingDemo()
    try:
        demo.run()
    except KeyboardInterrupt:
        pass
    finally:
        pygame.quit()


if __name__ == "__main__":
    main()
