"""
Per-frame driver tying the pipeline, the clock and the camera together.

A :class:`ForgeSession` owns every piece of mutable animation, camera and
loading state. The interactive loop calls :meth:`ForgeSession.update` once
per displayed frame and renders the returned geometry; nothing else is
shared with the background pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import forge_math
from animation import (
    AnimationClock,
    AnimationState,
    FrameGeometry,
    InteractiveStepPolicy,
    RecordingStepPolicy,
    TraceBuffer,
    TraceMode,
)
from cinematic import CameraState, CinematicDirector
from forge_colors import advance_hue, normalize_color_string, rainbow_color
from forge_errors import PipelineBusyError
from forge_math import Epicycle
from localisation import label, tr
from pipeline import AsyncComputationPipeline, ComputationState, PointSource
from settings import MAX_STROKE_WIDTH, MIN_STROKE_WIDTH, ForgeSettings
from video_export import FfmpegFrameSink, FrameSink

Point = Tuple[float, float]
SinkFactory = Callable[[ForgeSettings], FrameSink]
_LOGGER = logging.getLogger(__name__)

COMPLETION_TIME = 0.999
WHEEL_ZOOM_IN = 1.1
WHEEL_ZOOM_OUT = 0.9


def default_sink_factory(settings: ForgeSettings) -> FrameSink:
    return FfmpegFrameSink(
        settings.record_width,
        settings.record_height,
        settings.record_fps,
        settings.output_path,
    )


@dataclass
class VisualFlags:
    show_circles: bool = True
    show_arms: bool = True
    show_trail: bool = True
    show_reference: bool = False

    def reference_only(self) -> None:
        self.show_reference = True
        self.show_circles = False
        self.show_arms = False
        self.show_trail = False

    def drawing(self) -> None:
        self.show_reference = False
        self.show_circles = True
        self.show_arms = True
        self.show_trail = True


class ForgeSession:
    def __init__(
        self,
        settings: Optional[ForgeSettings] = None,
        *,
        pipeline: Optional[AsyncComputationPipeline] = None,
        sink_factory: SinkFactory = default_sink_factory,
    ) -> None:
        self.settings = settings or ForgeSettings()
        s = self.settings
        if s.math_backend:
            try:
                forge_math.set_backend(s.math_backend)
            except ValueError as exc:
                _LOGGER.warning("%s; keeping %s", exc, forge_math.get_backend_name())

        trace = TraceBuffer(max_length=s.snake_length, min_distance=s.min_trace_distance)
        self.clock = AnimationClock(
            AnimationState(speed=s.speed, trace=trace),
            interactive=InteractiveStepPolicy(s.interactive_sub_steps, s.interactive_rate),
            recording=RecordingStepPolicy(s.record_fps),
            cull_threshold=s.cull_threshold,
        )
        self.camera = CameraState()
        self.director = CinematicDirector(s.cinematic_max_zoom)
        self.pipeline = pipeline or AsyncComputationPipeline(s.sample_count, s.target_size)
        self.flags = VisualFlags()
        self.path: List[Point] = []
        self.recording = False
        self.frame_due = False
        self.hue = 0.0
        self.ink_color = s.ink_color
        self.last_geometry = FrameGeometry()
        self._sink_factory = sink_factory
        self._sink: Optional[FrameSink] = None
        self._handle = None
        self._status_key = "status_ready"
        self._status_values: Dict[str, Any] = {}

    # ----- Read-only state -----

    @property
    def status(self) -> str:
        return tr(self.settings.language, self._status_key, **self._status_values)

    @property
    def status_key(self) -> str:
        return self._status_key

    @property
    def phase_label(self) -> str:
        """Localised name of the cinematic phase (``Idle`` outside a shot)."""
        return label("phase_labels", self.director.phase.value, self.settings.language)

    def _set_status(self, key: str, **values: Any) -> None:
        self._status_key = key
        self._status_values = values

    @property
    def epicycles(self) -> List[Epicycle]:
        return self.clock.epicycles

    @property
    def state(self) -> AnimationState:
        return self.clock.state

    @property
    def loading(self) -> bool:
        return self._handle is not None

    # ----- Loading -----

    def load(self, source: PointSource) -> bool:
        """Start decomposing ``source``; refused while a load is pending."""
        try:
            self._handle = self.pipeline.submit(source)
        except PipelineBusyError as exc:
            _LOGGER.warning("Load refused: %s", exc)
            self._set_status("status_busy")
            return False
        self._set_status(self.pipeline.status)
        return True

    def _poll_pipeline(self) -> None:
        if self._handle is None:
            return
        outcome = self.pipeline.poll(self._handle)
        if outcome.state is ComputationState.PENDING:
            self._set_status(self.pipeline.status)
            return
        self._handle = None
        if outcome.state is ComputationState.READY and outcome.result is not None:
            self._apply_result(list(outcome.result.path), list(outcome.result.epicycles))
        elif self.pipeline.status == "status_failed_error":
            self._set_status("status_failed_error", reason=outcome.reason)
        else:
            self._set_status("status_failed_empty")

    def _apply_result(self, path: List[Point], epicycles: List[Epicycle]) -> None:
        if self.recording:
            self.stop_recording()
        self.director.disengage()
        self.path = path
        self.clock.load(epicycles)
        self.clock.set_paused(True)
        self.camera.reset()
        self.flags.reference_only()
        self._set_status("status_loaded", count=len(epicycles))

    # ----- Frame update -----

    def update(self, dt: float) -> FrameGeometry:
        """Advance one displayed frame and return what to draw."""
        self.frame_due = False
        self._poll_pipeline()

        if self.settings.rainbow:
            self.hue = advance_hue(self.hue)
            self.ink_color = rainbow_color(self.hue)

        if not self.epicycles or self.loading:
            self.last_geometry = FrameGeometry(time=self.state.time)
            return self.last_geometry

        if self.director.engaged:
            self.director.apply(self.camera, self.state.time)

        geometry = self.clock.advance(
            dt,
            self.recording,
            zoom=self.camera.zoom,
            on_wrap=self._on_wrap,
        )
        if self.camera.auto_follow:
            self.camera.follow(geometry.tip)

        self.frame_due = self.recording
        self.last_geometry = geometry
        return geometry

    def _on_wrap(self, clock: AnimationClock) -> None:
        if self.director.handle_wrap(self.recording):
            self._finish_cinematic()

    def _finish_cinematic(self) -> None:
        self._close_sink()
        self.recording = False
        self.clock.set_paused(True)
        self.clock.set_time(COMPLETION_TIME)
        self.camera.reset()
        self.camera.auto_follow = False
        self._set_status("status_cinematic_saved")

    def submit_frame(self, rgb: bytes) -> bool:
        """Hand a rendered frame to the sink; a failed sink drops it."""
        self.frame_due = False
        if not self.recording or self._sink is None:
            return False
        written = self._sink.write_frame(rgb)
        if not written and self._sink.closed and self._status_key != "status_recording_failed":
            self._set_status("status_recording_failed")
        return written

    # ----- Recording -----

    def _open_sink(self) -> None:
        self._close_sink()
        self._sink = self._sink_factory(self.settings)
        if self._sink.closed:
            self._set_status("status_recording_failed")
        else:
            self._set_status("status_recording")

    def _close_sink(self) -> None:
        sink, self._sink = self._sink, None
        if sink is not None:
            sink.close()

    def start_cinematic_shot(self) -> bool:
        if not self.epicycles or self.loading:
            self._set_status("status_no_epicycles")
            return False
        self.director.engage()
        self._open_sink()
        self.recording = True
        self.clock.reset()
        self.clock.set_paused(False)
        self.clock.set_trace_mode(TraceMode.INFINITE)
        self.camera.auto_follow = True
        self.flags.drawing()
        _LOGGER.info("Cinematic shot started")
        return True

    def start_manual_recording(self) -> bool:
        if self.recording:
            return True
        if not self.epicycles:
            self._set_status("status_no_epicycles")
            return False
        self._open_sink()
        self.recording = True
        self.clock.reset()
        self.flags.show_trail = True
        _LOGGER.info("Manual recording started")
        return True

    def stop_recording(self) -> None:
        if not self.recording:
            return
        self.director.disengage()
        self._close_sink()
        self.recording = False
        self._set_status("status_recording_stopped")
        _LOGGER.info("Recording stopped")

    def toggle_manual_recording(self) -> bool:
        if self.recording:
            self.stop_recording()
        else:
            self.start_manual_recording()
        return self.recording

    # ----- Playback controls -----

    def toggle_pause(self) -> bool:
        return self.clock.toggle_pause()

    def set_paused(self, paused: bool) -> None:
        self.clock.set_paused(paused)

    def set_speed(self, speed: float) -> float:
        return self.clock.set_speed(speed)

    def set_active_count(self, count: int) -> int:
        return self.clock.set_active_count(count)

    def set_trace_mode(self, mode: TraceMode, length: Optional[int] = None) -> None:
        if mode is TraceMode.SNAKE and length is None:
            length = self.settings.snake_length
        self.clock.set_trace_mode(mode, length)

    def set_snake_length(self, length: int) -> None:
        self.settings.snake_length = max(1, int(length))
        if self.state.trace.mode is TraceMode.SNAKE:
            self.clock.set_trace_mode(TraceMode.SNAKE, self.settings.snake_length)

    def set_time(self, t: float) -> None:
        self.clock.set_time(t)

    def set_rainbow(self, enabled: bool) -> None:
        self.settings.rainbow = bool(enabled)
        if not self.settings.rainbow:
            self.ink_color = self.settings.ink_color

    # ----- Appearance -----

    def set_ink_color(self, color: str) -> bool:
        """Set the trail colour; strings that are not colours are ignored."""
        normalized = normalize_color_string(color)
        if normalized is None:
            _LOGGER.warning("Ignoring invalid ink colour %r", color)
            return False
        self.settings.ink_color = normalized
        if not self.settings.rainbow:
            self.ink_color = normalized
        return True

    def set_bg_color(self, color: str) -> bool:
        normalized = normalize_color_string(color)
        if normalized is None:
            _LOGGER.warning("Ignoring invalid background colour %r", color)
            return False
        self.settings.bg_color = normalized
        return True

    def set_stroke_width(self, width: float) -> float:
        self.settings.stroke_width = max(MIN_STROKE_WIDTH, min(MAX_STROKE_WIDTH, float(width)))
        return self.settings.stroke_width

    def reset(self) -> None:
        """Back to ``t = 0`` with only the ghost outline visible."""
        self.clock.reset()
        self.clock.set_paused(True)
        self.flags.reference_only()

    # ----- Camera -----

    def _take_camera_control(self) -> None:
        # Any direct camera input ends the scripted shot and pen tracking.
        self.camera.auto_follow = False
        if self.director.engaged:
            self.director.disengage()
            _LOGGER.info("Cinematic mode cancelled by camera input")

    def user_drag(self, dx: float, dy: float, view_height: float) -> None:
        """Pan by a mouse movement of ``(dx, dy)`` pixels in a view ``view_height`` pixels tall."""
        self._take_camera_control()
        if view_height <= 0:
            return
        world_per_pixel = self.settings.target_size / self.camera.zoom / view_height
        px, py = self.camera.pan
        self.camera.pan = (px + dx * world_per_pixel, py - dy * world_per_pixel)

    def user_wheel(self, delta: float) -> float:
        self._take_camera_control()
        if delta == 0:
            return self.camera.zoom
        factor = WHEEL_ZOOM_IN if delta > 0 else WHEEL_ZOOM_OUT
        return self.camera.set_zoom(self.camera.zoom * factor)

    def set_zoom(self, zoom: float) -> float:
        self._take_camera_control()
        return self.camera.set_zoom(zoom)

    def set_auto_follow(self, enabled: bool) -> None:
        self._take_camera_control()
        self.camera.auto_follow = bool(enabled)

    def reset_view(self) -> None:
        self._take_camera_control()
        self.camera.reset()

    # ----- Shutdown -----

    def close(self) -> None:
        """Stop recording and wait for any in-flight load to finish."""
        self.stop_recording()
        self.pipeline.shutdown(wait=True)
