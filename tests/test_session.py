import math
import threading

import pytest

from animation import TraceMode
from forge_core import COMPLETION_TIME, ForgeSession
from settings import ForgeSettings
from video_export import FfmpegFrameSink, MemoryFrameSink

FRAME_BYTES = bytes(4 * 2 * 3)


def _circle(count: int = 40) -> list[tuple[float, float]]:
    return [(math.cos(2 * math.pi * j / count), math.sin(2 * math.pi * j / count)) for j in range(count + 1)]


def _settings(**overrides) -> ForgeSettings:
    values = dict(sample_count=64, record_width=4, record_height=2, record_fps=64, speed=1.0)
    values.update(overrides)
    return ForgeSettings(**values)


@pytest.fixture
def sinks():
    return []


@pytest.fixture
def session(sinks):
    def factory(settings):
        sink = MemoryFrameSink(settings.record_width, settings.record_height, settings.record_fps)
        sinks.append(sink)
        return sink

    s = ForgeSession(_settings(), sink_factory=factory)
    yield s
    s.close()


def _finish_load(session: ForgeSession) -> None:
    session.pipeline.wait(timeout=30)
    session.update(0.0)


def _load(session: ForgeSession, points=None) -> None:
    assert session.load(_circle() if points is None else points)
    _finish_load(session)


def test_load_shows_reference_and_pauses(session):
    _load(session)
    assert not session.loading
    assert len(session.epicycles) == 64
    assert session.state.active_count == 64
    assert session.state.paused
    assert session.state.time == 0.0
    assert session.flags.show_reference and not session.flags.show_circles
    assert session.status_key == "status_loaded"
    assert session.status == "Loaded 64 cycles."
    assert len(session.path) == 64


def test_failed_load_keeps_previous_contour(session):
    _load(session)
    _load(session, [])
    assert session.status_key == "status_failed_empty"
    assert len(session.epicycles) == 64


def test_sampler_error_shows_reason(session):
    def broken():
        raise OSError("no such file")

    session.load(broken)
    _finish_load(session)
    assert session.status_key == "status_failed_error"
    assert "no such file" in session.status


def test_second_load_is_refused_while_busy(session):
    release = threading.Event()

    def slow():
        release.wait(10)
        return _circle()

    assert session.load(slow)
    try:
        assert not session.load(_circle())
        assert session.status_key == "status_busy"
        assert session.update(0.016).arms == []
    finally:
        release.set()
    _finish_load(session)
    assert session.status_key == "status_loaded"


def test_cinematic_shot_records_one_cycle_and_completes_once(session, sinks):
    _load(session)
    assert session.start_cinematic_shot()
    assert session.recording and not session.state.paused
    assert session.state.trace.mode is TraceMode.INFINITE

    completed = 0
    for _ in range(200):
        session.update(1.0 / 60.0)
        if session.frame_due:
            session.submit_frame(FRAME_BYTES)
        if session.status_key == "status_cinematic_saved" and not session.recording:
            completed += 1

    assert completed > 0
    assert not session.recording
    assert session.state.paused
    assert math.isclose(session.state.time, COMPLETION_TIME)
    assert session.camera.zoom == 1.0
    assert session.camera.pan == (0.0, 0.0)
    assert not session.camera.auto_follow

    assert len(sinks) == 1
    assert sinks[0].closed
    assert len(sinks[0].frames) == 63


def test_cinematic_needs_epicycles(session):
    assert not session.start_cinematic_shot()
    assert session.status_key == "status_no_epicycles"


def test_drag_cancels_cinematic_but_keeps_recording(session, sinks):
    _load(session)
    session.start_cinematic_shot()
    session.update(1.0 / 60.0)
    assert session.camera.auto_follow

    px, py = session.camera.pan
    session.user_drag(10.0, 5.0, 100.0)
    assert not session.director.engaged
    assert not session.camera.auto_follow
    assert session.recording
    assert math.isclose(session.camera.pan[0], px + 100.0)
    assert math.isclose(session.camera.pan[1], py - 50.0)

    session.update(1.0 / 60.0)
    assert session.frame_due
    assert session.submit_frame(FRAME_BYTES)

    session.stop_recording()
    assert session.status_key == "status_recording_stopped"
    assert sinks[0].closed


def test_manual_recording_toggle(session, sinks):
    _load(session)
    assert session.toggle_manual_recording()
    assert session.recording and not session.director.engaged
    assert not session.toggle_manual_recording()
    assert sinks[0].closed


def test_load_stops_running_recording(session, sinks):
    _load(session)
    session.start_manual_recording()
    _load(session)
    assert not session.recording
    assert sinks[0].closed


def test_unavailable_encoder_skips_recording():
    def factory(settings):
        return FfmpegFrameSink(4, 2, 64, executable="no-such-encoder-binary")

    s = ForgeSession(_settings(), sink_factory=factory)
    try:
        _load(s)
        s.start_manual_recording()
        assert s.status_key == "status_recording_failed"
        s.update(1.0 / 60.0)
        assert not s.submit_frame(FRAME_BYTES)
    finally:
        s.close()


def test_controls(session):
    _load(session)
    assert session.set_active_count(10 ** 6) == 64
    assert session.set_active_count(0) == 1
    assert session.set_speed(-1.0) == 0.0
    assert math.isclose(session.user_wheel(120), 1.1)
    assert math.isclose(session.user_wheel(-120), 1.1 * 0.9)

    session.set_trace_mode(TraceMode.SNAKE)
    assert session.state.trace.max_length == session.settings.snake_length
    session.set_snake_length(25)
    assert session.state.trace.max_length == 25

    session.set_time(0.4)
    session.reset()
    assert session.state.time == 0.0
    assert session.state.paused
    assert session.flags.show_reference


def test_rainbow_ink(session):
    session.set_rainbow(True)
    session.update(0.0)
    assert session.ink_color != session.settings.ink_color
    session.set_rainbow(False)
    assert session.ink_color == session.settings.ink_color


def test_ink_and_background_colours(session):
    assert session.set_ink_color("#FF8800")
    assert session.settings.ink_color == "#ff8800"
    assert session.ink_color == "#ff8800"

    assert not session.set_ink_color("orange")
    assert session.settings.ink_color == "#ff8800"

    assert session.set_bg_color("(0, 1, 0.5)")
    assert session.settings.bg_color == "#ff0000"
    assert not session.set_bg_color("")
    assert session.settings.bg_color == "#ff0000"


def test_ink_colour_waits_while_rainbow_is_on(session):
    session.set_rainbow(True)
    session.update(0.0)
    rainbow = session.ink_color
    session.set_ink_color("#123456")
    assert session.ink_color == rainbow
    session.set_rainbow(False)
    assert session.ink_color == "#123456"


def test_stroke_width_is_clamped(session):
    assert session.set_stroke_width(4.5) == 4.5
    assert session.set_stroke_width(0.0) == 1.0
    assert session.set_stroke_width(25.0) == 10.0
    assert session.settings.stroke_width == 10.0


def test_phase_label_follows_cinematic_shot(session):
    assert session.phase_label == "Idle"
    _load(session)
    session.start_cinematic_shot()
    assert session.phase_label == "Zooming in"
    session.settings.language = "fr"
    assert session.phase_label == "Zoom avant"
    session.stop_recording()
    assert session.phase_label == "Inactif"
