import math

from animation import (
    AnimationClock,
    AnimationState,
    InteractiveStepPolicy,
    RecordingStepPolicy,
    TraceBuffer,
    TraceMode,
)
from forge_math import Epicycle


def _circle_clock(radius: float = 100.0, fps: int = 64) -> AnimationClock:
    clock = AnimationClock(
        AnimationState(speed=1.0, trace=TraceBuffer(TraceMode.INFINITE)),
        recording=RecordingStepPolicy(fps),
    )
    clock.load([Epicycle(value=complex(radius, 0.0), frequency=1, amplitude=radius, phase=0.0)])
    return clock


def test_recording_wrap_happens_once_per_cycle():
    clock = _circle_clock()
    wraps = []
    total = 0
    for frame in range(64):
        geometry = clock.advance(1.0 / 60.0, recording=True, on_wrap=lambda c: wraps.append(frame))
        total += geometry.wraps
    assert total == 1
    assert wraps == [63]
    assert clock.state.time == 0.0


def test_infinite_trace_is_cleared_on_wrap():
    clock = _circle_clock()
    for _ in range(63):
        clock.advance(0.0, recording=True)
    assert len(clock.state.trace) == 63
    clock.advance(0.0, recording=True)
    assert len(clock.state.trace) == 1
    x, y = clock.state.trace.last
    assert math.isclose(x, 100.0) and math.isclose(y, 0.0, abs_tol=1e-9)


def test_snake_trace_is_bounded():
    trace = TraceBuffer(TraceMode.SNAKE, max_length=100, min_distance=0.0)
    for i in range(250):
        trace.append((float(i), 0.0))
    assert len(trace) == 100
    assert trace.last == (249.0, 0.0)
    assert trace.points()[0] == (150.0, 0.0)


def test_switching_to_snake_trims_history():
    trace = TraceBuffer(TraceMode.INFINITE, min_distance=0.0)
    for i in range(30):
        trace.append((float(i), 0.0))
    trace.set_mode(TraceMode.SNAKE, 10)
    assert len(trace) == 10
    assert trace.last == (29.0, 0.0)


def test_trace_skips_points_too_close_together():
    trace = TraceBuffer(min_distance=0.5)
    assert trace.append((0.0, 0.0))
    assert not trace.append((0.3, 0.0))
    assert trace.append((0.6, 0.0))
    assert len(trace) == 2


def test_interactive_policy_sub_steps():
    count, increment = InteractiveStepPolicy(5, 0.002).steps(0.05, 0.016)
    assert count == 5
    assert math.isclose(increment, 0.05 * 0.002 / 5)

    scaled = InteractiveStepPolicy(5, 0.002, reference_dt=1.0 / 60.0)
    _, doubled = scaled.steps(0.05, 2.0 / 60.0)
    assert math.isclose(doubled, 2 * increment)


def test_recording_policy_single_step():
    assert RecordingStepPolicy(60).steps(0.3, 0.5) == (1, 0.3 / 60)


def test_paused_clock_does_not_move():
    clock = _circle_clock()
    clock.set_paused(True)
    geometry = clock.advance(0.016, recording=False)
    assert clock.state.time == 0.0
    assert len(clock.state.trace) == 0
    assert math.isclose(geometry.tip[0], 100.0)


def test_wrap_callback_can_pause_remaining_sub_steps():
    clock = _circle_clock()
    clock.state.speed = 600.0
    wraps = []

    def stop(c):
        wraps.append(c.state.time)
        c.set_paused(True)

    clock.advance(0.016, recording=False, on_wrap=stop)
    assert len(wraps) == 1
    assert clock.state.paused
    assert math.isclose(clock.state.time, wraps[0])


def test_controls_are_clamped():
    clock = _circle_clock()
    assert clock.set_active_count(10) == 1
    assert clock.set_active_count(-3) == 1
    assert clock.set_speed(-2.0) == 0.0
    assert clock.set_speed(float("nan")) == 0.0
    clock.set_time(1.25)
    assert clock.state.time == 0.25


def test_culling_keeps_tip_exact():
    big = [Epicycle(complex(50.0, 0.0), k, 50.0, 0.0) for k in range(1, 11)]
    tiny = [Epicycle(complex(0.001, 0.0), k, 0.001, 0.0) for k in range(11, 61)]
    clock = AnimationClock()
    clock.load(big + tiny)
    clock.set_time(0.1)

    culled = clock.build_geometry(zoom=1.0)
    assert len(culled.radii) == 10
    assert len(culled.arms) == 10

    full = clock.build_geometry(zoom=10000.0)
    assert len(full.radii) == 60

    tip = clock.tip_at(0.1)
    assert math.isclose(culled.tip[0], tip.real) and math.isclose(culled.tip[1], tip.imag)
    assert culled.tip == full.tip


def test_small_sets_are_never_culled():
    clock = AnimationClock()
    clock.load([Epicycle(complex(0.001, 0.0), k, 0.001, 0.0) for k in range(5)])
    assert len(clock.build_geometry(zoom=1.0).radii) == 5


def test_arms_chain_from_origin_to_tip():
    clock = AnimationClock()
    clock.load([Epicycle(complex(10.0, 0.0), 0, 10.0, 0.0), Epicycle(complex(0.0, 5.0), 0, 5.0, math.pi / 2)])
    geometry = clock.build_geometry()
    assert geometry.centers[0] == (0.0, 0.0)
    assert geometry.centers[1] == (10.0, 0.0)
    assert geometry.tip == (10.0, 5.0)
