from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
import math
from typing import Callable, Deque, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from forge_math import Epicycle

Point = Tuple[float, float]

DEFAULT_MIN_TRACE_DISTANCE = 0.5
DEFAULT_SNAKE_LENGTH = 1000
DEFAULT_CULL_THRESHOLD = 50


class TraceMode(str, Enum):
    INFINITE = "infinite"
    SNAKE = "snake"


class TraceBuffer:
    """
    History of visited tip positions.

    In infinite mode the buffer grows until the owner clears it (once per
    cycle); in snake mode the oldest points are dropped so that at most
    ``max_length`` points remain.
    """

    def __init__(
        self,
        mode: TraceMode = TraceMode.INFINITE,
        max_length: int = DEFAULT_SNAKE_LENGTH,
        min_distance: float = DEFAULT_MIN_TRACE_DISTANCE,
    ) -> None:
        self.mode = TraceMode(mode)
        self.max_length = max(1, int(max_length))
        self.min_distance = max(0.0, float(min_distance))
        self._points: Deque[Point] = deque()

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[Point]:
        return iter(self._points)

    @property
    def last(self) -> Optional[Point]:
        return self._points[-1] if self._points else None

    def points(self) -> List[Point]:
        return list(self._points)

    def clear(self) -> None:
        self._points.clear()

    def set_mode(self, mode: TraceMode, max_length: Optional[int] = None) -> None:
        self.mode = TraceMode(mode)
        if max_length is not None:
            self.max_length = max(1, int(max_length))
        self._evict()

    def append(self, point: Point) -> bool:
        """Add ``point`` unless it is too close to the previous one."""
        last = self.last
        if last is not None and math.hypot(point[0] - last[0], point[1] - last[1]) <= self.min_distance:
            return False
        self._points.append(point)
        self._evict()
        return True

    def _evict(self) -> None:
        if self.mode is not TraceMode.SNAKE:
            return
        while len(self._points) > self.max_length:
            self._points.popleft()


@dataclass
class InteractiveStepPolicy:
    """
    On-screen playback: ``sub_steps`` small steps per displayed frame.

    Sub-stepping only spaces trace points more finely. With
    ``reference_dt`` set, the step is scaled by the real frame time.
    """

    sub_steps: int = 5
    rate: float = 0.002
    reference_dt: Optional[float] = None

    def steps(self, speed: float, dt_real: float) -> Tuple[int, float]:
        count = max(1, int(self.sub_steps))
        increment = speed * self.rate / count
        if self.reference_dt and dt_real > 0.0:
            increment *= dt_real / self.reference_dt
        return count, increment


@dataclass
class RecordingStepPolicy:
    """Video export: exactly one step of ``speed / fps`` per emitted frame."""

    fps: int = 60

    def steps(self, speed: float, dt_real: float) -> Tuple[int, float]:
        return 1, speed / max(1, int(self.fps))


@dataclass
class AnimationState:
    time: float = 0.0
    paused: bool = False
    speed: float = 0.05
    active_count: int = 1
    trace: TraceBuffer = field(default_factory=TraceBuffer)


@dataclass
class FrameGeometry:
    centers: List[Point] = field(default_factory=list)
    radii: List[float] = field(default_factory=list)
    arms: List[Tuple[Point, Point]] = field(default_factory=list)
    tip: Point = (0.0, 0.0)
    time: float = 0.0
    wraps: int = 0
    sub_steps: int = 0


WrapCallback = Callable[["AnimationClock"], None]


class AnimationClock:
    def __init__(
        self,
        state: Optional[AnimationState] = None,
        *,
        interactive: Optional[InteractiveStepPolicy] = None,
        recording: Optional[RecordingStepPolicy] = None,
        cull_threshold: int = DEFAULT_CULL_THRESHOLD,
    ) -> None:
        self.state = state or AnimationState()
        self.interactive_policy = interactive or InteractiveStepPolicy()
        self.recording_policy = recording or RecordingStepPolicy()
        self.cull_threshold = cull_threshold
        self._epicycles: List[Epicycle] = []
        self._values = np.zeros(0, dtype=np.complex128)
        self._frequencies = np.zeros(0, dtype=np.float64)
        self._amplitudes = np.zeros(0, dtype=np.float64)

    # ----- Epicycles -----

    @property
    def epicycles(self) -> List[Epicycle]:
        return self._epicycles

    @property
    def total(self) -> int:
        return len(self._epicycles)

    def load(self, epicycles: Sequence[Epicycle]) -> None:
        """Replace the epicycle list and restart from ``t = 0``."""
        self._epicycles = list(epicycles)
        self._values = np.array([e.value for e in self._epicycles], dtype=np.complex128)
        self._frequencies = np.array([e.frequency for e in self._epicycles], dtype=np.float64)
        self._amplitudes = np.array([e.amplitude for e in self._epicycles], dtype=np.float64)
        self.state.active_count = max(1, self.total)
        self.reset()

    # ----- Controls -----

    def reset(self) -> None:
        self.state.time = 0.0
        self.state.trace.clear()

    def toggle_pause(self) -> bool:
        self.state.paused = not self.state.paused
        return self.state.paused

    def set_paused(self, paused: bool) -> None:
        self.state.paused = bool(paused)

    def set_speed(self, speed: float) -> float:
        speed = float(speed)
        if not math.isfinite(speed) or speed < 0.0:
            speed = 0.0
        self.state.speed = speed
        return speed

    def set_active_count(self, count: int) -> int:
        upper = max(1, self.total)
        self.state.active_count = max(1, min(upper, int(count)))
        return self.state.active_count

    def set_trace_mode(self, mode: TraceMode, max_length: Optional[int] = None) -> None:
        self.state.trace.set_mode(mode, max_length)

    def set_time(self, t: float) -> None:
        self.state.time = float(t) % 1.0

    # ----- Evaluation -----

    def _active(self) -> int:
        return max(1, min(self.total, self.state.active_count))

    def _contributions(self, t: float) -> np.ndarray:
        count = self._active()
        angles = self._frequencies[:count] * (2.0 * math.pi * t)
        return self._values[:count] * np.exp(1j * angles)

    def tip_at(self, t: float) -> complex:
        if not self._epicycles:
            return 0j
        return complex(self._contributions(t).sum())

    def build_geometry(self, zoom: float = 1.0) -> FrameGeometry:
        """
        Circles and arms of the current frame.

        With many active vectors, circles smaller than one pixel at the
        current zoom are skipped; the tip always uses every active vector.
        """
        t = self.state.time
        if not self._epicycles:
            return FrameGeometry(time=t)
        count = self._active()
        prefix = np.cumsum(self._contributions(t))
        previous = np.concatenate((np.zeros(1, dtype=np.complex128), prefix[:-1]))
        radii = self._amplitudes[:count]

        if count < self.cull_threshold:
            keep = np.ones(count, dtype=bool)
        else:
            threshold = 1.0 / zoom if zoom > 0 else math.inf
            keep = radii > threshold

        centers = [(float(z.real), float(z.imag)) for z in previous[keep]]
        ends = [(float(z.real), float(z.imag)) for z in prefix[keep]]
        tip = prefix[-1]
        return FrameGeometry(
            centers=centers,
            radii=[float(r) for r in radii[keep]],
            arms=list(zip(centers, ends)),
            tip=(float(tip.real), float(tip.imag)),
            time=t,
        )

    # ----- Time stepping -----

    def advance(
        self,
        dt_real: float,
        recording: bool,
        zoom: float = 1.0,
        on_wrap: Optional[WrapCallback] = None,
    ) -> FrameGeometry:
        """
        Step time for one displayed (or recorded) frame.

        ``on_wrap`` runs inside the sub-step in which ``t`` crosses 1.0,
        after the infinite trace has been cleared; it may pause the clock
        or move ``t``, which the remaining sub-steps honour.
        """
        if not self._epicycles:
            return FrameGeometry(time=self.state.time)

        policy = self.recording_policy if recording else self.interactive_policy
        count, increment = policy.steps(self.state.speed, dt_real)
        state = self.state
        wraps = 0
        for _ in range(count):
            if not state.paused:
                state.time += increment
                while state.time >= 1.0:
                    state.time -= 1.0
                    wraps += 1
                    if state.trace.mode is TraceMode.INFINITE:
                        state.trace.clear()
                    if on_wrap is not None:
                        on_wrap(self)

            if not state.paused:
                tip = self.tip_at(state.time)
                state.trace.append((tip.real, tip.imag))

        geometry = self.build_geometry(zoom)
        geometry.wraps = wraps
        geometry.sub_steps = count
        return geometry


__all__ = [
    "AnimationClock",
    "AnimationState",
    "FrameGeometry",
    "InteractiveStepPolicy",
    "RecordingStepPolicy",
    "TraceBuffer",
    "TraceMode",
]
