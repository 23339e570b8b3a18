"""
Scripted camera for the cinematic shot.

The director has no clock of its own: the phase is a pure function of the
animation's normalised time, so one shot always spans exactly one drawing
cycle.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Tuple

Point = Tuple[float, float]
_LOGGER = logging.getLogger(__name__)

ZOOM_IN_END = 0.1
ZOOM_OUT_START = 0.85
PAN_RETURN_RATE = 0.05
DEFAULT_MAX_ZOOM = 15.0
MIN_ZOOM = 0.1
MAX_ZOOM = 50.0


class CinematicPhase(str, Enum):
    IDLE = "idle"
    ZOOM_IN = "zoom_in"
    TRACKING = "tracking"
    ZOOM_OUT = "zoom_out"


@dataclass
class CameraState:
    zoom: float = 1.0
    pan: Point = (0.0, 0.0)
    auto_follow: bool = False

    def reset(self) -> None:
        self.zoom = 1.0
        self.pan = (0.0, 0.0)

    def set_zoom(self, zoom: float) -> float:
        self.zoom = max(MIN_ZOOM, min(MAX_ZOOM, float(zoom)))
        return self.zoom

    def follow(self, tip: Point) -> None:
        """Center the view on ``tip``."""
        self.pan = (-tip[0], -tip[1])


def smoothstep(x: float) -> float:
    x = max(0.0, min(1.0, x))
    return x * x * (3.0 - 2.0 * x)


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


class CinematicDirector:
    def __init__(self, max_zoom: float = DEFAULT_MAX_ZOOM) -> None:
        self.max_zoom = max(1.0, float(max_zoom))
        self.engaged = False
        self.phase = CinematicPhase.IDLE
        self._completed = False

    def engage(self) -> None:
        """Start a new shot; completion can fire once more."""
        self.engaged = True
        self._completed = False
        self.phase = CinematicPhase.ZOOM_IN

    def disengage(self) -> None:
        self.engaged = False
        self.phase = CinematicPhase.IDLE

    @staticmethod
    def phase_for(t: float) -> CinematicPhase:
        if t < ZOOM_IN_END:
            return CinematicPhase.ZOOM_IN
        if t < ZOOM_OUT_START:
            return CinematicPhase.TRACKING
        return CinematicPhase.ZOOM_OUT

    def zoom_for(self, t: float) -> float:
        phase = self.phase_for(t)
        if phase is CinematicPhase.ZOOM_IN:
            return lerp(1.0, self.max_zoom, smoothstep(t / ZOOM_IN_END))
        if phase is CinematicPhase.TRACKING:
            return self.max_zoom
        progress = (t - ZOOM_OUT_START) / (1.0 - ZOOM_OUT_START)
        return lerp(self.max_zoom, 1.0, smoothstep(progress))

    def apply(self, camera: CameraState, t: float) -> CinematicPhase:
        """Drive ``camera`` for normalised time ``t``; no-op when disengaged."""
        if not self.engaged:
            return CinematicPhase.IDLE

        phase = self.phase_for(t)
        if phase is not self.phase:
            _LOGGER.debug("Cinematic phase %s -> %s at t=%.3f", self.phase.value, phase.value, t)
        self.phase = phase

        camera.zoom = self.zoom_for(t)
        if phase is CinematicPhase.ZOOM_OUT:
            px, py = camera.pan
            camera.pan = (lerp(px, 0.0, PAN_RETURN_RATE), lerp(py, 0.0, PAN_RETURN_RATE))
            camera.auto_follow = False
        else:
            camera.auto_follow = True
        return phase

    def handle_wrap(self, recording: bool) -> bool:
        """
        React to the end of a drawing cycle.

        Returns ``True`` the first time a cycle completes while engaged and
        recording; the director disengages itself at that point.
        """
        if not (self.engaged and recording) or self._completed:
            return False
        self._completed = True
        self.disengage()
        _LOGGER.info("Cinematic shot complete")
        return True


__all__ = [
    "CameraState",
    "CinematicDirector",
    "CinematicPhase",
    "lerp",
    "smoothstep",
]
