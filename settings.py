from __future__ import annotations

from dataclasses import asdict, dataclass, fields
import json
import logging
import math
import os
from typing import Any, Dict, Optional

from forge_colors import normalize_color_string

_LOGGER = logging.getLogger(__name__)

CONFIG_FILE_NAME = "fourierforge_settings.json"
MIN_STROKE_WIDTH = 1.0
MAX_STROKE_WIDTH = 10.0


@dataclass
class ForgeSettings:
    # Decomposition
    sample_count: int = 10000
    target_size: float = 1000.0
    math_backend: Optional[str] = None

    # Time stepping
    speed: float = 0.05
    interactive_sub_steps: int = 5
    interactive_rate: float = 0.002
    record_fps: int = 60

    # Trace and geometry
    min_trace_distance: float = 0.5
    snake_length: int = 1000
    cull_threshold: int = 50

    # Camera
    cinematic_max_zoom: float = 15.0

    # Recording
    record_width: int = 1920
    record_height: int = 1080
    output_path: str = "output.mp4"

    # Appearance
    language: str = "en"
    ink_color: str = "#00ffff"
    bg_color: str = "#0d0d1a"
    stroke_width: float = 2.0
    rainbow: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ForgeSettings":
        """
        Build settings from a loosely trusted dict.

        Unknown keys are ignored, wrong types fall back to the default and
        numeric values are clamped to their usable range.
        """
        defaults = cls()
        values: Dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            default = getattr(defaults, f.name)
            raw = data[f.name]
            try:
                if isinstance(default, bool):
                    if not isinstance(raw, bool):
                        raise TypeError(f"{f.name} must be a boolean")
                    values[f.name] = raw
                elif isinstance(default, int):
                    values[f.name] = int(raw)
                elif isinstance(default, float):
                    value = float(raw)
                    if not math.isfinite(value):
                        raise ValueError(f"{f.name} must be finite")
                    values[f.name] = value
                elif default is None:
                    values[f.name] = None if raw is None else str(raw)
                else:
                    values[f.name] = str(raw)
            except (TypeError, ValueError):
                _LOGGER.warning("Ignoring invalid setting %s=%r", f.name, raw)
        settings = cls(**values)
        settings.clamp()
        return settings

    def clamp(self) -> None:
        defaults = ForgeSettings()
        self.sample_count = max(2, self.sample_count)
        self.target_size = self.target_size if self.target_size > 0 else defaults.target_size
        self.speed = max(0.0, self.speed)
        self.interactive_sub_steps = max(1, self.interactive_sub_steps)
        self.interactive_rate = max(0.0, self.interactive_rate)
        self.record_fps = max(1, self.record_fps)
        self.min_trace_distance = max(0.0, self.min_trace_distance)
        self.snake_length = max(1, self.snake_length)
        self.cull_threshold = max(1, self.cull_threshold)
        self.cinematic_max_zoom = max(1.0, self.cinematic_max_zoom)
        self.record_width = max(2, self.record_width)
        self.record_height = max(2, self.record_height)
        self.stroke_width = max(MIN_STROKE_WIDTH, min(MAX_STROKE_WIDTH, self.stroke_width))
        self.ink_color = normalize_color_string(self.ink_color) or defaults.ink_color
        self.bg_color = normalize_color_string(self.bg_color) or defaults.bg_color


def load_settings(path: str) -> ForgeSettings:
    """Read settings from ``path``; a missing or broken file gives defaults."""
    if not os.path.exists(path):
        return ForgeSettings()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as exc:
        _LOGGER.warning("Could not read settings from %s: %s", path, exc)
        return ForgeSettings()
    if not isinstance(data, dict):
        _LOGGER.warning("Settings file %s does not hold an object", path)
        return ForgeSettings()
    return ForgeSettings.from_dict(data)


def save_settings(settings: ForgeSettings, path: str) -> bool:
    try:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(settings.to_dict(), f, indent=2, ensure_ascii=False)
    except OSError as exc:
        _LOGGER.warning("Could not save settings to %s: %s", path, exc)
        return False
    return True
