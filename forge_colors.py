from __future__ import annotations

import colorsys
import re
from typing import Optional, Tuple

RAINBOW_HUE_STEP = 0.002

_HEX_RE = re.compile(r"#([0-9a-fA-F]{3}|[0-9a-fA-F]{4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})")
_HSL_RE = re.compile(
    r"\(\s*([+-]?\d*\.?\d+)\s*,\s*([+-]?\d*\.?\d+)\s*,\s*([+-]?\d*\.?\d+)\s*\)"
)


def normalize_color_string(s: Optional[str]) -> Optional[str]:
    """
    Return a lower-case hex colour, or ``None`` if ``s`` is not a colour.

    Accepted forms:
      - ``#rgb``, ``#rgba``, ``#rrggbb``, ``#rrggbbaa``
      - ``(H, S, L)`` with H in degrees, S and L in [0, 1]
    """
    if s is None:
        return None
    s = s.strip()
    if not s:
        return None

    if s.startswith("#"):
        if not _HEX_RE.fullmatch(s):
            return None
        return s.lower()

    m = _HSL_RE.fullmatch(s)
    if m:
        h = float(m.group(1)) % 360.0
        sat = max(0.0, min(1.0, float(m.group(2))))
        lum = max(0.0, min(1.0, float(m.group(3))))
        r_f, g_f, b_f = colorsys.hls_to_rgb(h / 360.0, lum, sat)
        return rgb_to_hex((r_f, g_f, b_f))

    return None


def rgb_to_hex(rgb: Tuple[float, float, float]) -> str:
    r, g, b = (int(round(max(0.0, min(1.0, c)) * 255)) for c in rgb)
    return f"#{r:02x}{g:02x}{b:02x}"


def hex_to_rgb(color: str) -> Tuple[int, int, int]:
    """``#rgb`` / ``#rrggbb`` (alpha ignored) to 0-255 components."""
    value = color.lstrip("#")
    if len(value) in (3, 4):
        value = "".join(ch * 2 for ch in value[:3])
    value = value[:6]
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


def advance_hue(hue: float, step: float = RAINBOW_HUE_STEP) -> float:
    hue += step
    if hue > 1.0:
        hue -= 1.0
    return hue


def rainbow_color(hue: float) -> str:
    """Fully saturated ink for ``hue`` in [0, 1]."""
    return rgb_to_hex(colorsys.hsv_to_rgb(hue % 1.0, 1.0, 1.0))
