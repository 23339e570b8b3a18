from __future__ import annotations

import logging
import math
from typing import List, Sequence, Tuple

Point = Tuple[float, float]

DEFAULT_TARGET_SIZE = 1000.0
_MIN_SEGMENT_LENGTH = 1e-5
_LOGGER = logging.getLogger(__name__)


def bounding_box(points: Sequence[Point]) -> Tuple[float, float, float, float]:
    """Return ``(min_x, min_y, max_x, max_y)`` of a non-empty point list."""
    min_x = min(x for x, _ in points)
    min_y = min(y for _, y in points)
    max_x = max(x for x, _ in points)
    max_y = max(y for _, y in points)
    return min_x, min_y, max_x, max_y


def normalization_scale(width: float, height: float, target_size: float) -> float:
    """
    Uniform scale mapping the larger bounding dimension onto ``target_size``.

    A zero or non-finite extent gives a non-finite ratio; the identity
    scale is used instead so that degenerate input keeps its coordinates.
    """
    extent = max(width, height)
    scale = target_size / extent if extent else math.inf
    if not math.isfinite(scale) or scale == 0.0:
        _LOGGER.debug("Degenerate extent %r, using identity scale", extent)
        return 1.0
    return scale


def normalize_points(points: Sequence[Point], target_size: float = DEFAULT_TARGET_SIZE) -> List[Point]:
    """
    Center the bounding box on the origin, scale uniformly and flip Y.

    Both axes share the same factor so the shape is never distorted.
    """
    if not points:
        return []
    min_x, min_y, max_x, max_y = bounding_box(points)
    cx = (min_x + max_x) * 0.5
    cy = (min_y + max_y) * 0.5
    scale = normalization_scale(max_x - min_x, max_y - min_y, target_size)
    return [((x - cx) * scale, -((y - cy) * scale)) for (x, y) in points]


def cumulative_lengths(points: Sequence[Point]) -> List[float]:
    """Arc length from the first point to each point (first entry is 0)."""
    if not points:
        return []
    lengths = [0.0]
    total = 0.0
    for (x0, y0), (x1, y1) in zip(points, points[1:]):
        total += math.hypot(x1 - x0, y1 - y0)
        lengths.append(total)
    return lengths


def resample_by_length(points: Sequence[Point], count: int) -> List[Point]:
    """
    Resample ``points`` into ``count`` points evenly spaced by arc length.

    The segment cursor only moves forward, so the walk costs
    O(len(points) + count). Targets past the last segment clamp to the
    final point and zero-length segments are not interpolated.
    """
    if len(points) < 2:
        return list(points)
    if count <= 0:
        return []

    cumulative = cumulative_lengths(points)
    total_length = cumulative[-1]
    step = total_length / count
    last_segment = len(points) - 1

    resampled: List[Point] = []
    index = 0
    for i in range(count):
        d = i * step
        while index < last_segment and cumulative[index + 1] < d:
            index += 1

        if index >= last_segment:
            resampled.append(points[-1])
            continue

        seg_start = cumulative[index]
        seg_len = cumulative[index + 1] - seg_start
        t = 0.0
        if seg_len > _MIN_SEGMENT_LENGTH:
            t = (d - seg_start) / seg_len
        x0, y0 = points[index]
        x1, y1 = points[index + 1]
        resampled.append((x0 + (x1 - x0) * t, y0 + (y1 - y0) * t))

    return resampled


def resample(
    raw_points: Sequence[Point],
    target_count: int,
    target_size: float = DEFAULT_TARGET_SIZE,
) -> List[Point]:
    """
    Turn a raw point sequence into a normalised path of ``target_count`` points.

    Inputs with fewer than two points are returned unchanged.
    """
    if len(raw_points) < 2:
        return list(raw_points)
    normalized = normalize_points(raw_points, target_size)
    return resample_by_length(normalized, target_count)


__all__ = [
    "DEFAULT_TARGET_SIZE",
    "Point",
    "bounding_box",
    "cumulative_lengths",
    "normalization_scale",
    "normalize_points",
    "resample",
    "resample_by_length",
]
