from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence, Tuple

from PySide6.QtCore import QPointF, Qt
from PySide6.QtGui import QColor, QImage, QPainter, QPen

from animation import FrameGeometry
from cinematic import CameraState

if TYPE_CHECKING:
    from forge_core import ForgeSession

Point = Tuple[float, float]

REFERENCE_COLOR = (0.2, 0.2, 0.2, 0.5)
CIRCLE_COLOR = (1.0, 1.0, 1.0, 0.2)
ARM_COLOR = (1.0, 1.0, 1.0, 0.5)


def _rgba(r: float, g: float, b: float, a: float) -> QColor:
    color = QColor()
    color.setRgbF(r, g, b, a)
    return color


def _cosmetic_pen(color: QColor, width: float = 0.0) -> QPen:
    pen = QPen(color)
    pen.setWidthF(width)
    pen.setCosmetic(True)
    return pen


def view_scale(height: int, zoom: float, target_size: float) -> float:
    """Pixels per world unit: the view is ``target_size / zoom`` units tall."""
    if height <= 0 or zoom <= 0 or target_size <= 0:
        return 1.0
    return height * zoom / target_size


def apply_camera(painter: QPainter, camera: CameraState, width: int, height: int, target_size: float) -> None:
    """Map world coordinates (Y up, panned) onto the image."""
    scale = view_scale(height, camera.zoom, target_size)
    painter.translate(width / 2.0, height / 2.0)
    painter.scale(scale, -scale)
    painter.translate(camera.pan[0], camera.pan[1])


def _map_points(points: Iterable[Point]) -> List[QPointF]:
    return [QPointF(x, y) for (x, y) in points]


def draw_polyline(painter: QPainter, points: Sequence[Point], *, color: QColor, width: float = 0.0) -> None:
    if len(points) < 2:
        return
    painter.setPen(_cosmetic_pen(color, width))
    painter.drawPolyline(_map_points(points))


def draw_circles(painter: QPainter, centers: Sequence[Point], radii: Sequence[float], *, color: QColor) -> None:
    if not centers:
        return
    painter.setPen(_cosmetic_pen(color))
    painter.setBrush(Qt.NoBrush)
    for (cx, cy), radius in zip(centers, radii):
        painter.drawEllipse(QPointF(cx, cy), radius, radius)


def draw_arms(painter: QPainter, arms: Sequence[Tuple[Point, Point]], *, color: QColor) -> None:
    if not arms:
        return
    painter.setPen(_cosmetic_pen(color))
    for a, b in arms:
        painter.drawLine(QPointF(a[0], a[1]), QPointF(b[0], b[1]))


def render_frame(
    session: "ForgeSession",
    width: int,
    height: int,
    geometry: Optional[FrameGeometry] = None,
) -> QImage:
    """Draw the reference, trail, circles and arms of ``session``."""
    geometry = geometry or session.last_geometry
    settings = session.settings
    flags = session.flags

    image = QImage(width, height, QImage.Format_RGB888)
    image.fill(QColor(settings.bg_color))

    painter = QPainter(image)
    try:
        painter.setRenderHint(QPainter.Antialiasing, True)
        apply_camera(painter, session.camera, width, height, settings.target_size)

        if flags.show_reference and session.path:
            draw_polyline(painter, session.path, color=_rgba(*REFERENCE_COLOR), width=1.0)
        if flags.show_trail:
            draw_polyline(
                painter,
                session.state.trace.points(),
                color=QColor(session.ink_color),
                width=settings.stroke_width,
            )
        if flags.show_circles:
            draw_circles(painter, geometry.centers, geometry.radii, color=_rgba(*CIRCLE_COLOR))
        if flags.show_arms:
            draw_arms(painter, geometry.arms, color=_rgba(*ARM_COLOR))
    finally:
        painter.end()
    return image


def image_to_rgb_bytes(image: QImage) -> bytes:
    """Tightly packed rgb24 rows, top row first."""
    if image.format() != QImage.Format_RGB888:
        image = image.convertToFormat(QImage.Format_RGB888)
    width = image.width()
    height = image.height()
    stride = image.bytesPerLine()
    row_bytes = width * 3
    raw = bytes(image.constBits())
    if stride == row_bytes:
        return raw[: row_bytes * height]
    return b"".join(raw[y * stride: y * stride + row_bytes] for y in range(height))
