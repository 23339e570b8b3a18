import logging
import os
import sys
import time
from typing import Optional

from PySide6.QtWidgets import (
    QApplication,
    QCheckBox,
    QColorDialog,
    QComboBox,
    QDoubleSpinBox,
    QFileDialog,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QSizePolicy,
    QSlider,
    QSpinBox,
    QVBoxLayout,
    QWidget,
)
from PySide6.QtGui import QColor, QImage, QPainter
from PySide6.QtCore import QPointF, QStandardPaths, Qt, QTimer

import localisation
from animation import TraceMode
from drawing import image_to_rgb_bytes, render_frame
from forge_core import ForgeSession
from localisation import tr
from pipeline import file_sampler
from settings import CONFIG_FILE_NAME, MAX_STROKE_WIDTH, MIN_STROKE_WIDTH, load_settings, save_settings

FRAME_INTERVAL_MS = 16
PROGRESS_STEPS = 1000
_LOGGER = logging.getLogger(__name__)


def _config_file_path() -> str:
    base_dir = QStandardPaths.writableLocation(QStandardPaths.AppConfigLocation)
    if not base_dir:
        base_dir = os.path.expanduser("~")
    return os.path.join(base_dir, CONFIG_FILE_NAME)


class ForgeCanvas(QWidget):
    """Shows the last rendered frame and turns mouse input into camera moves."""

    def __init__(self, session: ForgeSession, parent=None):
        super().__init__(parent)
        self.session = session
        self.image: Optional[QImage] = None
        self._drag_origin: Optional[QPointF] = None
        self.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Expanding)
        self.setMinimumSize(320, 180)

    def set_image(self, image: QImage) -> None:
        self.image = image
        self.update()

    def paintEvent(self, event):
        if self.image is None:
            return
        painter = QPainter(self)
        painter.drawImage(self.rect(), self.image)
        painter.end()

    def mousePressEvent(self, event):
        if event.button() == Qt.LeftButton:
            self._drag_origin = event.position()
            self.session.user_drag(0.0, 0.0, self.height())

    def mouseMoveEvent(self, event):
        if self._drag_origin is None:
            return
        pos = event.position()
        dx = pos.x() - self._drag_origin.x()
        dy = pos.y() - self._drag_origin.y()
        self._drag_origin = pos
        self.session.user_drag(dx, dy, self.height())

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.LeftButton:
            self._drag_origin = None

    def wheelEvent(self, event):
        self.session.user_wheel(event.angleDelta().y())


class ForgeWindow(QWidget):
    def __init__(self):
        super().__init__()

        self._config_path = _config_file_path()
        self.session = ForgeSession(load_settings(self._config_path))
        self.language = localisation.language_chain(self.session.settings.language)[0]
        self._last_tick: Optional[float] = None

        main_layout = QHBoxLayout(self)
        main_layout.setContentsMargins(0, 0, 0, 0)

        self.canvas = ForgeCanvas(self.session)
        main_layout.addWidget(self.canvas, stretch=1)

        panel = QWidget()
        panel.setFixedWidth(320)
        panel_layout = QVBoxLayout(panel)
        main_layout.addWidget(panel)

        # ----- Load -----
        self.btn_load = QPushButton()
        self.btn_load.clicked.connect(self.load_points)
        self.status_label = QLabel()
        self.status_label.setWordWrap(True)
        self.phase_label = QLabel()
        self.lang_label = QLabel()
        self.lang_combo = QComboBox()
        for code in localisation.available_languages():
            self.lang_combo.addItem(localisation.language_name(code), code)
        panel_layout.addWidget(self.btn_load)
        panel_layout.addWidget(self.status_label)
        panel_layout.addWidget(self.phase_label)
        panel_layout.addWidget(self.lang_label)
        panel_layout.addWidget(self.lang_combo)

        # ----- Playback -----
        playback = QHBoxLayout()
        self.btn_play = QPushButton()
        self.btn_play.clicked.connect(self._toggle_pause)
        self.btn_reset = QPushButton()
        self.btn_reset.clicked.connect(self.session.reset)
        playback.addWidget(self.btn_play)
        playback.addWidget(self.btn_reset)
        panel_layout.addLayout(playback)

        form = QFormLayout()
        self.progress_label = QLabel()
        self.progress_slider = QSlider(Qt.Horizontal)
        self.progress_slider.setRange(0, PROGRESS_STEPS - 1)
        self.progress_slider.sliderMoved.connect(
            lambda v: self.session.set_time(v / float(PROGRESS_STEPS))
        )
        form.addRow(self.progress_label, self.progress_slider)

        self.speed_label = QLabel()
        self.speed_spin = QDoubleSpinBox()
        self.speed_spin.setRange(0.0, 2.0)
        self.speed_spin.setDecimals(3)
        self.speed_spin.setSingleStep(0.01)
        self.speed_spin.setValue(self.session.state.speed)
        self.speed_spin.valueChanged.connect(self.session.set_speed)
        form.addRow(self.speed_label, self.speed_spin)

        self.vectors_label = QLabel()
        self.vectors_spin = QSpinBox()
        self.vectors_spin.setRange(1, 1)
        self.vectors_spin.valueChanged.connect(self.session.set_active_count)
        form.addRow(self.vectors_label, self.vectors_spin)
        self.vectors_info = QLabel()

        self.trace_label = QLabel()
        self.trace_combo = QComboBox()
        for mode in TraceMode:
            self.trace_combo.addItem(mode.value, mode.value)
        form.addRow(self.trace_label, self.trace_combo)

        self.tail_label = QLabel()
        self.tail_spin = QSpinBox()
        self.tail_spin.setRange(100, 5000)
        self.tail_spin.setValue(self.session.settings.snake_length)
        self.tail_spin.valueChanged.connect(self.session.set_snake_length)
        form.addRow(self.tail_label, self.tail_spin)

        self.zoom_label = QLabel()
        self.zoom_spin = QDoubleSpinBox()
        self.zoom_spin.setRange(0.1, 50.0)
        self.zoom_spin.setDecimals(1)
        self.zoom_spin.setValue(1.0)
        self.zoom_spin.valueChanged.connect(self._on_zoom_changed)
        form.addRow(self.zoom_label, self.zoom_spin)
        panel_layout.addLayout(form)
        panel_layout.addWidget(self.vectors_info)

        # ----- Camera & visuals -----
        self.chk_follow = QCheckBox()
        self.chk_follow.toggled.connect(self._on_follow_toggled)
        self.btn_reset_view = QPushButton()
        self.btn_reset_view.clicked.connect(self.session.reset_view)
        panel_layout.addWidget(self.chk_follow)
        panel_layout.addWidget(self.btn_reset_view)

        flags = self.session.flags
        self.chk_circles = QCheckBox()
        self.chk_arms = QCheckBox()
        self.chk_trail = QCheckBox()
        self.chk_reference = QCheckBox()
        self.chk_rainbow = QCheckBox()
        self.chk_circles.toggled.connect(lambda v: setattr(flags, "show_circles", v))
        self.chk_arms.toggled.connect(lambda v: setattr(flags, "show_arms", v))
        self.chk_trail.toggled.connect(lambda v: setattr(flags, "show_trail", v))
        self.chk_reference.toggled.connect(lambda v: setattr(flags, "show_reference", v))
        self.chk_rainbow.toggled.connect(self.session.set_rainbow)
        for chk in (self.chk_circles, self.chk_arms, self.chk_trail, self.chk_reference, self.chk_rainbow):
            panel_layout.addWidget(chk)

        self.btn_ink = QPushButton()
        self.btn_ink.clicked.connect(self._pick_ink_color)
        self.btn_bg = QPushButton()
        self.btn_bg.clicked.connect(self._pick_bg_color)
        stroke_row = QFormLayout()
        self.stroke_label = QLabel()
        self.stroke_spin = QDoubleSpinBox()
        self.stroke_spin.setRange(MIN_STROKE_WIDTH, MAX_STROKE_WIDTH)
        self.stroke_spin.setDecimals(1)
        self.stroke_spin.setSingleStep(0.5)
        self.stroke_spin.setValue(self.session.settings.stroke_width)
        self.stroke_spin.valueChanged.connect(self.session.set_stroke_width)
        stroke_row.addRow(self.stroke_label, self.stroke_spin)
        panel_layout.addWidget(self.btn_ink)
        panel_layout.addWidget(self.btn_bg)
        panel_layout.addLayout(stroke_row)

        # ----- Export -----
        self.btn_cinematic = QPushButton()
        self.btn_cinematic.setMinimumHeight(40)
        self.btn_cinematic.clicked.connect(self.session.start_cinematic_shot)
        self.btn_record = QPushButton()
        self.btn_record.clicked.connect(self.session.toggle_manual_recording)
        panel_layout.addWidget(self.btn_cinematic)
        panel_layout.addWidget(self.btn_record)
        panel_layout.addStretch(1)

        self._timer = QTimer(self)
        self._timer.timeout.connect(self._on_tick)
        self._timer.start(FRAME_INTERVAL_MS)

        index = self.lang_combo.findData(self.language)
        if index >= 0:
            self.lang_combo.setCurrentIndex(index)
        self.lang_combo.currentIndexChanged.connect(self._on_language_changed)
        self.trace_combo.currentIndexChanged.connect(self._on_trace_mode_changed)
        self.apply_language()

    # ----- Language -----

    def _on_language_changed(self, index: int):
        code = self.lang_combo.itemData(index)
        if code:
            self.language = code
            self.session.settings.language = code
            self.apply_language()

    def apply_language(self):
        lang = self.language
        self.setWindowTitle(tr(lang, "app_title"))
        self.btn_load.setText(tr(lang, "btn_load"))
        self.lang_label.setText(tr(lang, "menu_language"))
        self.btn_reset.setText(tr(lang, "btn_reset"))
        self.progress_label.setText(tr(lang, "label_progress"))
        self.speed_label.setText(tr(lang, "label_speed"))
        self.vectors_label.setText(tr(lang, "label_vectors"))
        self.trace_label.setText(tr(lang, "label_trace_mode"))
        self.tail_label.setText(tr(lang, "label_tail_length"))
        self.zoom_label.setText(tr(lang, "label_zoom"))
        self.chk_follow.setText(tr(lang, "chk_auto_follow"))
        self.btn_reset_view.setText(tr(lang, "btn_reset_view"))
        self.chk_circles.setText(tr(lang, "chk_circles"))
        self.chk_arms.setText(tr(lang, "chk_arms"))
        self.chk_trail.setText(tr(lang, "chk_trail"))
        self.chk_reference.setText(tr(lang, "chk_reference"))
        self.chk_rainbow.setText(tr(lang, "chk_rainbow"))
        self.btn_ink.setText(tr(lang, "btn_ink_color"))
        self.btn_bg.setText(tr(lang, "btn_bg_color"))
        self.stroke_label.setText(tr(lang, "label_stroke_width"))
        self.btn_cinematic.setText(tr(lang, "btn_cinematic"))
        for i in range(self.trace_combo.count()):
            mode = TraceMode(self.trace_combo.itemData(i))
            self.trace_combo.setItemText(i, localisation.label("trace_mode_labels", mode.value, lang))
        self._refresh_controls()

    # ----- Actions -----

    def load_points(self):
        filename, _ = QFileDialog.getOpenFileName(
            self,
            tr(self.language, "dlg_load_title"),
            "",
            tr(self.language, "dlg_load_filter"),
        )
        if filename:
            _LOGGER.info("Loading points from %s", filename)
            self.session.load(file_sampler(filename))

    def _toggle_pause(self):
        self.session.toggle_pause()
        self._refresh_controls()

    def _on_trace_mode_changed(self, index: int):
        value = self.trace_combo.itemData(index)
        if value is not None:
            self.session.set_trace_mode(TraceMode(value), self.tail_spin.value())

    def _on_zoom_changed(self, value: float):
        if abs(value - self.session.camera.zoom) > 1e-6:
            self.session.set_zoom(value)

    def _on_follow_toggled(self, checked: bool):
        if checked != self.session.camera.auto_follow:
            self.session.set_auto_follow(checked)

    def _ask_color(self, current: str, title_key: str) -> Optional[str]:
        color = QColorDialog.getColor(QColor(current), self, tr(self.language, title_key))
        if not color.isValid():
            return None
        return color.name()

    def _pick_ink_color(self):
        picked = self._ask_color(self.session.settings.ink_color, "btn_ink_color")
        if picked:
            self.session.set_ink_color(picked)

    def _pick_bg_color(self):
        picked = self._ask_color(self.session.settings.bg_color, "btn_bg_color")
        if picked:
            self.session.set_bg_color(picked)

    # ----- Frame loop -----

    def _on_tick(self):
        now = time.monotonic()
        dt = 0.0 if self._last_tick is None else now - self._last_tick
        self._last_tick = now

        session = self.session
        geometry = session.update(dt)
        if session.frame_due:
            s = session.settings
            frame = render_frame(session, s.record_width, s.record_height, geometry)
            session.submit_frame(image_to_rgb_bytes(frame))
            self.canvas.set_image(frame)
        else:
            width = max(1, self.canvas.width())
            height = max(1, self.canvas.height())
            self.canvas.set_image(render_frame(session, width, height, geometry))
        self._refresh_controls()

    def _refresh_controls(self):
        session = self.session
        lang = self.language
        self.status_label.setText(session.status)
        self.phase_label.setText(tr(lang, "label_phase", phase=session.phase_label))
        self.btn_play.setText(tr(lang, "btn_play" if session.state.paused else "btn_pause"))
        record_key = "btn_record_stop" if session.recording and not session.director.engaged else "btn_record_start"
        self.btn_record.setText(tr(lang, record_key))

        total = max(1, len(session.epicycles))
        widgets = (
            (self.vectors_spin, session.state.active_count),
            (self.zoom_spin, session.camera.zoom),
            (self.progress_slider, int(session.state.time * PROGRESS_STEPS)),
            (self.chk_follow, session.camera.auto_follow),
            (self.chk_circles, session.flags.show_circles),
            (self.chk_arms, session.flags.show_arms),
            (self.chk_trail, session.flags.show_trail),
            (self.chk_reference, session.flags.show_reference),
            (self.chk_rainbow, session.settings.rainbow),
        )
        for widget, value in widgets:
            widget.blockSignals(True)
            if widget is self.vectors_spin:
                widget.setMaximum(total)
            if isinstance(widget, QCheckBox):
                widget.setChecked(bool(value))
            else:
                widget.setValue(value)
            widget.blockSignals(False)
        self.vectors_info.setText(
            tr(lang, "label_using_vectors", active=session.state.active_count, total=len(session.epicycles))
        )
        busy = session.loading
        self.btn_load.setEnabled(not busy)
        self.btn_cinematic.setEnabled(bool(session.epicycles) and not busy)

    def closeEvent(self, event):
        try:
            self._timer.stop()
            self.session.settings.speed = self.session.state.speed
            save_settings(self.session.settings, self._config_path)
            self.session.close()
        finally:
            super().closeEvent(event)


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app = QApplication(sys.argv)
    window = ForgeWindow()
    window.resize(1280, 720)
    window.show()
    if len(sys.argv) > 1:
        window.session.load(file_sampler(sys.argv[1]))
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
