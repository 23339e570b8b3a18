import os

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
QtWidgets = pytest.importorskip("PySide6.QtWidgets")

import FourierForge  # noqa: E402
from animation import TraceMode  # noqa: E402


@pytest.fixture(scope="module")
def app():
    return QtWidgets.QApplication.instance() or QtWidgets.QApplication([])


@pytest.fixture
def window(app, tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    w = FourierForge.ForgeWindow()
    yield w
    w._timer.stop()
    w.session.close()
    w.deleteLater()


def test_window_starts_and_ticks(window):
    assert window.trace_combo.count() == len(TraceMode)

    window.trace_combo.setCurrentIndex(window.trace_combo.findData(TraceMode.SNAKE.value))
    assert window.session.state.trace.mode is TraceMode.SNAKE
    assert window.session.state.trace.max_length == window.tail_spin.value()

    window._on_tick()
    assert window.canvas.image is not None
    assert window.status_label.text() == window.session.status
    assert "Idle" in window.phase_label.text()


def test_trace_labels_are_translated(window):
    window.lang_combo.setCurrentIndex(window.lang_combo.findData("fr"))
    assert window.btn_load.text() == "Charger des points"
    assert window.session.settings.language == "fr"
    labels = {window.trace_combo.itemText(i) for i in range(window.trace_combo.count())}
    assert "infinite" not in labels and "snake" not in labels


def test_appearance_controls(window):
    window.stroke_spin.setValue(4.0)
    assert window.session.settings.stroke_width == 4.0
    window.chk_rainbow.setChecked(True)
    assert window.session.settings.rainbow


def test_close_saves_settings(window):
    window.show()
    window.speed_spin.setValue(0.25)
    window.close()
    assert os.path.exists(window._config_path)
