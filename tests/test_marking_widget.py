"""Tests for the marking canvas click handling."""

from __future__ import annotations

import os

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
QtWidgets = pytest.importorskip("PySide6.QtWidgets")

from calibration import PixelPoint  # noqa: E402
from marking import MarkingSession  # noqa: E402
from marking_widget import MarkingMode, MarkingWindow, TargetCanvas  # noqa: E402
from session_store import SessionStore  # noqa: E402


@pytest.fixture(scope="module")
def qapp():
    return QtWidgets.QApplication.instance() or QtWidgets.QApplication([])


def test_canvas_click_flow(qapp):
    session = MarkingSession()
    canvas = TargetCanvas(session)
    changes = []
    canvas.session_changed.connect(lambda: changes.append(session.shot_count))

    canvas.scale_distance = 2.0
    canvas.set_mode(MarkingMode.SCALE_P1)
    canvas.handle_click(PixelPoint(0, 0))
    assert canvas.mode == MarkingMode.SCALE_P2
    canvas.handle_click(PixelPoint(100, 0))
    assert session.calibration.pixels_per_unit == pytest.approx(50.0)
    assert canvas.mode is MarkingMode.NONE

    session.add_group()
    canvas.set_mode(MarkingMode.POA)
    canvas.handle_click(PixelPoint(200, 200))
    assert canvas.mode == MarkingMode.POI
    canvas.handle_click(PixelPoint(250, 200))
    canvas.handle_click(PixelPoint(200, 150))

    assert [(s.x, s.y) for s in session.build_shots()] == [(1.0, 0.0), (0.0, -1.0)]
    assert changes[-1] == 2

    canvas.set_mode(MarkingMode.DELETE_POI)
    canvas.handle_click(PixelPoint(251, 201))
    assert session.shot_count == 1


def test_rejected_scale_emits_signal(qapp):
    session = MarkingSession()
    canvas = TargetCanvas(session)
    rejected = []
    canvas.calibration_rejected.connect(lambda: rejected.append(True))

    canvas.set_mode(MarkingMode.SCALE_P1)
    canvas.handle_click(PixelPoint(5, 5))
    canvas.handle_click(PixelPoint(5, 5))

    assert rejected == [True]
    assert session.calibration is None


def test_selecting_active_tool_switches_it_off(qapp):
    canvas = TargetCanvas(MarkingSession())
    canvas.set_mode(MarkingMode.POI)
    canvas.set_mode(MarkingMode.POI)
    assert canvas.mode is MarkingMode.NONE

    canvas.set_mode(MarkingMode.POA)
    canvas.set_mode(MarkingMode.POA, toggle=False)
    assert canvas.mode == MarkingMode.POA


def test_window_saves_session_to_store(qapp, tmp_path):
    store = SessionStore(tmp_path)
    window = MarkingWindow(store=store)
    window.session.set_calibration(PixelPoint(0, 0), PixelPoint(10, 0), 1.0, "in")
    window.add_group()
    assert window.canvas.mode == MarkingMode.POA
    window.canvas.handle_click(PixelPoint(0, 0))
    window.canvas.handle_click(PixelPoint(10, 0))

    record = window.save_session()

    assert record["targetDistance"] == 100.0
    assert store.get(record["id"])["shots"][0]["x"] == 1.0
    assert "Shots: 1" in window.status_label.text()
