"""
Target Marking Window for ShotLog.
Displays a target photo, lets the shooter set the scale, place points of aim
and mark impacts, and saves the session for analysis.
"""
from pathlib import Path
from typing import Optional

from PySide6.QtWidgets import (
    QWidget, QMainWindow, QVBoxLayout, QHBoxLayout, QPushButton, QLabel,
    QDoubleSpinBox, QComboBox, QScrollArea, QMessageBox, QToolBar
)
from PySide6.QtCore import Qt, Signal, QPointF, QSize
from PySide6.QtGui import QColor, QPainter, QPen, QPixmap

from calibration import PixelPoint
from marking import MarkingSession
from session_store import SessionStore
from logger import LogCategory, get_logger, LoggableMixin


class MarkingMode:
    """Click handling modes of the canvas."""
    NONE = None
    SCALE_P1 = "scale_p1"
    SCALE_P2 = "scale_p2"
    POA = "poa"
    POI = "poi"
    DELETE_POI = "delete_poi"


class TargetCanvas(QWidget, LoggableMixin):
    """Zoomable canvas that routes clicks into a :class:`MarkingSession`."""
    session_changed = Signal()
    mode_changed = Signal(object)
    calibration_rejected = Signal()

    def __init__(self, session: MarkingSession, parent=None):
        super().__init__(parent)
        self.session = session
        self.pixmap: Optional[QPixmap] = None
        self.mode = MarkingMode.NONE
        self.scale_distance = 1.0
        self.scale_units = "in"
        self._pending_p1: Optional[PixelPoint] = None
        self.setMouseTracking(True)

    def load_image(self, path: Path) -> bool:
        pixmap = QPixmap(str(path))
        if pixmap.isNull():
            self.log_error(f"Could not load target image {path}")
            return False
        self.pixmap = pixmap
        self.session.target_image_id = Path(path).name
        self._update_size()
        return True

    def set_mode(self, mode, toggle: bool = True) -> None:
        # Clicking the active tool again switches it off
        active = mode == self.mode or (
            mode == MarkingMode.SCALE_P1 and self.mode == MarkingMode.SCALE_P2
        )
        if toggle and mode is not MarkingMode.NONE and active:
            mode = MarkingMode.NONE
            self._pending_p1 = None
        self.mode = mode
        self.mode_changed.emit(mode)

    def _update_size(self) -> None:
        if self.pixmap is not None:
            size = self.pixmap.size() * self.session.zoom
            self.setFixedSize(QSize(int(size.width()), int(size.height())))
        self.update()

    def zoom_in(self) -> None:
        self.session.zoom_in()
        self._update_size()

    def zoom_out(self) -> None:
        self.session.zoom_out()
        self._update_size()

    def to_image_point(self, pos: QPointF) -> PixelPoint:
        return PixelPoint(pos.x() / self.session.zoom, pos.y() / self.session.zoom)

    def handle_click(self, point: PixelPoint) -> None:
        """Apply a click at image coordinates ``point`` for the current mode."""
        if self.mode == MarkingMode.SCALE_P1:
            self._pending_p1 = point
            self.mode = MarkingMode.SCALE_P2
        elif self.mode == MarkingMode.SCALE_P2:
            accepted = self.session.set_calibration(
                self._pending_p1, point, self.scale_distance, self.scale_units
            )
            self._pending_p1 = None
            self.mode = MarkingMode.NONE
            if not accepted:
                self.calibration_rejected.emit()
        elif self.mode == MarkingMode.POA and self.session.current_group is not None:
            self.session.set_poa(point)
            self.mode = MarkingMode.POI
        elif self.mode == MarkingMode.POI:
            self.session.add_poi(point)
        elif self.mode == MarkingMode.DELETE_POI:
            if not self.session.delete_poi_near(point):
                return
        else:
            return
        self.mode_changed.emit(self.mode)
        self.session_changed.emit()
        self.update()

    def mouseReleaseEvent(self, event):
        if event.button() != Qt.LeftButton or self.mode is MarkingMode.NONE:
            return
        self.handle_click(self.to_image_point(event.position()))

    def wheelEvent(self, event):
        if event.angleDelta().y() > 0:
            self.zoom_in()
        else:
            self.zoom_out()

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.Antialiasing)
        zoom = self.session.zoom
        painter.fillRect(self.rect(), QColor("#1f2937"))
        if self.pixmap is not None:
            painter.save()
            painter.scale(zoom, zoom)
            painter.drawPixmap(0, 0, self.pixmap)
            painter.restore()

        calibration = self.session.calibration
        if calibration is not None:
            painter.setPen(QPen(QColor("#ef4444"), 2))
            painter.drawLine(QPointF(calibration.p1.x * zoom, calibration.p1.y * zoom),
                             QPointF(calibration.p2.x * zoom, calibration.p2.y * zoom))
        if self._pending_p1 is not None:
            painter.setPen(QPen(QColor("#ef4444"), 2))
            painter.drawEllipse(QPointF(self._pending_p1.x * zoom, self._pending_p1.y * zoom), 4, 4)

        for group in self.session.groups:
            color = QColor(group.color)
            if group.poa is not None:
                painter.setPen(QPen(color, 2))
                cx, cy = group.poa.x * zoom, group.poa.y * zoom
                painter.drawLine(QPointF(cx - 10, cy), QPointF(cx + 10, cy))
                painter.drawLine(QPointF(cx, cy - 10), QPointF(cx, cy + 10))
            painter.setPen(QPen(QColor("#000000"), 1))
            painter.setBrush(color)
            for poi in group.pois:
                painter.drawEllipse(QPointF(poi.x * zoom, poi.y * zoom), 5, 5)
        painter.end()


class MarkingWindow(QMainWindow):
    """Main window of the marking tool."""

    def __init__(self, session: Optional[MarkingSession] = None,
                 store: Optional[SessionStore] = None, scale_units: str = "in",
                 distance_units: str = "yards", parent=None):
        super().__init__(parent)
        self.logger = get_logger()
        self.session = session or MarkingSession()
        self.store = store or SessionStore()
        self.setWindowTitle("ShotLog - Target Marking")
        self.canvas = TargetCanvas(self.session)
        self.canvas.scale_units = scale_units
        self._build_ui(distance_units)
        self.canvas.session_changed.connect(self.update_status)
        self.canvas.calibration_rejected.connect(self.on_calibration_rejected)
        self.update_status()

    def _build_ui(self, distance_units: str) -> None:
        toolbar = QToolBar("Marking")
        self.addToolBar(toolbar)

        self.scale_distance_spin = QDoubleSpinBox()
        self.scale_distance_spin.setRange(0.0, 10000.0)
        self.scale_distance_spin.setDecimals(3)
        self.scale_distance_spin.setValue(1.0)
        toolbar.addWidget(QLabel("Scale"))
        toolbar.addWidget(self.scale_distance_spin)

        self.scale_units_combo = QComboBox()
        self.scale_units_combo.addItems(["in", "mm"])
        self.scale_units_combo.setCurrentText(self.canvas.scale_units)
        toolbar.addWidget(self.scale_units_combo)

        buttons = [
            ("Set Scale", self.start_scale),
            ("Add Group", self.add_group),
            ("Set POA", lambda: self._toggle_mode(MarkingMode.POA)),
            ("Mark POI", lambda: self._toggle_mode(MarkingMode.POI)),
            ("Delete Shot", lambda: self._toggle_mode(MarkingMode.DELETE_POI)),
            ("Undo Last", self.delete_last),
            ("Zoom +", self.canvas.zoom_in),
            ("Zoom -", self.canvas.zoom_out),
        ]
        for label, handler in buttons:
            button = QPushButton(label)
            button.clicked.connect(handler)
            toolbar.addWidget(button)

        self.target_distance_spin = QDoubleSpinBox()
        self.target_distance_spin.setRange(0.0, 5000.0)
        self.target_distance_spin.setValue(100.0)
        self.distance_units_combo = QComboBox()
        self.distance_units_combo.addItems(["yards", "meters"])
        self.distance_units_combo.setCurrentText(distance_units)
        save_button = QPushButton("Save Session")
        save_button.clicked.connect(self.save_session)

        footer = QHBoxLayout()
        footer.addWidget(QLabel("Target distance"))
        footer.addWidget(self.target_distance_spin)
        footer.addWidget(self.distance_units_combo)
        footer.addStretch(1)
        self.status_label = QLabel()
        footer.addWidget(self.status_label)
        footer.addWidget(save_button)

        scroll = QScrollArea()
        scroll.setWidget(self.canvas)
        central = QWidget()
        layout = QVBoxLayout(central)
        layout.addWidget(scroll, 1)
        layout.addLayout(footer)
        self.setCentralWidget(central)

    def load_image(self, path: Path) -> bool:
        return self.canvas.load_image(path)

    def _toggle_mode(self, mode) -> None:
        if mode == MarkingMode.POA and self.session.current_group is None:
            QMessageBox.information(self, "No Group", "Please add or select a group first.")
            return
        self.canvas.set_mode(mode)

    def start_scale(self) -> None:
        distance = self.scale_distance_spin.value()
        if self.canvas.pixmap is None or distance <= 0:
            QMessageBox.warning(self, "Scale",
                                "Please load an image and enter a valid scale distance first.")
            return
        self.canvas.scale_distance = distance
        self.canvas.scale_units = self.scale_units_combo.currentText()
        self.canvas.set_mode(MarkingMode.SCALE_P1)

    def add_group(self) -> None:
        self.session.add_group()
        self.canvas.set_mode(MarkingMode.POA, toggle=False)
        self.update_status()

    def delete_last(self) -> None:
        if self.session.delete_last_poi() is not None:
            self.canvas.update()
            self.update_status()

    def on_calibration_rejected(self) -> None:
        QMessageBox.warning(self, "Scale",
                            "The two scale points must differ and the distance must be positive.")

    def update_status(self) -> None:
        scale = "Scale set" if self.session.is_calibrated else "Scale not set"
        self.status_label.setText(
            f"{scale} | Groups: {len(self.session.groups)} | Shots: {self.session.shot_count}"
        )

    def build_record(self) -> dict:
        distance = self.target_distance_spin.value()
        return self.session.to_record(
            target_distance=distance if distance > 0 else None,
            distance_units=self.distance_units_combo.currentText(),
        )

    def save_session(self) -> Optional[dict]:
        if self.session.shot_count == 0:
            QMessageBox.information(self, "Save", "No impacts have been marked. Nothing to save.")
            return None
        if not self.session.is_calibrated:
            QMessageBox.warning(self, "Save",
                                "Please set the scale first to save meaningful coordinate data.")
        record = self.store.save(self.build_record())
        self.logger.log_user_action("save_session", {"session": record["id"],
                                                     "shots": len(record["shots"])})
        self.statusBar().showMessage("Session data saved successfully!", 5000)
        return record


def run_marking_window(image_path: Optional[Path], store: SessionStore,
                       scale_units: str = "in", distance_units: str = "yards") -> int:
    """Open the marking window and run the Qt event loop."""
    from PySide6.QtWidgets import QApplication
    app = QApplication.instance() or QApplication([])
    window = MarkingWindow(store=store, scale_units=scale_units, distance_units=distance_units)
    if image_path is not None and not window.load_image(image_path):
        get_logger().error(f"Unable to open image {image_path}", category=LogCategory.MARKING)
        return 1
    window.resize(1200, 900)
    window.show()
    return app.exec()


__all__ = ["MarkingMode", "MarkingWindow", "TargetCanvas", "run_marking_window"]
