"""Map canvas: paints the viewport and maps Qt input to the controller."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from PySide6.QtCore import QPoint, Qt, QTimer, Signal
from PySide6.QtGui import QColor, QImage, QPainter, QPen
from PySide6.QtWidgets import QWidget

from shared.constants import (
    CENTER_CROSS_HALF_PX,
    COMPLETION_POLL_INTERVAL_MS,
    CURSOR_HIDE_DELAY_S,
    CURSOR_RING_RADIUS_PX,
    SCALE_BAR_MARGIN_PX,
    SCALE_BAR_TICK_PX,
    Direction,
)
from shared.events import CallbackObserver, EventData, ViewerEvent

if TYPE_CHECKING:
    from PIL import Image
    from PySide6.QtGui import QKeyEvent, QMouseEvent, QPaintEvent, QWheelEvent

    from shared.events import Observable
    from viewer.controller import ViewportController

logger = logging.getLogger(__name__)

_KEY_DIRECTIONS = {
    Qt.Key.Key_Left: Direction.LEFT,
    Qt.Key.Key_Right: Direction.RIGHT,
    Qt.Key.Key_Up: Direction.UP,
    Qt.Key.Key_Down: Direction.DOWN,
}

_BACKGROUND = QColor(224, 224, 224)
_CURSOR_COLOR = QColor(255, 0, 0)
_OVERLAY_COLOR = QColor(0, 0, 0)

# Повторная проверка маркера, если таймер сработал чуть раньше срока
_CURSOR_RECHECK_MS = 50


def pil_to_qimage(image: Image.Image) -> QImage:
    """Convert a PIL image to a QImage that owns its pixel buffer."""
    if image.mode != 'RGBA':
        image = image.convert('RGBA')
    width, height = image.size
    data = image.tobytes('raw', 'RGBA')
    qimage = QImage(data, width, height, width * 4, QImage.Format.Format_RGBA8888)
    # copy() отвязывает QImage от временного буфера bytes
    return qimage.copy()


class MapWidget(QWidget):
    """Tile canvas bound to a ViewportController."""

    loading = Signal(int)  # tiles in flight
    zoom_changed = Signal(int)
    map_changed = Signal(str)  # map title

    def __init__(
        self,
        controller: ViewportController,
        events: Observable,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self._controller = controller
        self._events = events

        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setMinimumSize(CENTER_CROSS_HALF_PX * 4, CENTER_CROSS_HALF_PX * 4)

        # Adapter avoids a clash with QWidget.update()
        self._observer = CallbackObserver(self._handle_viewer_event)
        self._events.add_observer(self._observer)

        # Завершения фонового I/O разбираются в GUI-потоке по таймеру
        self._poll_timer = QTimer(self)
        self._poll_timer.setInterval(COMPLETION_POLL_INTERVAL_MS)
        self._poll_timer.timeout.connect(self._poll_completions)
        self._poll_timer.start()

        self._cursor_timer = QTimer(self)
        self._cursor_timer.setSingleShot(True)
        self._cursor_timer.timeout.connect(self._on_cursor_timeout)

    def shutdown(self) -> None:
        """Stop timers and detach from viewer events."""
        self._poll_timer.stop()
        self._cursor_timer.stop()
        self._events.remove_observer(self._observer)

    # ------------------------------------------------------------------
    # Viewer events
    # ------------------------------------------------------------------

    def _handle_viewer_event(self, event_data: EventData) -> None:
        event = event_data.event
        data = event_data.data
        if event == ViewerEvent.REPAINT_REQUESTED:
            self.update()
        elif event == ViewerEvent.LOADING:
            self.loading.emit(int(data.get('count', 0)))
        elif event == ViewerEvent.ZOOM_CHANGED:
            self.zoom_changed.emit(int(data.get('zoom', 0)))
        elif event == ViewerEvent.MAP_CHANGED:
            self.map_changed.emit(str(data.get('title', '')))

    def _poll_completions(self) -> None:
        self._controller.process_completions()

    def _on_cursor_timeout(self) -> None:
        if not self._controller.expire_cursor() and self._controller.state.cursor is not None:
            self._cursor_timer.start(_CURSOR_RECHECK_MS)

    # ------------------------------------------------------------------
    # Painting
    # ------------------------------------------------------------------

    def paintEvent(self, event: QPaintEvent) -> None:  # noqa: N802
        width, height = self.width(), self.height()
        painter = QPainter(self)
        try:
            painter.fillRect(self.rect(), _BACKGROUND)
            for placement in self._controller.draw_plan(width, height):
                if placement.image is None:
                    continue
                painter.drawImage(
                    QPoint(placement.draw_x, placement.draw_y),
                    pil_to_qimage(placement.image),
                )
            self._paint_cursor(painter, width, height)
            self._paint_center_cross(painter, width, height)
            self._paint_scale_bar(painter, height)
        finally:
            painter.end()

    def _paint_cursor(self, painter: QPainter, width: int, height: int) -> None:
        if not self._controller.cursor_visible():
            return
        position = self._controller.cursor_screen_position(width, height)
        if position is None:
            return
        x, y = position
        painter.setPen(QPen(_CURSOR_COLOR, 2))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawEllipse(
            QPoint(x, y), CURSOR_RING_RADIUS_PX, CURSOR_RING_RADIUS_PX
        )

    def _paint_center_cross(self, painter: QPainter, width: int, height: int) -> None:
        cx, cy = width // 2, height // 2
        painter.setPen(QPen(_OVERLAY_COLOR, 1))
        painter.drawLine(cx - CENTER_CROSS_HALF_PX, cy, cx + CENTER_CROSS_HALF_PX, cy)
        painter.drawLine(cx, cy - CENTER_CROSS_HALF_PX, cx, cy + CENTER_CROSS_HALF_PX)

    def _paint_scale_bar(self, painter: QPainter, height: int) -> None:
        bar = self._controller.scale_bar()
        x0 = SCALE_BAR_MARGIN_PX
        x1 = x0 + bar.width_px
        y = height - SCALE_BAR_MARGIN_PX
        painter.setPen(QPen(_OVERLAY_COLOR, 2))
        painter.drawLine(x0, y, x1, y)
        painter.drawLine(x0, y, x0, y - SCALE_BAR_TICK_PX)
        painter.drawLine(x1, y, x1, y - SCALE_BAR_TICK_PX)
        painter.drawText(x0 + SCALE_BAR_TICK_PX, y - SCALE_BAR_TICK_PX, bar.label)

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def keyPressEvent(self, event: QKeyEvent) -> None:  # noqa: N802
        key = event.key()
        direction = _KEY_DIRECTIONS.get(key)
        if direction is not None:
            self._controller.pan_direction(direction)
        elif key == Qt.Key.Key_PageUp:
            self._controller.change_zoom(zoom_in=True)
        elif key == Qt.Key.Key_PageDown:
            self._controller.change_zoom(zoom_in=False)
        else:
            super().keyPressEvent(event)

    def mousePressEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        if event.button() != Qt.MouseButton.LeftButton:
            super().mousePressEvent(event)
            return
        pos = event.position().toPoint()
        self._controller.press(pos.x(), pos.y())

    def mouseMoveEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        pos = event.position().toPoint()
        self._controller.motion(pos.x(), pos.y())

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        if event.button() != Qt.MouseButton.LeftButton:
            super().mouseReleaseEvent(event)
            return
        pos = event.position().toPoint()
        if self._controller.release(pos.x(), pos.y(), self.width(), self.height()):
            self._cursor_timer.start(CURSOR_HIDE_DELAY_S * 1000)

    def wheelEvent(self, event: QWheelEvent) -> None:  # noqa: N802
        delta = event.angleDelta().y()
        if delta == 0:
            return
        pos = event.position().toPoint()
        self._controller.scroll(
            pos.x(), pos.y(), self.width(), self.height(), zoom_in=delta > 0
        )
