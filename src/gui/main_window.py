"""Main window: map canvas, Maps menu and status labels."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from PySide6.QtGui import QAction, QActionGroup, QKeySequence
from PySide6.QtWidgets import QLabel, QMainWindow

from gui.map_widget import MapWidget
from shared.constants import WINDOW_DEFAULT_HEIGHT, WINDOW_DEFAULT_WIDTH, WINDOW_TITLE

if TYPE_CHECKING:
    from PySide6.QtGui import QCloseEvent

    from catalog.registry import MapSourceInfo, MapSourceRegistry
    from shared.events import Observable
    from viewer.controller import ViewportController

logger = logging.getLogger(__name__)


def accelerator_for(key: str | None) -> QKeySequence | None:
    """Menu shortcut for a one-character source key; uppercase means Shift."""
    if not key:
        return None
    if key.isalpha() and key.isupper():
        return QKeySequence(f'Shift+{key}')
    return QKeySequence(key.upper())


class MainWindow(QMainWindow):
    """Top-level viewer window."""

    def __init__(
        self,
        controller: ViewportController,
        registry: MapSourceRegistry,
        events: Observable,
    ) -> None:
        super().__init__()
        self._controller = controller
        self._registry = registry
        self._map_actions: dict[str, QAction] = {}

        self.map_widget = MapWidget(controller, events, self)
        self._setup_ui()
        self._create_menu()
        self._setup_connections()
        self._refresh_status()
        logger.info('MainWindow initialized')

    def _setup_ui(self) -> None:
        self.setWindowTitle(WINDOW_TITLE)
        self.resize(WINDOW_DEFAULT_WIDTH, WINDOW_DEFAULT_HEIGHT)
        self.setCentralWidget(self.map_widget)

        # Статусная строка: загрузка, масштаб, карта
        self.loading_label = QLabel()
        self.zoom_label = QLabel()
        self.map_label = QLabel()
        status_bar = self.statusBar()
        status_bar.addWidget(self.loading_label)
        status_bar.addWidget(self.zoom_label)
        status_bar.addWidget(self.map_label, 1)
        self.map_widget.setFocus()

    def _create_menu(self) -> None:
        menubar = self.menuBar()

        file_menu = menubar.addMenu('File')
        exit_action = QAction('Quit', self)
        exit_action.setShortcut(QKeySequence('Ctrl+Q'))
        exit_action.triggered.connect(self.close)
        file_menu.addAction(exit_action)

        maps_menu = menubar.addMenu('Maps')
        group = QActionGroup(self)
        group.setExclusive(True)
        for source in self._registry.ordered():
            action = self._make_map_action(source)
            group.addAction(action)
            maps_menu.addAction(action)
            self._map_actions[source.id] = action

    def _make_map_action(self, source: MapSourceInfo) -> QAction:
        action = QAction(source.title, self)
        action.setCheckable(True)
        action.setChecked(source.id == self._controller.state.map_id)
        shortcut = accelerator_for(source.accel_key)
        if shortcut is not None:
            action.setShortcut(shortcut)
        action.triggered.connect(lambda _checked=False, sid=source.id: self._select_map(sid))
        return action

    def _setup_connections(self) -> None:
        self.map_widget.loading.connect(self._on_loading)
        self.map_widget.zoom_changed.connect(self._on_zoom_changed)
        self.map_widget.map_changed.connect(self._on_map_changed)

    def _select_map(self, source_id: str) -> None:
        self._controller.change_map(source_id)

    def _refresh_status(self) -> None:
        self._on_loading(0)
        self._on_zoom_changed(self._controller.state.zoom)
        self._on_map_changed(self._controller.source.title)

    def _on_loading(self, count: int) -> None:
        self.loading_label.setText(f'Loading: {count}')

    def _on_zoom_changed(self, zoom: int) -> None:
        self.zoom_label.setText(f'Zoom: {zoom}')

    def _on_map_changed(self, title: str) -> None:
        self.map_label.setText(f'Map: {title}')
        action = self._map_actions.get(self._controller.state.map_id)
        if action is not None:
            action.setChecked(True)

    def closeEvent(self, event: QCloseEvent) -> None:  # noqa: N802
        self.map_widget.shutdown()
        super().closeEvent(event)
