"""PySide6 shell of the map viewer."""

from gui.main_window import MainWindow
from gui.map_widget import MapWidget, pil_to_qimage

__all__ = [
    'MainWindow',
    'MapWidget',
    'pil_to_qimage',
]
