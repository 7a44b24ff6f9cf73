"""Main entry point for the Mapius tile viewer."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from PySide6.QtWidgets import QApplication

from catalog import load_registry
from domain import ViewerSettings, load_settings, save_settings
from geo import ProjectionService
from gui import MainWindow
from shared.constants import DEFAULT_CONFIG_FILE
from shared.diagnostics import (
    log_comprehensive_diagnostics,
    log_memory_usage,
    log_thread_status,
)
from shared.errors import ConfigurationError
from shared.events import Observable
from tiles import TileCache, TileIoWorker, TileLoader
from viewer import ViewportController, ViewportState

logger = logging.getLogger(__name__)


def setup_logging(log_dir: Path, level: int = logging.INFO) -> Path:
    """Configure application logging to stdout and ``log_dir/mapius.log``.

    Returns:
        Path of the log file.
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / 'mapius.log'

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(str(log_file), encoding='utf-8'),
        ],
        force=True,
    )
    return log_file


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Mapius - просмотр тайловых карт')
    parser.add_argument(
        '--config',
        default=DEFAULT_CONFIG_FILE,
        help='Путь к файлу настроек TOML (по умолчанию %(default)s)',
    )
    parser.add_argument(
        '--init-config',
        action='store_true',
        help='Создать файл настроек по умолчанию, если его нет',
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Подробный журнал (уровень DEBUG)',
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Main application entry point."""
    args = parse_args(argv)
    config_path = Path(args.config).resolve()
    setup_logging(
        config_path.parent / 'log', logging.DEBUG if args.debug else logging.INFO
    )
    logger.info('Starting Mapius')

    if args.init_config and not config_path.exists():
        save_settings(config_path, ViewerSettings())
        logger.info('Default settings written to %s', config_path)

    try:
        settings = load_settings(config_path)
        registry = load_registry(settings.maps_dir, settings.default_map)
    except ConfigurationError as e:
        logger.error('Configuration error: %s', e)
        return 1

    # Обход дискового кэша растёт вместе с кэшем, поэтому только в режиме --debug
    diag_cache_dir = settings.cache_dir if args.debug else None
    log_comprehensive_diagnostics('APPLICATION_STARTUP', diag_cache_dir)

    worker = TileIoWorker(settings)
    try:
        worker.start()
    except RuntimeError as e:
        logger.error('Failed to start tile I/O: %s', e)
        return 1

    try:
        app = QApplication.instance() or QApplication(sys.argv[:1])
        app.setQuitOnLastWindowClosed(True)

        events = Observable()
        cache = TileCache()
        loader = TileLoader(registry, cache, worker, settings.cache_dir, events)
        state = ViewportState(map_id=registry.default.id)
        controller = ViewportController(
            state, registry, ProjectionService(), cache, loader, events
        )
        log_memory_usage('before creating window')
        window = MainWindow(controller, registry, events)
        window.show()

        logger.info('Application started successfully')
        result = app.exec()
        log_comprehensive_diagnostics('APPLICATION_SHUTDOWN', diag_cache_dir)
        return result
    except Exception as e:
        logger.error('Failed to start application: %s', e, exc_info=True)
        log_comprehensive_diagnostics('APPLICATION_ERROR')
        return 1
    finally:
        worker.stop()
        log_thread_status('after tile I/O stop')


if __name__ == '__main__':
    sys.exit(main())
