"""Tests for the application entry point (startup paths without a window)."""

import logging

import pytest

pytest.importorskip('PySide6')

import main  # noqa: E402
from domain.settings_store import load_settings  # noqa: E402


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestParseArgs:
    def test_defaults(self):
        args = main.parse_args([])
        assert args.config == 'mapius.toml'
        assert args.init_config is False
        assert args.debug is False

    def test_flags(self):
        args = main.parse_args(['--config', 'x.toml', '--init-config', '--debug'])
        assert (args.config, args.init_config, args.debug) == ('x.toml', True, True)


class TestSetupLogging:
    def test_creates_log_file(self, tmp_path, restore_root_logging):
        log_file = main.setup_logging(tmp_path / 'log', logging.DEBUG)
        logging.getLogger('test').debug('hello')
        assert log_file == tmp_path / 'log' / 'mapius.log'
        assert log_file.exists()
        assert logging.getLogger().level == logging.DEBUG


class TestMain:
    """Configuration failures end startup with exit code 1."""

    def test_missing_config(self, tmp_path, monkeypatch, restore_root_logging):
        monkeypatch.chdir(tmp_path)
        assert main.main(['--config', str(tmp_path / 'absent.toml')]) == 1
        assert (tmp_path / 'log' / 'mapius.log').exists()

    def test_init_config_then_missing_maps(self, tmp_path, monkeypatch, restore_root_logging):
        monkeypatch.chdir(tmp_path)
        config = tmp_path / 'mapius.toml'

        assert main.main(['--config', str(config), '--init-config']) == 1

        settings = load_settings(config)
        assert settings.maps_dir == (tmp_path / 'maps').resolve()

    def test_empty_maps_dir(self, tmp_path, monkeypatch, restore_root_logging):
        monkeypatch.chdir(tmp_path)
        (tmp_path / 'maps').mkdir()
        config = tmp_path / 'mapius.toml'
        assert main.main(['--config', str(config), '--init-config']) == 1


class TestStartupDiagnostics:
    """The disk-cache walk only runs with --debug."""

    @pytest.fixture
    def workspace(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        maps = tmp_path / 'maps'
        maps.mkdir()
        (maps / 'osm.py').write_text(
            "title = 'OSM'\n"
            "format = 'png'\n"
            'proj = 3857\n'
            '\n'
            'def url(x, y, zoom):\n'
            "    return f'https://tile.example.org/{zoom}/{x}/{y}.png'\n",
            encoding='utf-8',
        )
        return tmp_path

    @pytest.fixture
    def diagnostics_calls(self, monkeypatch):
        calls = []

        class FailingWorker:
            def __init__(self, settings):
                pass

            def start(self):
                raise RuntimeError('no loop')

        monkeypatch.setattr(main, 'TileIoWorker', FailingWorker)
        monkeypatch.setattr(
            main,
            'log_comprehensive_diagnostics',
            lambda operation, cache_dir=None: calls.append((operation, cache_dir)),
        )
        return calls

    def test_no_cache_walk_by_default(self, workspace, diagnostics_calls, restore_root_logging):
        config = workspace / 'mapius.toml'
        assert main.main(['--config', str(config), '--init-config']) == 1
        assert diagnostics_calls == [('APPLICATION_STARTUP', None)]

    def test_cache_walk_with_debug(self, workspace, diagnostics_calls, restore_root_logging):
        config = workspace / 'mapius.toml'
        assert main.main(['--config', str(config), '--init-config', '--debug']) == 1
        assert diagnostics_calls == [
            ('APPLICATION_STARTUP', (workspace / 'cache').resolve()),
        ]
