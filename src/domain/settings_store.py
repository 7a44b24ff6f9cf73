import logging
from pathlib import Path

import tomlkit
from pydantic import ValidationError
from tomlkit.exceptions import TOMLKitError

from domain.models import ViewerSettings
from domain.toml_sections import flat_to_sectioned, sectioned_to_flat
from shared.errors import ConfigurationError

logger = logging.getLogger(__name__)


def load_settings(path: str | Path) -> ViewerSettings:
    """
    Загрузка и валидация файла настроек TOML -> ViewerSettings.

    Относительные пути каталогов приводятся к абсолютным от текущего каталога.
    Любая ошибка чтения или валидации фатальна для запуска.
    """
    path = Path(path)
    if not path.exists():
        msg = 'файл настроек не найден'
        raise ConfigurationError(msg, source=str(path))
    try:
        text = path.read_text(encoding='utf-8')
        data = tomlkit.parse(text).unwrap()
    except (OSError, TOMLKitError) as e:
        msg = f'ошибка чтения настроек: {e}'
        raise ConfigurationError(msg, source=str(path)) from e

    try:
        settings = ViewerSettings.model_validate(sectioned_to_flat(data))
    except ValidationError as e:
        msg = f'некорректные настройки: {e}'
        raise ConfigurationError(msg, source=str(path)) from e

    settings = settings.resolved()
    logger.debug('Cache directory: %s', settings.cache_dir)
    logger.debug('Maps directory: %s', settings.maps_dir)
    return settings


def save_settings(path: str | Path, settings: ViewerSettings) -> Path:
    """Сохранение настроек в секционированный TOML (без атомарности и бэкапов)."""
    path = Path(path)
    data = settings.model_dump(mode='json')
    text = tomlkit.dumps(flat_to_sectioned(data))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding='utf-8')
    return path
