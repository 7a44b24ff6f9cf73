from pathlib import Path

from pydantic import BaseModel, field_validator

from shared.constants import (
    DEFAULT_CACHE_DIR,
    DEFAULT_MAP_ID,
    DEFAULT_MAPS_DIR,
    DEFAULT_MAX_CONNS_PER_HOST,
    DEFAULT_USER_AGENT,
)


class ViewerSettings(BaseModel):
    """Настройки просмотрщика, читаемые из TOML при запуске."""

    model_config = {
        'extra': 'ignore',  # игнорировать неизвестные ключи
        'frozen': True,
    }

    # Корень дискового кэша тайлов
    cache_dir: Path = Path(DEFAULT_CACHE_DIR)
    # Каталог с модулями источников карт (*.py)
    maps_dir: Path = Path(DEFAULT_MAPS_DIR)
    # Максимум одновременных соединений с одним хостом
    max_conns_per_host: int = DEFAULT_MAX_CONNS_PER_HOST
    # Заголовок User-Agent для HTTP-запросов
    user_agent: str = DEFAULT_USER_AGENT
    # Общий таймаут HTTP-запроса (None: значение клиента по умолчанию)
    http_timeout_s: float | None = None
    # Идентификатор карты при запуске
    default_map: str = DEFAULT_MAP_ID

    @field_validator('max_conns_per_host')
    @classmethod
    def validate_max_conns(cls, v: int) -> int:
        v = int(v)
        if v < 1:
            msg = 'max_conns_per_host должен быть не меньше 1'
            raise ValueError(msg)
        return v

    @field_validator('user_agent')
    @classmethod
    def validate_user_agent(cls, v: str) -> str:
        v = str(v).strip()
        if not v:
            msg = 'user_agent не может быть пустым'
            raise ValueError(msg)
        return v

    @field_validator('http_timeout_s')
    @classmethod
    def validate_timeout(cls, v: float | None) -> float | None:
        if v is None:
            return None
        v = float(v)
        if v <= 0:
            msg = 'timeout_s должен быть положительным'
            raise ValueError(msg)
        return v

    def resolved(self, base_dir: Path | None = None) -> 'ViewerSettings':
        """Return a copy with relative paths made absolute against ``base_dir`` (cwd by default)."""
        base = base_dir or Path.cwd()
        return self.model_copy(
            update={
                'cache_dir': _absolute(self.cache_dir, base),
                'maps_dir': _absolute(self.maps_dir, base),
            },
        )


def _absolute(path: Path, base: Path) -> Path:
    return path if path.is_absolute() else (base / path).resolve()
