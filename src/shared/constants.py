from enum import Enum

# Размер тайла по одной стороне (px)
TILE_SIZE = 256

# Диапазон уровней приближения
MIN_ZOOM = 0
MAX_ZOOM = 24

# Половина длины экватора в Web Mercator (метры)
EQUATOR_HALFLENGTH = 20037508.34

# Коды EPSG поддерживаемых проекций
EPSG_SPHERICAL_MERCATOR = 3857
EPSG_ELLIPSOIDAL_MERCATOR = 3395

# Сдвиг центра при нажатии стрелок (px)
PAN_STEP_PX = 64

# Порог, ниже которого отпускание кнопки считается кликом, а не перетаскиванием (px)
CLICK_THRESHOLD_PX = 5

# Время жизни маркера курсора (секунды)
CURSOR_HIDE_DELAY_S = 5

# Радиус кольца маркера курсора (px)
CURSOR_RING_RADIUS_PX = 5

# Полуразмер центрального крестика (px)
CENTER_CROSS_HALF_PX = 5

# Очистка кэша запускается, когда тайлов в памяти больше этого числа
CACHE_PURGE_THRESHOLD = 500

# Тайлы, не отрисованные за последние N поколений, удаляются при очистке
CACHE_MAX_GENERATION_AGE = 2

# Максимальный масштаб предка для подстановки (2, 4, ..., 256)
PYRAMID_MAX_SCALE = 256

# Права на файлы и каталоги дискового кэша (rwxr-xr-x)
TILE_FILE_MODE = 0o755
TILE_DIR_MODE = 0o755

# Сетевые настройки по умолчанию
DEFAULT_MAX_CONNS_PER_HOST = 2
DEFAULT_USER_AGENT = 'Mapius/1.0'

# Карта, выбираемая при запуске (если есть в каталоге)
DEFAULT_MAP_ID = 'osmmapMapnik'

# Пути по умолчанию (относительно текущего каталога)
DEFAULT_CACHE_DIR = 'cache'
DEFAULT_MAPS_DIR = 'maps'
DEFAULT_CONFIG_FILE = 'mapius.toml'

# HTTP статусы
HTTP_OK_MIN = 200
HTTP_OK_MAX = 299

# Период опроса очереди завершений ввода-вывода из GUI-потока (мс)
COMPLETION_POLL_INTERVAL_MS = 30

# Окно по умолчанию
WINDOW_TITLE = 'Mapius'
WINDOW_DEFAULT_WIDTH = 800
WINDOW_DEFAULT_HEIGHT = 600

# --- Масштабная линейка
# Отступ от левого нижнего угла (px)
SCALE_BAR_MARGIN_PX = 10
# Высота засечек (px)
SCALE_BAR_TICK_PX = 5
# Ширина, ниже которой линейка растягивается в 5 раз (px)
SCALE_BAR_STRETCH5_MAX_PX = 20
# Ширина, ниже которой линейка растягивается в 2 раза (px)
SCALE_BAR_STRETCH2_MAX_PX = 50


class Direction(str, Enum):
    """Направления сдвига карты клавишами."""

    LEFT = 'left'
    RIGHT = 'right'
    UP = 'up'
    DOWN = 'down'


# Смещение центра для каждого направления (dx, dy)
DIRECTION_DELTAS: dict[Direction, tuple[int, int]] = {
    Direction.LEFT: (-PAN_STEP_PX, 0),
    Direction.RIGHT: (PAN_STEP_PX, 0),
    Direction.UP: (0, -PAN_STEP_PX),
    Direction.DOWN: (0, PAN_STEP_PX),
}
