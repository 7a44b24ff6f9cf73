"""Подстановка тайлов предков (пирамидальный откат).

Пока точный тайл не загружен, вместо него показывается увеличенный
фрагмент ближайшего закэшированного тайла с более мелкого уровня.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from PIL import Image

from shared.constants import PYRAMID_MAX_SCALE, TILE_SIZE

if TYPE_CHECKING:
    from tiles.cache import TileCache
    from tiles.key import TileKey

logger = logging.getLogger(__name__)


def iter_ancestors(key: TileKey, max_scale: int = PYRAMID_MAX_SCALE):
    """
    Перебирает предков тайла от ближайшего к дальнему.

    Yields:
        Пары (ключ предка, масштаб) для масштабов 2, 4, ..., max_scale,
        пока уровень предка не опустится ниже нулевого.

    """
    levels = 1
    scale = 2
    while scale <= max_scale and levels <= key.zoom:
        yield key.parent(levels), scale
        levels += 1
        scale *= 2


def find_ancestor(
    cache: TileCache, key: TileKey, max_scale: int = PYRAMID_MAX_SCALE
) -> tuple[TileKey, int] | None:
    """Возвращает первого закэшированного предка и его масштаб."""
    for ancestor, scale in iter_ancestors(key, max_scale):
        if ancestor in cache:
            return ancestor, scale
    return None


def ancestor_region(key: TileKey, scale: int) -> tuple[int, int, int]:
    """
    Область тайла внутри предка в пикселях предка.

    Returns:
        Кортеж (left, top, size)

    """
    size = TILE_SIZE // scale
    return (key.x % scale) * size, (key.y % scale) * size, size


def crop_and_upscale(
    image: Image.Image, left: int, top: int, size: int
) -> Image.Image:
    """Вырезает квадрат и растягивает его до размера тайла (ближайший сосед)."""
    # Предок может быть не 256 px (например, @2x), пересчитываем область
    factor = image.width / TILE_SIZE
    box = (
        round(left * factor),
        round(top * factor),
        round((left + size) * factor),
        round((top + size) * factor),
    )
    area = image.crop(box)
    return area.resize((TILE_SIZE, TILE_SIZE), Image.Resampling.NEAREST)


def placeholder_for(
    cache: TileCache, key: TileKey, max_scale: int = PYRAMID_MAX_SCALE
) -> Image.Image | None:
    """Заглушка для отсутствующего тайла из ближайшего предка или None."""
    found = find_ancestor(cache, key, max_scale)
    if found is None:
        return None
    ancestor, scale = found
    image = cache.get(ancestor)
    if image is None:
        return None
    left, top, size = ancestor_region(key, scale)
    return crop_and_upscale(image, left, top, size)
