# src/core/locations/validator.py
"""
Проверка пригодности координат.
"""

from __future__ import annotations

import math
from typing import Any

LATITUDE_RANGE = (-90.0, 90.0)
LONGITUDE_RANGE = (-180.0, 180.0)


def parse_coordinate(value: Any) -> float | None:
    """
    Разбирает координату из строки или числа.

    Returns:
        Конечное число или None, если значение отсутствует или не число
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None

    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None

    if not math.isfinite(number):
        return None
    return number


def is_usable(latitude: Any, longitude: Any) -> bool:
    """
    Пригодна ли пара координат для кэша, публикации и обновления транспорта.

    Нулевая широта или долгота означает "нет фикса GPS", а не точку на экваторе
    или нулевом меридиане.
    """
    lat = parse_coordinate(latitude)
    lon = parse_coordinate(longitude)
    if lat is None or lon is None:
        return False

    if lat == 0 or lon == 0:
        return False

    return (
        LATITUDE_RANGE[0] <= lat <= LATITUDE_RANGE[1]
        and LONGITUDE_RANGE[0] <= lon <= LONGITUDE_RANGE[1]
    )
