# src/core/locations/fallback.py
"""
Поиск последней известной пригодной позиции устройства.
"""

from __future__ import annotations

from typing import Optional

from src.common.logger import log_debug, log_warning
from src.core.locations.models import Position
from src.core.locations.repository import LocationRepository
from src.core.locations.validator import is_usable


class FallbackResolver:
    """
    Подставляет позицию из истории, когда во входящем отчёте её нет.

    Ошибка запроса и отсутствие строки равнозначны: подставить нечего.
    Повторов нет, один запрос на вызов.
    """

    def __init__(self, repository: LocationRepository) -> None:
        self._repository = repository

    async def resolve_last_known(self, device_id: str) -> Optional[Position]:
        try:
            row = await self._repository.get_latest_usable_position(device_id)
        except Exception as e:
            await log_warning(f"Не удалось получить последнюю позицию устройства {device_id}: {e}")
            return None

        if row is None or not is_usable(row.get("latitude"), row.get("longitude")):
            await log_debug(f"Нет пригодной позиции в истории устройства {device_id}")
            return None

        position = Position.from_history(row)
        await log_debug(
            f"Позиция устройства {device_id} взята из истории: "
            f"{position.latitude}, {position.longitude}"
        )
        return position
