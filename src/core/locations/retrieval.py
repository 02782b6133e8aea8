# src/core/locations/retrieval.py
"""
Чтение позиций транспорта: сначала кэш, при промахе — БД с прогревом кэша.
"""

from __future__ import annotations

import asyncio

from src.common.logger import log_debug, log_info, log_warning
from src.core.locations.cache import PositionCache
from src.core.locations.models import IdentityTriple, VehicleLocation, VehicleRecord
from src.core.locations.publisher import UpdatePublisher
from src.core.locations.repository import LocationRepository
from src.core.locations.validator import is_usable


class RetrievalService:
    """
    Сервис чтения позиций.

    Ошибки кэша и публикации только логируются; ошибки БД пробрасываются.
    """

    def __init__(
        self,
        repository: LocationRepository,
        cache: PositionCache,
        publisher: UpdatePublisher,
    ) -> None:
        self._repository = repository
        self._cache = cache
        self._publisher = publisher

    async def get(self, org_id: int, vehicle_id: int, device_id: str) -> list[VehicleLocation]:
        """
        Позиция одного транспорта.

        Returns:
            Список из одной строки или пустой список
        """
        key = IdentityTriple(org_id, vehicle_id, device_id).key

        try:
            cached = await self._cache.get(key)
        except Exception as e:
            await log_warning(f"Ошибка чтения кэша {key}, читаем из БД: {e}")
            cached = None

        if cached is not None:
            return [VehicleLocation.from_cache(key, cached.model_dump(exclude_none=True))]

        vehicle = await self._repository.get_vehicle(org_id, vehicle_id, device_id)
        if vehicle is None or not is_usable(vehicle.latitude, vehicle.longitude):
            await log_debug(f"Позиция {key} не найдена")
            return []

        await self._refresh(vehicle)
        return [VehicleLocation.from_vehicle(vehicle)]

    async def list_by_org(self, org_id: int) -> list[VehicleLocation]:
        """
        Позиции всего транспорта организации.

        Если в кэше есть хотя бы один ключ организации, ответ целиком строится
        из кэша; иначе целиком из БД с прогревом кэша.
        """
        pattern = IdentityTriple.org_pattern(org_id)

        try:
            keys = await self._cache.scan_keys(pattern)
            values = await self._cache.batch_get(keys) if keys else []
        except Exception as e:
            await log_warning(f"Ошибка чтения кэша {pattern}, читаем из БД: {e}")
            keys, values = [], []

        if keys:
            return [VehicleLocation.from_cache(key, value) for key, value in zip(keys, values)]

        vehicles = [
            vehicle for vehicle in await self._repository.list_vehicles(org_id)
            if is_usable(vehicle.latitude, vehicle.longitude)
        ]
        await asyncio.gather(*(self._refresh(vehicle) for vehicle in vehicles))

        await log_info(f"Кэш организации {org_id} прогрет из БД: {len(vehicles)} записей")
        return [VehicleLocation.from_vehicle(vehicle) for vehicle in vehicles]

    async def _refresh(self, vehicle: VehicleRecord) -> None:
        """Записывает позицию в кэш и публикует её; сбои не прерывают чтение."""
        key = vehicle.identity.key
        entry = vehicle.to_cache_entry()

        cache_result, publish_result = await asyncio.gather(
            self._cache.set_with_ttl(key, entry),
            self._publisher.publish(key, entry.model_dump(exclude_none=True)),
            return_exceptions=True,
        )
        if isinstance(cache_result, BaseException):
            await log_warning(f"Не удалось записать {key} в кэш: {cache_result}")
        if isinstance(publish_result, BaseException):
            await log_warning(f"Не удалось опубликовать {key}: {publish_result}")
