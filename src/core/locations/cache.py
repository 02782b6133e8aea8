# src/core/locations/cache.py
"""
Кэш позиций транспорта в Redis.

Ключ — тройка идентичности "org:vehicle:device", значение — JSON CacheEntry
с TTL. Срок жизни контролирует сам Redis.
"""

from __future__ import annotations

import json
from typing import Any, AsyncIterator, Optional

from pydantic import ValidationError

from src.common.logger import log_warning
from src.core.locations.models import CacheEntry
from src.infra.redis_client import RedisClient

DEFAULT_TTL = 300


class PositionCache:
    """
    Адаптер кэша позиций.
    Не обращается к БД; ошибки Redis пробрасываются вызывающему коду.
    """

    def __init__(
        self,
        redis: RedisClient,
        ttl: int = DEFAULT_TTL,
        scan_count: int = 100,
    ) -> None:
        """
        Args:
            redis: Клиент Redis
            ttl: Время жизни записи по умолчанию (секунды)
            scan_count: Подсказка размера страницы для SCAN
        """
        self._redis = redis
        self._ttl = ttl
        self._scan_count = scan_count

    @property
    def ttl(self) -> int:
        return self._ttl

    async def get_raw(self, key: str) -> Optional[dict[str, Any]]:
        """Значение по ключу как словарь (None, если нет или не JSON-объект)."""
        value = await self._redis.get_json(key)
        return value if isinstance(value, dict) else None

    async def get(self, key: str) -> Optional[CacheEntry]:
        """Запись кэша по ключу."""
        value = await self.get_raw(key)
        if value is None:
            return None

        try:
            return CacheEntry.model_validate(value)
        except ValidationError as e:
            await log_warning(f"Повреждённая запись кэша {key}: {e}")
            return None

    async def set_with_ttl(
        self,
        key: str,
        entry: CacheEntry,
        ttl: int | None = None,
    ) -> bool:
        """Полностью заменяет запись и выставляет TTL."""
        return await self._redis.set_json(
            key,
            entry.model_dump(exclude_none=True),
            ttl=ttl or self._ttl,
        )

    async def iter_key_pages(self, pattern: str) -> AsyncIterator[list[str]]:
        """
        Обходит ключи по шаблону курсором SCAN, по одной странице за шаг.
        Каждый вызов начинает новый обход; заканчивается, когда Redis вернёт курсор 0.
        Страницы могут повторять ключи.
        """
        cursor = 0
        while True:
            cursor, keys = await self._redis.scan_page(cursor, match=pattern, count=self._scan_count)
            yield keys
            if cursor == 0:
                break

    async def scan_keys(self, pattern: str) -> list[str]:
        """Все ключи по шаблону без повторов, в порядке первого появления."""
        seen: dict[str, None] = {}
        async for page in self.iter_key_pages(pattern):
            for key in page:
                seen.setdefault(key, None)
        return list(seen)

    async def batch_get(self, keys: list[str]) -> list[Optional[dict[str, Any]]]:
        """
        Пакетное чтение одним MGET.
        Результат выровнен по позициям с keys; отсутствующие и битые значения — None.
        """
        values = await self._redis.mget(keys)
        return [self._decode(value) for value in values]

    @staticmethod
    def _decode(value: str | None) -> Optional[dict[str, Any]]:
        if value is None:
            return None
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError:
            return None
        return decoded if isinstance(decoded, dict) else None
