# src/infra/redis_client.py
"""
Клиент Redis для кэширования позиций и Pub/Sub.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import redis.asyncio as redis

from src.common.logger import log_error, log_info
from src.common.constants import TypeMsg

if TYPE_CHECKING:
    from src.config.loader import RedisSettings


class RedisClient:
    """
    Асинхронный клиент Redis.
    Поддерживает:
    - get/set с TTL и JSON-сериализацией
    - Постраничный SCAN по шаблону и пакетный MGET
    - Публикацию в каналы Pub/Sub

    Если задан namespace, он добавляется к ключам и каналам и снимается
    с ключей, которые возвращает SCAN.
    """

    def __init__(self, namespace: str = "") -> None:
        self._client: redis.Redis | None = None
        self._namespace = namespace

    @property
    def client(self) -> redis.Redis:
        """Возвращает клиент Redis."""
        if self._client is None:
            raise RuntimeError("Redis клиент не инициализирован. Вызовите connect() сначала.")
        return self._client

    def _make_key(self, key: str) -> str:
        """Добавляет namespace к ключу."""
        if not self._namespace:
            return key
        return f"{self._namespace}:{key}"

    def _strip_key(self, key: str) -> str:
        """Снимает namespace с ключа, полученного от Redis."""
        prefix = f"{self._namespace}:" if self._namespace else ""
        if prefix and key.startswith(prefix):
            return key[len(prefix):]
        return key

    async def connect(
        self,
        url: str,
        max_connections: int = 50,
    ) -> None:
        """
        Подключается к Redis.

        Args:
            url: URL Redis (redis:// или rediss://)
            max_connections: Максимальное количество соединений
        """
        if self._client is not None:
            return

        await log_info("Подключение к Redis...", type_msg=TypeMsg.INFO)

        self._client = redis.from_url(
            url,
            max_connections=max_connections,
            decode_responses=True,
        )

        await self._client.ping()

        await log_info("Подключение к Redis установлено", type_msg=TypeMsg.INFO)

    async def disconnect(self) -> None:
        """Закрывает соединение с Redis."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            await log_info("Соединение с Redis закрыто", type_msg=TypeMsg.INFO)

    # =========================================================================
    # БАЗОВЫЕ ОПЕРАЦИИ
    # =========================================================================

    async def get(self, key: str) -> str | None:
        """Получает значение по ключу."""
        return await self.client.get(self._make_key(key))

    async def set(
        self,
        key: str,
        value: str,
        ttl: int | None = None,
    ) -> bool:
        """
        Устанавливает значение (полная замена).

        Args:
            key: Ключ
            value: Значение
            ttl: Время жизни в секундах

        Returns:
            True если успешно
        """
        return await self.client.set(self._make_key(key), value, ex=ttl)

    # =========================================================================
    # JSON ОПЕРАЦИИ
    # =========================================================================

    async def get_json(self, key: str) -> dict | list | None:
        """Получает и парсит JSON. Невалидный JSON считается отсутствием значения."""
        data = await self.get(key)
        if data is None:
            return None

        try:
            return json.loads(data)
        except json.JSONDecodeError:
            return None

    async def set_json(
        self,
        key: str,
        data: dict | list,
        ttl: int | None = None,
    ) -> bool:
        """Сериализует и сохраняет JSON."""
        return await self.set(key, json.dumps(data, ensure_ascii=False, default=str), ttl=ttl)

    # =========================================================================
    # SCAN / MGET
    # =========================================================================

    async def scan_page(
        self,
        cursor: int,
        match: str,
        count: int = 100,
    ) -> tuple[int, list[str]]:
        """
        Выполняет один шаг SCAN.

        Args:
            cursor: Курсор (0 для начала обхода)
            match: Шаблон ключей
            count: Подсказка Redis о размере страницы

        Returns:
            (следующий курсор, ключи без namespace); курсор 0 означает конец обхода
        """
        next_cursor, keys = await self.client.scan(
            cursor=cursor,
            match=self._make_key(match),
            count=count,
        )
        return int(next_cursor), [self._strip_key(k) for k in keys]

    async def mget(self, keys: list[str]) -> list[str | None]:
        """Пакетное чтение; результат выровнен по позициям с keys."""
        if not keys:
            return []
        return await self.client.mget([self._make_key(k) for k in keys])

    # =========================================================================
    # PUB/SUB
    # =========================================================================

    async def publish(self, channel: str, message: str | dict[str, Any]) -> int:
        """
        Публикует сообщение в канал.

        Returns:
            Количество подписчиков, получивших сообщение
        """
        if not isinstance(message, str):
            message = json.dumps(message, ensure_ascii=False, default=str)
        return await self.client.publish(self._make_key(channel), message)

    # =========================================================================
    # HEALTH CHECK
    # =========================================================================

    async def health_check(self) -> bool:
        """
        Проверяет здоровье подключения к Redis.

        Returns:
            True если подключение работает
        """
        try:
            return await self.client.ping()
        except Exception as e:
            await log_error(f"Health check Redis failed: {e}")
            return False


async def init_redis(redis_settings: "RedisSettings | None" = None) -> RedisClient:
    """
    Создаёт и подключает RedisClient.

    Args:
        redis_settings: Секция настроек Redis (если None, берётся из конфига)

    Returns:
        Подключённый RedisClient
    """
    if redis_settings is None:
        from src.config import settings
        redis_settings = settings.redis

    client = RedisClient(namespace=redis_settings.REDIS_NAMESPACE)
    await client.connect(
        url=redis_settings.url,
        max_connections=redis_settings.REDIS_MAX_CONNECTIONS,
    )
    await log_info(
        f"Redis подключён: {redis_settings.REDIS_HOST}:{redis_settings.REDIS_PORT}/{redis_settings.REDIS_DB}",
        type_msg=TypeMsg.INFO,
    )
    return client


async def close_redis(client: RedisClient) -> None:
    """Закрывает подключение к Redis."""
    await client.disconnect()
    await log_info("Redis отключён", type_msg=TypeMsg.INFO)
