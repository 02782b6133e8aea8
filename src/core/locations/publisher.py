# src/core/locations/publisher.py
"""
Публикация обновлений позиций в Redis Pub/Sub.
Канал совпадает с ключом кэша "org:vehicle:device".
"""

from __future__ import annotations

import asyncio
from typing import Any

from src.common.logger import log_debug, log_error, log_warning
from src.infra.redis_client import RedisClient


class UpdatePublisher:
    """
    Публикует позицию подписчикам без подтверждения доставки.

    Ошибка публикации повторяется ограниченное число раз с линейной паузой
    (delay * номер попытки), после чего пробрасывается вызывающему коду.
    """

    def __init__(
        self,
        redis: RedisClient,
        max_attempts: int = 3,
        retry_delay: float = 0.2,
    ) -> None:
        self._redis = redis
        self._max_attempts = max(1, max_attempts)
        self._retry_delay = retry_delay

    async def publish(self, topic: str, payload: dict[str, Any]) -> int:
        """
        Публикует сообщение в канал.

        Returns:
            Количество подписчиков, получивших сообщение
        """
        last_error: Exception | None = None

        for attempt in range(1, self._max_attempts + 1):
            try:
                receivers = await self._redis.publish(topic, payload)
                await log_debug(f"Позиция опубликована в {topic} (подписчиков: {receivers})")
                return receivers
            except Exception as e:
                last_error = e
                if attempt < self._max_attempts:
                    await log_warning(
                        f"Ошибка публикации в {topic} (попытка {attempt}/{self._max_attempts}): {e}"
                    )
                    await asyncio.sleep(self._retry_delay * attempt)

        await log_error(f"Не удалось опубликовать в {topic} после {self._max_attempts} попыток: {last_error}")
        raise last_error  # type: ignore
