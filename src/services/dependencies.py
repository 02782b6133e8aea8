# src/services/dependencies.py
"""
Общие зависимости FastAPI для сервисов позиций.

Подключения создаёт lifespan приложения и кладёт в app.state;
зависимости собирают из них репозиторий, кэш и публикатор на каждый запрос.
"""

from __future__ import annotations

from fastapi import Depends, Request

from src.config import settings
from src.core.locations.cache import PositionCache
from src.core.locations.publisher import UpdatePublisher
from src.core.locations.repository import LocationRepository
from src.infra.database import DatabaseManager
from src.infra.redis_client import RedisClient


def get_database(request: Request) -> DatabaseManager:
    return request.app.state.db


def get_redis(request: Request) -> RedisClient:
    return request.app.state.redis


def get_repository(db: DatabaseManager = Depends(get_database)) -> LocationRepository:
    return LocationRepository(db)


def get_cache(redis: RedisClient = Depends(get_redis)) -> PositionCache:
    return PositionCache(
        redis,
        ttl=settings.redis_ttl.VEHICLE_LOCATION_TTL,
        scan_count=settings.cache.SCAN_COUNT,
    )


def get_publisher(redis: RedisClient = Depends(get_redis)) -> UpdatePublisher:
    return UpdatePublisher(
        redis,
        max_attempts=settings.publisher.PUBLISH_MAX_ATTEMPTS,
        retry_delay=settings.publisher.PUBLISH_RETRY_DELAY,
    )
