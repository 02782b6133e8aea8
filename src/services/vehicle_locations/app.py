# src/services/vehicle_locations/app.py
"""
FastAPI приложение Vehicle Locations.

Endpoints:
- GET /api/v1/vehicles - позиция транспорта или всего транспорта организации
- GET /health - состояние сервиса и зависимостей
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.common.constants import TypeMsg
from src.common.logger import log_info, setup_logging
from src.config import settings
from src.infra.database import close_db, init_db
from src.infra.redis_client import close_redis, init_redis
from src.services.health import collect_health
from src.services.vehicle_locations.routes import router
from src.shared.models.common import HealthStatus

SERVICE_NAME = "vehicle_locations"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Жизненный цикл приложения."""
    setup_logging()
    await log_info("Запуск Vehicle Locations...", type_msg=TypeMsg.INFO)

    app.state.started_at = time.monotonic()
    app.state.db = await init_db()
    app.state.redis = await init_redis()

    yield

    await log_info("Остановка Vehicle Locations...", type_msg=TypeMsg.INFO)
    await close_redis(app.state.redis)
    await close_db(app.state.db)


app = FastAPI(
    title="Vehicle Locations",
    description="Чтение текущих позиций транспорта из кэша с прогревом из БД.",
    version=settings.system.VERSION,
    lifespan=lifespan,
)

app.include_router(router, prefix="/api/v1")


@app.get("/health", response_model=HealthStatus, tags=["Health"])
async def health_check() -> HealthStatus:
    """Проверка здоровья сервиса."""
    return await collect_health(app, SERVICE_NAME, getattr(app.state, "started_at", None))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "src.services.vehicle_locations.app:app",
        host=settings.deployment.VEHICLE_LOCATIONS_HOST,
        port=settings.deployment.VEHICLE_LOCATIONS_PORT,
    )
