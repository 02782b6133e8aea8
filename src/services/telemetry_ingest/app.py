# src/services/telemetry_ingest/app.py
"""
FastAPI приложение Telemetry Ingest.

Endpoints:
- POST /api/v1/telemetry - принять отчёт одного устройства
- POST /api/v1/telemetry/batch - пакетный приём
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
from src.services.telemetry_ingest.routes import router
from src.shared.models.common import HealthStatus

SERVICE_NAME = "telemetry_ingest"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Жизненный цикл приложения."""
    setup_logging()
    await log_info("Запуск Telemetry Ingest...", type_msg=TypeMsg.INFO)

    app.state.started_at = time.monotonic()
    app.state.db = await init_db()
    app.state.redis = await init_redis()

    yield

    await log_info("Остановка Telemetry Ingest...", type_msg=TypeMsg.INFO)
    await close_redis(app.state.redis)
    await close_db(app.state.db)


app = FastAPI(
    title="Telemetry Ingest",
    description="Приём телеметрии GPS-устройств транспорта.",
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
        "src.services.telemetry_ingest.app:app",
        host=settings.deployment.TELEMETRY_INGEST_HOST,
        port=settings.deployment.TELEMETRY_INGEST_PORT,
    )
