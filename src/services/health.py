# src/services/health.py
"""
Проверка здоровья сервиса и его зависимостей (PostgreSQL, Redis).
"""

from __future__ import annotations

import time

from fastapi import FastAPI

from src.config import settings
from src.shared.models.common import HealthStatus


async def collect_health(app: FastAPI, service: str, started_at: float | None = None) -> HealthStatus:
    """
    Опрашивает подключения из app.state.

    Сервис "healthy", если все зависимости отвечают, иначе "degraded";
    не созданное подключение считается "unavailable".
    """
    checks = {"postgres": getattr(app.state, "db", None), "redis": getattr(app.state, "redis", None)}

    dependencies: dict[str, str] = {}
    for name, connection in checks.items():
        if connection is None:
            dependencies[name] = "unavailable"
        else:
            dependencies[name] = "healthy" if await connection.health_check() else "unhealthy"

    healthy = all(state == "healthy" for state in dependencies.values())
    return HealthStatus(
        service=service,
        status="healthy" if healthy else "degraded",
        version=settings.system.VERSION,
        uptime_seconds=round(time.monotonic() - started_at, 3) if started_at else None,
        dependencies=dependencies,
    )
