#!/usr/bin/env python3
"""
Entrypoint для Vehicle Locations.

Запуск:
    python entrypoint_vehicle_locations.py

Порт по умолчанию: 8092
"""

import sys
from pathlib import Path

# Добавляем корневую директорию проекта в путь
project_root = Path(__file__).parent.parent.resolve()
sys.path.insert(0, str(project_root))

import uvicorn

from src.config import settings


def main() -> None:
    """Запустить Vehicle Locations."""
    uvicorn.run(
        "src.services.vehicle_locations.app:app",
        host=settings.deployment.VEHICLE_LOCATIONS_HOST,
        port=settings.deployment.VEHICLE_LOCATIONS_PORT,
        reload=settings.system.DEBUG,
        log_level=settings.system.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
