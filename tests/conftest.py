# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

# Устанавливаем переменные окружения перед импортом модулей
os.environ.setdefault("DB_PASSWORD", "test_password")
os.environ.setdefault("REDIS_PASSWORD", "")

from src.core.locations.models import TelemetryReport, VehicleRecord


# =============================================================================
# ФИКСТУРЫ КОНФИГУРАЦИИ
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Корневая директория проекта."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def config_path(project_root: Path) -> Path:
    """Путь к файлу конфигурации."""
    return project_root / "config" / "config.json"


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Мок конфигурации для тестов."""
    return {
        "PROJECT_NAME": "fleet_tracker_test",
        "VERSION": "1.0.0-test",
        "DEBUG": True,
        "LOG_LEVEL": "DEBUG",
        "ENVIRONMENT": "test",
        "COMPONENT_MODE": "ingest",
        "TELEMETRY_INGEST_HOST": "127.0.0.1",
        "TELEMETRY_INGEST_PORT": 9090,
        "VEHICLE_LOCATIONS_HOST": "127.0.0.1",
        "VEHICLE_LOCATIONS_PORT": 9092,
        "LOG_FORMAT": "json",
        "LOG_TO_FILE": False,
        "LOG_FILE_PATH": "logs/test.log",
        "LOG_MAX_BYTES": 1024,
        "DB_HOST": "localhost",
        "DB_PORT": 5432,
        "DB_NAME": "fleet_test",
        "DB_USER": "postgres",
        "DB_PASSWORD": "test_password",
        "DB_MIN_POOL_SIZE": 2,
        "DB_MAX_POOL_SIZE": 5,
        "DB_COMMAND_TIMEOUT": 30,
        "DB_RETRY_ATTEMPTS": 2,
        "DB_RETRY_DELAY": 0.5,
        "REDIS_HOST": "localhost",
        "REDIS_PORT": 6379,
        "REDIS_DB": 1,
        "REDIS_PASSWORD": "",
        "REDIS_SSL": False,
        "REDIS_NAMESPACE": "fleet_test",
        "REDIS_MAX_CONNECTIONS": 10,
        "VEHICLE_LOCATION_TTL": 120,
        "SCAN_COUNT": 50,
        "PUBLISH_MAX_ATTEMPTS": 5,
        "PUBLISH_RETRY_DELAY": 0.1,
    }


# =============================================================================
# МОКИ ИНФРАСТРУКТУРЫ
# =============================================================================

@pytest.fixture
def mock_db() -> MagicMock:
    """Мок DatabaseManager."""
    db = MagicMock()
    db.execute = AsyncMock(return_value="UPDATE 1")
    db.fetch = AsyncMock(return_value=[])
    db.fetchrow = AsyncMock(return_value=None)
    db.fetchval = AsyncMock(return_value=1)
    db.health_check = AsyncMock(return_value=True)
    return db


@pytest.fixture
def mock_redis() -> MagicMock:
    """Мок RedisClient."""
    redis = MagicMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    redis.get_json = AsyncMock(return_value=None)
    redis.set_json = AsyncMock(return_value=True)
    redis.scan_page = AsyncMock(return_value=(0, []))
    redis.mget = AsyncMock(return_value=[])
    redis.publish = AsyncMock(return_value=1)
    redis.health_check = AsyncMock(return_value=True)
    return redis


# =============================================================================
# МОКИ ДОМЕННОГО СЛОЯ
# =============================================================================

@pytest.fixture
def mock_repository() -> MagicMock:
    """Мок LocationRepository."""
    repo = MagicMock()
    repo.insert_history = AsyncMock(return_value=101)
    repo.get_latest_usable_position = AsyncMock(return_value=None)
    repo.get_vehicle = AsyncMock(return_value=None)
    repo.find_vehicle_by_device = AsyncMock(return_value=None)
    repo.update_vehicle_position = AsyncMock(return_value=1)
    repo.list_vehicles = AsyncMock(return_value=[])
    return repo


@pytest.fixture
def mock_cache() -> MagicMock:
    """Мок PositionCache."""
    cache = MagicMock()
    cache.ttl = 300
    cache.get = AsyncMock(return_value=None)
    cache.set_with_ttl = AsyncMock(return_value=True)
    cache.scan_keys = AsyncMock(return_value=[])
    cache.batch_get = AsyncMock(return_value=[])
    return cache


@pytest.fixture
def mock_publisher() -> MagicMock:
    """Мок UpdatePublisher."""
    publisher = MagicMock()
    publisher.publish = AsyncMock(return_value=1)
    return publisher


# =============================================================================
# ТЕСТОВЫЕ ДАННЫЕ
# =============================================================================

@pytest.fixture
def captured_at() -> datetime:
    return datetime(2024, 5, 1, 10, 30, tzinfo=timezone.utc)


@pytest.fixture
def sample_report(captured_at: datetime) -> TelemetryReport:
    """Отчёт с пригодными координатами и известной тройкой идентичности."""
    return TelemetryReport(
        device_id="D1",
        latitude="26.9169",
        longitude="75.7999",
        speed="42",
        timestamp=captured_at,
        org_id=1,
        vehicle_id=7,
    )


@pytest.fixture
def sample_vehicle() -> VehicleRecord:
    """Транспорт 7 организации 1 с устройством D1."""
    return VehicleRecord(
        id=7,
        organization_id=1,
        device_id="D1",
        latitude=26.9169,
        longitude=75.7999,
        vehicle_number="RJ14-0007",
        make="Tata",
        model="Ace",
        year=2021,
        updated_at=datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def history_row() -> dict[str, Any]:
    """Строка истории с последней пригодной позицией (12.0, 77.0)."""
    return {
        "device_id": "D1",
        "latitude": 12.0,
        "longitude": 77.0,
        "speed": 30.5,
        "satellites": 8,
        "raw_gnss": "$GPRMC,083559.00,A",
        "temperature": 31.5,
        "gyro_x": 0.1,
        "gyro_y": 0.2,
        "gyro_z": 0.3,
        "accel_x": 1.0,
        "accel_y": None,
        "accel_z": 9.8,
        "captured_at": datetime(2024, 4, 30, 18, 0, tzinfo=timezone.utc),
    }
