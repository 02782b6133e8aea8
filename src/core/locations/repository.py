# src/core/locations/repository.py
"""
Репозиторий истории телеметрии и текущих позиций транспорта.
Ошибки БД не перехватываются: решение о реакции принимает вызывающий код.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from asyncpg import Record

from src.core.locations.models import TelemetryReport, VehicleRecord
from src.core.locations.validator import parse_coordinate
from src.infra.database import DatabaseManager


_VEHICLE_COLUMNS = """
    id, organization_id, device_id, latitude, longitude,
    vehicle_number, make, model, year, updated_at, is_deleted
"""

# Условие "позиция пригодна", проверяемое на стороне БД
_USABLE_POSITION = """
    latitude IS NOT NULL AND longitude IS NOT NULL
    AND latitude <> 0 AND longitude <> 0
    AND latitude BETWEEN -90 AND 90
    AND longitude BETWEEN -180 AND 180
"""


def _rows_updated(status: str) -> int:
    """Разбирает статус asyncpg вида "UPDATE 1"."""
    try:
        return int(status.split()[-1])
    except (AttributeError, IndexError, ValueError):
        return 0


class LocationRepository:
    """Репозиторий позиций."""

    def __init__(self, db: DatabaseManager) -> None:
        """
        Args:
            db: Менеджер базы данных (Dependency Injection)
        """
        self._db = db

    # =========================================================================
    # ИСТОРИЯ ТЕЛЕМЕТРИИ
    # =========================================================================

    async def insert_history(self, report: TelemetryReport) -> int:
        """
        Добавляет отчёт в историю без изменений, независимо от пригодности координат.

        Returns:
            ID новой строки
        """
        gyro = report.gyroscope
        accel = report.accelerometer
        return await self._db.fetchval(
            """
            INSERT INTO location_history (
                device_id, latitude, longitude, speed, satellites, raw_gnss, temperature,
                gyro_x, gyro_y, gyro_z, accel_x, accel_y, accel_z, payload, captured_at
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14::jsonb, $15)
            RETURNING id
            """,
            report.device_id,
            parse_coordinate(report.latitude),
            parse_coordinate(report.longitude),
            parse_coordinate(report.speed),
            report.satellites,
            report.raw_gnss,
            report.temperature,
            gyro.x if gyro else None,
            gyro.y if gyro else None,
            gyro.z if gyro else None,
            accel.x if accel else None,
            accel.y if accel else None,
            accel.z if accel else None,
            json.dumps(report.to_payload(), ensure_ascii=False, default=str),
            report.captured_at,
        )

    async def get_latest_usable_position(self, device_id: str) -> Optional[dict[str, Any]]:
        """
        Последняя строка истории устройства с пригодной позицией.

        Returns:
            Строка истории или None
        """
        row = await self._db.fetchrow(
            f"""
            SELECT device_id, latitude, longitude, speed, satellites, raw_gnss, temperature,
                   gyro_x, gyro_y, gyro_z, accel_x, accel_y, accel_z, captured_at
            FROM location_history
            WHERE device_id = $1 AND {_USABLE_POSITION}
            ORDER BY captured_at DESC
            LIMIT 1
            """,
            device_id,
        )
        return dict(row) if row else None

    # =========================================================================
    # ТРАНСПОРТ
    # =========================================================================

    @staticmethod
    def _to_vehicle(row: Record | None) -> Optional[VehicleRecord]:
        if row is None:
            return None
        return VehicleRecord(**dict(row))

    async def get_vehicle(
        self,
        org_id: int,
        vehicle_id: int,
        device_id: str,
    ) -> Optional[VehicleRecord]:
        """Активный транспорт с ненулевой позицией."""
        row = await self._db.fetchrow(
            f"""
            SELECT {_VEHICLE_COLUMNS}
            FROM vehicles
            WHERE organization_id = $1 AND id = $2 AND device_id = $3
              AND is_deleted = FALSE AND {_USABLE_POSITION}
            """,
            org_id,
            vehicle_id,
            device_id,
        )
        return self._to_vehicle(row)

    async def find_vehicle_by_device(self, device_id: str) -> Optional[VehicleRecord]:
        """Активный транспорт, к которому привязано устройство (позиция может быть пустой)."""
        row = await self._db.fetchrow(
            f"""
            SELECT {_VEHICLE_COLUMNS}
            FROM vehicles
            WHERE device_id = $1 AND is_deleted = FALSE
            ORDER BY id
            LIMIT 1
            """,
            device_id,
        )
        return self._to_vehicle(row)

    async def update_vehicle_position(
        self,
        org_id: int,
        vehicle_id: int,
        device_id: str,
        latitude: float,
        longitude: float,
        at: datetime,
    ) -> int:
        """
        Обновляет текущую позицию транспорта.
        Побеждает последняя запись: более старая позиция не перезаписывает новую.

        Returns:
            Количество обновлённых строк
        """
        status = await self._db.execute(
            """
            UPDATE vehicles
            SET latitude = $4, longitude = $5, updated_at = $6
            WHERE organization_id = $1 AND id = $2 AND device_id = $3
              AND is_deleted = FALSE
              AND (updated_at IS NULL OR updated_at <= $6)
            """,
            org_id,
            vehicle_id,
            device_id,
            latitude,
            longitude,
            at,
        )
        return _rows_updated(status)

    async def list_vehicles(self, org_id: int) -> list[VehicleRecord]:
        """Все активные транспортные средства организации с пригодной позицией."""
        rows = await self._db.fetch(
            f"""
            SELECT {_VEHICLE_COLUMNS}
            FROM vehicles
            WHERE organization_id = $1 AND is_deleted = FALSE AND {_USABLE_POSITION}
            ORDER BY id
            """,
            org_id,
        )
        return [VehicleRecord(**dict(row)) for row in rows]
