# src/core/locations/models.py
"""
Модели данных телеметрии, транспорта и кэша позиций.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ModelWrapValidatorHandler,
    PrivateAttr,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

from src.common.constants import IngestionState, IngestionStatus, OutcomeStatus, PositionSource
from src.core.locations.validator import parse_coordinate


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


_DATETIME = TypeAdapter(datetime)


def _lenient_str(value: Any) -> str | None:
    """Числа с провода приводятся к строке, строки остаются как есть, остальное отбрасывается."""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


# =============================================================================
# ИДЕНТИЧНОСТЬ
# =============================================================================

@dataclass(frozen=True)
class IdentityTriple:
    """Тройка (организация, транспорт, устройство) — ключ кэша и канал Pub/Sub."""
    org_id: int
    vehicle_id: int
    device_id: str

    @property
    def key(self) -> str:
        """Ключ вида "org:vehicle:device"."""
        return f"{self.org_id}:{self.vehicle_id}:{self.device_id}"

    @staticmethod
    def org_pattern(org_id: int | str) -> str:
        """Шаблон SCAN для всех ключей организации."""
        return f"{org_id}:*:*"


# =============================================================================
# ТЕЛЕМЕТРИЯ
# =============================================================================

def _unwrap_device_format(raw: dict[str, Any]) -> dict[str, Any]:
    """
    Раскладывает вложенный формат прошивки (UsedSatellites, Gyroscope, ...)
    по плоским полям. Вложенное значение используется, если плоское
    отсутствует или не разбирается. Исходный словарь не изменяется.
    """
    data = dict(raw)
    satellites = data.pop("UsedSatellites", None)
    if isinstance(satellites, Mapping) and parse_coordinate(data.get("satellites")) is None:
        data["satellites"] = satellites.get("GPSSatellitesCount")

    environment = data.pop("EnvironmentalData", None)
    if isinstance(environment, Mapping) and parse_coordinate(data.get("temperature")) is None:
        data["temperature"] = environment.get("Temperature")

    for source, target in (
        ("Speed", "speed"),
        ("RawData", "raw_gnss"),
        ("Gyroscope", "gyroscope"),
        ("Accelerometer", "accelerometer"),
    ):
        if source in data:
            value = data.pop(source)
            data.setdefault(target, value)
    return data


class Axes(BaseModel):
    """Показания трёхосевого датчика."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    x: Optional[float] = Field(None, alias="xAxis")
    y: Optional[float] = Field(None, alias="yAxis")
    z: Optional[float] = Field(None, alias="zAxis")

    @field_validator("x", "y", "z", mode="before")
    @classmethod
    def lenient_number(cls, v: Any) -> float | None:
        """Нечисловые показания датчика считаются отсутствующими."""
        return parse_coordinate(v)


class TelemetryReport(BaseModel):
    """
    Один отчёт устройства.

    Координаты приходят строками (числа приводятся к строке). Неизвестные поля
    сохраняются, чтобы отчёт попал в историю без потерь.
    """
    model_config = ConfigDict(frozen=True, extra="allow")

    device_id: Optional[str] = Field(None, description="Идентификатор устройства")
    latitude: Optional[str] = Field(None, description="Широта")
    longitude: Optional[str] = Field(None, description="Долгота")
    speed: Optional[str] = Field(None, description="Скорость")
    satellites: Optional[int] = Field(None, description="Количество спутников GPS")
    raw_gnss: Optional[str] = Field(None, description="Сырые данные GNSS")
    temperature: Optional[float] = Field(None, description="Температура")
    gyroscope: Optional[Axes] = None
    accelerometer: Optional[Axes] = None
    timestamp: Optional[datetime] = Field(None, description="Время снятия показаний")

    # Идентичность может прийти вместе с отчётом
    org_id: Optional[int] = None
    vehicle_id: Optional[int] = None

    received_at: datetime = Field(default_factory=_utcnow)

    # Отчёт в том виде, в каком он пришёл с провода
    _raw: Optional[dict[str, Any]] = PrivateAttr(default=None)

    @model_validator(mode="wrap")
    @classmethod
    def keep_raw_report(cls, data: Any, handler: ModelWrapValidatorHandler["TelemetryReport"]) -> "TelemetryReport":
        """Разбирает вложенный формат прошивки и запоминает исходный отчёт."""
        if not isinstance(data, Mapping):
            return handler(data)

        raw = copy.deepcopy(dict(data))
        report = handler(_unwrap_device_format(raw))
        report._raw = raw
        return report

    @field_validator("device_id", "latitude", "longitude", "speed", "raw_gnss", mode="before")
    @classmethod
    def lenient_str(cls, v: Any) -> str | None:
        return _lenient_str(v)

    @field_validator("gyroscope", "accelerometer", mode="before")
    @classmethod
    def lenient_axes(cls, v: Any) -> Any:
        """Показания датчика не в виде объекта считаются отсутствующими."""
        if isinstance(v, (Axes, Mapping)):
            return v
        return None

    @field_validator("timestamp", mode="before")
    @classmethod
    def lenient_timestamp(cls, v: Any) -> datetime | None:
        """Неразборчивое время заменяется временем приёма."""
        if v is None or isinstance(v, bool):
            return None
        try:
            return _DATETIME.validate_python(v)
        except ValidationError:
            return None

    @field_validator("satellites", mode="before")
    @classmethod
    def lenient_satellites(cls, v: Any) -> int | None:
        number = parse_coordinate(v)
        return int(number) if number is not None else None

    @field_validator("temperature", mode="before")
    @classmethod
    def lenient_temperature(cls, v: Any) -> float | None:
        return parse_coordinate(v)

    @property
    def captured_at(self) -> datetime:
        """Время снятия показаний (время приёма, если устройство его не передало)."""
        return self.timestamp or self.received_at

    def to_payload(self) -> dict[str, Any]:
        """
        Исходный отчёт для хранения в истории, без разбора и нормализации.
        Отчёт, собранный не из словаря, сериализуется из полей модели.
        """
        if self._raw is not None:
            return copy.deepcopy(self._raw)
        return self.model_dump(mode="json", exclude_none=True)


# =============================================================================
# ПОЗИЦИЯ И КЭШ
# =============================================================================

class CacheEntry(BaseModel):
    """Проекция позиции транспорта в кэше. Всегда заменяется целиком."""

    latitude: str
    longitude: str
    timestamp: Optional[str] = None
    speed: Optional[str] = None


class Position(BaseModel):
    """Пригодная позиция вместе с сопутствующей телеметрией."""

    latitude: str
    longitude: str
    source: PositionSource = PositionSource.INCOMING
    timestamp: Optional[datetime] = None
    speed: Optional[str] = None
    satellites: Optional[int] = None
    raw_gnss: Optional[str] = None
    temperature: Optional[float] = None
    gyroscope: Optional[Axes] = None
    accelerometer: Optional[Axes] = None

    @classmethod
    def from_report(cls, report: TelemetryReport) -> "Position":
        """Позиция из входящего отчёта (координаты уже проверены)."""
        return cls(
            latitude=report.latitude,
            longitude=report.longitude,
            source=PositionSource.INCOMING,
            timestamp=report.captured_at,
            speed=report.speed,
            satellites=report.satellites,
            raw_gnss=report.raw_gnss,
            temperature=report.temperature,
            gyroscope=report.gyroscope,
            accelerometer=report.accelerometer,
        )

    @classmethod
    def from_history(cls, row: Mapping[str, Any]) -> "Position":
        """Позиция из строки истории (резервная)."""
        speed = row.get("speed")
        return cls(
            latitude=str(row["latitude"]),
            longitude=str(row["longitude"]),
            source=PositionSource.FALLBACK,
            timestamp=row.get("captured_at"),
            speed=str(speed) if speed is not None else None,
            satellites=row.get("satellites"),
            raw_gnss=row.get("raw_gnss"),
            temperature=row.get("temperature"),
            gyroscope=Axes(x=row.get("gyro_x"), y=row.get("gyro_y"), z=row.get("gyro_z")),
            accelerometer=Axes(x=row.get("accel_x"), y=row.get("accel_y"), z=row.get("accel_z")),
        )

    def to_cache_entry(self) -> CacheEntry:
        return CacheEntry(
            latitude=self.latitude,
            longitude=self.longitude,
            timestamp=self.timestamp.isoformat() if self.timestamp else None,
            speed=self.speed,
        )

    def to_payload(self, identity: IdentityTriple) -> dict[str, Any]:
        """Сообщение для подписчиков канала."""
        payload = self.model_dump(mode="json", exclude_none=True)
        payload["key"] = identity.key
        payload["device_id"] = identity.device_id
        return payload


# =============================================================================
# ТРАНСПОРТ
# =============================================================================

class VehicleRecord(BaseModel):
    """Текущее состояние транспорта."""
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="ID транспорта")
    organization_id: int = Field(..., description="ID организации")
    device_id: str = Field(..., description="ID устройства")
    latitude: float = 0.0
    longitude: float = 0.0
    vehicle_number: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    updated_at: Optional[datetime] = None
    is_deleted: bool = False

    @property
    def identity(self) -> IdentityTriple:
        return IdentityTriple(self.organization_id, self.id, self.device_id)

    def to_cache_entry(self) -> CacheEntry:
        return CacheEntry(
            latitude=str(self.latitude),
            longitude=str(self.longitude),
            timestamp=self.updated_at.isoformat() if self.updated_at else None,
        )


class VehicleLocation(BaseModel):
    """Строка ответа сервиса чтения позиций."""
    model_config = ConfigDict(extra="allow")

    key: str
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    vehicle_id: Optional[str] = None
    device_id: Optional[str] = None
    org_id: Optional[str] = None
    vehicle_number: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    timestamp: Optional[str] = None
    speed: Optional[str] = None

    @classmethod
    def from_cache(cls, key: str, value: Mapping[str, Any] | None) -> "VehicleLocation":
        """Строка из кэша; истёкшее значение даёт строку только с ключом."""
        return cls(key=key, **dict(value or {}))

    @classmethod
    def from_vehicle(cls, vehicle: VehicleRecord) -> "VehicleLocation":
        entry = vehicle.to_cache_entry()
        return cls(
            key=vehicle.identity.key,
            latitude=entry.latitude,
            longitude=entry.longitude,
            vehicle_id=str(vehicle.id),
            device_id=vehicle.device_id,
            org_id=str(vehicle.organization_id),
            vehicle_number=vehicle.vehicle_number,
            make=vehicle.make,
            model=vehicle.model,
            year=vehicle.year,
            timestamp=entry.timestamp,
        )

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


# =============================================================================
# РЕЗУЛЬТАТЫ ПРИЁМА
# =============================================================================

class SinkOutcome(BaseModel):
    """Результат операции над одним приёмником (история, кэш, Pub/Sub)."""

    status: OutcomeStatus
    message: Optional[str] = None
    error: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def ok(cls, message: str, **details: Any) -> "SinkOutcome":
        return cls(status=OutcomeStatus.OK, message=message, details=details)

    @classmethod
    def failed(cls, error: BaseException | str) -> "SinkOutcome":
        text = str(error) or type(error).__name__
        return cls(status=OutcomeStatus.FAILED, error=text)

    @classmethod
    def skipped(cls, reason: str) -> "SinkOutcome":
        return cls(status=OutcomeStatus.SKIPPED, message=reason)

    @property
    def succeeded(self) -> bool:
        return self.status == OutcomeStatus.OK

    def to_response(self) -> dict[str, Any]:
        """Успех — полезная нагрузка, ошибка — {"error": ...}, пропуск — {"message": ...}."""
        if self.status == OutcomeStatus.FAILED:
            return {"error": self.error}
        if self.status == OutcomeStatus.SKIPPED:
            return {"skipped": True, "message": self.message}
        return {"success": True, "message": self.message, **self.details}


class IngestionResult(BaseModel):
    """Сводный результат приёма одного отчёта."""

    device_id: str
    key: Optional[str] = None
    position_source: Optional[PositionSource] = None
    persistence: SinkOutcome
    cache: SinkOutcome
    publish: SinkOutcome
    state_trail: list[IngestionState] = Field(default_factory=list)

    @property
    def status(self) -> IngestionStatus:
        """Приём завершён, если отчёт записан в историю."""
        if self.persistence.succeeded:
            return IngestionStatus.COMPLETE
        return IngestionStatus.FAILED

    def to_response(self) -> dict[str, Any]:
        complete = self.status == IngestionStatus.COMPLETE
        return {
            "message": "Processing complete" if complete else "Persistence failed",
            "status": self.status.value,
            "device_id": self.device_id,
            "key": self.key,
            "position_source": self.position_source.value if self.position_source else None,
            "persistence": self.persistence.to_response(),
            "cache": self.cache.to_response(),
            "publish": self.publish.to_response(),
        }
