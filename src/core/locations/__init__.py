"""
Позиции транспорта: приём телеметрии, кэш, резервные позиции и чтение.
"""

from src.core.locations.cache import PositionCache
from src.core.locations.exceptions import InvalidTelemetryError
from src.core.locations.fallback import FallbackResolver
from src.core.locations.ingestion import IngestionOrchestrator
from src.core.locations.models import (
    CacheEntry,
    IdentityTriple,
    IngestionResult,
    Position,
    SinkOutcome,
    TelemetryReport,
    VehicleLocation,
    VehicleRecord,
)
from src.core.locations.publisher import UpdatePublisher
from src.core.locations.repository import LocationRepository
from src.core.locations.retrieval import RetrievalService
from src.core.locations.validator import is_usable, parse_coordinate

__all__ = [
    "CacheEntry",
    "FallbackResolver",
    "IdentityTriple",
    "IngestionOrchestrator",
    "IngestionResult",
    "InvalidTelemetryError",
    "LocationRepository",
    "Position",
    "PositionCache",
    "RetrievalService",
    "SinkOutcome",
    "TelemetryReport",
    "UpdatePublisher",
    "VehicleLocation",
    "VehicleRecord",
    "is_usable",
    "parse_coordinate",
]
