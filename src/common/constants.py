"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class OutcomeStatus(str, Enum):
    """Результат операции над отдельным приёмником (БД, кэш, Pub/Sub)."""
    OK = "ok"
    FAILED = "failed"
    SKIPPED = "skipped"


class PositionSource(str, Enum):
    """Откуда взята позиция для кэша и публикации."""
    INCOMING = "incoming"
    FALLBACK = "fallback"


class IngestionState(str, Enum):
    """Состояния обработки одного пакета телеметрии."""
    RECEIVED = "received"
    VALIDATED = "validated"
    POSITION_RESOLVED = "position_resolved"
    POSITION_ABSENT = "position_absent"
    PERSISTED = "persisted"
    CACHE_PUBLISHED = "cache_published"
    CACHE_SKIPPED = "cache_skipped"
    COMPLETED = "completed"


class IngestionStatus(str, Enum):
    """Итоговый статус приёма телеметрии."""
    COMPLETE = "complete"
    FAILED = "failed"


# Сообщения о пропуске записи в кэш и публикации
SKIP_NO_POSITION = "no usable position available"
SKIP_NO_IDENTITY = "vehicle identity not resolved"
