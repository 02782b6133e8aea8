# src/services/__init__.py
"""
HTTP-сервисы приложения.

Архитектура:
- Каждый сервис — независимое FastAPI-приложение
- PostgreSQL хранит историю телеметрии и текущие позиции транспорта
- Redis используется как кэш позиций с TTL и как Pub/Sub для обновлений

Сервисы:
- telemetry_ingest: приём отчётов GPS-устройств
- vehicle_locations: чтение текущих позиций транспорта организации
"""

__all__: list[str] = []
