# src/core/__init__.py
"""
Доменный слой (Core Domain).
Приём телеметрии и чтение текущих позиций транспорта.
"""

from src.core.locations import IngestionOrchestrator, RetrievalService

__all__ = [
    "IngestionOrchestrator",
    "RetrievalService",
]
