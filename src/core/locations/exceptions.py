"""
Исключения модуля позиций.
"""


class InvalidTelemetryError(ValueError):
    """Отчёт нельзя обработать (например, нет device_id). Побочных эффектов не было."""
