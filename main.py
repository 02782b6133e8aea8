#!/usr/bin/env python3
# main.py
"""
Главная точка входа Fleet Tracker.
Запускает Telemetry Ingest, Vehicle Locations или оба сервиса в одном процессе.
"""

from __future__ import annotations

import asyncio
import signal
import sys

from src.config import settings
from src.common.logger import setup_logging, log_info, log_error
from src.common.constants import TypeMsg


VALID_MODES = ("ingest", "retrieval", "all")

# Глобальный флаг для graceful shutdown
_shutdown_event: asyncio.Event | None = None
_running_tasks: list[asyncio.Task] = []


def setup_signal_handlers() -> None:
    """Настраивает обработчики сигналов для graceful shutdown."""
    global _shutdown_event
    _shutdown_event = asyncio.Event()

    def signal_handler(sig: int) -> None:
        """Обработчик сигналов SIGINT и SIGTERM."""
        if _shutdown_event and not _shutdown_event.is_set():
            print(f"\nПолучен сигнал остановки (sig={sig}), завершаем работу...")
            _shutdown_event.set()
            for task in _running_tasks:
                if not task.done():
                    task.cancel()

    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))
    except NotImplementedError:
        # Windows не поддерживает add_signal_handler
        signal.signal(signal.SIGINT, lambda s, f: signal_handler(s))
        signal.signal(signal.SIGTERM, lambda s, f: signal_handler(s))


async def serve(app_path: str, name: str, host: str, port: int) -> None:
    """Запускает uvicorn-сервер приложения в текущем event loop."""
    import uvicorn

    await log_info(f"Запуск {name} на {host}:{port}...", type_msg=TypeMsg.INFO)

    config = uvicorn.Config(
        app_path,
        host=host,
        port=port,
        log_level="debug" if settings.system.DEBUG else "info",
    )

    server = uvicorn.Server(config)
    try:
        await server.serve()
    except asyncio.CancelledError:
        await log_info(f"{name}: graceful shutdown", type_msg=TypeMsg.DEBUG)
        await server.shutdown()


async def run_telemetry_ingest() -> None:
    await serve(
        "src.services.telemetry_ingest.app:app",
        "Telemetry Ingest",
        settings.deployment.TELEMETRY_INGEST_HOST,
        settings.deployment.TELEMETRY_INGEST_PORT,
    )


async def run_vehicle_locations() -> None:
    await serve(
        "src.services.vehicle_locations.app:app",
        "Vehicle Locations",
        settings.deployment.VEHICLE_LOCATIONS_HOST,
        settings.deployment.VEHICLE_LOCATIONS_PORT,
    )


async def main(mode: str | None = None) -> None:
    """
    Главная функция запуска.

    Args:
        mode: Режим запуска (ingest, retrieval, all).
              Если None, берётся из COMPONENT_MODE.
    """
    global _running_tasks

    setup_logging()
    setup_signal_handlers()

    mode = mode or settings.system.COMPONENT_MODE
    if mode not in VALID_MODES:
        await log_error(f"Неизвестный режим '{mode}', ожидается один из: {', '.join(VALID_MODES)}")
        sys.exit(2)

    await log_info(
        f"{settings.system.PROJECT_NAME} v{settings.system.VERSION} — запуск в режиме '{mode}'",
        type_msg=TypeMsg.INFO,
    )

    runners = []
    if mode in ("ingest", "all"):
        runners.append(run_telemetry_ingest())
    if mode in ("retrieval", "all"):
        runners.append(run_vehicle_locations())

    _running_tasks = [asyncio.create_task(runner) for runner in runners]
    try:
        await asyncio.gather(*_running_tasks, return_exceptions=True)
    except asyncio.CancelledError:
        await log_info("Отмена всех задач...", type_msg=TypeMsg.INFO)
        for task in _running_tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*_running_tasks, return_exceptions=True)
        raise
    finally:
        await log_info("Все компоненты остановлены", type_msg=TypeMsg.INFO)


if __name__ == "__main__":
    cli_mode = sys.argv[1] if len(sys.argv) > 1 else None
    try:
        asyncio.run(main(cli_mode))
    except KeyboardInterrupt:
        print("\nПолучен сигнал остановки, завершение работы...")
