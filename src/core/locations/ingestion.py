# src/core/locations/ingestion.py
"""
Приём телеметрии: проверка координат, подстановка позиции из истории,
запись в историю, кэш и Pub/Sub.

Запись в историю, кэш и публикация выполняются параллельно, и результат
каждой операции собирается независимо: сбой одной не отменяет другие.
Приём считается неуспешным, только если отчёт не попал в историю.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Optional

from src.common.constants import (
    SKIP_NO_IDENTITY,
    SKIP_NO_POSITION,
    IngestionState,
    IngestionStatus,
)
from src.common.logger import log_debug, log_error, log_info, log_warning
from src.core.locations.cache import PositionCache
from src.core.locations.exceptions import InvalidTelemetryError
from src.core.locations.fallback import FallbackResolver
from src.core.locations.models import (
    IdentityTriple,
    IngestionResult,
    Position,
    SinkOutcome,
    TelemetryReport,
)
from src.core.locations.publisher import UpdatePublisher
from src.core.locations.repository import LocationRepository
from src.core.locations.validator import is_usable


class IngestionOrchestrator:
    """
    Оркестратор приёма одного отчёта.

    Состояния: received -> validated -> position_resolved | position_absent
    -> persisted -> cache_published | cache_skipped -> completed.
    """

    def __init__(
        self,
        repository: LocationRepository,
        cache: PositionCache,
        publisher: UpdatePublisher,
        fallback: FallbackResolver | None = None,
    ) -> None:
        self._repository = repository
        self._cache = cache
        self._publisher = publisher
        self._fallback = fallback or FallbackResolver(repository)

    async def ingest(self, report: TelemetryReport) -> IngestionResult:
        """
        Обрабатывает один отчёт.

        Raises:
            InvalidTelemetryError: нет device_id (побочных эффектов не было)
        """
        trail = [IngestionState.RECEIVED]

        device_id = (report.device_id or "").strip()
        if not device_id:
            raise InvalidTelemetryError("Invalid data: device_id is required")

        # Идентичность определяется до проверки координат
        identity = await self._resolve_identity(report, device_id)

        position: Optional[Position] = None
        if is_usable(report.latitude, report.longitude):
            position = Position.from_report(report)
        trail.append(IngestionState.VALIDATED)

        if position is None:
            await log_warning(
                f"Некорректные или отсутствующие координаты {device_id}: "
                f"latitude={report.latitude}, longitude={report.longitude}"
            )
            position = await self._fallback.resolve_last_known(device_id)

        trail.append(
            IngestionState.POSITION_RESOLVED if position else IngestionState.POSITION_ABSENT
        )

        skip_reason: str | None = None
        if position is None:
            skip_reason = SKIP_NO_POSITION
        elif identity is None:
            skip_reason = SKIP_NO_IDENTITY

        operations: list[Awaitable[SinkOutcome]] = [
            self._persist(report, identity if skip_reason is None else None, position),
        ]
        if skip_reason is None:
            operations.append(self._write_cache(identity, position))
            operations.append(self._publish(identity, position))

        settled = await asyncio.gather(*operations, return_exceptions=True)

        persistence = await self._settle("history", device_id, settled[0])
        trail.append(IngestionState.PERSISTED)

        if skip_reason is None:
            cache = await self._settle("cache", device_id, settled[1])
            publish = await self._settle("publish", device_id, settled[2])
            trail.append(IngestionState.CACHE_PUBLISHED)
        else:
            await log_info(f"Кэш и публикация пропущены для {device_id}: {skip_reason}")
            cache = SinkOutcome.skipped(skip_reason)
            publish = SinkOutcome.skipped(skip_reason)
            trail.append(IngestionState.CACHE_SKIPPED)

        trail.append(IngestionState.COMPLETED)

        result = IngestionResult(
            device_id=device_id,
            key=identity.key if identity else None,
            position_source=position.source if position else None,
            persistence=persistence,
            cache=cache,
            publish=publish,
            state_trail=trail,
        )
        await log_debug(
            f"Приём {device_id}: {result.status.value} "
            f"(history={persistence.status.value}, cache={cache.status.value}, "
            f"publish={publish.status.value})"
        )
        return result

    async def ingest_batch(self, reports: list[TelemetryReport]) -> dict[str, Any]:
        """
        Пакетный приём: каждый отчёт обрабатывается независимо.

        Returns:
            Счётчики и результаты в порядке входных отчётов
        """
        settled = await asyncio.gather(
            *(self.ingest(report) for report in reports),
            return_exceptions=True,
        )

        results: list[dict[str, Any]] = []
        error_count = 0
        for report, outcome in zip(reports, settled):
            if isinstance(outcome, IngestionResult):
                results.append(outcome.to_response())
                if outcome.status != IngestionStatus.COMPLETE:
                    error_count += 1
            else:
                error_count += 1
                results.append({"device_id": report.device_id, "error": str(outcome)})

        return {
            "success_count": len(reports) - error_count,
            "error_count": error_count,
            "results": results,
        }

    # =========================================================================
    # ШАГИ ОБРАБОТКИ
    # =========================================================================

    async def _resolve_identity(
        self,
        report: TelemetryReport,
        device_id: str,
    ) -> Optional[IdentityTriple]:
        """Тройка идентичности из отчёта или по привязке устройства к транспорту."""
        if report.org_id is not None and report.vehicle_id is not None:
            return IdentityTriple(report.org_id, report.vehicle_id, device_id)

        try:
            vehicle = await self._repository.find_vehicle_by_device(device_id)
        except Exception as e:
            await log_warning(f"Не удалось определить транспорт устройства {device_id}: {e}")
            return None

        if vehicle is None:
            await log_debug(f"Устройство {device_id} не привязано к транспорту")
            return None

        if report.org_id is not None and report.org_id != vehicle.organization_id:
            await log_warning(
                f"Устройство {device_id} принадлежит организации {vehicle.organization_id}, "
                f"а не {report.org_id}"
            )
            return None

        if report.vehicle_id is not None and report.vehicle_id != vehicle.id:
            await log_warning(
                f"Устройство {device_id} привязано к транспорту {vehicle.id}, "
                f"а не {report.vehicle_id}"
            )
            return None

        return vehicle.identity

    async def _persist(
        self,
        report: TelemetryReport,
        identity: Optional[IdentityTriple],
        position: Optional[Position],
    ) -> SinkOutcome:
        """Записывает исходный отчёт в историю и, если возможно, обновляет позицию транспорта."""
        insert_id = await self._repository.insert_history(report)
        details: dict[str, Any] = {"insert_id": insert_id}

        if identity is not None and position is not None:
            try:
                details["vehicle_rows_updated"] = await self._repository.update_vehicle_position(
                    identity.org_id,
                    identity.vehicle_id,
                    identity.device_id,
                    float(position.latitude),
                    float(position.longitude),
                    position.timestamp or report.captured_at,
                )
            except Exception as e:
                await log_warning(f"Не удалось обновить позицию транспорта {identity.key}: {e}")
                details["vehicle_update_error"] = str(e)

        return SinkOutcome.ok("Data saved to database successfully", **details)

    async def _write_cache(self, identity: IdentityTriple, position: Position) -> SinkOutcome:
        await self._cache.set_with_ttl(identity.key, position.to_cache_entry())
        return SinkOutcome.ok("Position cached", key=identity.key, ttl=self._cache.ttl)

    async def _publish(self, identity: IdentityTriple, position: Position) -> SinkOutcome:
        receivers = await self._publisher.publish(identity.key, position.to_payload(identity))
        return SinkOutcome.ok(
            "Data published successfully",
            channel=identity.key,
            receivers=receivers,
        )

    @staticmethod
    async def _settle(sink: str, device_id: str, outcome: SinkOutcome | BaseException) -> SinkOutcome:
        """Превращает исключение операции в зафиксированный результат."""
        if isinstance(outcome, SinkOutcome):
            return outcome

        await log_error(f"Операция {sink} для {device_id} завершилась ошибкой: {outcome}")
        return SinkOutcome.failed(outcome)
