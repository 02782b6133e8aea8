from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from src.common.logger import log_warning
from src.core.locations.exceptions import InvalidTelemetryError
from src.core.locations.ingestion import IngestionOrchestrator
from src.core.locations.models import TelemetryReport
from src.services.telemetry_ingest.dependencies import get_orchestrator
from src.shared.models.common import ErrorResponse

router = APIRouter(tags=["Telemetry"])


@router.post(
    "/telemetry",
    responses={400: {"model": ErrorResponse, "description": "Нет device_id"}},
    summary="Принять отчёт устройства",
)
async def ingest_telemetry(
    report: TelemetryReport,
    orchestrator: IngestionOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """
    Записывает отчёт в историю, обновляет кэш и публикует позицию.

    Ответ 200 возвращается, даже если отдельные операции завершились ошибкой:
    результат каждой операции смотрите в теле ответа.
    """
    try:
        result = await orchestrator.ingest(report)
    except InvalidTelemetryError as e:
        await log_warning(f"Отчёт отклонён: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return result.to_response()


@router.post("/telemetry/batch", summary="Пакетный приём отчётов")
async def ingest_telemetry_batch(
    reports: list[TelemetryReport],
    orchestrator: IngestionOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """Каждый отчёт обрабатывается независимо; отклонённые попадают в error_count."""
    return await orchestrator.ingest_batch(reports)
