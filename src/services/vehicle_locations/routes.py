from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.core.locations.retrieval import RetrievalService
from src.services.vehicle_locations.dependencies import get_retrieval_service
from src.shared.models.common import ErrorResponse

router = APIRouter(tags=["Vehicles"])


@router.get(
    "/vehicles",
    responses={400: {"model": ErrorResponse, "description": "Передан только vehicleid или только deviceid"}},
    summary="Текущие позиции транспорта",
)
async def get_vehicles(
    orgid: int = Query(..., description="ID организации"),
    vehicleid: Optional[int] = Query(None, description="ID транспорта"),
    deviceid: Optional[str] = Query(None, description="ID устройства"),
    service: RetrievalService = Depends(get_retrieval_service),
) -> dict[str, Any]:
    """
    С vehicleid и deviceid возвращает позицию одного транспорта,
    только с orgid — позиции всего транспорта организации.
    """
    if (vehicleid is None) != (deviceid is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="vehicleid and deviceid must be provided together",
        )

    if vehicleid is not None:
        vehicles = await service.get(orgid, vehicleid, deviceid)
    else:
        vehicles = await service.list_by_org(orgid)

    return {
        "message": "Vehicle data retrieved",
        "vehicles": [vehicle.to_response() for vehicle in vehicles],
    }
