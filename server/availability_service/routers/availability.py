"""Availability router for device status queries and updates."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import JSONResponse

from ..core.dependencies import get_availability_service
from ..core.exceptions import (
    ConflictError,
    InternalServerError,
    NotFoundError,
    ValidationError,
)
from ..domain.availability import UNSET
from ..schemas.availability import AvailabilityResponse, UpdateAvailabilityRequest
from ..services.availability_service import AvailabilityService
from ..services.results import ResultCode, ServiceResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/availability", tags=["availability"])


def raise_for_result(result: ServiceResult, device_id: Optional[str], request: Request) -> None:
    """Translate a failed service result into a Problem Details exception."""
    if result.ok:
        return

    instance = str(request.url.path)
    if result.code == ResultCode.VALIDATION_ERROR:
        raise ValidationError(field=result.field or "request", detail=result.error, instance=instance)
    if result.code == ResultCode.NOT_FOUND:
        raise NotFoundError(resource_type="availability", resource_id=device_id, instance=instance)
    if result.code == ResultCode.CONFLICT:
        raise ConflictError(detail=result.error, instance=instance)
    raise InternalServerError(instance=instance)


@router.get("", response_model=list[AvailabilityResponse])
async def list_availability(
    request: Request,
    device_ids: Optional[str] = Query(None, alias="deviceIds", description="Comma-separated device IDs"),
    service: AvailabilityService = Depends(get_availability_service),
) -> JSONResponse:
    """
    Get availability for several devices at once.

    Devices without a record are left out of the response.
    """
    if device_ids is None:
        raise ValidationError(field="deviceIds", detail="deviceIds query parameter is required.")

    result = await service.get_availability_many(device_ids.split(","))
    raise_for_result(result, None, request)

    return JSONResponse(
        status_code=200,
        content=[
            AvailabilityResponse.from_record(record).model_dump(mode="json", by_alias=True)
            for record in result.data
        ]
    )


@router.get("/{device_id}", response_model=AvailabilityResponse)
async def get_availability(
    device_id: str,
    request: Request,
    service: AvailabilityService = Depends(get_availability_service),
) -> JSONResponse:
    """Get the availability record of one device."""
    result = await service.get_availability(device_id)
    raise_for_result(result, device_id, request)

    response_data = AvailabilityResponse.from_record(result.data)
    return JSONResponse(
        status_code=200,
        content=response_data.model_dump(mode="json", by_alias=True)
    )


@router.put("/{device_id}", response_model=AvailabilityResponse)
async def update_availability(
    device_id: str,
    body: UpdateAvailabilityRequest,
    request: Request,
    service: AvailabilityService = Depends(get_availability_service),
) -> JSONResponse:
    """
    Set a device's availability status.

    Unknown devices are created. Repeating the same request is a no-op and
    publishes no event. Omit ``reservationId`` to keep the current value.
    """
    if "reservation_id" in body.model_fields_set:
        reservation_id = body.reservation_id
    else:
        reservation_id = UNSET

    result = await service.reconcile(device_id, body.status, reservation_id)
    raise_for_result(result, device_id, request)

    logger.info(
        "Availability updated via API",
        extra={
            "device_id": result.data.device_id,
            "status": result.data.status.value,
            "changed": result.changed,
        }
    )

    response_data = AvailabilityResponse.from_record(result.data)
    return JSONResponse(
        status_code=200,
        content=response_data.model_dump(mode="json", by_alias=True)
    )


@router.delete("/{device_id}", status_code=204)
async def delete_availability(
    device_id: str,
    request: Request,
    service: AvailabilityService = Depends(get_availability_service),
) -> Response:
    """Delete a device's availability record. Deleting a missing record succeeds."""
    result = await service.delete_availability(device_id)
    raise_for_result(result, device_id, request)
    return Response(status_code=204)
