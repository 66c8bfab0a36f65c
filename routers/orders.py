"""
Orders Router
Version: 1.0

HTTP surface of the provider orders view: paged list, detail, status change.
"""
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from config import Settings, get_settings
from schemas import BookingStatus, DateWindow, OrdersPage, QueryParams, SortDirection, StatusUpdateRequest
from services.booking_service import BookingService
from services.errors import AdapterUnavailable, BookingNotFound, InvalidTransition
from services.view_projector import project_detail, project_row

router = APIRouter()
logger = structlog.get_logger("orders")

STATUS_FILTERS = {"all"} | {s.value for s in BookingStatus}


def get_booking_service(request: Request) -> BookingService:
    # Built once in main.py lifespan
    return request.app.state.booking_service


def _unavailable(e: AdapterUnavailable) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail={"error": "adapter_unavailable", "source": e.source, "message": str(e), "retryable": e.retryable}
    )


@router.get("", response_model=OrdersPage)
async def list_orders(
    status_filter: str = Query("all", alias="status"),
    date: DateWindow = Query(DateWindow.ALL),
    service_type: str = Query("all"),
    sort: str = Query("created_at"),
    direction: SortDirection = Query(SortDirection.DESC),
    page: int = Query(1),
    page_size: Optional[int] = Query(None, ge=1),
    service: BookingService = Depends(get_booking_service),
    settings: Settings = Depends(get_settings)
):
    """
    Merged orders of both sources, filtered, sorted and paged.
    Send page=1 whenever a filter or the sort changes.
    """
    if status_filter not in STATUS_FILTERS:
        raise HTTPException(
            status_code=422,
            detail=f"Unknown status filter '{status_filter}'"
        )

    params = QueryParams(
        status=status_filter,
        date=date,
        service_type=service_type,
        sort=sort,
        direction=direction,
        page=page,
        page_size=min(page_size or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
    )

    result, merged = await service.list_orders(params)

    if merged.partial:
        logger.warning("Serving partial orders view", failed_sources=[s.value for s in merged.failed_sources])

    return OrdersPage(
        items=[project_row(b) for b in result.items],
        total_count=result.total_count,
        total_pages=result.total_pages,
        page=result.page,
        page_size=result.page_size,
        dropped_count=merged.dropped_count,
        partial=merged.partial,
        failed_sources=[s.value for s in merged.failed_sources]
    )


@router.get("/{booking_id}")
async def get_order(
    booking_id: str,
    service: BookingService = Depends(get_booking_service)
):
    try:
        booking = await service.get_booking(booking_id)
    except BookingNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except AdapterUnavailable as e:
        raise _unavailable(e)

    return project_detail(booking)


@router.put("/{booking_id}/status")
async def update_order_status(
    booking_id: str,
    payload: StatusUpdateRequest,
    service: BookingService = Depends(get_booking_service)
):
    """
    Change a booking's status. 409 when the lifecycle forbids the move,
    503 (retryable) when the owning source rejected or missed the write.
    """
    try:
        result = await service.change_status(booking_id, payload.status, notes=payload.notes)
    except BookingNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except AdapterUnavailable as e:
        raise _unavailable(e)

    if isinstance(result.error, InvalidTransition):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "error": "invalid_transition",
                "from": result.error.from_status,
                "to": result.error.to_status,
                "message": str(result.error)
            }
        )
    if isinstance(result.error, AdapterUnavailable):
        raise _unavailable(result.error)

    logger.info(
        "Order status changed",
        booking_id=booking_id,
        from_status=result.from_status.value,
        to_status=result.to_status.value
    )
    return project_detail(result.booking)
