"""Log listing and order status endpoints.

These endpoints are stateless: each request runs one query through a
short-lived coordinator. Long-lived, per-operator state lives under
``/views``.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from pipeline_logs.api.deps import get_log_store, get_order_status_service, get_view_registry
from pipeline_logs.core.errors import QueryFailed
from pipeline_logs.core.logging import get_logger
from pipeline_logs.core.security import get_current_user
from pipeline_logs.schemas.log_schemas import (
    LogEntry,
    LogPage,
    OrderStatusResponse,
    OrderStatusUpdate,
)
from pipeline_logs.schemas.query import FilterSpec, LogStage, LogStatus, SortColumn, SortSpec
from pipeline_logs.services.log_store import LogStore
from pipeline_logs.services.order_status_service import OrderStatusService
from pipeline_logs.services.query_coordinator import QueryCoordinator
from pipeline_logs.services.views import ViewRegistry

router = APIRouter()
logger = get_logger(__name__)


@router.get("/logs", response_model=LogPage)
async def get_logs(
    from_address: Optional[str] = Query(None, description="Case-insensitive substring"),
    file_name: Optional[str] = Query(None, description="Case-insensitive substring"),
    stage: Optional[LogStage] = Query(None),
    log_status: Optional[LogStatus] = Query(None, alias="status"),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    sort: SortColumn = Query(SortColumn.TIMESTAMP),
    ascending: bool = Query(False),
    page: int = Query(1, ge=1),
    store: LogStore = Depends(get_log_store),
    current_user: dict = Depends(get_current_user),
) -> LogPage:
    """
    Retrieve processing logs with filtering, sorting and pagination.

    A date window is applied only when both ``start_date`` and ``end_date``
    are given. Pages beyond the last one are clamped.
    """
    try:
        filter_spec = FilterSpec.normalize(
            {
                "date_range": {"start": start_date, "end": end_date},
                "from_address": from_address,
                "file_name": file_name,
                "stage": stage,
                "status": log_status,
            }
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    coordinator = QueryCoordinator(
        store, filter_spec=filter_spec, sort=SortSpec(column=sort, ascending=ascending), page=page
    )
    state = await coordinator.refresh()
    if state.error is not None:
        raise QueryFailed(state.error, component=coordinator.component)

    return coordinator.to_page()


@router.get("/logs/{log_id}", response_model=LogEntry)
async def get_log(
    log_id: UUID,
    store: LogStore = Depends(get_log_store),
    current_user: dict = Depends(get_current_user),
) -> LogEntry:
    """Retrieve a specific log entry by ID."""
    entry = await store.get_entry(log_id)

    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Log entry not found"
        )

    return entry


@router.post("/logs/{log_id}/order-status", response_model=OrderStatusResponse)
async def update_order_status(
    log_id: UUID,
    body: OrderStatusUpdate,
    registry: ViewRegistry = Depends(get_view_registry),
    order_service: OrderStatusService = Depends(get_order_status_service),
    current_user: dict = Depends(get_current_user),
) -> OrderStatusResponse:
    """
    Move the order linked to a log entry to a new status.

    When ``view_id`` is given and the entry is on that view's current page,
    the entry's linked order reference is validated locally first. Every
    live view showing the entry gets the confirmed status patched in.
    """
    view = registry.find(body.view_id)
    entry = view.logs.find_entry(log_id) if view is not None else None

    committed = await order_service.set_order_status(
        entry if entry is not None else log_id,
        body.order_status,
        coordinators=registry.coordinators(),
    )

    logger.info(
        "order_status_request_completed",
        log_id=str(log_id),
        order_status=committed,
        user=current_user.get("sub", "unknown"),
    )

    return OrderStatusResponse(success=True, log_id=log_id, order_status=committed)
