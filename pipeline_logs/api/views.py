"""View session endpoints.

A view keeps the filter, sort, page and selected day of one operator
between requests. Every mutator returns the full view state; query
failures are reported in ``logs.error`` / ``statistics.error`` rather than
as HTTP errors, so one failing panel never hides the other.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from pipeline_logs.api.deps import get_order_status_service, get_view_registry
from pipeline_logs.core.security import get_current_user
from pipeline_logs.schemas.log_schemas import (
    DayRequest,
    FilterUpdate,
    PageRequest,
    SortRequest,
    ViewState,
)
from pipeline_logs.services.order_status_service import OrderStatusService
from pipeline_logs.services.views import LogView, ViewRegistry

router = APIRouter(dependencies=[Depends(get_current_user)])


def _state(view: LogView, order_service: OrderStatusService) -> ViewState:
    return view.state(updating=order_service.updating)


@router.post("/views", response_model=ViewState, status_code=status.HTTP_201_CREATED)
async def create_view(
    body: Optional[DayRequest] = None,
    registry: ViewRegistry = Depends(get_view_registry),
    order_service: OrderStatusService = Depends(get_order_status_service),
) -> ViewState:
    """Create a view and load its first page and today's statistics."""
    view = registry.create(day=body.day if body else None)
    await view.load()
    return _state(view, order_service)


@router.get("/views/{view_id}", response_model=ViewState)
async def get_view(
    view_id: str,
    registry: ViewRegistry = Depends(get_view_registry),
    order_service: OrderStatusService = Depends(get_order_status_service),
) -> ViewState:
    return _state(registry.get(view_id), order_service)


@router.delete("/views/{view_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_view(
    view_id: str,
    registry: ViewRegistry = Depends(get_view_registry),
) -> None:
    registry.remove(view_id)


@router.put("/views/{view_id}/page", response_model=ViewState)
async def set_page(
    view_id: str,
    body: PageRequest,
    registry: ViewRegistry = Depends(get_view_registry),
    order_service: OrderStatusService = Depends(get_order_status_service),
) -> ViewState:
    """Navigate to a page; out-of-range pages are clamped."""
    view = registry.get(view_id)
    await view.set_page(body.page)
    return _state(view, order_service)


@router.patch("/views/{view_id}/filter", response_model=ViewState)
async def update_filter(
    view_id: str,
    body: FilterUpdate,
    registry: ViewRegistry = Depends(get_view_registry),
    order_service: OrderStatusService = Depends(get_order_status_service),
) -> ViewState:
    """Change only the filter fields sent; returns to page 1."""
    view = registry.get(view_id)
    try:
        await view.update_filter(body.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return _state(view, order_service)


@router.delete("/views/{view_id}/filter", response_model=ViewState)
async def clear_filters(
    view_id: str,
    registry: ViewRegistry = Depends(get_view_registry),
    order_service: OrderStatusService = Depends(get_order_status_service),
) -> ViewState:
    view = registry.get(view_id)
    await view.clear_filters()
    return _state(view, order_service)


@router.post("/views/{view_id}/sort", response_model=ViewState)
async def toggle_sort(
    view_id: str,
    body: SortRequest,
    registry: ViewRegistry = Depends(get_view_registry),
    order_service: OrderStatusService = Depends(get_order_status_service),
) -> ViewState:
    """Same column flips direction; a new column starts descending."""
    view = registry.get(view_id)
    await view.toggle_sort(body.column)
    return _state(view, order_service)


@router.put("/views/{view_id}/day", response_model=ViewState)
async def select_day(
    view_id: str,
    body: DayRequest,
    registry: ViewRegistry = Depends(get_view_registry),
    order_service: OrderStatusService = Depends(get_order_status_service),
) -> ViewState:
    view = registry.get(view_id)
    await view.select_day(body.day)
    return _state(view, order_service)


@router.post("/views/{view_id}/refresh", response_model=ViewState)
async def refresh_view(
    view_id: str,
    registry: ViewRegistry = Depends(get_view_registry),
    order_service: OrderStatusService = Depends(get_order_status_service),
) -> ViewState:
    """Re-issue both queries; this is how a failed query is retried."""
    view = registry.get(view_id)
    await view.load()
    return _state(view, order_service)
