"""Daily statistics endpoint."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from pipeline_logs.api.deps import get_log_store
from pipeline_logs.core.errors import QueryFailed
from pipeline_logs.core.security import get_current_user
from pipeline_logs.schemas.log_schemas import StatisticsState
from pipeline_logs.services.log_store import LogStore
from pipeline_logs.services.statistics_service import StatisticsAggregator

router = APIRouter()


@router.get("/statistics", response_model=StatisticsState)
async def get_statistics(
    day: Optional[date] = Query(None, description="Calendar day; defaults to today"),
    store: LogStore = Depends(get_log_store),
    current_user: dict = Depends(get_current_user),
) -> StatisticsState:
    """
    Status breakdown for one calendar day in the configured store timezone.

    A day without logs returns ``total_logs=0`` and an empty breakdown.
    """
    aggregator = StatisticsAggregator(store, day=day)
    state = await aggregator.refresh()
    if state.error is not None:
        raise QueryFailed(state.error, component=aggregator.component)
    return state
