"""Operator view sessions.

A view owns its own query coordinator and statistics aggregator, so query
state lives in one explicit object per view instead of in shared globals.
"""

import asyncio
import uuid
from collections import OrderedDict
from datetime import date
from typing import Any, List, Mapping, Optional
from uuid import UUID

from pipeline_logs.core.config import get_settings
from pipeline_logs.core.errors import ViewNotFound
from pipeline_logs.core.logging import get_logger
from pipeline_logs.monitoring.metrics import MetricsCollector, get_metrics_collector
from pipeline_logs.schemas.log_schemas import LogListState, StatisticsState, ViewState
from pipeline_logs.schemas.query import SortColumn
from pipeline_logs.services.log_store import LogStore
from pipeline_logs.services.query_coordinator import QueryCoordinator
from pipeline_logs.services.statistics_service import StatisticsAggregator

logger = get_logger(__name__)


class LogView:
    """The log listing and the statistics panel of one operator view."""

    def __init__(
        self,
        store: LogStore,
        view_id: Optional[str] = None,
        day: Optional[date] = None,
    ) -> None:
        self.view_id = view_id or uuid.uuid4().hex
        self.logs = QueryCoordinator(store)
        self.statistics = StatisticsAggregator(store, day=day)

    @property
    def list_state(self) -> LogListState:
        return self.logs.state

    @property
    def stats_state(self) -> StatisticsState:
        return self.statistics.state

    def state(self, updating: Optional[List[UUID]] = None) -> ViewState:
        on_page = {entry.id for entry in self.logs.entries}
        return ViewState(
            view_id=self.view_id,
            logs=self.list_state,
            statistics=self.stats_state,
            updating_order_status=[log_id for log_id in (updating or []) if log_id in on_page],
        )

    async def load(self) -> None:
        """Fetch both panels; a failure in one does not affect the other."""
        await asyncio.gather(self.logs.refresh(), self.statistics.refresh())

    async def set_page(self, page: int) -> None:
        await self.logs.set_page(page)

    async def update_filter(self, partial: Mapping[str, Any]) -> None:
        await self.logs.update_filter(partial)

    async def toggle_sort(self, column: SortColumn | str) -> None:
        await self.logs.toggle_sort(column)

    async def clear_filters(self) -> None:
        await self.logs.clear_filters()

    async def select_day(self, day: date) -> None:
        await self.statistics.select_day(day)


class ViewRegistry:
    """Live views by id, evicting the least recently used beyond ``max_views``."""

    def __init__(
        self,
        store: LogStore,
        max_views: Optional[int] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.store = store
        self.max_views = max_views or get_settings().max_views
        self.metrics = metrics or get_metrics_collector()
        self._views: "OrderedDict[str, LogView]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._views)

    def create(self, day: Optional[date] = None) -> LogView:
        view = LogView(self.store, day=day)
        self._views[view.view_id] = view
        while len(self._views) > self.max_views:
            evicted_id, _ = self._views.popitem(last=False)
            logger.info("view_evicted", view_id=evicted_id)
        self.metrics.set_active_views(len(self._views))
        logger.info("view_created", view_id=view.view_id)
        return view

    def get(self, view_id: str) -> LogView:
        view = self._views.get(view_id)
        if view is None:
            raise ViewNotFound(view_id)
        self._views.move_to_end(view_id)
        return view

    def find(self, view_id: Optional[str]) -> Optional[LogView]:
        if view_id is None:
            return None
        return self._views.get(view_id)

    def remove(self, view_id: str) -> None:
        if self._views.pop(view_id, None) is None:
            raise ViewNotFound(view_id)
        self.metrics.set_active_views(len(self._views))
        logger.info("view_removed", view_id=view_id)

    def coordinators(self) -> List[QueryCoordinator]:
        return [view.logs for view in self._views.values()]
