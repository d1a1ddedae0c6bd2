"""Coordinates filtered, sorted, paged queries against the log store."""

import asyncio
import time
from typing import Any, List, Mapping, Optional, Tuple
from uuid import UUID

from pipeline_logs.core.config import get_settings
from pipeline_logs.core.errors import QueryFailed
from pipeline_logs.core.logging import get_logger
from pipeline_logs.monitoring.metrics import MetricsCollector, get_metrics_collector
from pipeline_logs.processing.pagination import clamp, derive, page_window, result_range
from pipeline_logs.schemas.log_schemas import LogEntry, LogListState, LogPage
from pipeline_logs.schemas.query import FilterSpec, SortColumn, SortSpec
from pipeline_logs.services.log_store import LogStore

logger = get_logger(__name__)


class QueryCoordinator:
    """
    Owns the query parameters and the latest applied result of one log listing.

    Every issued query is tagged with a generation number. A response is
    applied only if its generation is still the newest one when it arrives,
    so a slow, superseded request can never overwrite a later result. No
    cancellation is sent to the store; stale responses are dropped.
    """

    component = "logs"

    def __init__(
        self,
        store: LogStore,
        filter_spec: Optional[FilterSpec] = None,
        sort: Optional[SortSpec] = None,
        page: int = 1,
        page_size: Optional[int] = None,
        timeout: Optional[float] = None,
        window_size: Optional[int] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        settings = get_settings()
        self.store = store
        self.page_size = page_size if page_size is not None else settings.page_size
        self.timeout = timeout if timeout is not None else settings.query_timeout_seconds
        self.window_size = window_size if window_size is not None else settings.page_window_size
        if self.page_size < 1 or self.window_size < 1:
            raise ValueError("page_size and window_size must be >= 1")
        self.metrics = metrics or get_metrics_collector()

        self._filter = filter_spec or FilterSpec()
        self._sort = sort or SortSpec()
        self._page = max(1, page)

        self._entries: List[LogEntry] = []
        self._total = 0
        self._total_pages = 0
        self._loading = False
        self._error: Optional[str] = None
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def filter(self) -> FilterSpec:
        return self._filter

    @property
    def sort(self) -> SortSpec:
        return self._sort

    @property
    def current_page(self) -> int:
        return self._page

    @property
    def entries(self) -> List[LogEntry]:
        return list(self._entries)

    @property
    def state(self) -> LogListState:
        """Snapshot of the latest applied state."""
        return LogListState(
            entries=list(self._entries),
            total=self._total,
            current_page=self._page,
            total_pages=self._total_pages,
            page_window=page_window(self._page, self._total_pages, self.window_size),
            filter=self._filter,
            sort=self._sort,
            loading=self._loading,
            error=self._error,
            is_filtered=not self._filter.is_empty(),
            generation=self._generation,
        )

    def to_page(self) -> LogPage:
        """Current result as a page payload."""
        showing_from, showing_to = result_range(self._page, self.page_size, self._total)
        return LogPage(
            entries=list(self._entries),
            total=self._total,
            page=self._page,
            page_size=self.page_size,
            total_pages=self._total_pages,
            page_window=page_window(self._page, self._total_pages, self.window_size),
            showing_from=showing_from,
            showing_to=showing_to,
            filter=self._filter,
            sort=self._sort,
        )

    async def refresh(self) -> LogListState:
        """Re-issue the current query. This is also the user-initiated retry."""
        return await self._issue(allow_reclamp=True)

    async def set_page(self, page: int) -> LogListState:
        """Navigate to ``page`` (clamped); filter and sort stay untouched."""
        target = clamp(page, self._total_pages)
        if target == self._page and not self._loading and self._generation > 0:
            return self.state
        self._page = target
        return await self.refresh()

    async def update_filter(self, partial: Mapping[str, Any]) -> LogListState:
        """Merge a partial filter change and go back to page 1."""
        self._filter = self._filter.merge(partial)
        self._page = 1
        return await self.refresh()

    async def clear_filters(self) -> LogListState:
        """Drop every filter and go back to page 1."""
        self._filter = FilterSpec()
        self._page = 1
        return await self.refresh()

    async def toggle_sort(self, column: SortColumn | str) -> LogListState:
        """Apply the column toggle rule and go back to page 1."""
        self._sort = self._sort.toggle(column)
        self._page = 1
        return await self.refresh()

    def patch_order_status(self, log_id: UUID, order_status: str) -> bool:
        """Replace the matching entry on the current page with an updated copy."""
        for index, entry in enumerate(self._entries):
            if entry.id == log_id:
                self._entries[index] = entry.with_order_status(order_status)
                return True
        return False

    def find_entry(self, log_id: UUID) -> Optional[LogEntry]:
        for entry in self._entries:
            if entry.id == log_id:
                return entry
        return None

    async def _fetch(
        self, filter_spec: FilterSpec, sort: SortSpec, page: int
    ) -> Tuple[List[LogEntry], int]:
        try:
            return await asyncio.wait_for(
                self.store.query_logs(filter_spec, sort, page, self.page_size),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise QueryFailed(
                f"Query timed out after {self.timeout:g} seconds", component=self.component
            ) from e

    async def _issue(self, allow_reclamp: bool) -> LogListState:
        self._generation += 1
        generation = self._generation
        filter_spec, sort, page = self._filter, self._sort, self._page

        self._loading = True
        self._error = None

        logger.debug(
            "log_query_issued",
            generation=generation,
            page=page,
            sort=sort.column.value,
            ascending=sort.ascending,
        )

        started = time.monotonic()
        try:
            entries, total = await self._fetch(filter_spec, sort, page)
        except QueryFailed as e:
            self.metrics.record_query(self.component, time.monotonic() - started)
            return self._fail(generation, e.cause)
        except Exception as e:
            self.metrics.record_query(self.component, time.monotonic() - started)
            logger.error(
                "log_query_error", generation=generation, error=str(e), exc_info=True
            )
            return self._fail(generation, f"Unexpected log store error: {e}")

        self.metrics.record_query(self.component, time.monotonic() - started)
        if generation != self._generation:
            self._discard(generation)
            return self.state

        self._entries = list(entries)
        self._total = total
        self._total_pages = derive(total, self.page_size).total_pages
        self._loading = False

        logger.info(
            "log_query_applied",
            generation=generation,
            page=page,
            total=total,
            returned=len(entries),
        )

        # The store may have shrunk since the page was chosen.
        valid_page = clamp(page, self._total_pages)
        if valid_page != page and allow_reclamp:
            self._page = valid_page
            return await self._issue(allow_reclamp=False)

        return self.state

    def _fail(self, generation: int, cause: str) -> LogListState:
        if generation != self._generation:
            self._discard(generation)
            return self.state
        self.metrics.record_query_failure(self.component)
        self._loading = False
        self._error = cause
        logger.warning("log_query_failed", generation=generation, error=cause)
        return self.state

    def _discard(self, generation: int) -> None:
        self.metrics.record_stale_response(self.component)
        logger.info(
            "stale_response_discarded",
            component=self.component,
            generation=generation,
            current_generation=self._generation,
        )
