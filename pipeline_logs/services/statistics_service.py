"""One-day status statistics over the log store."""

import asyncio
import time
from datetime import date, datetime
from typing import List, Optional
from zoneinfo import ZoneInfo

from pipeline_logs.core.config import get_settings
from pipeline_logs.core.errors import QueryFailed
from pipeline_logs.core.logging import get_logger
from pipeline_logs.monitoring.metrics import MetricsCollector, get_metrics_collector
from pipeline_logs.processing.status_breakdown import breakdown, day_bounds
from pipeline_logs.schemas.log_schemas import StatisticsState, StatusCount
from pipeline_logs.services.log_store import LogStore

logger = get_logger(__name__)


def today(tz_name: str) -> date:
    """Current calendar day in the given timezone."""
    return datetime.now(ZoneInfo(tz_name)).date()


class StatisticsAggregator:
    """
    Status breakdown for a single selected calendar day.

    Runs independently of the log listing. Day changes follow the same
    generation rule as ``QueryCoordinator``: only the newest selection's
    response is applied.
    """

    component = "statistics"

    def __init__(
        self,
        store: LogStore,
        day: Optional[date] = None,
        tz_name: Optional[str] = None,
        timeout: Optional[float] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        settings = get_settings()
        self.store = store
        self.tz_name = tz_name or settings.stats_timezone
        self.timeout = timeout if timeout is not None else settings.query_timeout_seconds
        self.metrics = metrics or get_metrics_collector()

        self._day = day or today(self.tz_name)
        self._total_logs = 0
        self._breakdown: List[StatusCount] = []
        self._loading = False
        self._error: Optional[str] = None
        self._generation = 0

    @property
    def day(self) -> date:
        return self._day

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def state(self) -> StatisticsState:
        return StatisticsState(
            day=self._day,
            total_logs=self._total_logs,
            status_breakdown=list(self._breakdown),
            loading=self._loading,
            error=self._error,
            generation=self._generation,
        )

    async def select_day(self, day: date) -> StatisticsState:
        """Switch to ``day`` and fetch its breakdown."""
        self._day = day
        return await self.refresh()

    async def refresh(self) -> StatisticsState:
        """Fetch the breakdown for the currently selected day."""
        self._generation += 1
        generation = self._generation
        day = self._day
        day_start, day_end = day_bounds(day, self.tz_name)

        self._loading = True
        self._error = None

        started = time.monotonic()
        try:
            statuses = await asyncio.wait_for(
                self.store.query_status_counts(day_start, day_end), timeout=self.timeout
            )
        except QueryFailed as e:
            self.metrics.record_query(self.component, time.monotonic() - started)
            return self._fail(generation, day, e.cause)
        except asyncio.TimeoutError:
            self.metrics.record_query(self.component, time.monotonic() - started)
            return self._fail(generation, day, f"Query timed out after {self.timeout:g} seconds")
        except Exception as e:
            self.metrics.record_query(self.component, time.monotonic() - started)
            logger.error(
                "statistics_query_error", day=day.isoformat(), error=str(e), exc_info=True
            )
            return self._fail(generation, day, f"Unexpected log store error: {e}")

        self.metrics.record_query(self.component, time.monotonic() - started)
        if generation != self._generation:
            self._discard(generation)
            return self.state

        self._total_logs, self._breakdown = breakdown(statuses)
        self._loading = False

        logger.info(
            "statistics_applied",
            day=day.isoformat(),
            generation=generation,
            total_logs=self._total_logs,
            statuses=len(self._breakdown),
        )
        return self.state

    def _fail(self, generation: int, day: date, cause: str) -> StatisticsState:
        if generation != self._generation:
            self._discard(generation)
            return self.state
        self.metrics.record_query_failure(self.component)
        self._loading = False
        self._error = cause
        logger.warning(
            "statistics_query_failed", day=day.isoformat(), generation=generation, error=cause
        )
        return self.state

    def _discard(self, generation: int) -> None:
        self.metrics.record_stale_response(self.component)
        logger.info(
            "stale_response_discarded",
            component=self.component,
            generation=generation,
            current_generation=self._generation,
        )
