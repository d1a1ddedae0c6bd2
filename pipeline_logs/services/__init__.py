"""Business logic services."""

from pipeline_logs.services.log_store import LogStore, SqlLogStore
from pipeline_logs.services.order_status_service import OrderStatusService
from pipeline_logs.services.query_coordinator import QueryCoordinator
from pipeline_logs.services.statistics_service import StatisticsAggregator
from pipeline_logs.services.views import LogView, ViewRegistry

__all__ = [
    "LogStore",
    "SqlLogStore",
    "QueryCoordinator",
    "StatisticsAggregator",
    "OrderStatusService",
    "LogView",
    "ViewRegistry",
]
