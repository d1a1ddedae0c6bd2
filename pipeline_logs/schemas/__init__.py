"""Pydantic schemas for query descriptors, log entries and view state."""

from pipeline_logs.schemas.log_schemas import (
    LogEntry,
    LogListState,
    LogPage,
    OrderStatus,
    StatisticsState,
    StatusCount,
    ViewState,
)
from pipeline_logs.schemas.query import FilterSpec, SortColumn, SortSpec

__all__ = [
    "FilterSpec",
    "SortSpec",
    "SortColumn",
    "LogEntry",
    "LogPage",
    "LogListState",
    "OrderStatus",
    "StatusCount",
    "StatisticsState",
    "ViewState",
]
