"""Pydantic schemas for log entries and the state exposed to presentation."""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from pipeline_logs.schemas.query import FilterSpec, SortColumn, SortSpec, ensure_utc

MISSING_VALUE = "?"


class OrderStatus(str, Enum):
    """Statuses a linked downstream order can be moved to."""

    PARKED = "Parked"
    PLACED = "Placed"
    BACKORDERED = "Backordered"

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]


class LogEntry(BaseModel):
    """
    Read-only projection of one processing log record.

    Built from a ``ProcessingLog`` row (``from_attributes``) or from plain
    keyword arguments. ``stage`` and ``status`` are kept as strings so that
    values outside the known enumerations still render.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True, populate_by_name=True)

    id: UUID
    timestamp: datetime = Field(validation_alias=AliasChoices("timestamp", "processed_at"))
    from_address: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("from_address", "from_email")
    )
    file_name: Optional[str] = None
    stage: str
    status: str
    order_status: Optional[str] = None
    linked_order_ref: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("linked_order_ref", "purchase_order_guid")
    )
    purchase_ref: Optional[str] = None
    log_lines: List[str] = Field(default_factory=list)

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @field_validator("log_lines", mode="before")
    @classmethod
    def default_log_lines(cls, v):
        return [] if v is None else v

    @property
    def can_update_order_status(self) -> bool:
        return self.linked_order_ref is not None

    def display_value(self, field: str) -> str:
        """Render an optional attribute, using a placeholder when absent."""
        value = getattr(self, field)
        if value is None or value == "":
            return MISSING_VALUE
        return str(value)

    def with_order_status(self, order_status: str) -> "LogEntry":
        """Return a copy with ``order_status`` replaced."""
        return self.model_copy(update={"order_status": order_status})


class LogPage(BaseModel):
    """One page of matching log entries."""

    entries: List[LogEntry]
    total: int
    page: int
    page_size: int
    total_pages: int
    page_window: List[int]
    showing_from: int
    showing_to: int
    filter: FilterSpec
    sort: SortSpec


class LogListState(BaseModel):
    """Latest applied state of a log listing."""

    entries: List[LogEntry] = Field(default_factory=list)
    total: int = 0
    current_page: int = 1
    total_pages: int = 0
    page_window: List[int] = Field(default_factory=list)
    filter: FilterSpec = Field(default_factory=FilterSpec)
    sort: SortSpec = Field(default_factory=SortSpec)
    loading: bool = False
    error: Optional[str] = None
    is_filtered: bool = False
    generation: int = 0

    @property
    def is_empty_result(self) -> bool:
        return not self.loading and self.error is None and self.total == 0

    @property
    def empty_message(self) -> Optional[str]:
        if not self.is_empty_result:
            return None
        if self.is_filtered:
            return "No logs match your current filters. Try adjusting your search criteria."
        return "There are no processing logs to display at the moment."


class StatusCount(BaseModel):
    """Count and rounded share of one status value."""

    status: str
    count: int
    percentage: int


class StatisticsState(BaseModel):
    """Latest applied one-day statistics."""

    day: date
    total_logs: int = 0
    status_breakdown: List[StatusCount] = Field(default_factory=list)
    loading: bool = False
    error: Optional[str] = None
    generation: int = 0


class ViewState(BaseModel):
    """Combined state of one operator view."""

    view_id: str
    logs: LogListState
    statistics: StatisticsState
    updating_order_status: List[UUID] = Field(default_factory=list)


class PageRequest(BaseModel):
    page: int = Field(..., description="Requested 1-based page; clamped to the valid range")


class SortRequest(BaseModel):
    column: SortColumn


class DayRequest(BaseModel):
    day: date


class FilterUpdate(BaseModel):
    """Partial filter update; only the keys sent are changed."""

    model_config = ConfigDict(extra="forbid")

    date_range: Optional[dict] = None
    from_address: Optional[str] = None
    file_name: Optional[str] = None
    stage: Optional[str] = None
    status: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    order_status: str = Field(..., min_length=1)
    view_id: Optional[str] = None


class OrderStatusResponse(BaseModel):
    success: bool
    log_id: UUID
    order_status: str


class APIResponse(BaseModel):
    """Standard API response wrapper."""

    data: Optional[dict | list] = None
    status_code: int
    message: str
    errors: Optional[List[str]] = None

    model_config = {"from_attributes": True}
