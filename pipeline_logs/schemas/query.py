"""Filter and sort descriptors for log queries."""

from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

if TYPE_CHECKING:
    from pipeline_logs.schemas.log_schemas import LogEntry


def ensure_utc(value: datetime) -> datetime:
    """Normalize a timestamp to timezone-aware UTC (naive values are taken as UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class LogStage(str, Enum):
    """Pipeline stages that produce log records."""

    PROCESSING_EMAIL = "processing_email"
    PROCESSING_ATTACHMENTS = "processing_attachments"
    AI_PARSING = "ai_parsing"
    PARSE_JSON_AI_RESPONSE = "parse_json_ai_response"
    UNLEASHED_SYNC = "unleashed_sync"
    CUSTOMER_SYNC = "customer_sync"


class LogStatus(str, Enum):
    """Outcome status of a log record."""

    ERROR = "error"
    INFO = "info"
    SUCCESS = "success"


class SortColumn(str, Enum):
    """Columns a log listing can be ordered by."""

    TIMESTAMP = "timestamp"
    FROM_ADDRESS = "from_address"
    FILE_NAME = "file_name"
    STAGE = "stage"
    STATUS = "status"


class DateRange(BaseModel):
    """Inclusive timestamp window."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def normalize_bound(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @model_validator(mode="after")
    def check_order(self) -> "DateRange":
        if self.start > self.end:
            raise ValueError("date range start must not be after end")
        return self

    def contains(self, moment: datetime) -> bool:
        return self.start <= ensure_utc(moment) <= self.end


class FilterSpec(BaseModel):
    """
    Normalized, composable predicate over log entries.

    Every field is optional; an absent field places no constraint, and the
    present fields combine with AND semantics only.
    """

    model_config = ConfigDict(frozen=True)

    date_range: Optional[DateRange] = None
    from_address: Optional[str] = None
    file_name: Optional[str] = None
    stage: Optional[LogStage] = None
    status: Optional[LogStatus] = None

    @field_validator("from_address", "file_name", "stage", "status", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("date_range", mode="before")
    @classmethod
    def require_both_bounds(cls, v: Any) -> Any:
        # A half-open window is treated as no window at all.
        if isinstance(v, Mapping):
            start = v.get("start")
            end = v.get("end")
            if isinstance(start, str):
                start = start.strip() or None
            if isinstance(end, str):
                end = end.strip() or None
            if start is None or end is None:
                return None
            return {"start": start, "end": end}
        return v

    @classmethod
    def normalize(cls, raw: Union["FilterSpec", Mapping[str, Any], None]) -> "FilterSpec":
        """Build a FilterSpec from raw input, turning blank strings into absent fields."""
        if raw is None:
            return cls()
        if isinstance(raw, FilterSpec):
            return raw
        return cls.model_validate(dict(raw))

    def is_empty(self) -> bool:
        """True when no field constrains the result set."""
        return all(getattr(self, name) is None for name in type(self).model_fields)

    def merge(self, partial: Mapping[str, Any]) -> "FilterSpec":
        """Return a new spec with the keys in ``partial`` replaced."""
        unknown = set(partial) - set(type(self).model_fields)
        if unknown:
            raise ValueError(f"Unknown filter fields: {sorted(unknown)}")
        data = self.model_dump()
        data.update(partial)
        return type(self).normalize(data)

    def matches(self, entry: "LogEntry") -> bool:
        """Evaluate the conjunction of all present predicates against an entry."""
        if self.date_range is not None and not self.date_range.contains(entry.timestamp):
            return False
        if self.from_address is not None and not _contains_ci(
            entry.from_address, self.from_address
        ):
            return False
        if self.file_name is not None and not _contains_ci(entry.file_name, self.file_name):
            return False
        if self.stage is not None and entry.stage != self.stage.value:
            return False
        if self.status is not None and entry.status != self.status.value:
            return False
        return True


def _contains_ci(haystack: Optional[str], needle: str) -> bool:
    if haystack is None:
        return False
    return needle.casefold() in haystack.casefold()


class SortSpec(BaseModel):
    """Selected sort column plus direction. Defaults to newest first."""

    model_config = ConfigDict(frozen=True)

    column: SortColumn = SortColumn.TIMESTAMP
    ascending: bool = False

    def toggle(self, column: Union[SortColumn, str]) -> "SortSpec":
        """
        Apply a header click.

        The same column flips direction; a different column always starts
        descending.
        """
        requested = SortColumn(column)
        if requested == self.column:
            return SortSpec(column=self.column, ascending=not self.ascending)
        return SortSpec(column=requested, ascending=False)
