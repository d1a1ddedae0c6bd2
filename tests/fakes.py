"""In-memory collaborators for tests."""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from pipeline_logs.core.errors import QueryFailed
from pipeline_logs.schemas.log_schemas import LogEntry
from pipeline_logs.schemas.query import FilterSpec, SortColumn, SortSpec
from pipeline_logs.services.order_authority import AuthorityResult

BASE_TIME = datetime(2025, 3, 14, 9, 0, 0, tzinfo=timezone.utc)


def make_row(index: int = 0, **overrides: Any) -> Dict[str, Any]:
    """Column values for one ``processing_logs`` row."""
    row = {
        "id": uuid.uuid4(),
        "processed_at": BASE_TIME + timedelta(minutes=index),
        "from_email": f"buyer{index}@example.com",
        "file_name": f"PO-{index:04d}.pdf",
        "stage": "processing_email",
        "status": "success",
        "order_status": None,
        "purchase_order_guid": None,
        "purchase_ref": None,
        "log_lines": [f"line {index}"],
    }
    row.update(overrides)
    return row


def make_entry(index: int = 0, **overrides: Any) -> LogEntry:
    return LogEntry.model_validate(make_row(index, **overrides))


_SORT_FIELDS = {
    SortColumn.TIMESTAMP: "timestamp",
    SortColumn.FROM_ADDRESS: "from_address",
    SortColumn.FILE_NAME: "file_name",
    SortColumn.STAGE: "stage",
    SortColumn.STATUS: "status",
}


class InMemoryLogStore:
    """LogStore over a list of entries, filtering with ``FilterSpec.matches``."""

    def __init__(self, entries: Optional[List[LogEntry]] = None) -> None:
        self.entries = list(entries or [])
        self.calls: List[Tuple[FilterSpec, SortSpec, int, int]] = []
        self.status_calls: List[Tuple[datetime, datetime]] = []
        self.fail_with: Optional[str] = None

    async def query_logs(
        self, filter_spec: FilterSpec, sort: SortSpec, page: int, page_size: int
    ) -> Tuple[List[LogEntry], int]:
        self.calls.append((filter_spec, sort, page, page_size))
        if self.fail_with:
            raise QueryFailed(self.fail_with)
        matching = [e for e in self.entries if filter_spec.matches(e)]
        field = _SORT_FIELDS[sort.column]
        matching.sort(
            key=lambda e: (getattr(e, field) or "", str(e.id)), reverse=not sort.ascending
        )
        start = (page - 1) * page_size
        return matching[start:start + page_size], len(matching)

    async def query_status_counts(self, day_start: datetime, day_end: datetime) -> List[str]:
        self.status_calls.append((day_start, day_end))
        if self.fail_with:
            raise QueryFailed(self.fail_with)
        return [e.status for e in self.entries if day_start <= e.timestamp <= day_end]

    async def get_entry(self, log_id: UUID) -> Optional[LogEntry]:
        return next((e for e in self.entries if e.id == log_id), None)


class GatedLogStore:
    """
    Wraps a store so each call blocks until released by index.

    Lets a test choose the order in which concurrent responses arrive.
    """

    def __init__(self, inner: InMemoryLogStore) -> None:
        self.inner = inner
        self.gates: List[asyncio.Event] = []
        self.failures: Dict[int, str] = {}

    async def wait_for_calls(self, count: int) -> None:
        while len(self.gates) < count:
            await asyncio.sleep(0)

    def release(self, index: int) -> None:
        self.gates[index].set()

    def fail(self, index: int, cause: str) -> None:
        self.failures[index] = cause

    async def _gated(self, coro):
        index = len(self.gates)
        gate = asyncio.Event()
        self.gates.append(gate)
        result = await coro
        await gate.wait()
        if index in self.failures:
            raise QueryFailed(self.failures[index])
        return result

    async def query_logs(self, filter_spec, sort, page, page_size):
        return await self._gated(self.inner.query_logs(filter_spec, sort, page, page_size))

    async def query_status_counts(self, day_start, day_end):
        return await self._gated(self.inner.query_status_counts(day_start, day_end))

    async def get_entry(self, log_id):
        return await self.inner.get_entry(log_id)


class HangingLogStore:
    """Store whose queries never complete."""

    async def query_logs(self, filter_spec, sort, page, page_size):
        await asyncio.Event().wait()

    async def query_status_counts(self, day_start, day_end):
        await asyncio.Event().wait()

    async def get_entry(self, log_id):
        return None


class RecordingAuthority:
    """Order authority that records calls and returns a canned result."""

    def __init__(self, result: Optional[AuthorityResult] = None, error: Optional[Exception] = None):
        self.result = result or AuthorityResult.accepted()
        self.error = error
        self.calls: List[Tuple[UUID, str, Optional[str]]] = []
        self.gate: Optional[asyncio.Event] = None

    async def set_order_status(self, log_id, new_status, linked_order_ref):
        self.calls.append((log_id, new_status, linked_order_ref))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.result


class UnreachableLogStore:
    """Store whose driver fails below the database layer."""

    async def query_logs(self, filter_spec, sort, page, page_size):
        raise ConnectionRefusedError(111, "Connect call failed")

    async def query_status_counts(self, day_start, day_end):
        raise ConnectionRefusedError(111, "Connect call failed")

    async def get_entry(self, log_id):
        raise ConnectionRefusedError(111, "Connect call failed")
