"""Log store access: the query contract and its SQLAlchemy implementation."""

from datetime import datetime
from typing import List, Optional, Protocol, Tuple
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pipeline_logs.core.errors import QueryFailed
from pipeline_logs.core.logging import get_logger
from pipeline_logs.models.processing_log import ProcessingLog
from pipeline_logs.processing.pagination import offset_for
from pipeline_logs.schemas.log_schemas import LogEntry
from pipeline_logs.schemas.query import FilterSpec, SortColumn, SortSpec

logger = get_logger(__name__)

SORT_COLUMNS = {
    SortColumn.TIMESTAMP: ProcessingLog.processed_at,
    SortColumn.FROM_ADDRESS: ProcessingLog.from_email,
    SortColumn.FILE_NAME: ProcessingLog.file_name,
    SortColumn.STAGE: ProcessingLog.stage,
    SortColumn.STATUS: ProcessingLog.status,
}


class LogStore(Protocol):
    """Read access to the external log store."""

    async def query_logs(
        self, filter_spec: FilterSpec, sort: SortSpec, page: int, page_size: int
    ) -> Tuple[List[LogEntry], int]:
        """Return one page of matching entries and the total match count."""
        ...

    async def query_status_counts(self, day_start: datetime, day_end: datetime) -> List[str]:
        """Return the raw status value of every record in the inclusive window."""
        ...

    async def get_entry(self, log_id: UUID) -> Optional[LogEntry]:
        """Return a single entry, or None."""
        ...


def build_conditions(filter_spec: FilterSpec) -> list:
    """Translate a FilterSpec into SQL conditions with the same semantics as ``matches``."""
    conditions = []

    if filter_spec.date_range is not None:
        conditions.append(ProcessingLog.processed_at >= filter_spec.date_range.start)
        conditions.append(ProcessingLog.processed_at <= filter_spec.date_range.end)
    if filter_spec.from_address is not None:
        conditions.append(
            ProcessingLog.from_email.icontains(filter_spec.from_address, autoescape=True)
        )
    if filter_spec.file_name is not None:
        conditions.append(
            ProcessingLog.file_name.icontains(filter_spec.file_name, autoescape=True)
        )
    if filter_spec.stage is not None:
        conditions.append(ProcessingLog.stage == filter_spec.stage.value)
    if filter_spec.status is not None:
        conditions.append(ProcessingLog.status == filter_spec.status.value)

    return conditions


def build_ordering(sort: SortSpec) -> list:
    """ORDER BY clauses; ``id`` breaks ties so page boundaries are deterministic."""
    column = SORT_COLUMNS[sort.column]
    if sort.ascending:
        return [column.asc(), ProcessingLog.id.asc()]
    return [column.desc(), ProcessingLog.id.desc()]


class SqlLogStore:
    """LogStore backed by the ``processing_logs`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize with a session factory; every query gets its own session."""
        self.session_factory = session_factory

    async def query_logs(
        self, filter_spec: FilterSpec, sort: SortSpec, page: int, page_size: int
    ) -> Tuple[List[LogEntry], int]:
        """
        Get filtered, sorted log entries with pagination.

        Returns:
            Tuple of (log entries list, total count)
        """
        conditions = build_conditions(filter_spec)

        count_query = select(func.count()).select_from(ProcessingLog)
        query = select(ProcessingLog).order_by(*build_ordering(sort))
        if conditions:
            count_query = count_query.where(and_(*conditions))
            query = query.where(and_(*conditions))
        query = query.limit(page_size).offset(offset_for(page, page_size))

        try:
            async with self.session_factory() as session:
                total_result = await session.execute(count_query)
                total = total_result.scalar() or 0

                result = await session.execute(query)
                rows = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("log_query_failed", error=str(e))
            raise QueryFailed(f"Failed to fetch logs: {e}", component="logs") from e

        return [LogEntry.model_validate(row) for row in rows], total

    async def query_status_counts(self, day_start: datetime, day_end: datetime) -> List[str]:
        """Get the status of every log in the inclusive window."""
        query = select(ProcessingLog.status).where(
            and_(
                ProcessingLog.processed_at >= day_start,
                ProcessingLog.processed_at <= day_end,
            )
        )

        try:
            async with self.session_factory() as session:
                result = await session.execute(query)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("status_query_failed", error=str(e))
            raise QueryFailed(f"Failed to fetch statistics: {e}", component="statistics") from e

    async def get_entry(self, log_id: UUID) -> Optional[LogEntry]:
        """Get log entry by ID."""
        try:
            async with self.session_factory() as session:
                row = await session.get(ProcessingLog, log_id)
        except SQLAlchemyError as e:
            logger.error("log_lookup_failed", log_id=str(log_id), error=str(e))
            raise QueryFailed(f"Failed to fetch log {log_id}: {e}", component="logs") from e

        return LogEntry.model_validate(row) if row is not None else None
