"""Processing log database model."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from pipeline_logs.models.base import BaseModel


class ProcessingLog(BaseModel):
    """
    Represents one record produced by the order-ingestion pipeline.

    Rows are written by the pipeline itself; this service reads them and
    only ever updates ``order_status``.
    """

    __tablename__ = "processing_logs"

    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True, comment="Processing timestamp"
    )

    from_email: Mapped[Optional[str]] = mapped_column(
        String(320), nullable=True, comment="Sender address of the source email"
    )

    file_name: Mapped[Optional[str]] = mapped_column(
        String(512), nullable=True, comment="Attachment file name"
    )

    stage: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True, comment="Pipeline stage"
    )

    status: Mapped[str] = mapped_column(
        String(32), nullable=False, index=True, comment="Outcome status (error, info, success)"
    )

    # Downstream order linkage
    order_status: Mapped[Optional[str]] = mapped_column(
        String(32), nullable=True, comment="Order status (Parked, Placed, Backordered)"
    )

    purchase_order_guid: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True, comment="Linked sales order reference"
    )

    purchase_ref: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True, comment="Purchase record reference for the detail view"
    )

    log_lines: Mapped[List[str]] = mapped_column(
        JSON, nullable=False, default=list, comment="Append-only log history"
    )

    __table_args__ = (
        Index("idx_status_processed_at", "status", "processed_at"),
        Index("idx_stage_processed_at", "stage", "processed_at"),
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<ProcessingLog(id={self.id}, stage={self.stage}, "
            f"status={self.status}, processed_at={self.processed_at})>"
        )
