"""Database models."""

from pipeline_logs.models.base import Base
from pipeline_logs.models.processing_log import ProcessingLog

__all__ = ["Base", "ProcessingLog"]
