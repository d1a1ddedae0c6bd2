"""Pure query arithmetic: pagination and status breakdowns."""

from pipeline_logs.processing.pagination import clamp, derive, page_window
from pipeline_logs.processing.status_breakdown import breakdown, day_bounds

__all__ = ["derive", "clamp", "page_window", "breakdown", "day_bounds"]
