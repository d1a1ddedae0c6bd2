"""Error taxonomy for the log query engine and order-status mutations.

Every failure here is recoverable: the caller re-issues the triggering
operation (re-apply the filter, reselect the day, retry the mutation).
An empty result set is not an error and has no exception type.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class PipelineLogsError(Exception):
    """Base class for all service errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for API responses and structured logs."""
        return {
            "error": self.message,
            "error_type": type(self).__name__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }


class QueryFailed(PipelineLogsError):
    """The log store query errored or timed out."""

    def __init__(self, cause: str, component: Optional[str] = None) -> None:
        super().__init__(cause)
        self.cause = cause
        self.component = component


class MutationRejected(PipelineLogsError):
    """The order-status authority (or local validation) declined the change."""

    def __init__(
        self, reason: str, log_id: Optional[str] = None, not_found: bool = False
    ) -> None:
        super().__init__(reason)
        self.reason = reason
        self.log_id = log_id
        self.not_found = not_found


class MutationFailed(PipelineLogsError):
    """Transport or unexpected fault while changing an order status."""

    def __init__(self, cause: str, log_id: Optional[str] = None) -> None:
        super().__init__(cause)
        self.cause = cause
        self.log_id = log_id


class ViewNotFound(PipelineLogsError):
    """No live view session with the given id."""

    def __init__(self, view_id: str) -> None:
        super().__init__(f"View {view_id} not found")
        self.view_id = view_id
