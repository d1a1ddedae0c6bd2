"""Order status changes for log entries linked to a downstream order."""

from collections import Counter
from typing import Iterable, List, Optional, Union
from uuid import UUID

from pipeline_logs.core.errors import MutationFailed, MutationRejected
from pipeline_logs.core.logging import get_logger
from pipeline_logs.monitoring.metrics import MetricsCollector, get_metrics_collector
from pipeline_logs.schemas.log_schemas import LogEntry, OrderStatus
from pipeline_logs.services.order_authority import INVALID_STATUS_REASON, OrderStatusAuthority
from pipeline_logs.services.query_coordinator import QueryCoordinator

logger = get_logger(__name__)


class OrderStatusService:
    """
    Delegates order status changes to the authority and applies confirmed
    results to local projections.

    Concurrent requests for the same entry are passed through as-is; the
    authority is expected to be idempotent.
    """

    def __init__(
        self,
        authority: OrderStatusAuthority,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.authority = authority
        self.metrics = metrics or get_metrics_collector()
        self._in_flight: Counter = Counter()

    def is_updating(self, log_id: UUID) -> bool:
        return self._in_flight[log_id] > 0

    @property
    def updating(self) -> List[UUID]:
        return [log_id for log_id, count in self._in_flight.items() if count > 0]

    async def set_order_status(
        self,
        entry: Union[LogEntry, UUID],
        new_status: str,
        coordinators: Iterable[QueryCoordinator] = (),
    ) -> str:
        """
        Change the order status of one entry.

        Args:
            entry: The entry (preferred) or just its id when not loaded locally
            new_status: Target order status
            coordinators: Listings whose copy of the entry should be patched

        Returns:
            The committed order status

        Raises:
            MutationRejected: Invalid status, no linked order, or authority refusal
            MutationFailed: Transport or unexpected fault
        """
        if isinstance(entry, LogEntry):
            log_id, linked_order_ref = entry.id, entry.linked_order_ref
            if not entry.can_update_order_status:
                self.metrics.record_mutation("rejected")
                raise MutationRejected(
                    "Cannot update order status: no linked order", log_id=str(log_id)
                )
        else:
            log_id, linked_order_ref = entry, None

        if new_status not in OrderStatus.values():
            self.metrics.record_mutation("rejected")
            raise MutationRejected(INVALID_STATUS_REASON, log_id=str(log_id))

        self._in_flight[log_id] += 1
        try:
            result = await self.authority.set_order_status(log_id, new_status, linked_order_ref)
        except MutationFailed:
            self.metrics.record_mutation("failed")
            raise
        except Exception as e:
            self.metrics.record_mutation("failed")
            logger.error(
                "order_status_update_error", log_id=str(log_id), error=str(e), exc_info=True
            )
            raise MutationFailed("Failed to update order status", log_id=str(log_id)) from e
        finally:
            self._in_flight[log_id] -= 1
            if self._in_flight[log_id] <= 0:
                del self._in_flight[log_id]

        if not result.ok:
            self.metrics.record_mutation("rejected")
            reason = result.reason or "Order status change rejected"
            logger.warning("order_status_rejected", log_id=str(log_id), reason=reason)
            raise MutationRejected(reason, log_id=str(log_id), not_found=result.not_found)

        for coordinator in coordinators:
            coordinator.patch_order_status(log_id, new_status)

        self.metrics.record_mutation("applied")
        logger.info("order_status_updated", log_id=str(log_id), order_status=new_status)
        return new_status
