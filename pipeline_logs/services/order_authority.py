"""Order-status authorities: the systems allowed to commit an order status change."""

from dataclasses import dataclass
from typing import Optional, Protocol
from uuid import UUID

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pipeline_logs.core.error_handling import with_retry
from pipeline_logs.core.errors import MutationFailed
from pipeline_logs.core.logging import get_logger
from pipeline_logs.models.processing_log import ProcessingLog
from pipeline_logs.schemas.log_schemas import OrderStatus

logger = get_logger(__name__)

INVALID_STATUS_REASON = "Invalid order status. Must be one of: " + ", ".join(OrderStatus.values())
NOT_FOUND_REASON = "Processing log not found"
NO_LINKED_ORDER_REASON = "Cannot update order status: no purchase order GUID found"
MISMATCHED_ORDER_REASON = "Cannot update order status: linked order reference does not match"


@dataclass(frozen=True)
class AuthorityResult:
    ok: bool
    reason: Optional[str] = None
    not_found: bool = False

    @classmethod
    def accepted(cls) -> "AuthorityResult":
        return cls(ok=True)

    @classmethod
    def rejected(cls, reason: str, not_found: bool = False) -> "AuthorityResult":
        return cls(ok=False, reason=reason, not_found=not_found)


class OrderStatusAuthority(Protocol):
    """Validates and commits order status changes."""

    async def set_order_status(
        self, log_id: UUID, new_status: str, linked_order_ref: Optional[str]
    ) -> AuthorityResult:
        """
        Commit ``new_status`` for the order linked to ``log_id``.

        Rejections are returned, not raised. Faults raise ``MutationFailed``.
        Must be idempotent.
        """
        ...


class DatabaseOrderAuthority:
    """Authority that validates against and writes to the ``processing_logs`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def set_order_status(
        self, log_id: UUID, new_status: str, linked_order_ref: Optional[str]
    ) -> AuthorityResult:
        if new_status not in OrderStatus.values():
            return AuthorityResult.rejected(INVALID_STATUS_REASON)

        try:
            async with self.session_factory() as session:
                log = await session.get(ProcessingLog, log_id)
                if log is None:
                    return AuthorityResult.rejected(NOT_FOUND_REASON, not_found=True)
                if not log.purchase_order_guid:
                    return AuthorityResult.rejected(NO_LINKED_ORDER_REASON)
                if linked_order_ref is not None and linked_order_ref != log.purchase_order_guid:
                    return AuthorityResult.rejected(MISMATCHED_ORDER_REASON)

                log.order_status = new_status
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("order_status_write_failed", log_id=str(log_id), error=str(e))
            raise MutationFailed("Failed to update order status", log_id=str(log_id)) from e

        logger.info("order_status_committed", log_id=str(log_id), order_status=new_status)
        return AuthorityResult.accepted()


class HttpOrderAuthority:
    """
    Authority reached over HTTP (a remote sales-order function).

    Transport errors are retried with backoff; the remote side is required
    to be idempotent, so repeating the POST is safe.
    """

    def __init__(
        self,
        url: str,
        token: Optional[str] = None,
        timeout: float = 10.0,
        max_attempts: int = 3,
        retry_wait: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url
        self.token = token
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.retry_wait = retry_wait
        self.transport = transport

    async def set_order_status(
        self, log_id: UUID, new_status: str, linked_order_ref: Optional[str]
    ) -> AuthorityResult:
        payload = {
            "processingLogId": str(log_id),
            "orderStatus": new_status,
            "purchaseOrderGuid": linked_order_ref,
        }

        post = with_retry(
            max_attempts=self.max_attempts,
            min_wait=self.retry_wait,
            max_wait=self.retry_wait * 8,
            exceptions=(httpx.TransportError,),
        )(self._post)

        try:
            response = await post(payload)
        except httpx.HTTPError as e:
            logger.error("order_authority_unreachable", log_id=str(log_id), error=str(e))
            raise MutationFailed(f"Order authority unreachable: {e}", log_id=str(log_id)) from e

        if response.is_success:
            return AuthorityResult.accepted()

        if response.is_client_error:
            reason = _error_message(response) or (
                f"Order authority rejected the request ({response.status_code})"
            )
            logger.warning(
                "order_authority_rejected",
                log_id=str(log_id),
                status_code=response.status_code,
                reason=reason,
            )
            return AuthorityResult.rejected(
                reason, not_found=response.status_code == httpx.codes.NOT_FOUND
            )

        logger.error(
            "order_authority_error", log_id=str(log_id), status_code=response.status_code
        )
        raise MutationFailed(
            f"Order authority returned {response.status_code}", log_id=str(log_id)
        )

    async def _post(self, payload: dict) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            return await client.post(self.url, json=payload, headers=headers)


def _error_message(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("error")
    return None
