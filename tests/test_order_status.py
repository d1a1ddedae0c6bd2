import asyncio
import json
import uuid

import httpx
import pytest

from pipeline_logs.core.errors import MutationFailed, MutationRejected
from pipeline_logs.models.processing_log import ProcessingLog
from pipeline_logs.services.order_authority import (
    INVALID_STATUS_REASON,
    MISMATCHED_ORDER_REASON,
    NO_LINKED_ORDER_REASON,
    NOT_FOUND_REASON,
    AuthorityResult,
    DatabaseOrderAuthority,
    HttpOrderAuthority,
)
from pipeline_logs.services.order_status_service import OrderStatusService
from pipeline_logs.services.query_coordinator import QueryCoordinator

from tests.fakes import InMemoryLogStore, RecordingAuthority, make_entry, make_row

AUTHORITY_URL = "https://orders.example.com/api/update-order-status"


def _linked_entry(**overrides):
    return make_entry(0, purchase_order_guid="so-0001", order_status="Parked", **overrides)


class TestOrderStatusService:
    async def test_invalid_status_never_reaches_authority(self) -> None:
        authority = RecordingAuthority()
        service = OrderStatusService(authority)

        with pytest.raises(MutationRejected) as exc_info:
            await service.set_order_status(_linked_entry(), "Shipped")

        assert exc_info.value.reason == INVALID_STATUS_REASON
        assert authority.calls == []

    async def test_entry_without_linked_order_is_rejected(self) -> None:
        authority = RecordingAuthority()
        service = OrderStatusService(authority)

        with pytest.raises(MutationRejected, match="no linked order"):
            await service.set_order_status(make_entry(0), "Placed")

        assert authority.calls == []

    async def test_authority_reason_is_surfaced(self) -> None:
        authority = RecordingAuthority(AuthorityResult.rejected("Order is already closed"))
        service = OrderStatusService(authority)

        with pytest.raises(MutationRejected) as exc_info:
            await service.set_order_status(_linked_entry(), "Placed")

        assert exc_info.value.reason == "Order is already closed"
        assert not exc_info.value.not_found

    async def test_not_found_comes_from_the_authority_flag(self) -> None:
        service = OrderStatusService(
            RecordingAuthority(AuthorityResult.rejected("Customer not found in ERP"))
        )
        missing = OrderStatusService(
            RecordingAuthority(AuthorityResult.rejected("Gone", not_found=True))
        )

        with pytest.raises(MutationRejected) as wording:
            await service.set_order_status(_linked_entry(), "Placed")
        with pytest.raises(MutationRejected) as flagged:
            await missing.set_order_status(_linked_entry(), "Placed")

        assert not wording.value.not_found
        assert flagged.value.not_found

    async def test_unexpected_error_becomes_mutation_failed(self) -> None:
        service = OrderStatusService(RecordingAuthority(error=RuntimeError("socket closed")))

        with pytest.raises(MutationFailed):
            await service.set_order_status(_linked_entry(), "Placed")

        assert service.updating == []

    async def test_accepted_change_patches_every_listing(self) -> None:
        entry = _linked_entry()
        listings = [
            QueryCoordinator(InMemoryLogStore([entry]), page_size=15) for _ in range(2)
        ]
        for listing in listings:
            await listing.refresh()
        authority = RecordingAuthority()
        service = OrderStatusService(authority)

        committed = await service.set_order_status(entry, "Backordered", listings)

        assert committed == "Backordered"
        assert authority.calls == [(entry.id, "Backordered", "so-0001")]
        for listing in listings:
            assert listing.find_entry(entry.id).order_status == "Backordered"

    async def test_rejected_change_leaves_listings_untouched(self) -> None:
        entry = _linked_entry()
        listing = QueryCoordinator(InMemoryLogStore([entry]), page_size=15)
        await listing.refresh()
        service = OrderStatusService(RecordingAuthority(AuthorityResult.rejected("No")))

        with pytest.raises(MutationRejected):
            await service.set_order_status(entry, "Placed", [listing])

        assert listing.find_entry(entry.id).order_status == "Parked"

    async def test_in_flight_change_is_tracked(self) -> None:
        entry = _linked_entry()
        authority = RecordingAuthority()
        authority.gate = asyncio.Event()
        service = OrderStatusService(authority)

        task = asyncio.create_task(service.set_order_status(entry, "Placed"))
        while not authority.calls:
            await asyncio.sleep(0)

        assert service.is_updating(entry.id)
        assert service.updating == [entry.id]

        authority.gate.set()
        await task
        assert not service.is_updating(entry.id)

    async def test_bare_id_is_passed_without_linked_ref(self) -> None:
        authority = RecordingAuthority()
        service = OrderStatusService(authority)
        log_id = uuid.uuid4()

        await service.set_order_status(log_id, "Parked")

        assert authority.calls == [(log_id, "Parked", None)]


class TestDatabaseOrderAuthority:
    async def _insert(self, session_factory, **overrides) -> uuid.UUID:
        row = make_row(0, **overrides)
        async with session_factory() as session:
            session.add(ProcessingLog(**row))
            await session.commit()
        return row["id"]

    async def test_commits_new_status(self, session_factory) -> None:
        log_id = await self._insert(
            session_factory, purchase_order_guid="so-0001", order_status="Parked"
        )
        authority = DatabaseOrderAuthority(session_factory)

        result = await authority.set_order_status(log_id, "Placed", "so-0001")

        assert result.ok
        async with session_factory() as session:
            log = await session.get(ProcessingLog, log_id)
            assert log.order_status == "Placed"

    async def test_repeating_a_change_is_idempotent(self, session_factory) -> None:
        log_id = await self._insert(session_factory, purchase_order_guid="so-0001")
        authority = DatabaseOrderAuthority(session_factory)

        first = await authority.set_order_status(log_id, "Placed", "so-0001")
        second = await authority.set_order_status(log_id, "Placed", "so-0001")

        assert first.ok and second.ok

    async def test_unknown_log(self, session_factory) -> None:
        authority = DatabaseOrderAuthority(session_factory)

        result = await authority.set_order_status(uuid.uuid4(), "Placed", None)

        assert not result.ok
        assert result.reason == NOT_FOUND_REASON
        assert result.not_found

    async def test_log_without_purchase_order(self, session_factory) -> None:
        log_id = await self._insert(session_factory)
        authority = DatabaseOrderAuthority(session_factory)

        result = await authority.set_order_status(log_id, "Placed", None)

        assert result.reason == NO_LINKED_ORDER_REASON

    async def test_mismatched_linked_order(self, session_factory) -> None:
        log_id = await self._insert(session_factory, purchase_order_guid="so-0001")
        authority = DatabaseOrderAuthority(session_factory)

        result = await authority.set_order_status(log_id, "Placed", "so-9999")

        assert result.reason == MISMATCHED_ORDER_REASON

    async def test_invalid_status(self, session_factory) -> None:
        log_id = await self._insert(session_factory, purchase_order_guid="so-0001")
        authority = DatabaseOrderAuthority(session_factory)

        result = await authority.set_order_status(log_id, "placed", "so-0001")

        assert result.reason == INVALID_STATUS_REASON


class TestHttpOrderAuthority:
    def _authority(self, handler, **kwargs) -> HttpOrderAuthority:
        return HttpOrderAuthority(
            AUTHORITY_URL,
            token="service-token",
            retry_wait=0,
            transport=httpx.MockTransport(handler),
            **kwargs,
        )

    async def test_posts_change_to_remote_function(self) -> None:
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"success": True})

        log_id = uuid.uuid4()
        result = await self._authority(handler).set_order_status(log_id, "Placed", "so-0001")

        assert result.ok
        request = requests[0]
        assert request.headers["Authorization"] == "Bearer service-token"
        assert json.loads(request.content) == {
            "processingLogId": str(log_id),
            "orderStatus": "Placed",
            "purchaseOrderGuid": "so-0001",
        }

    async def test_client_error_is_a_rejection(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"error": "Processing log not found"})

        result = await self._authority(handler).set_order_status(uuid.uuid4(), "Placed", None)

        assert not result.ok
        assert result.reason == "Processing log not found"
        assert result.not_found

    async def test_client_error_without_body_still_has_reason(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, text="bad request")

        result = await self._authority(handler).set_order_status(uuid.uuid4(), "Placed", None)

        assert result.reason == "Order authority rejected the request (400)"
        assert not result.not_found

    async def test_server_error_is_a_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"error": "Internal server error"})

        with pytest.raises(MutationFailed, match="500"):
            await self._authority(handler).set_order_status(uuid.uuid4(), "Placed", None)

    async def test_transport_errors_are_retried(self) -> None:
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            if len(attempts) < 3:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json={"success": True})

        result = await self._authority(handler, max_attempts=3).set_order_status(
            uuid.uuid4(), "Placed", "so-0001"
        )

        assert result.ok
        assert len(attempts) == 3

    async def test_unreachable_authority_fails_after_retries(self) -> None:
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(MutationFailed, match="unreachable"):
            await self._authority(handler, max_attempts=2).set_order_status(
                uuid.uuid4(), "Placed", None
            )

        assert len(attempts) == 2
