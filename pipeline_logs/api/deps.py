"""Request dependencies resolving the services built at startup."""

from fastapi import Request

from pipeline_logs.services.log_store import LogStore
from pipeline_logs.services.order_status_service import OrderStatusService
from pipeline_logs.services.views import ViewRegistry


def get_log_store(request: Request) -> LogStore:
    return request.app.state.log_store


def get_view_registry(request: Request) -> ViewRegistry:
    return request.app.state.view_registry


def get_order_status_service(request: Request) -> OrderStatusService:
    return request.app.state.order_status_service
