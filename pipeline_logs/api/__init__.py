"""API routes and endpoints."""

from fastapi import APIRouter

from pipeline_logs.api import health, logs, statistics, views

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(logs.router, prefix="/api/v1", tags=["logs"])
api_router.include_router(statistics.router, prefix="/api/v1", tags=["statistics"])
api_router.include_router(views.router, prefix="/api/v1", tags=["views"])
