"""Liveness and readiness probes."""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pipeline_logs.core.config import get_settings
from pipeline_logs.core.logging import get_logger
from pipeline_logs.db.session import get_db

router = APIRouter()
logger = get_logger(__name__)


@router.get("/")
async def health_check() -> dict:
    """Process is up; no collaborators are contacted."""
    settings = get_settings()
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }


@router.get("/ready")
async def readiness_check(request: Request, db: AsyncSession = Depends(get_db)):
    """
    Ready when the log store answers.

    Also reports which order authority is wired in and how many views are live.
    """
    order_service = request.app.state.order_status_service
    details = {
        "order_authority": type(order_service.authority).__name__,
        "active_views": len(request.app.state.view_registry),
    }

    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning("readiness_check_failed", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "database": "disconnected", **details},
        )

    return {"status": "ready", "database": "connected", **details}
