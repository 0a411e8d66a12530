"""Health check endpoint."""
import logging
from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from db.session import get_async_session

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Service status; 'degraded' when the row store is unreachable."""

    status: Literal["healthy", "degraded"]
    database: Literal["healthy", "unhealthy"]


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: AsyncSession = Depends(get_async_session),
) -> HealthResponse:
    """Report whether the bookmark database answers queries."""
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        return HealthResponse(status="degraded", database="unhealthy")
    return HealthResponse(status="healthy", database="healthy")
