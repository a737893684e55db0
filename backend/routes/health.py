"""
Health check endpoint.
"""
from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from config import settings
from deps import get_chain_client
from services.async_executor import run_blocking

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check(chain=Depends(get_chain_client)):
    """Health check - verifies Algorand node connectivity."""
    try:
        status_info = await run_blocking(chain.status)
        return {
            "status": "healthy",
            "algorand_connected": True,
            "last_round": status_info.get("last-round"),
            "environment": settings.environment,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "unhealthy",
                "algorand_connected": False,
                "environment": settings.environment,
            },
        )
