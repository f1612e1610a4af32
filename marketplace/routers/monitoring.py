"""
Health check endpoints.
"""

from fastapi import APIRouter, HTTPException, status
from typing import Dict, Any
import logging

from marketplace.database import test_database_connection, get_database_info

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/monitoring", tags=["Monitoring"])


@router.get("/health", response_model=Dict[str, Any])
async def health_check() -> Dict[str, Any]:
    """
    Basic health check endpoint.

    Returns:
        Health status information

    Raises:
        HTTPException: 503 when the database is unreachable
    """
    db_healthy = await test_database_connection()
    if not db_healthy:
        logger.error("Health check failed: database unreachable")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service temporarily unavailable"
        )

    return {
        "status": "healthy",
        "database": {"connected": True, **(await get_database_info())},
        "api": {"status": "operational"}
    }
