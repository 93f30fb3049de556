"""
Health check endpoints.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter

from journey_builder.core.config import get_settings
from journey_builder.services.mapping import NODE_CATALOG

router = APIRouter()


@router.get(
    "/health",
    summary="Basic Health Check",
    description="Basic health check endpoint for load balancers and monitoring",
    responses={
        200: {"description": "Service is healthy"},
    }
)
async def basic_health_check() -> Dict[str, Any]:
    """Basic health check for load balancers."""
    settings = get_settings()
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "components": {
            "node_catalog": {"status": "healthy", "entries": len(NODE_CATALOG)},
            "journey_gateway": {"base_url": settings.JOURNEY_API_BASE_URL},
        },
    }
