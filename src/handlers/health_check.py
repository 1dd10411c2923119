"""Health check handler for GET /api/health."""

import os
from datetime import datetime, timezone

from handlers.dependencies import get_database
from utils.error_handling import AppError, json_response
from utils.logging_config import get_logger

logger = get_logger(__name__)


def lambda_handler(event, context):
    """Return 200 when the database answers a trivial query, else 503."""
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        healthy = get_database().health_check()
    except AppError as exc:
        logger.error("Health check failed", extra={"error": str(exc)})
        healthy = False

    if not healthy:
        return json_response(
            503,
            {
                "success": False,
                "message": "Database connection failed",
                "timestamp": timestamp,
            },
        )

    return json_response(
        200,
        {
            "success": True,
            "message": "Service is healthy",
            "environment": os.environ.get("ENVIRONMENT", "dev"),
            "timestamp": timestamp,
            "database": "connected",
        },
    )
