"""Handlers for GET /api/segmentation/stats and POST /api/segmentation/customer/{customerId}."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Optional

from handlers.dependencies import get_segmentation_service
from utils.error_handling import AppError, ValidationError, json_response, to_response
from utils.logging_config import get_logger
from utils.validators import parse_positive_int

logger = get_logger(__name__)

CUSTOMER_PATH_PREFIX = "/api/segmentation/customer/"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _customer_id_from_event(event) -> Optional[str]:
    path_params = event.get("pathParameters") or {}
    if path_params.get("customerId") is not None:
        return path_params["customerId"]
    path = event.get("requestContext", {}).get("http", {}).get("path", "")
    if path.startswith(CUSTOMER_PATH_PREFIX):
        return path[len(CUSTOMER_PATH_PREFIX):].strip("/")
    return None


def stats_handler(event, context) -> Dict:
    """Return the number of customers per segment."""
    try:
        stats = get_segmentation_service().segment_stats()
    except Exception:
        logger.exception("Failed to get segmentation stats")
        return json_response(
            500,
            {"success": False, "error": "Failed to retrieve segmentation statistics"},
        )

    return json_response(200, {"success": True, "data": stats, "timestamp": _now()})


def segment_customer_handler(event, context) -> Dict:
    """Run on-demand segmentation for one customer."""
    try:
        customer_id = parse_positive_int(_customer_id_from_event(event), "customerId")
    except ValidationError as exc:
        return json_response(
            400,
            {"success": False, "error": "Invalid customer ID", "details": exc.details},
        )

    try:
        result = get_segmentation_service().segment_customer(customer_id)
    except AppError as exc:
        logger.error(
            "Manual segmentation failed",
            extra={"customer_id": customer_id, "error": str(exc)},
        )
        return to_response(exc)
    except Exception:
        logger.exception("Manual segmentation failed", extra={"customer_id": customer_id})
        return json_response(500, {"success": False, "error": "Failed to segment customer"})

    return json_response(
        200,
        {"success": True, "data": result.model_dump(mode="json"), "timestamp": _now()},
    )
