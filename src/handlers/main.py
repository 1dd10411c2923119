"""
Single entrypoint Lambda that routes HTTP API requests to thin handler modules.

One Lambda keeps the database pool and Bedrock client warm across routes.
"""

from typing import Callable, Dict, Tuple
from datetime import datetime, timezone

from . import health_check, segmentation, webhook
from utils.error_handling import json_response

ENDPOINTS = {
    "webhook": "POST /api/webhook",
    "health": "GET /api/health",
    "segmentationStats": "GET /api/segmentation/stats",
    "segmentCustomer": "POST /api/segmentation/customer/{customerId}",
}


def _index(event, context) -> Dict:
    return json_response(
        200,
        {
            "success": True,
            "message": "WhatsApp Analytics API is running",
            "version": "1.0.0",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "endpoints": ENDPOINTS,
        },
    )


def lambda_handler(event, context):
    """
    Entry point invoked by API Gateway HTTP API.

    The event carries the HTTP method and path; exact routes are matched
    first, then prefix routes for path parameters.
    """
    method = event.get("requestContext", {}).get("http", {}).get("method", "")
    path = event.get("requestContext", {}).get("http", {}).get("path", "")
    route_key = f"{method.upper()} {path.rstrip('/') or '/'}"

    exact_routes: Dict[str, Callable] = {
        "GET /": _index,
        "POST /api/webhook": webhook.lambda_handler,
        "GET /api/health": health_check.lambda_handler,
        "GET /api/segmentation/stats": segmentation.stats_handler,
    }
    prefix_routes: Tuple[Tuple[str, Callable], ...] = (
        ("POST /api/segmentation/customer/", segmentation.segment_customer_handler),
    )

    handler = exact_routes.get(route_key)
    if handler is not None:
        return handler(event, context)

    for prefix, handler in prefix_routes:
        if route_key.startswith(prefix):
            return handler(event, context)

    return json_response(
        404,
        {"success": False, "message": "Route not found", "path": path, "method": method},
    )
