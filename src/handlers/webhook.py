"""
WAHA webhook handler for POST /api/webhook.

Every accepted event answers 200 so the gateway does not retry, including
duplicates and events we deliberately ignore. Malformed payloads get a 400;
storage failures get a 500 and may be redelivered safely.
"""

from __future__ import annotations

import base64
import uuid
from typing import Dict

from handlers.dependencies import get_ingestion_service
from utils.error_handling import ValidationError, json_response
from utils.logging_config import get_logger

logger = get_logger(__name__)


def _request_body(event):
    body = event.get("body")
    if body and event.get("isBase64Encoded"):
        return base64.b64decode(body)
    return body


def lambda_handler(event, context) -> Dict:
    """Validate the webhook body and hand it to the ingestion pipeline."""
    correlation_id = str(uuid.uuid4())
    try:
        outcome = get_ingestion_service().handle_webhook(_request_body(event))
    except ValidationError as exc:
        logger.warning(
            "Invalid webhook payload rejected",
            extra={"correlation_id": correlation_id, "error": str(exc)},
        )
        return json_response(
            400,
            {"success": False, "error": str(exc), "details": exc.details},
        )
    except Exception:
        logger.exception("Webhook processing failed", extra={"correlation_id": correlation_id})
        return json_response(
            500,
            {
                "success": False,
                "error": "Internal server error",
                "message": "Failed to process webhook",
            },
        )

    logger.info(
        "Webhook accepted",
        extra={
            "correlation_id": correlation_id,
            "event": outcome.event,
            "outcome": outcome.status.value,
            "message_id": outcome.message_id,
        },
    )
    return json_response(
        200,
        {"success": True, "message": outcome.description, "event": outcome.event},
    )
