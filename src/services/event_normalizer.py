"""
Webhook event normalization.

Shapes a raw WAHA webhook body into either an IncomingMessage or a
StatusUpdate. Self-sent echoes and unknown event types become None so the
caller can acknowledge them without touching storage.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from models.webhook import (
    IncomingMessage,
    MessagePayload,
    StatusPayload,
    StatusUpdate,
    WebhookEnvelope,
)
from utils.clock import from_epoch_seconds
from utils.error_handling import ValidationError
from utils.logging_config import get_logger

logger = get_logger(__name__)

MESSAGE_EVENT = "message"
STATUS_EVENT = "session.status"

_TRANSPORT_SUFFIX_RE = re.compile(r"@[cg]\.us$")

NormalizedEvent = Optional[Union[IncomingMessage, StatusUpdate]]


def extract_phone_number(wa_id: str) -> str:
    """Strip the contact/group marker from a WhatsApp id."""
    return _TRANSPORT_SUFFIX_RE.sub("", wa_id.strip())


def parse_envelope(raw: Union[str, bytes, Dict[str, Any], None]) -> WebhookEnvelope:
    """Decode and validate the outer event envelope."""
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw or "{}")
        except json.JSONDecodeError as exc:
            raise ValidationError("Invalid webhook payload", details=str(exc)) from exc
    if not isinstance(raw, dict):
        raise ValidationError("Invalid webhook payload", details="Body must be a JSON object")

    try:
        return WebhookEnvelope.model_validate(raw)
    except PydanticValidationError as exc:
        raise ValidationError(
            "Invalid webhook payload", details=exc.errors(include_url=False)
        ) from exc


def normalize_event(envelope: WebhookEnvelope) -> NormalizedEvent:
    """
    Map a validated envelope onto its canonical form.

    Raises ValidationError when the payload does not match the schema for its
    event type; returns None for events the pipeline deliberately ignores.
    """
    if envelope.event == MESSAGE_EVENT:
        payload = _validate(MessagePayload, envelope.payload)
        if payload.fromMe:
            logger.debug("Skipping message from self", extra={"message_id": payload.id})
            return None
        return IncomingMessage(
            message_id=payload.id,
            chat_id=payload.from_,
            sender=payload.from_,
            recipient=payload.to,
            body=payload.body or payload.caption or None,
            timestamp=from_epoch_seconds(payload.timestamp),
            from_me=payload.fromMe,
            reply_to=payload.replyTo,
            sender_name=payload.data.notifyName if payload.data else None,
        )

    if envelope.event == STATUS_EVENT:
        payload = _validate(StatusPayload, envelope.payload)
        return StatusUpdate(message_id=payload.id, status=payload.status)

    logger.warning("Unhandled webhook event type", extra={"event": envelope.event})
    return None


def _validate(model, payload: Dict[str, Any]):
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        logger.warning(
            "Invalid webhook payload received",
            extra={"errors": exc.errors(include_url=False)},
        )
        raise ValidationError(
            "Invalid webhook payload",
            details=exc.errors(include_url=False),
        ) from exc
