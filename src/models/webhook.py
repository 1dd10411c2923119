"""Pydantic models for WAHA webhook events and their normalized forms."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

MAX_EPOCH_SECONDS = 253402300799


class WebhookEnvelope(BaseModel):
    """Outer gateway event; only the discriminator and payload are required."""

    model_config = ConfigDict(extra="ignore")

    event: str = Field(min_length=1)
    payload: Dict[str, Any] = Field(default_factory=dict)
    id: Optional[str] = None
    timestamp: Optional[float] = None
    session: Optional[str] = None


class MessageData(BaseModel):
    """Subset of WAHA's raw `_data` block we actually read."""

    model_config = ConfigDict(extra="ignore")

    notifyName: Optional[str] = None


class MessagePayload(BaseModel):
    """Payload of a `message` event."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(min_length=1)
    # Epoch seconds; the upper bound is the last second of year 9999.
    timestamp: float = Field(ge=0, le=MAX_EPOCH_SECONDS, allow_inf_nan=False)
    from_: str = Field(alias="from", min_length=1)
    fromMe: bool = False
    to: Optional[str] = None
    body: Optional[str] = None
    caption: Optional[str] = None
    replyTo: Optional[str] = None
    data: Optional[MessageData] = Field(default=None, alias="_data")


class StatusPayload(BaseModel):
    """Payload of a `session.status` event."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(min_length=1)
    status: str = Field(min_length=1)
    from_: Optional[str] = Field(default=None, alias="from")
    chatId: Optional[str] = None
    timestamp: Optional[float] = None


class IncomingMessage(BaseModel):
    """Customer-originated message ready for the ingestion pipeline."""

    kind: Literal["message"] = "message"
    message_id: str
    chat_id: str
    sender: str
    recipient: Optional[str] = None
    body: Optional[str] = None
    timestamp: datetime
    from_me: bool = False
    reply_to: Optional[str] = None
    sender_name: Optional[str] = None


class StatusUpdate(BaseModel):
    """Delivery status change for a previously stored message."""

    kind: Literal["status"] = "status"
    message_id: str
    status: str
