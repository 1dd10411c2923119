"""
Webhook ingestion pipeline.

normalize -> stitch customer/session -> append to ledger, with the last two
stages sharing a single transaction so a failure anywhere leaves no partial
writes behind.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, Dict, Optional, Union

from models.webhook import IncomingMessage, StatusUpdate
from repositories.postgres_repo import Database
from services.event_normalizer import normalize_event, parse_envelope
from services.ledger_writer import LedgerWriter, StatusWriter
from services.session_stitcher import SessionStitcher
from utils.clock import Clock, utc_now
from utils.error_handling import DuplicateMessageError
from utils.logging_config import get_logger

logger = get_logger(__name__)


class IngestStatus(str, Enum):
    """What happened to a webhook event."""

    PROCESSED = "processed"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    REJECTED = "rejected"
    STATUS_UPDATED = "status_updated"
    STATUS_UNMATCHED = "status_unmatched"


@dataclass
class IngestOutcome:
    """Result of handling one webhook, suitable for the HTTP acknowledgement."""

    event: str
    status: IngestStatus
    message_id: Optional[str] = None
    customer_id: Optional[int] = None
    session_id: Optional[int] = None

    @property
    def description(self) -> str:
        return {
            IngestStatus.PROCESSED: "Webhook processed successfully",
            IngestStatus.DUPLICATE: "Message already processed",
            IngestStatus.IGNORED: "Webhook event ignored",
            IngestStatus.REJECTED: "Message rejected: invalid sender",
            IngestStatus.STATUS_UPDATED: "Webhook processed successfully",
            IngestStatus.STATUS_UNMATCHED: "Status update ignored: unknown message",
        }[self.status]


class IngestionService:
    """Sequential pipeline that maps webhook events onto customer/session/message rows."""

    def __init__(
        self,
        database: Database,
        session_timeout: timedelta = timedelta(minutes=30),
        clock: Clock = utc_now,
    ) -> None:
        self.database = database
        self.clock = clock
        self.stitcher = SessionStitcher(session_timeout=session_timeout)
        self.ledger = LedgerWriter()
        self.status_writer = StatusWriter(database)

    def handle_webhook(self, raw: Union[str, bytes, Dict[str, Any], None]) -> IngestOutcome:
        """Validate, normalize and route one webhook body. Raises ValidationError on bad input."""
        envelope = parse_envelope(raw)
        normalized = normalize_event(envelope)

        if isinstance(normalized, IncomingMessage):
            return self.handle_incoming_message(normalized, event=envelope.event)
        if isinstance(normalized, StatusUpdate):
            return self.handle_status_update(normalized, event=envelope.event)
        return IngestOutcome(event=envelope.event, status=IngestStatus.IGNORED)

    def handle_incoming_message(
        self, message: IncomingMessage, event: str = "message"
    ) -> IngestOutcome:
        start = time.perf_counter()
        logger.info(
            "Processing incoming message",
            extra={"message_id": message.message_id, "from": message.sender},
        )

        phone_number = self.stitcher.normalize_sender(message.sender)
        if phone_number is None:
            return IngestOutcome(
                event=event, status=IngestStatus.REJECTED, message_id=message.message_id
            )

        now = self.clock()
        try:
            with self.database.transaction() as conn:
                stitched = self.stitcher.resolve(conn, phone_number, message, now)
                self.ledger.append(conn, stitched, message, now)
        except DuplicateMessageError:
            logger.info(
                "Duplicate message delivery ignored",
                extra={"message_id": message.message_id},
            )
            return IngestOutcome(
                event=event, status=IngestStatus.DUPLICATE, message_id=message.message_id
            )

        logger.info(
            "Message processed successfully",
            extra={
                "message_id": message.message_id,
                "customer_id": stitched.customer.id,
                "session_id": stitched.session.id,
                "duration_ms": int((time.perf_counter() - start) * 1000),
            },
        )
        return IngestOutcome(
            event=event,
            status=IngestStatus.PROCESSED,
            message_id=message.message_id,
            customer_id=stitched.customer.id,
            session_id=stitched.session.id,
        )

    def handle_status_update(
        self, status_update: StatusUpdate, event: str = "session.status"
    ) -> IngestOutcome:
        matched = self.status_writer.apply(status_update, self.clock())
        return IngestOutcome(
            event=event,
            status=IngestStatus.STATUS_UPDATED if matched else IngestStatus.STATUS_UNMATCHED,
            message_id=status_update.message_id,
        )
