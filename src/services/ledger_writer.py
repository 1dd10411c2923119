"""
Message ledger.

Appends message rows and keeps the customer/session counters in step with
them. ``append`` expects the transaction opened by the ingestion pipeline so
the insert and both counter updates commit or roll back together.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import insert, update
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError

from models.webhook import IncomingMessage, StatusUpdate
from repositories.postgres_repo import Database
from repositories.tables import MESSAGE_ID_CONSTRAINT, chat_sessions, customers, messages
from services.event_normalizer import extract_phone_number
from services.session_stitcher import StitchResult
from utils.error_handling import DuplicateMessageError
from utils.logging_config import get_logger

logger = get_logger(__name__)


class LedgerWriter:
    """Writes messages and their aggregate side effects."""

    def append(
        self,
        conn: Connection,
        stitched: StitchResult,
        message: IncomingMessage,
        now: datetime,
    ) -> int:
        """Insert one message row and bump counters; returns the new row id."""
        try:
            message_id = conn.execute(
                insert(messages)
                .values(
                    customer_id=stitched.customer.id,
                    session_id=stitched.session.id,
                    waha_message_id=message.message_id,
                    chat_id=message.chat_id,
                    from_number=extract_phone_number(message.sender),
                    to_number=extract_phone_number(message.recipient) if message.recipient else None,
                    message_body=message.body,
                    timestamp=message.timestamp,
                    is_from_me=message.from_me,
                    reply_to=message.reply_to,
                )
                .returning(messages.c.id)
            ).scalar_one()
        except IntegrityError as exc:
            if is_duplicate_message_id(exc):
                raise DuplicateMessageError(message.message_id) from exc
            raise

        # A customer created in this transaction was seeded with its first message.
        increment = 0 if stitched.customer_created else 1
        conn.execute(
            update(customers)
            .where(customers.c.id == stitched.customer.id)
            .values(
                total_messages=customers.c.total_messages + increment,
                last_message_at=now,
                updated_at=now,
            )
        )
        conn.execute(
            update(chat_sessions)
            .where(chat_sessions.c.id == stitched.session.id)
            .values(
                message_count=chat_sessions.c.message_count + 1,
                updated_at=now,
            )
        )
        return message_id


def is_duplicate_message_id(exc: IntegrityError) -> bool:
    """True only for a unique violation on the external message id."""
    orig = exc.orig
    # psycopg2 exposes the violated constraint; SQLite only names the column.
    constraint = getattr(getattr(orig, "diag", None), "constraint_name", None)
    if constraint:
        return constraint == MESSAGE_ID_CONSTRAINT
    text = str(orig)
    return "UNIQUE" in text and "messages.waha_message_id" in text


class StatusWriter:
    """Applies delivery-status updates to stored messages."""

    def __init__(self, database: Database):
        self.database = database

    def apply(self, status_update: StatusUpdate, now: datetime) -> bool:
        """Return False (and warn) when no stored message matches."""
        with self.database.transaction() as conn:
            result = conn.execute(
                update(messages)
                .where(messages.c.waha_message_id == status_update.message_id)
                .values(status=status_update.status, updated_at=now)
            )

        if result.rowcount == 0:
            logger.warning(
                "Message not found for status update",
                extra={"message_id": status_update.message_id},
            )
            return False

        logger.debug(
            "Message status updated",
            extra={"message_id": status_update.message_id, "status": status_update.status},
        )
        return True
