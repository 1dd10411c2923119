"""
Session stitching.

Resolves the customer and the active chat session that own an inbound
message. Runs on the caller's open transaction: the customer row is locked
with SELECT ... FOR UPDATE so concurrent deliveries for the same number are
serialized, and the conflict-tolerant insert lets a second creator pick up
the first one's row instead of racing it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import desc, insert, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection

from models.customer import ChatSessionRecord, CustomerRecord
from models.webhook import IncomingMessage
from repositories.tables import chat_sessions, customers
from services.event_normalizer import extract_phone_number
from utils.logging_config import get_logger

logger = get_logger(__name__)

MIN_PHONE_LENGTH = 10


@dataclass
class StitchResult:
    """Customer/session pair the message belongs to."""

    customer: CustomerRecord
    session: ChatSessionRecord
    customer_created: bool = False
    session_created: bool = False


class SessionStitcher:
    """Find-or-create customers and sessions with a fixed inactivity window."""

    def __init__(self, session_timeout: timedelta = timedelta(minutes=30)):
        self.session_timeout = session_timeout

    def normalize_sender(self, sender: str) -> Optional[str]:
        """Bare phone number, or None when the id is implausibly short."""
        phone_number = extract_phone_number(sender or "")
        if len(phone_number) < MIN_PHONE_LENGTH:
            logger.warning(
                "Invalid phone number detected",
                extra={"from": sender, "phone_number": phone_number},
            )
            return None
        return phone_number

    def resolve(
        self,
        conn: Connection,
        phone_number: str,
        message: IncomingMessage,
        now: datetime,
    ) -> StitchResult:
        customer, created = self._find_or_create_customer(conn, phone_number, message)
        session, session_created = self._find_or_create_session(conn, customer.id, now)
        return StitchResult(
            customer=customer,
            session=session,
            customer_created=created,
            session_created=session_created,
        )

    def _find_or_create_customer(
        self, conn: Connection, phone_number: str, message: IncomingMessage
    ) -> tuple[CustomerRecord, bool]:
        insert_stmt = _insert_ignoring_conflict(conn, customers, "phone_number").values(
            phone_number=phone_number,
            name=message.sender_name,
            first_message_at=message.timestamp,
            last_message_at=message.timestamp,
            total_messages=1,
        )
        created_id = conn.execute(insert_stmt.returning(customers.c.id)).scalar()

        row = conn.execute(
            select(customers)
            .where(customers.c.phone_number == phone_number)
            .with_for_update()
        ).fetchone()
        customer = CustomerRecord.model_validate(dict(row._mapping))

        created = created_id is not None
        if created:
            logger.info(
                "New customer created",
                extra={"customer_id": customer.id, "phone_number": phone_number},
            )
        return customer, created

    def _find_or_create_session(
        self, conn: Connection, customer_id: int, now: datetime
    ) -> tuple[ChatSessionRecord, bool]:
        row = conn.execute(
            select(chat_sessions)
            .where(chat_sessions.c.customer_id == customer_id)
            .where(chat_sessions.c.is_active.is_(True))
            .where(chat_sessions.c.session_start > now - self.session_timeout)
            .order_by(desc(chat_sessions.c.session_start))
            .limit(1)
        ).fetchone()
        if row is not None:
            return ChatSessionRecord.model_validate(dict(row._mapping)), False

        closed = conn.execute(
            update(chat_sessions)
            .where(chat_sessions.c.customer_id == customer_id)
            .where(chat_sessions.c.is_active.is_(True))
            .values(is_active=False, session_end=now, updated_at=now)
        ).rowcount

        new_row = conn.execute(
            insert(chat_sessions)
            .values(
                customer_id=customer_id,
                session_start=now,
                message_count=0,
                is_active=True,
            )
            .returning(*chat_sessions.c)
        ).fetchone()
        session = ChatSessionRecord.model_validate(dict(new_row._mapping))

        logger.debug(
            "New chat session created",
            extra={"customer_id": customer_id, "session_id": session.id, "closed": closed},
        )
        return session, True


def _insert_ignoring_conflict(conn: Connection, table, *index_elements: str):
    """INSERT ... ON CONFLICT DO NOTHING for the dialects we run on."""
    dialect = conn.dialect.name
    if dialect == "postgresql":
        return postgresql.insert(table).on_conflict_do_nothing(index_elements=list(index_elements))
    if dialect == "sqlite":
        return sqlite.insert(table).on_conflict_do_nothing(index_elements=list(index_elements))
    raise NotImplementedError(f"Unsupported dialect: {dialect}")
