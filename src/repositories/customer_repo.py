"""Customer-centric queries used by the summarizer and segmentation engine."""

from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import desc, func, or_, select, update

from models.customer import CustomerRecord, HistoryMessage, SessionStats
from repositories.postgres_repo import Database
from repositories.tables import chat_sessions, customers, messages


class CustomerRepository:
    """Keeps SQL organized and parameterized; every method is one short unit of work."""

    def __init__(self, database: Database):
        self.database = database

    def get_customer(self, customer_id: int) -> Optional[CustomerRecord]:
        stmt = select(customers).where(customers.c.id == customer_id)
        with self.database.connect() as conn:
            row = conn.execute(stmt).fetchone()
        return CustomerRecord.model_validate(dict(row._mapping)) if row else None

    def get_customer_by_phone(self, phone_number: str) -> Optional[CustomerRecord]:
        stmt = select(customers).where(customers.c.phone_number == phone_number)
        with self.database.connect() as conn:
            row = conn.execute(stmt).fetchone()
        return CustomerRecord.model_validate(dict(row._mapping)) if row else None

    def recent_messages(self, customer_id: int, limit: int = 100) -> List[HistoryMessage]:
        """Newest-first messages with a non-null body."""
        stmt = (
            select(messages.c.message_body, messages.c.timestamp, messages.c.is_from_me)
            .where(messages.c.customer_id == customer_id)
            .where(messages.c.message_body.is_not(None))
            .order_by(desc(messages.c.timestamp), desc(messages.c.id))
            .limit(limit)
        )
        with self.database.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [
            HistoryMessage(
                body=row.message_body,
                timestamp=row.timestamp,
                is_from_me=bool(row.is_from_me),
            )
            for row in rows
        ]

    def session_stats(self, customer_id: int) -> SessionStats:
        stmt = select(
            func.count(chat_sessions.c.id).label("total_sessions"),
            func.avg(chat_sessions.c.message_count).label("avg_messages_per_session"),
        ).where(chat_sessions.c.customer_id == customer_id)
        with self.database.connect() as conn:
            row = conn.execute(stmt).fetchone()
        return SessionStats(
            total_sessions=int(row.total_sessions or 0),
            avg_messages_per_session=float(row.avg_messages_per_session or 0),
        )

    def update_segment(self, customer_id: int, segment: str, updated_at: datetime) -> bool:
        """Overwrite the segment label; safe to retry."""
        stmt = (
            update(customers)
            .where(customers.c.id == customer_id)
            .values(segment=segment, segment_updated_at=updated_at, updated_at=updated_at)
        )
        with self.database.transaction() as conn:
            result = conn.execute(stmt)
        return result.rowcount > 0

    def customers_for_segmentation(
        self,
        stale_before: datetime,
        min_messages: int = 3,
        limit: int = 50,
    ) -> List[CustomerRecord]:
        """Unlabelled or stale customers with enough history, most recently active first."""
        stmt = (
            select(customers)
            .where(
                or_(
                    customers.c.segment.is_(None),
                    customers.c.segment_updated_at.is_(None),
                    customers.c.segment_updated_at < stale_before,
                )
            )
            .where(customers.c.total_messages >= min_messages)
            .order_by(desc(customers.c.last_message_at))
            .limit(limit)
        )
        with self.database.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [CustomerRecord.model_validate(dict(row._mapping)) for row in rows]

    def segment_stats(self) -> Dict[str, int]:
        count = func.count(customers.c.id).label("count")
        stmt = (
            select(customers.c.segment, count)
            .where(customers.c.segment.is_not(None))
            .group_by(customers.c.segment)
            .order_by(desc(count))
        )
        with self.database.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return {row.segment: int(row.count) for row in rows}
