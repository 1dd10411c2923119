"""SQLAlchemy Core table definitions for customers, chat sessions and messages."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
)

MESSAGE_ID_CONSTRAINT = "uq_messages_waha_message_id"

metadata = MetaData()

customers = Table(
    "customers",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("phone_number", String(20), nullable=False, unique=True),
    Column("name", String(255)),
    Column("first_message_at", DateTime, server_default=func.now()),
    Column("last_message_at", DateTime, server_default=func.now()),
    Column("total_messages", Integer, nullable=False, server_default="0"),
    Column("segment", String(100)),
    Column("segment_updated_at", DateTime),
    Column("created_at", DateTime, server_default=func.now()),
    Column("updated_at", DateTime, server_default=func.now()),
    Index("idx_customers_segment", "segment"),
    Index("idx_customers_last_message", "last_message_at"),
)

chat_sessions = Table(
    "chat_sessions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "customer_id",
        Integer,
        ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("session_start", DateTime, server_default=func.now()),
    Column("session_end", DateTime),
    Column("message_count", Integer, nullable=False, server_default="0"),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Column("created_at", DateTime, server_default=func.now()),
    Column("updated_at", DateTime, server_default=func.now()),
    Index("idx_chat_sessions_customer_active", "customer_id", "is_active"),
    Index("idx_chat_sessions_start", "session_start"),
)

messages = Table(
    "messages",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "customer_id",
        Integer,
        ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "session_id",
        Integer,
        ForeignKey("chat_sessions.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("waha_message_id", String(255), nullable=False),
    Column("chat_id", String(255), nullable=False),
    Column("from_number", String(20), nullable=False),
    Column("to_number", String(20)),
    Column("message_body", Text),
    Column("timestamp", DateTime, nullable=False),
    Column("is_from_me", Boolean, nullable=False, server_default="0"),
    Column("status", String(50)),
    Column("reply_to", String(255)),
    Column("created_at", DateTime, server_default=func.now()),
    Column("updated_at", DateTime, server_default=func.now()),
    Index("idx_messages_customer", "customer_id"),
    Index("idx_messages_session", "session_id"),
    Index("idx_messages_chat_id", "chat_id"),
    Index("idx_messages_timestamp", "timestamp"),
    UniqueConstraint("waha_message_id", name=MESSAGE_ID_CONSTRAINT),
)
