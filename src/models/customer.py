"""Customer, session and digest models."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class CustomerRecord(BaseModel):
    """Row from the customers table."""

    id: int
    phone_number: str
    name: Optional[str] = None
    first_message_at: Optional[datetime] = None
    last_message_at: Optional[datetime] = None
    total_messages: int = 0
    segment: Optional[str] = None
    segment_updated_at: Optional[datetime] = None


class ChatSessionRecord(BaseModel):
    """Row from the chat_sessions table."""

    id: int
    customer_id: int
    session_start: datetime
    session_end: Optional[datetime] = None
    message_count: int = 0
    is_active: bool = True


class HistoryMessage(BaseModel):
    """One message as seen by the summarizer."""

    body: Optional[str] = None
    timestamp: datetime
    is_from_me: bool = False


class SessionStats(BaseModel):
    total_sessions: int = 0
    avg_messages_per_session: float = 0.0


class ConversationPatterns(BaseModel):
    """Behavioural features derived from message history."""

    most_active_hours: List[int] = Field(default_factory=list)
    average_response_time: float = 0.0
    common_topics: List[str] = Field(default_factory=list)


class CustomerDigest(BaseModel):
    """Bounded summary of a customer fed to the segmentation prompt."""

    customer_id: int
    phone_number: str
    name: Optional[str] = None
    total_messages: int
    first_message_at: Optional[datetime] = None
    last_message_at: Optional[datetime] = None
    total_sessions: int
    avg_messages_per_session: float
    days_as_customer: int
    recent_messages: List[HistoryMessage] = Field(default_factory=list)
    conversation_patterns: ConversationPatterns
