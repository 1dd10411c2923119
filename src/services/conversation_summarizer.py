"""
Conversation summarizer.

Aggregates a customer's record, recent message history and session
statistics into a bounded digest for the segmentation prompt. The feature
extraction helpers are pure functions so they can be tested without a
database.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable, List, Sequence

from models.customer import ConversationPatterns, CustomerDigest, HistoryMessage
from repositories.customer_repo import CustomerRepository
from utils.error_handling import NotFoundError
from utils.logging_config import get_logger

logger = get_logger(__name__)

MAX_HISTORY = 100
PROMPT_MESSAGES = 20
TOP_HOURS = 3
TOP_TOPICS = 10
MIN_TOPIC_LENGTH = 4

# Filler words seen in Indonesian and English chats that say nothing about intent.
STOP_WORDS = frozenset(
    {
        "yang", "untuk", "dengan", "adalah", "akan", "jadi", "bisa", "kalo",
        "gimana", "kenapa", "this", "that", "with", "have", "from", "what",
        "your", "just", "there", "will", "would", "about", "please", "thanks",
    }
)


def most_active_hours(messages: Iterable[HistoryMessage], top: int = TOP_HOURS) -> List[int]:
    """Busiest hours of day; ties keep the order hours were first seen."""
    counts: dict[int, int] = {}
    for message in messages:
        hour = message.timestamp.hour
        counts[hour] = counts.get(hour, 0) + 1
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [hour for hour, _ in ranked[:top]]


def average_response_time(messages: Sequence[HistoryMessage]) -> float:
    """
    Mean seconds between a business message and the customer reply right after it.

    Only consecutive (business, customer) pairs in time order count.
    """
    if len(messages) < 2:
        return 0.0

    ordered = sorted(messages, key=lambda m: m.timestamp)
    total = 0.0
    pairs = 0
    for previous, current in zip(ordered, ordered[1:]):
        if previous.is_from_me and not current.is_from_me:
            total += (current.timestamp - previous.timestamp).total_seconds()
            pairs += 1
    return total / pairs if pairs else 0.0


def common_topics(messages: Iterable[HistoryMessage], top: int = TOP_TOPICS) -> List[str]:
    """Most frequent content words from customer messages, ties by first appearance."""
    words: List[str] = []
    for message in messages:
        if message.is_from_me or not message.body:
            continue
        words.extend(
            word
            for word in message.body.lower().split()
            if len(word) >= MIN_TOPIC_LENGTH and word not in STOP_WORDS
        )
    return [word for word, _ in Counter(words).most_common(top)]


class ConversationSummarizer:
    """Builds CustomerDigest objects from stored history."""

    def __init__(self, repository: CustomerRepository, history_limit: int = MAX_HISTORY):
        self.repository = repository
        self.history_limit = min(history_limit, MAX_HISTORY)

    def summarize(self, customer_id: int) -> CustomerDigest:
        customer = self.repository.get_customer(customer_id)
        if customer is None:
            raise NotFoundError(f"Customer with ID {customer_id} not found")

        history = self.repository.recent_messages(customer_id, limit=self.history_limit)
        stats = self.repository.session_stats(customer_id)

        days_as_customer = 0
        if customer.first_message_at and customer.last_message_at:
            days_as_customer = max((customer.last_message_at - customer.first_message_at).days, 0)

        digest = CustomerDigest(
            customer_id=customer.id,
            phone_number=customer.phone_number,
            name=customer.name,
            total_messages=customer.total_messages,
            first_message_at=customer.first_message_at,
            last_message_at=customer.last_message_at,
            total_sessions=stats.total_sessions,
            avg_messages_per_session=stats.avg_messages_per_session,
            days_as_customer=days_as_customer,
            recent_messages=history[:PROMPT_MESSAGES],
            conversation_patterns=ConversationPatterns(
                most_active_hours=most_active_hours(history),
                average_response_time=average_response_time(history),
                common_topics=common_topics(history),
            ),
        )

        logger.info(
            "Customer digest built",
            extra={
                "customer_id": customer_id,
                "history_size": len(history),
                "total_sessions": stats.total_sessions,
            },
        )
        return digest
