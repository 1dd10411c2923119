"""Pydantic models for webhook payloads, customers and segmentation."""

from models.customer import (  # noqa: F401
    ChatSessionRecord,
    ConversationPatterns,
    CustomerDigest,
    CustomerRecord,
    HistoryMessage,
    SessionStats,
)
from models.segmentation import SEGMENT_DESCRIPTIONS, Segment, SegmentationResult  # noqa: F401
from models.webhook import (  # noqa: F401
    IncomingMessage,
    MessagePayload,
    StatusPayload,
    StatusUpdate,
    WebhookEnvelope,
)
