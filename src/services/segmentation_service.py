"""
Customer segmentation.

Turns a conversation digest into one of seven segment labels with a single
Bedrock call. Output that cannot be parsed never fails the caller: it is
replaced by a fixed fallback so classification cannot block the pipeline.
"""

from __future__ import annotations

import json
import numbers
import time
from datetime import timedelta
from typing import Dict, Iterable, Optional

from models.customer import CustomerDigest
from models.segmentation import SEGMENT_DESCRIPTIONS, Segment, SegmentationResult
from repositories.customer_repo import CustomerRepository
from services.bedrock_service import BedrockService
from services.conversation_summarizer import ConversationSummarizer
from utils.clock import Clock, utc_now
from utils.logging_config import get_logger
from utils.rate_limit import FixedDelayThrottle, Throttle

logger = get_logger(__name__)

FALLBACK_REASONING = "Failed to parse classifier response; assigned default segment"


def fallback_result() -> SegmentationResult:
    return SegmentationResult(
        segment=Segment.REGULAR_CUSTOMER,
        confidence=0.5,
        reasoning=FALLBACK_REASONING,
        characteristics=["parsing_error"],
    )


def extract_first_json_object(text: str) -> Optional[dict]:
    """Return the first decodable JSON object embedded in free text."""
    decoder = json.JSONDecoder()
    index = text.find("{")
    while index != -1:
        try:
            value, _ = decoder.raw_decode(text, index)
        except json.JSONDecodeError:
            index = text.find("{", index + 1)
            continue
        except RecursionError:
            # Pathologically nested output; nothing usable inside it.
            return None
        if isinstance(value, dict):
            return value
        index = text.find("{", index + 1)
    return None


def parse_segmentation_response(text: str) -> SegmentationResult:
    """Validate classifier output; any problem yields the fallback result."""
    try:
        parsed = extract_first_json_object(text or "")
        if parsed is None:
            raise ValueError("No JSON object found in classifier response")

        segment = Segment(parsed.get("segment"))

        confidence = parsed.get("confidence")
        if (
            isinstance(confidence, bool)
            or not isinstance(confidence, numbers.Real)
            or not 0 <= confidence <= 1
        ):
            raise ValueError(f"Invalid confidence score: {confidence!r}")

        reasoning = parsed.get("reasoning")
        characteristics = parsed.get("characteristics")
        return SegmentationResult(
            segment=segment,
            confidence=float(confidence),
            reasoning=reasoning if isinstance(reasoning, str) and reasoning else "No reasoning provided",
            characteristics=(
                [str(item) for item in characteristics] if isinstance(characteristics, list) else []
            ),
        )
    except ValueError as exc:
        logger.warning(
            "Failed to parse classifier segmentation response",
            extra={"error": str(exc), "response": (text or "")[:500]},
        )
        return fallback_result()


def build_prompt(digest: CustomerDigest) -> str:
    """Prompt embedding the digest and the fixed taxonomy."""
    patterns = digest.conversation_patterns
    recent = "\n".join(
        f"{idx}. [{'BUSINESS' if msg.is_from_me else 'CUSTOMER'}] "
        f"{msg.timestamp.isoformat(sep=' ', timespec='minutes')}: {msg.body}"
        for idx, msg in enumerate(digest.recent_messages, start=1)
    )
    segments = "\n".join(
        f'{idx}. "{segment.value}" - {SEGMENT_DESCRIPTIONS[segment]}'
        for idx, segment in enumerate(Segment, start=1)
    )
    return (
        "You are a customer analyst who segments customers based on their "
        "WhatsApp conversation data.\n\n"
        "Analyze the customer below and choose the single most fitting segment.\n\n"
        "CUSTOMER DATA:\n"
        f"- ID: {digest.customer_id}\n"
        f"- Phone number: {digest.phone_number}\n"
        f"- Total messages: {digest.total_messages}\n"
        f"- Days as customer: {digest.days_as_customer}\n"
        f"- Total chat sessions: {digest.total_sessions}\n"
        f"- Average messages per session: {digest.avg_messages_per_session:.2f}\n"
        f"- Most active hours: {', '.join(str(h) for h in patterns.most_active_hours) or 'unknown'}\n"
        f"- Average response time: {patterns.average_response_time:.2f} seconds\n"
        f"- Common topics: {', '.join(patterns.common_topics) or 'none'}\n\n"
        f"RECENT MESSAGES:\n{recent or 'none'}\n\n"
        f"AVAILABLE SEGMENTS:\n{segments}\n\n"
        "INSTRUCTIONS:\n"
        "Consider conversation patterns, interaction frequency, topics and "
        "behaviour. Reply with valid JSON only:\n"
        '{"segment": "SEGMENT_NAME", "confidence": 0.85, '
        '"reasoning": "Short explanation", '
        '"characteristics": ["trait1", "trait2", "trait3"]}\n'
        "confidence must be between 0.0 and 1.0."
    )


class SegmentationService:
    """Encapsulates digest -> prompt -> Bedrock -> parsed segment -> persisted label."""

    def __init__(
        self,
        repository: CustomerRepository,
        completion_client: BedrockService,
        summarizer: Optional[ConversationSummarizer] = None,
        throttle: Optional[Throttle] = None,
        clock: Clock = utc_now,
    ) -> None:
        self.repository = repository
        self.client = completion_client
        self.summarizer = summarizer or ConversationSummarizer(repository)
        self.throttle = throttle or FixedDelayThrottle(1.0)
        self.clock = clock

    def classify(self, digest: CustomerDigest) -> SegmentationResult:
        """Call the classifier once; transport errors propagate, bad output falls back."""
        start = time.perf_counter()
        try:
            raw = self.client.complete(build_prompt(digest))
            return parse_segmentation_response(raw)
        finally:
            logger.info(
                "Segmentation latency captured",
                extra={
                    "customer_id": digest.customer_id,
                    "duration_ms": int((time.perf_counter() - start) * 1000),
                },
            )

    def segment_customer(self, customer_id: int) -> SegmentationResult:
        """Summarize, classify and persist the label for one customer."""
        logger.info("Starting customer segmentation", extra={"customer_id": customer_id})
        digest = self.summarizer.summarize(customer_id)
        result = self.classify(digest)
        self.repository.update_segment(customer_id, result.segment.value, self.clock())
        logger.info(
            "Customer segmentation completed",
            extra={
                "customer_id": customer_id,
                "segment": result.segment.value,
                "confidence": result.confidence,
            },
        )
        return result

    def batch_segment(self, customer_ids: Iterable[int]) -> Dict[int, SegmentationResult]:
        """Segment customers one at a time, pausing between calls; failures are skipped."""
        ids = list(customer_ids)
        results: Dict[int, SegmentationResult] = {}
        logger.info("Starting batch customer segmentation", extra={"customer_count": len(ids)})

        for customer_id in ids:
            self.throttle.wait()
            try:
                results[customer_id] = self.segment_customer(customer_id)
            except Exception:
                logger.exception(
                    "Failed to segment customer in batch", extra={"customer_id": customer_id}
                )

        logger.info(
            "Batch customer segmentation completed",
            extra={"total": len(ids), "successful": len(results)},
        )
        return results

    def customers_needing_segmentation(
        self,
        limit: int = 50,
        stale_after: timedelta = timedelta(days=7),
        min_messages: int = 3,
    ) -> list[int]:
        customers = self.repository.customers_for_segmentation(
            stale_before=self.clock() - stale_after,
            min_messages=min_messages,
            limit=limit,
        )
        return [customer.id for customer in customers]

    def segment_stats(self) -> Dict[str, int]:
        return self.repository.segment_stats()
