"""
Scheduled batch segmentation, triggered by an EventBridge rule.

Picks customers whose label is missing or stale and segments them one by one
with the configured throttle between classifier calls.
"""

from datetime import timedelta

from handlers.dependencies import get_segmentation_service, get_settings
from utils.logging_config import get_logger

logger = get_logger(__name__)


def lambda_handler(event, context):
    """Select customers needing segmentation and run the batch."""
    settings = get_settings()
    service = get_segmentation_service()

    limit = int((event or {}).get("limit") or settings.segmentation_batch_size)
    customer_ids = service.customers_needing_segmentation(
        limit=limit,
        stale_after=timedelta(days=settings.segment_stale_days),
        min_messages=settings.min_messages_for_segmentation,
    )
    results = service.batch_segment(customer_ids)

    summary = {
        "selected": len(customer_ids),
        "segmented": len(results),
        "failed": len(customer_ids) - len(results),
    }
    logger.info("Scheduled segmentation finished", extra=summary)
    return summary
