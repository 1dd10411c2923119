"""
Process-wide resources for the Lambda container.

The database handle and services are built lazily on first use, shared by
every handler in the container, and the engine is disposed at interpreter
exit. Tests swap them out with ``override`` / ``reset``.
"""

from __future__ import annotations

import atexit
from datetime import timedelta
from typing import Optional

from config.settings import AppSettings
from utils.error_handling import StorageError
from utils.logging_config import get_logger

logger = get_logger(__name__)

_settings: Optional[AppSettings] = None
_database = None
_ingestion_service = None
_segmentation_service = None


def get_settings() -> AppSettings:
    global _settings
    if _settings is None:
        _settings = AppSettings.from_environment()
    return _settings


def get_database():
    """Get or create the shared Database handle."""
    global _database
    if _database is None:
        from repositories.postgres_repo import Database

        settings = get_settings()
        if not settings.database_url:
            raise StorageError("DATABASE_URL not configured")
        _database = Database.from_url(settings.database_url)
        atexit.register(_database.dispose)
        logger.info("Database handle created", extra={"environment": settings.environment})
    return _database


def get_ingestion_service():
    """Lazy-load IngestionService."""
    global _ingestion_service
    if _ingestion_service is None:
        from services.ingestion_service import IngestionService

        settings = get_settings()
        _ingestion_service = IngestionService(
            get_database(),
            session_timeout=timedelta(minutes=settings.session_timeout_minutes),
        )
    return _ingestion_service


def get_segmentation_service():
    """Lazy-load SegmentationService and its Bedrock client."""
    global _segmentation_service
    if _segmentation_service is None:
        from repositories.customer_repo import CustomerRepository
        from services.bedrock_service import BedrockService
        from services.conversation_summarizer import ConversationSummarizer
        from services.segmentation_service import SegmentationService
        from utils.rate_limit import FixedDelayThrottle

        settings = get_settings()
        repository = CustomerRepository(get_database())
        _segmentation_service = SegmentationService(
            repository=repository,
            completion_client=BedrockService(
                model_id=settings.model_id,
                region=settings.bedrock_region,
                timeout_seconds=settings.classifier_timeout_seconds,
                max_tokens=settings.classifier_max_tokens,
            ),
            summarizer=ConversationSummarizer(repository, history_limit=settings.history_limit),
            throttle=FixedDelayThrottle(settings.segmentation_delay_seconds),
        )
    return _segmentation_service


def override(
    *,
    settings: Optional[AppSettings] = None,
    database=None,
    ingestion_service=None,
    segmentation_service=None,
) -> None:
    """Inject pre-built resources (tests, local runs)."""
    global _settings, _database, _ingestion_service, _segmentation_service
    if settings is not None:
        _settings = settings
    if database is not None:
        _database = database
    if ingestion_service is not None:
        _ingestion_service = ingestion_service
    if segmentation_service is not None:
        _segmentation_service = segmentation_service


def reset() -> None:
    """Forget every cached resource."""
    global _settings, _database, _ingestion_service, _segmentation_service
    _settings = None
    _database = None
    _ingestion_service = None
    _segmentation_service = None
