"""
Runtime settings for the analytics Lambdas.

Everything is read from environment variables so the CDK stack stays the
single place where deployment values are decided.
"""

import json
import os
from dataclasses import dataclass
from typing import Optional

import boto3

from utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class AppSettings:
    """Application settings; every field can be overridden from the environment."""

    environment: str = "dev"
    database_url: Optional[str] = None

    # Bedrock classifier
    model_id: str = "anthropic.claude-3-haiku-20240307-v1:0"
    bedrock_region: str = "eu-west-2"
    classifier_timeout_seconds: int = 30
    classifier_max_tokens: int = 1000

    # Session stitching
    session_timeout_minutes: int = 30

    # Segmentation
    segmentation_batch_size: int = 50
    segmentation_delay_seconds: float = 1.0
    segment_stale_days: int = 7
    min_messages_for_segmentation: int = 3
    history_limit: int = 100

    @classmethod
    def from_environment(cls) -> "AppSettings":
        """Load settings from environment variables."""
        database_url = os.environ.get("DATABASE_URL")
        if not database_url and os.environ.get("DB_SECRET_ARN"):
            database_url = secret_to_db_url(os.environ["DB_SECRET_ARN"])

        return cls(
            environment=os.environ.get("ENVIRONMENT", "dev"),
            database_url=database_url,
            model_id=os.environ.get("MODEL_ID", cls.model_id),
            bedrock_region=(
                os.environ.get("BEDROCK_REGION")
                or os.environ.get("AWS_REGION")
                or cls.bedrock_region
            ),
            classifier_timeout_seconds=int(
                os.environ.get("CLASSIFIER_TIMEOUT_SECONDS", cls.classifier_timeout_seconds)
            ),
            classifier_max_tokens=int(
                os.environ.get("CLASSIFIER_MAX_TOKENS", cls.classifier_max_tokens)
            ),
            session_timeout_minutes=int(
                os.environ.get("SESSION_TIMEOUT_MINUTES", cls.session_timeout_minutes)
            ),
            segmentation_batch_size=int(
                os.environ.get("SEGMENTATION_BATCH_SIZE", cls.segmentation_batch_size)
            ),
            segmentation_delay_seconds=float(
                os.environ.get("SEGMENTATION_DELAY_SECONDS", cls.segmentation_delay_seconds)
            ),
            segment_stale_days=int(
                os.environ.get("SEGMENT_STALE_DAYS", cls.segment_stale_days)
            ),
            min_messages_for_segmentation=int(
                os.environ.get(
                    "MIN_MESSAGES_FOR_SEGMENTATION", cls.min_messages_for_segmentation
                )
            ),
            history_limit=min(int(os.environ.get("HISTORY_LIMIT", cls.history_limit)), 100),
        )


def secret_to_db_url(secret_arn: str) -> Optional[str]:
    """Build a SQLAlchemy URL from an RDS secret."""
    try:
        sm = boto3.client("secretsmanager")
        secret = json.loads(sm.get_secret_value(SecretId=secret_arn)["SecretString"])
    except Exception as exc:
        logger.warning("Failed to load DB secret", extra={"error": str(exc)})
        return None

    host = secret.get("host")
    port = secret.get("port", 5432)
    username = secret.get("username")
    password = secret.get("password")
    dbname = secret.get("dbname", "postgres")
    if not (host and username and password):
        return None
    return f"postgresql+psycopg2://{username}:{password}@{host}:{port}/{dbname}"
