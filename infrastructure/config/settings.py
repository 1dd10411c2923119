"""
Environment-specific configuration settings.

Cost-optimized defaults for development/testing.
"""

from dataclasses import dataclass
import os


@dataclass
class Settings:
    """Deployment settings with cost-optimized defaults."""

    # Environment
    environment: str = "dev"
    aws_region: str = "eu-west-2"  # Default AWS region

    # Bedrock Configuration
    model_id: str = "anthropic.claude-3-haiku-20240307-v1:0"  # Cost-optimized

    # Database Configuration (Cost-optimized)
    db_instance_class: str = "t3.micro"  # Free tier eligible
    db_allocated_storage: int = 20  # Minimum GB

    # Lambda Configuration
    lambda_memory_mb: int = 512
    lambda_timeout_seconds: int = 30

    # Segmentation schedule
    segmentation_schedule_hours: int = 6
    segmentation_batch_size: int = 50
    segmentation_delay_seconds: float = 1.0
    # Batch of 50 at ~1 call/s plus model latency needs far more than 30s.
    segmentation_timeout_minutes: int = 15

    @classmethod
    def from_environment(cls) -> "Settings":
        """Load settings from environment variables."""
        env = os.environ.get("ENVIRONMENT", "dev")
        schedule_hours = int(os.environ.get("SEGMENTATION_SCHEDULE_HOURS", "6"))

        # Production overrides
        if env == "prod":
            return cls(
                environment="prod",
                db_instance_class="t3.small",  # Upgrade for prod
                db_allocated_storage=50,
                lambda_memory_mb=1024,
                segmentation_schedule_hours=schedule_hours,
            )

        return cls(environment=env, segmentation_schedule_hours=schedule_hours)
