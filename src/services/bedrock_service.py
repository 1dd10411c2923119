"""
Amazon Bedrock text completion.

Thin wrapper over ``bedrock-runtime.invoke_model`` for Anthropic models. The
segmentation engine treats it as a black box: prompt in, text out, or an
ExternalClassificationError.
"""

from __future__ import annotations

import json
import time
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from utils.error_handling import ExternalClassificationError
from utils.logging_config import get_logger

logger = get_logger(__name__)

ANTHROPIC_VERSION = "bedrock-2023-05-31"


class BedrockService:
    """Service for single-shot Bedrock completions."""

    def __init__(
        self,
        model_id: str = "anthropic.claude-3-haiku-20240307-v1:0",
        region: str = "eu-west-2",
        timeout_seconds: int = 30,
        max_tokens: int = 1000,
        client=None,
    ):
        self.model_id = model_id
        self.max_tokens = max_tokens
        self.client = client or boto3.client(
            "bedrock-runtime",
            region_name=region,
            config=Config(
                connect_timeout=5,
                read_timeout=timeout_seconds,
                retries={"max_attempts": 2, "mode": "standard"},
            ),
        )

    def complete(self, prompt: str, temperature: float = 0.2) -> str:
        """Send one user prompt and return the first text block of the reply."""
        start = time.perf_counter()
        try:
            response = self.client.invoke_model(
                modelId=self.model_id,
                contentType="application/json",
                accept="application/json",
                body=json.dumps(
                    {
                        "anthropic_version": ANTHROPIC_VERSION,
                        "messages": [
                            {
                                "role": "user",
                                "content": [{"type": "text", "text": prompt}],
                            }
                        ],
                        "max_tokens": self.max_tokens,
                        "temperature": temperature,
                    }
                ),
            )
            payload = json.loads(response["body"].read())
        except (BotoCoreError, ClientError) as exc:
            logger.error("Bedrock request failed", extra={"error": str(exc)})
            raise ExternalClassificationError(f"Bedrock error: {exc}") from exc
        except (KeyError, ValueError) as exc:
            raise ExternalClassificationError("Invalid response body from Bedrock") from exc
        finally:
            logger.info(
                "Bedrock latency captured",
                extra={"duration_ms": int((time.perf_counter() - start) * 1000)},
            )

        text = _first_text_block(payload)
        if text is None:
            raise ExternalClassificationError("Invalid response structure from Bedrock")
        return text


def _first_text_block(payload: dict) -> Optional[str]:
    content = payload.get("content") if isinstance(payload, dict) else None
    if not content or not isinstance(content, list):
        return None
    first = content[0]
    if not isinstance(first, dict) or not isinstance(first.get("text"), str):
        return None
    return first["text"]
