"""
BedrockService tests with a mocked bedrock-runtime client.

Run with: pytest tests/unit/test_bedrock_service.py -v
"""

import io
import json
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, ReadTimeoutError

from services.bedrock_service import BedrockService
from utils.error_handling import ExternalClassificationError


def _response(payload):
    return {"body": io.BytesIO(json.dumps(payload).encode())}


@pytest.fixture
def client():
    return MagicMock()


class TestBedrockService:

    def test_returns_first_text_block(self, client):
        client.invoke_model.return_value = _response(
            {"content": [{"type": "text", "text": '{"segment": "NEW_CUSTOMER"}'}]}
        )
        service = BedrockService(model_id="test-model", client=client, max_tokens=500)

        assert service.complete("classify me") == '{"segment": "NEW_CUSTOMER"}'

        kwargs = client.invoke_model.call_args.kwargs
        assert kwargs["modelId"] == "test-model"
        body = json.loads(kwargs["body"])
        assert body["max_tokens"] == 500
        assert body["messages"][0]["content"][0]["text"] == "classify me"
        assert body["anthropic_version"] == "bedrock-2023-05-31"

    def test_client_error_is_wrapped(self, client):
        client.invoke_model.side_effect = ClientError(
            {"Error": {"Code": "ThrottlingException", "Message": "Too many requests"}},
            "InvokeModel",
        )
        with pytest.raises(ExternalClassificationError) as exc_info:
            BedrockService(client=client).complete("hi")
        assert exc_info.value.status_code == 502

    def test_timeout_is_wrapped(self, client):
        client.invoke_model.side_effect = ReadTimeoutError(endpoint_url="https://bedrock")
        with pytest.raises(ExternalClassificationError):
            BedrockService(client=client).complete("hi")

    def test_unexpected_structure_is_rejected(self, client):
        client.invoke_model.return_value = _response({"content": []})
        with pytest.raises(ExternalClassificationError):
            BedrockService(client=client).complete("hi")

    def test_non_json_body_is_rejected(self, client):
        client.invoke_model.return_value = {"body": io.BytesIO(b"<html>")}
        with pytest.raises(ExternalClassificationError):
            BedrockService(client=client).complete("hi")

    @patch("services.bedrock_service.boto3")
    def test_default_client_uses_read_timeout(self, mock_boto3):
        BedrockService(region="us-east-1", timeout_seconds=12)

        args, kwargs = mock_boto3.client.call_args
        assert args == ("bedrock-runtime",)
        assert kwargs["region_name"] == "us-east-1"
        assert kwargs["config"].read_timeout == 12
