"""
Local handler tests.

These tests validate handler logic without connecting to AWS. Storage runs
on in-memory SQLite; the segmentation service is mocked with unittest.mock.

Run with: pytest tests/unit/test_handlers_local.py -v
"""

import base64
import json
from unittest.mock import MagicMock

import pytest

from config.settings import AppSettings
from handlers import dependencies
from models.segmentation import Segment, SegmentationResult
from services.ingestion_service import IngestionService
from utils.error_handling import ExternalClassificationError, NotFoundError

MESSAGE_EVENT = {
    "event": "message",
    "session": "default",
    "payload": {
        "id": "false_6281234567890@c.us_3EB0",
        "timestamp": 1709283600,
        "from": "6281234567890@c.us",
        "fromMe": False,
        "body": "Kak, ongkir ke Bandung berapa?",
    },
}


def _http_event(method, path, body=None, path_params=None):
    event = {"requestContext": {"http": {"method": method, "path": path}}}
    if body is not None:
        event["body"] = body
    if path_params is not None:
        event["pathParameters"] = path_params
    return event


@pytest.fixture
def ingestion(database):
    service = IngestionService(database)
    dependencies.override(database=database, ingestion_service=service)
    return service


class TestWebhookHandler:
    """POST /api/webhook"""

    def test_valid_message_returns_200(self, ingestion):
        from handlers.webhook import lambda_handler

        result = lambda_handler(_http_event("POST", "/api/webhook", json.dumps(MESSAGE_EVENT)), None)

        assert result["statusCode"] == 200
        body = json.loads(result["body"])
        assert body == {
            "success": True,
            "message": "Webhook processed successfully",
            "event": "message",
        }

    def test_base64_body_is_decoded(self, ingestion):
        from handlers.webhook import lambda_handler

        event = _http_event(
            "POST", "/api/webhook", base64.b64encode(json.dumps(MESSAGE_EVENT).encode()).decode()
        )
        event["isBase64Encoded"] = True

        assert lambda_handler(event, None)["statusCode"] == 200

    def test_duplicate_returns_200_already_processed(self, ingestion):
        from handlers.webhook import lambda_handler

        event = _http_event("POST", "/api/webhook", json.dumps(MESSAGE_EVENT))
        lambda_handler(event, None)
        result = lambda_handler(event, None)

        assert result["statusCode"] == 200
        assert json.loads(result["body"])["message"] == "Message already processed"

    def test_invalid_json_returns_400(self, ingestion):
        from handlers.webhook import lambda_handler

        result = lambda_handler(_http_event("POST", "/api/webhook", "{oops"), None)

        assert result["statusCode"] == 400
        body = json.loads(result["body"])
        assert body["success"] is False
        assert body["error"] == "Invalid webhook payload"

    def test_missing_event_returns_400(self, ingestion):
        from handlers.webhook import lambda_handler

        result = lambda_handler(_http_event("POST", "/api/webhook", json.dumps({"payload": {}})), None)

        assert result["statusCode"] == 400
        assert json.loads(result["body"])["details"]

    def test_millisecond_timestamp_returns_400(self, ingestion):
        from handlers.webhook import lambda_handler

        event = json.loads(json.dumps(MESSAGE_EVENT))
        event["payload"]["timestamp"] = 1.7e15

        result = lambda_handler(_http_event("POST", "/api/webhook", json.dumps(event)), None)

        assert result["statusCode"] == 400

    def test_unexpected_failure_returns_500(self):
        from handlers.webhook import lambda_handler

        broken = MagicMock()
        broken.handle_webhook.side_effect = RuntimeError("boom")
        dependencies.override(ingestion_service=broken)

        result = lambda_handler(_http_event("POST", "/api/webhook", json.dumps(MESSAGE_EVENT)), None)

        assert result["statusCode"] == 500
        body = json.loads(result["body"])
        assert body["error"] == "Internal server error"
        assert body["message"] == "Failed to process webhook"


class TestHealthCheckHandler:
    """GET /api/health"""

    def test_health_check_returns_200(self, database):
        from handlers.health_check import lambda_handler

        dependencies.override(database=database)
        result = lambda_handler({}, None)

        assert result["statusCode"] == 200
        body = json.loads(result["body"])
        assert body["success"] is True
        assert body["database"] == "connected"
        assert "timestamp" in body

    def test_unreachable_database_returns_503(self):
        from handlers.health_check import lambda_handler

        db = MagicMock()
        db.health_check.return_value = False
        dependencies.override(database=db)

        result = lambda_handler({}, None)

        assert result["statusCode"] == 503
        assert json.loads(result["body"])["message"] == "Database connection failed"

    def test_missing_configuration_returns_503(self):
        from handlers.health_check import lambda_handler

        dependencies.override(settings=AppSettings(database_url=None))

        assert lambda_handler({}, None)["statusCode"] == 503


class TestSegmentationHandlers:
    """GET /api/segmentation/stats and POST /api/segmentation/customer/{customerId}"""

    def test_non_numeric_id_returns_400_without_service_call(self, monkeypatch):
        from handlers import segmentation

        getter = MagicMock()
        monkeypatch.setattr(segmentation, "get_segmentation_service", getter)

        result = segmentation.segment_customer_handler(
            _http_event("POST", "/api/segmentation/customer/abc"), None
        )

        assert result["statusCode"] == 400
        body = json.loads(result["body"])
        assert body["error"] == "Invalid customer ID"
        getter.assert_not_called()

    @pytest.mark.parametrize("raw_id", ["0", "-3", "1.5", "", "\u00b2", "99999999999999999999"])
    def test_non_positive_ids_return_400(self, raw_id):
        from handlers import segmentation

        dependencies.override(segmentation_service=MagicMock())
        result = segmentation.segment_customer_handler(
            _http_event("POST", f"/api/segmentation/customer/{raw_id}", path_params={"customerId": raw_id}),
            None,
        )
        assert result["statusCode"] == 400

    def test_segment_customer_returns_result(self):
        from handlers import segmentation

        service = MagicMock()
        service.segment_customer.return_value = SegmentationResult(
            segment=Segment.SUPPORT_SEEKER,
            confidence=0.77,
            reasoning="Mostly asks for help",
            characteristics=["complaints"],
        )
        dependencies.override(segmentation_service=service)

        result = segmentation.segment_customer_handler(
            _http_event("POST", "/api/segmentation/customer/12", path_params={"customerId": "12"}),
            None,
        )

        assert result["statusCode"] == 200
        body = json.loads(result["body"])
        assert body["data"]["segment"] == "SUPPORT_SEEKER"
        assert body["data"]["confidence"] == 0.77
        service.segment_customer.assert_called_once_with(12)

    def test_id_read_from_path_when_parameters_missing(self):
        from handlers import segmentation

        service = MagicMock()
        service.segment_customer.side_effect = NotFoundError("Customer with ID 5 not found")
        dependencies.override(segmentation_service=service)

        result = segmentation.segment_customer_handler(
            _http_event("POST", "/api/segmentation/customer/5"), None
        )

        assert result["statusCode"] == 404
        assert json.loads(result["body"])["error"] == "Customer with ID 5 not found"
        service.segment_customer.assert_called_once_with(5)

    def test_classifier_failure_returns_502(self):
        from handlers import segmentation

        service = MagicMock()
        service.segment_customer.side_effect = ExternalClassificationError("Bedrock error: throttled")
        dependencies.override(segmentation_service=service)

        result = segmentation.segment_customer_handler(
            _http_event("POST", "/api/segmentation/customer/5"), None
        )

        assert result["statusCode"] == 502

    def test_stats_returns_counts(self):
        from handlers import segmentation

        service = MagicMock()
        service.segment_stats.return_value = {"VIP_CUSTOMER": 3, "NEW_CUSTOMER": 2}
        dependencies.override(segmentation_service=service)

        result = segmentation.stats_handler(_http_event("GET", "/api/segmentation/stats"), None)

        assert result["statusCode"] == 200
        body = json.loads(result["body"])
        assert body["data"] == {"VIP_CUSTOMER": 3, "NEW_CUSTOMER": 2}

    def test_stats_failure_returns_500(self):
        from handlers import segmentation

        service = MagicMock()
        service.segment_stats.side_effect = RuntimeError("db down")
        dependencies.override(segmentation_service=service)

        result = segmentation.stats_handler(_http_event("GET", "/api/segmentation/stats"), None)

        assert result["statusCode"] == 500


class TestSegmentationBatchHandler:
    """Scheduled EventBridge invocation."""

    def test_reports_selected_and_segmented(self):
        from handlers.segmentation_batch import lambda_handler

        service = MagicMock()
        service.customers_needing_segmentation.return_value = [1, 2, 3]
        service.batch_segment.return_value = {1: MagicMock(), 3: MagicMock()}
        dependencies.override(settings=AppSettings(), segmentation_service=service)

        summary = lambda_handler({"limit": 10}, None)

        assert summary == {"selected": 3, "segmented": 2, "failed": 1}
        kwargs = service.customers_needing_segmentation.call_args.kwargs
        assert kwargs["limit"] == 10
        assert kwargs["min_messages"] == 3

    def test_uses_configured_batch_size(self):
        from handlers.segmentation_batch import lambda_handler

        service = MagicMock()
        service.customers_needing_segmentation.return_value = []
        service.batch_segment.return_value = {}
        dependencies.override(
            settings=AppSettings(segmentation_batch_size=25), segmentation_service=service
        )

        lambda_handler({}, None)

        assert service.customers_needing_segmentation.call_args.kwargs["limit"] == 25


class TestSchemaBootstrapHandler:
    """Deploy-time trigger."""

    def test_creates_schema_idempotently(self):
        from sqlalchemy import create_engine, inspect
        from sqlalchemy.pool import StaticPool

        from handlers.schema_bootstrap import lambda_handler
        from repositories.postgres_repo import Database

        db = Database(
            create_engine("sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False})
        )
        dependencies.override(database=db)

        assert lambda_handler({}, None) == {"status": "ok"}
        assert lambda_handler({}, None) == {"status": "ok"}
        assert {"customers", "chat_sessions", "messages"} <= set(inspect(db.engine).get_table_names())
