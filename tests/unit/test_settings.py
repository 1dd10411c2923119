"""
Settings tests.

Run with: pytest tests/unit/test_settings.py -v
"""

import json
from unittest.mock import MagicMock, patch

from config.settings import AppSettings, secret_to_db_url


class TestAppSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.delenv("DB_SECRET_ARN", raising=False)

        settings = AppSettings.from_environment()

        assert settings.database_url is None
        assert settings.session_timeout_minutes == 30
        assert settings.segmentation_batch_size == 50
        assert settings.segmentation_delay_seconds == 1.0
        assert settings.classifier_timeout_seconds == 30

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite://")
        monkeypatch.setenv("SESSION_TIMEOUT_MINUTES", "15")
        monkeypatch.setenv("SEGMENTATION_DELAY_SECONDS", "0.5")
        monkeypatch.setenv("HISTORY_LIMIT", "500")

        settings = AppSettings.from_environment()

        assert settings.database_url == "sqlite://"
        assert settings.session_timeout_minutes == 15
        assert settings.segmentation_delay_seconds == 0.5
        assert settings.history_limit == 100

    @patch("config.settings.secret_to_db_url")
    def test_secret_used_when_url_missing(self, mock_secret, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.setenv("DB_SECRET_ARN", "arn:aws:secretsmanager:eu-west-2:123:secret:db")
        mock_secret.return_value = "postgresql+psycopg2://u:p@h:5432/db"

        assert AppSettings.from_environment().database_url == "postgresql+psycopg2://u:p@h:5432/db"


class TestSecretToDbUrl:

    @patch("config.settings.boto3")
    def test_builds_url(self, mock_boto3):
        sm = MagicMock()
        mock_boto3.client.return_value = sm
        sm.get_secret_value.return_value = {
            "SecretString": json.dumps(
                {"host": "db.local", "port": 5433, "username": "app", "password": "pw", "dbname": "wa"}
            )
        }

        assert secret_to_db_url("arn") == "postgresql+psycopg2://app:pw@db.local:5433/wa"

    @patch("config.settings.boto3")
    def test_incomplete_secret_returns_none(self, mock_boto3):
        mock_boto3.client.return_value.get_secret_value.return_value = {
            "SecretString": json.dumps({"host": "db.local"})
        }
        assert secret_to_db_url("arn") is None


class TestSegmentationThresholds:

    def test_min_messages_from_environment(self, monkeypatch):
        monkeypatch.setenv("MIN_MESSAGES_FOR_SEGMENTATION", "5")
        assert AppSettings.from_environment().min_messages_for_segmentation == 5

    def test_min_messages_default(self, monkeypatch):
        monkeypatch.delenv("MIN_MESSAGES_FOR_SEGMENTATION", raising=False)
        assert AppSettings.from_environment().min_messages_for_segmentation == 3
