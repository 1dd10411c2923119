"""Custom exceptions and helpers for consistent error responses."""

import json
from typing import Any, Dict, Optional


class AppError(Exception):
    """Base class for application errors."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(AppError):
    """Raised when a requested customer or message is missing."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=404)


class ValidationError(AppError):
    """Raised when an inbound payload or path parameter is malformed."""

    def __init__(self, message: str = "Invalid input", details: Optional[Any] = None):
        super().__init__(message, status_code=400)
        self.details = details


class DuplicateMessageError(AppError):
    """Raised when a message id has already been stored."""

    def __init__(self, message_id: str):
        super().__init__(f"Message {message_id} already processed", status_code=409)
        self.message_id = message_id


class StorageError(AppError):
    """Raised when the database connection or a transaction fails."""

    def __init__(self, message: str = "Storage operation failed"):
        super().__init__(message, status_code=503)


class ExternalClassificationError(AppError):
    """Raised when the completion endpoint cannot be reached or answers garbage."""

    def __init__(self, message: str = "Classifier call failed"):
        super().__init__(message, status_code=502)


def json_response(status: int, body: Dict[str, Any]) -> Dict[str, Any]:
    """Format a JSON API Gateway HTTP API response."""
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body, default=str),
    }


def to_response(error: AppError) -> Dict[str, Any]:
    """Convert an AppError into a Lambda proxy integration response."""
    body: Dict[str, Any] = {"success": False, "error": str(error), "status": "error"}
    details = getattr(error, "details", None)
    if details is not None:
        body["details"] = details
    return json_response(error.status_code, body)
