"""Service exceptions for conditions that are not modeled as result data."""

from __future__ import annotations

from typing import Any


class CaptureServiceError(Exception):
    """Base exception for all capture service errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class InvalidImageError(CaptureServiceError):
    """Raised when an uploaded image cannot be decoded into pixels."""

    def __init__(self, reason: str):
        super().__init__(f"Invalid image: {reason}", "INVALID_IMAGE")
        self.reason = reason


class LivenessStateError(CaptureServiceError):
    """Raised on an operation the liveness session state does not allow."""

    def __init__(self, reason: str, state: str | None = None):
        details = {"state": state} if state else None
        super().__init__(reason, "INVALID_LIVENESS_STATE", details)
        self.reason = reason
        self.state = state


class SessionNotFoundError(CaptureServiceError):
    """Raised when a liveness session id is unknown or expired."""

    def __init__(self, session_id: str):
        super().__init__("Session not found or expired", "SESSION_NOT_FOUND")
        self.session_id = session_id
