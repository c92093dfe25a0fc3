"""Custom exceptions for the ephoto pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..pipeline.types import DiagnosticSnapshot


class EphotoException(Exception):
    """Base exception for all ephoto errors."""

    error_kind = "InternalError"
    retry = False

    def __init__(self, message: str, details: dict | None = None, snapshot: DiagnosticSnapshot | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.snapshot = snapshot

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class InvalidRequest(EphotoException):
    """Raised when the caller omits a required parameter."""

    error_kind = "InvalidRequest"

    def __init__(self, field: str, reason: str = "missing"):
        super().__init__(f"Invalid request: {field} is {reason}", {"field": field, "reason": reason})
        self.field = field


class ConfigurationException(EphotoException):
    """Raised when configuration is invalid."""

    error_kind = "ConfigurationError"

    def __init__(self, source: str, reason: str):
        super().__init__(f"Invalid configuration in {source}: {reason}", {"source": source, "reason": reason})


class TokenNotFound(EphotoException):
    """Raised when the form page carries no extractable token."""

    error_kind = "TokenNotFound"

    def __init__(self, page_url: str, snapshot: DiagnosticSnapshot | None = None):
        super().__init__(
            "Token not found on page (template may have changed)", {"page_url": page_url}, snapshot=snapshot
        )


class TransportError(EphotoException):
    """Raised on network, DNS, connection or server-side failures."""

    error_kind = "TransportError"

    def __init__(self, url: str, reason: str, status: int | None = None):
        details: dict = {"url": url, "reason": reason}
        if status is not None:
            details["status"] = status
        super().__init__(f"Request to {url} failed: {reason}", details)
        self.status = status


class RequestTimeout(EphotoException):
    """Raised when a request exceeds its deadline or polling is exhausted."""

    error_kind = "Timeout"
    retry = True

    def __init__(self, operation: str, timeout_seconds: float, snapshot: DiagnosticSnapshot | None = None):
        super().__init__(
            f"Operation '{operation}' timed out after {timeout_seconds:g}s",
            {"operation": operation, "timeout": timeout_seconds},
            snapshot=snapshot,
        )


class GenerationPending(EphotoException):
    """Raised when the image is still being generated and there is nowhere to poll."""

    error_kind = "Timeout"
    retry = True

    def __init__(self, snapshot: DiagnosticSnapshot | None = None):
        super().__init__("Image is still being generated. Try again in 10 seconds.", snapshot=snapshot)


class RemoteRejected(EphotoException):
    """Raised when the submission bounced back to the form or hit an error marker."""

    error_kind = "RemoteRejected"

    def __init__(self, reason: str, snapshot: DiagnosticSnapshot | None = None):
        super().__init__(f"Submission rejected: {reason}", {"reason": reason}, snapshot=snapshot)


class ArtifactNotFound(EphotoException):
    """Raised when no artifact pattern matched and nothing is pending."""

    error_kind = "NotFound"

    def __init__(self, reason: str = "Image URL not found in response", snapshot: DiagnosticSnapshot | None = None):
        super().__init__(reason, {"reason": reason}, snapshot=snapshot)
