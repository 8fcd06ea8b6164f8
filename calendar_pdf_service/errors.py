"""
Error taxonomy for the calendar PDF service.

TemplateValidationError is a client error raised before any browser work.
RenderError covers every failure inside the HTML-to-image pipeline.
StreamingError marks failures after response headers were committed.
"""

from typing import Optional


class ServiceError(Exception):
    """Base class for calendar PDF service errors."""


class TemplateValidationError(ServiceError):
    """Malformed, missing or empty request field."""

    def __init__(self, error: str, message: str):
        super().__init__(message)
        self.error = error
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.error, "message": self.message}


class RenderError(ServiceError):
    """
    Failure inside the render pipeline.

    Attributes:
        stage: Pipeline stage that failed (launch, page, viewport, load,
            fonts, screenshot)
        cause: Short machine-readable cause, e.g. "timeout"
    """

    def __init__(self, stage: str, message: str, cause: Optional[str] = None):
        super().__init__(message)
        self.stage = stage
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        return f"[{self.stage}] {self.message}"


class StreamingError(ServiceError):
    """Failure after the response status and headers were sent."""
