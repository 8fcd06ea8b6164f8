"""
Request/response models for the calendar PDF service.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from .errors import TemplateValidationError


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "ok"
    message: str
    timestamp: datetime
    active_renders: int
    max_concurrent: int
    browser_ready: bool = False
    browser_error: Optional[str] = None


class CalendarPdfRequest(BaseModel):
    """HTML template to PDF request."""
    title: Optional[str] = Field(None, description="Document title (PDF metadata)")
    # Typed loosely so a missing or non-string template is reported as a 400, not a 422
    htmlTemplate: Optional[Any] = Field(None, description="Complete HTML document to render")
    width: Optional[int] = Field(None, description="Viewport width in pixels (default 1200)")
    height: Optional[int] = Field(None, description="Viewport height in pixels (default 1600)")


class HtmlToImageRequest(BaseModel):
    """HTML template to PNG request (diagnostic)."""
    htmlTemplate: Optional[Any] = Field(None, description="Complete HTML document to render")
    width: Optional[int] = Field(None, description="Viewport width in pixels (default 800)")
    height: Optional[int] = Field(None, description="Viewport height in pixels (default 600)")


@dataclass(frozen=True)
class RenderRequest:
    """A validated render job: HTML plus the exact viewport size."""

    html: str
    width: int
    height: int

    @classmethod
    def from_fields(
        cls,
        html_template: Any,
        width: Optional[int],
        height: Optional[int],
        default_width: int,
        default_height: int,
    ) -> "RenderRequest":
        """
        Validate raw request fields into a RenderRequest.

        Raises:
            TemplateValidationError: template missing, not a string or empty,
                or a dimension that is not a positive integer
        """
        if html_template is None or not isinstance(html_template, str):
            raise TemplateValidationError(
                "No HTML template provided",
                "Please provide an HTML template string",
            )
        if len(html_template) == 0:
            raise TemplateValidationError(
                "Empty HTML template",
                "HTML template must not be empty",
            )

        width = default_width if width is None else width
        height = default_height if height is None else height
        if width <= 0 or height <= 0:
            raise TemplateValidationError(
                "Invalid dimensions",
                f"width and height must be positive integers (got {width}x{height})",
            )

        return cls(html=html_template, width=width, height=height)
