"""
Calendar PDF Service Configuration Module

Centralized, immutable configuration with Pydantic validation.
Values can be overridden via environment variables and are validated once
at startup, then passed explicitly to the renderer and the assembler.
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SERVICE_NAME = "Calendar PDF Server"

# Chromium flags for constrained (containerised) deployments.
DEFAULT_BROWSER_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--font-render-hinting=none",
    "--disable-font-subpixel-positioning",
    "--disable-features=TranslateUI",
    "--disable-ipc-flooding-protection",
)


class ServiceSettings(BaseSettings):
    """
    Calendar PDF service configuration with validation.

    All settings can be overridden via environment variables
    (case-insensitive, no prefix). Instances are frozen.
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        frozen=True,
    )

    # === Server ===
    host: str = Field(default="0.0.0.0", description="Listen address")
    port: int = Field(default=3000, ge=1, le=65535, description="Listen port")
    log_level: str = Field(default="INFO", description="Root log level")
    max_body_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1024,
        description="Largest accepted request body in bytes"
    )
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins ('*' for all)"
    )

    # === Rendering ===
    max_concurrent_renders: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Maximum browser processes alive at once; extra requests queue"
    )
    playwright_headless: bool = Field(default=True, description="Run Chromium headless")
    load_timeout_ms: int = Field(
        default=60000,
        ge=1000,
        description="Content load / network-idle timeout in milliseconds"
    )
    font_timeout_ms: int = Field(
        default=30000,
        ge=1000,
        description="Web font readiness timeout in milliseconds"
    )
    screenshot_timeout_ms: int = Field(
        default=30000,
        ge=1000,
        description="Screenshot timeout in milliseconds"
    )

    # === Default viewport sizes ===
    pdf_default_width: int = Field(default=1200, gt=0)
    pdf_default_height: int = Field(default=1600, gt=0)
    image_default_width: int = Field(default=800, gt=0)
    image_default_height: int = Field(default=600, gt=0)

    # === Document ===
    page_margin_pt: float = Field(
        default=50,
        ge=0,
        le=200,
        description="Margin on every side of the A4 page, in points"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a known logging level name."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of: {', '.join(sorted(allowed))}")
        return v_upper

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins into a list."""
        origins = [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]
        return origins or ["*"]

    @property
    def browser_args(self) -> List[str]:
        """Chromium launch arguments."""
        return list(DEFAULT_BROWSER_ARGS)


@lru_cache()
def get_settings() -> ServiceSettings:
    """
    Get cached settings instance.

    Settings are loaded once and cached; use this function to access
    configuration throughout the app.
    """
    return ServiceSettings()
