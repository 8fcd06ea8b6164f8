"""
Pytest fixtures for calendar PDF service tests.

Playwright is always mocked here; the only test that launches a real
Chromium lives in test_integration.py and is opt-in.
"""

from io import BytesIO
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from calendar_pdf_service.app import create_app
from calendar_pdf_service.config import ServiceSettings


def make_png(width: int = 1200, height: int = 1600, color: str = "#336699") -> bytes:
    """Build a solid-colour PNG of the given size."""
    buffer = BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def make_playwright_mock(png: bytes = b"", launch_side_effect=None):
    """
    Build a mock for playwright.async_api.async_playwright.

    Returns:
        (async_playwright mock, browser mock, page mock)
    """
    mock_page = AsyncMock()
    mock_page.on = MagicMock()
    mock_page.evaluate = AsyncMock(return_value="loaded")
    mock_page.screenshot = AsyncMock(return_value=png)

    mock_browser = AsyncMock()
    mock_browser.new_page = AsyncMock(return_value=mock_page)

    launch = AsyncMock(return_value=mock_browser, side_effect=launch_side_effect)
    mock_playwright = MagicMock()
    mock_playwright.return_value.__aenter__ = AsyncMock(
        return_value=MagicMock(chromium=MagicMock(launch=launch))
    )
    mock_playwright.return_value.__aexit__ = AsyncMock(return_value=False)
    return mock_playwright, mock_browser, mock_page


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def settings() -> ServiceSettings:
    """Default settings, independent of the environment."""
    return ServiceSettings(_env_file=None, max_body_bytes=1024 * 1024)


@pytest.fixture
def fake_renderer(png_bytes):
    """Renderer stand-in returning a fixed PNG."""
    renderer = MagicMock()
    renderer.render = AsyncMock(return_value=png_bytes)
    renderer.probe = AsyncMock(return_value=(True, None))
    renderer.active_renders = 0
    renderer.max_concurrent = 5
    return renderer


@pytest.fixture
def app(settings, fake_renderer):
    return create_app(settings, renderer=fake_renderer, probe_browser=False)


@pytest.fixture
def client(app):
    """Create test client with a fake renderer and no startup browser probe."""
    return TestClient(app)


@pytest.fixture
def png_factory():
    return make_png


@pytest.fixture
def playwright_factory():
    return make_playwright_mock


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: launches a real headless Chromium")
