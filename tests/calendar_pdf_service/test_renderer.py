"""
Unit tests for the Playwright renderer.

Playwright is mocked; these tests cover stage ordering, timeouts,
browser cleanup and the concurrency bound.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from calendar_pdf_service.config import ServiceSettings
from calendar_pdf_service.errors import RenderError
from calendar_pdf_service.renderer import HtmlRenderer, run_stage


HTML = "<html><body><h1>Test</h1></body></html>"


@pytest.fixture
def renderer(settings):
    return HtmlRenderer(settings)


class TestRunStage:
    """Tests for the stage guard."""

    @pytest.mark.asyncio
    async def test_returns_stage_result(self):
        """Test that a successful stage returns its value."""
        async def ok():
            return 42

        assert await run_stage("load", ok()) == 42

    @pytest.mark.asyncio
    async def test_timeout_becomes_render_error(self):
        """Test that exceeding the bound raises a timeout RenderError."""
        async def hang():
            await asyncio.sleep(10)

        with pytest.raises(RenderError) as exc_info:
            await run_stage("fonts", hang(), timeout_ms=50)

        assert exc_info.value.stage == "fonts"
        assert exc_info.value.cause == "timeout"
        assert "50ms" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_playwright_timeout_becomes_render_error(self):
        """Test that Playwright's own timeout is classified as a timeout."""
        async def fail():
            raise PlaywrightTimeoutError("Timeout 60000ms exceeded.")

        with pytest.raises(RenderError) as exc_info:
            await run_stage("load", fail())

        assert exc_info.value.cause == "timeout"

    @pytest.mark.asyncio
    async def test_other_errors_keep_message(self):
        """Test that other failures keep their message and exception type."""
        async def fail():
            raise ValueError("bad content")

        with pytest.raises(RenderError) as exc_info:
            await run_stage("page", fail())

        assert exc_info.value.stage == "page"
        assert exc_info.value.message == "bad content"
        assert exc_info.value.cause == "ValueError"
        assert str(exc_info.value) == "[page] bad content"


class TestRender:
    """Tests for HtmlRenderer.render."""

    @pytest.mark.asyncio
    async def test_render_success(self, renderer, png_bytes, playwright_factory):
        """Test the full pipeline returns the screenshot bytes."""
        mock_playwright, mock_browser, mock_page = playwright_factory(png_bytes)

        with patch("playwright.async_api.async_playwright", mock_playwright):
            image = await renderer.render(HTML, 1200, 1600)

        assert image == png_bytes
        mock_page.set_viewport_size.assert_awaited_once_with({"width": 1200, "height": 1600})
        mock_page.set_content.assert_awaited_once_with(
            HTML, wait_until="networkidle", timeout=60000
        )
        mock_page.evaluate.assert_awaited_once()
        assert "document.fonts.ready" in mock_page.evaluate.await_args.args[0]
        mock_page.screenshot.assert_awaited_once_with(type="png", full_page=False, timeout=30000)
        mock_browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_render_launches_headless_without_sandbox_or_gpu(self, renderer, png_bytes, playwright_factory):
        """Test Chromium launch flags."""
        mock_playwright, _, _ = playwright_factory(png_bytes)

        with patch("playwright.async_api.async_playwright", mock_playwright):
            await renderer.render(HTML, 800, 600)

        chromium = mock_playwright.return_value.__aenter__.return_value.chromium
        kwargs = chromium.launch.await_args.kwargs
        assert kwargs["headless"] is True
        assert "--no-sandbox" in kwargs["args"]
        assert "--disable-gpu" in kwargs["args"]

    @pytest.mark.asyncio
    async def test_render_registers_page_error_observers(self, renderer, png_bytes, playwright_factory):
        """Test that page script errors are observed but do not fail the render."""
        mock_playwright, _, mock_page = playwright_factory(png_bytes)

        with patch("playwright.async_api.async_playwright", mock_playwright):
            await renderer.render(HTML, 800, 600)

        events = [call.args[0] for call in mock_page.on.call_args_list]
        assert "pageerror" in events
        assert "crash" in events

        # Observers only log
        handler = dict((c.args[0], c.args[1]) for c in mock_page.on.call_args_list)["pageerror"]
        handler(Exception("ReferenceError: foo is not defined"))

    @pytest.mark.asyncio
    async def test_load_timeout(self, renderer, playwright_factory):
        """Test that a network-idle timeout fails the load stage and closes the browser."""
        mock_playwright, mock_browser, mock_page = playwright_factory()
        mock_page.set_content = AsyncMock(
            side_effect=PlaywrightTimeoutError("Timeout 60000ms exceeded.")
        )

        with patch("playwright.async_api.async_playwright", mock_playwright):
            with pytest.raises(RenderError) as exc_info:
                await renderer.render(HTML, 800, 600)

        assert exc_info.value.stage == "load"
        assert exc_info.value.cause == "timeout"
        mock_page.screenshot.assert_not_awaited()
        mock_browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_screenshot_timeout(self, renderer, playwright_factory):
        """Test that a screenshot timeout fails the screenshot stage."""
        mock_playwright, mock_browser, mock_page = playwright_factory()
        mock_page.screenshot = AsyncMock(side_effect=asyncio.TimeoutError())

        with patch("playwright.async_api.async_playwright", mock_playwright):
            with pytest.raises(RenderError) as exc_info:
                await renderer.render(HTML, 800, 600)

        assert exc_info.value.stage == "screenshot"
        assert exc_info.value.cause == "timeout"
        mock_browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_font_wait_is_bounded(self, png_bytes, playwright_factory):
        """Test that fonts that never resolve fail instead of hanging."""
        renderer = HtmlRenderer(ServiceSettings(_env_file=None, font_timeout_ms=1000))
        mock_playwright, mock_browser, mock_page = playwright_factory(png_bytes)

        async def never_ready(*args, **kwargs):
            await asyncio.sleep(30)

        mock_page.evaluate = AsyncMock(side_effect=never_ready)

        with patch("playwright.async_api.async_playwright", mock_playwright):
            with pytest.raises(RenderError) as exc_info:
                await asyncio.wait_for(renderer.render(HTML, 800, 600), timeout=10)

        assert exc_info.value.stage == "fonts"
        assert exc_info.value.cause == "timeout"
        mock_page.screenshot.assert_not_awaited()
        mock_browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_launch_failure(self, renderer, playwright_factory):
        """Test that a browser spawn failure is a launch-stage error with nothing to close."""
        mock_playwright, mock_browser, _ = playwright_factory(
            launch_side_effect=Exception("Executable doesn't exist")
        )

        with patch("playwright.async_api.async_playwright", mock_playwright):
            with pytest.raises(RenderError) as exc_info:
                await renderer.render(HTML, 800, 600)

        assert exc_info.value.stage == "launch"
        assert "Executable doesn't exist" in exc_info.value.message
        mock_browser.close.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_driver_start_failure(self, renderer, playwright_factory):
        """Test that a Playwright driver start failure is a launch-stage error."""
        mock_playwright, _, _ = playwright_factory()
        mock_playwright.return_value.__aenter__ = AsyncMock(side_effect=OSError("spawn failed"))

        with patch("playwright.async_api.async_playwright", mock_playwright):
            with pytest.raises(RenderError) as exc_info:
                await renderer.render(HTML, 800, 600)

        assert exc_info.value.stage == "launch"
        assert "spawn failed" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_close_failure_does_not_mask_original_error(self, renderer, playwright_factory):
        """Test that the root cause survives a failing browser close."""
        mock_playwright, mock_browser, mock_page = playwright_factory()
        mock_page.set_content = AsyncMock(side_effect=RuntimeError("Target closed"))
        mock_browser.close = AsyncMock(side_effect=RuntimeError("Browser already gone"))

        with patch("playwright.async_api.async_playwright", mock_playwright):
            with pytest.raises(RenderError) as exc_info:
                await renderer.render(HTML, 800, 600)

        assert exc_info.value.stage == "load"
        assert "Target closed" in exc_info.value.message
        mock_browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_failure_after_success_still_returns_image(self, renderer, png_bytes, playwright_factory):
        """Test that a failing close after a good screenshot is only logged."""
        mock_playwright, mock_browser, _ = playwright_factory(png_bytes)
        mock_browser.close = AsyncMock(side_effect=RuntimeError("Browser already gone"))

        with patch("playwright.async_api.async_playwright", mock_playwright):
            image = await renderer.render(HTML, 800, 600)

        assert image == png_bytes


class TestConcurrency:
    """Tests for the bounded browser pool."""

    @pytest.mark.asyncio
    async def test_concurrent_renders_are_bounded(self, png_bytes, playwright_factory):
        """Test that no more than max_concurrent_renders browsers are alive at once."""
        renderer = HtmlRenderer(ServiceSettings(_env_file=None, max_concurrent_renders=2))
        mock_playwright, _, mock_page = playwright_factory(png_bytes)

        alive = 0
        peak = 0

        async def slow_screenshot(*args, **kwargs):
            nonlocal alive, peak
            alive += 1
            peak = max(peak, alive)
            assert renderer.active_renders <= 2
            await asyncio.sleep(0.05)
            alive -= 1
            return png_bytes

        mock_page.screenshot = AsyncMock(side_effect=slow_screenshot)

        with patch("playwright.async_api.async_playwright", mock_playwright):
            results = await asyncio.gather(*(renderer.render(HTML, 800, 600) for _ in range(5)))

        assert results == [png_bytes] * 5
        assert peak == 2
        assert renderer.active_renders == 0

    @pytest.mark.asyncio
    async def test_one_failure_does_not_affect_others(self, renderer, png_bytes, playwright_factory):
        """Test that concurrent renders succeed or fail independently."""
        mock_playwright, _, mock_page = playwright_factory(png_bytes)

        async def set_content(html, **kwargs):
            if "broken" in html:
                raise RuntimeError("net::ERR_FAILED")

        mock_page.set_content = AsyncMock(side_effect=set_content)

        with patch("playwright.async_api.async_playwright", mock_playwright):
            results = await asyncio.gather(
                renderer.render(HTML, 800, 600),
                renderer.render("<html>broken</html>", 800, 600),
                renderer.render(HTML, 800, 600),
                return_exceptions=True,
            )

        assert results[0] == png_bytes
        assert isinstance(results[1], RenderError)
        assert results[2] == png_bytes
        assert renderer.active_renders == 0


class TestProbe:
    """Tests for the startup browser probe."""

    @pytest.mark.asyncio
    async def test_probe_ready(self, renderer, png_bytes, playwright_factory):
        """Test that a working browser reports ready."""
        mock_playwright, _, _ = playwright_factory(png_bytes)

        with patch("playwright.async_api.async_playwright", mock_playwright):
            assert await renderer.probe() == (True, None)

    @pytest.mark.asyncio
    async def test_probe_launch_failure(self, renderer, playwright_factory):
        """Test that a missing browser reports the launch error."""
        mock_playwright, _, _ = playwright_factory(
            launch_side_effect=Exception("Executable doesn't exist")
        )

        with patch("playwright.async_api.async_playwright", mock_playwright):
            ready, error = await renderer.probe()

        assert ready is False
        assert "Executable doesn't exist" in error

    @pytest.mark.asyncio
    async def test_probe_empty_screenshot(self, renderer, playwright_factory):
        """Test that an empty screenshot is reported as not ready."""
        mock_playwright, _, _ = playwright_factory(b"")

        with patch("playwright.async_api.async_playwright", mock_playwright):
            ready, error = await renderer.probe()

        assert ready is False
        assert "empty" in error
