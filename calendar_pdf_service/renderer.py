"""
Renderer - HTML to PNG using Playwright/Chromium.

Each call launches its own short-lived headless Chromium, loads the HTML,
waits for network idle and web fonts, screenshots the viewport and always
closes the browser again. An asyncio semaphore bounds how many browsers are
alive at once; callers beyond the limit wait for a free slot.
"""

import asyncio
import logging
from typing import Awaitable, Optional, Tuple, TypeVar

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .config import ServiceSettings
from .errors import RenderError

logger = logging.getLogger(__name__)

T = TypeVar("T")

PROBE_HTML = "<html><body><h1>Test</h1></body></html>"

# Resolves once every font referenced by the document has loaded (or failed).
FONTS_READY_SCRIPT = "() => document.fonts.ready.then(() => document.fonts.status)"


def _is_timeout(exc: BaseException) -> bool:
    """True for asyncio timeouts and Playwright's own TimeoutError."""
    return isinstance(exc, (asyncio.TimeoutError, PlaywrightTimeoutError))


async def run_stage(stage: str, awaitable: Awaitable[T], timeout_ms: Optional[int] = None) -> T:
    """
    Await one render stage, converting any failure into a RenderError.

    Args:
        stage: Stage name recorded on the error
        awaitable: The stage's coroutine
        timeout_ms: Optional hard bound; exceeding it is a timeout failure

    Raises:
        RenderError: stage failed or timed out
    """
    try:
        if timeout_ms is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout=timeout_ms / 1000)
    except RenderError:
        raise
    except Exception as e:
        if _is_timeout(e):
            limit = f" after {timeout_ms}ms" if timeout_ms is not None else ""
            raise RenderError(stage, f"timed out{limit}", cause="timeout") from e
        raise RenderError(stage, str(e) or type(e).__name__, cause=type(e).__name__) from e


class HtmlRenderer:
    """Renders HTML documents to PNG screenshots in headless Chromium."""

    def __init__(self, settings: ServiceSettings):
        self.settings = settings
        self._slots = asyncio.Semaphore(settings.max_concurrent_renders)
        self._active = 0

    @property
    def active_renders(self) -> int:
        """Number of renders currently holding a browser slot."""
        return self._active

    @property
    def max_concurrent(self) -> int:
        return self.settings.max_concurrent_renders

    async def render(self, html: str, width: int, height: int) -> bytes:
        """
        Render HTML content to PNG bytes of exactly width x height pixels.

        Args:
            html: Complete HTML document
            width: Viewport width in pixels
            height: Viewport height in pixels

        Returns:
            PNG bytes of the viewport

        Raises:
            RenderError: on any stage failure (launch, page, viewport, load,
                fonts, screenshot)
        """
        async with self._slots:
            self._active += 1
            try:
                return await self._render(html, width, height)
            finally:
                self._active -= 1

    async def _render(self, html: str, width: int, height: int) -> bytes:
        from playwright.async_api import async_playwright

        settings = self.settings
        logger.info(f"Rendering HTML ({len(html)} chars) at {width}x{height}")

        try:
            async with async_playwright() as p:
                logger.debug("Launching Chromium...")
                browser = await run_stage(
                    "launch",
                    p.chromium.launch(
                        headless=settings.playwright_headless,
                        args=settings.browser_args,
                    ),
                )
                logger.debug("Chromium launched")

                try:
                    page = await run_stage("page", browser.new_page())

                    # Diagnostic only; page script errors never fail the render
                    page.on("pageerror", lambda err: logger.error(f"Page script error: {err}"))
                    page.on("crash", lambda _: logger.error("Page crashed during render"))

                    await run_stage(
                        "viewport",
                        page.set_viewport_size({"width": width, "height": height}),
                    )

                    logger.debug("Loading HTML content...")
                    await run_stage(
                        "load",
                        page.set_content(
                            html,
                            wait_until="networkidle",
                            timeout=settings.load_timeout_ms,
                        ),
                        timeout_ms=settings.load_timeout_ms,
                    )

                    logger.debug("Waiting for fonts...")
                    await run_stage(
                        "fonts",
                        page.evaluate(FONTS_READY_SCRIPT),
                        timeout_ms=settings.font_timeout_ms,
                    )

                    logger.debug("Taking screenshot...")
                    image = await run_stage(
                        "screenshot",
                        page.screenshot(
                            type="png",
                            full_page=False,
                            timeout=settings.screenshot_timeout_ms,
                        ),
                        timeout_ms=settings.screenshot_timeout_ms,
                    )
                finally:
                    try:
                        await browser.close()
                        logger.debug("Chromium closed")
                    except Exception as close_error:
                        logger.error(f"Failed to close Chromium: {close_error}")

        except RenderError as e:
            logger.error(f"❌ Render failed at stage '{e.stage}': {e.message}")
            raise
        except Exception as e:
            # Playwright driver could not be started
            logger.error(f"❌ Render failed to start: {e}")
            raise RenderError("launch", str(e) or type(e).__name__, cause=type(e).__name__) from e

        logger.info(f"✅ Rendered {len(image)} byte PNG")
        return image

    async def probe(self) -> Tuple[bool, Optional[str]]:
        """
        Check that Chromium can be launched and can take a screenshot.

        Returns:
            (ready, error message or None)
        """
        try:
            image = await self.render(PROBE_HTML, 200, 100)
        except RenderError as e:
            return False, str(e)

        if not image:
            return False, "Probe screenshot returned empty result"
        return True, None
