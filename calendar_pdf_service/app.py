"""
Calendar PDF Service - FastAPI application.

Provides endpoints for rendering an HTML calendar template to a PDF
(via a Playwright/Chromium screenshot embedded with ReportLab) and a
diagnostic endpoint returning the raw PNG.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse

from .assembler import CalendarPdfAssembler
from .config import SERVICE_NAME, ServiceSettings, get_settings
from .errors import RenderError, TemplateValidationError
from .middleware import BodySizeLimitMiddleware, error_response
from .models import CalendarPdfRequest, HealthResponse, HtmlToImageRequest, RenderRequest
from .renderer import HtmlRenderer

logger = logging.getLogger(__name__)


def configure_logging(settings: ServiceSettings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )


def create_app(
    settings: Optional[ServiceSettings] = None,
    renderer: Optional[HtmlRenderer] = None,
    probe_browser: bool = True,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Service configuration (defaults to environment settings)
        renderer: Renderer to use (defaults to a Playwright renderer)
        probe_browser: Launch Chromium once at startup to report readiness
    """
    settings = settings or get_settings()
    renderer = renderer or HtmlRenderer(settings)
    assembler = CalendarPdfAssembler(renderer, settings)

    app = FastAPI(
        title=SERVICE_NAME,
        version="0.1.0",
        description="Renders HTML calendar templates to PDF using Playwright/Chromium"
    )
    app.state.settings = settings
    app.state.renderer = renderer
    app.state.assembler = assembler
    app.state.browser_ready = False
    app.state.browser_error = None

    # ========================================================================
    # Middleware / Exception Handlers
    # ========================================================================

    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=settings.max_body_bytes)

    # Outermost, so early rejections carry CORS headers too
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(TemplateValidationError)
    async def template_validation_handler(request: Request, exc: TemplateValidationError):
        logger.warning(f"Invalid request for {request.url.path}: {exc.error}")
        return JSONResponse(status_code=400, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Malformed request for {request.url.path}: {exc.errors()}")
        details = "; ".join(
            f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
            for err in exc.errors()
        )
        return error_response(400, "Invalid request body", details or "Request body is not valid JSON")

    # ========================================================================
    # Startup Event - Validate Playwright
    # ========================================================================

    @app.on_event("startup")
    async def on_startup():
        logger.info(f"🚀 {SERVICE_NAME} starting (HTML Template Mode)")
        logger.info("  GET  /api/health                      - health check")
        logger.info("  POST /api/test-html-to-image          - HTML to PNG (diagnostic)")
        logger.info("  POST /api/generate-calendar-pdf-html  - HTML template to PDF")

        if not probe_browser:
            return

        logger.info("Validating Chromium installation...")
        ready, error = await renderer.probe()
        app.state.browser_ready = ready
        app.state.browser_error = error
        if ready:
            logger.info("✅ Chromium validation successful")
        else:
            logger.error(f"❌ Chromium validation failed: {error}")
            logger.error("Rendering will fail until this is resolved.")

    # ========================================================================
    # Endpoints
    # ========================================================================

    @app.get("/api/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Health check endpoint with render capacity and browser readiness."""
        return HealthResponse(
            status="ok",
            message=f"{SERVICE_NAME} is running (HTML Template Mode)",
            timestamp=datetime.now(timezone.utc),
            active_renders=renderer.active_renders,
            max_concurrent=renderer.max_concurrent,
            browser_ready=app.state.browser_ready,
            browser_error=app.state.browser_error,
        )

    @app.post("/api/generate-calendar-pdf-html")
    async def generate_calendar_pdf_html(body: CalendarPdfRequest):
        """
        Render an HTML template to a one-page A4 PDF.

        Headers are committed before rendering starts, so a render failure
        yields a degraded PDF with status 200 rather than an error status.

        Raises:
            TemplateValidationError: 400 for a missing or empty template
        """
        logger.info("🎯 HTML template PDF request:")
        logger.info(f"- Title: {body.title}")
        template_length = len(body.htmlTemplate) if isinstance(body.htmlTemplate, str) else 0
        logger.info(f"- Template length: {template_length} chars")

        render_request = assembler.validate_request(body)
        logger.info(f"- Image size: {render_request.width}x{render_request.height}")

        try:
            document = assembler.new_document(body.title)
            headers = assembler.attachment_headers()
            return StreamingResponse(
                assembler.stream(render_request, document),
                media_type="application/pdf",
                headers=headers,
            )
        except Exception as e:
            logger.error(f"❌ HTML template PDF generation failed: {e}")
            return error_response(500, "HTML template PDF generation failed", str(e))

    @app.post("/api/test-html-to-image")
    async def test_html_to_image(body: HtmlToImageRequest):
        """
        Render an HTML template and return the raw PNG (debugging aid).

        Raises:
            TemplateValidationError: 400 for a missing or empty template
        """
        render_request = RenderRequest.from_fields(
            body.htmlTemplate,
            body.width,
            body.height,
            default_width=settings.image_default_width,
            default_height=settings.image_default_height,
        )
        logger.info(
            f"📸 HTML to image request: {len(render_request.html)} chars, "
            f"{render_request.width}x{render_request.height}"
        )

        try:
            image = await renderer.render(
                render_request.html, render_request.width, render_request.height
            )
        except RenderError as e:
            logger.error(f"❌ HTML to image test failed: {e}")
            return error_response(500, "HTML to image test failed", str(e))

        logger.info("✅ HTML to image test succeeded")
        return Response(content=image, media_type="image/png")

    return app


configure_logging(get_settings())
app = create_app()
