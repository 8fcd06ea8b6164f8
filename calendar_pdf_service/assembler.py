"""
Document Assembler - builds the calendar PDF around a rendered screenshot.

Uses ReportLab's canvas to lay out a single A4 page: the rendered image
fitted into the printable area on success, or a short error page when the
renderer fails. The finished document is streamed to the client in chunks.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from typing import AsyncIterator, Dict, Optional, Tuple

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas

from .config import SERVICE_NAME, ServiceSettings
from .errors import RenderError, StreamingError
from .models import CalendarPdfRequest, RenderRequest
from .renderer import HtmlRenderer

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

ERROR_HEADING = "HTML rendering failed"
HEADING_FONT = ("Helvetica-Bold", 16)
DETAIL_FONT = ("Helvetica", 12)
HEADING_COLOR = colors.HexColor("#ff0000")
DETAIL_COLOR = colors.HexColor("#666666")


@dataclass(frozen=True)
class ImagePlacement:
    """Position and size of the embedded image on the page, in points."""

    x: float
    y: float
    width: float
    height: float


def fit_image(
    image_width: float,
    image_height: float,
    page_width: float,
    page_height: float,
    margin: float,
) -> ImagePlacement:
    """
    Scale an image into the printable area, keeping its aspect ratio,
    and centre it horizontally and vertically.
    """
    if image_width <= 0 or image_height <= 0:
        raise ValueError(f"Invalid image size {image_width}x{image_height}")

    box_width = page_width - 2 * margin
    box_height = page_height - 2 * margin
    scale = min(box_width / image_width, box_height / image_height)

    width = image_width * scale
    height = image_height * scale
    return ImagePlacement(
        x=margin + (box_width - width) / 2,
        y=margin + (box_height - height) / 2,
        width=width,
        height=height,
    )


@dataclass
class PdfDocument:
    """A ReportLab canvas and the in-memory buffer it saves into."""

    pdf: canvas.Canvas
    buffer: BytesIO


def attachment_filename(now: Optional[datetime] = None) -> str:
    """Download name for the generated calendar, e.g. calendar-2026.pdf."""
    year = (now or datetime.now()).year
    return f"calendar-{year}.pdf"


class CalendarPdfAssembler:
    """Produces one calendar PDF per request from an HTML template."""

    def __init__(self, renderer: HtmlRenderer, settings: ServiceSettings):
        self.renderer = renderer
        self.settings = settings
        self.page_width, self.page_height = A4
        self.margin = settings.page_margin_pt

    def validate_request(self, body: CalendarPdfRequest) -> RenderRequest:
        """Validate the request body, filling in the PDF endpoint's default viewport."""
        return RenderRequest.from_fields(
            body.htmlTemplate,
            body.width,
            body.height,
            default_width=self.settings.pdf_default_width,
            default_height=self.settings.pdf_default_height,
        )

    @staticmethod
    def attachment_headers(now: Optional[datetime] = None) -> Dict[str, str]:
        """Response headers, set before any document bytes are sent."""
        return {
            "Content-Type": "application/pdf",
            "Content-Disposition": f'attachment; filename="{attachment_filename(now)}"',
        }

    def new_document(self, title: Optional[str] = None) -> PdfDocument:
        """Start an empty A4 document; nothing is written until it is saved."""
        buffer = BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=A4)
        pdf.setTitle(title or f"Calendar {datetime.now().year}")
        pdf.setCreator(SERVICE_NAME)
        return PdfDocument(pdf=pdf, buffer=buffer)

    def draw_image(self, pdf: canvas.Canvas, image: bytes) -> ImagePlacement:
        """Embed the PNG, fitted and centred in the printable area."""
        reader = ImageReader(BytesIO(image))
        image_width, image_height = reader.getSize()
        placement = fit_image(
            image_width, image_height, self.page_width, self.page_height, self.margin
        )
        pdf.drawImage(
            reader,
            placement.x,
            placement.y,
            width=placement.width,
            height=placement.height,
        )
        logger.info(
            f"- Image {image_width}x{image_height}px placed at "
            f"({placement.x:.1f}, {placement.y:.1f}) size {placement.width:.1f}x{placement.height:.1f}pt"
        )
        return placement

    def draw_render_failure(self, pdf: canvas.Canvas, error: RenderError) -> None:
        """Write the degraded page: a red heading and the failure message below it."""
        center_x = self.page_width / 2
        text_width = self.page_width - 2 * self.margin

        font_name, font_size = HEADING_FONT
        y = self.page_height - self.margin - font_size
        pdf.setFont(font_name, font_size)
        pdf.setFillColor(HEADING_COLOR)
        pdf.drawCentredString(center_x, y, ERROR_HEADING)

        font_name, font_size = DETAIL_FONT
        leading = font_size * 1.2
        y -= font_size * 1.2 + leading
        pdf.setFont(font_name, font_size)
        pdf.setFillColor(DETAIL_COLOR)
        for line in simpleSplit(f"Error: {error}", font_name, font_size, text_width):
            pdf.drawCentredString(center_x, y, line)
            y -= leading

    async def render_image(
        self, request: RenderRequest
    ) -> Tuple[Optional[bytes], Optional[RenderError]]:
        """
        Run the renderer for one request.

        Returns:
            (PNG bytes, None) on success, or (None, RenderError) for any
            failure, so the caller can degrade instead of aborting
        """
        logger.info("- Rendering HTML to image...")
        try:
            image = await self.renderer.render(request.html, request.width, request.height)
        except RenderError as e:
            logger.error(f"❌ HTML rendering failed: {e}")
            return None, e
        except Exception as e:
            error = RenderError("render", str(e) or type(e).__name__, cause=type(e).__name__)
            logger.error(f"❌ HTML rendering failed unexpectedly: {error}")
            return None, error

        logger.info("✅ HTML rendered")
        return image, None

    async def build(self, request: RenderRequest, document: PdfDocument) -> None:
        """
        Render the template and finish the document into its buffer.

        Render failures become the degraded page.

        Raises:
            StreamingError: the PDF itself could not be drawn or saved
        """
        image, error = await self.render_image(request)
        pdf = document.pdf
        try:
            if error is None:
                self.draw_image(pdf, image)
            else:
                self.draw_render_failure(pdf, error)
            pdf.showPage()
            pdf.save()
        except Exception as e:
            raise StreamingError(f"PDF construction failed: {e}") from e

    async def stream(self, request: RenderRequest, document: PdfDocument) -> AsyncIterator[bytes]:
        """
        Yield the PDF in chunks.

        Runs after the status line and headers are committed, so a failure
        here can only be logged and end the stream. ReportLab serialises
        the whole document on save(), so chunks are cut from that buffer.
        """
        try:
            await self.build(request, document)
        except StreamingError as e:
            logger.error(f"❌ {e} (headers already sent, ending stream)")
            return

        data = document.buffer.getvalue()
        document.buffer.close()
        for offset in range(0, len(data), CHUNK_SIZE):
            yield data[offset:offset + CHUNK_SIZE]

        logger.info(f"✅ Calendar PDF streamed ({len(data)} bytes)")
