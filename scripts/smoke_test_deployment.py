#!/usr/bin/env python3
"""
Smoke test a deployed calendar PDF service.

Runs three checks in order against a base URL:
1. GET  /api/health returns status "ok"
2. POST /api/test-html-to-image returns a PNG
3. POST /api/generate-calendar-pdf-html returns a PDF

Usage:
    python scripts/smoke_test_deployment.py --base-url https://pdf.example.com

    # Save the generated files for manual inspection
    python scripts/smoke_test_deployment.py --base-url http://localhost:3000 --output-dir /tmp/smoke
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import requests

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 120  # seconds; rendering may take up to 90s server-side

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
PDF_SIGNATURE = b"%PDF"

IMAGE_TEMPLATE = """
<html>
  <head>
    <style>
      body { font-family: Arial, sans-serif; padding: 20px; }
      h1 { color: #333; text-align: center; }
    </style>
  </head>
  <body>
    <h1>Test Calendar</h1>
    <p>This is a test HTML template</p>
  </body>
</html>
"""

PDF_TEMPLATE = """
<html>
  <head>
    <style>
      body {{
        font-family: Arial, sans-serif;
        padding: 40px;
        background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
        color: white;
      }}
      h1 {{ text-align: center; font-size: 48px; margin-bottom: 30px; }}
      .calendar {{ background: rgba(255,255,255,0.1); padding: 20px; border-radius: 10px; }}
    </style>
  </head>
  <body>
    <h1>{year} Calendar</h1>
    <div class="calendar">
      <p>Smoke test for calendar PDF generation</p>
      <p>Generated at: {generated_at}</p>
    </div>
  </body>
</html>
"""


def check_health(base_url: str) -> bool:
    """Check the health endpoint."""
    logger.info("\n=== Step 1: Health Check ===")
    try:
        response = requests.get(f"{base_url}/api/health", timeout=REQUEST_TIMEOUT)
        data = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.error(f"❌ Health check failed: {e}")
        return False

    if response.status_code != 200 or data.get("status") != "ok":
        logger.error(f"❌ Health check failed: HTTP {response.status_code} {data}")
        return False

    logger.info(f"✅ Health check OK: {data}")
    return True


def check_html_to_image(base_url: str, output_dir: Optional[Path]) -> bool:
    """Render a small template to PNG."""
    logger.info("\n=== Step 2: HTML to Image ===")
    try:
        response = requests.post(
            f"{base_url}/api/test-html-to-image",
            json={"htmlTemplate": IMAGE_TEMPLATE, "width": 800, "height": 600},
            timeout=REQUEST_TIMEOUT,
        )
    except requests.RequestException as e:
        logger.error(f"❌ HTML to image failed: {e}")
        return False

    if response.status_code != 200 or not response.content.startswith(PNG_SIGNATURE):
        logger.error(f"❌ HTML to image failed: HTTP {response.status_code} {response.text[:500]}")
        return False

    logger.info(f"✅ HTML to image OK ({len(response.content)} bytes)")
    if output_dir:
        (output_dir / "smoke-test.png").write_bytes(response.content)
    return True


def check_calendar_pdf(base_url: str, output_dir: Optional[Path]) -> bool:
    """Render a template to the calendar PDF."""
    logger.info("\n=== Step 3: Calendar PDF ===")
    now = datetime.now()
    html = PDF_TEMPLATE.format(year=now.year, generated_at=now.isoformat(timespec="seconds"))
    try:
        response = requests.post(
            f"{base_url}/api/generate-calendar-pdf-html",
            json={"title": "Smoke Test Calendar", "htmlTemplate": html, "width": 1200, "height": 1600},
            timeout=REQUEST_TIMEOUT,
        )
    except requests.RequestException as e:
        logger.error(f"❌ Calendar PDF failed: {e}")
        return False

    content_type = response.headers.get("content-type", "")
    if (
        response.status_code != 200
        or content_type != "application/pdf"
        or not response.content.startswith(PDF_SIGNATURE)
    ):
        logger.error(f"❌ Calendar PDF failed: HTTP {response.status_code} ({content_type})")
        return False

    logger.info(f"✅ Calendar PDF OK ({len(response.content)} bytes)")
    if output_dir:
        (output_dir / f"calendar-{now.year}.pdf").write_bytes(response.content)
    return True


def main():
    parser = argparse.ArgumentParser(description="Smoke test a deployed calendar PDF service")
    parser.add_argument("--base-url", default="http://localhost:3000", help="Service base URL")
    parser.add_argument("--output-dir", type=Path, help="Directory to save the PNG and PDF")
    args = parser.parse_args()

    base_url = args.base_url.rstrip("/")
    if args.output_dir:
        args.output_dir.mkdir(parents=True, exist_ok=True)

    logger.info(f"🧪 Testing {base_url}")
    results = [
        check_health(base_url),
        check_html_to_image(base_url, args.output_dir),
        check_calendar_pdf(base_url, args.output_dir),
    ]

    passed = sum(results)
    logger.info(f"\n{passed}/{len(results)} checks passed")
    if not all(results):
        sys.exit(1)


if __name__ == "__main__":
    main()
