"""
Calendar PDF Service - HTML template to PDF rendering.

Renders an HTML calendar template in headless Chromium (via Playwright),
embeds the screenshot into an A4 PDF built with ReportLab and streams it
back over HTTP.
"""

__version__ = "0.1.0"
