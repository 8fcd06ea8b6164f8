"""
Setup script for calendar-pdf-service project.

Allows development installation with `pip install -e .`
Run `playwright install chromium` once after installing.
"""

from setuptools import setup, find_packages

setup(
    name="calendar-pdf-service",
    version="0.1.0",
    packages=find_packages(include=["calendar_pdf_service", "calendar_pdf_service.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.110",
        "uvicorn>=0.27",
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "playwright>=1.40",
        "reportlab>=4.0",
        "requests>=2.31",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
            "httpx>=0.25",
            "pillow>=10.0",
            "pypdf>=4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "calendar-pdf-service=calendar_pdf_service.__main__:main",
        ],
    },
)
