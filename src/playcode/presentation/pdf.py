"""
HTML -> PDF rendering (optional, needs weasyprint).
"""

from __future__ import annotations

from typing import Optional

try:
    from weasyprint import HTML  # type: ignore
except ImportError:  # pragma: no cover
    HTML = None


def pdf_available() -> bool:
    return HTML is not None


def render_pdf(html_content: str) -> Optional[bytes]:
    """Returns the PDF bytes, or None when weasyprint is not installed."""
    if HTML is None:
        return None
    return HTML(string=html_content).write_pdf()
