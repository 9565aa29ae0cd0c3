"""
Jinja2 rendering for outgoing emails and exported documents.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"


def format_brl_number(value: Any) -> str:
    """1234567.5 -> '1.234.567,5' (pt-BR grouping, decimals only when present)."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return str(value)
    if number.is_integer():
        return f"{int(number):,}".replace(",", ".")
    text = f"{number:,.2f}".rstrip("0")
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


class TemplateRenderer:
    def __init__(self, templates_dir: Optional[Path] = None):
        self.templates_dir = Path(templates_dir or TEMPLATES_DIR)
        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["brl"] = format_brl_number

    def render(self, template_name: str, **context: Any) -> str:
        return self.env.get_template(template_name).render(**context)
