from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional, Tuple

import fitz  # PyMuPDF

from ..models import Document
from .layout import layout
from .parse import parse
from .render import RenderError, ReportLabCanvas, render, text_measurer
from .themes import CANVAS_SIZES, THEMES, get_canvas_size, get_theme

logger = logging.getLogger(__name__)


def render_document(
    doc: Document,
    style_id: Optional[str] = None,
    size_id: Optional[str] = None,
    font: Optional[str] = None,
) -> fitz.Pixmap:
    theme = get_theme(style_id)
    size = get_canvas_size(size_id)
    measure = text_measurer(font)
    instructions = layout(doc, theme, size, measure)
    logger.debug("Layout produced %d draw instructions for %s/%s", len(instructions), theme.id, size.id)
    return render(instructions, size, canvas_factory=lambda w, h: ReportLabCanvas(w, h, font=font))


def generate_image(
    text: str,
    style_id: Optional[str] = None,
    size_id: Optional[str] = None,
    font: Optional[str] = None,
) -> fitz.Pixmap:
    doc = parse(text)
    logger.info(
        "Parsed announcement %r: %d body, %d highlight(s), footer=%s",
        doc.title,
        len(doc.main_content),
        len(doc.highlights),
        doc.footer is not None,
    )
    return render_document(doc, style_id, size_id, font=font)


def generate_variants(
    text: str,
    style_ids: Optional[Iterable[str]] = None,
    size_ids: Optional[Iterable[str]] = None,
    font: Optional[str] = None,
) -> Dict[Tuple[str, str], fitz.Pixmap]:
    """Renders one parsed document for every requested style x size pair."""
    doc = parse(text)
    styles = [get_theme(s).id for s in style_ids] if style_ids else list(THEMES)
    sizes = [get_canvas_size(s).id for s in size_ids] if size_ids else list(CANVAS_SIZES)
    results: Dict[Tuple[str, str], fitz.Pixmap] = {}
    for style_id in styles:
        for size_id in sizes:
            key = (style_id, size_id)
            if key in results:
                continue
            try:
                results[key] = render_document(doc, style_id, size_id, font=font)
            except RenderError:
                logger.exception("Render error for %s/%s", style_id, size_id)
    logger.info("Rendered %d variant(s)", len(results))
    return results
