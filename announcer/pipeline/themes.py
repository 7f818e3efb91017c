from __future__ import annotations

import logging
from typing import Dict, List, Optional

from .. import config
from ..models import CanvasSize, Ornament, Palette, Theme

logger = logging.getLogger(__name__)


THEMES: Dict[str, Theme] = {
    "modern": Theme(
        id="modern",
        display_name="现代",
        palette=Palette(
            background="#F8FAFC",
            primary="#1E293B",
            secondary="#64748B",
            accent="#3B82F6",
        ),
        ornament=Ornament.TRIANGLE,
    ),
    "business": Theme(
        id="business",
        display_name="商务",
        palette=Palette(
            background="#FFFFFF",
            primary="#1F4E79",
            secondary="#4B5563",
            accent="#B8860B",
        ),
        ornament=Ornament.STRIPES,
    ),
    "colorful": Theme(
        id="colorful",
        display_name="多彩",
        palette=Palette(
            background="#FFF7ED",
            primary="#9D174D",
            secondary="#7C2D12",
            accent="#F97316",
        ),
        ornament=Ornament.DOTS,
    ),
    "minimal": Theme(
        id="minimal",
        display_name="极简",
        palette=Palette(
            background="#FFFFFF",
            primary="#111827",
            secondary="#6B7280",
            accent="#374151",
        ),
        ornament=Ornament.NONE,
    ),
}


CANVAS_SIZES: Dict[str, CanvasSize] = {
    "small": CanvasSize(id="small", display_name="小图 400×300", width=400, height=300),
    "medium": CanvasSize(id="medium", display_name="中图 800×600", width=800, height=600),
    "large": CanvasSize(id="large", display_name="大图 1200×900", width=1200, height=900),
    "square": CanvasSize(id="square", display_name="方图 800×800", width=800, height=800),
}


def _normalize_id(value: Optional[str]) -> str:
    return str(value or "").strip().lower()


def get_theme(style_id: Optional[str]) -> Theme:
    key = _normalize_id(style_id)
    theme = THEMES.get(key)
    if theme is None:
        if key:
            logger.warning("Unknown style %r, falling back to %s", style_id, config.DEFAULT_STYLE)
        theme = THEMES[config.DEFAULT_STYLE]
    return theme


def get_canvas_size(size_id: Optional[str]) -> CanvasSize:
    key = _normalize_id(size_id)
    size = CANVAS_SIZES.get(key)
    if size is None:
        if key:
            logger.warning("Unknown size %r, falling back to %s", size_id, config.DEFAULT_SIZE)
        size = CANVAS_SIZES[config.DEFAULT_SIZE]
    return size


def list_themes() -> List[Theme]:
    return list(THEMES.values())


def list_canvas_sizes() -> List[CanvasSize]:
    return list(CANVAS_SIZES.values())
