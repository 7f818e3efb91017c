from __future__ import annotations

import io
import logging
import threading
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional, Protocol, Sequence, Tuple

import fitz  # PyMuPDF
from reportlab.lib import colors
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from .. import config
from ..models import CanvasSize, DrawInstruction, Ellipse, FillRect, Polygon, Rect, RoundRect, TextRun
from .fit import Measure

logger = logging.getLogger(__name__)

Point = Tuple[float, float]

_FONT_LOCK = threading.Lock()


class RenderError(ValueError):
    """Raised when a canvas cannot be created for the requested size."""


class Canvas(Protocol):
    def fill_rect(self, rect: Rect, color: str, alpha: float = 1.0) -> None: ...

    def round_rect(
        self,
        rect: Rect,
        radius: float,
        fill: str,
        stroke: str,
        fill_alpha: float = 1.0,
        stroke_alpha: float = 1.0,
        line_width: float = 1.0,
    ) -> None: ...

    def fill_path(self, points: Sequence[Point], color: str, alpha: float = 1.0) -> None: ...

    def stroke_path(self, points: Sequence[Point], color: str, alpha: float = 1.0, line_width: float = 1.0) -> None: ...

    def fill_ellipse(self, rect: Rect, color: str, alpha: float = 1.0) -> None: ...

    def draw_text_run(
        self,
        text: str,
        x: float,
        y: float,
        font_size: float,
        color: str,
        align: str = "center",
        letter_spacing: float = 0.0,
        bold: bool = False,
    ) -> None: ...

    def measure_text(self, text: str, font_size: float) -> float: ...

    def finish(self): ...


CanvasFactory = Callable[[int, int], Canvas]


def _hex(value: str, default=colors.black) -> colors.Color:
    if not value:
        return default
    try:
        return colors.HexColor("#" + str(value).lstrip("#"))
    except ValueError:
        return default


def register_font(font: str) -> str:
    """
    Makes `font` usable by ReportLab and returns the registered name.
    `font` is a standard font, an already registered name, a CID face such as
    STSong-Light, or a path to a .ttf/.otf file.
    """
    with _FONT_LOCK:
        if font.lower().endswith((".ttf", ".otf", ".ttc")):
            name = Path(font).stem
            if name not in pdfmetrics.getRegisteredFontNames():
                pdfmetrics.registerFont(TTFont(name, font))
                logger.debug("Registered TrueType font %s from %s", name, font)
            return name
        if font in pdfmetrics.standardFonts or font in pdfmetrics.getRegisteredFontNames():
            return font
        pdfmetrics.registerFont(UnicodeCIDFont(font))
        logger.debug("Registered CID font %s", font)
        return font


def drawable_text(text: str, font_name: str) -> str:
    """
    Swaps emblems the registered font has no glyph for with the stand-ins in
    config.EMBLEM_FALLBACKS. TrueType faces are checked through their cmap; CID
    and standard fonts carry no emoji, so they always get the stand-in.
    """
    if not any(ch in config.EMBLEM_FALLBACKS for ch in text):
        return text
    face = getattr(pdfmetrics.getFont(font_name), "face", None)
    cmap = getattr(face, "charToGlyph", None) or {}
    return "".join(
        config.EMBLEM_FALLBACKS[ch] if ch in config.EMBLEM_FALLBACKS and ord(ch) not in cmap else ch
        for ch in text
    )


def text_measurer(font: Optional[str] = None) -> Measure:
    name = register_font(font or config.FONT_NAME)

    def measure(text: str, font_size: float) -> float:
        return pdfmetrics.stringWidth(drawable_text(text, name), name, font_size)

    return measure


class ReportLabCanvas:
    """
    Draws on a single in-memory PDF page of width x height points and
    rasterises it with PyMuPDF at 1 px per point.
    """

    def __init__(self, width: int, height: int, font: Optional[str] = None) -> None:
        if width <= 0 or height <= 0:
            raise RenderError(f"Cannot create a {width}x{height} canvas")
        self.width = int(width)
        self.height = int(height)
        self.font_name = register_font(font or config.FONT_NAME)
        self._buffer = io.BytesIO()
        self._canv = canvas.Canvas(self._buffer, pagesize=(self.width, self.height))

    def fill_rect(self, rect: Rect, color: str, alpha: float = 1.0) -> None:
        c = self._canv
        c.saveState()
        c.setFillColor(_hex(color))
        c.setFillAlpha(alpha)
        c.rect(rect.x, rect.y, rect.w, rect.h, stroke=0, fill=1)
        c.restoreState()

    def round_rect(
        self,
        rect: Rect,
        radius: float,
        fill: str,
        stroke: str,
        fill_alpha: float = 1.0,
        stroke_alpha: float = 1.0,
        line_width: float = 1.0,
    ) -> None:
        c = self._canv
        c.saveState()
        c.setFillColor(_hex(fill))
        c.setFillAlpha(fill_alpha)
        c.setStrokeColor(_hex(stroke))
        c.setStrokeAlpha(stroke_alpha)
        c.setLineWidth(line_width)
        # 카드가 작을 때 반지름이 높이의 절반을 넘으면 모양이 깨진다
        r = max(0.0, min(radius, rect.w / 2, rect.h / 2))
        c.roundRect(rect.x, rect.y, rect.w, rect.h, radius=r, stroke=1, fill=1)
        c.restoreState()

    def _path(self, points: Sequence[Point], close: bool):
        path = self._canv.beginPath()
        first, *rest = points
        path.moveTo(*first)
        for point in rest:
            path.lineTo(*point)
        if close:
            path.close()
        return path

    def fill_path(self, points: Sequence[Point], color: str, alpha: float = 1.0) -> None:
        if len(points) < 3:
            return
        c = self._canv
        c.saveState()
        c.setFillColor(_hex(color))
        c.setFillAlpha(alpha)
        c.drawPath(self._path(points, close=True), stroke=0, fill=1)
        c.restoreState()

    def stroke_path(self, points: Sequence[Point], color: str, alpha: float = 1.0, line_width: float = 1.0) -> None:
        if len(points) < 2:
            return
        c = self._canv
        c.saveState()
        c.setStrokeColor(_hex(color))
        c.setStrokeAlpha(alpha)
        c.setLineWidth(line_width)
        c.setLineCap(1)
        c.drawPath(self._path(points, close=False), stroke=1, fill=0)
        c.restoreState()

    def fill_ellipse(self, rect: Rect, color: str, alpha: float = 1.0) -> None:
        c = self._canv
        c.saveState()
        c.setFillColor(_hex(color))
        c.setFillAlpha(alpha)
        c.ellipse(rect.x, rect.y, rect.x + rect.w, rect.y + rect.h, stroke=0, fill=1)
        c.restoreState()

    def measure_text(self, text: str, font_size: float) -> float:
        return pdfmetrics.stringWidth(drawable_text(text, self.font_name), self.font_name, font_size)

    def draw_text_run(
        self,
        text: str,
        x: float,
        y: float,
        font_size: float,
        color: str,
        align: str = "center",
        letter_spacing: float = 0.0,
        bold: bool = False,
    ) -> None:
        if not text:
            return
        width = self.measure_text(text, font_size) + letter_spacing * max(0, len(text) - 1)
        if align == "center":
            x -= width / 2
        elif align == "right":
            x -= width

        c = self._canv
        c.saveState()
        fill = _hex(color)
        obj = c.beginText(x, y)
        obj.setFont(self.font_name, font_size)
        obj.setFillColor(fill)
        if letter_spacing:
            obj.setCharSpace(letter_spacing)
        if bold:
            # CID 폰트에는 볼드 페이스가 없어서 외곽선을 같이 그려 굵게 보이게 한다
            obj.setStrokeColor(fill)
            c.setLineWidth(max(0.5, font_size * 0.03))
            obj.setTextRenderMode(2)
        obj.textOut(drawable_text(text, self.font_name))
        c.drawText(obj)
        c.restoreState()

    def finish(self) -> fitz.Pixmap:
        self._canv.showPage()
        self._canv.save()
        with fitz.open(stream=self._buffer.getvalue(), filetype="pdf") as doc:
            page = doc.load_page(0)
            pix = page.get_pixmap(matrix=fitz.Matrix(1, 1), alpha=False)
        if (pix.width, pix.height) != (self.width, self.height):
            logger.warning(
                "Rasterised %dx%d, expected %dx%d", pix.width, pix.height, self.width, self.height
            )
        return pix


# --- instruction dispatch --------------------------------------------------------


def _draw_fill_rect(surface: Canvas, item: FillRect) -> None:
    surface.fill_rect(item.rect, item.color, item.alpha)


def _draw_round_rect(surface: Canvas, item: RoundRect) -> None:
    surface.round_rect(
        item.rect,
        item.radius,
        item.fill,
        item.stroke,
        fill_alpha=item.fill_alpha,
        stroke_alpha=item.stroke_alpha,
        line_width=item.line_width,
    )


def _draw_polygon(surface: Canvas, item: Polygon) -> None:
    if item.stroke:
        surface.stroke_path(item.points, item.color, item.alpha, item.line_width)
    else:
        surface.fill_path(item.points, item.color, item.alpha)


def _draw_ellipse(surface: Canvas, item: Ellipse) -> None:
    surface.fill_ellipse(item.rect, item.color, item.alpha)


def _draw_text(surface: Canvas, item: TextRun) -> None:
    surface.draw_text_run(
        item.text,
        item.x,
        item.y,
        item.font_size,
        item.color,
        align=item.align,
        letter_spacing=item.letter_spacing,
        bold=item.bold,
    )


DRAWERS: Dict[type, Callable[[Canvas, DrawInstruction], None]] = {
    FillRect: _draw_fill_rect,
    RoundRect: _draw_round_rect,
    Polygon: _draw_polygon,
    Ellipse: _draw_ellipse,
    TextRun: _draw_text,
}


def render(
    instructions: Iterable[DrawInstruction],
    size: CanvasSize,
    canvas_factory: Optional[CanvasFactory] = None,
):
    """Replays layout output onto a fresh canvas and returns the finished image."""
    if size.width <= 0 or size.height <= 0:
        raise RenderError(f"Invalid canvas size {size.width}x{size.height} for {size.id!r}")
    factory = canvas_factory or ReportLabCanvas
    surface = factory(size.width, size.height)
    for item in instructions:
        drawer = DRAWERS.get(type(item))
        if drawer is None:
            logger.warning("Skipping unknown draw instruction %r", type(item).__name__)
            continue
        drawer(surface, item)
    return surface.finish()


def encode_image(pixmap: fitz.Pixmap, fmt: str = "png") -> bytes:
    fmt = (fmt or "png").lower()
    if fmt == "png":
        return pixmap.tobytes("png")
    if fmt in ("jpg", "jpeg"):
        return pixmap.tobytes("jpg", jpg_quality=92)
    raise ValueError(f"Unsupported image format: {fmt}")
