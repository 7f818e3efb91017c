from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .. import config
from ..models import (
    CanvasSize,
    Document,
    DrawInstruction,
    Ellipse,
    FillRect,
    HighlightTag,
    LayoutRegion,
    Ornament,
    Polygon,
    Rect,
    RoundRect,
    TextRun,
    Theme,
)
from .fit import Measure, fit, split_at, wrap_text
from .parse import highlight_tag

logger = logging.getLogger(__name__)

Step = Tuple[List[DrawInstruction], LayoutRegion]


def _s(preset: dict, key: str, default):
    return preset.get(key, default)


@dataclass(frozen=True)
class _Frame:
    """Per-call geometry shared by every region step."""

    doc: Document
    theme: Theme
    width: float
    height: float
    measure: Measure
    preset: dict
    scale: float
    top_margin: float
    side_margin: float
    bottom_margin: float

    @property
    def content_width(self) -> float:
        return self.width - 2 * self.side_margin

    @property
    def center_x(self) -> float:
        return self.width / 2

    def px(self, key: str, default: float) -> float:
        """Literal pixel constant scaled relative to the 800x600 reference canvas."""
        return float(_s(self.preset, key, default)) * self.scale

    def ratio(self, key: str, default: float) -> float:
        return float(_s(self.preset, key, default))


def _make_frame(doc: Document, theme: Theme, size: CanvasSize, measure: Measure, preset: dict) -> _Frame:
    w = float(size.width)
    h = float(size.height)
    ref_w = float(_s(preset, "reference_width", 800))
    ref_h = float(_s(preset, "reference_height", 600))
    return _Frame(
        doc=doc,
        theme=theme,
        width=w,
        height=h,
        measure=measure,
        preset=preset,
        scale=min(w / ref_w, h / ref_h),
        top_margin=max(h * float(_s(preset, "top_margin_ratio", 0.05)), float(_s(preset, "top_margin_min", 16))),
        side_margin=max(w * float(_s(preset, "side_margin_ratio", 0.08)), float(_s(preset, "side_margin_min", 20))),
        bottom_margin=max(
            h * float(_s(preset, "bottom_margin_ratio", 0.04)), float(_s(preset, "bottom_margin_min", 10))
        ),
    )


def _baseline(center_y: float, font_size: float) -> float:
    # 글자 높이의 대략 중앙이 center_y에 오도록
    return center_y - font_size * 0.35


def _clamp_size(lines: Sequence[str], size: float, max_width: float, measure: Measure) -> float:
    """Scale the font down proportionally when a line still overflows at the minimum size."""
    widest = max((measure(line, size) for line in lines), default=0.0)
    if widest <= max_width or widest <= 0:
        return size
    return size * max_width / widest


def _fit_single(
    frame: _Frame,
    text: str,
    max_width: float,
    start: float,
) -> float:
    result = fit(text, max_width, start, frame.measure, min_size=min(config.MIN_FONT_SIZE, start))
    return _clamp_size([text], result.font_size, max_width, frame.measure)


# --- regions -------------------------------------------------------------------


def _background(frame: _Frame) -> List[DrawInstruction]:
    return [FillRect(Rect(0, 0, frame.width, frame.height), frame.theme.palette.background)]


def _icon(frame: _Frame, cursor_y: float) -> Step:
    palette = frame.theme.palette
    side = min(frame.width * frame.ratio("icon_ratio", 0.1), float(_s(frame.preset, "icon_max", 60)))
    rect = Rect(frame.center_x - side / 2, cursor_y - side, side, side)
    inner = side * 0.18
    glyph = side * 0.55
    out: List[DrawInstruction] = [
        Ellipse(rect, palette.accent),
        Ellipse(Rect(rect.x + inner, rect.y + inner, side - 2 * inner, side - 2 * inner), palette.background, 0.25),
        TextRun("!", frame.center_x, _baseline(rect.y + side / 2, glyph), glyph, palette.background, role="icon", bold=True),
    ]
    return out, LayoutRegion(rect, rect.y - frame.px("icon_gap", 10))


def _title(frame: _Frame, cursor_y: float) -> Step:
    palette = frame.theme.palette
    title = frame.doc.title
    band = max(frame.height * frame.ratio("title_band_ratio", 0.15), float(_s(frame.preset, "title_band_min", 60)))
    start = min(frame.width * frame.ratio("title_start_ratio", 0.125), band * 0.75)
    max_w = frame.content_width

    result = fit(title, max_w, start, frame.measure, min_size=min(config.MIN_FONT_SIZE, start))
    if result.needs_wrap and result.break_index is not None:
        lines = [part for part in split_at(title, result.break_index) if part]
    else:
        lines = [title]
    size = _clamp_size(lines, result.font_size, max_w, frame.measure)
    line_h = size * float(_s(frame.preset, "title_line_height", 1.2))

    out: List[DrawInstruction] = []
    if len(lines) == 1:
        rect = Rect(frame.side_margin, cursor_y - band, max_w, band)
        center = cursor_y - band / 2
        out.append(TextRun(title, frame.center_x, _baseline(center, size), size, palette.primary,
                           role="title", bold=True, max_width=max_w))
        return out, LayoutRegion(rect, rect.y)

    # 두 줄로 나뉜 제목은 커서 바로 아래부터 쌓고, 두 번째 줄 바닥을 커서로 돌려준다
    for i, line in enumerate(lines):
        center = cursor_y - line_h * i - line_h / 2
        out.append(TextRun(line, frame.center_x, _baseline(center, size), size, palette.primary,
                           role="title", bold=True, max_width=max_w))
    bottom = cursor_y - line_h * len(lines)
    return out, LayoutRegion(Rect(frame.side_margin, bottom, max_w, cursor_y - bottom), bottom)


def _subtitle(frame: _Frame, cursor_y: float) -> Step:
    subtitle = frame.doc.subtitle
    if not subtitle:
        return [], LayoutRegion(Rect(frame.side_margin, cursor_y, frame.content_width, 0), cursor_y)
    band = frame.px("subtitle_band", 40)
    start = max(12.0, frame.px("subtitle_size", 20))
    size = _fit_single(frame, subtitle, frame.content_width, start)
    rect = Rect(frame.side_margin, cursor_y - band, frame.content_width, band)
    run = TextRun(subtitle, frame.center_x, _baseline(cursor_y - band / 2, size), size,
                  frame.theme.palette.secondary, role="subtitle", max_width=frame.content_width)
    return [run], LayoutRegion(rect, rect.y)


def _title_gap(frame: _Frame, cursor_y: float) -> Step:
    gap = frame.px("title_gap", 40)
    rule_w = min(frame.content_width * 0.2, 120 * frame.scale)
    y = cursor_y - gap / 2
    rule = Polygon(
        points=((frame.center_x - rule_w / 2, y), (frame.center_x + rule_w / 2, y)),
        color=frame.theme.palette.accent,
        stroke=True,
        line_width=max(1.0, 2 * frame.scale),
    )
    return [rule], LayoutRegion(Rect(frame.side_margin, cursor_y - gap, frame.content_width, gap), cursor_y - gap)


def _highlight_start(frame: _Frame) -> float:
    return min(
        max(frame.height * frame.ratio("highlight_start_ratio", 0.032), float(_s(frame.preset, "highlight_start_min", 16))),
        float(_s(frame.preset, "highlight_start_max", 28)),
    )


def _highlight_step(frame: _Frame, font_size: float) -> float:
    return font_size * frame.ratio("highlight_line_factor", 2.0) + frame.px("highlight_gap", 15)


def _footer_reserve(frame: _Frame) -> float:
    return max(
        frame.height * frame.ratio("footer_reserve_ratio", 0.15), float(_s(frame.preset, "footer_reserve_min", 60))
    )


def _body_lines(frame: _Frame, text: str, inner_w: float, start: float) -> Tuple[List[str], float]:
    """Fitted size and wrapped lines for one body card, following the 3-line rule."""
    measure = frame.measure
    min_size = min(config.MIN_FONT_SIZE, start)
    result = fit(text, inner_w, start, measure, min_size=min_size)
    if result.measured_width <= inner_w:
        return [text], result.font_size

    max_lines = int(_s(frame.preset, "body_max_lines", 3))
    floor = min(12.0, min_size)
    size = result.font_size
    lines = wrap_text(text, size, inner_w, measure)
    while len(lines) > max_lines and size > floor:
        size = max(floor, size - 2.0)
        lines = wrap_text(text, size, inner_w, measure)
    return lines, _clamp_size(lines, size, inner_w, measure)


def _shrink_to_height(
    frame: _Frame, text: str, inner_w: float, size: float, max_h: float, line_factor: float
) -> Tuple[List[str], float]:
    """Scales a floor-sized card down until its lines fit `max_h`, down to body_shrink_min."""
    measure = frame.measure
    lines = wrap_text(text, size, inner_w, measure)
    floor = float(_s(frame.preset, "body_shrink_min", 6))
    while size > floor and len(lines) * size * line_factor > max_h:
        ratio = max_h / (len(lines) * size * line_factor)
        size = max(floor, size * max(0.8, min(0.95, ratio)))
        lines = wrap_text(text, size, inner_w, measure)
    return lines, _clamp_size(lines, size, inner_w, measure)


def _main_content(frame: _Frame, cursor_y: float) -> Step:
    doc = frame.doc
    palette = frame.theme.palette
    if not doc.main_content:
        return [], LayoutRegion(Rect(frame.side_margin, cursor_y, frame.content_width, 0), cursor_y)

    reserved = _footer_reserve(frame)
    if doc.highlights:
        # 첫 번째 강조 줄이 들어갈 자리만큼은 본문에서 빼둔다
        first = _fit_single(frame, doc.highlights[0], frame.content_width, _highlight_start(frame))
        reserved += min(frame.height * frame.ratio("highlight_ratio", 0.25), _highlight_step(frame, first))
        reserved += frame.px("section_gap", 20)
    available = cursor_y - frame.bottom_margin
    height = max(0.0, min(frame.height * frame.ratio("main_ratio", 0.4), available - reserved))
    region = Rect(frame.side_margin, cursor_y - height, frame.content_width, height)

    pad_x = frame.px("card_padding_x", 16)
    pad_y = frame.px("card_padding_y", 8)
    margin = frame.px("card_margin", 10)
    radius = frame.px("card_radius", 10)
    line_factor = float(_s(frame.preset, "body_line_height", 1.4))
    start = min(
        max(frame.height * frame.ratio("body_start_ratio", 0.035), float(_s(frame.preset, "body_start_min", 16))),
        float(_s(frame.preset, "body_start_max", 32)),
    )
    inner_w = frame.content_width - 2 * pad_x

    out: List[DrawInstruction] = []
    cursor = cursor_y
    for index, text in enumerate(doc.main_content):
        lines, size = _body_lines(frame, text, inner_w, start)
        line_h = size * line_factor
        card_h = line_h * len(lines) + 2 * pad_y
        room = cursor - region.y
        if card_h > room and room > 2 * pad_y and len(lines) > 1:
            lines, size = _shrink_to_height(frame, text, inner_w, size, room - 2 * pad_y, line_factor)
            line_h = size * line_factor
            card_h = line_h * len(lines) + 2 * pad_y
        if card_h > room:
            logger.debug("Body line %d does not fit the main content region, skipped", index)
            continue
        text_w = max(frame.measure(line, size) for line in lines)
        card_w = min(frame.content_width, text_w + 2 * pad_x)
        card = Rect(frame.center_x - card_w / 2, cursor - card_h, card_w, card_h)
        out.append(
            RoundRect(
                card,
                radius=radius,
                fill=palette.secondary,
                stroke=palette.primary,
                fill_alpha=float(_s(frame.preset, "card_fill_alpha", 0.08)),
                stroke_alpha=float(_s(frame.preset, "card_border_alpha", 0.2)),
                line_width=float(_s(frame.preset, "card_border_width", 1)),
            )
        )
        for i, line in enumerate(lines):
            center = cursor - pad_y - line_h * i - line_h / 2
            out.append(TextRun(line, frame.center_x, _baseline(center, size), size, palette.primary,
                               role="body", max_width=inner_w))
        cursor -= card_h + margin

    return out, LayoutRegion(region, cursor)


def _highlights(frame: _Frame, cursor_y: float) -> Step:
    doc = frame.doc
    palette = frame.theme.palette
    if not doc.highlights:
        return [], LayoutRegion(Rect(frame.side_margin, cursor_y, frame.content_width, 0), cursor_y)

    top = cursor_y - frame.px("section_gap", 20)
    floor_y = frame.bottom_margin + _footer_reserve(frame)
    height = max(0.0, min(frame.height * frame.ratio("highlight_ratio", 0.25), top - floor_y))
    region = Rect(frame.side_margin, top - height, frame.content_width, height)
    start = _highlight_start(frame)

    out: List[DrawInstruction] = []
    cursor = top
    for index, line in enumerate(doc.highlights):
        tag = highlight_tag(line)
        if tag is HighlightTag.PLAIN:
            text = line if line.startswith(("•", "·")) else config.BULLET + line
            color = palette.primary
        else:
            text = line
            color = palette.accent
        size = _fit_single(frame, text, frame.content_width, start)
        step = _highlight_step(frame, size)
        slot = size * frame.ratio("highlight_line_factor", 2.0)
        if cursor - slot < region.y:
            logger.debug("Highlight region full, %d highlight line(s) not drawn", len(doc.highlights) - index)
            break
        out.append(TextRun(text, frame.center_x, _baseline(cursor - slot / 2, size), size, color,
                           role="highlight", max_width=frame.content_width))
        cursor -= step

    return out, LayoutRegion(region, cursor)


def _footer(frame: _Frame, cursor_y: float) -> Step:
    footer = frame.doc.footer
    band = max(frame.height * frame.ratio("footer_ratio", 0.08), float(_s(frame.preset, "footer_min", 30)))
    if not footer:
        return [], LayoutRegion(Rect(frame.side_margin, frame.bottom_margin, frame.content_width, 0), cursor_y)

    top = min(frame.bottom_margin + band, cursor_y - frame.px("footer_gap", 10))
    rect = Rect(frame.side_margin, max(0.0, top - band), frame.content_width, band)
    spacing = frame.scale
    avail = frame.content_width - spacing * max(0, len(footer) - 1)
    if avail < frame.content_width * 0.5:
        spacing, avail = 0.0, frame.content_width
    start = min(band * 0.5, max(12.0, frame.px("footer_start_max", 22)))
    size = _fit_single(frame, footer, avail, start)
    run = TextRun(footer, frame.center_x, _baseline(rect.y + band / 2, size), size, frame.theme.palette.secondary,
                  role="footer", letter_spacing=spacing, max_width=frame.content_width)
    return [run], LayoutRegion(rect, rect.y)


def _ornaments(frame: _Frame) -> List[DrawInstruction]:
    palette = frame.theme.palette
    w, h = frame.width, frame.height
    kind = frame.theme.ornament

    if kind is Ornament.TRIANGLE:
        s = min(w, h) * frame.ratio("ornament_ratio", 0.15)
        return [
            Polygon(((w, h), (w - s, h), (w, h - s)), palette.accent, 0.85),
            Polygon(((0, 0), (s * 0.6, 0), (0, s * 0.6)), palette.accent, 0.35),
        ]

    if kind is Ornament.STRIPES:
        unit = max(2.0, 4 * frame.scale)
        return [
            FillRect(Rect(0, 0, unit * 2, h), palette.primary),
            FillRect(Rect(unit * 3, 0, unit, h), palette.accent, 0.8),
            FillRect(Rect(unit * 5, 0, unit / 2, h), palette.primary, 0.4),
        ]

    if kind is Ornament.DOTS:
        r = min(w, h) * 0.025
        inset = r * 2.5
        colors = (palette.accent, palette.primary, palette.secondary, palette.accent)
        centers = ((inset, h - inset), (w - inset, h - inset), (inset, inset), (w - inset, inset))
        return [
            Ellipse(Rect(cx - r, cy - r, 2 * r, 2 * r), color, 0.8)
            for (cx, cy), color in zip(centers, colors)
        ]

    return []


REGION_STEPS = (
    ("icon", _icon),
    ("title", _title),
    ("subtitle", _subtitle),
    ("gap", _title_gap),
    ("main", _main_content),
    ("highlights", _highlights),
    ("footer", _footer),
)


def layout_regions(
    doc: Document,
    theme: Theme,
    size: CanvasSize,
    measure: Measure,
    preset: Optional[dict] = None,
) -> Tuple[List[DrawInstruction], List[Tuple[str, LayoutRegion]]]:
    """
    Lays the fixed announcement template out top to bottom.

    Coordinates use a bottom-left origin. Each region step receives the cursor
    returned by the previous one, so regions cannot overlap; ornaments are
    added after all content.
    """
    if preset is None:
        preset = config.load_layout_preset()
    frame = _make_frame(doc, theme, size, measure, preset)

    instructions: List[DrawInstruction] = _background(frame)
    regions: List[Tuple[str, LayoutRegion]] = []
    cursor = frame.height - frame.top_margin
    for name, step in REGION_STEPS:
        drawn, region = step(frame, cursor)
        instructions.extend(drawn)
        regions.append((name, region))
        logger.debug("region %s rect=%s cursor %.1f -> %.1f", name, region.rect, cursor, region.cursor_y_after)
        cursor = region.cursor_y_after

    instructions.extend(_ornaments(frame))
    return instructions, regions


def layout(
    doc: Document,
    theme: Theme,
    size: CanvasSize,
    measure: Measure,
    preset: Optional[dict] = None,
) -> List[DrawInstruction]:
    instructions, _ = layout_regions(doc, theme, size, measure, preset)
    return instructions
