from __future__ import annotations

import unittest

import pytest

from announcer.models import Document, Ellipse, FillRect, Polygon, RoundRect, TextRun
from announcer.pipeline.layout import layout, layout_regions
from announcer.pipeline.parse import parse
from announcer.pipeline.themes import CANVAS_SIZES, THEMES, get_canvas_size, get_theme


SCENARIO_A = "1. 标题：测试公告\n2. 原文：这是内容\n3. 重点：重要提醒\n4. 时间：2024-01-01\n5. 地点：北京"
PAIRS = [(style, size) for style in THEMES for size in CANVAS_SIZES]


def cjk_measure(text: str, size: float) -> float:
    return len(text) * size


def _runs(instructions, role: str):
    return [item for item in instructions if isinstance(item, TextRun) and item.role == role]


def _regions(doc: Document, style: str = "modern", size: str = "medium"):
    _, regions = layout_regions(doc, get_theme(style), get_canvas_size(size), cjk_measure)
    return dict(regions), regions


class LayoutCursorTests(unittest.TestCase):
    """Regions are stacked top to bottom through the returned cursor."""

    def test_cursor_never_moves_up(self) -> None:
        doc = parse(SCENARIO_A)
        _, ordered = _regions(doc)
        cursors = [region.cursor_y_after for _, region in ordered]
        self.assertEqual(cursors, sorted(cursors, reverse=True))
        self.assertEqual([name for name, _ in ordered],
                         ["icon", "title", "subtitle", "gap", "main", "highlights", "footer"])

    def test_background_is_drawn_first(self) -> None:
        size = get_canvas_size("large")
        theme = get_theme("colorful")
        instructions = layout(parse(SCENARIO_A), theme, size, cjk_measure)
        first = instructions[0]
        self.assertIsInstance(first, FillRect)
        self.assertEqual((first.rect.w, first.rect.h), (size.width, size.height))
        self.assertEqual(first.color, theme.palette.background)

    def test_subtitle_band_when_present(self) -> None:
        doc = Document(title="运动会", subtitle="副标题", main_content=("内容",))
        regions, _ = _regions(doc)
        self.assertAlmostEqual(regions["subtitle"].rect.h, 40.0)
        instructions = layout(doc, get_theme("modern"), get_canvas_size("medium"), cjk_measure)
        self.assertEqual([run.text for run in _runs(instructions, "subtitle")], ["副标题"])


@pytest.mark.parametrize("style,size", PAIRS)
def test_every_text_run_fits_its_width(style: str, size: str) -> None:
    canvas = get_canvas_size(size)
    long_text = (
        "标题：关于二〇二四年度全体员工体检安排以及相关注意事项的通知\n"
        + "原文：请各部门负责人提前通知本部门员工，按照指定时间段前往体检中心，并携带身份证件和体检表格。\n" * 3
        + "重点：空腹\n时间：2024-05-20 上午八点至十一点\n地点：市第一人民医院门诊楼三楼体检中心"
    )
    instructions = layout(parse(long_text), get_theme(style), canvas, cjk_measure)
    for item in instructions:
        if isinstance(item, TextRun):
            if item.max_width is not None:
                assert cjk_measure(item.text, item.font_size) <= item.max_width + 1e-6
            assert 0 <= item.y <= canvas.height
        if isinstance(item, RoundRect):
            assert item.rect.y >= 0
            assert item.rect.top <= canvas.height
            assert item.rect.w <= canvas.width


@pytest.mark.parametrize("length", [5, 30, 60, 200])
@pytest.mark.parametrize("size", list(CANVAS_SIZES))
def test_wide_title_shrinks_or_splits(length: int, size: str) -> None:
    doc = Document(title="告" * length)
    instructions = layout(doc, get_theme("modern"), get_canvas_size(size), cjk_measure)
    titles = _runs(instructions, "title")
    assert titles
    for run in titles:
        assert cjk_measure(run.text, run.font_size) <= run.max_width + 1e-6
    assert (len(titles) == 1 and titles[0].font_size >= 16) or len(titles) == 2
    assert "".join(run.text for run in titles) == doc.title


def test_title_split_returns_second_line_bottom() -> None:
    doc = Document(title="告" * 60)
    regions, _ = _regions(doc)
    instructions = layout(doc, get_theme("modern"), get_canvas_size("medium"), cjk_measure)
    titles = _runs(instructions, "title")
    assert len(titles) == 2
    assert titles[0].font_size == 16
    assert regions["title"].cursor_y_after < titles[1].y


@pytest.mark.parametrize("size", list(CANVAS_SIZES))
def test_zero_highlights_keep_footer_position(size: str) -> None:
    with_highlights = parse(SCENARIO_A)
    without = parse("1. 标题：测试公告\n2. 原文：这是内容\n5. 地点：北京")
    theme = get_theme("business")
    canvas = get_canvas_size(size)

    a = _runs(layout(with_highlights, theme, canvas, cjk_measure), "footer")
    b = _runs(layout(without, theme, canvas, cjk_measure), "footer")
    assert len(a) == len(b) == 1
    assert a[0].y == pytest.approx(b[0].y)

    regions, _ = _regions(without, "business", size)
    assert regions["highlights"].rect.h == 0
    assert regions["highlights"].cursor_y_after == regions["main"].cursor_y_after


def test_long_highlight_list_is_clipped_above_footer() -> None:
    text = "标题：通知\n" + "\n".join(f"重点：第{i}条提醒" for i in range(50)) + "\n地点：礼堂"
    doc = parse(text)
    instructions = layout(doc, get_theme("modern"), get_canvas_size("medium"), cjk_measure)
    highlights = _runs(instructions, "highlight")
    assert 0 < len(highlights) < 50
    assert [run.text for run in highlights] == ["• " + line for line in doc.highlights[: len(highlights)]]

    regions, _ = _regions(doc)
    footer = regions["footer"].rect
    assert footer.top <= regions["highlights"].cursor_y_after
    assert footer.y >= 0
    assert min(run.y for run in highlights) > footer.top


def test_body_cards_stay_inside_main_region() -> None:
    text = "年会通知\n" + "\n".join(f"原文：第{i}段内容" for i in range(50))
    doc = parse(text)
    instructions = layout(doc, get_theme("minimal"), get_canvas_size("medium"), cjk_measure)
    cards = [item for item in instructions if isinstance(item, RoundRect)]
    regions, _ = _regions(doc, "minimal")
    assert 0 < len(cards) < 50
    for card in cards:
        assert card.rect.y >= regions["main"].rect.y - 1e-6
        assert card.stroke_alpha < 1.0


def test_long_body_line_wraps_into_one_card() -> None:
    doc = Document(title="通知", main_content=("很" * 80,))
    instructions = layout(doc, get_theme("modern"), get_canvas_size("medium"), cjk_measure)
    cards = [item for item in instructions if isinstance(item, RoundRect)]
    body = _runs(instructions, "body")
    assert len(cards) == 1
    assert 1 < len(body) <= 3
    assert "".join(run.text for run in body) == "很" * 80
    for run in body:
        assert cards[0].rect.y < run.y < cards[0].rect.top


@pytest.mark.parametrize("length", [128, 300])
def test_long_paragraph_still_gets_a_card_on_small_canvas(length: int) -> None:
    paragraph = "很" * length
    doc = parse("标题：通知\n原文：" + paragraph + "\n原文：短句")
    instructions = layout(doc, get_theme("modern"), get_canvas_size("small"), cjk_measure)
    cards = [item for item in instructions if isinstance(item, RoundRect)]
    body = _runs(instructions, "body")
    assert cards
    assert "".join(run.text for run in body).startswith(paragraph)

    regions, _ = _regions(doc, size="small")
    main = regions["main"].rect
    for card in cards:
        assert card.rect.y >= main.y - 1e-6
        assert card.rect.top <= main.top + 1e-6
    for run in body:
        assert cjk_measure(run.text, run.font_size) <= run.max_width + 1e-6


def test_card_that_cannot_fit_does_not_hide_later_cards() -> None:
    # 긴 문단이 남은 공간을 넘더라도 뒤의 짧은 카드는 그려진다
    doc = Document(title="通知", main_content=("第一段",) * 3 + ("很" * 2000, "短句"))
    instructions = layout(doc, get_theme("modern"), get_canvas_size("medium"), cjk_measure)
    texts = [run.text for run in _runs(instructions, "body")]
    assert texts[:3] == ["第一段"] * 3
    assert texts[-1] == "短句"
    assert len(texts) == 4


def test_highlight_colours_follow_tags() -> None:
    doc = parse(SCENARIO_A + "\n重点：• 已有圆点")
    theme = get_theme("colorful")
    highlights = _runs(layout(doc, theme, get_canvas_size("large"), cjk_measure), "highlight")
    by_text = {run.text: run for run in highlights}
    assert by_text["• 重要提醒"].color == theme.palette.primary
    assert by_text["📅 2024-01-01"].color == theme.palette.accent
    assert "• 已有圆点" in by_text


def test_ornaments_are_drawn_last() -> None:
    doc = parse(SCENARIO_A)
    medium = get_canvas_size("medium")

    modern = layout(doc, get_theme("modern"), medium, cjk_measure)
    assert all(isinstance(item, Polygon) and not item.stroke for item in modern[-2:])

    business = layout(doc, get_theme("business"), medium, cjk_measure)
    stripes = business[-3:]
    assert all(isinstance(item, FillRect) and item.rect.h == medium.height for item in stripes)
    assert all(item.rect.x < 30 for item in stripes)

    colorful = layout(doc, get_theme("colorful"), medium, cjk_measure)
    assert all(isinstance(item, Ellipse) for item in colorful[-4:])

    minimal = layout(doc, get_theme("minimal"), medium, cjk_measure)
    assert isinstance(minimal[-1], TextRun)
    assert minimal[-1].role == "footer"


def test_layout_is_pure() -> None:
    doc = parse(SCENARIO_A)
    theme = get_theme("modern")
    size = get_canvas_size("square")
    assert layout(doc, theme, size, cjk_measure) == layout(doc, theme, size, cjk_measure)
