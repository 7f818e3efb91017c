from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from .. import config

Measure = Callable[[str, float], float]

WRAP_THRESHOLD = 8
CHAR_WIDTH_FACTOR = 0.7

# latin words stay together, everything else (CJK, punctuation) breaks per character
_TOKEN_RE = re.compile(r"[A-Za-z0-9_@#%&+\-'./]+|\s+|.")


@dataclass(frozen=True)
class FitResult:
    font_size: float
    measured_width: float
    needs_wrap: bool = False
    break_index: Optional[int] = None


def _break_index(text: str, max_width: float, font_size: float) -> int:
    chars_per_line = max(1, int(max_width / (font_size * CHAR_WIDTH_FACTOR)))
    index = min(len(text) // 2, chars_per_line)
    # 가까운 공백이 있으면 단어 중간에서 자르지 않는다
    for offset in range(0, max(1, index // 4) + 1):
        for candidate in (index - offset, index + offset):
            if 0 < candidate < len(text) and text[candidate].isspace():
                return candidate
    return max(1, min(index, len(text) - 1))


def fit(
    text: str,
    max_width: float,
    start_size: float,
    measure: Measure,
    min_size: float = config.MIN_FONT_SIZE,
    step: float = 2.0,
) -> FitResult:
    """
    폭을 넘어가는 텍스트는 폰트를 줄여서 맞춘다.
    최소 크기에서도 넘치고 글자 수가 충분히 길면 두 줄로 나눌 위치를 돌려준다.
    """
    size = float(start_size)
    width = measure(text, size)
    while width > max_width and size > min_size:
        size = max(float(min_size), size - step)
        width = measure(text, size)

    if width > max_width and len(text) > WRAP_THRESHOLD:
        return FitResult(size, width, True, _break_index(text, max_width, size))
    return FitResult(size, width)


def split_at(text: str, index: int) -> Tuple[str, str]:
    return text[:index].rstrip(), text[index:].lstrip()


def wrap_text(text: str, font_size: float, max_width: float, measure: Measure) -> List[str]:
    """
    Greedy line wrap. Latin words are kept whole unless a single word is wider
    than the line, CJK text breaks between any two characters.
    """
    tokens = _TOKEN_RE.findall(text or "")
    if not tokens:
        return [""]

    lines: List[str] = []
    cur = ""

    for tok in tokens:
        test = cur + tok
        if measure(test.strip(), font_size) <= max_width:
            cur = test
            continue

        if tok.isspace():
            lines.append(cur.strip())
            cur = ""
            continue

        if cur.strip():
            lines.append(cur.strip())
        cur = ""

        # a token wider than the line: split it per character
        if measure(tok, font_size) > max_width:
            for ch in tok:
                if cur and measure(cur + ch, font_size) > max_width:
                    lines.append(cur)
                    cur = ""
                cur += ch
        else:
            cur = tok

    if cur.strip():
        lines.append(cur.strip())

    return lines or [""]
