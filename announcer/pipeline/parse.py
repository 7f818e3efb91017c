from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

from .. import config
from ..models import Document, HighlightTag

logger = logging.getLogger(__name__)


NUMBERED_RE = re.compile(r"^\d+[.．]\s*")
COLON_RE = re.compile(
    r"^(?P<label>" + "|".join(re.escape(v) for v in config.LABELS.values()) + r")\s*[：:]\s*(?P<value>.*)$"
)
FIELD_BY_LABEL = {label: name for name, label in config.LABELS.items()}


def _normalize_lines(text: Optional[str]) -> List[str]:
    raw = (text or "").replace("\r\n", "\n").replace("\r", "\n")
    out: List[str] = []
    for line in raw.split("\n"):
        # LLM이 라벨을 **굵게** 감싸서 내보내는 경우가 많다
        line = line.replace("**", "").strip()
        if line:
            out.append(line)
    return out


def _find_label(text: str) -> Optional[str]:
    for label in config.LABELS.values():
        if label in text:
            return label
    return None


def _strip_label(text: str, label: str) -> str:
    head, _, tail = text.partition(label)
    tail = tail.lstrip()
    if tail[:1] in ("：", ":"):
        tail = tail[1:]
    return (head + tail).strip()


def _classify(line: str) -> Optional[Tuple[str, str]]:
    """
    Returns (field, value) for labelled or numbered lines, None otherwise.
    field is one of the LABELS keys; value may be empty.
    """
    numbered = NUMBERED_RE.match(line)
    if numbered:
        rest = line[numbered.end():]
        label = _find_label(rest)
        if label is not None:
            return FIELD_BY_LABEL[label], _strip_label(rest, label)
        # freeform numbered points become highlights as-is
        return "highlight", line

    match = COLON_RE.match(line)
    if match:
        return FIELD_BY_LABEL[match.group("label")], match.group("value").strip()
    return None


def highlight_tag(line: str) -> HighlightTag:
    if line.startswith(config.DATE_EMBLEM):
        return HighlightTag.DATE
    if line.startswith(config.LOCATION_EMBLEM):
        return HighlightTag.LOCATION
    return HighlightTag.PLAIN


def parse(text: Optional[str]) -> Document:
    title = config.DEFAULT_TITLE
    main_content: List[str] = []
    highlights: List[str] = []
    footer: Optional[str] = None

    for index, line in enumerate(_normalize_lines(text)):
        classified = _classify(line)
        if classified is None:
            if index == 0 and title == config.DEFAULT_TITLE:
                title = line
            else:
                main_content.append(line)
            continue

        field, value = classified
        if not value:
            logger.debug("Dropping empty %s line: %r", field, line)
            continue
        if field == "title":
            title = value
        elif field == "body":
            main_content.append(value)
        elif field == "highlight":
            highlights.append(value)
        elif field == "time":
            highlights.append(f"{config.DATE_EMBLEM} {value}")
        elif field == "location":
            footer = f"{config.LOCATION_EMBLEM} {value}"

    return Document(
        title=title,
        subtitle=None,
        main_content=tuple(main_content),
        highlights=tuple(highlights),
        footer=footer,
    )
