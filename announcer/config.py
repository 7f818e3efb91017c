from __future__ import annotations

from pathlib import Path
from typing import Dict
import json


BASE_DIR = Path(__file__).resolve().parent
OUT_DIR = Path.cwd() / "out"
LAYOUT_PRESET_PATH = BASE_DIR / "assets" / "layout_preset.json"

DEFAULT_TITLE = "Announcement"
DEFAULT_STYLE = "modern"
DEFAULT_SIZE = "medium"

# ReportLab 내장 CID 폰트. 별도 폰트 파일 없이 중국어 측정/출력이 가능하다.
FONT_NAME = "STSong-Light"
MIN_FONT_SIZE = 16.0

DATE_EMBLEM = "📅"
LOCATION_EMBLEM = "📍"
# 내장 CID 폰트에는 이모지 글리프가 없어서, 폰트가 못 그리는 엠블럼은 GB2312 기호로 바꿔 그린다
EMBLEM_FALLBACKS = {DATE_EMBLEM: "◆", LOCATION_EMBLEM: "●"}
BULLET = "• "

# field -> label marker, in the order they are tried
LABELS: Dict[str, str] = {
    "title": "标题",
    "body": "原文",
    "highlight": "重点",
    "time": "时间",
    "location": "地点",
}

PROMPT_TEMPLATE = """请将以下内容整理为公告，严格按照如下格式输出：
1. 标题：<公告标题>
2. 原文：<正文内容，可多行，每行以“原文：”开头>
3. 重点：<需要强调的内容，可多行>
4. 时间：<活动时间>
5. 地点：<活动地点>
"""


def load_layout_preset() -> dict:
    if not LAYOUT_PRESET_PATH.exists():
        return {}
    with LAYOUT_PRESET_PATH.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def set_out_dir(path: Path) -> None:
    global OUT_DIR
    OUT_DIR = path
