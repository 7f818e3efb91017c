from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union


class HighlightTag(str, Enum):
    PLAIN = "PLAIN"
    DATE = "DATE"
    LOCATION = "LOCATION"


class Ornament(str, Enum):
    TRIANGLE = "triangle"
    STRIPES = "stripes"
    DOTS = "dots"
    NONE = "none"


@dataclass(frozen=True)
class Document:
    title: str
    subtitle: Optional[str] = None
    main_content: Tuple[str, ...] = ()
    highlights: Tuple[str, ...] = ()
    footer: Optional[str] = None


@dataclass(frozen=True)
class Palette:
    background: str
    primary: str
    secondary: str
    accent: str


@dataclass(frozen=True)
class Theme:
    id: str
    display_name: str
    palette: Palette
    ornament: Ornament = Ornament.NONE


@dataclass(frozen=True)
class CanvasSize:
    id: str
    display_name: str
    width: int
    height: int


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    w: float
    h: float

    @property
    def top(self) -> float:
        return self.y + self.h


@dataclass(frozen=True)
class LayoutRegion:
    rect: Rect
    cursor_y_after: float


# --- draw instructions -------------------------------------------------------


@dataclass(frozen=True)
class FillRect:
    rect: Rect
    color: str
    alpha: float = 1.0


@dataclass(frozen=True)
class RoundRect:
    rect: Rect
    radius: float
    fill: str
    stroke: str
    fill_alpha: float = 1.0
    stroke_alpha: float = 1.0
    line_width: float = 1.0


@dataclass(frozen=True)
class Polygon:
    points: Tuple[Tuple[float, float], ...]
    color: str
    alpha: float = 1.0
    stroke: bool = False
    line_width: float = 1.0


@dataclass(frozen=True)
class Ellipse:
    rect: Rect
    color: str
    alpha: float = 1.0


@dataclass(frozen=True)
class TextRun:
    text: str
    x: float                 # anchor x (centre for align="center")
    y: float                 # baseline
    font_size: float
    color: str
    role: str = "body"
    align: str = "center"
    letter_spacing: float = 0.0
    bold: bool = False
    max_width: Optional[float] = field(default=None, compare=False)


DrawInstruction = Union[FillRect, RoundRect, Polygon, Ellipse, TextRun]
