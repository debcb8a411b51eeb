import re
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator


DotStyle = Literal["square", "dots", "rounded", "gapped", "vertical-bars", "horizontal-bars"]
CornerStyle = Literal["square", "dot", "rounded", "gapped"]
EccLevel = Literal["L", "M", "Q", "H"]
BackgroundMode = Literal["solid", "transparent"]
ColorMode = Literal["solid", "linear", "radial", "multi"]
GradientDirection = Literal["horizontal", "vertical"]
FrameStyle = Literal["square", "rounded", "pill"]
CtaPosition = Literal["top", "bottom"]

CHOICES = {
    "dot_style": ("square", "dots", "rounded", "gapped", "vertical-bars", "horizontal-bars"),
    "corner_style": ("square", "dot", "rounded", "gapped"),
    "ecc": ("L", "M", "Q", "H"),
    "background_mode": ("solid", "transparent"),
    "color_mode": ("solid", "linear", "radial", "multi"),
    "gradient_direction": ("horizontal", "vertical"),
    "frame_style": ("square", "rounded", "pill"),
    "cta_position": ("top", "bottom"),
}

# (min, max) per numeric field; out-of-range input is clamped
RANGES = {
    "size": (180, 900),
    "margin": (0, 40),
    "logo_size": (0.0, 0.42),
    "logo_margin": (0, 20),
    "cta_font_size": (9, 22),
}

MAX_MULTI_COLORS = 8

_HEX = re.compile(r"^(?:[0-9a-f]{3}|[0-9a-f]{6})$")


def normalize_hex(value: Any, fallback: Optional[str] = None) -> Optional[str]:
    """'#ABC', 'abc', 'aabbcc' -> '#aabbcc'; anything else -> fallback."""
    text = str(value if value is not None else "").strip().lower()
    if text.startswith("#"):
        text = text[1:]
    if not _HEX.match(text):
        return fallback
    if len(text) == 3:
        text = "".join(c * 2 for c in text)
    return f"#{text}"


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _parse_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        n = float(str(value).strip().replace(",", "."))
    except ValueError:
        return None
    if n != n or n in (float("inf"), float("-inf")):
        return None
    return n


class QrOptions(BaseModel):
    content: str = "https://example.com"

    dot_style: DotStyle = "square"
    corner_style: CornerStyle = "square"
    size: int = 320
    margin: int = 12
    ecc: EccLevel = "M"

    background_mode: BackgroundMode = "solid"
    background_color: str = "#ffffff"

    color_mode: ColorMode = "solid"
    foreground_color: str = "#111827"
    gradient_start: str = "#111827"
    gradient_end: str = "#2563eb"
    gradient_direction: GradientDirection = "horizontal"
    multi_colors: List[str] = Field(default_factory=lambda: ["#ef4444", "#f59e0b", "#10b981", "#3b82f6"])

    logo_id: Optional[str] = None
    logo_size: float = 0.22
    logo_margin: int = 6
    logo_hide_background: bool = True

    frame_enabled: bool = False
    frame_style: FrameStyle = "rounded"
    frame_color: str = "#111827"

    cta_text: str = ""
    cta_position: CtaPosition = "bottom"
    cta_color: str = "#ffffff"
    cta_font_size: int = 14
    cta_bold: bool = True
    cta_uppercase: bool = False

    @field_validator("content", mode="before")
    @classmethod
    def _content(cls, v: Any) -> str:
        v = str(v if v is not None else "").strip()
        if not v:
            raise ValueError("content is required")
        return v

    @field_validator(*CHOICES.keys(), mode="before")
    @classmethod
    def _choice(cls, v: Any, info: ValidationInfo) -> str:
        text = str(v if v is not None else "").strip()
        text = text.upper() if info.field_name == "ecc" else text.lower()
        if text in CHOICES[info.field_name]:
            return text
        return cls.model_fields[info.field_name].default

    @field_validator(
        "background_color", "foreground_color", "gradient_start", "gradient_end",
        "frame_color", "cta_color",
        mode="before",
    )
    @classmethod
    def _color(cls, v: Any, info: ValidationInfo) -> str:
        return normalize_hex(v, cls.model_fields[info.field_name].default)

    @field_validator("multi_colors", mode="before")
    @classmethod
    def _multi(cls, v: Any) -> List[str]:
        if isinstance(v, str):
            v = [p for p in re.split(r"[\s,;]+", v) if p]
        colors = [c for c in (normalize_hex(x) for x in (v or [])) if c]
        if not colors:
            return cls.model_fields["multi_colors"].default_factory()
        return colors[:MAX_MULTI_COLORS]

    @field_validator(*RANGES.keys(), mode="before")
    @classmethod
    def _range(cls, v: Any, info: ValidationInfo):
        lo, hi = RANGES[info.field_name]
        n = _parse_number(v)
        if n is None:
            return cls.model_fields[info.field_name].default
        n = clamp(n, lo, hi)
        return n if isinstance(lo, float) else int(round(n))

    @field_validator("logo_id", mode="before")
    @classmethod
    def _logo_id(cls, v: Any) -> Optional[str]:
        v = str(v if v is not None else "").strip()
        return v or None

    @field_validator("cta_text", mode="before")
    @classmethod
    def _cta_text(cls, v: Any) -> str:
        return str(v if v is not None else "").strip()
