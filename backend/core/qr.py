"""
QR rendering on top of the `qrcode` library.

Encoding and module drawing are delegated to qrcode (StyledPilImage for PNG,
SvgPathImage for SVG). The frame and call-to-action caption are a Pillow layer
composited around the PNG; SVG exports carry the code only.
"""

import io
import logging
import time
from typing import Optional, Sequence, Tuple

import qrcode
from PIL import Image, ImageDraw, ImageFont
from qrcode.image.styledpil import StyledPilImage
from qrcode.image.styles.colormasks import (
    HorizontalGradiantColorMask,
    QRColorMask,
    RadialGradiantColorMask,
    SolidFillColorMask,
    VerticalGradiantColorMask,
)
from qrcode.image.styles.moduledrawers.pil import (
    CircleModuleDrawer,
    GappedSquareModuleDrawer,
    HorizontalBarsDrawer,
    RoundedModuleDrawer,
    SquareModuleDrawer,
    VerticalBarsDrawer,
)
from qrcode.exceptions import DataOverflowError
from qrcode.image.svg import SvgPathImage

from core.errors import ValidationError
from schemas.qr import QrOptions

logger = logging.getLogger(__name__)

ECC_LEVELS = {
    "L": qrcode.constants.ERROR_CORRECT_L,
    "M": qrcode.constants.ERROR_CORRECT_M,
    "Q": qrcode.constants.ERROR_CORRECT_Q,
    "H": qrcode.constants.ERROR_CORRECT_H,
}

MODULE_DRAWERS = {
    "square": SquareModuleDrawer,
    "dots": CircleModuleDrawer,
    "rounded": RoundedModuleDrawer,
    "gapped": GappedSquareModuleDrawer,
    "vertical-bars": VerticalBarsDrawer,
    "horizontal-bars": HorizontalBarsDrawer,
}

EYE_DRAWERS = {
    "square": SquareModuleDrawer,
    "dot": CircleModuleDrawer,
    "rounded": RoundedModuleDrawer,
    "gapped": GappedSquareModuleDrawer,
}

# qrcode's SvgPathImage aliases; styles without one fall back to squares
SVG_DRAWERS = {
    "dots": "circle",
    "gapped": "gapped-square",
}

Color = Tuple[int, ...]


def hex_to_rgb(value: str) -> Tuple[int, int, int]:
    value = value.lstrip("#")
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


def _color(value: str, transparent: bool) -> Color:
    rgb = hex_to_rgb(value)
    return (*rgb, 255) if transparent else rgb


class MultiStopColorMask(QRColorMask):
    """Diagonal gradient through any number of color stops."""

    def __init__(self, back_color: Color = (255, 255, 255), stops: Sequence[Color] = ((0, 0, 0),)):
        self.back_color = back_color
        self.stops = list(stops) or [(0, 0, 0)]
        self.has_transparency = len(self.back_color) == 4

    def get_fg_pixel(self, image, x, y):
        if len(self.stops) == 1:
            return self.stops[0]
        width, height = image.size
        pos = (x + y) / float(max(1, width + height - 2))
        seg = pos * (len(self.stops) - 1)
        idx = min(int(seg), len(self.stops) - 2)
        return self.interp_color(self.stops[idx], self.stops[idx + 1], seg - idx)


def primary_color(opts: QrOptions) -> str:
    if opts.color_mode in ("linear", "radial"):
        return opts.gradient_start
    if opts.color_mode == "multi":
        return opts.multi_colors[0]
    return opts.foreground_color


def build_color_mask(opts: QrOptions) -> QRColorMask:
    transparent = opts.background_mode == "transparent"
    back = (255, 255, 255, 0) if transparent else hex_to_rgb(opts.background_color)

    if opts.color_mode == "linear":
        start = _color(opts.gradient_start, transparent)
        end = _color(opts.gradient_end, transparent)
        if opts.gradient_direction == "vertical":
            return VerticalGradiantColorMask(back_color=back, top_color=start, bottom_color=end)
        return HorizontalGradiantColorMask(back_color=back, left_color=start, right_color=end)
    if opts.color_mode == "radial":
        return RadialGradiantColorMask(
            back_color=back,
            center_color=_color(opts.gradient_start, transparent),
            edge_color=_color(opts.gradient_end, transparent),
        )
    if opts.color_mode == "multi":
        return MultiStopColorMask(back_color=back, stops=[_color(c, transparent) for c in opts.multi_colors])
    return SolidFillColorMask(back_color=back, front_color=_color(opts.foreground_color, transparent))


def make_code(opts: QrOptions) -> qrcode.QRCode:
    qr = qrcode.QRCode(error_correction=ECC_LEVELS[opts.ecc], box_size=10, border=0)
    qr.add_data(opts.content)
    try:
        qr.make(fit=True)
    except (DataOverflowError, ValueError):
        # Past version 40 qrcode raises ValueError("Invalid version") or DataOverflowError
        raise ValidationError("Content is too long for a QR code.")

    # Fit whole modules into the drawable area inside the margin; at one pixel
    # per module compose() grows the canvas instead
    area = opts.size - 2 * opts.margin
    qr.box_size = max(1, area // qr.modules_count)
    return qr


def render_code(opts: QrOptions) -> Image.Image:
    qr = make_code(opts)
    img = qr.make_image(
        image_factory=StyledPilImage,
        module_drawer=MODULE_DRAWERS[opts.dot_style](),
        eye_drawer=EYE_DRAWERS[opts.corner_style](),
        color_mask=build_color_mask(opts),
    )
    return img.get_image().convert("RGBA")


def _background(opts: QrOptions) -> Color:
    if opts.background_mode == "transparent":
        return (0, 0, 0, 0)
    return (*hex_to_rgb(opts.background_color), 255)


def _paste_logo(canvas: Image.Image, origin: Tuple[int, int], side: int, logo_bytes: bytes, opts: QrOptions) -> None:
    target = int(side * opts.logo_size)
    if target < 1:
        return
    logo = Image.open(io.BytesIO(logo_bytes)).convert("RGBA")
    logo.thumbnail((target, target), Image.Resampling.LANCZOS)

    x = origin[0] + (side - logo.width) // 2
    y = origin[1] + (side - logo.height) // 2
    if opts.logo_hide_background:
        m = opts.logo_margin
        ImageDraw.Draw(canvas).rectangle(
            [x - m, y - m, x + logo.width + m - 1, y + logo.height + m - 1],
            fill=_background(opts),
        )
    canvas.alpha_composite(logo, (x, y))


def _frame_radius(opts: QrOptions, width: int, height: int, scale: float) -> int:
    if opts.frame_style == "square":
        return 0
    if opts.frame_style == "pill":
        return min(width, height) // 4
    return round(18 * scale)


def _apply_frame(canvas: Image.Image, opts: QrOptions) -> Image.Image:
    scale = opts.size / 300
    text = opts.cta_text.upper() if opts.cta_uppercase else opts.cta_text
    font_px = max(9, round(opts.cta_font_size * scale))
    pad = max(4, round(10 * scale)) if opts.frame_enabled else 0
    band = round(font_px * 2.2) if text else 0

    width = canvas.width + 2 * pad
    height = canvas.height + 2 * pad + band
    if opts.frame_enabled:
        out = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        ImageDraw.Draw(out).rounded_rectangle(
            [0, 0, width - 1, height - 1],
            radius=_frame_radius(opts, width, height, scale),
            fill=(*hex_to_rgb(opts.frame_color), 255),
        )
    else:
        out = Image.new("RGBA", (width, height), _background(opts))

    top = opts.cta_position == "top"
    out.alpha_composite(canvas, (pad, pad + (band if top else 0)))

    if text:
        band_center = pad + band / 2 if top else pad + canvas.height + band / 2
        font = ImageFont.load_default(size=font_px)
        color = (*hex_to_rgb(opts.cta_color), 255)
        ImageDraw.Draw(out).text(
            (width / 2, band_center),
            text,
            fill=color,
            font=font,
            anchor="mm",
            stroke_width=1 if opts.cta_bold else 0,
            stroke_fill=color,
        )
    return out


def compose(opts: QrOptions, code: Image.Image, logo_bytes: Optional[bytes] = None) -> Image.Image:
    side = max(opts.size, code.width + 2 * opts.margin)
    canvas = Image.new("RGBA", (side, side), _background(opts))
    area = side - 2 * opts.margin
    offset = opts.margin + (area - code.width) // 2
    canvas.alpha_composite(code, (offset, offset))

    if logo_bytes and opts.logo_size > 0:
        _paste_logo(canvas, (offset, offset), code.width, logo_bytes, opts)

    if opts.frame_enabled or opts.cta_text:
        canvas = _apply_frame(canvas, opts)
    return canvas


def render_png(opts: QrOptions, logo_bytes: Optional[bytes] = None) -> bytes:
    image = compose(opts, render_code(opts), logo_bytes)
    if opts.background_mode != "transparent" and not opts.frame_enabled:
        image = image.convert("RGB")
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    logger.debug("Rendered %dx%d PNG for %d chars of content", image.width, image.height, len(opts.content))
    return buf.getvalue()


def render_svg(opts: QrOptions) -> bytes:
    qr = make_code(opts)
    qr.border = round(opts.margin / qr.box_size)

    factory = type(
        "StyledSvgPathImage",
        (SvgPathImage,),
        {
            "QR_PATH_STYLE": {**SvgPathImage.QR_PATH_STYLE, "fill": primary_color(opts)},
            "background": None if opts.background_mode == "transparent" else opts.background_color,
        },
    )
    img = qr.make_image(image_factory=factory, module_drawer=SVG_DRAWERS.get(opts.dot_style))
    buf = io.BytesIO()
    img.save(buf)
    return buf.getvalue()


def export_filename(ext: str, now_ms: Optional[int] = None) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"qr_{now_ms}.{ext}"
