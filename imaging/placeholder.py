from __future__ import annotations

import io
from typing import Tuple

from PIL import Image, ImageDraw, ImageFont

PLACEHOLDER_SIZE = (3000, 2000)
FILL_COLOR = (255, 0, 0, 128)  # red, 50% opacity
BACKGROUND_COLOR = (255, 255, 255, 255)
TEXT_COLOR = (0, 0, 0, 255)
FONT_SIZE = 300
MIN_FONT_SIZE = 8
TEXT_WIDTH_RATIO = 0.9


def _load_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    try:
        return ImageFont.truetype("DejaVuSans.ttf", size)
    except OSError:
        return ImageFont.load_default(size)


def _fit_font(draw: ImageDraw.ImageDraw, ts: str, size: Tuple[int, int]):
    """Largest font, up to FONT_SIZE scaled to the canvas, whose text box fits."""
    width, height = size
    font_size = max(MIN_FONT_SIZE, FONT_SIZE * height // PLACEHOLDER_SIZE[1])
    while True:
        font = _load_font(font_size)
        bbox = draw.textbbox((0, 0), ts, font=font)
        fits = bbox[2] - bbox[0] <= width * TEXT_WIDTH_RATIO and bbox[3] - bbox[1] <= height
        if fits or font_size <= MIN_FONT_SIZE:
            return font, bbox
        font_size = max(MIN_FONT_SIZE, font_size * 9 // 10)


def render_placeholder(ts: str, size: Tuple[int, int] = PLACEHOLDER_SIZE) -> bytes:
    """Render the stand-in picture used when a camera is simulated.

    A translucent red field over white with `ts` centred on it, JPEG encoded.
    The output depends only on `ts` and `size`.
    """
    width, height = size
    canvas = Image.new("RGBA", size, BACKGROUND_COLOR)
    field = Image.new("RGBA", size, FILL_COLOR)
    canvas = Image.alpha_composite(canvas, field)

    draw = ImageDraw.Draw(canvas)
    font, bbox = _fit_font(draw, ts, size)
    text_w = bbox[2] - bbox[0]
    text_h = bbox[3] - bbox[1]
    x = (width - text_w) // 2 - bbox[0]
    y = (height - text_h) // 2 - bbox[1]
    draw.text((x, y), ts, fill=TEXT_COLOR, font=font)

    out = io.BytesIO()
    canvas.convert("RGB").save(out, format="JPEG", quality=90)
    return out.getvalue()
