"""
icon.py — Progress icon: a pie slice inside a ring, drawn with Pillow.

The slice starts at 12 o'clock and sweeps clockwise by ``ratio × 360°``.
Rendering is pure: the same arguments always give the same PNG bytes, so
icons can be compared byte-for-byte in tests.
"""
from __future__ import annotations

import io
from typing import Tuple

from PIL import Image, ImageDraw

Color = Tuple[int, int, int, int]

DEFAULT_SIZE = 64
DEFAULT_STROKE = 4
GREEN: Color = (0, 255, 0, 255)
GREY: Color = (150, 150, 150, 255)
RED: Color = (255, 0, 0, 255)

# Pillow measures angles clockwise from 3 o'clock
_TOP = -90.0


def render_image(
    ratio: float,
    size: int = DEFAULT_SIZE,
    stroke_width: int = DEFAULT_STROKE,
    color: Color = GREEN,
) -> Image.Image:
    """Draw the progress icon as an RGBA image."""
    if size <= 0:
        raise ValueError("size must be positive")
    if stroke_width <= 0 or 4 * stroke_width >= size:
        raise ValueError(f"stroke_width {stroke_width} does not fit a {size}px icon")

    ratio = min(1.0, max(0.0, float(ratio)))
    img = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)

    c = size / 2
    r = c - stroke_width
    disc = [c - r, c - r, c + r, c + r]

    if ratio >= 1.0:
        draw.ellipse(disc, fill=color)
    elif ratio > 0.0:
        draw.pieslice(disc, start=_TOP, end=_TOP + 360.0 * ratio, fill=color)

    # Ring centred on the slice radius; Pillow strokes inward from the box
    half = stroke_width / 2
    ring = [c - r - half, c - r - half, c + r + half, c + r + half]
    draw.ellipse(ring, outline=color, width=stroke_width)
    return img


def render(
    ratio: float,
    size: int = DEFAULT_SIZE,
    stroke_width: int = DEFAULT_STROKE,
    color: Color = GREEN,
) -> bytes:
    """Render the progress icon as PNG bytes."""
    buf = io.BytesIO()
    render_image(ratio, size, stroke_width, color).save(buf, format="PNG")
    return buf.getvalue()
