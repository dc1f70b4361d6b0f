import io

import pytest
from PIL import Image

from epd_pipeline.palette import DEFAULT_PANEL, Panel


def encode(img, fmt="PNG"):
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def solid_image_bytes(color, size=DEFAULT_PANEL.size, fmt="PNG"):
    return encode(Image.new("RGB", size, color), fmt)


def gradient_image(size):
    width, height = size
    img = Image.new("RGB", size)
    for y in range(height):
        for x in range(width):
            img.putpixel((x, y), (x * 255 // max(1, width - 1), y * 255 // max(1, height - 1), 128))
    return img


@pytest.fixture
def small_panel():
    return Panel(width=40, height=24)


@pytest.fixture
def red_png():
    return solid_image_bytes((255, 0, 0))
