from __future__ import annotations

import io
import logging

from PIL import Image, ImageOps

from .errors import DecodeError, ResizeError
from .palette import Panel
from .transforms import RasterTransform

log = logging.getLogger(__name__)


def decode(image_bytes: bytes) -> Image.Image:
    """Decode uploaded bytes into an RGB image, alpha flattened onto black."""
    if not image_bytes:
        raise DecodeError("Uploaded image is empty")
    try:
        img = Image.open(io.BytesIO(image_bytes))
        img.load()
        img = ImageOps.exif_transpose(img)
    except (OSError, EOFError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Cannot decode image: {e}") from e

    if img.mode in ("RGBA", "LA", "PA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        backdrop = Image.new("RGBA", rgba.size, (0, 0, 0, 255))
        img = Image.alpha_composite(backdrop, rgba)
    if img.mode != "RGB":
        img = img.convert("RGB")
    return img


def normalize(image_bytes: bytes, panel: Panel, transform: RasterTransform, workdir: str) -> Image.Image:
    """Decode, scale to fit the panel and pad with the panel background."""
    img = decode(image_bytes)
    log.info("Decoded %dx%d image", img.width, img.height)

    canvas = transform.fit(img, panel.size, panel.background, workdir)
    if canvas.size != panel.size:
        raise ResizeError(
            f"Resize produced {canvas.width}x{canvas.height}, expected {panel.width}x{panel.height}"
        )
    return canvas
