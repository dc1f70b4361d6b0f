from __future__ import annotations

from typing import Sequence

from PIL import Image

from .palette import WHITE_INDEX, Palette


class IndexMapper:
    """Turns palette-quantized RGB pixels into panel color indices."""

    def __init__(self, palette: Palette):
        self.palette = palette

    def index_of(self, rgb: Sequence[int]) -> int:
        r, g, b = rgb[0], rgb[1], rgb[2]
        index = self.palette.exact_index((r, g, b))
        if index is not None:
            return index
        closest = self.palette.nearest(r, g, b)
        return closest.index if closest is not None else WHITE_INDEX

    def map_image(self, image: Image.Image) -> bytes:
        """Row-major index stream (y outer, x inner) for the whole raster."""
        rgb = image.convert("RGB") if image.mode != "RGB" else image
        cache = {}
        stream = bytearray()
        raw = rgb.tobytes()
        for offset in range(0, len(raw), 3):
            pixel = raw[offset:offset + 3]
            index = cache.get(pixel)
            if index is None:
                index = cache[pixel] = self.index_of(pixel)
            stream.append(index)
        return bytes(stream)
