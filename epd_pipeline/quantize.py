"""Floyd-Steinberg error diffusion against the panel palette."""

from __future__ import annotations

from PIL import Image

from .errors import QuantizeError
from .palette import Palette


def _clamp(value: float) -> float:
    if value < 0.0:
        return 0.0
    if value > 255.0:
        return 255.0
    return value


def floyd_steinberg(image: Image.Image, palette: Palette) -> Image.Image:
    """Dither ``image`` so that every output pixel is a palette color.

    Pixels are visited strictly row by row, left to right. The quantization
    error of each pixel is pushed to the unvisited neighbours with weights
    7/16 (right), 3/16 (below left), 5/16 (below) and 1/16 (below right), and
    every neighbour channel is clamped to [0, 255] after it receives error.
    """
    if len(palette) == 0:
        raise QuantizeError("Cannot quantize against an empty palette")

    rgb = image.convert("RGB") if image.mode != "RGB" else image
    width, height = rgb.size
    # One flat float buffer per channel so the inner loop stays on plain lists.
    channels = [[float(v) for v in band.tobytes()] for band in rgb.split()]
    red, green, blue = channels
    out = bytearray(width * height * 3)

    for y in range(height):
        row = y * width
        last_row = y == height - 1
        for x in range(width):
            i = row + x
            color = palette.nearest(red[i], green[i], blue[i])
            pr, pg, pb = color.rgb
            out[i * 3] = pr
            out[i * 3 + 1] = pg
            out[i * 3 + 2] = pb

            errors = (red[i] - pr, green[i] - pg, blue[i] - pb)
            if errors == (0.0, 0.0, 0.0):
                continue

            for channel, err in zip(channels, errors):
                if err == 0.0:
                    continue
                if x + 1 < width:
                    channel[i + 1] = _clamp(channel[i + 1] + err * 7 / 16)
                if not last_row:
                    below = i + width
                    if x > 0:
                        channel[below - 1] = _clamp(channel[below - 1] + err * 3 / 16)
                    channel[below] = _clamp(channel[below] + err * 5 / 16)
                    if x + 1 < width:
                        channel[below + 1] = _clamp(channel[below + 1] + err * 1 / 16)

    return Image.frombytes("RGB", (width, height), bytes(out))
