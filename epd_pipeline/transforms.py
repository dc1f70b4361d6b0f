"""Raster transforms: resize-and-pad and palette remapping.

Two implementations share one contract. ``PillowTransform`` does the work in
process. ``MagickTransform`` shells out to ImageMagick and exchanges rasters
through files in the run's work area.
"""

from __future__ import annotations

import logging
import os
import subprocess
from typing import Optional, Sequence, Tuple

from PIL import Image

from .errors import QuantizeError, ResizeError
from .palette import RGB, Palette
from .quantize import floyd_steinberg

log = logging.getLogger(__name__)


class RasterTransform:
    name = "base"

    def fit(self, image: Image.Image, size: Tuple[int, int], background: RGB, workdir: str) -> Image.Image:
        """Scale ``image`` to fit ``size`` and center it on a ``background`` canvas."""
        raise NotImplementedError

    def remap(self, image: Image.Image, palette: Palette, workdir: str) -> Image.Image:
        """Dither ``image`` onto ``palette`` with Floyd-Steinberg error diffusion."""
        raise NotImplementedError


def fit_size(source: Tuple[int, int], target: Tuple[int, int]) -> Tuple[int, int]:
    """Largest size with the source aspect ratio that fits inside target."""
    width, height = source
    target_width, target_height = target
    scale = min(target_width / width, target_height / height)
    return (
        min(target_width, max(1, round(width * scale))),
        min(target_height, max(1, round(height * scale))),
    )


class PillowTransform(RasterTransform):
    name = "pillow"

    def __init__(self, resample=Image.Resampling.LANCZOS):
        self.resample = resample

    def fit(self, image, size, background, workdir):
        new_size = fit_size(image.size, size)
        try:
            resized = image.resize(new_size, self.resample) if new_size != image.size else image
        except (OSError, ValueError, MemoryError) as e:
            raise ResizeError(f"Failed to resize image: {e}") from e
        log.debug("Resized %dx%d -> %dx%d", image.width, image.height, *new_size)

        canvas = Image.new("RGB", size, background)
        canvas.paste(resized, ((size[0] - new_size[0]) // 2, (size[1] - new_size[1]) // 2))
        return canvas

    def remap(self, image, palette, workdir):
        return floyd_steinberg(image, palette)


class MagickTransform(RasterTransform):
    name = "magick"

    def __init__(self, executable: str = "magick", timeout: Optional[float] = None):
        self.executable = executable
        self.timeout = timeout

    def run_command(self, cmd: Sequence[str]) -> subprocess.CompletedProcess:
        log.debug("Running %s", " ".join(cmd))
        return subprocess.run(
            list(cmd),
            capture_output=True,
            text=True,
            timeout=self.timeout,
            check=False,
        )

    def _invoke(self, cmd, error_cls, what):
        try:
            result = self.run_command(cmd)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise error_cls(f"Failed to {what}: {e}") from e
        if result.returncode != 0:
            raise error_cls(f"Failed to {what}: {result.stderr.strip()}")

    def _load(self, path, error_cls):
        try:
            with Image.open(path) as img:
                return img.convert("RGB")
        except OSError as e:
            raise error_cls(f"Failed to read {path}: {e}") from e

    def fit(self, image, size, background, workdir):
        source_path = os.path.join(workdir, "source.png")
        resized_path = os.path.join(workdir, "temp_resized.png")
        image.save(source_path)
        geometry = f"{size[0]}x{size[1]}"
        self._invoke(
            [
                self.executable, source_path,
                "-resize", geometry,
                "-background", "rgb(%d,%d,%d)" % background,
                "-gravity", "center",
                "-extent", geometry,
                resized_path,
            ],
            ResizeError,
            "resize image",
        )
        return self._load(resized_path, ResizeError)

    def remap(self, image, palette, workdir):
        if len(palette) == 0:
            raise QuantizeError("Cannot quantize against an empty palette")
        palette_path = os.path.join(workdir, "palette.png")
        source_path = os.path.join(workdir, "temp_normalized.png")
        dithered_path = os.path.join(workdir, "temp_dithered.png")

        swatch = Image.new("RGB", (len(palette), 1))
        for x, color in enumerate(palette):
            swatch.putpixel((x, 0), color.rgb)
        swatch.save(palette_path)
        image.save(source_path)

        self._invoke(
            [
                self.executable, source_path,
                "-dither", "FloydSteinberg",
                "-remap", palette_path,
                dithered_path,
            ],
            QuantizeError,
            "dither image",
        )
        return self._load(dithered_path, QuantizeError)


def get_transform(name: str, imagemagick_path: str = "magick", timeout: Optional[float] = None) -> RasterTransform:
    if name == "pillow":
        return PillowTransform()
    if name == "magick":
        return MagickTransform(imagemagick_path, timeout=timeout)
    raise ValueError(f"Unknown transform: {name!r} (expected 'pillow' or 'magick')")
