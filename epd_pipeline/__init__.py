"""Image to e-paper frame conversion for the 800x480 six-color panel.

``process(image_bytes, output_directory)`` runs the whole pipeline and
returns a ``PipelineResult``; the stage modules can also be used on their own.
"""

from .artifacts import color_statistics, render_header
from .errors import (
    DecodeError,
    DeviceError,
    Err,
    Ok,
    OutputError,
    PipelineError,
    QuantizeError,
    ResizeError,
    SizeMismatchError,
)
from .mapping import IndexMapper
from .packing import BinaryPacker, pack_nibbles, unpack_nibbles
from .palette import DEFAULT_PALETTE, DEFAULT_PANEL, Palette, PaletteColor, Panel
from .pipeline import Pipeline, PipelineResult, State, process
from .quantize import floyd_steinberg

__all__ = [
    "BinaryPacker",
    "DEFAULT_PALETTE",
    "DEFAULT_PANEL",
    "DecodeError",
    "DeviceError",
    "Err",
    "IndexMapper",
    "Ok",
    "OutputError",
    "Palette",
    "PaletteColor",
    "Panel",
    "Pipeline",
    "PipelineError",
    "PipelineResult",
    "QuantizeError",
    "ResizeError",
    "SizeMismatchError",
    "State",
    "color_statistics",
    "floyd_steinberg",
    "pack_nibbles",
    "process",
    "render_header",
    "unpack_nibbles",
]
