"""Fixed palette and geometry of the 800x480 six-color e-paper panel."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

RGB = Tuple[int, int, int]


@dataclass(frozen=True)
class PaletteColor:
    name: str
    rgb: RGB
    index: int
    nibble: int  # value written to the C header export


@dataclass(frozen=True)
class Palette:
    """Ordered, immutable set of panel colors.

    Enumeration order matters: nearest-color ties resolve to the color that
    appears first.
    """

    colors: Tuple[PaletteColor, ...]
    _by_rgb: Dict[RGB, int] = field(init=False, repr=False, compare=False)
    _by_index: Dict[int, PaletteColor] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_by_rgb", {c.rgb: c.index for c in self.colors})
        object.__setattr__(self, "_by_index", {c.index: c for c in self.colors})

    def __len__(self) -> int:
        return len(self.colors)

    def __iter__(self):
        return iter(self.colors)

    def exact_index(self, rgb: RGB) -> Optional[int]:
        return self._by_rgb.get(tuple(rgb))

    def by_index(self, index: int) -> Optional[PaletteColor]:
        return self._by_index.get(index)

    def nearest(self, r: float, g: float, b: float) -> Optional[PaletteColor]:
        """Closest color by squared Euclidean distance, first one wins a tie."""
        best = None
        best_distance = float("inf")
        for color in self.colors:
            pr, pg, pb = color.rgb
            distance = (r - pr) ** 2 + (g - pg) ** 2 + (b - pb) ** 2
            if distance < best_distance:
                best_distance = distance
                best = color
        return best

    def flat_rgb(self) -> list:
        """Palette as a flat [r, g, b, r, g, b, ...] list for Image.putpalette."""
        flat = []
        for color in self.colors:
            flat.extend(color.rgb)
        return flat


# Index 4 is not used by the panel controller.
DEFAULT_PALETTE = Palette(
    (
        PaletteColor("White", (255, 255, 255), 1, 0xFF),
        PaletteColor("Black", (0, 0, 0), 0, 0x00),
        PaletteColor("Red", (255, 0, 0), 3, 0xE0),
        PaletteColor("Yellow", (255, 255, 0), 2, 0xFC),
        PaletteColor("Green", (0, 255, 0), 6, 0x1C),
        PaletteColor("Blue", (0, 0, 255), 5, 0x03),
    )
)

WHITE_INDEX = 1


@dataclass(frozen=True)
class Panel:
    width: int = 800
    height: int = 480
    palette: Palette = DEFAULT_PALETTE
    background: RGB = (0, 0, 0)

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    @property
    def frame_size(self) -> int:
        return (self.pixel_count + 1) // 2


DEFAULT_PANEL = Panel()
