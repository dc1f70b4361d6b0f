from __future__ import annotations

from typing import List, Optional, Sequence

from .errors import SizeMismatchError
from .palette import Panel


def pack_nibbles(indices: Sequence[int]) -> bytes:
    """Pack color indices two per byte, first pixel in the high nibble.

    An unpaired trailing index lands in the high nibble of a final byte whose
    low nibble is zero.
    """
    packed = bytearray((len(indices) + 1) // 2)
    for i in range(0, len(indices) - 1, 2):
        packed[i // 2] = ((indices[i] & 0x0F) << 4) | (indices[i + 1] & 0x0F)
    if len(indices) % 2:
        packed[-1] = (indices[-1] & 0x0F) << 4
    return bytes(packed)


def unpack_nibbles(data: bytes, count: Optional[int] = None) -> List[int]:
    indices = []
    for byte in data:
        indices.append(byte >> 4)
        indices.append(byte & 0x0F)
    if count is not None:
        del indices[count:]
    return indices


class BinaryPacker:
    def __init__(self, panel: Panel):
        self.panel = panel

    def pack(self, stream: Sequence[int]) -> bytes:
        expected = self.panel.pixel_count
        if len(stream) != expected:
            raise SizeMismatchError(expected, len(stream))
        return pack_nibbles(stream)
