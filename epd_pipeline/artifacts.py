"""Outputs derived from an index stream: packed frame, C header, color stats."""

from __future__ import annotations

import json
import logging
import os
from collections import Counter
from typing import Dict, Sequence, Union

from .errors import OutputError
from .palette import Palette

log = logging.getLogger(__name__)

VALUES_PER_LINE = 16


def render_header(stream: Sequence[int], palette: Palette) -> str:
    """C initializer for firmware bundling.

    Each pixel is written as its display nibble value, not its raw index.
    """
    nibbles = {color.index: color.nibble for color in palette}
    values = ["0x%02X" % nibbles.get(index, 0x00) for index in stream]
    lines = [
        "  " + ", ".join(values[start:start + VALUES_PER_LINE])
        for start in range(0, len(values), VALUES_PER_LINE)
    ]
    return "const unsigned char image[] = {\n" + ",\n".join(lines) + "\n};\n"


def color_statistics(stream: Sequence[int], palette: Palette) -> Dict[str, dict]:
    counts = Counter(stream)
    total = len(stream)
    stats = {}
    for index in sorted(counts):
        color = palette.by_index(index)
        name = color.name if color is not None else "Unknown"
        count = counts[index]
        percentage = count / total * 100
        log.info("  %d: %-8s - %6d pixels (%5.2f%%)", index, name, count, percentage)
        stats[name] = {
            "index": index,
            "count": count,
            "percentage": round(percentage, 2),
        }
    return stats


def write_artifact(path: str, data: Union[bytes, str]) -> str:
    """Write ``data`` next to ``path`` and rename it into place."""
    tmp_path = f"{path}.partial"
    mode = "wb" if isinstance(data, bytes) else "w"
    try:
        with open(tmp_path, mode) as f:
            f.write(data)
        os.replace(tmp_path, path)
    except OSError as e:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise OutputError(f"Failed to write {path}: {e}") from e
    log.debug("Wrote %s (%d bytes)", path, len(data))
    return path


def write_stats(path: str, stats: Dict[str, dict]) -> str:
    return write_artifact(path, json.dumps(stats, indent=2) + "\n")
