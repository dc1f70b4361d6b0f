from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import List, Optional

from .config import Settings
from .device import push_frame
from .errors import DeviceError
from .pipeline import Pipeline
from .transforms import get_transform


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="epd-pipeline",
        description="Convert an image to the 800x480 six-color e-paper frame format.",
    )
    parser.add_argument("input", help="image file to convert (PNG, JPEG, BMP, GIF, ...)")
    parser.add_argument(
        "-o", "--output", default=None,
        help="output directory for image.bin, image.h and stats.json (default: next to input)",
    )
    parser.add_argument(
        "--transform", choices=("pillow", "magick"), default=settings.transform,
        help="raster transform backend (default: %(default)s)",
    )
    parser.add_argument("--magick", default=settings.imagemagick_path, help="ImageMagick executable")
    parser.add_argument("--push", metavar="URL", default=None, help="POST the frame to a display after converting")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug output")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    settings = Settings.from_env()
    args = build_parser(settings).parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
    )

    if not os.path.exists(args.input):
        print(f"Error: Input file '{args.input}' not found", file=sys.stderr)
        return 1
    output = args.output or os.path.dirname(os.path.abspath(args.input))

    with open(args.input, "rb") as f:
        image_bytes = f.read()

    transform = get_transform(args.transform, args.magick)
    result = Pipeline(transform=transform).process(image_bytes, output)
    if not result.success:
        print(f"Error ({result.error_kind}): {result.error}", file=sys.stderr)
        return 1

    print(f"Binary: {result.binary_path}")
    print(f"Header: {result.header_path}")
    for name, entry in result.stats.items():
        print(f"  {entry['index']}: {name:<8} {entry['count']:>6} pixels ({entry['percentage']:5.2f}%)")

    if args.push:
        with open(result.binary_path, "rb") as f:
            data = f.read()
        try:
            push_frame(args.push, data, timeout=settings.device_timeout)
        except DeviceError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        print(f"Pushed to {args.push}")
    return 0
