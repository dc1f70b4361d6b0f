"""HTTP helpers on the display side of the wire.

``push_frame`` sends a packed frame straight to a display that accepts
uploads. ``fetch_frame`` behaves the way the panel firmware consumes
``image.bin``: it skips the refresh when the first bytes match the cached copy
and pads a short frame with white.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

import requests

from .errors import DeviceError
from .palette import DEFAULT_PANEL

log = logging.getLogger(__name__)

CHANGE_PROBE_BYTES = 100
WHITE_PAIR = 0x11


@dataclass
class FetchResult:
    changed: bool
    data: bytes
    received: int


def push_frame(url: str, data: bytes, timeout: float = 120) -> requests.Response:
    try:
        response = requests.post(
            url,
            files={"file": ("image.bin", data)},
            headers={"Connection": "keep-alive"},
            timeout=timeout,
        )
    except requests.RequestException as e:
        raise DeviceError(f"Cannot reach display at {url}: {e}") from e
    if response.status_code != 200:
        raise DeviceError(f"Display error: {response.status_code}")
    log.info("Pushed %d bytes to %s", len(data), url)
    return response


def fit_frame(data: bytes, frame_size: int = DEFAULT_PANEL.frame_size) -> bytes:
    if len(data) >= frame_size:
        return data[:frame_size]
    return data + bytes([WHITE_PAIR]) * (frame_size - len(data))


def fetch_frame(
    url: str,
    cache_path: Optional[str] = None,
    frame_size: int = DEFAULT_PANEL.frame_size,
    timeout: float = 30,
) -> FetchResult:
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise DeviceError(f"Cannot fetch frame from {url}: {e}") from e
    body = response.content

    if cache_path and os.path.exists(cache_path):
        with open(cache_path, "rb") as f:
            cached_head = f.read(CHANGE_PROBE_BYTES)
        if cached_head and cached_head == body[:CHANGE_PROBE_BYTES]:
            log.info("Frame unchanged, skipping refresh")
            with open(cache_path, "rb") as f:
                return FetchResult(changed=False, data=f.read(), received=len(body))

    if len(body) < frame_size:
        log.warning("Short frame: got %d of %d bytes, padding with white", len(body), frame_size)
    frame = fit_frame(body, frame_size)
    if cache_path:
        with open(cache_path, "wb") as f:
            f.write(frame)
    return FetchResult(changed=True, data=frame, received=len(body))
