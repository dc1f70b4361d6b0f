from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional


@dataclass(frozen=True)
class Settings:
    upload_path: str = "/tmp/uploads"
    output_path: str = "/tmp/uploads"
    imagemagick_path: str = "magick"
    transform: str = "pillow"
    device_url: Optional[str] = None
    device_timeout: float = 120.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        upload_path = env.get("UPLOAD_PATH", "/tmp/uploads")
        return cls(
            upload_path=upload_path,
            output_path=env.get("OUTPUT_PATH") or upload_path,
            imagemagick_path=env.get("IMAGEMAGICK_PATH", "magick"),
            transform=env.get("EPD_TRANSFORM", "pillow").lower(),
            device_url=env.get("DEVICE_URL") or None,
            device_timeout=float(env.get("DEVICE_TIMEOUT", "120")),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )
