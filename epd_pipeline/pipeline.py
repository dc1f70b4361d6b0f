"""Runs one upload through normalize, quantize, map, pack and emit.

Each stage hands back ``Ok(value)`` or ``Err(kind, detail)``; the first
``Err`` moves the run to ``FAILED``. Intermediate rasters live
in a per-run work area that is removed when the run ends. The final
artifacts are staged as hidden files in the output directory and only
renamed into place once every stage has succeeded.
"""

from __future__ import annotations

import enum
import logging
import os
import shutil
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from . import artifacts, canvas
from .config import Settings
from .errors import Err, Ok, OutputError, PipelineError, SizeMismatchError
from .mapping import IndexMapper
from .packing import BinaryPacker
from .palette import DEFAULT_PANEL, Panel
from .transforms import PillowTransform, RasterTransform, get_transform

log = logging.getLogger(__name__)

BINARY_NAME = "image.bin"
HEADER_NAME = "image.h"
STATS_NAME = "stats.json"


class State(enum.Enum):
    RECEIVED = "received"
    NORMALIZING = "normalizing"
    QUANTIZING = "quantizing"
    MAPPING = "mapping"
    PACKING = "packing"
    EMITTING = "emitting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PipelineResult:
    success: bool = False
    state: State = State.RECEIVED
    binary_path: Optional[str] = None
    header_path: Optional[str] = None
    stats_path: Optional[str] = None
    stats: Dict[str, dict] = field(default_factory=dict)
    dimensions: Optional[Dict[str, int]] = None
    total_pixels: int = 0
    error: Optional[str] = None
    error_kind: Optional[str] = None

    def to_dict(self) -> dict:
        if not self.success:
            return {"success": False, "error": self.error, "error_kind": self.error_kind}
        return {
            "success": True,
            "binary_path": self.binary_path,
            "header_path": self.header_path,
            "stats_path": self.stats_path,
            "dimensions": self.dimensions,
            "total_pixels": self.total_pixels,
            "stats": self.stats,
            "color_stats": self.stats,
        }


@contextmanager
def run_workspace(root: str) -> Iterator[str]:
    """Private scratch directory for one run, removed on exit."""
    path = os.path.join(root, f".run-{uuid.uuid4().hex}")
    try:
        os.makedirs(path)
    except OSError as e:
        raise OutputError(f"Cannot create work area in {root}: {e}") from e
    log.debug("Created work area %s", path)
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)
        log.debug("Removed work area %s", path)


class Pipeline:
    def __init__(
        self,
        panel: Panel = DEFAULT_PANEL,
        transform: Optional[RasterTransform] = None,
        work_root: Optional[str] = None,
    ):
        self.panel = panel
        self.transform = transform or PillowTransform()
        self.work_root = work_root
        self.mapper = IndexMapper(panel.palette)
        self.packer = BinaryPacker(panel)

    def process(self, image_bytes: bytes, output_directory: str) -> PipelineResult:
        log.info("=" * 60)
        log.info("Processing %d bytes into %s (%s transform)",
                 len(image_bytes), output_directory, self.transform.name)
        result = PipelineResult()

        try:
            os.makedirs(output_directory, exist_ok=True)
        except OSError as e:
            return self._fail(result, Err(OutputError.kind, f"Cannot create {output_directory}: {e}"))

        try:
            with run_workspace(self.work_root or output_directory) as workdir:
                return self._run(result, image_bytes, workdir, output_directory)
        except OutputError as e:
            return self._fail(result, Err.from_exception(e))

    def _run(self, result, image_bytes, workdir, output_directory):
        step = self._stage(result, State.NORMALIZING, self._normalize, image_bytes, workdir)
        if isinstance(step, Err):
            return self._fail(result, step)

        step = self._stage(result, State.QUANTIZING, self._quantize, step.value, workdir)
        if isinstance(step, Err):
            return self._fail(result, step)

        step = self._stage(result, State.MAPPING, self.mapper.map_image, step.value)
        if isinstance(step, Err):
            return self._fail(result, step)
        stream = step.value

        if len(stream) != self.panel.pixel_count:
            return self._fail(result, Err.from_exception(
                SizeMismatchError(self.panel.pixel_count, len(stream))))

        step = self._stage(result, State.PACKING, self.packer.pack, stream)
        if isinstance(step, Err):
            return self._fail(result, step)

        step = self._stage(result, State.EMITTING, self._emit, stream, step.value, output_directory)
        if isinstance(step, Err):
            return self._fail(result, step)

        published, stats = step.value
        result.state = State.DONE
        result.success = True
        result.binary_path = published[BINARY_NAME]
        result.header_path = published[HEADER_NAME]
        result.stats_path = published[STATS_NAME]
        result.stats = stats
        result.dimensions = {"width": self.panel.width, "height": self.panel.height}
        result.total_pixels = len(stream)

        log.info("Success! Image processed:")
        log.info("  Binary: %s", result.binary_path)
        log.info("  Header: %s", result.header_path)
        log.info("  Total pixels: %d", result.total_pixels)
        return result

    def _stage(self, result: PipelineResult, state: State, fn, *args):
        result.state = state
        log.info("Stage: %s", state.value)
        try:
            return Ok(fn(*args))
        except PipelineError as e:
            return Err.from_exception(e)
        except OSError as e:
            return Err(OutputError.kind, str(e))

    def _fail(self, result: PipelineResult, err: Err) -> PipelineResult:
        log.error("ERROR in %s: [%s] %s", result.state.value, err.kind, err.detail)
        result.state = State.FAILED
        result.success = False
        result.error = err.detail
        result.error_kind = err.kind
        return result

    def _normalize(self, image_bytes, workdir):
        raster = canvas.normalize(image_bytes, self.panel, self.transform, workdir)
        raster.save(os.path.join(workdir, "normalized.png"))
        return raster

    def _quantize(self, raster, workdir):
        dithered = self.transform.remap(raster, self.panel.palette, workdir)
        dithered.save(os.path.join(workdir, "dithered.png"))
        return dithered

    def _emit(self, stream, packed, output_directory):
        palette = self.panel.palette
        log.info("Color usage statistics:")
        stats = artifacts.color_statistics(stream, palette)

        # Staged next to their targets so that publishing is a same-directory rename.
        run_tag = uuid.uuid4().hex
        staged: Dict[str, str] = {}
        try:
            staged[BINARY_NAME] = artifacts.write_artifact(
                staging_path(output_directory, BINARY_NAME, run_tag), packed)
            staged[HEADER_NAME] = artifacts.write_artifact(
                staging_path(output_directory, HEADER_NAME, run_tag), artifacts.render_header(stream, palette))
            staged[STATS_NAME] = artifacts.write_stats(
                staging_path(output_directory, STATS_NAME, run_tag), stats)
            published = publish(staged, output_directory)
        finally:
            for path in staged.values():
                if os.path.exists(path):
                    os.remove(path)
                    log.debug("Removed staged %s", path)
        return published, stats


def staging_path(output_directory: str, name: str, run_tag: str) -> str:
    return os.path.join(output_directory, f".{name}.{run_tag}.staged")


def publish(staged: Dict[str, str], output_directory: str) -> Dict[str, str]:
    """Rename staged files into ``output_directory``.

    If a rename fails, the files already moved by this call are removed again.
    """
    published: Dict[str, str] = {}
    moved: List[str] = []
    try:
        for name, path in staged.items():
            target = os.path.join(output_directory, name)
            os.replace(path, target)
            moved.append(target)
            published[name] = target
    except OSError as e:
        for target in moved:
            if os.path.exists(target):
                os.remove(target)
        raise OutputError(f"Failed to publish artifacts to {output_directory}: {e}") from e
    return published


def process(image_bytes: bytes, output_directory: str, settings: Optional[Settings] = None) -> PipelineResult:
    settings = settings or Settings.from_env()
    transform = get_transform(settings.transform, settings.imagemagick_path)
    return Pipeline(transform=transform).process(image_bytes, output_directory)
