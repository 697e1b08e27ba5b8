"""Tiling of screenshots into one composite image.

Layout planning is pure arithmetic over (width, height) pairs; rendering
pastes the decoded images onto an opaque white canvas with Pillow.
"""
from __future__ import annotations

import io
import os
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from PIL import Image

from .image_io import WHITE, ImageDescriptor, decode_for_paste, load_image_descriptor
from .utils import list_image_files, log

DIRECTIONS = ("vertical", "horizontal")
FORMATS = ("jpeg", "png")
MERGED_SUBDIR = "merged"


@dataclass
class MergeOptions:
    direction: str = "vertical"
    margin: int = 10
    max_per_row: Optional[int] = None
    output_format: str = "jpeg"
    quality: int = 90

    def validate(self) -> None:
        if self.direction not in DIRECTIONS:
            raise ValueError(f"unsupported direction: {self.direction!r}")
        if self.margin < 0:
            raise ValueError("margin must be non-negative")
        if self.max_per_row is not None and self.max_per_row <= 0:
            raise ValueError("max_per_row must be a positive integer")
        if self.output_format not in FORMATS:
            raise ValueError(f"unsupported output format: {self.output_format!r}")
        if not 1 <= self.quality <= 100:
            raise ValueError("quality must be within 1..100")


@dataclass(frozen=True)
class Placement:
    x: int
    y: int
    width: int
    height: int


@dataclass
class LayoutPlan:
    width: int
    height: int
    placements: List[Placement]
    # indexes of the images in each row, top to bottom
    rows: List[List[int]]


@dataclass
class CompositeResult:
    success: bool
    output_path: Optional[str] = None
    error: Optional[str] = None
    sources: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        out: dict = {"success": self.success}
        if self.output_path is not None:
            out["outputPath"] = self.output_path
        if self.error is not None:
            out["error"] = self.error
        if self.sources:
            out["sources"] = list(self.sources)
        return out


def _plan_vertical(sizes: Sequence[Tuple[int, int]], margin: int) -> LayoutPlan:
    width = max(w for w, _ in sizes)
    height = sum(h for _, h in sizes) + margin * (len(sizes) - 1)
    placements = []
    y = 0
    for w, h in sizes:
        placements.append(Placement((width - w) // 2, y, w, h))
        y += h + margin
    return LayoutPlan(width, height, placements, [[i] for i in range(len(sizes))])


def _plan_rows(sizes: Sequence[Tuple[int, int]], rows: List[List[int]], margin: int) -> LayoutPlan:
    dims = []
    for row in rows:
        row_w = sum(sizes[i][0] for i in row) + margin * (len(row) - 1)
        row_h = max(sizes[i][1] for i in row)
        dims.append((row_w, row_h))
    width = max(w for w, _ in dims)
    height = sum(h for _, h in dims) + margin * (len(rows) - 1)

    placements: List[Optional[Placement]] = [None] * len(sizes)
    y = 0
    for row, (_, row_h) in zip(rows, dims):
        x = 0
        for i in row:
            w, h = sizes[i]
            placements[i] = Placement(x, y + (row_h - h) // 2, w, h)
            x += w + margin
        y += row_h + margin
    return LayoutPlan(width, height, placements, rows)  # type: ignore[arg-type]


def plan_layout(
    sizes: Sequence[Tuple[int, int]],
    direction: str = "vertical",
    margin: int = 10,
    max_per_row: Optional[int] = None,
) -> LayoutPlan:
    """Compute image placements and canvas size.

    vertical: stacked top to bottom, each image centered horizontally.
    horizontal: one row left to right, each image centered vertically.
    horizontal + max_per_row: rows of at most `max_per_row` images in input
    order; each image centered vertically within its row.
    """
    if not sizes:
        raise ValueError("no images to compose")
    if margin < 0:
        raise ValueError("margin must be non-negative")
    if any(w <= 0 or h <= 0 for w, h in sizes):
        raise ValueError("image dimensions must be positive")
    if direction == "vertical":
        return _plan_vertical(sizes, margin)
    if direction != "horizontal":
        raise ValueError(f"unsupported direction: {direction!r}")

    n = len(sizes)
    if max_per_row is None:
        per_row = n
    elif max_per_row <= 0:
        raise ValueError("max_per_row must be a positive integer")
    else:
        per_row = max_per_row
    rows = [list(range(start, min(start + per_row, n))) for start in range(0, n, per_row)]
    return _plan_rows(sizes, rows, margin)


def render_composite(images: Sequence[ImageDescriptor], plan: LayoutPlan, output_format: str = "jpeg", quality: int = 90) -> bytes:
    canvas = Image.new("RGB", (plan.width, plan.height), WHITE)
    for image, pl in zip(images, plan.placements):
        tile = decode_for_paste(image)
        canvas.paste(tile, (pl.x, pl.y))
    buf = io.BytesIO()
    if output_format == "png":
        canvas.save(buf, format="PNG", optimize=True)
    else:
        canvas.save(buf, format="JPEG", quality=quality, optimize=True)
    out = buf.getvalue()
    if not out:
        raise RuntimeError("composite encoding resulted in empty bytes")
    return out


def compose(images: Sequence[ImageDescriptor], output_path: str, options: Optional[MergeOptions] = None) -> CompositeResult:
    """Tile `images` and write the composite to `output_path`.

    Raises on invalid options or on any decode/encode failure; nothing is
    written in that case.
    """
    options = options or MergeOptions()
    options.validate()
    plan = plan_layout([(i.width, i.height) for i in images], options.direction, options.margin, options.max_per_row)
    data = render_composite(images, plan, options.output_format, options.quality)
    out_dir = os.path.dirname(output_path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    with open(output_path, "wb") as f:
        f.write(data)
    return CompositeResult(success=True, output_path=output_path, sources=[i.name for i in images])


def merged_output_path(folder: str, output_name: str, output_format: str) -> str:
    return os.path.join(folder, MERGED_SUBDIR, f"{output_name}.{output_format}")


def merge_images_in_folder(folder: str, output_name: str = "merged-images", options: Optional[MergeOptions] = None, quiet: bool = False) -> CompositeResult:
    """Merge every JPEG/PNG in `folder` into `<folder>/merged/<output_name>.<format>`.

    Never raises: every failure is reported through the result.
    """
    options = options or MergeOptions()
    try:
        if not os.path.isdir(folder):
            return CompositeResult(success=False, error=f"Directory not found: {folder}")
        files = list_image_files(folder)
        if not files:
            return CompositeResult(success=False, error=f"No image files found in directory: {folder}")
        log(f"Found {len(files)} images to merge in {folder}", quiet)
        images = [load_image_descriptor(p) for p in files]
        result = compose(images, merged_output_path(folder, output_name, options.output_format), options)
        log(f"Merged images into {result.output_path}", quiet)
        return result
    except Exception as e:
        log(f"Error merging images: {e}", quiet)
        return CompositeResult(success=False, error=str(e))
