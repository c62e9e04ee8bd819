"""Render single-band classified rasters as georeferenced RGBA overlays.

A raster is decoded with rasterio into a :class:`RasterGrid`, every pixel code
is looked up in a :class:`~color_tables.ColorClass` and the resulting bitmap is
returned together with the raster's bounding box so it can be placed on a map
as an image overlay. No resampling or reprojection happens here; the map
library is trusted with display and pixel-to-screen projection.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence, Tuple

import numpy as np
import rasterio as rio
import requests
from PIL import Image
from rasterio.errors import RasterioError
from rasterio.io import MemoryFile
from rich.console import Console

from color_tables import ColorClass

console = Console()


class ShapeMismatch(ValueError):
    """Pixel count does not match the declared grid dimensions."""


class DecodeError(RuntimeError):
    """Raster bytes could not be parsed into a grid."""


@dataclass(frozen=True)
class BoundingBox:
    west: float
    south: float
    east: float
    north: float

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.west, self.south, self.east, self.north)

    @property
    def folium_bounds(self) -> list[list[float]]:
        """Southwest and northeast corners as ``[lat, lon]`` pairs."""
        return [[self.south, self.west], [self.north, self.east]]


@dataclass(frozen=True, eq=False)
class RasterGrid:
    """Decoded first band of a raster, values in row-major order."""

    width: int
    height: int
    values: np.ndarray
    bbox: BoundingBox

    def __post_init__(self) -> None:
        for name in ("width", "height"):
            dim = getattr(self, name)
            if isinstance(dim, (bool, np.bool_)) or int(dim) != dim:
                raise ValueError(f"grid {name} must be a whole number, got {dim!r}")
            object.__setattr__(self, name, int(dim))
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"grid dimensions must be positive, got {self.width}x{self.height}"
            )
        values = np.array(self.values).ravel()
        values.setflags(write=False)
        object.__setattr__(self, "values", values)

    @property
    def size(self) -> int:
        return self.width * self.height


@dataclass(frozen=True, eq=False)
class RenderedOverlay:
    """RGBA bitmap of shape ``(height, width, 4)`` plus its bounds."""

    rgba: np.ndarray
    bbox: BoundingBox

    @property
    def width(self) -> int:
        return int(self.rgba.shape[1])

    @property
    def height(self) -> int:
        return int(self.rgba.shape[0])

    @property
    def bitmap(self) -> bytes:
        return self.rgba.tobytes()

    def to_image(self) -> Image.Image:
        return Image.fromarray(np.ascontiguousarray(self.rgba))


def render(grid: RasterGrid, classes: ColorClass) -> RenderedOverlay:
    """Colour every pixel of ``grid`` through ``classes``.

    Raises
    ------
    ShapeMismatch
        If the number of values differs from ``width * height``.
    """

    values = grid.values
    if values.size != grid.size:
        raise ShapeMismatch(
            f"grid declares {grid.width}x{grid.height}={grid.size} pixels "
            f"but holds {values.size} values"
        )

    # Look up each distinct code once, then broadcast through the inverse index
    codes, inverse = np.unique(values, return_inverse=True)
    palette = np.array(
        [classes.color_for(c) for c in codes], dtype=np.uint8
    ).reshape(-1, 4)
    rgba = palette[inverse.ravel()].reshape(grid.height, grid.width, 4)
    rgba.setflags(write=False)
    return RenderedOverlay(rgba=rgba, bbox=grid.bbox)


def make_grid(
    values: Sequence | np.ndarray,
    bbox: Tuple[float, float, float, float] | BoundingBox,
    *,
    width: int | None = None,
    height: int | None = None,
) -> RasterGrid:
    """Build a grid from a 2-D array, or from flat values plus dimensions."""
    arr = np.asarray(values)
    if width is None or height is None:
        if arr.ndim != 2:
            raise ValueError("width and height are required for flat values")
        height, width = arr.shape
    if not isinstance(bbox, BoundingBox):
        bbox = BoundingBox(*(float(b) for b in bbox))
    return RasterGrid(width=int(width), height=int(height), values=arr, bbox=bbox)


# ---------------------------------------------------------------------------
# Decoding and fetching
# ---------------------------------------------------------------------------


def _grid_from_dataset(src: rio.DatasetReader) -> RasterGrid:
    if src.count < 1:
        raise DecodeError("raster has no bands")
    arr = src.read(1)
    b = src.bounds
    return RasterGrid(
        width=src.width,
        height=src.height,
        values=arr.ravel(),
        bbox=BoundingBox(b.left, b.bottom, b.right, b.top),
    )


def decode_raster(source: Path | str | bytes) -> RasterGrid:
    """Decode the first band of a georeferenced raster.

    ``source`` is either a path or the raw bytes of the file.
    """
    label = "<bytes>" if isinstance(source, (bytes, bytearray)) else str(source)
    if isinstance(source, (bytes, bytearray)) and not source:
        raise DecodeError("could not decode raster <bytes>: input is empty")
    try:
        if isinstance(source, (bytes, bytearray)):
            with MemoryFile(bytes(source)) as mem, mem.open() as src:
                return _grid_from_dataset(src)
        with rio.open(source) as src:
            return _grid_from_dataset(src)
    except RasterioError as exc:
        raise DecodeError(f"could not decode raster {label}: {exc}") from exc


def fetch_raster_bytes(source: Path | str, timeout: int = 60) -> bytes:
    """Read ``source`` from disk, or download it when it is an http(s) URL."""
    src = str(source)
    if src.startswith(("http://", "https://")):
        r = requests.get(src, timeout=timeout)
        r.raise_for_status()
        return r.content
    return Path(source).read_bytes()


def load_overlay(source: Path | str, classes: ColorClass) -> RenderedOverlay:
    """Fetch, decode and render ``source`` with ``classes`` in one step."""
    console.log(f"Attempting to load {source}")
    data = fetch_raster_bytes(source)
    console.log(f"{Path(str(source)).name}: {len(data)} bytes")
    grid = decode_raster(data)
    console.log(
        f"{grid.width}x{grid.height} pixels, bbox {grid.bbox.as_tuple()}"
    )
    return render(grid, classes)
