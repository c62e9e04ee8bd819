import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from unittest.mock import patch

import numpy as np
import pytest
import rasterio as rio
import requests
from rasterio.transform import from_bounds

from classified_raster import (
    BoundingBox,
    DecodeError,
    RasterGrid,
    ShapeMismatch,
    decode_raster,
    fetch_raster_bytes,
    load_overlay,
    make_grid,
    render,
)
from color_tables import GLOBCOVER, GLWD, SWAMPS

BBOX = (24.0, 3.0, 39.0, 12.0)


def _create_raster(
    path: Path,
    data: np.ndarray,
    bounds: tuple[float, float, float, float] = BBOX,
) -> None:
    transform = from_bounds(*bounds, data.shape[1], data.shape[0])
    with rio.open(
        path,
        "w",
        driver="GTiff",
        height=data.shape[0],
        width=data.shape[1],
        count=1,
        dtype=data.dtype,
        crs="EPSG:4326",
        transform=transform,
    ) as dst:
        dst.write(data, 1)


def test_render_bitmap_size():
    grid = make_grid(np.array([[11, 14, 20], [30, 40, 50]]), BBOX)
    out = render(grid, GLOBCOVER)
    assert len(out.bitmap) == 2 * 3 * 4
    assert out.rgba.shape == (2, 3, 4)
    assert out.width == 3 and out.height == 2
    assert out.bbox == grid.bbox


def test_render_pixels_follow_table_in_row_major_order():
    values = [210, 999, 230, 11]
    grid = make_grid(values, BBOX, width=2, height=2)
    out = render(grid, GLOBCOVER)
    data = out.bitmap
    for i, code in enumerate(values):
        assert tuple(data[4 * i:4 * i + 4]) == tuple(GLOBCOVER.color_for(code))


def test_globcover_water_and_unknown():
    grid = make_grid([210, 999], BBOX, width=2, height=1)
    out = render(grid, GLOBCOVER)
    assert tuple(out.rgba[0, 0]) == (0, 70, 200, 255)
    assert tuple(out.rgba[0, 1]) == (128, 128, 128, 100)


def test_glwd_transparent_and_lake():
    grid = make_grid([0, 1], BBOX, width=1, height=2)
    out = render(grid, GLWD)
    assert tuple(out.rgba[0, 0]) == (0, 0, 0, 0)
    assert tuple(out.rgba[1, 0]) == (0, 0, 139, 255)


def test_single_pixel_unknown_code_is_default():
    grid = make_grid([[42]], BBOX)
    out = render(grid, SWAMPS)
    assert out.bitmap == bytes(SWAMPS.default)


def test_render_is_idempotent():
    rng = np.random.default_rng(0)
    grid = make_grid(rng.integers(0, 20, size=(8, 5)), BBOX)
    assert render(grid, GLWD).bitmap == render(grid, GLWD).bitmap


def test_render_shape_mismatch():
    grid = RasterGrid(width=2, height=2, values=np.arange(3), bbox=BoundingBox(*BBOX))
    with pytest.raises(ShapeMismatch):
        render(grid, GLWD)


def test_render_float_values():
    grid = make_grid(np.array([[1.0, 1.5, np.nan]]), BBOX)
    out = render(grid, GLWD)
    assert tuple(out.rgba[0, 0]) == (0, 0, 139, 255)
    assert tuple(out.rgba[0, 1]) == tuple(GLWD.default)
    assert tuple(out.rgba[0, 2]) == tuple(GLWD.default)


def test_grid_rejects_non_positive_dimensions():
    with pytest.raises(ValueError):
        RasterGrid(width=0, height=1, values=np.array([]), bbox=BoundingBox(*BBOX))


def test_grid_rejects_fractional_dimensions():
    with pytest.raises(ValueError, match="whole number"):
        RasterGrid(width=2.5, height=2, values=np.arange(5), bbox=BoundingBox(*BBOX))


def test_grid_coerces_integral_dimensions():
    grid = RasterGrid(
        width=np.int64(2), height=2.0, values=np.arange(4), bbox=BoundingBox(*BBOX)
    )
    assert type(grid.width) is int and type(grid.height) is int
    assert render(grid, GLWD).rgba.shape == (2, 2, 4)


def test_grid_values_are_read_only():
    grid = make_grid([[1, 2]], BBOX)
    with pytest.raises(ValueError):
        grid.values[0] = 5


def test_folium_bounds_order():
    bbox = BoundingBox(*BBOX)
    assert bbox.folium_bounds == [[3.0, 24.0], [12.0, 39.0]]


def test_decode_raster_from_path_and_bytes(tmp_path: Path):
    data = np.array([[1, 2, 3], [4, 5, 6], [7, 8, 9]], dtype=np.uint8)
    tif = tmp_path / "glwd.tif"
    _create_raster(tif, data)

    for source in (tif, tif.read_bytes()):
        grid = decode_raster(source)
        assert (grid.width, grid.height) == (3, 3)
        assert grid.values.tolist() == list(range(1, 10))
        assert grid.bbox.as_tuple() == pytest.approx(BBOX)


def test_decode_raster_garbage_bytes():
    with pytest.raises(DecodeError):
        decode_raster(b"definitely not a tiff")


def test_decode_raster_empty_bytes():
    with pytest.raises(DecodeError):
        decode_raster(b"")


def test_load_overlay_empty_file(tmp_path: Path):
    tif = tmp_path / "empty.tif"
    tif.write_bytes(b"")
    with pytest.raises(DecodeError):
        load_overlay(tif, GLWD)


def test_load_overlay_empty_http_body():
    with patch("classified_raster.requests.get") as get:
        get.return_value.content = b""
        get.return_value.raise_for_status.return_value = None
        with pytest.raises(DecodeError):
            load_overlay("https://example.org/empty.tif", GLWD)


def test_fetch_raster_bytes_url():
    with patch("classified_raster.requests.get") as get:
        get.return_value.content = b"abc"
        get.return_value.raise_for_status.return_value = None
        assert fetch_raster_bytes("https://example.org/a.tif") == b"abc"
        args, kwargs = get.call_args
        assert args[0] == "https://example.org/a.tif"


def test_fetch_raster_bytes_http_error():
    with patch("classified_raster.requests.get") as get:
        get.return_value.raise_for_status.side_effect = requests.HTTPError()
        with pytest.raises(requests.HTTPError):
            fetch_raster_bytes("http://example.org/missing.tif")


def test_fetch_raster_bytes_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        fetch_raster_bytes(tmp_path / "missing.tif")


def test_load_overlay(tmp_path: Path):
    data = np.array([[0, 1], [2, 99]], dtype=np.uint8)
    tif = tmp_path / "swamps.tif"
    _create_raster(tif, data)
    out = load_overlay(tif, SWAMPS)
    assert tuple(out.rgba[0, 0]) == (0, 0, 0, 0)
    assert tuple(out.rgba[0, 1]) == (75, 0, 130, 255)
    assert tuple(out.rgba[1, 1]) == tuple(SWAMPS.default)
    assert out.to_image().size == (2, 2)
