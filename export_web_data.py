#!/usr/bin/env python3
"""Pre-render the classified rasters as PNGs for static hosting.

Each dataset becomes ``<id>.png`` plus ``<id>_metadata.json``. The metadata
holds the PNG filename and the ``[west, south, east, north]`` bounds, so a
map can place the image without decoding GeoTIFFs in the browser.
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any, Dict

from rich.console import Console

from classified_raster import BoundingBox, DecodeError, RenderedOverlay, load_overlay
from map_config import dataset_configs, load_config, resolve_path

console = Console()

METADATA_SUFFIX = "_metadata.json"


def metadata_path(out_dir: Path, name: str) -> Path:
    return Path(out_dir) / f"{name}{METADATA_SUFFIX}"


def save_overlay(
    overlay: RenderedOverlay,
    out_dir: Path,
    name: str,
    *,
    table: str | None = None,
) -> Path:
    """Write ``overlay`` as ``<name>.png`` and its metadata JSON.

    Returns the metadata path.
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    png = out_dir / f"{name}.png"
    overlay.to_image().save(png)

    meta = {
        "png_file": png.name,
        "bounds": list(overlay.bbox.as_tuple()),
        "width": overlay.width,
        "height": overlay.height,
    }
    if table:
        meta["table"] = table
    meta_path = metadata_path(out_dir, name)
    meta_path.write_text(json.dumps(meta, indent=2))
    console.log(f"[cyan]Wrote {png} and {meta_path.name}")
    return meta_path


def read_overlay_metadata(path: Path) -> Dict[str, Any]:
    """Read metadata written by :func:`save_overlay`.

    ``bounds`` is returned as a :class:`BoundingBox` and ``png_path`` is the
    image path resolved next to the metadata file.
    """
    path = Path(path)
    meta = json.loads(path.read_text())
    if "png_file" not in meta or len(meta.get("bounds", [])) != 4:
        raise ValueError(f"{path}: expected 'png_file' and 4 'bounds' values")
    meta["bounds"] = BoundingBox(*(float(b) for b in meta["bounds"]))
    meta["png_path"] = path.parent / meta["png_file"]
    return meta


def export_datasets(cfg: Dict[str, Any], out_dir: Path | None = None) -> Dict[str, Path]:
    """Render every configured dataset; failures are logged and skipped."""
    if out_dir is None:
        out_dir = Path(resolve_path(cfg, cfg.get("web_data_dir", "web_data")))
    written: Dict[str, Path] = {}
    for ds in dataset_configs(cfg):
        console.rule(f"[bold green]Export {ds.label}")
        try:
            overlay = load_overlay(ds.path, ds.table)
        except (OSError, ValueError, DecodeError) as exc:
            console.log(f"[red]Error exporting {ds.label}: {exc}")
            continue
        written[ds.id] = save_overlay(overlay, out_dir, ds.id, table=ds.table.name)
    return written


def main() -> None:
    ap = argparse.ArgumentParser(description="Render classified rasters to web PNGs")
    ap.add_argument("config", help="Path to YAML config file")
    ap.add_argument("-o", "--out-dir", help="Output directory (default: web_data_dir)")
    args = ap.parse_args()

    cfg = load_config(Path(args.config))
    export_datasets(cfg, Path(args.out_dir) if args.out_dir else None)


if __name__ == "__main__":
    main()
