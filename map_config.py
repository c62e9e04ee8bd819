"""YAML configuration for the wetland map and the web data export."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

import yaml

from color_tables import ColorClass, get_color_table

MAP_DEFAULTS: Dict[str, Any] = {
    "center": [7.0, 30.0],  # South Sudan
    "zoom": 6,
    "min_zoom": 2,
    "max_zoom": 18,
    "basemap_switcher": True,
}

# Approximate South Sudan extent (west, south, east, north)
FALLBACK_BOUNDS = (24.0, 3.0, 39.0, 12.0)


@dataclass(frozen=True)
class DatasetConfig:
    id: str
    label: str
    path: str
    table: ColorClass
    opacity: float = 0.7
    visible: bool = True
    legend: bool = False
    # Show a placeholder instead of nothing when loading fails
    fallback: bool = False


def load_config(path: Path) -> Dict[str, Any]:
    """Load YAML configuration.

    Relative data paths are later resolved against the config's directory.
    """
    with open(path, "r") as f:
        cfg = yaml.safe_load(f) or {}
    if not isinstance(cfg, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    cfg.setdefault("base_dir", str(Path(path).resolve().parent))
    return cfg


def resolve_path(cfg: Dict[str, Any], value: str) -> str:
    if value.startswith(("http://", "https://")):
        return value
    p = Path(value)
    if not p.is_absolute() and cfg.get("base_dir"):
        p = Path(cfg["base_dir"]) / p
    return str(p)


def map_options(cfg: Dict[str, Any]) -> Dict[str, Any]:
    opts = dict(MAP_DEFAULTS)
    opts.update(cfg.get("map") or {})
    return opts


def dataset_configs(cfg: Dict[str, Any]) -> List[DatasetConfig]:
    """Parse the ``datasets`` list, failing before anything is rendered."""
    entries = cfg.get("datasets")
    if not entries:
        raise ValueError("datasets must be provided")

    out: List[DatasetConfig] = []
    seen = set()
    for entry in entries:
        for key in ("id", "path", "table"):
            if key not in entry:
                raise ValueError(f"dataset entry is missing {key!r}: {entry}")
        ds_id = str(entry["id"])
        if ds_id in seen:
            raise ValueError(f"duplicate dataset id {ds_id!r}")
        seen.add(ds_id)
        table = get_color_table(str(entry["table"]))
        out.append(
            DatasetConfig(
                id=ds_id,
                label=str(entry.get("label", ds_id)),
                path=resolve_path(cfg, str(entry["path"])),
                table=table,
                opacity=float(entry.get("opacity", 0.7)),
                visible=bool(entry.get("visible", True)),
                # GLWD and SWAMPs ship legend swatches; Globcover's list is long
                legend=bool(entry.get("legend", bool(table.legend_colors))),
                fallback=bool(entry.get("fallback", False)),
            )
        )
    return out


def fallback_bounds(cfg: Dict[str, Any]) -> tuple[float, float, float, float]:
    b = cfg.get("fallback_bounds") or FALLBACK_BOUNDS
    if len(b) != 4:
        raise ValueError("fallback_bounds must have 4 coordinates")
    return tuple(float(x) for x in b)
