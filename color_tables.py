"""Classification code to RGBA lookup tables for the wetland datasets."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, NamedTuple, Tuple

import numpy as np


class RGBA(NamedTuple):
    r: int
    g: int
    b: int
    a: int


TRANSPARENT = RGBA(0, 0, 0, 0)


@dataclass(frozen=True)
class ColorClass:
    """Static mapping of integer category codes to colours.

    ``color_for`` is total: codes missing from ``colors`` (and values that
    are not integral, such as ``nan``) resolve to ``default``.
    """

    name: str
    colors: Mapping[int, RGBA]
    default: RGBA
    labels: Mapping[int, str] = field(default_factory=dict)
    # Legend swatches may differ from the rendered colours
    legend_colors: Mapping[int, RGBA] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "colors", MappingProxyType(dict(self.colors)))
        object.__setattr__(self, "labels", MappingProxyType(dict(self.labels)))
        object.__setattr__(
            self, "legend_colors", MappingProxyType(dict(self.legend_colors))
        )

    def get(self, code) -> RGBA | None:
        key = _as_code(code)
        if key is None:
            return None
        return self.colors.get(key)

    def color_for(self, code) -> RGBA:
        color = self.get(code)
        return self.default if color is None else color

    def legend(self) -> list[Tuple[int, str, RGBA]]:
        """Return ``(code, label, swatch)`` rows sorted by code."""
        rows = []
        for code in sorted(self.labels):
            swatch = self.legend_colors.get(code) or self.color_for(code)
            rows.append((code, self.labels[code], swatch))
        return rows


def _as_code(value) -> int | None:
    if isinstance(value, (bool, np.bool_)):
        return None
    if isinstance(value, (int, np.integer)):
        return int(value)
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    if not np.isfinite(f) or not f.is_integer():
        return None
    return int(f)


# ---------------------------------------------------------------------------
# Globcover 2009 land cover (simplified)
# ---------------------------------------------------------------------------

GLOBCOVER = ColorClass(
    name="globcover",
    colors={
        11: RGBA(170, 240, 240, 255),
        14: RGBA(255, 255, 100, 255),
        20: RGBA(220, 240, 100, 255),
        30: RGBA(205, 205, 102, 255),
        40: RGBA(0, 100, 0, 255),
        50: RGBA(0, 160, 0, 255),
        60: RGBA(170, 200, 0, 255),
        70: RGBA(0, 60, 0, 255),
        90: RGBA(40, 80, 0, 255),
        100: RGBA(120, 130, 0, 255),
        110: RGBA(140, 160, 0, 255),
        120: RGBA(190, 150, 0, 255),
        130: RGBA(150, 100, 0, 255),
        140: RGBA(255, 180, 50, 255),
        150: RGBA(255, 235, 175, 255),
        160: RGBA(0, 120, 90, 255),
        170: RGBA(0, 150, 120, 255),
        180: RGBA(0, 220, 130, 255),
        190: RGBA(195, 20, 0, 255),
        200: RGBA(255, 245, 215, 255),
        210: RGBA(0, 70, 200, 255),
        220: RGBA(255, 255, 255, 255),
        230: RGBA(128, 128, 128, 0),  # no data
    },
    # semi-transparent gray for codes outside the classification
    default=RGBA(128, 128, 128, 100),
    labels={
        11: "Post-flooding or irrigated croplands",
        14: "Rainfed croplands",
        20: "Mosaic cropland/vegetation",
        30: "Mosaic vegetation/cropland",
        40: "Closed to open broadleaved forest",
        50: "Closed broadleaved forest",
        60: "Open broadleaved forest",
        70: "Closed needleleaved forest",
        90: "Open needleleaved forest",
        100: "Closed to open mixed forest",
        110: "Mosaic forest/shrubland",
        120: "Mosaic grassland/forest",
        130: "Closed to open shrubland",
        140: "Closed to open grassland",
        150: "Sparse vegetation",
        160: "Closed to open forest flooded",
        170: "Closed forest or shrubland flooded",
        180: "Closed to open grassland flooded",
        190: "Artificial surfaces",
        200: "Bare areas",
        210: "Water bodies",
        220: "Permanent snow and ice",
    },
)

# ---------------------------------------------------------------------------
# GLWD level 3 (Global Lakes and Wetlands Database)
# ---------------------------------------------------------------------------

GLWD = ColorClass(
    name="glwd",
    colors={
        0: TRANSPARENT,
        1: RGBA(0, 0, 139, 255),
        2: RGBA(0, 50, 200, 255),
        3: RGBA(0, 100, 255, 255),
        4: RGBA(0, 150, 150, 255),
        5: RGBA(0, 180, 50, 255),
        6: RGBA(50, 200, 0, 255),
        7: RGBA(150, 200, 0, 255),
        8: RGBA(200, 150, 0, 255),
        9: RGBA(255, 100, 0, 255),
        10: RGBA(200, 50, 0, 255),
        11: RGBA(180, 0, 0, 255),
        12: RGBA(139, 0, 50, 255),
    },
    default=RGBA(128, 128, 128, 0),
    labels={
        1: "Lake",
        2: "Reservoir",
        3: "River",
        4: "Freshwater Marsh",
        5: "Swamp Forest",
        6: "Flooded Grassland",
        7: "Saline Wetland",
        8: "Mangrove",
        9: "Salt Marsh",
        10: "Intermittent Wetland",
        11: "50-100% Wetland",
        12: "25-50% Wetland",
    },
    legend_colors={
        1: RGBA(0, 0, 255, 255),
        2: RGBA(0, 100, 255, 255),
        3: RGBA(0, 200, 255, 255),
        4: RGBA(0, 255, 200, 255),
        5: RGBA(0, 255, 100, 255),
        6: RGBA(0, 255, 0, 255),
        7: RGBA(100, 255, 0, 255),
        8: RGBA(200, 255, 0, 255),
        9: RGBA(255, 200, 0, 255),
        10: RGBA(255, 100, 0, 255),
        11: RGBA(255, 0, 0, 255),
        12: RGBA(200, 0, 100, 255),
    },
)

# ---------------------------------------------------------------------------
# SWAMPs tropical / subtropical wetlands (CIFOR 2016)
# ---------------------------------------------------------------------------

SWAMPS = ColorClass(
    name="swamps",
    colors={
        0: TRANSPARENT,
        1: RGBA(75, 0, 130, 255),
        2: RGBA(0, 0, 200, 255),
        3: RGBA(0, 50, 255, 255),
        4: RGBA(0, 100, 200, 255),
        5: RGBA(0, 150, 150, 255),
        6: RGBA(0, 180, 100, 255),
        7: RGBA(0, 150, 0, 255),
        8: RGBA(100, 180, 0, 255),
        9: RGBA(180, 180, 0, 255),
        10: RGBA(200, 100, 0, 255),
        11: RGBA(180, 50, 0, 255),
        12: RGBA(150, 0, 0, 255),
        13: RGBA(180, 0, 100, 255),
        14: RGBA(150, 0, 150, 255),
        15: RGBA(100, 0, 150, 255),
    },
    default=RGBA(128, 128, 128, 0),
    labels={
        1: "Swamp Forest",
        2: "Fresh Water Swamp",
        3: "Mangrove",
        4: "Peat Swamp",
        5: "Palm Swamp",
        6: "Seasonal Wetland",
        7: "Brackish Wetland",
        8: "Riparian Wetland",
        9: "Floodplain Wetland",
        10: "Other Wetlands",
    },
    legend_colors={
        1: RGBA(128, 0, 128, 255),
        2: RGBA(0, 0, 255, 255),
        3: RGBA(0, 100, 255, 255),
        4: RGBA(0, 200, 255, 255),
        5: RGBA(0, 255, 200, 255),
        6: RGBA(0, 255, 100, 255),
        7: RGBA(0, 255, 0, 255),
        8: RGBA(150, 255, 0, 255),
        9: RGBA(255, 255, 0, 255),
        10: RGBA(255, 150, 0, 255),
    },
)


COLOR_TABLES: Dict[str, ColorClass] = {
    t.name: t for t in (GLOBCOVER, GLWD, SWAMPS)
}


def get_color_table(name: str) -> ColorClass:
    """Look up a table by name (case-insensitive)."""
    try:
        return COLOR_TABLES[name.lower()]
    except KeyError:
        known = ", ".join(sorted(COLOR_TABLES))
        raise KeyError(f"unknown color table {name!r} (known: {known})") from None
