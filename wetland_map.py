#!/usr/bin/env python3
"""Interactive wetland map for South Sudan.

Overlays the administrative boundary and the Globcover, GLWD and SWAMPs
classified rasters on a Google terrain basemap. Each layer gets a toggle
button whose initial state comes from a :class:`LayerRegistry`.
"""

from __future__ import annotations

import argparse
from html import escape
import json
from pathlib import Path
from typing import Any, Dict, List, Tuple
import webbrowser

import folium
import geopandas as gpd
import numpy as np
from rich.console import Console

from classified_raster import (
    BoundingBox,
    DecodeError,
    RenderedOverlay,
    ShapeMismatch,
    load_overlay,
)
from color_tables import ColorClass
from export_web_data import metadata_path, read_overlay_metadata
from layer_registry import LayerRegistry, ToggleLayer, button_text, dispatch
from map_config import (
    DatasetConfig,
    dataset_configs,
    fallback_bounds,
    load_config,
    map_options,
    resolve_path,
)

console = Console()

GOOGLE_TILES = "https://mt{s}.google.com/vt/lyrs=%s&x={x}&y={y}&z={z}"
BASEMAPS = {
    "Terrain": ("p", "© Google Maps Terrain"),
    "Satellite": ("s", "© Google Maps"),
    "Streets": ("m", "© Google Maps"),
}

BOUNDARY_STYLE = {
    "color": "#FF6B6B",
    "weight": 2,
    "opacity": 1,
    "fillColor": "#FF6B6B",
    "fillOpacity": 0.1,
    "dashArray": "5, 5",
}
BOUNDARY_HOVER = {"weight": 3, "color": "#FF4757", "fillOpacity": 0.2}

# Diagonal gradient stops for the Globcover placeholder: forest, cropland, grassland
PLACEHOLDER_STOPS = [
    (0.0, (34, 139, 34)),
    (0.5, (255, 215, 0)),
    (1.0, (210, 180, 140)),
]
PLACEHOLDER_ALPHA = 0.3
PLACEHOLDER_OPACITY = 0.5


class StatusBoard:
    """Collects status lines and error / info banners for the page."""

    def __init__(self) -> None:
        self.lines: List[str] = []
        self.errors: List[str] = []
        self.infos: List[str] = []

    @property
    def current(self) -> str:
        return self.lines[-1] if self.lines else ""

    def update(self, text: str) -> None:
        self.lines.append(text)

    def error(self, message: str) -> None:
        self.errors.append(message)

    def info(self, message: str) -> None:
        self.infos.append(message)

    def to_html(self) -> str:
        parts = [
            '<div id="feature-count" style="position: fixed; bottom: 20px; left: 10px;'
            " z-index: 1000; background: white; padding: 6px 10px; border-radius: 4px;"
            ' font-family: \'Segoe UI\', sans-serif; font-size: 13px;">'
            f"{escape(self.current)}</div>"
        ]
        for msg in self.errors:
            parts.append(_banner_html(msg, "#ff4757", 300, 5000))
        for msg in self.infos:
            parts.append(_banner_html(msg, "#3742fa", 350, 7000))
        return "\n".join(parts)


def _banner_html(message: str, background: str, max_width: int, timeout_ms: int) -> str:
    return f"""
    <div class="map-message" style="position: fixed; top: 50%; left: 50%;
        transform: translate(-50%, -50%); background: {background}; color: white;
        padding: 20px; border-radius: 8px; box-shadow: 0 4px 12px rgba(0,0,0,0.3);
        z-index: 2000; max-width: {max_width}px; text-align: center;
        font-family: 'Segoe UI', sans-serif;">{escape(message)}</div>
    <script>
    setTimeout(function() {{
        document.querySelectorAll('.map-message').forEach(function(el) {{
            if (el.textContent === {json.dumps(message)} && el.parentNode) {{ el.remove(); }}
        }});
    }}, {timeout_ms});
    </script>
    """


# ---------------------------------------------------------------------------
# Map building blocks
# ---------------------------------------------------------------------------


def create_base_map(opts: Dict[str, Any]) -> folium.Map:
    m = folium.Map(
        location=list(opts["center"]),
        zoom_start=opts["zoom"],
        min_zoom=opts["min_zoom"],
        max_zoom=opts["max_zoom"],
        zoom_control=True,
        tiles=None,
    )
    names = list(BASEMAPS) if opts.get("basemap_switcher", True) else ["Terrain"]
    for i, name in enumerate(names):
        lyrs, attr = BASEMAPS[name]
        folium.TileLayer(
            GOOGLE_TILES % lyrs,
            name=name,
            attr=attr,
            subdomains="0123",
            max_zoom=20,
            show=(i == 0),
        ).add_to(m)
    return m


def feature_popup_html(properties: Dict[str, Any]) -> str:
    html = '<div style="max-width: 200px;"><h4>Feature Information</h4>'
    for key, value in properties.items():
        html += f"<p><strong>{escape(str(key))}:</strong> {escape(str(value))}</p>"
    return html + "</div>"


def add_boundary_layer(
    m: folium.Map,
    path: Path,
    status: StatusBoard,
    *,
    label: str = "Shapefile",
) -> folium.FeatureGroup | None:
    """Add the boundary polygons with popups and hover styling.

    The map is fitted to the boundary's extent. Returns ``None`` when the
    file cannot be read.
    """
    status.update("Loading shapefile...")
    try:
        if not Path(path).exists():
            raise FileNotFoundError(path)
        gdf = gpd.read_file(path)
    except Exception as exc:
        console.log(f"[red]Error loading shapefile: {exc}")
        status.update("Error loading shapefile")
        status.error(
            "Failed to load shapefile. Please check if the file exists and is accessible."
        )
        return None

    group = folium.FeatureGroup(name=label)
    prop_cols = [c for c in gdf.columns if c != gdf.geometry.name]
    for _, row in gdf.iterrows():
        if row.geometry is None:
            continue
        layer = folium.GeoJson(
            data=row.geometry.__geo_interface__,
            style_function=lambda x: dict(BOUNDARY_STYLE),
            highlight_function=lambda x: dict(BOUNDARY_HOVER),
        )
        if prop_cols:
            props = {c: row[c] for c in prop_cols}
            folium.Popup(feature_popup_html(props), max_width=250).add_to(layer)
        layer.add_to(group)

    if len(gdf) and np.all(np.isfinite(gdf.total_bounds)):
        xmin, ymin, xmax, ymax = gdf.total_bounds
        m.fit_bounds([[ymin, xmin], [ymax, xmax]], padding=(20, 20))

    n = len(gdf)
    status.update(f"Shapefile: {n} feature{'' if n == 1 else 's'} loaded")
    console.log(f"[green]Loaded {n} boundary feature(s) from {path}")
    return group


def gradient_placeholder(bbox: BoundingBox, size: int = 100) -> RenderedOverlay:
    """Semi-transparent diagonal gradient standing in for missing land cover."""
    yy, xx = np.mgrid[0:size, 0:size]
    t = (xx + yy) / max(2 * (size - 1), 1)
    stops = [s for s, _ in PLACEHOLDER_STOPS]
    channels = [
        np.interp(t, stops, [c[i] for _, c in PLACEHOLDER_STOPS]) for i in range(3)
    ]
    alpha = np.full((size, size), round(PLACEHOLDER_ALPHA * 255))
    rgba = np.stack(channels + [alpha], axis=-1).round().astype(np.uint8)
    return RenderedOverlay(rgba=rgba, bbox=bbox)


def overlay_layer(
    image, bounds: BoundingBox, name: str, opacity: float
) -> folium.raster_layers.ImageOverlay:
    return folium.raster_layers.ImageOverlay(
        image=image,
        bounds=bounds.folium_bounds,
        name=name,
        opacity=opacity,
        interactive=False,
    )


def load_raster_layer(
    ds: DatasetConfig,
    cfg: Dict[str, Any],
    status: StatusBoard,
) -> folium.raster_layers.ImageOverlay | None:
    """Build the image overlay for ``ds``, or ``None`` if it failed to load."""
    status.update(f"Loading {ds.label} data...")
    try:
        if cfg.get("use_web_data"):
            web_dir = Path(resolve_path(cfg, cfg.get("web_data_dir", "web_data")))
            meta = read_overlay_metadata(metadata_path(web_dir, ds.id))
            layer = overlay_layer(str(meta["png_path"]), meta["bounds"], ds.label, ds.opacity)
            status.update(f"{ds.label}: Web-optimized data loaded")
        else:
            overlay = load_overlay(ds.path, ds.table)
            layer = overlay_layer(overlay.rgba, overlay.bbox, ds.label, ds.opacity)
            status.update(f"{ds.label}: data loaded")
        console.log(f"[green]{ds.label} layer added to map")
        return layer
    except (OSError, ValueError, DecodeError) as exc:
        # ShapeMismatch is a ValueError; HTTP errors are OSErrors
        kind = "shape mismatch" if isinstance(exc, ShapeMismatch) else type(exc).__name__
        console.log(f"[red]Error loading {ds.label} ({kind}): {exc}")

    if ds.fallback:
        return _fallback_layer(ds, cfg, status)
    status.update(f"{ds.label}: Failed to load")
    return None


def _fallback_layer(
    ds: DatasetConfig, cfg: Dict[str, Any], status: StatusBoard
) -> folium.raster_layers.ImageOverlay:
    console.log(f"[yellow]Using fallback placeholder for {ds.label}")
    placeholder = gradient_placeholder(BoundingBox(*fallback_bounds(cfg)))
    status.update(f"{ds.label}: Placeholder loaded (TIFF conversion needed)")
    status.info(
        f"{ds.label} TIFF files need to be converted for web display. "
        "A placeholder is shown."
    )
    return overlay_layer(
        placeholder.rgba, placeholder.bbox, ds.label, PLACEHOLDER_OPACITY
    )


def legend_html(entries: List[Tuple[str, ColorClass]]) -> str:
    sections = []
    for title, table in entries:
        rows = "".join(
            f'<div><span style="display:inline-block;width:12px;height:12px;'
            f'margin-right:6px;background:rgb({c.r},{c.g},{c.b});"></span>'
            f"{escape(label)}</div>"
            for _, label, c in table.legend()
        )
        sections.append(f"<div class=\"legend-section\"><b>{escape(title)}</b>{rows}</div>")
    return (
        '<div id="map-legend" style="position: fixed; bottom: 20px; right: 10px;'
        " z-index: 1000; background: white; padding: 8px; border-radius: 4px;"
        ' max-height: 50%; overflow-y: auto; font-size: 12px;">'
        + "".join(sections)
        + "</div>"
    )


def toggle_control_js(m: folium.Map, registry: LayerRegistry, layers: Dict[str, Any]) -> str:
    """JavaScript adding one Show/Hide button per registered layer."""
    entries = []
    for state in registry:
        layer = layers.get(state.layer_id)
        entries.append(
            "{id: %s, text: %s, label: %s, layer: %s, visible: %s}"
            % (
                json.dumps(state.layer_id),
                json.dumps(button_text(state.label, state.visible)),
                json.dumps(state.label),
                layer.get_name() if layer is not None else "null",
                "true" if state.visible else "false",
            )
        )
    map_id = m.get_name()
    return f"""
    setTimeout(function() {{
        var entries = [{", ".join(entries)}];
        var ToggleControl = L.Control.extend({{
            options: {{position: 'topleft'}},
            onAdd: function() {{
                var div = L.DomUtil.create('div', 'layer-toggles');
                entries.forEach(function(e) {{
                    var btn = L.DomUtil.create('button', 'layer-toggle', div);
                    btn.id = 'toggle-' + e.id;
                    btn.innerHTML = e.text;
                    if (!e.visible) {{ btn.classList.add('off'); }}
                    L.DomEvent.on(btn, 'click', function() {{
                        if (!e.layer) {{ return; }}
                        if ({map_id}.hasLayer(e.layer)) {{
                            {map_id}.removeLayer(e.layer);
                            btn.innerHTML = 'Show ' + e.label;
                            btn.classList.add('off');
                        }} else {{
                            e.layer.addTo({map_id});
                            btn.innerHTML = 'Hide ' + e.label;
                            btn.classList.remove('off');
                        }}
                    }});
                }});
                L.DomEvent.disableClickPropagation(div);
                return div;
            }}
        }});
        new ToggleControl().addTo({map_id});
    }}, 0);
    """


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def build_map(
    cfg: Dict[str, Any],
    output: Path,
    *,
    hide: List[str] | None = None,
    open_browser: bool = False,
) -> LayerRegistry:
    """Create the wetland map described by ``cfg`` and save it to ``output``.

    ``hide`` lists layer ids toggled off before the page is written.
    Returns the registry with each layer's final state.
    """
    datasets = dataset_configs(cfg)
    opts = map_options(cfg)
    status = StatusBoard()
    registry = LayerRegistry()
    layers: Dict[str, Any] = {}

    console.rule("[bold green]Create base map")
    m = create_base_map(opts)

    boundary_cfg = cfg.get("boundary") or {}
    if boundary_cfg.get("path"):
        console.rule("[bold green]Load boundary")
        label = boundary_cfg.get("label", "Shapefile")
        group = add_boundary_layer(
            m, Path(resolve_path(cfg, boundary_cfg["path"])), status, label=label
        )
        registry.register("shapefile", label, group)
        if group is not None:
            layers["shapefile"] = group

    legends: List[Tuple[str, ColorClass]] = []
    for ds in datasets:
        console.rule(f"[bold green]Load {ds.label}")
        layer = load_raster_layer(ds, cfg, status)
        registry.register(ds.id, ds.label, layer, visible=ds.visible)
        if layer is not None:
            layers[ds.id] = layer
            if ds.legend:
                legends.append((ds.label, ds.table))

    for layer_id in hide or []:
        result = dispatch(registry, ToggleLayer(layer_id))
        console.log(f"{result.button_text!r} for {layer_id}")

    for state in registry:
        layer = layers.get(state.layer_id)
        if layer is not None:
            layer.show = state.visible
            layer.add_to(m)

    root = m.get_root()
    root.script.add_child(folium.Element(toggle_control_js(m, registry, layers)))
    if legends:
        root.html.add_child(folium.Element(legend_html(legends)))
    root.html.add_child(folium.Element(status.to_html()))

    folium.LayerControl().add_to(m)

    output = Path(output)
    m.save(output)
    console.log(f"[cyan]Map saved to {output.resolve()}")
    if open_browser:
        try:
            webbrowser.open(output.resolve().as_uri())
        except webbrowser.Error:
            pass
    return registry


def main() -> None:
    ap = argparse.ArgumentParser(description="Build the South Sudan wetland map")
    ap.add_argument("config", help="Path to YAML config file")
    ap.add_argument("-o", "--output", default="wetland_map.html", help="HTML output file")
    ap.add_argument(
        "--hide",
        action="append",
        default=[],
        metavar="ID",
        help="Start with layer ID hidden (repeatable)",
    )
    ap.add_argument("--no-browser", action="store_true", help="Do not open the map")
    args = ap.parse_args()

    cfg = load_config(Path(args.config))
    build_map(cfg, Path(args.output), hide=args.hide, open_browser=not args.no_browser)


if __name__ == "__main__":
    main()
