# taxihubs/viz/hubs_map.py

from __future__ import annotations

from pathlib import Path

import folium
import pandas as pd

from taxihubs.cluster.hubs import HubClusters


CENTER_LAT = 40.7580
CENTER_LON = -73.9855

# cycles if k > len(colors)
HUB_COLORS = [
    "red",
    "blue",
    "green",
    "purple",
    "orange",
    "darkred",
    "cadetblue",
    "darkgreen",
    "black",
    "darkblue",
]

MIN_RADIUS = 4
MAX_RADIUS = 30


def _radius(size: int, max_size: int) -> float:
    if max_size <= 0:
        return MIN_RADIUS
    # area follows membership
    return MIN_RADIUS + (MAX_RADIUS - MIN_RADIUS) * (size / max_size) ** 0.5


def build_hubs_map(centers_df: pd.DataFrame, title: str = "Trip Hubs") -> folium.Map:
    if len(centers_df):
        center = [float(centers_df["latitude"].mean()), float(centers_df["longitude"].mean())]
    else:
        center = [CENTER_LAT, CENTER_LON]

    m = folium.Map(location=center, zoom_start=12, tiles="CartoDB positron")

    max_size = int(centers_df["size"].max()) if len(centers_df) else 0
    layer = folium.FeatureGroup(name="Hubs", show=True)

    for _, row in centers_df.iterrows():
        cid = int(row["cluster_id"])
        size = int(row["size"])
        color = HUB_COLORS[cid % len(HUB_COLORS)]

        popup = f"hub {cid}: {size:,} trips, WSS={float(row['withinss']):.3f}"

        folium.CircleMarker(
            location=[float(row["latitude"]), float(row["longitude"])],
            radius=_radius(size, max_size),
            color=color,
            fill=True,
            fill_opacity=0.6,
            weight=1,
            popup=popup,
        ).add_to(layer)

    layer.add_to(m)
    folium.LayerControl(collapsed=False).add_to(m)

    title_html = f"""
    <div style="
        position: fixed;
        top: 10px;
        left: 50px;
        z-index: 9999;
        background: rgba(255,255,255,0.92);
        padding: 8px 12px;
        border-radius: 8px;
        box-shadow: 0 2px 10px rgba(0,0,0,0.15);
        font-family: system-ui, -apple-system, Segoe UI, Roboto, Arial;
        font-size: 16px;
        font-weight: 700;">
        {title}
    </div>
    """
    m.get_root().html.add_child(folium.Element(title_html))
    return m


def build_hubs_map_html(hubs: HubClusters, title: str | None = None) -> str:
    """Standalone HTML document for the hub map."""
    if title is None:
        title = f"Trip Hubs (k={hubs.k})"
    return build_hubs_map(hubs.centers_df, title=title).get_root().render()


def write_hubs_map_html(hubs: HubClusters, out_html: str | Path, title: str | None = None) -> Path:
    out_html = Path(out_html)
    out_html.parent.mkdir(parents=True, exist_ok=True)

    out_html.write_text(build_hubs_map_html(hubs, title=title), encoding="utf-8")
    return out_html
