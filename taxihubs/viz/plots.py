# taxihubs/viz/plots.py

from __future__ import annotations

from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from taxihubs.cluster.compare import RunComparison
from taxihubs.cluster.hubs import HubClusters
from taxihubs.trips.load_trips import coordinate_columns


# cap on background points so plots stay quick on big samples
MAX_SCATTER_POINTS = 50_000


def _save(fig, out_png: str | Path) -> Path:
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(out_png, dpi=120)
    plt.close(fig)
    return out_png


def _thin(df: pd.DataFrame, seed: int = 0) -> pd.DataFrame:
    if len(df) <= MAX_SCATTER_POINTS:
        return df
    return df.sample(n=MAX_SCATTER_POINTS, random_state=seed)


def plot_trip_points(
    df: pd.DataFrame,
    out_png: str | Path,
    *,
    end: str = "pickup",
    title: str | None = None,
) -> Path:
    lon_col, lat_col = coordinate_columns(end)
    pts = _thin(df)

    fig, ax = plt.subplots(figsize=(8, 8))
    ax.scatter(pts[lon_col], pts[lat_col], s=1, alpha=0.2, color="tab:blue", linewidths=0)
    ax.set_title(title or f"{end.capitalize()} locations ({len(df):,} trips)")
    ax.set_xlabel("Longitude")
    ax.set_ylabel("Latitude")
    ax.grid(True, alpha=0.3)
    return _save(fig, out_png)


def plot_hubs(
    hubs: HubClusters,
    out_png: str | Path,
    *,
    points_df: pd.DataFrame | None = None,
    end: str = "pickup",
    title: str | None = None,
) -> Path:
    """Centroids drawn with area proportional to membership, over the trips."""
    centers = hubs.centers_df

    fig, ax = plt.subplots(figsize=(8, 8))

    if points_df is not None and len(points_df):
        lon_col, lat_col = coordinate_columns(end)
        pts = _thin(points_df)
        ax.scatter(pts[lon_col], pts[lat_col], s=1, alpha=0.08, color="gray", linewidths=0)

    sizes = centers["size"].to_numpy(dtype=np.float64)
    area = 20 + 980 * sizes / sizes.max() if sizes.max() > 0 else np.full(len(sizes), 20.0)

    ax.scatter(
        centers["longitude"],
        centers["latitude"],
        s=area,
        c=centers["cluster_id"],
        cmap="tab20",
        alpha=0.7,
        edgecolors="black",
        linewidths=0.5,
    )
    ax.set_title(title or f"Hubs (k={hubs.k}, {hubs.n_rows:,} trips)")
    ax.set_xlabel("Longitude")
    ax.set_ylabel("Latitude")
    ax.grid(True, alpha=0.3)
    return _save(fig, out_png)


def plot_elbow(elbow_df: pd.DataFrame, out_png: str | Path, *, chosen_k: int | None = None) -> Path:
    fig, ax = plt.subplots(figsize=(8, 5))
    ax.plot(elbow_df["k"], elbow_df["wss"], marker="o")
    if chosen_k is not None:
        ax.axvline(chosen_k, color="tab:red", linestyle="--", alpha=0.6, label=f"k={chosen_k}")
        ax.legend()
    ax.set_title("Within-cluster sum of squares by k")
    ax.set_xlabel("k")
    ax.set_ylabel("WSS")
    ax.grid(True, alpha=0.3)
    return _save(fig, out_png)


def plot_run_times(cmp: RunComparison, out_png: str | Path) -> Path:
    fig, ax = plt.subplots(figsize=(6, 4))
    labels = [f"sample\n{cmp.sample_rows:,} rows", f"full\n{cmp.full_rows:,} rows"]
    bars = ax.bar(labels, [cmp.sample_seconds, cmp.full_seconds], color=["tab:blue", "tab:orange"])
    ax.bar_label(bars, fmt="%.2fs")
    ax.set_ylabel("seconds")
    ax.set_title("k-means run time")
    return _save(fig, out_png)
