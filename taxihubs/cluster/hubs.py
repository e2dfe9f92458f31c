# taxihubs/cluster/hubs.py

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import pandas as pd
from sklearn.cluster import KMeans
from sklearn.metrics import pairwise_distances_argmin_min

from taxihubs.cluster.scaling import CoordinateScaler
from taxihubs.trips.load_trips import coordinate_columns
from taxihubs.util.logging import get_logger

logger = get_logger(__name__)


CENTER_COLUMNS = ["cluster_id", "x", "y", "longitude", "latitude", "size", "withinss"]


@dataclass
class HubClusters:
    """
    centers_df columns:
      - cluster_id           0..k-1
      - x, y                 centroid in the scaled plane
      - longitude, latitude  centroid mapped back to degrees
      - size                 number of member trips
      - withinss             sum of squared distances of members (scaled plane)

    labels holds one cluster id per clustered row; it is empty for results
    built chunk by chunk.
    """
    centers_df: pd.DataFrame
    labels: np.ndarray
    k: int
    total_wss: float
    n_iter: int
    elapsed_seconds: float
    n_rows: int

    def centers_xy(self) -> np.ndarray:
        return self.centers_df[["x", "y"]].to_numpy(dtype=np.float64)


def hub_points(df: pd.DataFrame, scaler: CoordinateScaler, end: str = "pickup") -> np.ndarray:
    lon_col, lat_col = coordinate_columns(end)
    return scaler.transform(df[lon_col].to_numpy(), df[lat_col].to_numpy())


def assign_hubs(points: np.ndarray, centers_xy: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Nearest centre for each point: (labels, squared distances)."""
    labels, dist = pairwise_distances_argmin_min(points, centers_xy)
    return labels.astype(int), dist ** 2


def build_centers_df(
    centers_xy: np.ndarray,
    sizes: np.ndarray,
    withinss: np.ndarray,
    scaler: CoordinateScaler | None = None,
) -> pd.DataFrame:
    centers_xy = np.asarray(centers_xy, dtype=np.float64)
    lonlat = scaler.inverse_transform(centers_xy) if scaler is not None else centers_xy

    return pd.DataFrame(
        {
            "cluster_id": np.arange(len(centers_xy), dtype=int),
            "x": centers_xy[:, 0],
            "y": centers_xy[:, 1],
            "longitude": lonlat[:, 0],
            "latitude": lonlat[:, 1],
            "size": np.asarray(sizes).astype(int),
            "withinss": np.asarray(withinss, dtype=np.float64),
        },
        columns=CENTER_COLUMNS,
    )


def fit_hubs(
    points: np.ndarray,
    k: int,
    *,
    seed: int = 0,
    n_init: int = 10,
    max_iter: int = 300,
    init: np.ndarray | None = None,
    scaler: CoordinateScaler | None = None,
) -> HubClusters:
    """
    points: (n, 2) array in the scaled plane.

    With init=None runs k-means++ with n_init restarts. With init given
    (k, 2) runs a single Lloyd run from those centres.
    """
    points = np.asarray(points, dtype=np.float64)
    n = len(points)

    if k < 1:
        raise ValueError(f"k must be >= 1, got {k}")
    if k > n:
        raise ValueError(f"k={k} is larger than the number of points ({n})")

    if init is None:
        km = KMeans(n_clusters=k, init="k-means++", n_init=n_init, max_iter=max_iter, random_state=seed)
    else:
        init = np.asarray(init, dtype=np.float64)
        if init.shape != (k, 2):
            raise ValueError(f"init must have shape ({k}, 2), got {init.shape}")
        km = KMeans(n_clusters=k, init=init, n_init=1, max_iter=max_iter, random_state=seed)

    t0 = time.perf_counter()
    labels = km.fit_predict(points)
    elapsed = time.perf_counter() - t0

    centers = km.cluster_centers_
    sq = ((points - centers[labels]) ** 2).sum(axis=1)
    sizes = np.bincount(labels, minlength=k)
    withinss = np.bincount(labels, weights=sq, minlength=k)

    centers_df = build_centers_df(centers, sizes, withinss, scaler=scaler)

    hubs = HubClusters(
        centers_df=centers_df,
        labels=labels.astype(int),
        k=k,
        total_wss=float(withinss.sum()),
        n_iter=int(km.n_iter_),
        elapsed_seconds=elapsed,
        n_rows=n,
    )
    logger.info(
        f"k-means k={k} on {n:,} points: {hubs.n_iter} iterations, "
        f"WSS={hubs.total_wss:.4f}, {elapsed:.3f}s"
    )
    return hubs


def cluster_sample(
    sample_df: pd.DataFrame,
    k: int,
    *,
    end: str = "pickup",
    scaling: str = "standard",
    seed: int = 0,
    n_init: int = 10,
    max_iter: int = 300,
) -> tuple[HubClusters, CoordinateScaler]:
    """
    Fits the scaler on the sample and clusters it. Returns the scaler too so
    the full run works in the same plane.
    """
    lon_col, lat_col = coordinate_columns(end)
    scaler = CoordinateScaler(scaling).fit(sample_df[lon_col].to_numpy(), sample_df[lat_col].to_numpy())

    points = hub_points(sample_df, scaler, end=end)
    hubs = fit_hubs(points, k, seed=seed, n_init=n_init, max_iter=max_iter, scaler=scaler)
    return hubs, scaler


def cluster_full(
    full_df: pd.DataFrame,
    sample_hubs: HubClusters,
    scaler: CoordinateScaler,
    *,
    end: str = "pickup",
    max_iter: int = 300,
    seed: int = 0,
) -> HubClusters:
    """Clusters every row, starting from the sample's centroids."""
    points = hub_points(full_df, scaler, end=end)
    return fit_hubs(
        points,
        sample_hubs.k,
        seed=seed,
        max_iter=max_iter,
        init=sample_hubs.centers_xy(),
        scaler=scaler,
    )


def label_trips(df: pd.DataFrame, hubs: HubClusters, column: str = "cluster_id") -> pd.DataFrame:
    if len(hubs.labels) != len(df):
        raise ValueError(f"Have {len(hubs.labels):,} labels for {len(df):,} trips")

    out = df.copy()
    out[column] = hubs.labels
    return out


def summarize_hubs(hubs: HubClusters) -> pd.DataFrame:
    """
    Per-hub table sorted by size, with each hub's share of trips and its
    root-mean-square member distance (scaled plane).
    """
    df = hubs.centers_df.copy()
    total = df["size"].sum()
    df["share"] = df["size"] / total if total else 0.0

    safe_size = df["size"].where(df["size"] > 0, 1)
    df["rms_distance"] = np.sqrt(df["withinss"] / safe_size)

    cols = ["cluster_id", "longitude", "latitude", "size", "share", "withinss", "rms_distance"]
    return df[cols].sort_values("size", ascending=False).reset_index(drop=True)


def write_hub_centers_csv(hubs: HubClusters, out_csv: str | Path) -> Path:
    out_csv = Path(out_csv)
    out_csv.parent.mkdir(parents=True, exist_ok=True)

    hubs.centers_df.to_csv(out_csv, index=False)
    return out_csv


def write_labeled_trips_csv(df: pd.DataFrame, out_csv: str | Path) -> Path:
    out_csv = Path(out_csv)
    out_csv.parent.mkdir(parents=True, exist_ok=True)

    df.to_csv(out_csv, index=False)
    return out_csv


def read_hub_centers_csv(path: str | Path) -> pd.DataFrame:
    df = pd.read_csv(Path(path))
    missing = [c for c in CENTER_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Hub centers CSV missing required columns {missing}: {path}")
    return df.sort_values("cluster_id").reset_index(drop=True)
