# taxihubs/cluster/streaming.py
"""
Full-data clustering for files that do not fit in memory.

The in-memory full run (hubs.cluster_full) needs every point at once. Here
the sample centroids are refined chunk by chunk with
MiniBatchKMeans.partial_fit, then one more pass assigns every trip to its
nearest hub, accumulating sizes and WSS and optionally appending the
labelled chunk to a CSV.

make_chunks must return a fresh iterable of filtered, canonical-schema
chunks each time it is called, since the data is read passes + 1 times.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Callable, Iterable

import numpy as np
import pandas as pd
from sklearn.cluster import MiniBatchKMeans

from taxihubs.cluster.hubs import HubClusters, assign_hubs, build_centers_df, hub_points
from taxihubs.cluster.scaling import CoordinateScaler
from taxihubs.util.logging import get_logger

logger = get_logger(__name__)


ChunkFactory = Callable[[], Iterable[pd.DataFrame]]


def _refine_centers(
    make_chunks: ChunkFactory,
    init_xy: np.ndarray,
    scaler: CoordinateScaler,
    *,
    end: str,
    passes: int,
    batch_seed: int,
) -> np.ndarray:
    k = len(init_xy)
    km = MiniBatchKMeans(
        n_clusters=k,
        init=init_xy,
        n_init=1,
        batch_size=max(1024, k),
        # chunks can be spatially skewed; a hub missing from one chunk must keep its seed
        reassignment_ratio=0.0,
        random_state=batch_seed,
    )

    fitted = False
    for p in range(passes):
        # partial_fit needs at least k rows per call; small chunks wait here
        pending: list[np.ndarray] = []
        n_pending = 0

        for chunk in make_chunks():
            if len(chunk) == 0:
                continue
            pending.append(hub_points(chunk, scaler, end=end))
            n_pending += len(pending[-1])
            if n_pending >= k:
                km.partial_fit(np.vstack(pending))
                fitted = True
                pending, n_pending = [], 0

        if pending:
            logger.debug(f"pass {p + 1}: {n_pending} trailing points fewer than k={k}, not used for update")

        if not fitted:
            raise ValueError(f"Fewer filtered trips than k={k}; nothing to cluster")

        logger.debug(f"pass {p + 1}/{passes} done")

    return km.cluster_centers_


def _append_csv(df: pd.DataFrame, out_csv: Path, first: bool) -> None:
    df.to_csv(out_csv, mode="w" if first else "a", header=first, index=False)


def stream_full_hubs(
    make_chunks: ChunkFactory,
    sample_hubs: HubClusters,
    scaler: CoordinateScaler,
    *,
    end: str = "pickup",
    passes: int = 1,
    batch_seed: int = 0,
    labeled_csv: str | Path | None = None,
    label_column: str = "cluster_id",
) -> HubClusters:
    """
    Returns HubClusters for the whole dataset with empty labels. When
    labeled_csv is given, every trip is written there with its hub id.
    """
    if passes < 1:
        raise ValueError(f"passes must be >= 1, got {passes}")

    k = sample_hubs.k
    t0 = time.perf_counter()

    centers = _refine_centers(
        make_chunks,
        sample_hubs.centers_xy(),
        scaler,
        end=end,
        passes=passes,
        batch_seed=batch_seed,
    )

    if labeled_csv is not None:
        labeled_csv = Path(labeled_csv)
        labeled_csv.parent.mkdir(parents=True, exist_ok=True)

    sizes = np.zeros(k, dtype=np.int64)
    withinss = np.zeros(k, dtype=np.float64)
    n_rows = 0
    first = True

    for chunk in make_chunks():
        if len(chunk) == 0:
            continue
        labels, sq = assign_hubs(hub_points(chunk, scaler, end=end), centers)
        sizes += np.bincount(labels, minlength=k)
        withinss += np.bincount(labels, weights=sq, minlength=k)
        n_rows += len(chunk)

        if labeled_csv is not None:
            out = chunk.copy()
            out[label_column] = labels
            _append_csv(out, labeled_csv, first)
            first = False

    elapsed = time.perf_counter() - t0

    hubs = HubClusters(
        centers_df=build_centers_df(centers, sizes, withinss, scaler=scaler),
        labels=np.empty(0, dtype=int),
        k=k,
        total_wss=float(withinss.sum()),
        n_iter=passes,
        elapsed_seconds=elapsed,
        n_rows=n_rows,
    )
    logger.info(
        f"Streamed k-means k={k} over {n_rows:,} trips: {passes} pass(es), "
        f"WSS={hubs.total_wss:.4f}, {elapsed:.3f}s"
    )
    if labeled_csv is not None:
        logger.info(f"Wrote labelled trips: {labeled_csv}")
    return hubs
