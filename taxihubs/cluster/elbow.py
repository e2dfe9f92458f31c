# taxihubs/cluster/elbow.py

from __future__ import annotations

from typing import Iterable

import numpy as np
import pandas as pd

from taxihubs.cluster.hubs import fit_hubs
from taxihubs.util.logging import get_logger

logger = get_logger(__name__)


def wss_by_k(
    points: np.ndarray,
    ks: Iterable[int],
    *,
    seed: int = 0,
    n_init: int = 3,
    max_iter: int = 300,
) -> pd.DataFrame:
    """
    Total within-cluster sum of squares for each k (the elbow curve).

    Returns columns k, wss, seconds sorted by k. Values of k larger than the
    number of points are skipped.
    """
    ks = sorted({int(k) for k in ks})
    if not ks:
        raise ValueError("ks is empty")

    rows = []
    for k in ks:
        if k < 1 or k > len(points):
            logger.warning(f"Skipping k={k} (have {len(points):,} points)")
            continue
        hubs = fit_hubs(points, k, seed=seed, n_init=n_init, max_iter=max_iter)
        rows.append({"k": k, "wss": hubs.total_wss, "seconds": hubs.elapsed_seconds})

    return pd.DataFrame(rows, columns=["k", "wss", "seconds"])
