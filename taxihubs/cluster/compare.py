# taxihubs/cluster/compare.py

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from taxihubs.cluster.hubs import HubClusters


@dataclass
class RunComparison:
    sample_rows: int
    full_rows: int
    sample_seconds: float
    full_seconds: float
    time_ratio: float        # full / sample
    rows_ratio: float        # full / sample
    mean_center_shift: float
    max_center_shift: float  # scaled plane, matched by cluster_id


def _ratio(num: float, den: float) -> float:
    if den <= 0:
        return math.inf if num > 0 else 1.0
    return num / den


def _time_ratio(full_seconds: float, sample_seconds: float) -> float:
    # a sample run too fast to measure has no meaningful ratio
    if sample_seconds <= 0:
        return math.inf
    return full_seconds / sample_seconds


def compare_runs(sample_hubs: HubClusters, full_hubs: HubClusters) -> RunComparison:
    """
    How much longer the full run took than the sample run, and how far each
    centroid moved once it saw every trip. Both runs share cluster ids since
    the full run starts from the sample's centroids.
    """
    if sample_hubs.k != full_hubs.k:
        raise ValueError(f"Runs have different k: {sample_hubs.k} vs {full_hubs.k}")

    shift = np.linalg.norm(full_hubs.centers_xy() - sample_hubs.centers_xy(), axis=1)

    return RunComparison(
        sample_rows=sample_hubs.n_rows,
        full_rows=full_hubs.n_rows,
        sample_seconds=sample_hubs.elapsed_seconds,
        full_seconds=full_hubs.elapsed_seconds,
        time_ratio=_time_ratio(full_hubs.elapsed_seconds, sample_hubs.elapsed_seconds),
        rows_ratio=_ratio(full_hubs.n_rows, sample_hubs.n_rows),
        mean_center_shift=float(shift.mean()) if len(shift) else 0.0,
        max_center_shift=float(shift.max()) if len(shift) else 0.0,
    )


def format_comparison(cmp: RunComparison) -> str:
    return (
        f"sample: {cmp.sample_rows:,} rows in {cmp.sample_seconds:.3f}s | "
        f"full: {cmp.full_rows:,} rows in {cmp.full_seconds:.3f}s | "
        f"{cmp.rows_ratio:.1f}x rows, {cmp.time_ratio:.1f}x time | "
        f"centroid shift mean={cmp.mean_center_shift:.4f} max={cmp.max_center_shift:.4f}"
    )
