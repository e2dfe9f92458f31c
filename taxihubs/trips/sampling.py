# taxihubs/trips/sampling.py

from __future__ import annotations

from typing import Iterable

import numpy as np
import pandas as pd

from taxihubs.util.logging import get_logger

logger = get_logger(__name__)


def _check_frac(frac: float) -> None:
    if not 0 < frac <= 1:
        raise ValueError(f"frac must be in (0, 1], got {frac}")


def sample_trips(
    df: pd.DataFrame,
    *,
    frac: float | None = None,
    n: int | None = None,
    seed: int = 0,
) -> pd.DataFrame:
    """
    Uniform random sample without replacement. Give exactly one of frac or n.
    n larger than the frame returns every row (shuffled).
    """
    if (frac is None) == (n is None):
        raise ValueError("Pass exactly one of frac or n")

    if frac is not None:
        _check_frac(frac)
        out = df.sample(frac=frac, random_state=seed)
    else:
        if n < 1:
            raise ValueError(f"n must be >= 1, got {n}")
        out = df.sample(n=min(int(n), len(df)), random_state=seed)

    out = out.reset_index(drop=True)
    logger.info(f"Sampled {len(out):,} of {len(df):,} trips (seed={seed})")
    return out


def sample_trip_chunks(
    chunks: Iterable[pd.DataFrame],
    *,
    frac: float,
    seed: int = 0,
) -> pd.DataFrame:
    """
    Bernoulli sample over a stream of chunks: every row is kept with
    probability frac, so the sample size is only approximately frac * rows.
    """
    _check_frac(frac)
    rng = np.random.default_rng(seed)

    parts = []
    columns = None
    seen = 0
    for chunk in chunks:
        columns = chunk.columns
        seen += len(chunk)
        mask = rng.random(len(chunk)) < frac
        if mask.any():
            parts.append(chunk.loc[mask])

    if not parts:
        logger.warning(f"Streamed sample is empty ({seen:,} rows seen, frac={frac})")
        return pd.DataFrame(columns=columns)

    out = pd.concat(parts, ignore_index=True)
    logger.info(f"Streamed sample: {len(out):,} of {seen:,} trips (~{frac:.2%}, seed={seed})")
    return out
