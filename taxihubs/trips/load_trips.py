# taxihubs/trips/load_trips.py

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import numpy as np
import pandas as pd

from taxihubs.util.logging import get_logger

logger = get_logger(__name__)


DATETIME_COLUMNS = ["pickup_datetime", "dropoff_datetime"]

NUMERIC_COLUMNS = [
    "passenger_count",
    "trip_distance",
    "trip_duration",
    "pickup_longitude",
    "pickup_latitude",
    "dropoff_longitude",
    "dropoff_latitude",
    "fare_amount",
]

CANONICAL_COLUMNS = DATETIME_COLUMNS + NUMERIC_COLUMNS

# raw header (stripped, lower-cased) -> canonical name
COLUMN_ALIASES = {
    "pickup_datetime": "pickup_datetime",
    "tpep_pickup_datetime": "pickup_datetime",
    "lpep_pickup_datetime": "pickup_datetime",
    "trip_pickup_datetime": "pickup_datetime",
    "dropoff_datetime": "dropoff_datetime",
    "tpep_dropoff_datetime": "dropoff_datetime",
    "lpep_dropoff_datetime": "dropoff_datetime",
    "trip_dropoff_datetime": "dropoff_datetime",
    "passenger_count": "passenger_count",
    "passenger_cnt": "passenger_count",
    "trip_distance": "trip_distance",
    "trip_time_in_secs": "trip_duration",
    "trip_duration": "trip_duration",
    "pickup_longitude": "pickup_longitude",
    "start_lon": "pickup_longitude",
    "pickup_latitude": "pickup_latitude",
    "start_lat": "pickup_latitude",
    "dropoff_longitude": "dropoff_longitude",
    "end_lon": "dropoff_longitude",
    "dropoff_latitude": "dropoff_latitude",
    "end_lat": "dropoff_latitude",
    "fare_amount": "fare_amount",
    "fare_amt": "fare_amount",
}

COORDINATE_COLUMNS = {
    "pickup": ("pickup_longitude", "pickup_latitude"),
    "dropoff": ("dropoff_longitude", "dropoff_latitude"),
}


def coordinate_columns(end: str) -> tuple[str, str]:
    if end not in COORDINATE_COLUMNS:
        raise ValueError(f"end must be one of {sorted(COORDINATE_COLUMNS)}, got {end!r}")
    return COORDINATE_COLUMNS[end]


def _resolve_columns(columns) -> dict[str, str]:
    """
    Maps raw headers to canonical names. The first raw header that maps to a
    canonical name wins; later duplicates are ignored.
    """
    resolved: dict[str, str] = {}
    taken: set[str] = set()
    for raw in columns:
        canon = COLUMN_ALIASES.get(str(raw).strip().lower())
        if canon is None or canon in taken:
            continue
        resolved[raw] = canon
        taken.add(canon)
    return resolved


def normalize_trip_columns(df: pd.DataFrame, require_end: str | None = "pickup") -> pd.DataFrame:
    """
    Returns a DataFrame with only canonical columns:

      pickup_datetime, dropoff_datetime   (datetime64, NaT when malformed)
      passenger_count, trip_distance,
      trip_duration (seconds), fare_amount,
      pickup/dropoff longitude/latitude   (float, NaN when malformed)

    trip_duration is derived from the datetimes when the file has no
    duration column. Raises ValueError if the coordinates of require_end
    are missing.
    """
    colmap = _resolve_columns(df.columns)
    out = pd.DataFrame(index=df.index)

    for raw, canon in colmap.items():
        if canon in DATETIME_COLUMNS:
            out[canon] = pd.to_datetime(df[raw], errors="coerce")
        else:
            out[canon] = pd.to_numeric(df[raw], errors="coerce").astype(np.float64)

    if require_end is not None:
        lon_col, lat_col = coordinate_columns(require_end)
        missing = [c for c in (lon_col, lat_col) if c not in out.columns]
        if missing:
            raise ValueError(f"Trips CSV missing {require_end} coordinate columns: {missing}")

    if "trip_duration" not in out.columns and {"pickup_datetime", "dropoff_datetime"} <= set(out.columns):
        delta = out["dropoff_datetime"] - out["pickup_datetime"]
        out["trip_duration"] = delta.dt.total_seconds()

    ordered = [c for c in CANONICAL_COLUMNS if c in out.columns]
    return out[ordered]


def read_trip_csv(
    trips_csv: str | Path,
    *,
    nrows: int | None = None,
    require_end: str | None = "pickup",
) -> pd.DataFrame:
    """Loads a whole trips CSV into the canonical schema."""
    trips_csv = Path(trips_csv)

    df = pd.read_csv(trips_csv, nrows=nrows, low_memory=False)
    out = normalize_trip_columns(df, require_end=require_end)

    logger.info(f"Loaded {len(out):,} trips from {trips_csv.name} ({len(out.columns)} columns)")
    return out


def iter_trip_csv(
    trips_csv: str | Path,
    *,
    chunksize: int = 200_000,
    require_end: str | None = "pickup",
) -> Iterator[pd.DataFrame]:
    """
    Yields canonical-schema chunks of at most chunksize rows. Index values
    keep counting across chunks, matching the row position in the file.
    """
    if chunksize < 1:
        raise ValueError(f"chunksize must be >= 1, got {chunksize}")

    trips_csv = Path(trips_csv)
    n_chunks = 0
    with pd.read_csv(trips_csv, chunksize=chunksize, low_memory=False) as reader:
        for chunk in reader:
            n_chunks += 1
            logger.debug(f"{trips_csv.name}: chunk {n_chunks} ({len(chunk):,} rows)")
            yield normalize_trip_columns(chunk, require_end=require_end)
