# taxihubs/trips/filters.py

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, Iterator

import numpy as np
import pandas as pd

from taxihubs.trips.load_trips import CANONICAL_COLUMNS
from taxihubs.util.logging import get_logger

logger = get_logger(__name__)


DEFAULT_KEEP_COLUMNS = tuple(CANONICAL_COLUMNS)

# rule name -> columns the range applies to
RULE_COLUMNS = {
    "longitude": ("pickup_longitude", "dropoff_longitude"),
    "latitude": ("pickup_latitude", "dropoff_latitude"),
    "passenger_count": ("passenger_count",),
    "trip_distance": ("trip_distance",),
    "trip_duration": ("trip_duration",),
    "fare_amount": ("fare_amount",),
}


@dataclass(frozen=True)
class TripFilter:
    """
    Inclusive (low, high) ranges. A range also means "not null". Set a
    range to None to turn the rule off.

    not_null: extra columns that must be present and non-null per row.
    keep_columns: columns kept after filtering (missing ones are ignored).
    """
    longitude: tuple[float, float] | None = (-74.3, -73.6)
    latitude: tuple[float, float] | None = (40.5, 41.0)
    passenger_count: tuple[float, float] | None = (1, 6)
    trip_distance: tuple[float, float] | None = (0.01, 100.0)
    trip_duration: tuple[float, float] | None = (1, 10800)
    fare_amount: tuple[float, float] | None = (0.01, 500.0)
    not_null: tuple[str, ...] = ()
    keep_columns: tuple[str, ...] = DEFAULT_KEEP_COLUMNS

    def requiring(self, columns) -> "TripFilter":
        """Copy of this filter that also rejects rows with nulls in columns."""
        extra = tuple(c for c in columns if c not in self.not_null)
        return replace(self, not_null=self.not_null + extra)

    def ranges(self) -> dict[str, tuple[float, float]]:
        out = {}
        for name in RULE_COLUMNS:
            bounds = getattr(self, name)
            if bounds is None:
                continue
            low, high = bounds
            if low > high:
                raise ValueError(f"{name}: low {low} is greater than high {high}")
            out[name] = (low, high)
        return out


@dataclass
class FilterReport:
    """
    dropped_by_rule counts each rule independently, so a row failing two
    rules is counted twice.
    """
    rows_in: int = 0
    rows_out: int = 0
    dropped_by_rule: dict[str, int] = field(default_factory=dict)
    skipped_rules: list[str] = field(default_factory=list)

    @property
    def rows_dropped(self) -> int:
        return self.rows_in - self.rows_out

    @property
    def kept_fraction(self) -> float:
        return self.rows_out / self.rows_in if self.rows_in else 0.0


def _rule_masks(df: pd.DataFrame, trip_filter: TripFilter):
    """Yields (rule_name, pass_mask or None when skipped)."""
    for name, (low, high) in trip_filter.ranges().items():
        cols = [c for c in RULE_COLUMNS[name] if c in df.columns]
        if not cols:
            yield name, None
            continue

        ok = np.ones(len(df), dtype=bool)
        for c in cols:
            # NaN compares False on both sides, so it fails the range
            ok &= df[c].between(low, high).to_numpy()
        yield name, ok

    for c in trip_filter.not_null:
        if c not in df.columns:
            yield f"not_null:{c}", None
            continue
        yield f"not_null:{c}", df[c].notna().to_numpy()


def apply_trip_filter(
    df: pd.DataFrame,
    trip_filter: TripFilter | None = None,
) -> tuple[pd.DataFrame, FilterReport]:
    """
    Keeps rows passing every rule and prunes to keep_columns.

    Returns (filtered_df with a fresh RangeIndex, FilterReport).
    """
    if trip_filter is None:
        trip_filter = TripFilter()

    report = FilterReport(rows_in=len(df))
    keep = np.ones(len(df), dtype=bool)

    for name, ok in _rule_masks(df, trip_filter):
        if ok is None:
            report.skipped_rules.append(name)
            continue
        report.dropped_by_rule[name] = int((~ok).sum())
        keep &= ok

    cols = [c for c in trip_filter.keep_columns if c in df.columns]
    out = df.loc[keep, cols].reset_index(drop=True)
    report.rows_out = len(out)

    logger.debug(f"Filter: {report.rows_in:,} -> {report.rows_out:,} rows; drops={report.dropped_by_rule}")
    return out, report


def merge_filter_reports(reports: Iterable[FilterReport]) -> FilterReport:
    merged = FilterReport()
    for r in reports:
        merged.rows_in += r.rows_in
        merged.rows_out += r.rows_out
        for name, n in r.dropped_by_rule.items():
            merged.dropped_by_rule[name] = merged.dropped_by_rule.get(name, 0) + n
        for name in r.skipped_rules:
            if name not in merged.skipped_rules:
                merged.skipped_rules.append(name)
    return merged


def filter_trip_chunks(
    chunks: Iterable[pd.DataFrame],
    trip_filter: TripFilter | None = None,
    reports: list[FilterReport] | None = None,
) -> Iterator[pd.DataFrame]:
    """
    Filters each chunk lazily. Pass a list as reports to collect one
    FilterReport per chunk (merge them with merge_filter_reports).
    """
    for chunk in chunks:
        out, report = apply_trip_filter(chunk, trip_filter)
        if reports is not None:
            reports.append(report)
        yield out


def log_filter_report(report: FilterReport, label: str = "trips") -> None:
    logger.info(
        f"Filtered {label}: kept {report.rows_out:,} of {report.rows_in:,} rows "
        f"({report.kept_fraction:.1%})"
    )
    for name, n in sorted(report.dropped_by_rule.items(), key=lambda kv: -kv[1]):
        if n:
            logger.info(f"  {name}: {n:,} rows out of range or null")
    if report.skipped_rules:
        logger.warning(f"  skipped rules (columns absent): {', '.join(report.skipped_rules)}")
