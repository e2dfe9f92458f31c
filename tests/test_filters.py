import pandas as pd
import pytest

from taxihubs.trips.filters import (
    TripFilter,
    apply_trip_filter,
    filter_trip_chunks,
    merge_filter_reports,
)
from taxihubs.trips.load_trips import iter_trip_csv, read_trip_csv

from conftest import N_INVALID


def test_default_filter_drops_invalid_rows(trips_csv, n_valid_trips):
    trips = read_trip_csv(trips_csv)
    out, report = apply_trip_filter(trips)

    assert len(out) == n_valid_trips
    assert report.rows_in == n_valid_trips + N_INVALID
    assert report.rows_out == n_valid_trips
    assert report.rows_dropped == N_INVALID
    assert out.index.tolist() == list(range(n_valid_trips))

    assert report.dropped_by_rule["longitude"] == 1
    assert report.dropped_by_rule["latitude"] == 2  # null island + dropoff at 42N
    assert report.dropped_by_rule["passenger_count"] == 1
    assert report.dropped_by_rule["fare_amount"] == 1
    assert report.dropped_by_rule["trip_distance"] == 1
    assert report.dropped_by_rule["trip_duration"] == 1
    assert report.rows_dropped <= sum(report.dropped_by_rule.values())


def test_ranges_are_inclusive_and_none_disables():
    df = pd.DataFrame({"passenger_count": [0, 1, 6, 7, None]})

    out, _ = apply_trip_filter(df, TripFilter())
    assert out["passenger_count"].tolist() == [1, 6]

    out, report = apply_trip_filter(df, TripFilter(passenger_count=None))
    assert len(out) == 5
    assert "passenger_count" not in report.dropped_by_rule


def test_rules_for_absent_columns_are_skipped():
    df = pd.DataFrame({"fare_amount": [3.0, -1.0]})
    out, report = apply_trip_filter(df)

    assert out["fare_amount"].tolist() == [3.0]
    assert "longitude" in report.skipped_rules
    assert "trip_duration" in report.skipped_rules
    assert "longitude" not in report.dropped_by_rule


def test_not_null_rule_and_column_pruning():
    df = pd.DataFrame(
        {
            "pickup_datetime": pd.to_datetime(["2013-01-01 00:00", None]),
            "fare_amount": [10.0, 12.0],
            "trip_distance": [1.0, 2.0],
        }
    )
    f = TripFilter(not_null=("pickup_datetime",), keep_columns=("fare_amount",))
    out, report = apply_trip_filter(df, f)

    assert list(out.columns) == ["fare_amount"]
    assert out["fare_amount"].tolist() == [10.0]
    assert report.dropped_by_rule["not_null:pickup_datetime"] == 1


def test_low_above_high_raises():
    with pytest.raises(ValueError, match="fare_amount"):
        apply_trip_filter(pd.DataFrame({"fare_amount": [1.0]}), TripFilter(fare_amount=(10, 1)))


def test_chunked_filter_matches_whole_file(trips_csv, n_valid_trips):
    reports = []
    chunks = list(filter_trip_chunks(iter_trip_csv(trips_csv, chunksize=100), TripFilter(), reports))
    merged = merge_filter_reports(reports)

    assert sum(len(c) for c in chunks) == n_valid_trips
    assert len(reports) == len(chunks)
    assert merged.rows_out == n_valid_trips
    assert merged.rows_in == n_valid_trips + N_INVALID
    assert merged.dropped_by_rule["latitude"] == 2


def test_requiring_adds_not_null_columns_once():
    f = TripFilter(not_null=("fare_amount",)).requiring(["pickup_longitude", "fare_amount"])
    assert f.not_null == ("fare_amount", "pickup_longitude")

    df = pd.DataFrame({"pickup_longitude": [-73.98, None], "fare_amount": [5.0, 6.0]})
    out, report = apply_trip_filter(df, TripFilter(longitude=None).requiring(["pickup_longitude"]))
    assert len(out) == 1
    assert report.dropped_by_rule["not_null:pickup_longitude"] == 1
