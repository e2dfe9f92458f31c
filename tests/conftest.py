import numpy as np
import pandas as pd
import pytest


# midtown, JFK, LaGuardia
HUB_CENTERS = [
    (-73.9855, 40.7580),
    (-73.7781, 40.6413),
    (-73.8740, 40.7769),
]

POINTS_PER_HUB = 200
N_INVALID = 6


def _make_raw_trips(seed: int = 7) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    rows = []
    start = pd.Timestamp("2013-01-07 08:00:00")

    for lon, lat in HUB_CENTERS:
        for _ in range(POINTS_PER_HUB):
            secs = int(rng.integers(120, 2400))
            pickup = start + pd.Timedelta(minutes=int(rng.integers(0, 600)))
            rows.append(
                {
                    "pickup_datetime": pickup.strftime("%Y-%m-%d %H:%M:%S"),
                    "dropoff_datetime": (pickup + pd.Timedelta(seconds=secs)).strftime("%Y-%m-%d %H:%M:%S"),
                    "passenger_count": int(rng.integers(1, 5)),
                    "trip_time_in_secs": secs,
                    "trip_distance": round(float(rng.uniform(0.5, 15.0)), 2),
                    "pickup_longitude": lon + rng.normal(0, 0.002),
                    "pickup_latitude": lat + rng.normal(0, 0.002),
                    "dropoff_longitude": -73.98 + rng.normal(0, 0.01),
                    "dropoff_latitude": 40.75 + rng.normal(0, 0.01),
                    "fare_amount": round(float(rng.uniform(5, 60)), 2),
                }
            )

    good = rows[0]
    bad = [
        dict(good, pickup_longitude=0.0, pickup_latitude=0.0),  # null island
        dict(good, passenger_count=0),
        dict(good, fare_amount=None),
        dict(good, trip_distance=-1.0),
        dict(good, trip_time_in_secs=50000),
        dict(good, dropoff_latitude=42.0),
    ]
    assert len(bad) == N_INVALID
    return pd.DataFrame(rows + bad)


@pytest.fixture
def raw_trips() -> pd.DataFrame:
    return _make_raw_trips()


@pytest.fixture
def trips_csv(tmp_path, raw_trips):
    path = tmp_path / "trips.csv"
    # 2013-style files have padded headers
    raw_trips.rename(columns={"pickup_datetime": " pickup_datetime"}).to_csv(path, index=False)
    return path


@pytest.fixture
def n_valid_trips() -> int:
    return len(HUB_CENTERS) * POINTS_PER_HUB
