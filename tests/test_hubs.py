import numpy as np
import pandas as pd
import pytest

from taxihubs.cluster.hubs import (
    CENTER_COLUMNS,
    cluster_full,
    cluster_sample,
    fit_hubs,
    label_trips,
    read_hub_centers_csv,
    summarize_hubs,
    write_hub_centers_csv,
    write_labeled_trips_csv,
)
from taxihubs.trips.filters import apply_trip_filter
from taxihubs.trips.load_trips import read_trip_csv
from taxihubs.trips.sampling import sample_trips

from conftest import HUB_CENTERS, POINTS_PER_HUB


@pytest.fixture
def filtered(trips_csv):
    df, _ = apply_trip_filter(read_trip_csv(trips_csv))
    return df


def _nearest_distance(centers_df, lon, lat):
    d = np.hypot(centers_df["longitude"] - lon, centers_df["latitude"] - lat)
    return float(d.min())


def test_fit_hubs_invariants():
    rng = np.random.default_rng(0)
    points = rng.normal(size=(300, 2))
    hubs = fit_hubs(points, 5, seed=1, n_init=2)

    assert len(hubs.centers_df) == 5
    assert list(hubs.centers_df.columns) == CENTER_COLUMNS
    assert hubs.centers_df["cluster_id"].tolist() == [0, 1, 2, 3, 4]
    assert hubs.centers_df["size"].sum() == 300
    assert hubs.n_rows == 300
    assert len(hubs.labels) == 300
    assert hubs.centers_df["withinss"].sum() == pytest.approx(hubs.total_wss)
    assert hubs.elapsed_seconds >= 0
    # without a scaler the centroid is reported as-is
    np.testing.assert_allclose(hubs.centers_df["longitude"], hubs.centers_df["x"])


@pytest.mark.parametrize("k", [0, 11])
def test_fit_hubs_rejects_bad_k(k):
    with pytest.raises(ValueError):
        fit_hubs(np.zeros((10, 2)), k)


def test_fit_hubs_rejects_bad_init_shape():
    with pytest.raises(ValueError, match="init"):
        fit_hubs(np.zeros((10, 2)), 2, init=np.zeros((3, 2)))


def test_sample_clustering_finds_the_hubs(filtered):
    sample = sample_trips(filtered, frac=0.25, seed=0)
    hubs, scaler = cluster_sample(sample, 3, seed=0)

    assert scaler.fitted
    for lon, lat in HUB_CENTERS:
        assert _nearest_distance(hubs.centers_df, lon, lat) < 0.005


def test_full_run_starts_from_sample_centroids(filtered):
    sample = sample_trips(filtered, frac=0.2, seed=0)
    sample_hubs, scaler = cluster_sample(sample, 3, seed=0)
    full_hubs = cluster_full(filtered, sample_hubs, scaler)

    assert full_hubs.n_rows == len(filtered)
    assert sorted(full_hubs.centers_df["size"]) == [POINTS_PER_HUB] * 3
    # same ids on both runs: each centroid only moves a little
    shift = np.linalg.norm(full_hubs.centers_xy() - sample_hubs.centers_xy(), axis=1)
    assert shift.max() < 0.1


def test_dropoff_end(filtered):
    hubs, _ = cluster_sample(filtered, 2, end="dropoff", scaling="equirect", n_init=2)
    assert hubs.centers_df["size"].sum() == len(filtered)
    assert hubs.centers_df["latitude"].between(40.6, 40.9).all()


def test_label_and_write(tmp_path, filtered):
    hubs, _ = cluster_sample(filtered, 3, n_init=2)

    labeled = label_trips(filtered, hubs)
    assert labeled["cluster_id"].tolist() == hubs.labels.tolist()
    assert "cluster_id" not in filtered.columns

    with pytest.raises(ValueError):
        label_trips(filtered.head(5), hubs)

    out = write_labeled_trips_csv(labeled, tmp_path / "nested" / "labeled.csv")
    back = pd.read_csv(out)
    assert len(back) == len(filtered)
    assert back["cluster_id"].value_counts().sort_index().tolist() == hubs.centers_df["size"].tolist()

    centers_path = write_hub_centers_csv(hubs, tmp_path / "centers.csv")
    centers = read_hub_centers_csv(centers_path)
    assert centers["cluster_id"].tolist() == [0, 1, 2]


def test_read_hub_centers_requires_columns(tmp_path):
    path = tmp_path / "bad.csv"
    pd.DataFrame({"cluster_id": [0], "x": [1.0]}).to_csv(path, index=False)
    with pytest.raises(ValueError, match="missing"):
        read_hub_centers_csv(path)


def test_summarize_hubs(filtered):
    hubs, _ = cluster_sample(filtered, 3, n_init=2)
    summary = summarize_hubs(hubs)

    assert summary["share"].sum() == pytest.approx(1.0)
    assert summary["size"].is_monotonic_decreasing
    assert (summary["rms_distance"] >= 0).all()
