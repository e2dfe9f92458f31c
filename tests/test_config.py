import pytest

from taxihubs.config import HubsConfig
from taxihubs.trips.filters import TripFilter


def test_defaults_validate():
    cfg = HubsConfig().validate()
    assert cfg.k == 30
    assert isinstance(cfg.trip_filter, TripFilter)
    assert str(cfg.out_path("a.csv")).endswith("a.csv")


def test_from_env_reads_and_overrides():
    env = {
        "TRIPS_CSV": "/data/trips.csv",
        "K": "12",
        "SAMPLE_FRAC": "0.05",
        "STREAMING": "yes",
        "ELBOW_KS": "5, 10,20",
        "SEED": "",
    }
    cfg = HubsConfig.from_env(env, k=8)

    assert cfg.trips_csv == "/data/trips.csv"
    assert cfg.k == 8
    assert cfg.sample_frac == 0.05
    assert cfg.streaming is True
    assert cfg.elbow_ks == (5, 10, 20)
    assert cfg.seed == 0


def test_from_env_prefix_and_sample_n():
    cfg = HubsConfig.from_env({"HUBS_SAMPLE_N": "500", "SAMPLE_N": "1"}, prefix="HUBS_")
    assert cfg.sample_n == 500
    assert cfg.sample_frac is None


@pytest.mark.parametrize(
    "env",
    [{"K": "many"}, {"STREAMING": "maybe"}, {"K": "0"}, {"END": "middle"}, {"SCALING": "mercator"}],
)
def test_from_env_rejects_bad_values(env):
    with pytest.raises(ValueError):
        HubsConfig.from_env(env)


@pytest.mark.parametrize(
    "kw",
    [
        {"sample_frac": 0.0},
        {"sample_frac": None},
        {"sample_n": 0, "sample_frac": None},
        {"chunksize": 0},
        {"stream_passes": 0},
        {"streaming": True, "sample_n": 10},
    ],
)
def test_validate_rejects(kw):
    with pytest.raises(ValueError):
        HubsConfig().with_overrides(**kw)


def test_sample_n_override_clears_default_fraction():
    cfg = HubsConfig.from_env({}, sample_n=100)
    assert cfg.sample_n == 100
    assert cfg.sample_frac is None

    # an explicit fraction is left alone
    cfg = HubsConfig.from_env({"SAMPLE_FRAC": "0.2"}, sample_n=5)
    assert cfg.sample_frac == 0.2
