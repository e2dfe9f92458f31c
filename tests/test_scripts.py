import pandas as pd
from flask import Flask

from taxihubs.config import HubsConfig
from taxihubs.viz.app.hubs import serve_hubs


def test_make_sample_csv_keeps_raw_schema(tmp_path, raw_trips):
    from make_sample_csv import main

    raw = raw_trips.assign(vendor_id="CMT").rename(columns={"pickup_datetime": " pickup_datetime"})
    in_csv = tmp_path / "big.csv"
    raw.to_csv(in_csv, index=False)
    out_csv = tmp_path / "subset.csv"

    sample = main([str(in_csv), str(out_csv), "--frac", "0.5", "--chunksize", "100", "--seed", "2"])

    subset = pd.read_csv(out_csv)
    assert list(subset.columns) == list(raw.columns)
    assert len(subset) == len(sample)
    assert 0.3 * len(raw) < len(subset) < 0.7 * len(raw)
    assert (subset["vendor_id"] == "CMT").all()


def test_serve_hubs_runs_pipeline_then_serves(tmp_path, trips_csv, monkeypatch):
    calls = {}

    def fake_run(self, **kwargs):
        calls["app"] = self
        calls.update(kwargs)

    monkeypatch.setattr(Flask, "run", fake_run)

    cfg = HubsConfig(trips_csv=trips_csv, out_dir=tmp_path / "out", k=3, sample_frac=0.5, n_init=2, make_plots=False)
    serve_hubs(cfg, host="0.0.0.0", port="9001")

    assert calls["host"] == "0.0.0.0"
    assert calls["port"] == 9001
    resp = calls["app"].test_client().get("/centers.json")
    assert len(resp.get_json()) == 3
