# taxihubs/pipeline.py

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

from taxihubs.cluster.compare import RunComparison, compare_runs, format_comparison
from taxihubs.cluster.elbow import wss_by_k
from taxihubs.cluster.hubs import (
    HubClusters,
    cluster_full,
    cluster_sample,
    hub_points,
    label_trips,
    summarize_hubs,
    write_hub_centers_csv,
    write_labeled_trips_csv,
)
from taxihubs.cluster.scaling import CoordinateScaler
from taxihubs.cluster.streaming import stream_full_hubs
from taxihubs.config import HubsConfig
from taxihubs.trips.filters import (
    FilterReport,
    TripFilter,
    apply_trip_filter,
    filter_trip_chunks,
    log_filter_report,
    merge_filter_reports,
)
from taxihubs.trips.load_trips import coordinate_columns, iter_trip_csv, read_trip_csv
from taxihubs.trips.sampling import sample_trip_chunks, sample_trips
from taxihubs.util.logging import get_logger
from taxihubs.viz.hubs_map import write_hubs_map_html
from taxihubs.viz.plots import plot_elbow, plot_hubs, plot_run_times, plot_trip_points

logger = get_logger(__name__)


@dataclass
class HubPipelineResult:
    config: HubsConfig
    filter_report: FilterReport
    sample_df: pd.DataFrame
    scaler: CoordinateScaler
    sample_hubs: HubClusters
    full_hubs: HubClusters
    comparison: RunComparison
    elbow_df: pd.DataFrame | None = None
    outputs: dict[str, Path] = field(default_factory=dict)


def _clustering_filter(cfg: HubsConfig) -> TripFilter:
    # coordinates of the clustered end must be present even with the range rules off
    return cfg.trip_filter.requiring(coordinate_columns(cfg.end))


def _load_filter_sample(cfg: HubsConfig):
    """In-memory path: (filtered_df, report, sample_df)."""
    trips = read_trip_csv(cfg.trips_csv, require_end=cfg.end)
    filtered, report = apply_trip_filter(trips, _clustering_filter(cfg))
    log_filter_report(report)

    if cfg.sample_n is not None:
        sample = sample_trips(filtered, n=cfg.sample_n, seed=cfg.seed)
    else:
        sample = sample_trips(filtered, frac=cfg.sample_frac, seed=cfg.seed)
    return filtered, report, sample


def _stream_filter_sample(cfg: HubsConfig):
    """Chunked path: (report, sample_df) after one pass over the file."""
    reports: list[FilterReport] = []
    chunks = filter_trip_chunks(
        iter_trip_csv(cfg.trips_csv, chunksize=cfg.chunksize, require_end=cfg.end),
        _clustering_filter(cfg),
        reports,
    )
    sample = sample_trip_chunks(chunks, frac=cfg.sample_frac, seed=cfg.seed)

    report = merge_filter_reports(reports)
    log_filter_report(report)
    return report, sample


def run_hub_pipeline(cfg: HubsConfig) -> HubPipelineResult:
    """
    filter -> sample -> k-means on sample -> k-means on everything (seeded
    with the sample centroids) -> compare -> write CSVs, plots and map.
    """
    cfg.validate()
    outputs: dict[str, Path] = {}

    # ---- filter + sample ----
    if cfg.streaming:
        filtered = None
        report, sample = _stream_filter_sample(cfg)
    else:
        filtered, report, sample = _load_filter_sample(cfg)

    if len(sample) < cfg.k:
        raise ValueError(
            f"Sample has {len(sample):,} trips, fewer than k={cfg.k}; "
            f"raise the sample size or lower k"
        )

    # ---- k-means on the sample ----
    logger.info(f"Clustering sample of {len(sample):,} trips into {cfg.k} hubs")
    sample_hubs, scaler = cluster_sample(
        sample,
        cfg.k,
        end=cfg.end,
        scaling=cfg.scaling,
        seed=cfg.seed,
        n_init=cfg.n_init,
        max_iter=cfg.max_iter,
    )
    outputs["sample_centers"] = write_hub_centers_csv(sample_hubs, cfg.out_path("hub_centers_sample.csv"))

    # ---- k-means on everything, seeded by the sample ----
    labeled_csv = cfg.out_path("trips_labeled.csv")
    if cfg.streaming:
        def make_chunks():
            return filter_trip_chunks(
                iter_trip_csv(cfg.trips_csv, chunksize=cfg.chunksize, require_end=cfg.end),
                _clustering_filter(cfg),
            )

        full_hubs = stream_full_hubs(
            make_chunks,
            sample_hubs,
            scaler,
            end=cfg.end,
            passes=cfg.stream_passes,
            batch_seed=cfg.seed,
            labeled_csv=labeled_csv if cfg.write_labeled else None,
        )
    else:
        logger.info(f"Clustering all {len(filtered):,} trips from the sample centroids")
        full_hubs = cluster_full(filtered, sample_hubs, scaler, end=cfg.end, max_iter=cfg.max_iter, seed=cfg.seed)
        if cfg.write_labeled:
            write_labeled_trips_csv(label_trips(filtered, full_hubs), labeled_csv)
            logger.info(f"Wrote labelled trips: {labeled_csv}")

    if cfg.write_labeled:
        outputs["labeled_trips"] = labeled_csv
    outputs["full_centers"] = write_hub_centers_csv(full_hubs, cfg.out_path("hub_centers_full.csv"))

    comparison = compare_runs(sample_hubs, full_hubs)
    logger.info(format_comparison(comparison))

    top = summarize_hubs(full_hubs).head(10)
    logger.debug("Largest hubs:\n" + top.to_string(index=False))

    # ---- elbow ----
    elbow_df = None
    if cfg.elbow_ks:
        elbow_df = wss_by_k(hub_points(sample, scaler, end=cfg.end), cfg.elbow_ks, seed=cfg.seed)
        outputs["elbow"] = cfg.out_path("elbow.csv")
        outputs["elbow"].parent.mkdir(parents=True, exist_ok=True)
        elbow_df.to_csv(outputs["elbow"], index=False)

    # ---- plots ----
    if cfg.make_plots:
        outputs["trips_png"] = plot_trip_points(sample, cfg.out_path(f"{cfg.end}s.png"), end=cfg.end)
        outputs["hubs_png"] = plot_hubs(full_hubs, cfg.out_path("hubs.png"), points_df=sample, end=cfg.end)
        outputs["run_times_png"] = plot_run_times(comparison, cfg.out_path("run_times.png"))
        if elbow_df is not None and len(elbow_df):
            outputs["elbow_png"] = plot_elbow(elbow_df, cfg.out_path("elbow.png"), chosen_k=cfg.k)
        outputs["map_html"] = write_hubs_map_html(full_hubs, cfg.out_path("hubs_map.html"))

    for name, path in outputs.items():
        logger.debug(f"output {name}: {path}")

    return HubPipelineResult(
        config=cfg,
        filter_report=report,
        sample_df=sample,
        scaler=scaler,
        sample_hubs=sample_hubs,
        full_hubs=full_hubs,
        comparison=comparison,
        elbow_df=elbow_df,
        outputs=outputs,
    )
