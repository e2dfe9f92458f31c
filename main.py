# taxihubs/main.py

import argparse

from taxihubs.config import HubsConfig
from taxihubs.pipeline import run_hub_pipeline
from taxihubs.util.logging import get_logger, setup_logging
from taxihubs.viz.app.hubs import create_hubs_app

logger = get_logger("taxihubs")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Find trip density hubs with k-means on a sample, then on every trip.")
    p.add_argument("trips_csv", help="trip records CSV")
    p.add_argument("--k", type=int, default=30, help="number of hubs")
    sample = p.add_mutually_exclusive_group()
    sample.add_argument("--sample-frac", type=float, default=0.01)
    sample.add_argument("--sample-n", type=int, default=None, help="sample this many rows instead of a fraction")
    p.add_argument("--seed", type=int, default=0)
    p.add_argument("--end", choices=["pickup", "dropoff"], default="pickup")
    p.add_argument("--scaling", choices=["standard", "equirect", "none"], default="standard")
    p.add_argument("--n-init", type=int, default=10)
    p.add_argument("--max-iter", type=int, default=300)
    p.add_argument("--streaming", action="store_true", help="read the file in chunks for the full run")
    p.add_argument("--chunksize", type=int, default=200_000)
    p.add_argument("--passes", type=int, default=1, help="mini-batch passes in streaming mode")
    p.add_argument("--elbow-ks", type=str, default="", help="comma separated k values, e.g. 5,10,20,40")
    p.add_argument("--out-dir", default="out")
    p.add_argument("--no-plots", action="store_true")
    p.add_argument("--no-labeled", action="store_true", help="skip writing trips_labeled.csv")
    p.add_argument("--serve", action="store_true", help="serve the hub map after the run")
    p.add_argument("--port", type=int, default=8090)
    p.add_argument("--log-level", "-L", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], default="INFO")
    return p


def config_from_args(args) -> HubsConfig:
    elbow_ks = tuple(int(x) for x in args.elbow_ks.split(",") if x.strip())

    return HubsConfig(
        trips_csv=args.trips_csv,
        out_dir=args.out_dir,
        k=args.k,
        sample_frac=None if args.sample_n is not None else args.sample_frac,
        sample_n=args.sample_n,
        seed=args.seed,
        end=args.end,
        scaling=args.scaling,
        n_init=args.n_init,
        max_iter=args.max_iter,
        streaming=args.streaming,
        chunksize=args.chunksize,
        stream_passes=args.passes,
        elbow_ks=elbow_ks,
        make_plots=not args.no_plots,
        write_labeled=not args.no_labeled,
    ).validate()


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    cfg = config_from_args(args)
    result = run_hub_pipeline(cfg)

    print("\nLargest hubs:")
    print(
        result.full_hubs.centers_df.sort_values("size", ascending=False)
        .head(10)
        .to_string(index=False)
    )

    print("\nWrote:")
    for name, path in result.outputs.items():
        print(f"  {name:>15}: {path}")

    if args.serve:
        app = create_hubs_app(result.full_hubs, comparison=result.comparison)
        app.run(port=args.port)

    return result


if __name__ == "__main__":
    main()
