import argparse

import pandas as pd

from taxihubs.trips.sampling import sample_trip_chunks
from taxihubs.util.logging import setup_logging


def main(argv=None):
    p = argparse.ArgumentParser(
        description="Write a random subset of a large trips CSV, keeping its original columns and headers."
    )
    p.add_argument("in_csv")
    p.add_argument("out_csv")
    p.add_argument("--frac", type=float, default=0.01)
    p.add_argument("--seed", type=int, default=0)
    p.add_argument("--chunksize", type=int, default=200_000)
    args = p.parse_args(argv)

    setup_logging("INFO")

    # raw chunks, so the subset has the same schema as the input file
    with pd.read_csv(args.in_csv, chunksize=args.chunksize, low_memory=False) as reader:
        sample = sample_trip_chunks(reader, frac=args.frac, seed=args.seed)

    sample.to_csv(args.out_csv, index=False)

    print(f"Wrote: {args.out_csv}")
    print(f"Rows kept: {len(sample):,}")
    return sample


if __name__ == "__main__":
    main()
