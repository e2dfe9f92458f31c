# taxihubs/config.py

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Mapping

from taxihubs.cluster.scaling import SCALING_METHODS
from taxihubs.trips.filters import TripFilter
from taxihubs.trips.load_trips import COORDINATE_COLUMNS


@dataclass
class HubsConfig:
    trips_csv: str | Path = "trips.csv"
    out_dir: str | Path = "out"

    k: int = 30
    sample_frac: float | None = 0.01
    sample_n: int | None = None
    seed: int = 0

    end: str = "pickup"
    scaling: str = "standard"
    n_init: int = 10
    max_iter: int = 300

    # chunked full pass instead of loading the whole file
    streaming: bool = False
    chunksize: int = 200_000
    stream_passes: int = 1

    elbow_ks: tuple[int, ...] = ()
    make_plots: bool = True
    write_labeled: bool = True

    trip_filter: TripFilter = field(default_factory=TripFilter)

    def validate(self) -> "HubsConfig":
        if self.k < 1:
            raise ValueError(f"k must be >= 1, got {self.k}")
        if self.sample_n is None and self.sample_frac is None:
            raise ValueError("Set sample_frac or sample_n")
        if self.sample_n is not None and self.sample_n < 1:
            raise ValueError(f"sample_n must be >= 1, got {self.sample_n}")
        if self.sample_n is None and not 0 < self.sample_frac <= 1:
            raise ValueError(f"sample_frac must be in (0, 1], got {self.sample_frac}")
        if self.end not in COORDINATE_COLUMNS:
            raise ValueError(f"end must be one of {sorted(COORDINATE_COLUMNS)}, got {self.end!r}")
        if self.scaling not in SCALING_METHODS:
            raise ValueError(f"scaling must be one of {SCALING_METHODS}, got {self.scaling!r}")
        if self.n_init < 1 or self.max_iter < 1:
            raise ValueError("n_init and max_iter must be >= 1")
        if self.chunksize < 1:
            raise ValueError(f"chunksize must be >= 1, got {self.chunksize}")
        if self.stream_passes < 1:
            raise ValueError(f"stream_passes must be >= 1, got {self.stream_passes}")
        if self.streaming and self.sample_n is not None:
            raise ValueError("streaming samples by fraction; use sample_frac")
        return self

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None, prefix: str = "", **overrides) -> "HubsConfig":
        """
        Reads TRIPS_CSV, OUT_DIR, K, SAMPLE_FRAC, SAMPLE_N, SEED, END,
        SCALING, STREAMING, CHUNKSIZE, ELBOW_KS (comma separated).
        Keyword overrides win over the environment.
        """
        if env is None:
            env = os.environ

        def get(name):
            return env.get(prefix + name)

        values: dict = {}
        parsers = {
            "TRIPS_CSV": ("trips_csv", str),
            "OUT_DIR": ("out_dir", str),
            "K": ("k", int),
            "SAMPLE_FRAC": ("sample_frac", float),
            "SAMPLE_N": ("sample_n", int),
            "SEED": ("seed", int),
            "END": ("end", str),
            "SCALING": ("scaling", str),
            "STREAMING": ("streaming", _parse_bool),
            "CHUNKSIZE": ("chunksize", int),
            "ELBOW_KS": ("elbow_ks", _parse_int_list),
        }
        for name, (attr, parse) in parsers.items():
            raw = get(name)
            if raw is None or raw == "":
                continue
            try:
                values[attr] = parse(raw)
            except ValueError as e:
                raise ValueError(f"Bad value for {prefix + name}={raw!r}: {e}") from e

        frac_given = "sample_frac" in values or "sample_frac" in overrides
        values.update(overrides)
        if values.get("sample_n") is not None and not frac_given:
            values["sample_frac"] = None
        return cls(**values).validate()

    def with_overrides(self, **kw) -> "HubsConfig":
        return replace(self, **kw).validate()

    def out_path(self, name: str) -> Path:
        return Path(self.out_dir) / name


def _parse_bool(raw: str) -> bool:
    v = raw.strip().lower()
    if v in ("1", "true", "yes", "on"):
        return True
    if v in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"not a boolean: {raw!r}")


def _parse_int_list(raw: str) -> tuple[int, ...]:
    return tuple(int(x) for x in raw.split(",") if x.strip())
