# taxihubs/cluster/scaling.py

from __future__ import annotations

import numpy as np
from sklearn.preprocessing import StandardScaler


SCALING_METHODS = ("standard", "equirect", "none")


class CoordinateScaler:
    """
    Maps (longitude, latitude) to the plane k-means runs in.

      standard  - zero mean, unit variance per axis (sklearn StandardScaler)
      equirect  - centred on the mean, longitude shrunk by cos(mean lat) so
                  euclidean distance follows ground distance (in degrees of lat)
      none      - raw degrees

    Fit it once (on the sample) and reuse it for the full run, otherwise the
    sample centroids are not valid starting points.
    """

    def __init__(self, method: str = "standard"):
        if method not in SCALING_METHODS:
            raise ValueError(f"Unknown scaling method {method!r}; expected one of {SCALING_METHODS}")
        self.method = method
        self._scaler: StandardScaler | None = None
        self._center: np.ndarray | None = None
        self._lon_factor = 1.0
        self.fitted = False

    @staticmethod
    def _stack(lon, lat) -> np.ndarray:
        lon = np.asarray(lon, dtype=np.float64)
        lat = np.asarray(lat, dtype=np.float64)
        if lon.shape != lat.shape:
            raise ValueError(f"lon/lat shape mismatch: {lon.shape} vs {lat.shape}")
        return np.column_stack([lon, lat])

    def fit(self, lon, lat) -> "CoordinateScaler":
        X = self._stack(lon, lat)
        if len(X) == 0:
            raise ValueError("Cannot fit a scaler on zero points")

        if self.method == "standard":
            self._scaler = StandardScaler().fit(X)
        elif self.method == "equirect":
            self._center = X.mean(axis=0)
            self._lon_factor = float(np.cos(np.radians(self._center[1])))

        self.fitted = True
        return self

    def _check_fitted(self) -> None:
        if not self.fitted:
            raise RuntimeError("CoordinateScaler used before fit()")

    def transform(self, lon, lat) -> np.ndarray:
        self._check_fitted()
        X = self._stack(lon, lat)

        if self.method == "standard":
            return self._scaler.transform(X)
        if self.method == "equirect":
            out = X - self._center
            out[:, 0] *= self._lon_factor
            return out
        return X

    def fit_transform(self, lon, lat) -> np.ndarray:
        return self.fit(lon, lat).transform(lon, lat)

    def inverse_transform(self, xy) -> np.ndarray:
        """(n, 2) rescaled -> (n, 2) of (longitude, latitude)."""
        self._check_fitted()
        xy = np.asarray(xy, dtype=np.float64).reshape(-1, 2)

        if self.method == "standard":
            return self._scaler.inverse_transform(xy)
        if self.method == "equirect":
            out = xy.copy()
            out[:, 0] /= self._lon_factor
            return out + self._center
        return xy.copy()
