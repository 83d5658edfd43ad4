"""Great-circle distance and bearing helpers on decimal-degree coordinates."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from .config import EARTH_RADIUS_KM

MetricArray = NDArray[np.float64]


def _all_finite(*values: float) -> bool:
    return all(math.isfinite(value) for value in values)


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return the Haversine distance in kilometres, ``nan`` for non-finite input."""

    if not _all_finite(lat1, lon1, lat2, lon2):
        return math.nan
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return the Haversine distance in metres."""

    return haversine_km(lat1, lon1, lat2, lon2) * 1000.0


def haversine_m_array(
    lat: float,
    lon: float,
    lats: Sequence[float] | MetricArray,
    lons: Sequence[float] | MetricArray,
) -> MetricArray:
    """Return distances in metres from one point to each of ``lats``/``lons``.

    Entries are ``nan`` wherever either endpoint is non-finite.
    """

    lat_arr = np.asarray(lats, dtype=float)
    lon_arr = np.asarray(lons, dtype=float)
    if lat_arr.shape != lon_arr.shape:
        raise ValueError("Latitude and longitude arrays must have the same shape")
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return np.full(lat_arr.shape, np.nan, dtype=float)
    with np.errstate(invalid="ignore"):
        phi1 = np.radians(lat)
        phi2 = np.radians(lat_arr)
        d_phi = phi2 - phi1
        d_lambda = np.radians(lon_arr - lon)
        a = (
            np.sin(d_phi / 2.0) ** 2
            + np.cos(phi1) * np.cos(phi2) * np.sin(d_lambda / 2.0) ** 2
        )
        c = 2.0 * np.arctan2(np.sqrt(a), np.sqrt(1.0 - a))
    return EARTH_RADIUS_KM * 1000.0 * c


def initial_bearing_deg(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return the forward azimuth from point 1 to point 2 in ``[0, 360)`` degrees."""

    if not _all_finite(lat1, lon1, lat2, lon2):
        return math.nan
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_lambda = math.radians(lon2 - lon1)
    x = math.sin(d_lambda) * math.cos(phi2)
    y = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(
        d_lambda
    )
    return (math.degrees(math.atan2(x, y)) + 360.0) % 360.0


__all__ = [
    "haversine_km",
    "haversine_m",
    "haversine_m_array",
    "initial_bearing_deg",
]
