"""Projection and resampling helpers shared by the route comparison."""

from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np
from numpy.typing import NDArray
from pyproj import CRS, Transformer
from pyproj.aoi import AreaOfInterest
from pyproj.database import query_utm_crs_info

from .models import LatLon

MetricArray = NDArray[np.float64]


def reproject_to_local_crs(
    points: Sequence[LatLon],
) -> Tuple[MetricArray, Transformer]:
    """Project lat/lon points into a local metric coordinate system."""

    if not points:
        raise ValueError("Cannot reproject an empty point collection")
    transformer = build_local_transformer(points)
    metric = project_points(points, transformer)
    return metric, transformer


def build_local_transformer(points: Sequence[LatLon]) -> Transformer:
    """Build a WGS84 -> UTM transformer for the zone covering ``points``.

    Falls back to Web Mercator when the PROJ database has no UTM zone for the
    area (e.g. polar tracks).
    """

    lats = np.asarray([pt[0] for pt in points], dtype=float)
    lons = np.asarray([pt[1] for pt in points], dtype=float)
    centre_lat = float(np.mean(lats))
    centre_lon = float(np.mean(lons))
    matches = query_utm_crs_info(
        datum_name="WGS 84",
        area_of_interest=AreaOfInterest(
            west_lon_degree=centre_lon,
            south_lat_degree=centre_lat,
            east_lon_degree=centre_lon,
            north_lat_degree=centre_lat,
        ),
    )
    target_crs = CRS.from_epsg(matches[0].code) if matches else CRS.from_epsg(3857)
    return Transformer.from_crs(CRS.from_epsg(4326), target_crs, always_xy=True)


def project_points(points: Sequence[LatLon], transformer: Transformer) -> MetricArray:
    """Project lat/lon pairs through an existing transformer."""

    if not points:
        return np.empty((0, 2), dtype=float)
    lats = np.asarray([pt[0] for pt in points], dtype=float)
    lons = np.asarray([pt[1] for pt in points], dtype=float)
    xs, ys = transformer.transform(lons, lats)
    return np.column_stack((xs, ys)).astype(float, copy=False)


def resample_series(values: Sequence[float], length: int) -> MetricArray:
    """Linearly interpolate ``values`` onto ``length`` evenly spaced samples."""

    array = np.asarray(values, dtype=float)
    if length <= 0 or array.size == 0:
        return np.empty(0, dtype=float)
    if array.size == length:
        return array.copy()
    if array.size == 1:
        return np.repeat(array, length)
    positions = np.linspace(0.0, array.size - 1, num=length)
    return np.interp(positions, np.arange(array.size, dtype=float), array)


__all__ = [
    "build_local_transformer",
    "project_points",
    "reproject_to_local_crs",
    "resample_series",
]
