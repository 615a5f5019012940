"""Translate and rotate primitives for selected waypoints.

These functions compute new point tuples only; the snapshot, preview,
commit and cancel bookkeeping lives in :mod:`waypoint_composer.session`.

Rotation works on the WGS 84 ellipsoid: each point keeps its geodesic
distance from the pivot while its azimuth from the pivot is turned.  Angles
follow the mathematical convention (positive = counter-clockwise when seen
from above), so a positive angle *decreases* the compass azimuth.
"""

from __future__ import annotations

import logging
from typing import Literal, Sequence

import numpy as np
import pyproj

from waypoint_composer.config import config
from waypoint_composer.flight_plan import (
    ColumnMapping,
    FeaturePoint,
    LonLat,
    TranslationDelta,
    TranslationLock,
)

logger = logging.getLogger(__name__)

TranslationAxis = Literal["d_lat", "d_lon", "d_alt"]

_geod = pyproj.Geod(ellps=config.ELLIPSOID)


# ---------------------------------------------------------------------------
# Translation
# ---------------------------------------------------------------------------


def apply_locks(delta: TranslationDelta, lock: TranslationLock) -> TranslationDelta:
    """Zero the components of ``delta`` whose axis is locked."""
    return TranslationDelta(
        d_lat=0.0 if lock.lat else delta.d_lat,
        d_lon=0.0 if lock.lon else delta.d_lon,
        d_alt=0.0 if lock.alt else delta.d_alt,
    )


def accumulate(total: TranslationDelta, delta: TranslationDelta) -> TranslationDelta:
    return TranslationDelta(
        d_lat=total.d_lat + delta.d_lat,
        d_lon=total.d_lon + delta.d_lon,
        d_alt=total.d_alt + delta.d_alt,
    )


def incremental_delta(
    total: TranslationDelta, axis: TranslationAxis, value: float
) -> TranslationDelta:
    """Delta that moves the cumulative ``total`` on ``axis`` to ``value``."""
    change = value - getattr(total, axis)
    return TranslationDelta(**{axis: change})


def translate_points(
    points: Sequence[FeaturePoint],
    selected: frozenset[str],
    delta: TranslationDelta,
    mapping: ColumnMapping | None = None,
) -> tuple[FeaturePoint, ...]:
    """Shift every selected point by ``delta``; order is preserved."""
    return tuple(
        p.with_fields(
            mapping,
            lat=p.lat + delta.d_lat,
            lon=p.lon + delta.d_lon,
            alt=p.alt + delta.d_alt,
        )
        if p.id in selected
        else p
        for p in points
    )


# ---------------------------------------------------------------------------
# Rotation
# ---------------------------------------------------------------------------


def rotate_lon_lat(
    lon: np.ndarray, lat: np.ndarray, center: LonLat, angle_deg: float
) -> tuple[np.ndarray, np.ndarray]:
    """Rotate positions about ``center`` by ``angle_deg`` (counter-clockwise)."""
    n = len(lon)
    c_lon = np.full(n, center.lon, dtype=np.float64)
    c_lat = np.full(n, center.lat, dtype=np.float64)

    azimuth, _back_azimuth, distance = _geod.inv(c_lon, c_lat, lon, lat)
    new_lon, new_lat, _ = _geod.fwd(c_lon, c_lat, azimuth - angle_deg, distance)
    return np.asarray(new_lon), np.asarray(new_lat)


def rotate_points(
    points: Sequence[FeaturePoint],
    selected: frozenset[str],
    center: LonLat,
    angle_deg: float,
    mapping: ColumnMapping | None = None,
) -> tuple[FeaturePoint, ...]:
    """Rotate the selected points about ``center``; order is preserved."""
    indices = [i for i, p in enumerate(points) if p.id in selected]
    if not indices or angle_deg == 0:
        return tuple(points)

    lon = np.array([points[i].lon for i in indices], dtype=np.float64)
    lat = np.array([points[i].lat for i in indices], dtype=np.float64)
    new_lon, new_lat = rotate_lon_lat(lon, lat, center, angle_deg)

    rotated = list(points)
    for k, i in enumerate(indices):
        rotated[i] = points[i].with_fields(
            mapping, lon=float(new_lon[k]), lat=float(new_lat[k])
        )
    logger.debug(
        f"Rotated {len(indices)} points by {angle_deg:.2f}° about "
        f"({center.lon:.6f}, {center.lat:.6f})"
    )
    return tuple(rotated)
