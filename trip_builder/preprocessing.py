from __future__ import annotations

from typing import Dict

import numpy as np
import pandas as pd

from trip_builder.models import Point


EARTH_RADIUS_KM = 6371.0


# -------------------------------
# Utilities
# -------------------------------
def haversine_distance_km(lat1, lon1, lat2, lon2):
    """
    Vectorized haversine distance between two arrays (or scalars) of lat/lon points.
    Args:
        lat1, lon1, lat2, lon2: arrays or floats in degrees
    Returns:
        distances in kilometers (np.ndarray, or np.float64 for scalar input)
    """
    lat1_rad = np.radians(np.asarray(lat1, dtype=float))
    lon1_rad = np.radians(np.asarray(lon1, dtype=float))
    lat2_rad = np.radians(np.asarray(lat2, dtype=float))
    lon2_rad = np.radians(np.asarray(lon2, dtype=float))

    dlat = lat2_rad - lat1_rad
    dlon = lon2_rad - lon1_rad

    a = np.sin(dlat / 2.0) ** 2 + np.cos(lat1_rad) * np.cos(lat2_rad) * np.sin(dlon / 2.0) ** 2
    # rounding can push a slightly past 1 for antipodal points
    a = np.clip(a, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_km(a: Point, b: Point) -> float:
    """Great-circle distance between two points in kilometers."""
    return float(haversine_distance_km(a.lat, a.lon, b.lat, b.lon))


# -------------------------------
# Device tracks
# -------------------------------
def build_device_tracks(df_points: pd.DataFrame) -> Dict[str, pd.DataFrame]:
    """
    Group cleaned points by device_id and order each group by timestamp.

    Devices appear in the order they were first seen. The sort is stable, so
    points sharing a timestamp keep their input order. No point is dropped.
    """
    tracks: Dict[str, pd.DataFrame] = {}
    if df_points is None or df_points.empty:
        return tracks

    for device_id, g in df_points.groupby("device_id", sort=False):
        tracks[str(device_id)] = g.sort_values("timestamp", kind="mergesort").reset_index(drop=True)

    print(f"[preprocessing] Built device tracks: devices={len(tracks)}, points={len(df_points)}")
    return tracks
