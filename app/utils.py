"""Utility helpers for the Streamlit trips dashboard.

Provides:
- Readers for the trips GeoJSON and the rejects log (JSON lines)
- Flattening of GeoJSON features into a trips table with a `path` column
- Color conversion for pydeck layers
- Lightweight filtering utilities to keep the app responsive

Only standard libraries + pandas/numpy here, so the helpers can be tested
without a Streamlit runtime.
"""

from __future__ import annotations

import json
import os
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from trip_builder.data_loader import load_config


DEFAULT_PATHS = {
    "trips": "outputs/trips.geojson",
    "rejects": "outputs/rejects.log",
}

TRIP_TABLE_COLUMNS = [
    "trip_id",
    "device_id",
    "start_time",
    "end_time",
    "num_points",
    "total_distance_km",
    "duration_min",
    "avg_speed_kmh",
    "max_speed_kmh",
    "color",
    "path",
]


def resolve_paths(config_path: str = "configs/config.yaml") -> Dict[str, str]:
    """Artifact paths from the config `paths` section, falling back to repo defaults."""
    cfg = load_config(config_path)
    paths = cfg.get("paths", {})
    return {
        "trips": paths.get("output") or DEFAULT_PATHS["trips"],
        "rejects": paths.get("rejects") or DEFAULT_PATHS["rejects"],
    }


def hex_to_rgb(color: str) -> Tuple[int, int, int]:
    """'#1f77b4' -> (31, 119, 180). Unparseable input yields mid grey."""
    c = str(color or "").lstrip("#")
    if len(c) != 6:
        return (128, 128, 128)
    try:
        return (int(c[0:2], 16), int(c[2:4], 16), int(c[4:6], 16))
    except ValueError:
        return (128, 128, 128)


def geojson_to_trips(geojson: Optional[Dict]) -> pd.DataFrame:
    """Flatten a trips FeatureCollection into one row per trip (properties + path)."""
    if not geojson or not geojson.get("features"):
        return pd.DataFrame(columns=TRIP_TABLE_COLUMNS)

    rows = []
    for feat in geojson["features"]:
        props = dict(feat.get("properties") or {})
        geom = feat.get("geometry") or {}
        props["path"] = geom.get("coordinates") or []
        rows.append(props)

    df = pd.DataFrame(rows)
    for c in TRIP_TABLE_COLUMNS:
        if c not in df.columns:
            df[c] = np.nan
    for c in ("start_time", "end_time"):
        df[c] = pd.to_datetime(df[c], errors="coerce", utc=True)
    df["rgb"] = df["color"].apply(lambda c: list(hex_to_rgb(c)))
    return df


def read_trips(path: str) -> Optional[pd.DataFrame]:
    """Read the trips GeoJSON if it exists, else None."""
    if not os.path.exists(path):
        return None
    with open(path, "r", encoding="utf-8") as f:
        return geojson_to_trips(json.load(f))


def read_rejects(path: str) -> Optional[pd.DataFrame]:
    """Read the rejects log (one JSON object per line) if it exists, else None."""
    if not os.path.exists(path):
        return None
    rows: List[Dict] = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                rows.append(json.loads(line))
    if not rows:
        return pd.DataFrame(columns=["reason"])
    return pd.DataFrame(rows)


def reject_counts(df_rejects: Optional[pd.DataFrame]) -> pd.DataFrame:
    """Count rejections per reason, most frequent first."""
    if df_rejects is None or df_rejects.empty or "reason" not in df_rejects.columns:
        return pd.DataFrame(columns=["reason", "count"])
    return df_rejects["reason"].value_counts().rename_axis("reason").reset_index(name="count")


def filter_trips(df_trips: pd.DataFrame, devices: Optional[List[str]] = None, min_points: int = 2) -> pd.DataFrame:
    """Keep trips of the selected devices (all when empty) with at least `min_points` points."""
    if df_trips is None or df_trips.empty:
        return df_trips
    d = df_trips
    if devices:
        d = d[d["device_id"].astype(str).isin([str(x) for x in devices])]
    return d[pd.to_numeric(d["num_points"], errors="coerce") >= int(min_points)]


def default_view_state(df_trips: pd.DataFrame) -> Tuple[float, float, int]:
    """Center (lat, lon, zoom) on the mean of all trip vertices."""
    if df_trips is None or df_trips.empty:
        return (0.0, 0.0, 1)
    coords = [c for path in df_trips["path"] for c in path]
    if not coords:
        return (0.0, 0.0, 1)
    arr = np.asarray(coords, dtype=float)
    lat = np.clip(arr[:, 1], -90, 90)
    lon = np.clip(arr[:, 0], -180, 180)
    return (float(lat.mean()), float(lon.mean()), 11)
