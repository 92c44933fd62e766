from __future__ import annotations

import json
import os
from typing import Any, Dict, Iterable, List

import pandas as pd

from trip_builder.models import DEFAULT_TIMEZONE, Rejection


def _ensure_dirs(path: str) -> None:
    d = os.path.dirname(path)
    if d:
        os.makedirs(d, exist_ok=True)


def format_timestamp(ts: pd.Timestamp, tz: str = DEFAULT_TIMEZONE) -> str:
    """ISO-8601 text with an explicit offset, e.g. 2024-05-01T08:00:00+00:00."""
    ts = pd.Timestamp(ts)
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    return ts.tz_convert(tz).isoformat()


def trip_to_feature(trip: Dict[str, Any], tz: str = DEFAULT_TIMEZONE) -> Dict[str, Any]:
    return {
        "type": "Feature",
        "geometry": {
            "type": "LineString",
            "coordinates": [[float(lon), float(lat)] for lon, lat in trip["coordinates"]],
        },
        "properties": {
            "trip_id": trip["trip_id"],
            "device_id": trip["device_id"],
            "start_time": format_timestamp(trip["start_ts"], tz),
            "end_time": format_timestamp(trip["end_ts"], tz),
            "num_points": int(trip["num_points"]),
            "total_distance_km": round(float(trip["total_distance_km"]), 3),
            "duration_min": round(float(trip["duration_min"]), 1),
            "avg_speed_kmh": round(float(trip["avg_speed_kmh"]), 2),
            "max_speed_kmh": round(float(trip["max_speed_kmh"]), 2),
            "color": trip["color"],
        },
    }


def trips_to_geojson(df_trips: pd.DataFrame, tz: str = DEFAULT_TIMEZONE) -> Dict[str, Any]:
    """
    Render numbered trips as a GeoJSON FeatureCollection, one LineString per trip,
    in trip_id order as given by the table.
    """
    features: List[Dict[str, Any]] = []
    if df_trips is not None and not df_trips.empty:
        features = [trip_to_feature(row, tz) for row in df_trips.to_dict(orient="records")]
    return {"type": "FeatureCollection", "features": features}


def write_geojson(geojson: Dict[str, Any], out_path: str) -> str:
    _ensure_dirs(out_path)
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(geojson, f, ensure_ascii=False)
    print(f"[export] GeoJSON with {len(geojson.get('features', []))} trips written to '{out_path}'")
    return out_path


def write_rejects(rejections: Iterable[Rejection], out_path: str) -> int:
    """
    Write rejections as JSON lines (one object per rejection, reason first).
    Returns the number of lines written.
    """
    _ensure_dirs(out_path)
    count = 0
    with open(out_path, "w", encoding="utf-8") as f:
        for r in rejections:
            f.write(json.dumps(r.to_record(), ensure_ascii=False, default=str) + "\n")
            count += 1
    print(f"[export] {count} rejections written to '{out_path}'")
    return count
