from __future__ import annotations

from typing import Callable, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from trip_builder.colors import palette_color
from trip_builder.models import (
    DEFAULT_GAP_MINUTES,
    DEFAULT_JUMP_KM,
    MIN_TRIP_POINTS,
    TRIP_COLUMNS,
    TRIP_DROPPED_TOO_FEW_POINTS,
    Rejection,
)
from trip_builder.preprocessing import build_device_tracks, haversine_distance_km


def segment_track(
    track: pd.DataFrame,
    gap_minutes: float = DEFAULT_GAP_MINUTES,
    jump_km: float = DEFAULT_JUMP_KM,
) -> pd.DataFrame:
    """
    Split one device's time-ordered track into trip candidates.

    A point stays in the current candidate when, relative to the previous point,
    the time gap is <= gap_minutes and the straight-line jump is <= jump_km.
    Otherwise it opens a new candidate. Nothing is dropped here.

    Adds columns:
        trip_seq (int): 0-based candidate number within the track
        dt_s (float): seconds since the previous point of the same candidate (0 on the first point)
        dist_km (float): distance from the previous point of the same candidate (0 on the first point)
        speed_kmh (float): segment speed, 0 where dt_s <= 0 or on the first point

    Assumes gap_minutes > 0 and jump_km > 0; callers validate this.
    """
    df = track.copy()
    if df.empty:
        df["trip_seq"] = pd.Series(dtype="int64")
        df["dt_s"] = pd.Series(dtype="float64")
        df["dist_km"] = pd.Series(dtype="float64")
        df["speed_kmh"] = pd.Series(dtype="float64")
        return df

    lat_prev = df["lat"].shift(1)
    lon_prev = df["lon"].shift(1)
    ts_prev = df["timestamp"].shift(1)

    dist_km = haversine_distance_km(
        lat_prev.to_numpy(dtype=float),
        lon_prev.to_numpy(dtype=float),
        df["lat"].to_numpy(dtype=float),
        df["lon"].to_numpy(dtype=float),
    )
    dist_km = np.where(np.isfinite(dist_km), dist_km, 0.0)
    dt_s = (df["timestamp"] - ts_prev).dt.total_seconds().fillna(0.0).to_numpy(dtype=float)

    split = (dt_s > float(gap_minutes) * 60.0) | (dist_km > float(jump_km))
    split[0] = True
    # pairs straddling a boundary belong to no candidate
    joined = ~split

    with np.errstate(divide="ignore", invalid="ignore"):
        speed_kmh = np.where(joined & (dt_s > 0), dist_km / (dt_s / 3600.0), 0.0)

    df["trip_seq"] = (np.cumsum(split) - 1).astype(int)
    df["dt_s"] = np.where(joined, dt_s, 0.0)
    df["dist_km"] = np.where(joined, dist_km, 0.0)
    df["speed_kmh"] = speed_kmh
    return df


def aggregate_trips(df_segmented: pd.DataFrame) -> Tuple[pd.DataFrame, List[Rejection]]:
    """
    Summarize each candidate of a segmented track and keep the viable ones.

    A candidate needs at least MIN_TRIP_POINTS points to form a path; shorter
    ones become TRIP_DROPPED_TOO_FEW_POINTS rejections. Returned trips are not
    yet numbered (trip_id and color are left empty).
    """
    rows = []
    rejections: List[Rejection] = []
    if df_segmented is None or df_segmented.empty:
        return pd.DataFrame(columns=TRIP_COLUMNS), rejections

    for _, g in df_segmented.groupby("trip_seq", sort=True):
        device_id = str(g["device_id"].iloc[0])
        start_ts = g["timestamp"].iloc[0]
        end_ts = g["timestamp"].iloc[-1]

        if len(g) < MIN_TRIP_POINTS:
            rejections.append(
                Rejection(
                    TRIP_DROPPED_TOO_FEW_POINTS,
                    {"device_id": device_id, "start_ts": start_ts.isoformat(), "line": int(g["line"].iloc[0])},
                )
            )
            continue

        total_km = float(g["dist_km"].sum())
        duration_min = max(0.0, (end_ts - start_ts).total_seconds() / 60.0)
        avg_speed_kmh = total_km / (duration_min / 60.0) if duration_min > 0 else 0.0

        rows.append(
            {
                "trip_id": None,
                "device_id": device_id,
                "start_ts": start_ts,
                "end_ts": end_ts,
                "num_points": int(len(g)),
                "total_distance_km": total_km,
                "duration_min": duration_min,
                "avg_speed_kmh": avg_speed_kmh,
                "max_speed_kmh": float(g["speed_kmh"].max()),
                "color": None,
                "coordinates": g[["lon", "lat"]].to_numpy(dtype=float).tolist(),
            }
        )

    return pd.DataFrame(rows, columns=TRIP_COLUMNS), rejections


def number_trips(
    trip_tables: List[pd.DataFrame],
    color_for_rank: Callable[[int], str] = palette_color,
) -> pd.DataFrame:
    """
    Merge per-device trip tables and number them globally by start time.

    The sort is stable: trips starting at the same instant keep the order in
    which they were passed (device order, then chronological within a device).
    Assigns trip_id "trip_<rank>" (1-based) and a color for the 0-based rank.
    """
    tables = [t for t in trip_tables if t is not None and not t.empty]
    if not tables:
        return pd.DataFrame(columns=TRIP_COLUMNS)

    trips = pd.concat(tables, ignore_index=True)
    trips = trips.sort_values("start_ts", kind="mergesort").reset_index(drop=True)
    ranks = range(len(trips))
    trips["trip_id"] = [f"trip_{i + 1}" for i in ranks]
    trips["color"] = [color_for_rank(i) for i in ranks]
    return trips[TRIP_COLUMNS]


def build_trips(
    df_points: pd.DataFrame,
    gap_minutes: float = DEFAULT_GAP_MINUTES,
    jump_km: float = DEFAULT_JUMP_KM,
    color_for_rank: Optional[Callable[[int], str]] = None,
) -> Tuple[pd.DataFrame, List[Rejection]]:
    """
    Run track building, segmentation, aggregation and numbering on cleaned points.

    Devices are processed independently; only the final numbering looks across
    devices. Returns (trips, rejections) where rejections are the dropped
    candidates in device order.
    """
    tracks: Dict[str, pd.DataFrame] = build_device_tracks(df_points)
    per_device: List[pd.DataFrame] = []
    rejections: List[Rejection] = []
    candidates = 0

    for track in tracks.values():
        segmented = segment_track(track, gap_minutes=gap_minutes, jump_km=jump_km)
        candidates += int(segmented["trip_seq"].nunique())
        trips, dropped = aggregate_trips(segmented)
        per_device.append(trips)
        rejections.extend(dropped)

    trips = number_trips(per_device, color_for_rank=color_for_rank or palette_color)
    print(
        f"[segmentation] Trip segmentation: gap_minutes={gap_minutes}, jump_km={jump_km}, "
        f"candidates={candidates}, trips_dropped={len(rejections)}, trips_kept={len(trips)}"
    )
    return trips, rejections
