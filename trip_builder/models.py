from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

import pandas as pd


DEFAULT_GAP_MINUTES = 25.0
DEFAULT_JUMP_KM = 2.0
DEFAULT_TIMEZONE = "UTC"
MIN_TRIP_POINTS = 2

TOO_FEW_COLUMNS = "TOO_FEW_COLUMNS"
BAD_FIELDS = "BAD_FIELDS"
BAD_TIMESTAMP = "BAD_TIMESTAMP"
TRIP_DROPPED_TOO_FEW_POINTS = "TRIP_DROPPED_TOO_FEW_POINTS"

REJECT_REASONS = (TOO_FEW_COLUMNS, BAD_FIELDS, BAD_TIMESTAMP, TRIP_DROPPED_TOO_FEW_POINTS)

DEFAULT_FIELD_MAPPING = {"device_id": 0, "lat": 1, "lon": 2, "timestamp": 3}

POINT_COLUMNS = ["device_id", "lat", "lon", "timestamp", "line"]

TRIP_COLUMNS = [
    "trip_id",
    "device_id",
    "start_ts",
    "end_ts",
    "num_points",
    "total_distance_km",
    "duration_min",
    "avg_speed_kmh",
    "max_speed_kmh",
    "color",
    "coordinates",
]


@dataclass(frozen=True)
class Point:
    """A validated location sample. `timestamp` is always tz-aware UTC."""

    device_id: str
    lat: float
    lon: float
    timestamp: pd.Timestamp
    line: int = 0


@dataclass(frozen=True)
class Rejection:
    reason: str
    context: Dict[str, Any] = field(default_factory=dict)

    def to_record(self) -> Dict[str, Any]:
        return {"reason": self.reason, **self.context}
