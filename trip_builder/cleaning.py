from __future__ import annotations

import math
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from trip_builder.models import (
    BAD_FIELDS,
    BAD_TIMESTAMP,
    DEFAULT_FIELD_MAPPING,
    DEFAULT_TIMEZONE,
    POINT_COLUMNS,
    TOO_FEW_COLUMNS,
    Point,
    Rejection,
)


def _safe_float(x: Optional[str]) -> Optional[float]:
    try:
        if x is None:
            return None
        value = float(str(x).strip())
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


def parse_timestamp(text: str, tz: str = DEFAULT_TIMEZONE) -> Optional[pd.Timestamp]:
    """
    Parse timestamp text into a tz-aware UTC Timestamp.

    Text without an offset is read as local time in `tz`. Returns None when the
    text cannot be parsed or names an ambiguous local time.
    """
    try:
        ts = pd.Timestamp(text)
    except (ValueError, OverflowError):
        return None
    if pd.isna(ts):
        return None
    if ts.tzinfo is None:
        ts = ts.tz_localize(tz, ambiguous="NaT", nonexistent="shift_forward")
        if pd.isna(ts):
            return None
    return ts.tz_convert("UTC")


def validate_record(
    row: Sequence[str],
    line: int,
    mapping: Mapping[str, int] = DEFAULT_FIELD_MAPPING,
    tz: str = DEFAULT_TIMEZONE,
) -> Union[Point, Rejection]:
    """
    Turn one raw CSV row into a Point, or a Rejection explaining why not.

    Checks run in order and the first failure wins:
      - TOO_FEW_COLUMNS: the row is shorter than the mapping requires
      - BAD_FIELDS: empty device id or timestamp, non-numeric or out-of-range coordinates
      - BAD_TIMESTAMP: timestamp text that does not parse
    """
    required = max(mapping.values()) + 1
    if len(row) < required:
        return Rejection(TOO_FEW_COLUMNS, {"line": line, "row": list(row)})

    device_id = str(row[mapping["device_id"]]).strip()
    lat_raw = row[mapping["lat"]]
    lon_raw = row[mapping["lon"]]
    ts_text = str(row[mapping["timestamp"]]).strip()

    lat = _safe_float(lat_raw)
    lon = _safe_float(lon_raw)
    if (
        not device_id
        or not ts_text
        or lat is None
        or lon is None
        or not -90.0 <= lat <= 90.0
        or not -180.0 <= lon <= 180.0
    ):
        return Rejection(
            BAD_FIELDS,
            {"line": line, "device_id": device_id, "lat": lat_raw, "lon": lon_raw, "timestamp": ts_text},
        )

    ts = parse_timestamp(ts_text, tz=tz)
    if ts is None:
        return Rejection(BAD_TIMESTAMP, {"line": line, "value": ts_text})

    return Point(device_id=device_id, lat=lat, lon=lon, timestamp=ts, line=line)


def points_to_frame(points: Iterable[Point]) -> pd.DataFrame:
    rows = [
        {"device_id": p.device_id, "lat": p.lat, "lon": p.lon, "timestamp": p.timestamp, "line": p.line}
        for p in points
    ]
    if not rows:
        return pd.DataFrame(
            {
                "device_id": pd.Series(dtype="object"),
                "lat": pd.Series(dtype="float64"),
                "lon": pd.Series(dtype="float64"),
                "timestamp": pd.Series(dtype="datetime64[ns, UTC]"),
                "line": pd.Series(dtype="int64"),
            }
        )
    return pd.DataFrame(rows, columns=POINT_COLUMNS)


def clean_records(
    records: Iterable[Tuple[int, Sequence[str]]],
    mapping: Mapping[str, int] = DEFAULT_FIELD_MAPPING,
    tz: str = DEFAULT_TIMEZONE,
) -> Tuple[pd.DataFrame, List[Rejection]]:
    """
    Validate every (line, row) record.

    Returns the points table (input order preserved) and the rejections in the
    order they were encountered.
    """
    points: List[Point] = []
    rejections: List[Rejection] = []
    total = 0
    for line, row in records:
        total += 1
        result = validate_record(row, line, mapping=mapping, tz=tz)
        if isinstance(result, Rejection):
            rejections.append(result)
        else:
            points.append(result)

    by_reason: Dict[str, int] = {}
    for r in rejections:
        by_reason[r.reason] = by_reason.get(r.reason, 0) + 1
    print(f"[cleaning] rows={total}, kept={len(points)}, rejected={len(rejections)} {by_reason}")
    return points_to_frame(points), rejections
