from typing import List, Tuple

import pandas as pd
import pytest

from trip_builder.cleaning import points_to_frame
from trip_builder.models import Point


BASE_TS = pd.Timestamp("2024-05-01T08:00:00Z")


def make_points(rows: List[Tuple[str, float, float, float]]) -> pd.DataFrame:
    """(device_id, lat, lon, minutes after BASE_TS) -> cleaned points table."""
    return points_to_frame(
        Point(device_id=d, lat=lat, lon=lon, timestamp=BASE_TS + pd.Timedelta(minutes=m), line=i + 2)
        for i, (d, lat, lon, m) in enumerate(rows)
    )


@pytest.fixture
def points_factory():
    return make_points
