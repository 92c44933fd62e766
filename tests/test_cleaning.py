import pandas as pd

from trip_builder.cleaning import clean_records, parse_timestamp, validate_record
from trip_builder.models import BAD_FIELDS, BAD_TIMESTAMP, TOO_FEW_COLUMNS, Point, Rejection


def test_valid_row_becomes_point():
    p = validate_record([" dev1 ", "52.5", "13.4", "2024-05-01T10:00:00+02:00"], line=3)
    assert isinstance(p, Point)
    assert p.device_id == "dev1"
    assert p.lat == 52.5 and p.lon == 13.4
    assert p.timestamp == pd.Timestamp("2024-05-01T08:00:00Z")
    assert p.line == 3


def test_too_few_columns():
    r = validate_record(["dev1", "52.5", "13.4"], line=2)
    assert isinstance(r, Rejection)
    assert r.reason == TOO_FEW_COLUMNS
    assert r.context == {"line": 2, "row": ["dev1", "52.5", "13.4"]}


def test_too_few_columns_uses_mapping_width():
    mapping = {"device_id": 0, "lat": 1, "lon": 2, "timestamp": 4}
    r = validate_record(["dev1", "52.5", "13.4", "x"], line=2, mapping=mapping)
    assert r.reason == TOO_FEW_COLUMNS


def test_latitude_out_of_range_is_bad_fields_even_with_valid_timestamp():
    r = validate_record(["X", "91", "0", "2024-05-01T10:00:00Z"], line=5)
    assert isinstance(r, Rejection)
    assert r.reason == BAD_FIELDS
    assert r.context["lat"] == "91"


def test_bad_fields_variants():
    rows = [
        ["", "1", "1", "2024-05-01T10:00:00Z"],
        ["X", "1", "1", "   "],
        ["X", "abc", "1", "2024-05-01T10:00:00Z"],
        ["X", "1", "181", "2024-05-01T10:00:00Z"],
        ["X", "nan", "1", "2024-05-01T10:00:00Z"],
        ["X", "1", "inf", "2024-05-01T10:00:00Z"],
    ]
    for row in rows:
        assert validate_record(row, line=1).reason == BAD_FIELDS


def test_bad_fields_checked_before_timestamp():
    r = validate_record(["X", "100", "0", "not a time"], line=1)
    assert r.reason == BAD_FIELDS


def test_bad_timestamp():
    r = validate_record(["X", "1", "1", "not a time"], line=7)
    assert r.reason == BAD_TIMESTAMP
    assert r.context == {"line": 7, "value": "not a time"}


def test_boundary_coordinates_are_valid():
    assert isinstance(validate_record(["X", "-90", "180", "2024-05-01T10:00:00Z"], line=1), Point)
    assert isinstance(validate_record(["X", "90", "-180", "2024-05-01T10:00:00Z"], line=1), Point)


def test_naive_timestamp_uses_configured_zone():
    ts = parse_timestamp("2024-01-15 12:00:00", tz="Europe/Berlin")
    assert ts == pd.Timestamp("2024-01-15T11:00:00Z")
    assert str(ts.tz) == "UTC"


def test_naive_timestamp_defaults_to_utc():
    assert parse_timestamp("2024-01-15T12:00:00") == pd.Timestamp("2024-01-15T12:00:00Z")


def test_ambiguous_local_time_is_rejected():
    # 02:30 happens twice when Berlin leaves summer time
    assert parse_timestamp("2024-10-27 02:30:00", tz="Europe/Berlin") is None


def test_clean_records_keeps_order_and_collects_rejections():
    records = [
        (2, ["A", "1", "1", "2024-05-01T10:00:00Z"]),
        (3, ["A", "1"]),
        (4, ["B", "2", "2", "2024-05-01T09:00:00Z"]),
        (5, ["B", "2", "2", "garbage"]),
    ]
    df, rejections = clean_records(records)
    assert df["device_id"].tolist() == ["A", "B"]
    assert df["line"].tolist() == [2, 4]
    assert [r.reason for r in rejections] == [TOO_FEW_COLUMNS, BAD_TIMESTAMP]


def test_clean_records_empty():
    df, rejections = clean_records([])
    assert df.empty
    assert list(df.columns) == ["device_id", "lat", "lon", "timestamp", "line"]
    assert rejections == []
