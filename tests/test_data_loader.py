import pytest

from trip_builder.data_loader import detect_field_mapping, load_config, read_records
from trip_builder.models import DEFAULT_FIELD_MAPPING


def test_header_with_alternative_names():
    has_header, mapping = detect_field_mapping(["Timestamp", " LNG ", "latitude", "device_id"])
    assert has_header
    assert mapping == {"device_id": 3, "lat": 2, "lon": 1, "timestamp": 0}


def test_data_row_is_not_a_header():
    has_header, mapping = detect_field_mapping(["dev1", "52.5", "13.4", "2024-05-01T10:00:00Z"])
    assert not has_header
    assert mapping == DEFAULT_FIELD_MAPPING


def test_partial_header_is_treated_as_data():
    has_header, mapping = detect_field_mapping(["device_id", "lat", "x", "y"])
    assert not has_header
    assert mapping == DEFAULT_FIELD_MAPPING


def test_read_records_skips_header_and_blank_lines(tmp_path):
    p = tmp_path / "points.csv"
    p.write_text(
        "device_id,lat,lon,timestamp\n"
        "A,1,1,2024-05-01T10:00:00Z\n"
        "\n"
        "B,2\n",
        encoding="utf-8",
    )
    records, mapping = read_records(str(p))
    assert mapping == DEFAULT_FIELD_MAPPING
    assert records == [(2, ["A", "1", "1", "2024-05-01T10:00:00Z"]), (3, ["B", "2"])]


def test_read_records_without_header(tmp_path):
    p = tmp_path / "points.csv"
    p.write_text("A,1,1,2024-05-01T10:00:00Z\nA,1,1,2024-05-01T10:01:00Z\n", encoding="utf-8")
    records, _ = read_records(str(p))
    assert [line for line, _ in records] == [1, 2]


def test_load_config_defaults_when_default_file_missing(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    cfg = load_config()
    assert cfg["segmentation"] == {"gap_minutes": 25.0, "jump_km": 2.0}
    assert cfg["timezone"] == "UTC"
    assert cfg["paths"]["output"] is None


def test_load_config_reads_yaml_and_fills_gaps(tmp_path):
    p = tmp_path / "cfg.yaml"
    p.write_text("segmentation:\n  gap_minutes: 10\ntimezone: Europe/Berlin\n", encoding="utf-8")
    cfg = load_config(str(p))
    assert cfg["segmentation"]["gap_minutes"] == 10
    assert cfg["segmentation"]["jump_km"] == 2.0
    assert cfg["timezone"] == "Europe/Berlin"


def test_load_config_explicit_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "nope.yaml"))


def test_load_config_empty_section_gets_defaults(tmp_path):
    p = tmp_path / "cfg.yaml"
    p.write_text("segmentation:\npaths:\n", encoding="utf-8")
    cfg = load_config(str(p))
    assert cfg["segmentation"]["gap_minutes"] == 25.0
    assert cfg["paths"]["output"] is None


@pytest.mark.parametrize("body", ["- 1\n- 2\n", "segmentation: 5\n", "paths: [a, b]\n"])
def test_load_config_rejects_non_mapping_sections(tmp_path, body):
    p = tmp_path / "cfg.yaml"
    p.write_text(body, encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(str(p))
