from __future__ import annotations

import csv
import os
from typing import Any, Dict, List, Optional, Tuple

import yaml

from trip_builder.models import (
    DEFAULT_FIELD_MAPPING,
    DEFAULT_GAP_MINUTES,
    DEFAULT_JUMP_KM,
    DEFAULT_TIMEZONE,
)


DEFAULT_CONFIG_PATH = "configs/config.yaml"

# canonical field -> accepted header spellings
HEADER_VARIANTS = {
    "device_id": ("device_id",),
    "lat": ("lat", "latitude"),
    "lon": ("lon", "lng", "longitude"),
    "timestamp": ("timestamp", "time", "datetime"),
}
MIN_HEADER_MATCHES = 3


def load_config(config_path: Optional[str] = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """
    Read YAML configuration and return as a dict with defaults filled in.

    A missing file at the default location yields the defaults; an explicitly
    requested file that does not exist raises FileNotFoundError. A document
    whose top level or `segmentation`/`paths` sections are not mappings raises
    ValueError.
    """
    cfg: Dict[str, Any] = {}
    if config_path:
        if os.path.exists(config_path):
            with open(config_path, "r", encoding="utf-8") as f:
                cfg = yaml.safe_load(f) or {}
        elif config_path != DEFAULT_CONFIG_PATH:
            raise FileNotFoundError(f"Config file not found: {config_path}")

    if not isinstance(cfg, dict):
        raise ValueError(f"Config must be a mapping, got {type(cfg).__name__}")
    for section in ("segmentation", "paths"):
        if cfg.get(section) is None:
            cfg[section] = {}
        elif not isinstance(cfg[section], dict):
            raise ValueError(f"Config section '{section}' must be a mapping")

    seg = cfg["segmentation"]
    seg.setdefault("gap_minutes", DEFAULT_GAP_MINUTES)
    seg.setdefault("jump_km", DEFAULT_JUMP_KM)
    cfg.setdefault("timezone", DEFAULT_TIMEZONE)
    paths = cfg["paths"]
    paths.setdefault("output", None)
    paths.setdefault("rejects", None)
    return cfg


def detect_field_mapping(row: List[str]) -> Tuple[bool, Dict[str, int]]:
    """
    Inspect the first row of a CSV and decide whether it is a header.

    Returns (has_header, mapping). When the row is not a header the default
    positional mapping device_id, lat, lon, timestamp is returned.
    """
    mapping = dict(DEFAULT_FIELD_MAPPING)
    found = 0
    for idx, value in enumerate(row):
        name = value.strip().lower()
        for canonical, variants in HEADER_VARIANTS.items():
            if name in variants:
                mapping[canonical] = idx
                found += 1
    if found >= MIN_HEADER_MATCHES:
        return True, mapping
    return False, dict(DEFAULT_FIELD_MAPPING)


def read_records(csv_path: str) -> Tuple[List[Tuple[int, List[str]]], Dict[str, int]]:
    """
    Read raw CSV rows as (line_number, fields) tuples plus the field mapping.

    Blank lines are skipped and do not count towards line numbers. The header,
    when present, is line 1 and is not returned as a record.
    """
    records: List[Tuple[int, List[str]]] = []
    mapping = dict(DEFAULT_FIELD_MAPPING)
    line = 0
    header_checked = False

    with open(csv_path, "r", encoding="utf-8", errors="replace", newline="") as f:
        for row in csv.reader(f):
            if not row:
                continue
            line += 1
            if not header_checked:
                header_checked = True
                has_header, mapping = detect_field_mapping(row)
                if has_header:
                    continue
            records.append((line, row))

    print(f"[data_loader] Read '{os.path.basename(csv_path)}': records={len(records)}, mapping={mapping}")
    return records, mapping
