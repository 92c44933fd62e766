#!/usr/bin/env python3
"""
Runner: turn a CSV of device location samples into a GeoJSON of trips.

Pipeline:
- Load config (configs/config.yaml if present) and apply command-line overrides.
- Read CSV records, sniff the header, validate rows.
- Build per-device tracks, split into trips, drop trips with < 2 points.
- Number trips globally by start time and color them.
- Write the GeoJSON FeatureCollection and the rejects log (JSON lines).
- Print a JSON summary on stdout.

Usage:
    python -m trip_builder -i points.csv -o trips.geojson [-r rejects.log] [--gap 25] [--jump 2]
"""

from __future__ import annotations

import argparse
import csv
import json
import os
import sys
from typing import Any, Dict, List, Optional

import pandas as pd
import yaml

from trip_builder.cleaning import clean_records
from trip_builder.data_loader import DEFAULT_CONFIG_PATH, load_config, read_records
from trip_builder.eda import trip_map
from trip_builder.export import trips_to_geojson, write_geojson, write_rejects
from trip_builder.segmentation import build_trips


def _positive_float(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {text!r}")
    if not value > 0:
        raise argparse.ArgumentTypeError(f"must be > 0, got {text!r}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trip-builder",
        description="Clean, order, split and summarize GPS points into trips (GeoJSON LineStrings).",
        epilog="Points are processed per device_id, then merged and numbered globally by trip start time. "
        "Trips with < 2 points are dropped.",
    )
    parser.add_argument("-i", "--input", help="Input CSV (device_id,lat,lon,timestamp)")
    parser.add_argument("-o", "--out", help="Output GeoJSON path")
    parser.add_argument("-r", "--rejects", help="Rejects log path (default: rejects.log next to output)")
    parser.add_argument("--gap", type=_positive_float, help="Max time gap in minutes before a new trip (default 25)")
    parser.add_argument("--jump", type=_positive_float, help="Max straight-line jump in km before a new trip (default 2)")
    parser.add_argument("--tz", help="Timezone for naive input timestamps and output times (default UTC)")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="YAML config file")
    parser.add_argument("--figure", help="Optional PNG path for a static trip map")
    return parser


def _resolve_settings(args: argparse.Namespace, cfg: Dict[str, Any]) -> Dict[str, Any]:
    seg = cfg["segmentation"]
    paths = cfg["paths"]
    out_path = args.out or paths.get("output")
    if args.rejects:
        rejects_path = args.rejects
    elif args.out:
        # an explicit --out keeps its rejects log beside it
        rejects_path = os.path.join(os.path.dirname(args.out), "rejects.log")
    else:
        rejects_path = paths.get("rejects")
    if out_path and not rejects_path:
        rejects_path = os.path.join(os.path.dirname(out_path), "rejects.log")
    return {
        "input": args.input or paths.get("input"),
        "out": out_path,
        "rejects": rejects_path,
        "gap_minutes": float(args.gap if args.gap is not None else seg["gap_minutes"]),
        "jump_km": float(args.jump if args.jump is not None else seg["jump_km"]),
        "tz": args.tz or cfg["timezone"],
        "figure": args.figure,
    }


def _check_timezone(tz: str) -> None:
    pd.Timestamp("2000-01-01").tz_localize(tz)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        cfg = load_config(args.config)
        settings = _resolve_settings(args, cfg)
    except (OSError, yaml.YAMLError, ValueError, TypeError) as e:
        print(f"Cannot load config: {e}", file=sys.stderr)
        return 1

    if not settings["input"] or not settings["out"]:
        parser.print_usage(sys.stderr)
        print("Missing required --input and/or --out.", file=sys.stderr)
        return 1
    if settings["gap_minutes"] <= 0 or settings["jump_km"] <= 0:
        print("gap_minutes and jump_km must be > 0.", file=sys.stderr)
        return 1
    try:
        _check_timezone(settings["tz"])
    except (KeyError, ValueError) as e:
        print(f"Unknown timezone {settings['tz']!r}: {e}", file=sys.stderr)
        return 1
    if not os.path.isfile(settings["input"]):
        print(f"Input CSV not found: {settings['input']}", file=sys.stderr)
        return 1

    try:
        records, mapping = read_records(settings["input"])
    except (OSError, csv.Error) as e:
        print(f"Cannot read input: {e}", file=sys.stderr)
        return 1

    df_points, rejections = clean_records(records, mapping=mapping, tz=settings["tz"])
    df_trips, dropped = build_trips(
        df_points,
        gap_minutes=settings["gap_minutes"],
        jump_km=settings["jump_km"],
    )
    rejections.extend(dropped)

    try:
        write_rejects(rejections, settings["rejects"])
        write_geojson(trips_to_geojson(df_trips, tz=settings["tz"]), settings["out"])
        if settings["figure"]:
            trip_map(df_trips, out_path=settings["figure"])
    except OSError as e:
        print(f"Failed to write output: {e}", file=sys.stderr)
        return 1

    summary = {"trips": int(len(df_trips)), "output": settings["out"], "rejects": settings["rejects"]}
    print(json.dumps(summary))
    return 0


if __name__ == "__main__":
    sys.exit(main())
