"""Command-line utility for analysing exported CGM readings offline.

The input is a JSON file holding either a list of readings or an object with a
``readings`` list::

    [
        {"timestamp": "2025-01-01T07:05:00", "value": 112, "trend": "Flat"},
        ...
    ]

``glucose_mg_dl`` is accepted in place of ``value`` and ``trend_arrow`` in place
of ``trend``. Timestamps are read as local wall-clock time; an offset, if
present, is kept but not converted. Results are written as JSON to stdout or to
``--output`` if provided.
"""
from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any, Mapping, Sequence

import pandas as pd

from .analyzer import PatternAnalyzer
from .config import RangeSettings
from .insights import insights_from_stats
from .models import AnalysisPeriod, Reading, TargetRange, TrendArrow
from .stats import calculate_stats


def _record_to_reading(record: Any, target_range: TargetRange) -> Reading:
    """Convert a JSON record into a ``Reading`` flagged against ``target_range``."""

    if not isinstance(record, Mapping):
        raise TypeError("Unsupported reading record type; expected a JSON object")
    value = record.get("value", record.get("glucose_mg_dl"))
    if value is None:
        raise ValueError("Reading record missing 'value'")
    timestamp = record.get("timestamp")
    if timestamp is None:
        raise ValueError("Reading record missing 'timestamp'")

    value = float(value)
    band = target_range.classify(value)
    return Reading(
        value=value,
        timestamp=pd.Timestamp(timestamp).to_pydatetime(),
        trend=TrendArrow.parse(record.get("trend", record.get("trend_arrow"))),
        is_high=band == "above",
        is_low=band == "below",
    )


def load_readings(path: Path, target_range: TargetRange) -> list[Reading]:
    """Load readings from ``path``, ascending by timestamp."""

    with path.open() as handle:
        payload = json.load(handle)
    records: Sequence[Any] = payload.get("readings", []) if isinstance(payload, Mapping) else payload
    readings = [_record_to_reading(record, target_range) for record in records]
    return sorted(readings, key=lambda reading: reading.timestamp)


def analyse(readings: Sequence[Reading], target_range: TargetRange, period: AnalysisPeriod | str) -> dict:
    stats = calculate_stats(readings, target_range)
    trends = PatternAnalyzer(target_range).analyze_trends(readings, period)
    return {
        "total_readings": len(readings),
        "target_range": target_range.to_dict(),
        "stats": stats.to_dict(),
        "trends": trends.to_dict(),
        "insights": insights_from_stats(stats),
    }


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Analyse exported CGM readings")
    parser.add_argument("readings", type=Path, help="JSON file with glucose readings")
    parser.add_argument("--low", type=float, default=70.0, help="Target range low in mg/dL (default 70)")
    parser.add_argument("--high", type=float, default=180.0, help="Target range high in mg/dL (default 180)")
    parser.add_argument(
        "--period",
        choices=[period.value for period in AnalysisPeriod],
        default=AnalysisPeriod.WEEKLY.value,
        help="Trend analysis period (default weekly)",
    )
    parser.add_argument("--output", type=Path, help="Optional output JSON file")
    parser.add_argument("--indent", type=int, default=None, help="Pretty-print JSON with the given indent")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:  # pragma: no cover - CLI entry point
    args = parse_args(argv)
    ranges = RangeSettings(target_low=args.low, target_high=args.high)
    target_range = TargetRange(low=ranges.target_low, high=ranges.target_high)

    readings = load_readings(args.readings, target_range)
    if not readings:
        raise SystemExit(f"No readings found in {args.readings}")
    results = analyse(readings, target_range, args.period)

    output_text = json.dumps(results, indent=args.indent)
    if args.output:
        args.output.write_text(output_text)
    else:
        print(output_text)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
