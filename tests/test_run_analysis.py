import json
from datetime import datetime

from glucose_analytics.models import TargetRange, TrendArrow
from glucose_analytics.run_analysis import analyse, load_readings, parse_args

STANDARD_RANGE = TargetRange(low=70, high=180)


def test_load_readings_sorts_and_flags(tmp_path):
    path = tmp_path / "readings.json"
    path.write_text(
        json.dumps(
            [
                {"timestamp": "2024-05-01T08:15:00", "value": 200, "trend": "SingleUp"},
                {"timestamp": "2024-05-01T08:00:00", "glucose_mg_dl": 65, "trend_arrow": 1},
            ]
        )
    )

    readings = load_readings(path, STANDARD_RANGE)

    assert [reading.timestamp for reading in readings] == [datetime(2024, 5, 1, 8, 0), datetime(2024, 5, 1, 8, 15)]
    assert readings[0].is_low is True
    assert readings[0].trend is TrendArrow.SINGLE_DOWN
    assert readings[1].is_high is True
    assert readings[1].trend is TrendArrow.SINGLE_UP


def test_load_readings_from_wrapped_object(tmp_path):
    path = tmp_path / "export.json"
    path.write_text(json.dumps({"readings": [{"timestamp": "2024-05-01T08:00:00", "value": 110}]}))

    readings = load_readings(path, STANDARD_RANGE)

    assert len(readings) == 1
    assert readings[0].trend is TrendArrow.FLAT


def test_analyse_combines_stats_trends_and_insights(tmp_path):
    path = tmp_path / "readings.json"
    path.write_text(
        json.dumps(
            [
                {"timestamp": "2024-05-01T12:00:00", "value": 100},
                {"timestamp": "2024-05-01T12:15:00", "value": 160},
                {"timestamp": "2024-05-01T12:30:00", "value": 100},
            ]
        )
    )
    readings = load_readings(path, STANDARD_RANGE)

    result = analyse(readings, STANDARD_RANGE, "daily")

    assert result["total_readings"] == 3
    assert result["stats"]["average"] == 120
    assert result["stats"]["time_in_range"] == 100
    assert result["trends"]["meal_response"] == 60
    assert len(result["insights"]) == 3
    json.dumps(result)


def test_parse_args_defaults():
    args = parse_args(["readings.json"])

    assert args.low == 70
    assert args.high == 180
    assert args.period == "weekly"
    assert args.output is None


def test_flags_use_inclusive_range_bounds(tmp_path):
    path = tmp_path / "bounds.json"
    path.write_text(
        json.dumps(
            [
                {"timestamp": "2024-05-01T08:00:00", "value": 70},
                {"timestamp": "2024-05-01T08:05:00", "value": 180},
                {"timestamp": "2024-05-01T08:10:00", "value": 69.9},
            ]
        )
    )

    readings = load_readings(path, STANDARD_RANGE)

    assert [(reading.is_low, reading.is_high) for reading in readings] == [(False, False), (False, False), (True, False)]
