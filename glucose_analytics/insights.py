"""Plain-language insights derived from summary statistics."""
from __future__ import annotations

from typing import Sequence

from .models import GlucoseStats, Reading, TargetRange
from .stats import calculate_stats


def insights_from_stats(stats: GlucoseStats) -> list[str]:
    """One sentence each for time-in-range, variability and GMI, in that order."""

    insights: list[str] = []

    if stats.time_in_range >= 70:
        insights.append("Excellent glucose control - time in range above 70%")
    elif stats.time_in_range >= 50:
        insights.append("Good glucose control - consider optimizing to reach 70% time in range")
    else:
        insights.append("Glucose control needs improvement - focus on reducing time above/below range")

    if stats.coefficient_of_variation <= 33:
        insights.append("Low glucose variability - excellent stability")
    elif stats.coefficient_of_variation <= 36:
        insights.append("Moderate glucose variability - room for improvement")
    else:
        insights.append("High glucose variability - consider strategies to improve stability")

    if stats.gmi < 7.0:
        insights.append("GMI indicates excellent glucose management")
    elif stats.gmi < 8.0:
        insights.append("GMI indicates good glucose management with room for improvement")
    else:
        insights.append("GMI suggests glucose management needs significant improvement")

    return insights


def generate_insights(readings: Sequence[Reading], target_range: TargetRange) -> list[str]:
    return insights_from_stats(calculate_stats(readings, target_range))
