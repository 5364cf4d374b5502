"""Glucose analytics: summary statistics, pattern detection and insights."""

from .analyzer import PatternAnalyzer, analyze_trends
from .errors import AnalyticsError, DivideByZeroError, EmptyInputError
from .insights import generate_insights, insights_from_stats
from .models import (
    AnalysisPeriod,
    GlucoseStats,
    PatternContext,
    PatternDetection,
    PatternStatus,
    Reading,
    SensorInfo,
    TargetRange,
    TrendArrow,
    TrendReport,
)
from .registry import register_rule, registry
from .rule_base import PatternRule
from .stats import calculate_stats

__all__ = [
    "AnalysisPeriod",
    "AnalyticsError",
    "DivideByZeroError",
    "EmptyInputError",
    "GlucoseStats",
    "PatternAnalyzer",
    "PatternContext",
    "PatternDetection",
    "PatternRule",
    "PatternStatus",
    "Reading",
    "SensorInfo",
    "TargetRange",
    "TrendArrow",
    "TrendReport",
    "analyze_trends",
    "calculate_stats",
    "generate_insights",
    "insights_from_stats",
    "register_rule",
    "registry",
]
