"""Pattern analysis over a window of CGM readings."""
from __future__ import annotations

from typing import Sequence

from . import rules as _rules  # noqa: F401 - ensure rule registration side-effects
from .errors import EmptyInputError
from .models import (
    AnalysisPeriod,
    PatternContext,
    PatternDetection,
    PatternStatus,
    Reading,
    TargetRange,
    TrendReport,
)
from .registry import RuleRegistry, registry as default_registry
from .utils import readings_frame, round_half_away


class PatternAnalyzer:
    """Runs registered pattern rules and folds their output into a TrendReport."""

    def __init__(self, target_range: TargetRange, registry: RuleRegistry | None = None) -> None:
        self._target_range = target_range
        self._registry = registry or default_registry

    @property
    def target_range(self) -> TargetRange:
        return self._target_range

    def detect(
        self,
        readings: Sequence[Reading],
        period: AnalysisPeriod | str = AnalysisPeriod.WEEKLY,
    ) -> list[PatternDetection]:
        """Return the raw detection from every registered rule, in order."""

        if not readings:
            raise EmptyInputError("trend analysis")
        # Validated but not used for thresholds; every period shares the same constants.
        context = PatternContext(target_range=self._target_range, period=AnalysisPeriod(period))
        return self._registry.detect_all(readings_frame(readings), context)

    def analyze_trends(
        self,
        readings: Sequence[Reading],
        period: AnalysisPeriod | str = AnalysisPeriod.WEEKLY,
    ) -> TrendReport:
        detections = {detection.pattern_id: detection for detection in self.detect(readings, period)}
        patterns = tuple(
            detection.message for detection in detections.values() if detection.message is not None
        )

        def _value(pattern_id: str) -> float:
            detection = detections.get(pattern_id)
            return detection.value if detection is not None else 0.0

        dawn = detections.get("dawn_phenomenon")
        return TrendReport(
            patterns=patterns,
            dawn_phenomenon=dawn is not None and dawn.status is PatternStatus.DETECTED,
            meal_response=round_half_away(_value("meal_response")),
            overnight_stability=round_half_away(_value("overnight_stability")),
            hypoglycemic_episodes=int(_value("hypoglycemic_episodes")),
            hyperglycemic_periods=int(_value("hyperglycemic_periods")),
        )


def analyze_trends(
    readings: Sequence[Reading],
    target_range: TargetRange,
    period: AnalysisPeriod | str = AnalysisPeriod.WEEKLY,
) -> TrendReport:
    return PatternAnalyzer(target_range).analyze_trends(readings, period)
