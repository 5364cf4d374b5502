"""Measure overnight glucose variability (23:00-06:59)."""
from __future__ import annotations

import pandas as pd

from ..models import PatternContext, PatternDetection
from ..registry import register_rule
from ..rule_base import PatternRule
from ..utils import population_std


@register_rule
class OvernightStabilityRule(PatternRule):
    id = "overnight_stability"
    description = "Population standard deviation of readings between 23:00 and 06:59"
    version = "1.0.0"

    OVERNIGHT_START_HOUR = 23
    OVERNIGHT_END_HOUR = 6
    MINIMUM_READINGS = 2
    EXCELLENT = 10.0
    HIGH_VARIABILITY = 30.0

    def detect(self, frame: pd.DataFrame, context: PatternContext) -> PatternDetection:
        hours = frame["hour"]
        overnight = frame.loc[(hours >= self.OVERNIGHT_START_HOUR) | (hours <= self.OVERNIGHT_END_HOUR), "value"]

        if len(overnight) < self.MINIMUM_READINGS:
            stability = 0.0
        else:
            stability = population_std(overnight)

        # Too few overnight readings reads as zero variability, which buckets as excellent.
        if stability < self.EXCELLENT:
            message = "Excellent overnight glucose stability"
        elif stability > self.HIGH_VARIABILITY:
            message = "High overnight glucose variability"
        else:
            message = None
        return self.detection(
            stability > self.HIGH_VARIABILITY,
            value=stability,
            message=message,
            evidence={"overnight_readings": int(len(overnight))},
        )
