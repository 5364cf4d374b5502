"""Count extended runs of consecutive above-range readings."""
from __future__ import annotations

import pandas as pd

from ..models import PatternContext, PatternDetection
from ..registry import register_rule
from ..rule_base import PatternRule
from ..utils import consecutive_runs


@register_rule
class HyperglycemicPeriodsRule(PatternRule):
    id = "hyperglycemic_periods"
    description = "Runs of at least 6 consecutive readings above target high"
    version = "1.0.0"

    MINIMUM_RUN = 6

    def detect(self, frame: pd.DataFrame, context: PatternContext) -> PatternDetection:
        high = context.target_range.high
        runs = consecutive_runs(frame["value"] > high)
        extended = [length for _, length in runs if length >= self.MINIMUM_RUN]
        periods = len(extended)

        return self.detection(
            periods > 0,
            value=periods,
            message=f"{periods} extended hyperglycemic period(s) detected" if periods else None,
            evidence={"target_high": high, "longest_run": max((length for _, length in runs), default=0)},
        )
