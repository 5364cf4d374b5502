"""Estimate postprandial response from local spikes in the reading sequence."""
from __future__ import annotations

import pandas as pd

from ..models import PatternContext, PatternDetection
from ..registry import register_rule
from ..rule_base import PatternRule


@register_rule
class MealResponseRule(PatternRule):
    id = "meal_response"
    description = "Mean rise of local spikes (>30 mg/dL above previous, >15 mg/dL above next reading)"
    version = "1.0.0"

    RISE_FROM_PREVIOUS = 30.0
    DROP_TO_NEXT = 15.0
    HIGH_RESPONSE = 50.0
    GOOD_CONTROL = 20.0

    def detect(self, frame: pd.DataFrame, context: PatternContext) -> PatternDetection:
        values = frame["value"]
        previous = values.shift(1)
        following = values.shift(-1)
        spikes = (values > previous + self.RISE_FROM_PREVIOUS) & (values > following + self.DROP_TO_NEXT)

        rises = (values - previous)[spikes]
        spike_count = int(spikes.sum())
        average_rise = float(rises.mean()) if spike_count else 0.0

        if average_rise > self.HIGH_RESPONSE:
            message = "High postprandial glucose response detected"
        elif average_rise < self.GOOD_CONTROL:
            message = "Good postprandial glucose control"
        else:
            message = None
        return self.detection(
            spike_count > 0,
            value=average_rise,
            message=message,
            evidence={"spike_count": spike_count},
        )
