"""Detect dawn phenomenon (early-morning rise in hourly means)."""
from __future__ import annotations

import pandas as pd

from ..models import PatternContext, PatternDetection
from ..registry import register_rule
from ..rule_base import PatternRule
from ..utils import hourly_means


@register_rule
class DawnPhenomenonRule(PatternRule):
    id = "dawn_phenomenon"
    description = "Hourly mean rises >20 mg/dL from 04:00 to 08:00 or >15 mg/dL from 04:00 to 06:00"
    version = "1.0.0"

    RISE_4_TO_8 = 20.0
    RISE_4_TO_6 = 15.0
    MESSAGE = "Dawn phenomenon detected - glucose rises in early morning hours"

    def detect(self, frame: pd.DataFrame, context: PatternContext) -> PatternDetection:
        means = hourly_means(frame)
        # A missing hour counts as zero.
        at_4 = means.get(4, 0.0)
        at_6 = means.get(6, 0.0)
        at_8 = means.get(8, 0.0)

        rise_to_8 = at_8 - at_4
        rise_to_6 = at_6 - at_4
        detected = rise_to_8 > self.RISE_4_TO_8 or rise_to_6 > self.RISE_4_TO_6
        return self.detection(
            detected,
            value=rise_to_8,
            message=self.MESSAGE if detected else None,
            evidence={
                "hour_4_mean": at_4,
                "hour_6_mean": at_6,
                "hour_8_mean": at_8,
                "rise_4_to_6": rise_to_6,
                "rise_4_to_8": rise_to_8,
            },
        )
