"""Count hypoglycemic episodes with a recovery hysteresis band."""
from __future__ import annotations

import pandas as pd

from ..models import PatternContext, PatternDetection
from ..registry import register_rule
from ..rule_base import PatternRule


@register_rule
class HypoglycemicEpisodesRule(PatternRule):
    id = "hypoglycemic_episodes"
    description = "Entries below target low; an episode ends once glucose exceeds target low + 10 mg/dL"
    version = "1.0.0"

    RECOVERY_MARGIN = 10.0

    def detect(self, frame: pd.DataFrame, context: PatternContext) -> PatternDetection:
        low = context.target_range.low
        recovered_above = low + self.RECOVERY_MARGIN

        episodes = 0
        in_episode = False
        for value in frame["value"]:
            if value < low:
                if not in_episode:
                    episodes += 1
                    in_episode = True
            elif value > recovered_above:
                in_episode = False

        return self.detection(
            episodes > 0,
            value=episodes,
            message=f"{episodes} hypoglycemic episode(s) detected" if episodes else None,
            evidence={"target_low": low, "recovery_threshold": recovered_above},
        )
