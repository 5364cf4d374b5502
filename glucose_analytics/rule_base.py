"""Base class and utilities for pattern rules."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

import pandas as pd

from .models import PatternContext, PatternDetection, PatternStatus


class PatternRule(ABC):
    """Abstract pattern rule with metadata.

    Rules receive the readings as a dataframe (see ``utils.readings_frame``) and
    must not mutate it.
    """

    id: str = ""
    description: str = ""
    version: str = "1.0.0"

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if not cls.id:
            raise ValueError(f"Rule {cls.__name__} must define a non-empty id")

    @abstractmethod
    def detect(self, frame: pd.DataFrame, context: PatternContext) -> PatternDetection:
        """Run the rule on the prepared readings."""

    def detection(
        self,
        detected: bool,
        value: float,
        message: Optional[str] = None,
        evidence: Mapping[str, Any] | None = None,
    ) -> PatternDetection:
        return PatternDetection(
            pattern_id=self.id,
            status=PatternStatus.DETECTED if detected else PatternStatus.NOT_DETECTED,
            value=float(value),
            message=message,
            evidence=dict(evidence or {}),
            version=self.version,
        )

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        return f"<{self.__class__.__name__} id={self.id!r} version={self.version!r}>"
