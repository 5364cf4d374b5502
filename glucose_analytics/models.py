"""Core data models for glucose analytics."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional


class TrendArrow(str, Enum):
    """Direction of the most recent glucose change."""

    FLAT = "Flat"
    FORTY_FIVE_UP = "FortyFiveUp"
    SINGLE_UP = "SingleUp"
    DOUBLE_UP = "DoubleUp"
    FORTY_FIVE_DOWN = "FortyFiveDown"
    SINGLE_DOWN = "SingleDown"
    DOUBLE_DOWN = "DoubleDown"

    @classmethod
    def parse(cls, raw: Any) -> "TrendArrow":
        """Map LibreLinkUp arrow codes or textual trend names to a member."""

        if isinstance(raw, cls):
            return raw
        if isinstance(raw, int) and not isinstance(raw, bool):
            return _ARROW_CODES.get(raw, cls.FLAT)
        if raw is None:
            return cls.FLAT
        text = str(raw).strip()
        if text.isdigit():
            return _ARROW_CODES.get(int(text), cls.FLAT)
        for member in cls:
            if member.value == text:
                return member
        return _ARROW_NAMES.get(text.lower(), cls.FLAT)


# LibreLinkUp reports 1-5, from falling quickly to rising quickly.
_ARROW_CODES: dict[int, TrendArrow] = {
    1: TrendArrow.SINGLE_DOWN,
    2: TrendArrow.FORTY_FIVE_DOWN,
    3: TrendArrow.FLAT,
    4: TrendArrow.FORTY_FIVE_UP,
    5: TrendArrow.SINGLE_UP,
}

_ARROW_NAMES: dict[str, TrendArrow] = {
    "flat": TrendArrow.FLAT,
    "stable": TrendArrow.FLAT,
    "up": TrendArrow.SINGLE_UP,
    "rising": TrendArrow.SINGLE_UP,
    "down": TrendArrow.SINGLE_DOWN,
    "falling": TrendArrow.SINGLE_DOWN,
    "rapidlyup": TrendArrow.DOUBLE_UP,
    "rapidly rising": TrendArrow.DOUBLE_UP,
    "rapidlydown": TrendArrow.DOUBLE_DOWN,
    "rapidly falling": TrendArrow.DOUBLE_DOWN,
    "slightlyup": TrendArrow.FORTY_FIVE_UP,
    "slightly rising": TrendArrow.FORTY_FIVE_UP,
    "slightlydown": TrendArrow.FORTY_FIVE_DOWN,
    "slightly falling": TrendArrow.FORTY_FIVE_DOWN,
}


class AnalysisPeriod(str, Enum):
    """Window requested for trend analysis."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @property
    def days(self) -> int:
        return {"daily": 1, "weekly": 7, "monthly": 30}[self.value]


class PatternStatus(str, Enum):
    """Detection status"""

    DETECTED = "detected"
    NOT_DETECTED = "not_detected"


@dataclass(frozen=True)
class TargetRange:
    """Inclusive target glucose interval in mg/dL."""

    low: float
    high: float

    def classify(self, value: float) -> str:
        if value < self.low:
            return "below"
        if value > self.high:
            return "above"
        return "in_range"

    def to_dict(self) -> dict[str, float]:
        return {"low": self.low, "high": self.high}


@dataclass(frozen=True)
class Reading:
    """Single CGM measurement."""

    value: float
    timestamp: datetime
    trend: TrendArrow = TrendArrow.FLAT
    is_high: bool = False
    is_low: bool = False

    @property
    def color(self) -> str:
        if self.is_high:
            return "red"
        if self.is_low:
            return "orange"
        return "green"

    def to_dict(self) -> dict[str, Any]:
        return {
            "value": self.value,
            "timestamp": self.timestamp.isoformat(),
            "trend": self.trend.value,
            "is_high": self.is_high,
            "is_low": self.is_low,
            "color": self.color,
        }


@dataclass(frozen=True)
class SensorInfo:
    """Metadata about an active sensor."""

    device_id: str
    serial_number: str
    activation_time: datetime
    state: str
    device_type: str

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["activation_time"] = self.activation_time.isoformat()
        return payload


@dataclass(frozen=True)
class GlucoseStats:
    """Summary metrics over a window of readings. Percentages are 0-100."""

    average: float
    gmi: float
    time_in_range: float
    time_below_range: float
    time_above_range: float
    standard_deviation: float
    coefficient_of_variation: float

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class PatternContext:
    """Auxiliary context passed to each pattern rule."""

    target_range: TargetRange
    period: AnalysisPeriod = AnalysisPeriod.WEEKLY


@dataclass(frozen=True)
class PatternDetection:
    """Standardized output for a single pattern evaluation."""

    pattern_id: str
    status: PatternStatus
    value: float = 0.0
    message: Optional[str] = None
    evidence: Mapping[str, Any] = field(default_factory=dict)
    version: Optional[str] = None


@dataclass(frozen=True)
class TrendReport:
    """Qualitative pattern report for a window of readings."""

    patterns: tuple[str, ...]
    dawn_phenomenon: bool
    meal_response: float
    overnight_stability: float
    hypoglycemic_episodes: int = 0
    hyperglycemic_periods: int = 0

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["patterns"] = list(self.patterns)
        return payload
