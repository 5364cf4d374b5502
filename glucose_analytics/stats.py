"""Summary statistics over CGM readings."""
from __future__ import annotations

from typing import Final, Sequence

import numpy as np

from .errors import DivideByZeroError, EmptyInputError
from .models import GlucoseStats, Reading, TargetRange
from .utils import round_half_away

# Glucose Management Indicator regression (Bergenstal et al., 2018), mg/dL input.
GMI_INTERCEPT: Final[float] = 3.31
GMI_SLOPE: Final[float] = 0.02392


def glucose_management_indicator(mean_glucose: float) -> float:
    return GMI_INTERCEPT + GMI_SLOPE * mean_glucose


def calculate_stats(readings: Sequence[Reading], target_range: TargetRange) -> GlucoseStats:
    """Aggregate readings into mean, variability, GMI and time-in-range metrics.

    Time-in-range is classified against ``target_range`` rather than each
    reading's ``is_high``/``is_low`` flags so custom ranges stay consistent.
    Raises :class:`EmptyInputError` for an empty sequence and
    :class:`DivideByZeroError` when the mean is not positive.
    """

    if not readings:
        raise EmptyInputError("statistics")

    values = np.fromiter((reading.value for reading in readings), dtype=float, count=len(readings))
    total = len(values)

    average = float(values.mean())
    standard_deviation = float(values.std(ddof=0))
    if average <= 0:
        raise DivideByZeroError(f"Mean glucose must be positive to compute variation, got {average}")
    coefficient_of_variation = standard_deviation / average * 100.0

    in_range = int(((values >= target_range.low) & (values <= target_range.high)).sum())
    below = int((values < target_range.low).sum())
    above = int((values > target_range.high).sum())

    return GlucoseStats(
        average=round_half_away(average),
        gmi=round_half_away(glucose_management_indicator(average)),
        time_in_range=round_half_away(in_range / total * 100.0),
        time_below_range=round_half_away(below / total * 100.0),
        time_above_range=round_half_away(above / total * 100.0),
        standard_deviation=round_half_away(standard_deviation),
        coefficient_of_variation=round_half_away(coefficient_of_variation),
    )
