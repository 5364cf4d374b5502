"""Shared utilities for glucose analytics and pattern rules."""
from __future__ import annotations

import math
from typing import Iterable, Sequence

import numpy as np
import pandas as pd

from .models import Reading


def round_half_away(value: float, digits: int = 2) -> float:
    """Round to ``digits`` decimals, ties away from zero."""

    scale = 10 ** digits
    scaled = abs(value) * scale
    # Ties are decided on the scaled binary value, so 1.005 (100.4999... scaled) rounds down.
    rounded = math.floor(scaled + 0.5)
    return math.copysign(rounded / scale, value) if rounded else 0.0


def readings_frame(readings: Sequence[Reading]) -> pd.DataFrame:
    """Return readings as a dataframe in input order.

    The ``hour`` column is the wall-clock hour of each timestamp as recorded,
    so readings keep the sensor's local time whatever their tzinfo.
    """

    if not readings:
        return pd.DataFrame(columns=["timestamp", "value", "hour"])
    return pd.DataFrame(
        {
            "timestamp": [reading.timestamp for reading in readings],
            "value": np.fromiter((reading.value for reading in readings), dtype=float, count=len(readings)),
            "hour": [reading.timestamp.hour for reading in readings],
        }
    )


def hourly_means(frame: pd.DataFrame) -> dict[int, float]:
    """Mean glucose per hour of day, ignoring the date."""

    if frame.empty:
        return {}
    grouped = frame.groupby("hour")["value"].mean()
    return {int(hour): float(mean) for hour, mean in grouped.items()}


def population_std(values: pd.Series | np.ndarray) -> float:
    return float(np.std(np.asarray(values, dtype=float), ddof=0))


def consecutive_runs(mask: Iterable[bool]) -> list[tuple[int, int]]:
    """Return (start_index, length) for contiguous true regions."""

    runs: list[tuple[int, int]] = []
    active_index = None
    length = 0
    for idx, flag in enumerate(mask):
        if flag:
            if active_index is None:
                active_index = idx
                length = 0
            length += 1
        elif active_index is not None:
            runs.append((active_index, length))
            active_index = None
            length = 0
    if active_index is not None:
        runs.append((active_index, length))
    return runs
