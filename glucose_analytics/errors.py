"""Exceptions raised by the analytics core."""
from __future__ import annotations


class AnalyticsError(ValueError):
    """Base class for analytics failures."""


class EmptyInputError(AnalyticsError):
    """No readings were supplied to an operation that needs at least one."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"No glucose readings provided for {operation}")
        self.operation = operation


class DivideByZeroError(AnalyticsError, ZeroDivisionError):
    """Mean glucose is zero or negative, so relative variability is undefined."""
