"""API clients and helpers for external services."""

from .cache import CachedReadingSource, TTLCache
from .librelink_client import (
    LibreLinkClient,
    LibreLinkError,
    ReadingSource,
    to_reading,
    to_sensor_info,
)

__all__ = [
    "CachedReadingSource",
    "LibreLinkClient",
    "LibreLinkError",
    "ReadingSource",
    "TTLCache",
    "to_reading",
    "to_sensor_info",
]
