"""Time-based cache wrapped around a reading source."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Tuple

from glucose_analytics.models import Reading, SensorInfo

from .librelink_client import ReadingSource


@dataclass
class TTLCache:
    """Simple in-memory cache whose entries expire after ``ttl_seconds``."""

    ttl_seconds: float
    clock: Callable[[], float] = time.monotonic
    _store: Dict[str, Tuple[float, Any]] = field(default_factory=dict)

    def get(self, key: str) -> Any | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self.clock() - stored_at > self.ttl_seconds:
            del self._store[key]
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        now = self.clock()
        expired = [name for name, (stored_at, _) in self._store.items() if now - stored_at > self.ttl_seconds]
        for name in expired:
            del self._store[name]
        self._store[key] = (now, value)

    def __len__(self) -> int:
        return len(self._store)

    def clear(self) -> None:
        self._store.clear()


class CachedReadingSource:
    """Decorates a ReadingSource so repeated reads within the TTL skip the network."""

    def __init__(
        self,
        source: ReadingSource,
        *,
        ttl_minutes: float = 5.0,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._source = source
        self._enabled = enabled
        self._cache = TTLCache(ttl_seconds=ttl_minutes * 60.0, clock=clock)

    @property
    def source(self) -> ReadingSource:
        return self._source

    async def _cached(self, key: str, loader: Callable[[], Awaitable[Any]]) -> Any:
        if not self._enabled:
            return await loader()
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        value = await loader()
        self._cache.set(key, value)
        return value

    async def fetch_current(self) -> Reading:
        return await self._cached("current_glucose", self._source.fetch_current)

    async def fetch_history(self, hours_back: float) -> list[Reading]:
        readings = await self._cached(f"history_{hours_back}h", lambda: self._source.fetch_history(hours_back))
        return list(readings)

    async def fetch_sensor_info(self) -> list[SensorInfo]:
        sensors = await self._cached("sensor_info", self._source.fetch_sensor_info)
        return list(sensors)

    async def validate_connection(self) -> bool:
        return await self._source.validate_connection()

    def clear(self) -> None:
        self._cache.clear()
