"""MCP server exposing LibreLink glucose readings and analytics as tools."""

import inspect
import logging
import sys
from typing import Any, Callable, Optional

from mcp.server.fastmcp import FastMCP
from pydantic import ValidationError

from api_clients.cache import CachedReadingSource
from api_clients.librelink_client import LibreLinkClient, LibreLinkError, ReadingSource

from .analyzer import PatternAnalyzer
from .config import LibreLinkSettings
from .errors import EmptyInputError
from .insights import generate_insights
from .models import AnalysisPeriod
from .stats import calculate_stats

SourceFactory = Callable[[LibreLinkSettings], ReadingSource]

NOT_CONFIGURED_MESSAGE = "LibreLink not configured. Use configure_credentials first."


class NotConfiguredError(RuntimeError):
    """Raised when a tool needs credentials that have not been supplied."""


def _error(code: str, message: str) -> dict:
    return {"error": {"code": code, "message": message}}


def _clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


class GlucoseService:
    """Explicit handle over settings and the cached reading source.

    The source is built lazily and rebuilt whenever credentials or ranges change.
    """

    def __init__(self, settings: LibreLinkSettings, source_factory: Optional[SourceFactory] = None) -> None:
        self._settings = settings
        self._source_factory = source_factory or LibreLinkClient
        self._source: Optional[CachedReadingSource] = None

    @property
    def settings(self) -> LibreLinkSettings:
        return self._settings

    def _reset(self, settings: LibreLinkSettings) -> None:
        self._settings = settings
        self._source = None

    def source(self) -> CachedReadingSource:
        if not self._settings.is_configured:
            raise NotConfiguredError(NOT_CONFIGURED_MESSAGE)
        if self._source is None:
            self._source = CachedReadingSource(
                self._source_factory(self._settings),
                ttl_minutes=self._settings.cache.ttl_minutes,
                enabled=self._settings.cache.enabled,
            )
        return self._source

    async def current_glucose(self) -> dict:
        reading = await self.source().fetch_current()
        return {
            "current_glucose": reading.value,
            "timestamp": reading.timestamp.isoformat(),
            "trend": reading.trend.value,
            "status": "High" if reading.is_high else "Low" if reading.is_low else "Normal",
            "color": reading.color,
        }

    async def glucose_history(self, hours: float = 24) -> dict:
        hours = _clamp(hours, 1, 720)
        readings = await self.source().fetch_history(hours)
        return {
            "period_hours": hours,
            "total_readings": len(readings),
            "readings": [reading.to_dict() for reading in readings],
        }

    async def glucose_stats(self, days: float = 7) -> dict:
        days = _clamp(days, 1, 90)
        target = self._settings.target_range
        readings = await self.source().fetch_history(days * 24)
        stats = calculate_stats(readings, target)
        low, high = f"{target.low:g}", f"{target.high:g}"
        return {
            "analysis_period_days": days,
            "total_readings": len(readings),
            "average_glucose": stats.average,
            "glucose_management_indicator": stats.gmi,
            "time_in_range": {
                f"target_{low}_{high}": stats.time_in_range,
                f"below_{low}": stats.time_below_range,
                f"above_{high}": stats.time_above_range,
            },
            "variability": {
                "standard_deviation": stats.standard_deviation,
                "coefficient_of_variation": stats.coefficient_of_variation,
            },
        }

    async def glucose_trends(self, period: str = "weekly") -> dict:
        analysis_period = AnalysisPeriod(period)
        readings = await self.source().fetch_history(analysis_period.days * 24)
        trends = PatternAnalyzer(self._settings.target_range).analyze_trends(readings, analysis_period)
        return {
            "period": analysis_period.value,
            "patterns": list(trends.patterns),
            "dawn_phenomenon": trends.dawn_phenomenon,
            "meal_response_average": trends.meal_response,
            "overnight_stability": trends.overnight_stability,
            "hypoglycemic_episodes": trends.hypoglycemic_episodes,
            "hyperglycemic_periods": trends.hyperglycemic_periods,
        }

    async def glucose_insights(self, days: float = 7) -> dict:
        days = _clamp(days, 1, 90)
        readings = await self.source().fetch_history(days * 24)
        return {
            "analysis_period_days": days,
            "insights": generate_insights(readings, self._settings.target_range),
        }

    async def sensor_info(self) -> dict:
        sensors = await self.source().fetch_sensor_info()
        return {
            "active_sensors": [sensor.to_dict() for sensor in sensors],
            "sensor_count": len(sensors),
        }

    def configure_credentials(self, email: str, password: str, region: Optional[str] = None) -> dict:
        settings = self._settings.with_credentials(email, password)
        if region:
            settings = settings.with_region(region)
        self._reset(settings)
        return {"message": "LibreLink credentials configured successfully. Use validate_connection to test."}

    def configure_ranges(self, target_low: float, target_high: float) -> dict:
        self._reset(self._settings.with_ranges(target_low, target_high))
        return {"message": f"Target glucose ranges updated: {target_low:g}-{target_high:g} mg/dL"}

    async def validate_connection(self) -> dict:
        valid = await self.source().validate_connection()
        return {
            "valid": valid,
            "message": (
                "LibreLink connection validated successfully!"
                if valid
                else "LibreLink connection failed. Check credentials and sensor status."
            ),
        }


async def _guarded(call: Callable[[], Any]) -> dict:
    """Translate known failures into an error payload for the calling assistant."""

    try:
        result = call()
        if inspect.isawaitable(result):
            result = await result
        return result
    except NotConfiguredError as e:
        return _error("NOT_CONFIGURED", str(e))
    except LibreLinkError as e:
        logging.error(f"LibreLink MCP error [{e.code}]: {e.message}")
        return _error(e.code, e.message)
    except EmptyInputError as e:
        return _error("NO_DATA", str(e))
    except ValidationError as e:
        return _error("INVALID_SETTINGS", "; ".join(err["msg"] for err in e.errors()))
    except ValueError as e:
        return _error("INVALID_ARGUMENT", str(e))


def create_server(settings: LibreLinkSettings, source_factory: Optional[SourceFactory] = None) -> FastMCP:
    """Build an MCP server bound to its own GlucoseService."""

    service = GlucoseService(settings, source_factory)
    mcp = FastMCP(
        "librelink-mcp-server",
        instructions="Access and analyze FreeStyle Libre CGM glucose data via LibreLink Up.",
    )

    @mcp.tool()
    async def get_current_glucose() -> dict:
        """
        Get the most recent glucose reading from your FreeStyle Libre sensor.

        Returns the glucose value in mg/dL, trend direction and whether the
        value is in target range.
        """
        return await _guarded(service.current_glucose)

    @mcp.tool()
    async def get_glucose_history(hours: float = 24) -> dict:
        """
        Retrieve historical glucose readings.

        Args:
            hours: Hours of history to retrieve (1-720, default 24)
        """
        return await _guarded(lambda: service.glucose_history(hours))

    @mcp.tool()
    async def get_glucose_stats(days: float = 7) -> dict:
        """
        Calculate average glucose, GMI (estimated A1C), time-in-range and variability.

        Args:
            days: Days to analyze (1-90, default 7)
        """
        return await _guarded(lambda: service.glucose_stats(days))

    @mcp.tool()
    async def get_glucose_trends(period: str = "weekly") -> dict:
        """
        Analyze dawn phenomenon, meal responses, overnight stability and
        hypo/hyperglycemic episodes.

        Args:
            period: "daily", "weekly" or "monthly" (default "weekly")
        """
        return await _guarded(lambda: service.glucose_trends(period))

    @mcp.tool()
    async def get_glucose_insights(days: float = 7) -> dict:
        """
        Plain-language assessment of time-in-range, variability and GMI.

        Args:
            days: Days to analyze (1-90, default 7)
        """
        return await _guarded(lambda: service.glucose_insights(days))

    @mcp.tool()
    async def get_sensor_info() -> dict:
        """Get information about the active FreeStyle Libre sensor."""
        return await _guarded(service.sensor_info)

    @mcp.tool()
    async def configure_credentials(email: str, password: str, region: Optional[str] = None) -> dict:
        """
        Set LibreLink Up credentials for this session. Nothing is written to disk.

        Args:
            email: LibreLink account email
            password: LibreLink account password
            region: "US" or "EU" (default unchanged)
        """
        return await _guarded(lambda: service.configure_credentials(email, password, region))

    @mcp.tool()
    async def configure_ranges(target_low: float, target_high: float) -> dict:
        """
        Customize the target glucose range used for time-in-range.

        Args:
            target_low: Lower bound in mg/dL (50-150)
            target_high: Upper bound in mg/dL (100-300)
        """
        return await _guarded(lambda: service.configure_ranges(target_low, target_high))

    @mcp.tool()
    async def validate_connection() -> dict:
        """Test the connection to LibreLink servers and verify credentials."""
        return await _guarded(service.validate_connection)

    return mcp


def main() -> None:
    # stdout carries the MCP protocol.
    logging.basicConfig(level=logging.INFO, stream=sys.stderr, format="%(asctime)s %(levelname)s %(message)s")
    settings = LibreLinkSettings.from_env()
    problems = settings.validation_errors()
    if problems:
        logging.warning(f"LibreLink configuration incomplete: {'; '.join(problems)}")
    logging.info("LibreLink MCP Server running on stdio")
    create_server(settings).run()


if __name__ == "__main__":
    main()
