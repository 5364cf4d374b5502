"""
LibreLink Up API client for reading glucose data from the FreeStyle Libre cloud.
"""
import hashlib
import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Optional, Protocol

import httpx
from pydantic import ValidationError

from glucose_analytics.config import LibreLinkSettings
from glucose_analytics.models import Reading, SensorInfo, TargetRange, TrendArrow
from models.librelink_models import (
    LibreConnection,
    LibreGlucoseItem,
    LibreGraphData,
    LibreLoginData,
    LibreLoginRequest,
    LibreSensor,
)

LIBRELINK_BASE_URLS = {
    "US": "https://api.libreview.io",
    "EU": "https://api-eu.libreview.io",
}
LOGIN_ENDPOINT = "/llu/auth/login"
CONNECTIONS_ENDPOINT = "/llu/connections"
GRAPH_ENDPOINT = "/llu/connections/{patient_id}/graph"

# Upstream "status" values in the response envelope.
STATUS_OK = 0
STATUS_BAD_CREDENTIALS = 2

# HTTP statuses that mean the bearer token is no longer accepted.
TOKEN_REJECTED_STATUSES = (401, 403)


class LibreLinkError(RuntimeError):
    """Upstream failure tagged with a stable code."""

    def __init__(self, code: str, message: str, details: Any = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ReadingSource(Protocol):
    """Protocol for anything that supplies CGM readings."""

    async def fetch_current(self) -> Reading:
        ...

    async def fetch_history(self, hours_back: float) -> list[Reading]:
        ...

    async def fetch_sensor_info(self) -> list[SensorInfo]:
        ...

    async def validate_connection(self) -> bool:
        ...


def to_reading(item: LibreGlucoseItem, target_range: TargetRange) -> Reading:
    """Map an upstream measurement, flagging high/low against the configured range."""

    value = float(item.ValueInMgPerDl)
    band = target_range.classify(value)
    return Reading(
        value=value,
        timestamp=item.local_time(),
        trend=TrendArrow.parse(item.TrendArrow),
        is_high=band == "above",
        is_low=band == "below",
    )


def to_sensor_info(sensor: LibreSensor, state: str = "Active") -> SensorInfo:
    activation = datetime.fromtimestamp(sensor.a) if sensor.a else datetime.now()
    return SensorInfo(
        device_id=sensor.deviceId or "sensor-unknown",
        serial_number=sensor.sn or "unknown",
        activation_time=activation,
        state=state,
        device_type="FreeStyle Libre 3" if sensor.pt == 4 else "FreeStyle Libre",
    )


class LibreLinkClient:
    """
    Client for the LibreLink Up follower API.

    Logs in lazily on first use and reuses the bearer token until a call fails
    authentication. Readings are returned in the sensor's local time.
    """

    def __init__(
        self,
        settings: LibreLinkSettings,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float | httpx.Timeout = httpx.Timeout(30.0, connect=10.0),
    ):
        if not settings.is_configured:
            raise ValueError("LibreLink credentials not set; configure email and password first")
        self.settings = settings
        self.base_url = LIBRELINK_BASE_URLS[settings.client.region.value]
        self._client = client
        self._timeout = timeout
        self._token: Optional[str] = None
        self._account_id: Optional[str] = None
        self._patient_id: Optional[str] = None

    @property
    def target_range(self) -> TargetRange:
        return self.settings.target_range

    @property
    def is_logged_in(self) -> bool:
        return self._token is not None

    def _headers(self) -> dict[str, str]:
        headers = {
            "accept-encoding": "gzip",
            "cache-control": "no-cache",
            "connection": "Keep-Alive",
            "content-type": "application/json",
            "product": "llu.android",
            "version": self.settings.client.version,
        }
        if self._token:
            headers["authorization"] = f"Bearer {self._token}"
        if self._account_id:
            headers["account-id"] = self._account_id
        return headers

    async def _make_request(self, method: str, endpoint: str, json_data=None) -> dict:
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        close_client = False
        client = self._client
        if client is None:
            client = httpx.AsyncClient(follow_redirects=True, timeout=self._timeout)
            close_client = True

        try:
            response = await client.request(
                method=method.upper(),
                url=url,
                json=json_data,
                headers=self._headers(),
            )
            logging.info(f"Request {url} completed with status: {response.status_code}")
            response.raise_for_status()
            data = response.json() if response.text else {}
        except httpx.TimeoutException as e:
            logging.error(f"Timeout error calling LibreLink API {method} {url}: {e}")
            raise
        except httpx.RequestError as e:
            logging.error(f"Request error calling LibreLink API {method} {url}: {e}")
            raise
        except httpx.HTTPStatusError as e:
            logging.error(f"HTTP error calling LibreLink API {method} {url}: {e}")
            logging.error(f"Response status: {e.response.status_code}")
            raise
        finally:
            if close_client:
                await client.aclose()

        if not isinstance(data, dict):
            raise RuntimeError(f"Unexpected non-JSON response from {endpoint}: {data!r}")
        return data

    async def login(self) -> None:
        """Authenticate, following a single region redirect if the account lives elsewhere."""

        request_data = LibreLoginRequest(
            email=self.settings.credentials.email,
            password=self.settings.credentials.password,
        )
        try:
            for _ in range(2):
                data = await self._make_request("POST", LOGIN_ENDPOINT, json_data=request_data.model_dump())
                status = data.get("status")
                if status == STATUS_BAD_CREDENTIALS:
                    raise LibreLinkError("AUTH_FAILED", "Invalid LibreLink credentials", data.get("error"))
                if status != STATUS_OK:
                    raise LibreLinkError("AUTH_FAILED", f"LibreLink login rejected (status={status})", data)

                login = LibreLoginData(**(data.get("data") or {}))
                if login.redirect and login.region:
                    self.base_url = f"https://api-{login.region.lower()}.libreview.io"
                    logging.info(f"LibreLink account redirected to region {login.region}")
                    continue
                if login.authTicket is None or login.user is None:
                    raise LibreLinkError("AUTH_FAILED", "LibreLink login returned no auth ticket", data)

                self._token = login.authTicket.token
                self._account_id = hashlib.sha256(login.user.id.encode("utf-8")).hexdigest()
                return
        except LibreLinkError:
            raise
        except (httpx.HTTPError, ValidationError, RuntimeError) as e:
            raise LibreLinkError("AUTH_FAILED", "Failed to authenticate with LibreLink", str(e)) from e
        raise LibreLinkError("AUTH_FAILED", "LibreLink login redirected more than once")

    async def _ensure_logged_in(self) -> None:
        if not self.is_logged_in:
            await self.login()

    def _reset_session(self) -> None:
        self._token = None
        self._account_id = None
        self._patient_id = None

    async def _authorized(self, call: Callable[[], Awaitable[Any]]) -> Any:
        """Run ``call``, logging in again and retrying once if the token is rejected."""

        await self._ensure_logged_in()
        try:
            return await call()
        except httpx.HTTPStatusError as e:
            if e.response.status_code not in TOKEN_REJECTED_STATUSES:
                raise
            logging.info(f"LibreLink token rejected with status {e.response.status_code}, logging in again")
            self._reset_session()
            await self.login()
            return await call()

    async def _primary_connection(self) -> LibreConnection:
        data = await self._make_request("GET", CONNECTIONS_ENDPOINT)
        connections = [LibreConnection(**entry) for entry in data.get("data") or []]
        if not connections:
            raise LibreLinkError("NO_CONNECTIONS", "No LibreLink Up connections found for this account")
        connection = connections[0]
        self._patient_id = connection.patientId
        return connection

    async def _graph(self) -> LibreGraphData:
        if self._patient_id is None:
            await self._primary_connection()
        data = await self._make_request("GET", GRAPH_ENDPOINT.format(patient_id=self._patient_id))
        return LibreGraphData(**(data.get("data") or {}))

    async def fetch_current(self) -> Reading:
        await self._ensure_logged_in()
        try:
            connection = await self._authorized(self._primary_connection)
        except LibreLinkError:
            raise
        except (httpx.HTTPError, ValidationError, RuntimeError) as e:
            raise LibreLinkError("GLUCOSE_READ_FAILED", "Failed to read current glucose", str(e)) from e
        if connection.glucoseMeasurement is None:
            raise LibreLinkError("GLUCOSE_READ_FAILED", "No current glucose measurement available")
        return to_reading(connection.glucoseMeasurement, self.target_range)

    async def fetch_history(self, hours_back: float = 24) -> list[Reading]:
        """Readings newer than ``hours_back``, ascending and de-duplicated by timestamp."""

        await self._ensure_logged_in()
        try:
            graph = await self._authorized(self._graph)
        except LibreLinkError:
            raise
        except (httpx.HTTPError, ValidationError, RuntimeError) as e:
            raise LibreLinkError("HISTORY_READ_FAILED", "Failed to read glucose history", str(e)) from e

        if not graph.graphData:
            raise LibreLinkError("NO_HISTORY_DATA", "No glucose history data available")

        cutoff = datetime.now() - timedelta(hours=hours_back)
        by_time: dict[datetime, Reading] = {}
        for item in graph.graphData:
            reading = to_reading(item, self.target_range)
            if reading.timestamp >= cutoff:
                by_time[reading.timestamp] = reading
        return [by_time[timestamp] for timestamp in sorted(by_time)]

    async def fetch_sensor_info(self) -> list[SensorInfo]:
        await self._ensure_logged_in()
        try:
            graph = await self._authorized(self._graph)
        except LibreLinkError as e:
            if e.code == "AUTH_FAILED":
                raise
            logging.error(f"LibreLink sensor lookup failed: {e}")
            return [unknown_sensor()]
        except (httpx.HTTPError, ValidationError, RuntimeError) as e:
            logging.error(f"LibreLink sensor lookup failed: {e}")
            return [unknown_sensor()]

        sensors = [to_sensor_info(entry.sensor) for entry in graph.activeSensors if entry.sensor is not None]
        if not sensors and graph.connection is not None and graph.connection.sensor is not None:
            state = "Active" if graph.connection.glucoseMeasurement is not None else "Unknown"
            sensors = [to_sensor_info(graph.connection.sensor, state=state)]
        return sensors or [unknown_sensor()]

    async def validate_connection(self) -> bool:
        try:
            await self._ensure_logged_in()
            await self._primary_connection()
            return True
        except (LibreLinkError, httpx.HTTPError, ValidationError, RuntimeError) as e:
            logging.error(f"LibreLink connection check failed: {e}")
            self._reset_session()
            return False


def unknown_sensor() -> SensorInfo:
    return SensorInfo(
        device_id="sensor-unknown",
        serial_number="unknown",
        activation_time=datetime.now(),
        state="Unknown",
        device_type="FreeStyle Libre",
    )
