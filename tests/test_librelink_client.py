import hashlib
from datetime import datetime, timedelta

import httpx
import pytest
import respx

from api_clients.librelink_client import LIBRELINK_BASE_URLS, LibreLinkClient, LibreLinkError
from glucose_analytics.config import LibreLinkSettings
from glucose_analytics.models import TrendArrow
from models.librelink_models import LIBRE_TIMESTAMP_FORMAT

US = LIBRELINK_BASE_URLS["US"]
EU = LIBRELINK_BASE_URLS["EU"]

LOGIN_OK = {
    "status": 0,
    "data": {"user": {"id": "user-1"}, "authTicket": {"token": "token-abc", "expires": 0}},
}


def _settings(**ranges) -> LibreLinkSettings:
    settings = LibreLinkSettings().with_credentials("user@example.com", "secret")
    if ranges:
        settings = settings.with_ranges(ranges["low"], ranges["high"])
    return settings


def _item(value: float, when: datetime, trend: int = 3) -> dict:
    return {
        "Timestamp": when.strftime(LIBRE_TIMESTAMP_FORMAT),
        "ValueInMgPerDl": value,
        "TrendArrow": trend,
        "isHigh": False,
        "isLow": False,
    }


def _connections(measurement: dict | None = None) -> dict:
    connection = {"patientId": "patient-1", "firstName": "Pat"}
    if measurement is not None:
        connection["glucoseMeasurement"] = measurement
    return {"status": 0, "data": [connection]}


@pytest.mark.asyncio
@respx.mock
async def test_fetch_current_logs_in_and_sends_account_headers():
    login = respx.post(f"{US}/llu/auth/login").mock(return_value=httpx.Response(200, json=LOGIN_OK))
    connections = respx.get(f"{US}/llu/connections").mock(
        return_value=httpx.Response(200, json=_connections(_item(190, datetime(2024, 5, 1, 14, 30), trend=5)))
    )

    reading = await LibreLinkClient(_settings()).fetch_current()

    assert login.called
    sent = connections.calls.last.request
    assert sent.headers["authorization"] == "Bearer token-abc"
    assert sent.headers["account-id"] == hashlib.sha256(b"user-1").hexdigest()
    assert sent.headers["product"] == "llu.android"
    assert reading.value == 190
    assert reading.timestamp == datetime(2024, 5, 1, 14, 30)
    assert reading.trend is TrendArrow.SINGLE_UP
    assert reading.is_high is True
    assert reading.is_low is False


@pytest.mark.asyncio
@respx.mock
async def test_flags_follow_configured_range():
    respx.post(f"{US}/llu/auth/login").mock(return_value=httpx.Response(200, json=LOGIN_OK))
    respx.get(f"{US}/llu/connections").mock(
        return_value=httpx.Response(200, json=_connections(_item(75, datetime(2024, 5, 1, 14, 30))))
    )

    reading = await LibreLinkClient(_settings(low=80, high=160)).fetch_current()

    assert reading.is_low is True


@pytest.mark.asyncio
@respx.mock
async def test_fetch_history_filters_dedupes_and_sorts():
    now = datetime.now().replace(microsecond=0)
    recent = now - timedelta(hours=1)
    older = now - timedelta(hours=2)
    stale = now - timedelta(hours=30)
    respx.post(f"{US}/llu/auth/login").mock(return_value=httpx.Response(200, json=LOGIN_OK))
    respx.get(f"{US}/llu/connections").mock(return_value=httpx.Response(200, json=_connections()))
    graph = respx.get(f"{US}/llu/connections/patient-1/graph").mock(
        return_value=httpx.Response(
            200,
            json={
                "status": 0,
                "data": {
                    "graphData": [
                        _item(150, recent),
                        _item(120, older),
                        _item(99, stale),
                        _item(155, recent),
                    ]
                },
            },
        )
    )

    readings = await LibreLinkClient(_settings()).fetch_history(24)

    assert graph.called
    assert [reading.timestamp for reading in readings] == [older, recent]
    assert [reading.value for reading in readings] == [120, 155]


@pytest.mark.asyncio
@respx.mock
async def test_fetch_history_without_graph_data_raises():
    respx.post(f"{US}/llu/auth/login").mock(return_value=httpx.Response(200, json=LOGIN_OK))
    respx.get(f"{US}/llu/connections").mock(return_value=httpx.Response(200, json=_connections()))
    respx.get(f"{US}/llu/connections/patient-1/graph").mock(
        return_value=httpx.Response(200, json={"status": 0, "data": {"graphData": []}})
    )

    with pytest.raises(LibreLinkError) as excinfo:
        await LibreLinkClient(_settings()).fetch_history(24)

    assert excinfo.value.code == "NO_HISTORY_DATA"


@pytest.mark.asyncio
@respx.mock
async def test_bad_credentials_raise_auth_failed():
    respx.post(f"{US}/llu/auth/login").mock(
        return_value=httpx.Response(200, json={"status": 2, "error": {"message": "notAuthenticated"}})
    )

    with pytest.raises(LibreLinkError) as excinfo:
        await LibreLinkClient(_settings()).fetch_current()

    assert excinfo.value.code == "AUTH_FAILED"


@pytest.mark.asyncio
@respx.mock
async def test_login_follows_region_redirect():
    respx.post(f"{US}/llu/auth/login").mock(
        return_value=httpx.Response(200, json={"status": 0, "data": {"redirect": True, "region": "eu"}})
    )
    eu_login = respx.post(f"{EU}/llu/auth/login").mock(return_value=httpx.Response(200, json=LOGIN_OK))

    client = LibreLinkClient(_settings())
    await client.login()

    assert eu_login.called
    assert client.base_url == EU
    assert client.is_logged_in


@pytest.mark.asyncio
@respx.mock
async def test_connection_failure_maps_to_glucose_read_failed():
    respx.post(f"{US}/llu/auth/login").mock(return_value=httpx.Response(200, json=LOGIN_OK))
    respx.get(f"{US}/llu/connections").mock(return_value=httpx.Response(500, text="boom"))

    with pytest.raises(LibreLinkError) as excinfo:
        await LibreLinkClient(_settings()).fetch_current()

    assert excinfo.value.code == "GLUCOSE_READ_FAILED"


@pytest.mark.asyncio
@respx.mock
async def test_no_connections_raises():
    respx.post(f"{US}/llu/auth/login").mock(return_value=httpx.Response(200, json=LOGIN_OK))
    respx.get(f"{US}/llu/connections").mock(return_value=httpx.Response(200, json={"status": 0, "data": []}))

    with pytest.raises(LibreLinkError) as excinfo:
        await LibreLinkClient(_settings()).fetch_current()

    assert excinfo.value.code == "NO_CONNECTIONS"


@pytest.mark.asyncio
@respx.mock
async def test_validate_connection_false_on_unauthorized():
    respx.post(f"{US}/llu/auth/login").mock(return_value=httpx.Response(200, json=LOGIN_OK))
    respx.get(f"{US}/llu/connections").mock(return_value=httpx.Response(401, text="unauthorized"))

    client = LibreLinkClient(_settings())

    assert await client.validate_connection() is False
    assert client.is_logged_in is False


@pytest.mark.asyncio
@respx.mock
async def test_validate_connection_true():
    respx.post(f"{US}/llu/auth/login").mock(return_value=httpx.Response(200, json=LOGIN_OK))
    respx.get(f"{US}/llu/connections").mock(return_value=httpx.Response(200, json=_connections()))

    assert await LibreLinkClient(_settings()).validate_connection() is True


@pytest.mark.asyncio
@respx.mock
async def test_sensor_info_from_active_sensors():
    respx.post(f"{US}/llu/auth/login").mock(return_value=httpx.Response(200, json=LOGIN_OK))
    respx.get(f"{US}/llu/connections").mock(return_value=httpx.Response(200, json=_connections()))
    respx.get(f"{US}/llu/connections/patient-1/graph").mock(
        return_value=httpx.Response(
            200,
            json={
                "status": 0,
                "data": {"activeSensors": [{"sensor": {"deviceId": "dev-1", "sn": "SN123", "a": 1700000000, "pt": 4}}]},
            },
        )
    )

    sensors = await LibreLinkClient(_settings()).fetch_sensor_info()

    assert len(sensors) == 1
    assert sensors[0].serial_number == "SN123"
    assert sensors[0].device_type == "FreeStyle Libre 3"
    assert sensors[0].state == "Active"
    assert sensors[0].activation_time == datetime.fromtimestamp(1700000000)


@pytest.mark.asyncio
@respx.mock
async def test_sensor_info_falls_back_to_unknown():
    respx.post(f"{US}/llu/auth/login").mock(return_value=httpx.Response(200, json=LOGIN_OK))
    respx.get(f"{US}/llu/connections").mock(return_value=httpx.Response(200, json=_connections()))
    respx.get(f"{US}/llu/connections/patient-1/graph").mock(return_value=httpx.Response(500, text="boom"))

    sensors = await LibreLinkClient(_settings()).fetch_sensor_info()

    assert [sensor.state for sensor in sensors] == ["Unknown"]
    assert sensors[0].serial_number == "unknown"


def test_unconfigured_settings_rejected():
    with pytest.raises(ValueError):
        LibreLinkClient(LibreLinkSettings())


LOGIN_REFRESHED = {
    "status": 0,
    "data": {"user": {"id": "user-1"}, "authTicket": {"token": "token-def", "expires": 0}},
}


@pytest.mark.asyncio
@respx.mock
async def test_expired_token_triggers_fresh_login():
    login = respx.post(f"{US}/llu/auth/login").mock(
        side_effect=[httpx.Response(200, json=LOGIN_OK), httpx.Response(200, json=LOGIN_REFRESHED)]
    )
    current = _connections(_item(130, datetime(2024, 5, 1, 9, 0)))
    connections = respx.get(f"{US}/llu/connections").mock(
        side_effect=[
            httpx.Response(200, json=current),
            httpx.Response(401, text="token expired"),
            httpx.Response(200, json=current),
        ]
    )
    client = LibreLinkClient(_settings())

    await client.fetch_current()
    reading = await client.fetch_current()

    assert reading.value == 130
    assert login.call_count == 2
    assert connections.call_count == 3
    assert connections.calls.last.request.headers["authorization"] == "Bearer token-def"
    assert client.is_logged_in


@pytest.mark.asyncio
@respx.mock
async def test_history_retries_once_after_rejected_token():
    now = datetime.now().replace(microsecond=0)
    login = respx.post(f"{US}/llu/auth/login").mock(
        side_effect=[httpx.Response(200, json=LOGIN_OK), httpx.Response(200, json=LOGIN_REFRESHED)]
    )
    respx.get(f"{US}/llu/connections").mock(return_value=httpx.Response(200, json=_connections()))
    respx.get(f"{US}/llu/connections/patient-1/graph").mock(
        side_effect=[
            httpx.Response(403, text="forbidden"),
            httpx.Response(200, json={"status": 0, "data": {"graphData": [_item(110, now - timedelta(hours=1))]}}),
        ]
    )

    readings = await LibreLinkClient(_settings()).fetch_history(24)

    assert [reading.value for reading in readings] == [110]
    assert login.call_count == 2


@pytest.mark.asyncio
@respx.mock
async def test_second_rejection_is_reported():
    respx.post(f"{US}/llu/auth/login").mock(return_value=httpx.Response(200, json=LOGIN_OK))
    connections = respx.get(f"{US}/llu/connections").mock(return_value=httpx.Response(401, text="unauthorized"))

    with pytest.raises(LibreLinkError) as excinfo:
        await LibreLinkClient(_settings()).fetch_current()

    assert excinfo.value.code == "GLUCOSE_READ_FAILED"
    assert connections.call_count == 2


@pytest.mark.asyncio
@respx.mock
async def test_server_error_is_not_retried():
    login = respx.post(f"{US}/llu/auth/login").mock(return_value=httpx.Response(200, json=LOGIN_OK))
    connections = respx.get(f"{US}/llu/connections").mock(return_value=httpx.Response(502, text="bad gateway"))

    with pytest.raises(LibreLinkError):
        await LibreLinkClient(_settings()).fetch_current()

    assert login.call_count == 1
    assert connections.call_count == 1


@pytest.mark.asyncio
@respx.mock
async def test_range_bounds_are_not_flagged():
    respx.post(f"{US}/llu/auth/login").mock(return_value=httpx.Response(200, json=LOGIN_OK))
    respx.get(f"{US}/llu/connections").mock(
        return_value=httpx.Response(200, json=_connections(_item(180, datetime(2024, 5, 1, 14, 30))))
    )

    reading = await LibreLinkClient(_settings()).fetch_current()

    assert reading.is_high is False
    assert reading.is_low is False
