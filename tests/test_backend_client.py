"""Tests for the HTTP push backend client."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from push_registration.core.registration.exceptions import BackendError
from push_registration.core.registration.models import (
    DeviceInstallation,
    NotificationPayload,
)
from push_registration.services.backend_client import (
    HttpPushBackend,
    PushNotificationBackend,
)

_BASE = "http://test-backend/api/push"

_RECORD_JSON = {
    "deviceId": "fcm_abc123_0001",
    "platform": "fcm",
    "pushToken": "tok",
    "userId": "user-1",
    "isActive": True,
    "registeredAt": "2025-06-01T12:00:00Z",
    "lastUpdated": "2025-06-10T12:00:00",
    "tags": ["user_user-1"],
}


def _make_response(json_data, status_code: int = 200) -> MagicMock:
    """Create a mock httpx.Response with synchronous .json() and .raise_for_status()."""
    resp = MagicMock()
    resp.json.return_value = json_data
    resp.status_code = status_code
    resp.raise_for_status.return_value = None
    return resp


def _status_error(status_code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", _BASE)
    response = httpx.Response(status_code, request=request)
    return httpx.HTTPStatusError("error", request=request, response=response)


def _patched_client(mock_client_cls) -> AsyncMock:
    mock_client = AsyncMock()
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client_cls.return_value = mock_client
    return mock_client


@pytest.fixture
def backend() -> HttpPushBackend:
    return HttpPushBackend(base_url=_BASE + "/", api_key="test-api-key", timeout=5.0)


def test_satisfies_protocol(backend):
    assert isinstance(backend, PushNotificationBackend)


class TestGetDevice:
    @pytest.mark.asyncio
    async def test_returns_record(self, backend):
        with patch("push_registration.services.backend_client.httpx.AsyncClient") as cls:
            client = _patched_client(cls)
            client.get.return_value = _make_response(_RECORD_JSON)

            record = await backend.get_device("fcm_abc123_0001")

            url = client.get.call_args.args[0]
            headers = client.get.call_args.kwargs["headers"]

        assert url == f"{_BASE}/devices/fcm_abc123_0001"
        assert headers["Authorization"] == "Bearer test-api-key"
        assert record is not None
        assert record.device_id == "fcm_abc123_0001"
        assert record.is_active is True
        assert record.last_updated.tzinfo is not None
        assert record.tags == ["user_user-1"]

    @pytest.mark.asyncio
    async def test_404_returns_none(self, backend):
        with patch("push_registration.services.backend_client.httpx.AsyncClient") as cls:
            client = _patched_client(cls)
            client.get.return_value = _make_response({}, status_code=404)

            assert await backend.get_device("unknown") is None

    @pytest.mark.asyncio
    async def test_server_error_raises_backend_error(self, backend):
        with patch("push_registration.services.backend_client.httpx.AsyncClient") as cls:
            client = _patched_client(cls)
            resp = _make_response({}, status_code=500)
            resp.raise_for_status.side_effect = _status_error(500)
            client.get.return_value = resp

            with pytest.raises(BackendError) as exc_info:
                await backend.get_device("fcm_abc123_0001")

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_connection_error_raises_backend_error(self, backend):
        with patch("push_registration.services.backend_client.httpx.AsyncClient") as cls:
            client = _patched_client(cls)
            client.get.side_effect = httpx.ConnectError("Connection refused")

            with pytest.raises(BackendError):
                await backend.get_device("fcm_abc123_0001")

    @pytest.mark.asyncio
    async def test_malformed_record_raises_backend_error(self, backend):
        with patch("push_registration.services.backend_client.httpx.AsyncClient") as cls:
            client = _patched_client(cls)
            client.get.return_value = _make_response({"deviceId": "x"})

            with pytest.raises(BackendError):
                await backend.get_device("x")


class TestGetUserDevices:
    @pytest.mark.asyncio
    async def test_returns_records(self, backend):
        with patch("push_registration.services.backend_client.httpx.AsyncClient") as cls:
            client = _patched_client(cls)
            client.get.return_value = _make_response([_RECORD_JSON, _RECORD_JSON])

            records = await backend.get_user_devices("user-1")

            url = client.get.call_args.args[0]

        assert url == f"{_BASE}/users/user-1/devices"
        assert len(records) == 2

    @pytest.mark.asyncio
    async def test_non_list_body_raises(self, backend):
        with patch("push_registration.services.backend_client.httpx.AsyncClient") as cls:
            client = _patched_client(cls)
            client.get.return_value = _make_response({"devices": []})

            with pytest.raises(BackendError):
                await backend.get_user_devices("user-1")

    @pytest.mark.asyncio
    async def test_timeout_raises_backend_error(self, backend):
        with patch("push_registration.services.backend_client.httpx.AsyncClient") as cls:
            client = _patched_client(cls)
            client.get.side_effect = httpx.ReadTimeout("timed out")

            with pytest.raises(BackendError):
                await backend.get_user_devices("user-1")


class TestDeactivateDevice:
    @pytest.mark.asyncio
    async def test_success(self, backend):
        with patch("push_registration.services.backend_client.httpx.AsyncClient") as cls:
            client = _patched_client(cls)
            client.post.return_value = _make_response({}, status_code=204)

            assert await backend.deactivate_device("dev-1") is True
            assert client.post.call_args.args[0] == f"{_BASE}/devices/dev-1/deactivate"

    @pytest.mark.asyncio
    async def test_not_found_returns_false(self, backend):
        with patch("push_registration.services.backend_client.httpx.AsyncClient") as cls:
            client = _patched_client(cls)
            client.post.return_value = _make_response({}, status_code=404)

            assert await backend.deactivate_device("dev-1") is False

    @pytest.mark.asyncio
    async def test_connection_error_returns_false(self, backend):
        with patch("push_registration.services.backend_client.httpx.AsyncClient") as cls:
            client = _patched_client(cls)
            client.post.side_effect = httpx.ConnectError("Connection refused")

            assert await backend.deactivate_device("dev-1") is False


class TestRegisterDevice:
    @pytest.mark.asyncio
    async def test_puts_camel_case_installation(self, backend):
        installation = DeviceInstallation(
            installation_id="dev-1",
            platform="fcm",
            push_channel="tok",
            tags=["user_u1"],
        )
        with patch("push_registration.services.backend_client.httpx.AsyncClient") as cls:
            client = _patched_client(cls)
            client.put.return_value = _make_response({})

            assert await backend.register_device(installation) is True

            body = client.put.call_args.kwargs["json"]

        assert body == {
            "installationId": "dev-1",
            "platform": "fcm",
            "pushChannel": "tok",
            "tags": ["user_u1"],
        }

    @pytest.mark.asyncio
    async def test_http_error_returns_false(self, backend):
        installation = DeviceInstallation(installation_id="dev-1", platform="fcm", push_channel="tok")
        with patch("push_registration.services.backend_client.httpx.AsyncClient") as cls:
            client = _patched_client(cls)
            resp = _make_response({}, status_code=400)
            resp.raise_for_status.side_effect = _status_error(400)
            client.put.return_value = resp

            assert await backend.register_device(installation) is False


class TestSendNotification:
    @pytest.mark.asyncio
    async def test_parses_result(self, backend):
        payload = NotificationPayload(title="Hi", body="There", tags=["user_u1"])
        with patch("push_registration.services.backend_client.httpx.AsyncClient") as cls:
            client = _patched_client(cls)
            client.post.return_value = _make_response(
                {"success": True, "successCount": 2, "failureCount": 1}
            )

            result = await backend.send_notification(payload)

        assert result.success is True
        assert result.success_count == 2
        assert result.failure_count == 1

    @pytest.mark.asyncio
    async def test_error_status_is_failed_result(self, backend):
        with patch("push_registration.services.backend_client.httpx.AsyncClient") as cls:
            client = _patched_client(cls)
            client.post.return_value = _make_response({}, status_code=502)

            result = await backend.send_test_notification("dev-1")

        assert result.success is False
        assert "502" in result.error_message

    @pytest.mark.asyncio
    async def test_connection_error_is_failed_result(self, backend):
        with patch("push_registration.services.backend_client.httpx.AsyncClient") as cls:
            client = _patched_client(cls)
            client.post.side_effect = httpx.ConnectError("Connection refused")

            result = await backend.send_test_notification("dev-1")

        assert result.success is False


def test_no_auth_header_without_api_key():
    backend = HttpPushBackend(base_url=_BASE, api_key="")

    assert "Authorization" not in backend._headers()
