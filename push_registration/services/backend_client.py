"""Push notification backend client.

``PushNotificationBackend`` is the interface the coordinator consumes;
``HttpPushBackend`` talks to a JSON/HTTP backend holding per-device
registration records (Azure Notification Hubs gateways, Firebase admin
proxies, or a custom API all fit behind it).

Query calls raise ``BackendError`` so the coordinator can tell "no record"
apart from "could not ask". Mutating calls log and return a falsy result.
"""

from typing import Protocol, runtime_checkable

import httpx
from pydantic import ValidationError

from push_registration.config import settings
from push_registration.core.registration.exceptions import BackendError
from push_registration.core.registration.models import (
    DeviceInstallation,
    DeviceRecord,
    NotificationPayload,
    SendNotificationResult,
)
from push_registration.logging_config import get_logger, mask_id

logger = get_logger(__name__)


@runtime_checkable
class PushNotificationBackend(Protocol):
    """Remote service holding per-device registration records."""

    async def get_device(self, device_id: str) -> DeviceRecord | None: ...

    async def get_user_devices(self, user_id: str) -> list[DeviceRecord]: ...

    async def deactivate_device(self, device_id: str) -> bool: ...

    async def register_device(self, installation: DeviceInstallation) -> bool: ...

    async def send_notification(
        self, payload: NotificationPayload
    ) -> SendNotificationResult: ...

    async def send_test_notification(self, device_id: str) -> SendNotificationResult: ...


class HttpPushBackend:
    """httpx implementation of ``PushNotificationBackend``.

    Endpoints (relative to ``base_url``):

    - ``GET  /devices/{device_id}``            -> device record, 404 if unknown
    - ``GET  /users/{user_id}/devices``        -> list of device records
    - ``POST /devices/{device_id}/deactivate`` -> idempotent deactivation
    - ``PUT  /devices/{installation_id}``      -> register or update
    - ``POST /notifications``                  -> send
    - ``POST /devices/{device_id}/test``       -> test send
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.base_url = (base_url if base_url is not None else settings.backend_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.backend_api_key
        self.timeout = timeout if timeout is not None else settings.backend_timeout_seconds

    def _headers(self) -> dict[str, str]:
        """Build request headers including optional bearer token."""
        h: dict[str, str] = {"Content-Type": "application/json"}
        if self.api_key:
            h["Authorization"] = f"Bearer {self.api_key}"
        return h

    async def get_device(self, device_id: str) -> DeviceRecord | None:
        """GET a single device record.

        Returns ``None`` when the backend has no record for ``device_id``.

        Raises:
            BackendError: On transport errors, non-404 error statuses, or an
                unparseable body.
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(
                    f"{self.base_url}/devices/{device_id}",
                    headers=self._headers(),
                )
                if resp.status_code == 404:
                    return None
                resp.raise_for_status()
                return DeviceRecord.model_validate(resp.json())
        except httpx.HTTPStatusError as exc:
            raise BackendError(
                f"Backend returned HTTP {exc.response.status_code} for device lookup",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise BackendError(f"Backend unreachable: {exc}") from exc
        except (ValueError, ValidationError) as exc:
            raise BackendError(f"Invalid device record from backend: {exc}") from exc

    async def get_user_devices(self, user_id: str) -> list[DeviceRecord]:
        """GET every device record associated with a user.

        Raises:
            BackendError: On transport errors, error statuses, or an
                unparseable body.
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(
                    f"{self.base_url}/users/{user_id}/devices",
                    headers=self._headers(),
                )
                resp.raise_for_status()
                body = resp.json()
        except httpx.HTTPStatusError as exc:
            raise BackendError(
                f"Backend returned HTTP {exc.response.status_code} for user devices",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise BackendError(f"Backend unreachable: {exc}") from exc
        except ValueError as exc:
            raise BackendError(f"Invalid device list from backend: {exc}") from exc

        if not isinstance(body, list):
            raise BackendError("Backend device list is not a JSON array")
        try:
            return [DeviceRecord.model_validate(item) for item in body]
        except ValidationError as exc:
            raise BackendError(f"Invalid device record from backend: {exc}") from exc

    async def deactivate_device(self, device_id: str) -> bool:
        """POST a deactivation. Already-inactive devices are a no-op server side."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    f"{self.base_url}/devices/{device_id}/deactivate",
                    headers=self._headers(),
                )
                if resp.status_code == 404:
                    logger.warning("Deactivation target not found", device_id=mask_id(device_id))
                    return False
                resp.raise_for_status()
                return True
        except httpx.HTTPError as exc:
            logger.warning(
                "Device deactivation failed",
                device_id=mask_id(device_id),
                error=str(exc),
            )
            return False

    async def register_device(self, installation: DeviceInstallation) -> bool:
        """PUT an installation (create or update)."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.put(
                    f"{self.base_url}/devices/{installation.installation_id}",
                    headers=self._headers(),
                    json=installation.model_dump(by_alias=True),
                )
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning(
                "Device registration request failed",
                device_id=mask_id(installation.installation_id),
                platform=installation.platform,
                error=str(exc),
            )
            return False

        logger.info(
            "Device registered with backend",
            device_id=mask_id(installation.installation_id),
            platform=installation.platform,
        )
        return True

    async def send_notification(self, payload: NotificationPayload) -> SendNotificationResult:
        """POST a notification for delivery."""
        return await self._send(
            f"{self.base_url}/notifications",
            payload.model_dump(by_alias=True, exclude_none=True),
        )

    async def send_test_notification(self, device_id: str) -> SendNotificationResult:
        """POST a test notification to a single device."""
        return await self._send(f"{self.base_url}/devices/{device_id}/test", None)

    async def _send(self, url: str, body: dict | None) -> SendNotificationResult:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(url, headers=self._headers(), json=body)
                if resp.status_code >= 400:
                    return SendNotificationResult(
                        success=False,
                        error_message=f"Backend returned HTTP {resp.status_code}",
                    )
                return SendNotificationResult.model_validate(resp.json())
        except httpx.HTTPError as exc:
            logger.warning("Notification send failed", error=str(exc))
            return SendNotificationResult(success=False, error_message=str(exc))
        except (ValueError, ValidationError) as exc:
            return SendNotificationResult(
                success=False, error_message=f"Invalid send result from backend: {exc}"
            )
