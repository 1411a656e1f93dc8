"""Pytest configuration and shared fixtures.

Provides call-counting fakes for the three collaborators the coordinator
consumes: the push backend, the device identity provider and the
preferences store.
"""

import os
from datetime import UTC, datetime, timedelta

import pytest

# Set testing mode BEFORE importing the package so the settle delay is skipped
os.environ["PUSH_REGISTRATION_TESTING"] = "true"

from push_registration.config import settings

settings.testing = True

from push_registration.core.registration.coordinator import DeviceRegistrationManager
from push_registration.core.registration.models import (
    DeviceInstallation,
    DeviceRecord,
    NotificationPayload,
    SendNotificationResult,
)
from push_registration.services.preferences import InMemoryPreferences

NOW = datetime(2025, 6, 15, 12, 0, 0, tzinfo=UTC)


def make_record(
    device_id: str = "fcm_abc123_0001",
    *,
    platform: str = "fcm",
    is_active: bool = True,
    registered_days_ago: float = 1,
    updated_days_ago: float = 1,
    user_id: str | None = "user-1",
) -> DeviceRecord:
    """Build a backend record aged relative to NOW."""
    return DeviceRecord(
        device_id=device_id,
        platform=platform,
        push_token=f"token-{device_id}",
        user_id=user_id,
        is_active=is_active,
        registered_at=NOW - timedelta(days=registered_days_ago),
        last_updated=NOW - timedelta(days=updated_days_ago),
    )


class FakeBackend:
    """In-memory push backend that records every call."""

    def __init__(self) -> None:
        self.devices: dict[str, DeviceRecord] = {}
        self.user_devices: list[DeviceRecord] = []
        self.get_device_calls: list[str] = []
        self.get_user_devices_calls: list[str] = []
        self.deactivated: list[str] = []
        self.registered: list[DeviceInstallation] = []
        self.get_device_error: Exception | None = None
        self.get_user_devices_error: Exception | None = None
        self.deactivate_error: Exception | None = None

    async def get_device(self, device_id: str) -> DeviceRecord | None:
        self.get_device_calls.append(device_id)
        if self.get_device_error is not None:
            raise self.get_device_error
        return self.devices.get(device_id)

    async def get_user_devices(self, user_id: str) -> list[DeviceRecord]:
        self.get_user_devices_calls.append(user_id)
        if self.get_user_devices_error is not None:
            raise self.get_user_devices_error
        return list(self.user_devices)

    async def deactivate_device(self, device_id: str) -> bool:
        if self.deactivate_error is not None:
            raise self.deactivate_error
        self.deactivated.append(device_id)
        return True

    async def register_device(self, installation: DeviceInstallation) -> bool:
        self.registered.append(installation)
        return True

    async def send_notification(self, payload: NotificationPayload) -> SendNotificationResult:
        return SendNotificationResult(success=True, success_count=1)

    async def send_test_notification(self, device_id: str) -> SendNotificationResult:
        return SendNotificationResult(success=True, success_count=1)


class FakeDeviceService:
    """Device identity provider with a fixed platform and fingerprint."""

    def __init__(
        self,
        platform: str = "fcm",
        fingerprint: str = "abc123",
        register_result: bool = True,
    ) -> None:
        self._platform = platform
        self.fingerprint = fingerprint
        self.register_result = register_result
        self.register_calls: list[str] = []
        self.fingerprint_error: Exception | None = None
        self.register_error: Exception | None = None

    @property
    def platform(self) -> str:
        return self._platform

    def get_device_fingerprint(self) -> str:
        if self.fingerprint_error is not None:
            raise self.fingerprint_error
        return self.fingerprint

    async def register_device(self, user_id: str) -> bool:
        self.register_calls.append(user_id)
        if self.register_error is not None:
            raise self.register_error
        return self.register_result


class FailingPreferences:
    """Store whose every operation raises."""

    def get(self, key: str, default: str = "") -> str:
        raise OSError("store unreadable")

    def set(self, key: str, value: str) -> None:
        raise OSError("store unwritable")

    def remove(self, key: str) -> None:
        raise OSError("store unwritable")


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def device_service() -> FakeDeviceService:
    return FakeDeviceService()


@pytest.fixture
def preferences() -> InMemoryPreferences:
    return InMemoryPreferences()


@pytest.fixture
def manager(backend, device_service, preferences) -> DeviceRegistrationManager:
    """Coordinator with no settle delay and a frozen clock."""
    return DeviceRegistrationManager(
        backend,
        device_service,
        preferences,
        settle_delay=0,
        clock=lambda: NOW,
    )
