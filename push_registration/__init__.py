"""Push notification device registration."""

from push_registration.core.registration import (
    BackendError,
    DeviceRecord,
    DeviceRegistrationState,
    PermissionState,
    PreferencesError,
    PushRegistrationError,
)
from push_registration.core.registration.coordinator import DeviceRegistrationManager
from push_registration.factory import build_manager, build_preferences

__all__ = [
    "BackendError",
    "DeviceRecord",
    "DeviceRegistrationManager",
    "DeviceRegistrationState",
    "PermissionState",
    "PreferencesError",
    "PushRegistrationError",
    "build_manager",
    "build_preferences",
]

__version__ = "0.1.0"
