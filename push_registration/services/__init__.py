# Collaborator implementations
from push_registration.services.backend_client import (
    HttpPushBackend,
    PushNotificationBackend,
)
from push_registration.services.device_installation import (
    DeviceInstallationProvider,
    DeviceInstallationService,
)
from push_registration.services.preferences import (
    InMemoryPreferences,
    JsonFilePreferences,
    PreferencesStore,
    RedisPreferences,
)

__all__ = [
    "DeviceInstallationProvider",
    "DeviceInstallationService",
    "HttpPushBackend",
    "InMemoryPreferences",
    "JsonFilePreferences",
    "PreferencesStore",
    "PushNotificationBackend",
    "RedisPreferences",
]
