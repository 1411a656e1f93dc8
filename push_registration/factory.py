"""Wiring helpers for hosting applications."""

from push_registration.config import Settings
from push_registration.config import settings as default_settings
from push_registration.core.registration.coordinator import DeviceRegistrationManager
from push_registration.logging_config import get_logger
from push_registration.services.backend_client import (
    HttpPushBackend,
    PushNotificationBackend,
)
from push_registration.services.device_installation import DeviceInstallationProvider
from push_registration.services.preferences import (
    InMemoryPreferences,
    JsonFilePreferences,
    PreferencesStore,
    RedisPreferences,
)

logger = get_logger(__name__)


def build_preferences(config: Settings | None = None) -> PreferencesStore:
    """Pick a preferences store from settings.

    ``redis_url`` wins over ``preferences_path``; with neither set the store
    is in-memory and nothing survives a restart.
    """
    config = config or default_settings
    if config.redis_url:
        return RedisPreferences(config.redis_url, prefix=config.redis_key_prefix)
    if config.preferences_path:
        return JsonFilePreferences(config.preferences_path)
    logger.warning(
        "No persistent preferences configured; device identifier will not survive restarts"
    )
    return InMemoryPreferences()


def build_manager(
    device_service: DeviceInstallationProvider,
    *,
    config: Settings | None = None,
    backend: PushNotificationBackend | None = None,
    preferences: PreferencesStore | None = None,
) -> DeviceRegistrationManager:
    """Build a ``DeviceRegistrationManager`` from settings.

    Args:
        device_service: Platform device identity provider.
        config: Settings to use (defaults to the module-level settings).
        backend: Override the HTTP backend built from settings.
        preferences: Override the store chosen by ``build_preferences``.
    """
    config = config or default_settings
    if backend is None:
        backend = HttpPushBackend(
            base_url=config.backend_url,
            api_key=config.backend_api_key,
            timeout=config.backend_timeout_seconds,
        )
    if preferences is None:
        preferences = build_preferences(config)

    return DeviceRegistrationManager(
        backend,
        device_service,
        preferences,
        settle_delay=0.0 if config.testing else config.settle_delay_seconds,
        registration_max_age_days=config.registration_max_age_days,
        stale_device_max_age_days=config.stale_device_max_age_days,
    )
