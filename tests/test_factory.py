"""Tests for settings-driven wiring."""

from unittest.mock import patch

from conftest import FakeBackend, FakeDeviceService

from push_registration.config import Settings
from push_registration.core.registration.coordinator import DeviceRegistrationManager
from push_registration.factory import build_manager, build_preferences
from push_registration.services.backend_client import HttpPushBackend
from push_registration.services.preferences import (
    InMemoryPreferences,
    JsonFilePreferences,
    RedisPreferences,
)


class TestBuildPreferences:
    def test_defaults_to_memory(self):
        assert isinstance(build_preferences(Settings()), InMemoryPreferences)

    def test_file_store_from_path(self, tmp_path):
        config = Settings(preferences_path=str(tmp_path / "prefs.json"))

        store = build_preferences(config)

        assert isinstance(store, JsonFilePreferences)
        assert store.file_path == tmp_path / "prefs.json"

    def test_redis_wins_over_path(self, tmp_path):
        config = Settings(
            redis_url="redis://localhost:6379/3",
            preferences_path=str(tmp_path / "prefs.json"),
        )

        with patch("push_registration.services.preferences.redis.Redis.from_url") as from_url:
            store = build_preferences(config)

        assert isinstance(store, RedisPreferences)
        from_url.assert_called_once()
        assert from_url.call_args.args[0] == "redis://localhost:6379/3"


class TestBuildManager:
    def test_builds_http_backend_from_settings(self):
        config = Settings(backend_url="http://backend/api", backend_api_key="k")

        manager = build_manager(FakeDeviceService(), config=config)

        assert isinstance(manager, DeviceRegistrationManager)
        assert isinstance(manager._backend, HttpPushBackend)
        assert manager._backend.base_url == "http://backend/api"
        assert manager._backend.api_key == "k"

    def test_thresholds_from_settings(self):
        config = Settings(registration_max_age_days=7, stale_device_max_age_days=14)

        manager = build_manager(
            FakeDeviceService(),
            config=config,
            backend=FakeBackend(),
            preferences=InMemoryPreferences(),
        )

        assert manager._registration_max_age.days == 7
        assert manager._stale_device_max_age.days == 14

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("PUSH_REGISTRATION_REGISTRATION_MAX_AGE_DAYS", "45")

        assert Settings().registration_max_age_days == 45
