"""Library configuration using Pydantic Settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict

from push_registration.core.registration.constants import (
    REGISTRATION_MAX_AGE_DAYS,
    SETTLE_DELAY_SECONDS,
    STALE_DEVICE_MAX_AGE_DAYS,
)


class Settings(BaseSettings):
    """Settings loaded from environment variables (PUSH_REGISTRATION_*)."""

    model_config = SettingsConfigDict(
        env_prefix="PUSH_REGISTRATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Registration policy (see core.registration.constants)
    settle_delay_seconds: float = SETTLE_DELAY_SECONDS
    registration_max_age_days: int = REGISTRATION_MAX_AGE_DAYS
    stale_device_max_age_days: int = STALE_DEVICE_MAX_AGE_DAYS

    # Backend
    backend_url: str = "http://localhost:8080/api/push"
    backend_api_key: str = ""
    backend_timeout_seconds: float = 10.0

    # Preferences storage (redis_url wins over preferences_path when both set)
    preferences_path: str = ""
    redis_url: str = ""
    redis_key_prefix: str = "push_registration:"

    # Logging
    log_format: str = "json"  # 'json' or 'text'
    log_level: str = "INFO"
    service_name: str = "push-registration"

    # Testing
    testing: bool = False  # Disables the settle delay


settings = Settings()
