"""Registration Pydantic models.

Pure data models shared by the coordinator, the backend client and the
device installation service. The backend speaks camelCase JSON; every
model accepts both the wire aliases and the Python field names.
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from push_registration.core.registration.enums import TokenUpdateKind


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class DeviceRecord(BaseModel):
    """A registration record held by the backend.

    Read-only to this library; the coordinator only inspects it and asks
    the backend to deactivate it.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    device_id: str
    platform: str = ""
    push_token: str = ""
    user_id: str | None = None
    is_active: bool = False
    registered_at: datetime
    last_updated: datetime
    tags: list[str] = Field(default_factory=list)

    @field_validator("registered_at", "last_updated")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        """Naive timestamps from the backend are UTC."""
        return _as_utc(value)


class DeviceInstallation(BaseModel):
    """Installation payload sent to the backend when registering.

    Platform-agnostic: works for FCM, APNs and Web Push backends.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    installation_id: str
    platform: str
    push_channel: str
    tags: list[str] = Field(default_factory=list)


class NotificationPayload(BaseModel):
    """A notification to be delivered by the backend."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str = Field(min_length=1)
    body: str
    data: dict[str, Any] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    device_id: str | None = None


class SendNotificationResult(BaseModel):
    """Result of a notification send operation."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    error_message: str | None = None
    success_count: int = Field(default=0, ge=0)
    failure_count: int = Field(default=0, ge=0)


class DeviceNotificationStatus(BaseModel):
    """Diagnostic snapshot of a device's notification capabilities."""

    device_id: str
    platform: str
    is_supported: bool
    has_token: bool
    token_length: int = 0
    error: str | None = None
    last_checked: datetime
    platform_specific_data: dict[str, Any] = Field(default_factory=dict)


class TokenUpdate(BaseModel):
    """A push token change published on the token update stream."""

    model_config = ConfigDict(frozen=True)

    kind: TokenUpdateKind
    token: str = Field(min_length=1)
    previous_token: str | None = None
