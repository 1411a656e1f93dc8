"""Device installation service.

Platform-agnostic base for the device identity provider: it holds the
current push token, derives a stable device fingerprint, builds the
installation payload and registers it with the backend. Platform glue
(FCM, APNs, Web Push) feeds tokens in through ``set_token`` and reads
token changes from ``token_updates``.
"""

import hashlib
import platform as platform_info
import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Protocol, runtime_checkable

from push_registration.core.registration.enums import TokenUpdateKind
from push_registration.core.registration.models import (
    DeviceInstallation,
    DeviceNotificationStatus,
    TokenUpdate,
)
from push_registration.core.registration.token_updates import TokenUpdateStream
from push_registration.logging_config import get_logger, mask_id
from push_registration.services.backend_client import PushNotificationBackend

logger = get_logger(__name__)

# Push channel placeholders used when no real token is available
_DEVELOPMENT_TOKEN_PREFIX = "development-token-"
_UNSUPPORTED_TOKEN_PREFIX = "no-notifications-supported-"


@runtime_checkable
class DeviceInstallationProvider(Protocol):
    """What the coordinator needs from the device identity provider."""

    @property
    def platform(self) -> str: ...

    def get_device_fingerprint(self) -> str: ...

    async def register_device(self, user_id: str) -> bool: ...


def default_fingerprint_source() -> str:
    """Hardware/software characteristics of the current machine."""
    return "|".join(
        [
            platform_info.system(),
            platform_info.node(),
            platform_info.machine(),
            f"{uuid.getnode():012x}",
        ]
    )


class DeviceInstallationService:
    """Base ``DeviceInstallationProvider`` implementation.

    Args:
        backend: Backend used by ``register_device``.
        platform: Platform identifier (e.g. "fcmv1", "apns", "webpush").
        fingerprint_source: Callable returning raw device characteristics;
            hashed with SHA-256 to form the fingerprint.
        notifications_supported: Whether the platform can receive pushes.
    """

    def __init__(
        self,
        backend: PushNotificationBackend,
        platform: str,
        *,
        fingerprint_source: Callable[[], str] = default_fingerprint_source,
        notifications_supported: bool = True,
    ) -> None:
        if not platform:
            raise ValueError("platform must not be empty")
        self._backend = backend
        self._platform = platform
        self._fingerprint_source = fingerprint_source
        self._notifications_supported = notifications_supported
        self._token = ""
        self._fingerprint: str | None = None
        self.token_updates = TokenUpdateStream()

    @property
    def platform(self) -> str:
        return self._platform

    @property
    def token(self) -> str | None:
        return self._token or None

    @property
    def notifications_supported(self) -> bool:
        return self._notifications_supported

    @property
    def is_registered(self) -> bool:
        """True once a push token has been received."""
        return bool(self._token)

    def set_token(self, token: str | None) -> None:
        """Record a push token from the platform messaging service.

        Publishes ``received`` for the first token and ``updated`` when an
        existing token is replaced. Re-setting the same token publishes
        nothing.
        """
        previous = self._token
        self._token = token or ""
        if not self._token or self._token == previous:
            return

        kind = TokenUpdateKind.updated if previous else TokenUpdateKind.received
        logger.info("Push token set", kind=str(kind), token=mask_id(self._token))
        self.token_updates.publish(
            TokenUpdate(kind=kind, token=self._token, previous_token=previous or None)
        )

    def get_device_fingerprint(self) -> str:
        """SHA-256 hex digest of the device characteristics (memoized)."""
        if self._fingerprint is None:
            raw = self._fingerprint_source()
            if not raw:
                raise ValueError("fingerprint source returned no data")
            self._fingerprint = hashlib.sha256(raw.encode("utf-8")).hexdigest()
        return self._fingerprint

    def get_device_id(self) -> str:
        """Short device id derived from the fingerprint."""
        return self.get_device_fingerprint()[:32]

    def get_device_installation(self, *tags: str) -> DeviceInstallation:
        """Build the installation payload with automatic targeting tags."""
        device_id = self.get_device_id()

        if not self._notifications_supported:
            channel = f"{_UNSUPPORTED_TOKEN_PREFIX}{device_id}"
        elif not self._token.strip():
            channel = f"{_DEVELOPMENT_TOKEN_PREFIX}{device_id}"
        else:
            channel = self._token

        all_tags = list(tags)
        all_tags.append(f"platform_{self._platform}")
        all_tags.append(f"device_{device_id}")
        if self._notifications_supported:
            all_tags.append("notifications_supported")
        if self._has_valid_token():
            all_tags.append("has_valid_token")

        return DeviceInstallation(
            installation_id=device_id,
            platform=self._platform,
            push_channel=channel,
            tags=all_tags,
        )

    async def register_device(self, user_id: str) -> bool:
        """Register this installation with the backend for ``user_id``."""
        try:
            installation = self.get_device_installation(f"user_{user_id}")
            registered = await self._backend.register_device(installation)
        except Exception as exc:
            logger.warning(
                "Device installation registration failed",
                user_id=user_id,
                error=str(exc),
            )
            return False

        if not registered:
            logger.warning("Backend rejected device installation", user_id=user_id)
        return registered

    def get_notification_status(self) -> DeviceNotificationStatus:
        """Diagnostic snapshot for troubleshooting."""
        error = None
        try:
            device_id = self.get_device_id()
        except Exception as exc:
            device_id = ""
            error = f"fingerprint unavailable: {exc}"

        return DeviceNotificationStatus(
            device_id=device_id,
            platform=self._platform,
            is_supported=self._notifications_supported,
            has_token=bool(self._token),
            token_length=len(self._token),
            error=error,
            last_checked=datetime.now(UTC),
            platform_specific_data={"has_valid_token": self._has_valid_token()},
        )

    def _has_valid_token(self) -> bool:
        return bool(self._token) and not self._token.startswith(
            (_DEVELOPMENT_TOKEN_PREFIX, _UNSUPPORTED_TOKEN_PREFIX)
        )
