"""Device registration coordinator.

Decides whether this device is registered with the push backend, whether
the user should be prompted for notification permission, performs the
registration, and reaps stale registrations for a user.

Every public method fully recovers from collaborator failures and encodes
the outcome in its return value; the coordinator runs during application
startup and must never take the host down over a network or storage
hiccup. Caller-side cancellation is not intercepted.
"""

import asyncio
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta

from push_registration.config import settings
from push_registration.core.registration.constants import (
    DEVICE_ID_KEY,
    FALLBACK_DEVICE_ID_PREFIX,
    LAST_PERMISSION_STATE_KEY,
    device_token_id_key,
)
from push_registration.core.registration.enums import (
    DeviceRegistrationState,
    PermissionState,
)
from push_registration.logging_config import get_logger, mask_id, operation_id_ctx
from push_registration.services.backend_client import PushNotificationBackend
from push_registration.services.device_installation import DeviceInstallationProvider
from push_registration.services.preferences import PreferencesStore

logger = get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


@contextmanager
def _operation() -> Iterator[None]:
    """Tag log records with an operation id unless one is already active."""
    if operation_id_ctx.get() is not None:
        yield
        return
    token = operation_id_ctx.set(uuid.uuid4().hex[:12])
    try:
        yield
    finally:
        operation_id_ctx.reset(token)


class DeviceRegistrationManager:
    """Manages device registration state with a permission-aware flow.

    Checks with the backend before anyone asks the user for permission, so
    registered devices and users who already declined are never prompted
    again.

    The only mutable state is the memoized device identifier. Re-deriving
    it from the store yields the same value, so concurrent callers need no
    lock; at worst two calls persist the same fresh identifier twice.
    """

    def __init__(
        self,
        backend: PushNotificationBackend,
        device_service: DeviceInstallationProvider,
        preferences: PreferencesStore,
        *,
        settle_delay: float | None = None,
        registration_max_age_days: int | None = None,
        stale_device_max_age_days: int | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._backend = backend
        self._device_service = device_service
        self._preferences = preferences

        if settle_delay is None:
            settle_delay = 0.0 if settings.testing else settings.settle_delay_seconds
        self._settle_delay = settle_delay
        self._registration_max_age = timedelta(
            days=registration_max_age_days
            if registration_max_age_days is not None
            else settings.registration_max_age_days
        )
        self._stale_device_max_age = timedelta(
            days=stale_device_max_age_days
            if stale_device_max_age_days is not None
            else settings.stale_device_max_age_days
        )
        self._clock = clock or _utc_now
        self._cached_device_id: str | None = None

    async def check_device_status(
        self,
        user_id: str,
        *,
        timeout: float | None = None,
    ) -> DeviceRegistrationState:
        """Check the current registration status of this device.

        Never raises: backend, storage and timeout failures all collapse
        to ``failed``.

        Args:
            user_id: User the device belongs to.
            timeout: Optional bound (seconds) on the whole check.
        """
        with _operation():
            try:
                async with asyncio.timeout(timeout):
                    return await self._checked_status(user_id)
            except TimeoutError:
                logger.warning("Device status check timed out", timeout=timeout)
                return DeviceRegistrationState.failed

    async def should_request_permissions(
        self,
        user_id: str,
        *,
        timeout: float | None = None,
    ) -> bool:
        """Whether the caller should prompt the user for notification permission.

        Fails open: a status check that could not complete still allows a
        prompt, so an outage never locks the user out of notifications.
        """
        state = await self.check_device_status(user_id, timeout=timeout)
        return state in (
            DeviceRegistrationState.not_registered,
            DeviceRegistrationState.failed,
        )

    async def register_device_if_needed(
        self,
        user_id: str,
        *,
        timeout: float | None = None,
    ) -> bool:
        """Register the device unless it already is, or the user declined.

        Returns:
            True if the device is registered when the call returns.
        """
        with _operation():
            try:
                async with asyncio.timeout(timeout):
                    return await self._register_if_needed(user_id)
            except Exception as exc:
                logger.warning(
                    "Error during device registration",
                    user_id=user_id,
                    error=str(exc) or type(exc).__name__,
                )
                return False

    async def cleanup_old_devices(self, user_id: str) -> int:
        """Deactivate old or inactive registrations for this platform.

        Best effort: errors are logged and swallowed.

        Returns:
            Number of deactivation requests issued.
        """
        issued = 0
        with _operation():
            try:
                user_devices = await self._backend.get_user_devices(user_id)
                current_platform = self._device_service.platform.casefold()
                now = self._clock()

                old_devices = [
                    d
                    for d in user_devices
                    if d.platform.casefold() == current_platform
                    and (
                        not d.is_active
                        or now - d.registered_at > self._stale_device_max_age
                    )
                ]

                for device in old_devices:
                    logger.info(
                        "Deactivating old device",
                        device_id=mask_id(device.device_id),
                        age_days=(now - device.registered_at).days,
                        is_active=device.is_active,
                    )
                    issued += 1
                    await self._backend.deactivate_device(device.device_id)
            except Exception as exc:
                logger.warning(
                    "Error during device cleanup",
                    user_id=user_id,
                    error=str(exc),
                )
        return issued

    def get_device_identifier(self) -> str:
        """Get or generate the identifier for this installation.

        Resolution order: in-memory cache, persisted value, freshly
        generated ``{platform}_{fingerprint}_{random}``. If the fingerprint
        or the store itself fails, a ``fallback_{random}`` identifier is
        used for the rest of the process instead.
        """
        if self._cached_device_id:
            return self._cached_device_id

        try:
            stored_id = self._preferences.get(DEVICE_ID_KEY, "")
            if stored_id:
                self._cached_device_id = stored_id
                return stored_id

            fingerprint = self._device_service.get_device_fingerprint()
            device_id = (
                f"{self._device_service.platform}_{fingerprint}_{uuid.uuid4().hex}"
            )

            try:
                self._preferences.set(DEVICE_ID_KEY, device_id)
            except Exception as exc:
                logger.warning("Could not store device ID", error=str(exc))

            logger.info("Generated device identifier", device_id=mask_id(device_id))
            self._cached_device_id = device_id
            return device_id
        except Exception as exc:
            fallback_id = f"{FALLBACK_DEVICE_ID_PREFIX}_{uuid.uuid4().hex}"
            logger.exception(
                "Error getting device identifier; using fallback",
                error=str(exc),
                device_id=mask_id(fallback_id),
            )
            self._cached_device_id = fallback_id
            return fallback_id

    def store_permission_state(self, granted: bool) -> None:
        """Record the outcome of an OS-level permission prompt."""
        state = PermissionState.granted if granted else PermissionState.denied
        try:
            self._preferences.set(LAST_PERMISSION_STATE_KEY, str(state))
        except Exception as exc:
            logger.error("Could not store permission state", state=str(state), error=str(exc))

    def get_cached_backend_device_id(self, user_id: str) -> str | None:
        """Backend device id recorded by the last successful status check."""
        try:
            return self._preferences.get(device_token_id_key(user_id), "") or None
        except Exception as exc:
            logger.warning("Could not read cached device id", error=str(exc))
            return None

    async def _checked_status(self, user_id: str) -> DeviceRegistrationState:
        try:
            return await self._resolve_status(user_id)
        except Exception as exc:
            logger.warning(
                "Error checking device status",
                user_id=user_id,
                error=str(exc),
            )
            return DeviceRegistrationState.failed

    async def _resolve_status(self, user_id: str) -> DeviceRegistrationState:
        # Let platform services finish initializing
        await asyncio.sleep(self._settle_delay)

        last_permission_state = self._preferences.get(LAST_PERMISSION_STATE_KEY, "")
        if last_permission_state == PermissionState.denied:
            logger.info("User previously denied permissions")
            return DeviceRegistrationState.permission_denied

        device_id = self.get_device_identifier()
        device_info = await self._backend.get_device(device_id)

        if device_info is None:
            return DeviceRegistrationState.not_registered

        if not device_info.is_active:
            logger.info(
                "Device registration exists but is inactive",
                device_id=mask_id(device_id),
            )
            return DeviceRegistrationState.not_registered

        token_age = self._clock() - device_info.last_updated
        if token_age > self._registration_max_age:
            logger.info(
                "Device registration expired",
                device_id=mask_id(device_id),
                age_days=token_age.days,
            )
            return DeviceRegistrationState.not_registered

        self._preferences.set(device_token_id_key(user_id), device_info.device_id)
        return DeviceRegistrationState.registered

    async def _register_if_needed(self, user_id: str) -> bool:
        state = await self._checked_status(user_id)

        if state == DeviceRegistrationState.registered:
            return True

        if state == DeviceRegistrationState.permission_denied:
            logger.info("Cannot register device - permissions denied")
            return False

        registered = await self._device_service.register_device(user_id)

        if registered:
            # A successful registration means permission is granted now
            try:
                self._preferences.remove(LAST_PERMISSION_STATE_KEY)
            except Exception as exc:
                logger.warning("Could not clear permission state", error=str(exc))
            logger.info("Device registered", user_id=user_id, previous_state=str(state))
        else:
            logger.warning("Device registration failed", user_id=user_id)

        return registered
