"""Push notification registration core.

Determines whether this device holds a current registration with the
push backend and decides when the user may be asked for notification
permission:

1. A persisted ``denied`` permission outcome short-circuits every check
   without contacting the backend.
2. Missing, inactive, or stale (older than the freshness window) backend
   records mean the device is not registered.
3. A status check that cannot complete reports ``failed``, which still
   allows a permission prompt (fail-open).

The coordinator itself lives in ``coordinator`` and is exported from the
top-level package; this module exposes the data model it works with.
"""

from push_registration.core.registration.enums import (
    DeviceRegistrationState,
    PermissionState,
    TokenUpdateKind,
)
from push_registration.core.registration.exceptions import (
    BackendError,
    PreferencesError,
    PushRegistrationError,
)
from push_registration.core.registration.models import (
    DeviceInstallation,
    DeviceNotificationStatus,
    DeviceRecord,
    NotificationPayload,
    SendNotificationResult,
    TokenUpdate,
)
from push_registration.core.registration.token_updates import (
    TokenSubscription,
    TokenUpdateStream,
)

__all__ = [
    "BackendError",
    "DeviceInstallation",
    "DeviceNotificationStatus",
    "DeviceRecord",
    "DeviceRegistrationState",
    "NotificationPayload",
    "PermissionState",
    "PreferencesError",
    "PushRegistrationError",
    "SendNotificationResult",
    "TokenSubscription",
    "TokenUpdate",
    "TokenUpdateKind",
    "TokenUpdateStream",
]
