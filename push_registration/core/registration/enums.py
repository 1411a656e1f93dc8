"""Registration enums."""

from enum import StrEnum, auto


class DeviceRegistrationState(StrEnum):
    """The coordinator's assessment of a device's standing with the backend.

    ``permission_pending`` is reserved for in-flight permission prompts and
    is never returned by a status check.
    """

    not_registered = auto()
    permission_pending = auto()
    permission_denied = auto()
    registered = auto()
    failed = auto()


class PermissionState(StrEnum):
    """Persisted outcome of the last OS-level permission prompt."""

    granted = auto()
    denied = auto()


class TokenUpdateKind(StrEnum):
    """Whether a push token was seen for the first time or replaced."""

    received = auto()
    updated = auto()
