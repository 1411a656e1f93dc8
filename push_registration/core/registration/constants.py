"""Registration policy constants and preference keys.

The day thresholds are DEFAULTS; ``Settings`` and the coordinator
constructor override them.
"""

from typing import Final

# Freshness: a backend record last updated more than this many days ago
# no longer counts as a registration. Forces periodic re-registration so
# dead push tokens do not linger.
REGISTRATION_MAX_AGE_DAYS: Final[int] = 30

# Cleanup: records for the current platform registered more than this many
# days ago are deactivated during cleanup.
STALE_DEVICE_MAX_AGE_DAYS: Final[int] = 90

# Settle delay (seconds) before the first status I/O so platform services
# have finished initializing.
SETTLE_DELAY_SECONDS: Final[float] = 0.1

# Preference keys
DEVICE_ID_KEY: Final[str] = "device_unique_id"
LAST_PERMISSION_STATE_KEY: Final[str] = "last_permission_state"
DEVICE_TOKEN_ID_KEY_TEMPLATE: Final[str] = "device_token_id_{user_id}"

FALLBACK_DEVICE_ID_PREFIX: Final[str] = "fallback"


def device_token_id_key(user_id: str) -> str:
    """Preference key caching the backend device id for a user."""
    return DEVICE_TOKEN_ID_KEY_TEMPLATE.format(user_id=user_id)
