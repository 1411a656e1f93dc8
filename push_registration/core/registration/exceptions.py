"""Registration exceptions.

Collaborators raise these; the coordinator never lets them escape its
public methods.
"""


class PushRegistrationError(Exception):
    """Base class for push registration errors."""


class BackendError(PushRegistrationError):
    """The push backend could not be reached or returned an error."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PreferencesError(PushRegistrationError):
    """The preferences store could not be read or written."""
