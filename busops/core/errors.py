"""Exception hierarchy for the bus-operations backend.

Every error carries the HTTP status it is rendered with, so routers can raise
and let the application exception handler build the ``{"error": ...}`` body.
"""


class BusOpsError(Exception):
    """Base exception for all application errors."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class AuthError(BusOpsError):
    """Bad credentials, bad or expired token."""

    status_code = 401


class PasswordChangeError(AuthError):
    """Password change rejected (unknown account, wrong password, weak password)."""

    status_code = 400


class ProfileUpdateError(BusOpsError):
    """Profile update rejected."""

    status_code = 400


class UpstreamError(BusOpsError):
    """The workspace API answered with a non-success status or was unreachable."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code or 500
        super().__init__(message)


class SyncJobError(BusOpsError):
    """Failure inside the scheduled sync job. Logged, never surfaced."""
