# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Application exception taxonomy.

Every error carries the HTTP status it maps to; ``main.py`` registers a
single handler that renders ``{"detail": message}`` for any of them, so
service code never imports FastAPI's HTTPException.
"""

from fastapi import status


class TermbaseError(Exception):
    """Base class for all application errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Internal error"

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)


# -- Authentication --------------------------------------------------------


class InvalidCredentials(TermbaseError):
    """
    Uniform login failure.  Subclasses record *why* for the audit trail,
    but callers only ever see this class's message.
    """

    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid username or password"
    result = ""

    def __init__(self):
        super().__init__(InvalidCredentials.message)


class UserNotFound(InvalidCredentials):
    result = "user_not_found"


class PasswordMismatch(InvalidCredentials):
    result = "password_mismatch"


class AccountDisabled(InvalidCredentials):
    result = "account_disabled"


class StorageError(TermbaseError):
    """The database is unavailable or rejected a write."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    message = "System error, please try again later"


# -- Best-effort collaborators (never surfaced to the caller) --------------


class GeolocationUnresolved(TermbaseError):
    message = "IP location could not be resolved"


class NotificationFailed(TermbaseError):
    message = "Notification could not be delivered"


# -- Authorization ---------------------------------------------------------


class Unauthorized(TermbaseError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Not authenticated"


class Forbidden(TermbaseError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Admin access required"


# -- Admin operations ------------------------------------------------------


class NotFound(TermbaseError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class Conflict(TermbaseError):
    status_code = status.HTTP_409_CONFLICT
    message = "Already exists"


class BadRequest(TermbaseError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Bad request"
