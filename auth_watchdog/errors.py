"""Exception types raised by the auth watchdog package."""

from typing import Optional


class AuthWatchdogError(Exception):
    """Base class for watchdog errors."""


class SupabaseError(AuthWatchdogError):
    """A Supabase (GoTrue / PostgREST) call failed.

    ``status_code`` is None when the request never produced a response
    (connection error, timeout).
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"{self.status_code}: {self.message}"


class RemediationError(AuthWatchdogError):
    """Diagnostics or remediation could not run to completion."""
