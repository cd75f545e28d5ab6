"""Data model of the auth watchdog: sessions, locations, remediation results,
diagnostics and reconciliation outcomes.

All records are pydantic models so the API layer can return them as-is.
"""

import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

import jwt
from pydantic import BaseModel, Field


# ==============================================================================
# REMEDIATION
# ==============================================================================
class RemediationAction(str, Enum):
    """What the remediation routine did (or found nothing to do)."""

    NONE_NEEDED = "none_needed"
    TOKEN_SYNC = "token_sync"
    TOKEN_REMOVED = "token_removed"
    SESSION_RENEWED = "session_renewed"
    EXPIRED_SESSION_LOGOUT = "expired_session_logout"
    STORE_FIXED = "store_fixed"
    NO_FIX_AVAILABLE = "no_fix_available"


class RemediationResult(BaseModel):
    """Outcome of one remediation call. Transient, never persisted."""

    success: bool
    action: Optional[RemediationAction] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, action: RemediationAction) -> "RemediationResult":
        return cls(success=True, action=action)

    @classmethod
    def failed(
        cls, error: Optional[str] = None, action: Optional[RemediationAction] = None
    ) -> "RemediationResult":
        return cls(success=False, action=action, error=error)


# ==============================================================================
# SESSION
# ==============================================================================
class Session(BaseModel):
    """A GoTrue session as returned by the token endpoints."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None  # Unix seconds
    token_type: str = "bearer"
    user: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Session":
        """Build a session from a GoTrue token response.

        ``expires_at`` falls back to ``expires_in`` and then to the ``exp``
        claim of the access token.
        """
        expires_at = payload.get("expires_at")
        if expires_at is None and payload.get("expires_in") is not None:
            expires_at = int(time.time()) + int(payload["expires_in"])
        if expires_at is None:
            expires_at = token_expiry(payload["access_token"])
        return cls(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            expires_at=expires_at,
            token_type=payload.get("token_type", "bearer"),
            user=payload.get("user") or {},
        )

    @property
    def user_id(self) -> Optional[str]:
        return self.user.get("id")

    def seconds_until_expiry(self, now: Optional[float] = None) -> Optional[float]:
        if self.expires_at is None:
            return None
        now = time.time() if now is None else now
        return self.expires_at - now

    def is_expired(self, now: Optional[float] = None) -> bool:
        remaining = self.seconds_until_expiry(now)
        return remaining is not None and remaining < 0


def token_expiry(access_token: str) -> Optional[int]:
    """Read the ``exp`` claim without verifying the signature."""
    try:
        claims = jwt.decode(access_token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return None
    exp = claims.get("exp")
    return int(exp) if exp is not None else None


# ==============================================================================
# NAVIGATION
# ==============================================================================
class Location(BaseModel):
    """Current navigation location (path plus router state)."""

    path: str = "/"
    search: str = ""
    state: Dict[str, Any] = Field(default_factory=dict)

    @property
    def href(self) -> str:
        if not self.search:
            return self.path
        return f"{self.path}?{self.search.lstrip('?')}"


# ==============================================================================
# DIAGNOSTICS
# ==============================================================================
class SessionDetails(BaseModel):
    expires_at: Optional[str] = None  # ISO timestamp
    minutes_until_expiry: Optional[int] = None
    is_expired: bool = False
    user_id: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None


class AuthStoreState(BaseModel):
    is_authenticated: bool = False
    has_user: bool = False
    user_id: Optional[str] = None
    user_email: Optional[str] = None


class StateConsistency(BaseModel):
    token_matches_session: bool
    user_matches_session: bool
    store_matches_session: bool
    # None when there is nothing to compare (no session or no store user)
    user_id_matches: Optional[bool] = None


class AuthDiagnostics(BaseModel):
    """Snapshot of every authentication signal the remediation routine uses."""

    has_local_token: bool = False
    has_valid_session: bool = False
    session_error: Optional[str] = None
    session_details: Optional[SessionDetails] = None
    has_valid_user: bool = False
    user_error: Optional[str] = None
    user_details: Optional[Dict[str, Any]] = None
    auth_store_state: AuthStoreState = Field(default_factory=AuthStoreState)
    state_consistency: Optional[StateConsistency] = None
    collected_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


# ==============================================================================
# RECONCILIATION
# ==============================================================================
class DebounceState(BaseModel):
    """Last executed navigation check. Owned by one Reconciler."""

    last_path: Optional[str] = None
    last_checked_at: Optional[float] = None  # monotonic seconds


class ReconcileOutcome(BaseModel):
    """What a single reconciliation cycle observed and did."""

    trigger: str
    path: str
    store_authenticated: Optional[bool] = None
    context_authenticated: Optional[bool] = None
    consistent: bool = True
    debounced: bool = False
    result: Optional[RemediationResult] = None
    redirected_to: Optional[str] = None
    error: Optional[str] = None
