from __future__ import annotations

MODULE_DESCRIPTION = r"""Authentication Diagnostics and Self-Healing Remediation

The remediation routine the watchdog calls when its two flag sources disagree.
It inspects every authentication signal, applies the first applicable fix and
reports which one it applied.

Diagnostics (debug_auth_state):
-------------------------------
1. Local token present?                        (token storage, key "token")
2. Backend session present and not rejected?   (session context + GoTrue /user)
3. Session details: expiry, minutes left, user (id, email, role)
4. Backend user resolved?
5. Auth store state (flag A) and its user
6. Consistency matrix: token vs session, user vs session, store vs session,
   store user id vs session user id
The snapshot is logged as an INFO "auth_diagnostics" event.

Fix ladder (fix_auth_issues), first match wins:
-----------------------------------------------
1. No local token, session present    -> write token, store=True   token_sync
2. Local token, no session            -> drop token, store=False   token_removed
3. Session expiring in (0, threshold) -> refresh session           session_renewed
                                         (refresh error -> success=False)
4. Session expired                    -> sign out, drop everything expired_session_logout
5. Store says yes, no session         -> store=False               store_fixed
6. Store says no, session present     -> store=True                store_fixed
7. Everything agrees, not expired     -> nothing                   none_needed
8. Otherwise                          -> success=False             no_fix_available

Every applied fix is logged as an "auth_fix" event. Unexpected failures are
wrapped in RemediationError and propagated; the caller decides how to log
them (the reconciler logs exactly one ERROR per failed cycle).
"""

import math
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from api.utils.debug import print__remediation_debug
from auth_watchdog.backend.supabase_client import SupabaseClient
from auth_watchdog.config import DEFAULT_SESSION_RENEW_THRESHOLD_MINUTES
from auth_watchdog.errors import RemediationError, SupabaseError
from auth_watchdog.event_log import EventLogger, LogSeverity
from auth_watchdog.models import (
    AuthDiagnostics,
    RemediationAction,
    RemediationResult,
    SessionDetails,
    StateConsistency,
)
from auth_watchdog.state.auth_store import AuthStore
from auth_watchdog.state.session_context import SessionAuthContext
from auth_watchdog.state.token_storage import TOKEN_KEY, TokenStorage

# GoTrue answers these for revoked / unknown tokens
REJECTED_SESSION_STATUSES = (401, 403)


class AuthRemediator:
    """Callable remediation routine: ``await remediator()`` -> RemediationResult."""

    def __init__(
        self,
        storage: TokenStorage,
        store: AuthStore,
        context: SessionAuthContext,
        client: SupabaseClient,
        event_log: EventLogger,
        renew_threshold_minutes: int = DEFAULT_SESSION_RENEW_THRESHOLD_MINUTES,
        clock: Callable[[], float] = time.time,
    ):
        self.storage = storage
        self.store = store
        self.context = context
        self.client = client
        self.event_log = event_log
        self.renew_threshold_minutes = renew_threshold_minutes
        self.clock = clock

    async def __call__(self) -> RemediationResult:
        return await self.fix_auth_issues()

    # ==========================================================================
    # DIAGNOSTICS
    # ==========================================================================
    async def debug_auth_state(self) -> AuthDiagnostics:
        try:
            return await self._collect_diagnostics()
        except RemediationError:
            raise
        except Exception as e:
            raise RemediationError(f"Auth diagnostics failed: {e}") from e

    async def _collect_diagnostics(self) -> AuthDiagnostics:
        now = self.clock()
        diagnostics = AuthDiagnostics()

        diagnostics.has_local_token = bool(self.storage.get(TOKEN_KEY))

        session = self.context.session
        user = None
        session_rejected = False

        if session is not None:
            expired = session.is_expired(now)
            if expired:
                diagnostics.user_error = "Session expired"
            elif self.client.configured:
                try:
                    user = await self.client.get_user(session.access_token)
                except SupabaseError as e:
                    diagnostics.user_error = str(e)
                    if e.status_code in REJECTED_SESSION_STATUSES:
                        session_rejected = True
                        diagnostics.session_error = str(e)
            else:
                user = session.user or None

            if not session_rejected:
                remaining = session.seconds_until_expiry(now)
                details_user = user or session.user or {}
                diagnostics.session_details = SessionDetails(
                    expires_at=(
                        datetime.fromtimestamp(session.expires_at, tz=timezone.utc).isoformat()
                        if session.expires_at is not None
                        else None
                    ),
                    minutes_until_expiry=(
                        math.floor(remaining / 60) if remaining is not None else None
                    ),
                    is_expired=expired,
                    user_id=details_user.get("id"),
                    email=details_user.get("email"),
                    role=details_user.get("role"),
                )

        diagnostics.has_valid_session = session is not None and not session_rejected
        diagnostics.has_valid_user = user is not None
        if user is not None:
            diagnostics.user_details = {
                "id": user.get("id"),
                "email": user.get("email"),
                "last_sign_in": user.get("last_sign_in_at"),
                "created_at": user.get("created_at"),
            }

        store_state = self.store.snapshot()
        diagnostics.auth_store_state = store_state

        user_id_matches = None
        if diagnostics.has_valid_session and store_state.has_user:
            session_user_id = (
                diagnostics.session_details.user_id if diagnostics.session_details else None
            )
            user_id_matches = session_user_id == store_state.user_id

        diagnostics.state_consistency = StateConsistency(
            token_matches_session=diagnostics.has_local_token == diagnostics.has_valid_session,
            user_matches_session=diagnostics.has_valid_user == diagnostics.has_valid_session,
            store_matches_session=store_state.is_authenticated == diagnostics.has_valid_session,
            user_id_matches=user_id_matches,
        )

        self.event_log.emit(
            "auth_diagnostics",
            "Complete authentication diagnostics",
            LogSeverity.INFO,
            diagnostics.model_dump(mode="json"),
        )
        print__remediation_debug(
            f"DIAGNOSTICS: token={diagnostics.has_local_token}, "
            f"session={diagnostics.has_valid_session}, user={diagnostics.has_valid_user}, "
            f"store={store_state.is_authenticated}"
        )
        return diagnostics

    # ==========================================================================
    # FIX LADDER
    # ==========================================================================
    async def fix_auth_issues(self) -> RemediationResult:
        try:
            diagnostics = await self.debug_auth_state()
            return await self._apply_fix(diagnostics)
        except RemediationError:
            raise
        except Exception as e:
            raise RemediationError(f"Auth remediation failed: {e}") from e

    async def _apply_fix(self, diagnostics: AuthDiagnostics) -> RemediationResult:
        details = diagnostics.session_details
        session = self.context.session
        store_state = diagnostics.auth_store_state

        # 1. session without local token
        if not diagnostics.has_local_token and diagnostics.has_valid_session and details:
            self.storage.set(TOKEN_KEY, session.access_token)
            if not store_state.is_authenticated:
                self.store.set_is_authenticated(True)
            self._fix_applied("Token synchronised from session", LogSeverity.INFO)
            return RemediationResult.ok(RemediationAction.TOKEN_SYNC)

        # 2. local token without session
        if diagnostics.has_local_token and not diagnostics.has_valid_session:
            self.storage.remove(TOKEN_KEY)
            if diagnostics.session_error:
                # backend rejected the session: drop it as well
                self.context.clear_session()
            if store_state.is_authenticated:
                self.store.set_is_authenticated(False)
            self._fix_applied("Invalid local token removed", LogSeverity.WARNING)
            return RemediationResult.ok(RemediationAction.TOKEN_REMOVED)

        # 3. session about to expire
        if (
            details
            and details.minutes_until_expiry is not None
            and 0 < details.minutes_until_expiry < self.renew_threshold_minutes
        ):
            if not session.refresh_token:
                return RemediationResult.failed("Session has no refresh token")
            try:
                renewed = await self.client.refresh_session(session.refresh_token)
            except SupabaseError as e:
                print__remediation_debug(f"Session renewal failed: {e}")
                return RemediationResult.failed(str(e))
            self.context.set_session(renewed)
            self.storage.set(TOKEN_KEY, renewed.access_token)
            self._fix_applied("Session renewed", LogSeverity.INFO)
            return RemediationResult.ok(RemediationAction.SESSION_RENEWED)

        # 4. session already expired
        if details and details.is_expired:
            if self.client.configured:
                try:
                    await self.client.sign_out(session.access_token)
                except SupabaseError as e:
                    print__remediation_debug(f"Sign-out of expired session failed: {e}")
            self.storage.remove(TOKEN_KEY)
            self.context.clear_session()
            self.store.set_is_authenticated(False)
            self._fix_applied("Session expired, forced logout", LogSeverity.WARNING)
            return RemediationResult.ok(RemediationAction.EXPIRED_SESSION_LOGOUT)

        # 5./6. store disagrees with the session
        if store_state.is_authenticated and not diagnostics.has_valid_session:
            self.store.set_is_authenticated(False)
            self._fix_applied("Incorrect store state corrected", LogSeverity.WARNING)
            return RemediationResult.ok(RemediationAction.STORE_FIXED)

        if not store_state.is_authenticated and diagnostics.has_valid_session:
            self.store.set_is_authenticated(True)
            self._fix_applied("Incorrect store state corrected", LogSeverity.WARNING)
            return RemediationResult.ok(RemediationAction.STORE_FIXED)

        # 7. nothing to do
        consistency = diagnostics.state_consistency
        if (
            consistency.token_matches_session
            and consistency.store_matches_session
            and not (details and details.is_expired)
        ):
            print__remediation_debug("Authentication state is consistent")
            return RemediationResult.ok(RemediationAction.NONE_NEEDED)

        return RemediationResult.failed(action=RemediationAction.NO_FIX_AVAILABLE)

    def _fix_applied(self, message: str, severity: LogSeverity) -> None:
        print__remediation_debug(f"FIX: {message}")
        self.event_log.emit("auth_fix", message, severity)
