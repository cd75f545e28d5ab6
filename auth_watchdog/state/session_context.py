"""Flag source B: authentication derived from a live session check.

Holds the backend session (the one the auth client persists, independent of
the store's token) and recomputes ``is_authenticated`` by asking GoTrue who
owns the access token. ``refresh()`` is called by the host before each
navigation is published and by the reconciler before each periodic check;
reads are synchronous.
"""

import time
from typing import Any, Callable, Dict, Optional

from api.utils.debug import print__token_debug
from auth_watchdog.backend.supabase_client import SupabaseClient
from auth_watchdog.errors import SupabaseError
from auth_watchdog.models import Session
from auth_watchdog.state.token_storage import SESSION_KEY, TokenStorage


class SessionAuthContext:
    def __init__(
        self,
        client: SupabaseClient,
        storage: TokenStorage,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.storage = storage
        self.clock = clock
        self.session: Optional[Session] = None
        self.user: Optional[Dict[str, Any]] = None
        self.last_error: Optional[str] = None
        self._authenticated = False

    @property
    def is_authenticated(self) -> bool:
        return self._authenticated

    def load(self) -> "SessionAuthContext":
        persisted = self.storage.get(SESSION_KEY)
        if persisted:
            try:
                self.session = Session(**persisted)
            except (TypeError, ValueError) as e:
                print__token_debug(f"Discarding unreadable persisted session: {e}")
                self.storage.remove(SESSION_KEY)
                self.session = None
        self.user = self.session.user if self.session else None
        self._authenticated = self.session is not None and not self.session.is_expired(
            self.clock()
        )
        return self

    def set_session(self, session: Session) -> None:
        self.session = session
        if session.user:
            self.user = session.user
        self.storage.set(SESSION_KEY, session.model_dump())
        self._authenticated = not session.is_expired(self.clock())

    def clear_session(self) -> None:
        self.session = None
        self.user = None
        self.storage.remove(SESSION_KEY)
        self._authenticated = False

    async def refresh(self) -> bool:
        """Re-derive the flag from the backend.

        Without a configured backend the flag reflects local session expiry
        only. Backend errors leave the flag False and are kept in
        ``last_error``.
        """
        self.last_error = None

        if self.session is None:
            self._authenticated = False
            return False

        if self.session.is_expired(self.clock()):
            self._authenticated = False
            return False

        if not self.client.configured:
            self._authenticated = True
            return True

        try:
            self.user = await self.client.get_user(self.session.access_token)
            self._authenticated = True
        except SupabaseError as e:
            print__token_debug(f"Session check failed: {e}")
            self.last_error = str(e)
            self._authenticated = False
        return self._authenticated
