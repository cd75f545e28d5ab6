"""Flag source A: the locally cached authentication store.

Updated optimistically by login/logout and restored from local storage on
start-up. The watchdog only reads ``is_authenticated``; the remediation routine
is the one allowed to correct it.
"""

from typing import Any, Dict, Optional

from api.utils.debug import print__token_debug
from auth_watchdog.backend.supabase_client import SupabaseClient
from auth_watchdog.errors import SupabaseError
from auth_watchdog.models import AuthStoreState
from auth_watchdog.state.token_storage import STORE_KEY, TOKEN_KEY, TokenStorage


class AuthStore:
    def __init__(self, storage: TokenStorage, client: Optional[SupabaseClient] = None):
        self.storage = storage
        self.client = client
        self.is_authenticated = False
        self.auth_token: Optional[str] = None
        self.user: Optional[Dict[str, Any]] = None
        self.form_completed = False

    def load(self) -> "AuthStore":
        """Restore the persisted store (page-load equivalent)."""
        persisted = self.storage.get(STORE_KEY) or {}
        self.is_authenticated = bool(persisted.get("is_authenticated", False))
        self.auth_token = persisted.get("auth_token")
        self.user = persisted.get("user")
        self.form_completed = bool(persisted.get("form_completed", False))
        print__token_debug(
            f"AuthStore loaded: is_authenticated={self.is_authenticated}, "
            f"user={(self.user or {}).get('id')}"
        )
        return self

    def _persist(self) -> None:
        self.storage.set(
            STORE_KEY,
            {
                "is_authenticated": self.is_authenticated,
                "auth_token": self.auth_token,
                "user": self.user,
                "form_completed": self.form_completed,
            },
        )

    def login(self, token: str, user: Dict[str, Any]) -> None:
        self.is_authenticated = True
        self.auth_token = token
        self.user = dict(user)
        self.storage.set(TOKEN_KEY, token)
        self._persist()

    async def logout(self) -> None:
        """Sign out at the backend (best effort) and clear local state."""
        if self.client is not None and self.client.configured and self.auth_token:
            try:
                await self.client.sign_out(self.auth_token)
            except SupabaseError as e:
                print__token_debug(f"Backend sign-out failed, clearing locally: {e}")

        self.is_authenticated = False
        self.auth_token = None
        self.user = None
        self.form_completed = False
        self.storage.remove(TOKEN_KEY)
        self._persist()

    def set_is_authenticated(self, value: bool) -> None:
        self.is_authenticated = bool(value)
        self._persist()

    def update_user(self, changes: Dict[str, Any]) -> None:
        if self.user is None:
            return
        self.user = {**self.user, **changes}
        self._persist()

    def set_form_completed(self, completed: bool) -> None:
        self.form_completed = bool(completed)
        self._persist()

    def snapshot(self) -> AuthStoreState:
        user = self.user or {}
        return AuthStoreState(
            is_authenticated=self.is_authenticated,
            has_user=self.user is not None,
            user_id=user.get("id"),
            user_email=user.get("email"),
        )
