from auth_watchdog.state.auth_store import AuthStore
from auth_watchdog.state.session_context import SessionAuthContext
from auth_watchdog.state.token_storage import (
    SESSION_KEY,
    STORE_KEY,
    TOKEN_KEY,
    FileTokenStorage,
    MemoryTokenStorage,
    TokenStorage,
)

__all__ = [
    "AuthStore",
    "SessionAuthContext",
    "TokenStorage",
    "MemoryTokenStorage",
    "FileTokenStorage",
    "TOKEN_KEY",
    "SESSION_KEY",
    "STORE_KEY",
]
