"""Test helpers and fakes for the auth watchdog test suite."""

import os
import sys
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import jwt
from dotenv import load_dotenv

load_dotenv()

try:
    from pathlib import Path

    BASE_DIR = Path(__file__).resolve().parents[1]
except NameError:
    BASE_DIR = Path(os.getcwd())

if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from auth_watchdog.backend.supabase_client import SupabaseClient
from auth_watchdog.models import RemediationAction, RemediationResult, Session

SUPABASE_TEST_URL = "https://project.supabase.test"
SUPABASE_TEST_KEY = "anon-test-key"
JWT_TEST_SECRET = "unit-test-jwt-secret-that-is-long-enough-0123456789"

TEST_USER = {"id": "user-1", "email": "user@example.com", "role": "authenticated"}


# ==============================================================================
# CLOCKS AND FLAG SOURCES
# ==============================================================================
class FakeClock:
    """Manually advanced clock usable wherever a ``time.*`` callable is expected."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FlagSource:
    def __init__(self, is_authenticated: bool):
        self.is_authenticated = is_authenticated


# ==============================================================================
# EVENT LOG AND REMEDIATION FAKES
# ==============================================================================
class RecordingEventLog:
    """Collects emitted events as (event, severity, context) tuples."""

    def __init__(self):
        self.events: List[Tuple[str, str, Dict[str, Any]]] = []

    def emit(self, event, message, severity="info", context=None) -> None:
        severity = getattr(severity, "value", severity)
        self.events.append((event, severity, dict(context or {})))

    def of(self, event: str) -> List[Tuple[str, str, Dict[str, Any]]]:
        return [e for e in self.events if e[0] == event]

    def with_severity(self, severity: str) -> List[Tuple[str, str, Dict[str, Any]]]:
        return [e for e in self.events if e[1] == severity]


class FakeRemediation:
    """Async remediation stand-in: returns ``result`` or raises ``error``.

    ``on_call`` runs before returning, e.g. to flip the flag sources the way
    the real remediation would.
    """

    def __init__(
        self,
        action: Optional[RemediationAction] = RemediationAction.NONE_NEEDED,
        success: bool = True,
        error: Optional[BaseException] = None,
        on_call: Optional[Callable[[], None]] = None,
    ):
        self.result = RemediationResult(success=success, action=action)
        self.error = error
        self.on_call = on_call
        self.calls = 0

    async def __call__(self) -> RemediationResult:
        self.calls += 1
        if self.on_call is not None:
            self.on_call()
        if self.error is not None:
            raise self.error
        return self.result


# ==============================================================================
# SUPABASE
# ==============================================================================
class SupabaseStub:
    """Route table for httpx.MockTransport keyed by (method, path).

    Values are either an ``httpx.Response`` or a callable taking the request.
    Every request is kept in ``requests``.
    """

    def __init__(self, routes: Optional[Dict[Tuple[str, str], Any]] = None):
        self.routes = dict(routes or {})
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": f"no route {request.url.path}"})
        if callable(route):
            return route(request)
        return route

    def calls_to(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def client(self) -> SupabaseClient:
        return SupabaseClient(
            url=SUPABASE_TEST_URL,
            anon_key=SUPABASE_TEST_KEY,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(self)),
        )


def unconfigured_client() -> SupabaseClient:
    return SupabaseClient(url="", anon_key="")


def make_jwt(
    claims: Optional[Dict[str, Any]] = None,
    secret: str = JWT_TEST_SECRET,
    exp_in: int = 3600,
) -> str:
    payload = {
        "sub": TEST_USER["id"],
        "email": TEST_USER["email"],
        "aud": "authenticated",
        "role": "authenticated",
        "exp": int(time.time()) + exp_in,
    }
    payload.update(claims or {})
    return jwt.encode(payload, secret, algorithm="HS256")


def make_session(
    expires_at: float,
    access_token: str = "access-token-1",
    refresh_token: Optional[str] = "refresh-token-1",
    user: Optional[Dict[str, Any]] = None,
) -> Session:
    return Session(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_at=int(expires_at),
        user=dict(user if user is not None else TEST_USER),
    )


def session_payload(expires_at: float, access_token: str = "access-token-2") -> Dict[str, Any]:
    """GoTrue token endpoint response body."""
    return {
        "access_token": access_token,
        "refresh_token": "refresh-token-2",
        "token_type": "bearer",
        "expires_in": 3600,
        "expires_at": int(expires_at),
        "user": dict(TEST_USER),
    }
