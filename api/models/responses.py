"""
MODULE_DESCRIPTION: Response Models - Pydantic Schemas for API Serialization

Response bodies of the auth watchdog API. The watchdog's own domain models
(ReconcileOutcome, AuthDiagnostics, RemediationResult) are reused directly as
nested fields so the HTTP surface and the core package never drift apart.

    NavigationResponse       POST /navigation
    SessionResponse          POST /auth/login, POST /auth/logout
    WatchdogStatusResponse   GET /watchdog/status
    ReconcileResponse        POST /watchdog/check
    AuthFixResponse          POST /debug/auth-fix
    LogsResponse             GET /debug/logs
"""

# CRITICAL: Set Windows event loop policy FIRST, before any other imports
import os
import sys

if sys.platform == "win32":
    import asyncio

    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Load environment variables early
from dotenv import load_dotenv

load_dotenv()

# Constants
try:
    from pathlib import Path

    BASE_DIR = Path(__file__).resolve().parents[2]
except NameError:
    BASE_DIR = Path(os.getcwd()).parents[0]

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from auth_watchdog.models import ReconcileOutcome, RemediationResult

# ==============================================================================
# RESPONSE MODELS
# ==============================================================================


class RedirectInstruction(BaseModel):
    """A navigation the client must perform (e.g. to the login route)."""

    path: str = Field(examples=["/login"])
    replace: bool = True
    state: Dict[str, Any] = Field(default_factory=dict)


class NavigationResponse(BaseModel):
    """Result of a reported route change.

    ``checked`` is False when the check was debounced. ``redirect`` is set
    when remediation invalidated the session on a protected route.
    """

    path: str
    checked: bool
    outcome: Optional[ReconcileOutcome] = None
    redirect: Optional[RedirectInstruction] = None


class SessionResponse(BaseModel):
    is_authenticated: bool
    user: Optional[Dict[str, Any]] = None
    expires_at: Optional[int] = Field(
        default=None, description="Session expiry as unix seconds"
    )


class WatchdogStatusResponse(BaseModel):
    running: bool
    periodic_enabled: bool
    periodic_runs: int
    failed_checks: int = 0
    cycles: int
    inflight_checks: int
    store_authenticated: bool
    context_authenticated: bool
    current_path: str
    debounce: Dict[str, Any]
    policy: Dict[str, Any]
    last_outcome: Optional[Dict[str, Any]] = None


class ReconcileResponse(BaseModel):
    outcome: ReconcileOutcome
    redirects: List[RedirectInstruction] = Field(default_factory=list)


class AuthFixResponse(BaseModel):
    result: RemediationResult
    store_authenticated: bool
    context_authenticated: bool


class LogsResponse(BaseModel):
    success: bool
    logs: List[Dict[str, Any]] = Field(default_factory=list)
    error: Optional[str] = None
