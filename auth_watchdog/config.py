from __future__ import annotations

MODULE_DESCRIPTION = r"""Auth Watchdog Configuration Management

This module is the configuration hub for the auth consistency watchdog: the
timing policy of the two reconciliation triggers, the redirect policy, the
public route table, the Supabase connection parameters and the event log
destination. Every value comes from the environment (loaded from .env by
python-dotenv) with a development default.

Key Features:
-------------
1. Trigger Timing:
   - Navigation cooldown (per-path debounce window) - default 5 seconds
   - Periodic check interval - default 120 seconds (2 minutes)
   - Periodic trigger on/off switch

2. Redirect Policy:
   - Remediation actions that force a redirect to the login route
     (default: token_removed, expired_session_logout)
   - Login route and the public routes that are never redirected away from
   - Legacy "always remediate on the timer" switch

3. Remediation Tuning:
   - Session renew threshold (minutes before expiry) - default 10

4. Backend Configuration:
   - SUPABASE_URL / SUPABASE_ANON_KEY for the GoTrue and PostgREST APIs
   - SUPABASE_JWT_SECRET for API-side token verification
   - LOG_TABLE: table receiving structured watchdog events
   - NOTIFICATION_WEBHOOK_URL: optional sink for CRITICAL events
   - AUTH_TOKEN_FILE: locally persisted token (source A on start-up)

Configuration Constants:
-----------------------
- DEFAULT_NAVIGATION_COOLDOWN_SECONDS: 5
- DEFAULT_PERIODIC_INTERVAL_SECONDS: 120
- DEFAULT_SESSION_RENEW_THRESHOLD_MINUTES: 10
- DEFAULT_LOGIN_ROUTE: "/login"
- DEFAULT_PUBLIC_ROUTES: login, register, reset-password, criar-senha (+ root)
- DEFAULT_REDIRECT_ACTIONS: token_removed, expired_session_logout
- DEFAULT_LOG_TABLE: "log_agente_automacao"

Usage Example:
-------------
from auth_watchdog.config import WatchdogPolicy

policy = WatchdogPolicy.from_env()
if policy.periodic_enabled:
    ...
"""

import os
from pathlib import Path
from typing import FrozenSet, Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from api.utils.debug import print__watchdog_debug

load_dotenv()

try:
    BASE_DIR = Path(__file__).resolve().parents[1]
except NameError:
    BASE_DIR = Path(os.getcwd())

# ==============================================================================
# TRIGGER TIMING
# ==============================================================================
DEFAULT_NAVIGATION_COOLDOWN_SECONDS = 5.0  # Same-path navigation checks inside this window are skipped
DEFAULT_PERIODIC_INTERVAL_SECONDS = 120.0  # Periodic check every 2 minutes

# ==============================================================================
# REDIRECT POLICY
# ==============================================================================
DEFAULT_LOGIN_ROUTE = "/login"
DEFAULT_PUBLIC_ROUTES = ("login", "register", "reset-password", "criar-senha")
DEFAULT_REDIRECT_ACTIONS = ("token_removed", "expired_session_logout")

# ==============================================================================
# REMEDIATION TUNING
# ==============================================================================
DEFAULT_SESSION_RENEW_THRESHOLD_MINUTES = 10

# ==============================================================================
# BACKEND / EVENT LOG
# ==============================================================================
SUPABASE_URL = os.environ.get("SUPABASE_URL", "")
SUPABASE_ANON_KEY = os.environ.get("SUPABASE_ANON_KEY", "")
SUPABASE_JWT_SECRET = os.environ.get("SUPABASE_JWT_SECRET", "")
SUPABASE_TIMEOUT_SECONDS = float(os.environ.get("SUPABASE_TIMEOUT_SECONDS", "10"))
DEFAULT_LOG_TABLE = "log_agente_automacao"
LOG_TABLE = os.environ.get("LOG_TABLE", DEFAULT_LOG_TABLE)
NOTIFICATION_WEBHOOK_URL = os.environ.get("NOTIFICATION_WEBHOOK_URL", "")
AUTH_TOKEN_FILE = os.environ.get(
    "AUTH_TOKEN_FILE", str(BASE_DIR / ".auth" / "session.json")
)


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


class WatchdogPolicy(BaseModel):
    """Timing and redirect policy for one watchdog instance.

    The periodic trigger and the redirect outcome set are policy rather than
    fixed behaviour: older deployments ran without the timer and redirected
    only on ``token_removed``.
    """

    navigation_cooldown_seconds: float = Field(
        default=DEFAULT_NAVIGATION_COOLDOWN_SECONDS, ge=0
    )
    periodic_enabled: bool = True
    periodic_interval_seconds: float = Field(
        default=DEFAULT_PERIODIC_INTERVAL_SECONDS, gt=0
    )
    # Timer runs remediation without comparing the flags first
    periodic_always_remediate: bool = False
    redirect_actions: FrozenSet[str] = frozenset(DEFAULT_REDIRECT_ACTIONS)
    login_route: str = DEFAULT_LOGIN_ROUTE
    public_routes: Tuple[str, ...] = DEFAULT_PUBLIC_ROUTES
    session_renew_threshold_minutes: int = Field(
        default=DEFAULT_SESSION_RENEW_THRESHOLD_MINUTES, ge=0
    )

    @classmethod
    def from_env(cls) -> "WatchdogPolicy":
        """Build the policy from WATCHDOG_* environment variables."""
        policy = cls(
            navigation_cooldown_seconds=float(
                os.environ.get(
                    "WATCHDOG_NAVIGATION_COOLDOWN_SECONDS",
                    str(DEFAULT_NAVIGATION_COOLDOWN_SECONDS),
                )
            ),
            periodic_enabled=_env_flag("WATCHDOG_PERIODIC_ENABLED", "1"),
            periodic_interval_seconds=float(
                os.environ.get(
                    "WATCHDOG_PERIODIC_INTERVAL_SECONDS",
                    str(DEFAULT_PERIODIC_INTERVAL_SECONDS),
                )
            ),
            periodic_always_remediate=_env_flag(
                "WATCHDOG_PERIODIC_ALWAYS_REMEDIATE", "0"
            ),
            redirect_actions=frozenset(
                _env_list("WATCHDOG_REDIRECT_ACTIONS", DEFAULT_REDIRECT_ACTIONS)
            ),
            login_route=os.environ.get("WATCHDOG_LOGIN_ROUTE", DEFAULT_LOGIN_ROUTE),
            public_routes=_env_list("WATCHDOG_PUBLIC_ROUTES", DEFAULT_PUBLIC_ROUTES),
            session_renew_threshold_minutes=int(
                os.environ.get(
                    "SESSION_RENEW_THRESHOLD_MINUTES",
                    str(DEFAULT_SESSION_RENEW_THRESHOLD_MINUTES),
                )
            ),
        )
        print__watchdog_debug(
            f"WATCHDOG POLICY: cooldown={policy.navigation_cooldown_seconds}s, "
            f"periodic={policy.periodic_enabled} every {policy.periodic_interval_seconds}s, "
            f"redirect_actions={sorted(policy.redirect_actions)}"
        )
        return policy


def get_supabase_config() -> dict:
    """Return the Supabase connection parameters (the key itself is never logged)."""
    config = {
        "url": os.environ.get("SUPABASE_URL", SUPABASE_URL).rstrip("/"),
        "anon_key": os.environ.get("SUPABASE_ANON_KEY", SUPABASE_ANON_KEY),
        "timeout": SUPABASE_TIMEOUT_SECONDS,
    }
    print__watchdog_debug(
        f"SUPABASE CONFIG: url={config['url'] or '<unset>'}, "
        f"anon_key={'SET' if config['anon_key'] else 'MISSING'}"
    )
    return config


def check_supabase_env_vars() -> Optional[list]:
    """Return the list of missing Supabase variables, or None when complete."""
    missing = [
        name for name in ("SUPABASE_URL", "SUPABASE_ANON_KEY") if not os.environ.get(name)
    ]
    if missing:
        print__watchdog_debug(f"SUPABASE CONFIG: missing environment variables {missing}")
        return missing
    return None
