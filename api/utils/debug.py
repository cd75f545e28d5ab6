"""
MODULE_DESCRIPTION: Env-Gated Debug Channels

Each printer below writes to stdout only when its environment variable is
"1". The variable name equals the channel name, so a channel can be toggled
per process (or at runtime through POST /debug/set-env):

    DEBUG                      print__debug, print__startup_debug,
                               print__memory_monitoring
    print__token_debug         JWT verification, GoTrue calls, auth store
    print__watchdog_debug      reconcile cycles, triggers, policy
    print__remediation_debug   diagnostics and applied fixes
    print__navigation_debug    navigator moves and redirects
    print__event_log_debug     structured event delivery

DEBUG_TRACEBACK is not a printer: it makes 5xx responses carry tracebacks
(see api.helpers.traceback_json_response).
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


# Environment variables that switch the debug channels below
DEBUG_CHANNELS = (
    "DEBUG",
    "DEBUG_TRACEBACK",
    "print__token_debug",
    "print__watchdog_debug",
    "print__remediation_debug",
    "print__navigation_debug",
    "print__event_log_debug",
)


def _print_if_enabled(env_var: str, tag: str, msg: str) -> None:
    if os.environ.get(env_var, "0") == "1":
        print(f"[{tag}] {msg}")
        sys.stdout.flush()


# ==============================================================================
# DEBUG FUNCTIONS
# ==============================================================================
def print__debug(msg: str) -> None:
    """General API debug output (DEBUG=1)."""
    _print_if_enabled("DEBUG", "DEBUG", msg)


def print__token_debug(msg: str) -> None:
    """Token handling: JWT checks, GoTrue user/refresh calls, auth store loads.

    Args:
        msg: The message to print. Never pass raw tokens, only lengths/ids.
    """
    _print_if_enabled("print__token_debug", "print__token_debug", msg)


def print__watchdog_debug(msg: str) -> None:
    """Auth watchdog messages (reconcile cycles, triggers, start/stop)."""
    _print_if_enabled("print__watchdog_debug", "print__watchdog_debug", msg)


def print__remediation_debug(msg: str) -> None:
    """Diagnostics snapshots and fix ladder decisions."""
    _print_if_enabled("print__remediation_debug", "print__remediation_debug", msg)


def print__navigation_debug(msg: str) -> None:
    _print_if_enabled("print__navigation_debug", "print__navigation_debug", msg)


def print__event_log_debug(msg: str) -> None:
    _print_if_enabled("print__event_log_debug", "print__event_log_debug", msg)


def print__startup_debug(msg: str) -> None:
    """Lifespan progress (DEBUG=1)."""
    _print_if_enabled("DEBUG", "STARTUP-DEBUG", msg)


def print__memory_monitoring(msg: str) -> None:
    """RSS reports and memory growth warnings (DEBUG=1)."""
    _print_if_enabled("DEBUG", "MEMORY-MONITORING", msg)
