"""
MODULE_DESCRIPTION: Debug Routes - Authentication Diagnostics and Runtime Controls

===================================================================================
PURPOSE AND OVERVIEW
===================================================================================

Protected endpoints for inspecting and repairing the authentication state the
watchdog reconciles. Every route requires a valid Supabase access token
(get_current_user); the whole router is mounted only when
DEBUG_ROUTES_ENABLED=1.

Endpoints:
    1. GET  /debug/auth-diagnostics   full AuthDiagnostics snapshot
    2. POST /debug/auth-fix           run the remediation ladder once
    3. GET  /debug/logs               recent structured auth events
    4. POST /debug/set-env            toggle debug channels at runtime
    5. POST /debug/reset-env          restore debug channels from .env

===================================================================================
ERROR HANDLING
===================================================================================

Remediation and diagnostics failures arrive as RemediationError. They are
recorded once (ERROR event plus log_comprehensive_error) and answered with
500, or with the traceback body when DEBUG_TRACEBACK=1.
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

# Standard imports
from datetime import datetime
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from api.dependencies.auth import get_current_user
from api.dependencies.watchdog import get_runtime
from api.helpers import traceback_json_response
from api.models.responses import AuthFixResponse, LogsResponse
from api.utils.debug import DEBUG_CHANNELS, print__debug, print__remediation_debug
from api.utils.memory import log_comprehensive_error
from auth_watchdog.errors import RemediationError
from auth_watchdog.event_log import LogSeverity
from auth_watchdog.factory import WatchdogRuntime
from auth_watchdog.models import AuthDiagnostics

# Create router instance for debug endpoints
router = APIRouter()


def _user_label(user: dict) -> str:
    label = user.get("email") or user.get("sub")
    if not label:
        raise HTTPException(status_code=401, detail="User identity not found in token")
    return label


def _remediation_failed(
    runtime: WatchdogRuntime, request: Request, event: str, exc: RemediationError
):
    runtime.event_log.emit(
        event,
        "Error while checking/fixing authentication",
        LogSeverity.ERROR,
        {"path": request.url.path, "error": str(exc)},
    )
    log_comprehensive_error(event, exc, request)
    resp = traceback_json_response(exc, path=request.url.path)
    if resp:
        return resp
    return JSONResponse(status_code=500, content={"detail": str(exc)})


# ==============================================================================
# AUTH DIAGNOSTICS
# ==============================================================================


@router.get("/debug/auth-diagnostics", response_model=AuthDiagnostics)
async def auth_diagnostics(
    request: Request,
    user=Depends(get_current_user),
    runtime: WatchdogRuntime = Depends(get_runtime),
):
    """Collect the diagnostics the remediation ladder decides on."""
    print__remediation_debug(f"Auth diagnostics requested by {_user_label(user)}")
    try:
        return await runtime.remediator.debug_auth_state()
    except RemediationError as e:
        return _remediation_failed(runtime, request, "auth_diagnostics_error", e)


@router.post("/debug/auth-fix", response_model=AuthFixResponse)
async def auth_fix(
    request: Request,
    user=Depends(get_current_user),
    runtime: WatchdogRuntime = Depends(get_runtime),
):
    """Run one remediation pass outside the watchdog's triggers."""
    print__remediation_debug(f"Manual auth fix requested by {_user_label(user)}")
    try:
        result = await runtime.remediator.fix_auth_issues()
    except RemediationError as e:
        return _remediation_failed(runtime, request, "auth_fix_error", e)

    return AuthFixResponse(
        result=result,
        store_authenticated=runtime.store.is_authenticated,
        context_authenticated=runtime.context.is_authenticated,
    )


# ==============================================================================
# EVENT LOG
# ==============================================================================


@router.get("/debug/logs", response_model=LogsResponse)
async def recent_logs(
    severity: Optional[LogSeverity] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user=Depends(get_current_user),
    runtime: WatchdogRuntime = Depends(get_runtime),
):
    _user_label(user)
    result = await runtime.event_log.get_recent_logs(
        severity=severity, limit=limit, offset=offset
    )
    if not result.get("success"):
        print__debug(f"Reading auth event log failed: {result.get('error')}")
    return result


# ==============================================================================
# DEBUG CHANNEL CONTROL
# ==============================================================================


def _check_channels(env_vars: Dict[str, str]) -> None:
    unknown = sorted(set(env_vars) - set(DEBUG_CHANNELS))
    if unknown:
        raise HTTPException(
            status_code=400, detail=f"Not a debug channel: {', '.join(unknown)}"
        )


@router.post("/debug/set-env")
async def set_debug_environment(
    env_vars: Dict[str, str], user=Depends(get_current_user)
):
    """Turn debug channels on or off in the server process."""
    _user_label(user)
    _check_channels(env_vars)

    for key, value in env_vars.items():
        os.environ[key] = value
        print__debug(f"🔧 Set {key}={value}")

    return {
        "message": f"Set {len(env_vars)} environment variables",
        "variables": env_vars,
        "timestamp": datetime.now().isoformat(),
    }


@router.post("/debug/reset-env")
async def reset_debug_environment(
    env_vars: Dict[str, str], user=Depends(get_current_user)
):
    """Reset debug channels to their original .env values."""
    _user_label(user)
    _check_channels(env_vars)

    from dotenv import dotenv_values

    original_env = dotenv_values()

    reset_vars = {}
    for var_name in env_vars:
        original_value = original_env.get(var_name) or "0"
        os.environ[var_name] = original_value
        reset_vars[var_name] = original_value
        print__debug(f"🔧 Reset {var_name}={original_value}")

    return {
        "message": f"Reset {len(reset_vars)} environment variables to original .env values",
        "variables": reset_vars,
        "timestamp": datetime.now().isoformat(),
    }
