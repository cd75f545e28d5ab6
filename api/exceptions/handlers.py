"""
MODULE_DESCRIPTION: Exception Handlers - Centralized Error Processing for FastAPI

===================================================================================
PURPOSE AND OVERVIEW
===================================================================================

Centralized exception handling for the auth watchdog API. The handlers convert
errors raised anywhere in a request into JSON responses with consistent shapes
and status codes.

Exception Handler Types:
    1. validation_exception_handler: Pydantic validation errors -> 422
    2. http_exception_handler: HTTP exceptions -> JSON with debug tracing
    3. supabase_error_handler: backend (GoTrue/PostgREST) failures -> 502,
       or the backend's own 4xx status for credential errors
    4. remediation_error_handler: failed diagnostics or fix -> 500
    5. value_error_handler: ValueError -> 400
    6. general_exception_handler: anything else -> 500

===================================================================================
ERROR RESPONSE FORMAT
===================================================================================

    {"detail": "<error message>"}

    Validation errors add an "errors" list with the Pydantic error entries.

When DEBUG_TRACEBACK=1 the 5xx handlers return traceback_json_response()
instead, which includes the formatted traceback.

===================================================================================
AUTHENTICATION ERROR DEBUGGING (401)
===================================================================================

401 responses log the request URL, method and client IP through
print__token_debug (print__token_debug=1). Request headers are never logged because
they carry the bearer token.
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
import traceback

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.helpers import traceback_json_response

# Import debug functions from utils
from api.utils.debug import print__debug, print__token_debug
from api.utils.memory import log_comprehensive_error
from auth_watchdog.errors import RemediationError, SupabaseError

# ==============================================================================
# EXCEPTION HANDLERS
# ==============================================================================


async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors with proper 422 status code."""
    print__debug(f"Validation error: {exc.errors()}")

    return JSONResponse(
        status_code=422,
        content=jsonable_encoder(
            {"detail": "Validation error", "errors": jsonable_errors(exc)}
        ),
    )


def jsonable_errors(exc: RequestValidationError):
    # Pydantic 2 puts the raw exception object under "ctx" for custom validators
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        errors.append(error)
    return errors


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions, with extra request context for 401 errors."""
    if exc.status_code == 401:
        print__token_debug(f"🚨 HTTP 401 UNAUTHORIZED: {exc.detail}")
        print__token_debug(f"🚨 HTTP 401 TRACE: Request URL: {request.url}")
        print__token_debug(f"🚨 HTTP 401 TRACE: Request method: {request.method}")
        client_ip = request.client.host if request.client else "unknown"
        print__token_debug(f"🚨 HTTP 401 CLIENT: IP address: {client_ip}")

    elif exc.status_code >= 400:
        print__debug(
            f"🚨 HTTP {exc.status_code} ERROR: {exc.detail} "
            f"({request.method} {request.url.path})"
        )

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def supabase_error_handler(request: Request, exc: SupabaseError):
    """Map backend failures onto the response.

    Credential errors reported by GoTrue (400/401/403) are passed through
    unchanged so the client can tell a wrong password from an outage; every
    other backend failure becomes 502 Bad Gateway.
    """
    status_code = exc.status_code if exc.status_code in (400, 401, 403) else 502
    print__debug(
        f"Supabase error on {request.method} {request.url.path}: {exc} -> {status_code}"
    )
    if status_code == 502:
        log_comprehensive_error("supabase_backend", exc, request)
        resp = traceback_json_response(exc, status_code=502)
        if resp:
            return resp
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


async def remediation_error_handler(request: Request, exc: RemediationError):
    log_comprehensive_error("auth_remediation", exc, request)
    resp = traceback_json_response(exc)
    if resp:
        return resp
    return JSONResponse(status_code=500, content={"detail": str(exc)})


async def value_error_handler(_request: Request, exc: ValueError):
    """Handle ValueError exceptions as 400 Bad Request."""
    print__debug(f"ValueError: {str(exc)}")

    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def general_exception_handler(request: Request, exc: Exception):
    """Catch-all for anything not handled above.

    The response carries a generic message; details go to the debug log only.
    """
    print__debug(f"Unexpected error: {type(exc).__name__}: {str(exc)}")
    print__debug(traceback.format_exc())
    log_comprehensive_error("unhandled_exception", exc, request)

    resp = traceback_json_response(exc)
    if resp:
        return resp
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
