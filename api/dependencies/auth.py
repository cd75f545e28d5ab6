"""
MODULE_DESCRIPTION: Authentication Dependencies - JWT Token Verification for FastAPI

===================================================================================
PURPOSE AND OVERVIEW
===================================================================================

FastAPI dependency that authenticates requests to the protected endpoints
(the /debug diagnostics surface). It extracts the bearer token from the
Authorization header, verifies it as a Supabase access token and returns the
decoded claims.

Authentication Flow:
    1. Extract Authorization header from incoming request
    2. Validate header format (must be "Bearer <token>")
    3. Extract and trim the JWT token string
    4. Call verify_supabase_jwt() to validate signature, audience and expiry
    5. Return decoded claims (sub, email, role, ...)
    6. Raise HTTPException(401) if any step fails

Usage Example:
    @router.get("/debug/auth-diagnostics")
    async def auth_diagnostics(user: dict = Depends(get_current_user)):
        ...

Security:
    Token strings are never logged, only their length.
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
from typing import Optional

from fastapi import Header, HTTPException

from api.auth.jwt_auth import verify_supabase_jwt
from api.utils.debug import print__token_debug
from api.utils.memory import log_comprehensive_error

BEARER_PREFIX = "Bearer "


def _unauthorized(detail: str) -> HTTPException:
    print__token_debug(f"❌ AUTH ERROR: {detail}")
    return HTTPException(status_code=401, detail=detail)


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Return the token part of an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        raise _unauthorized("Missing Authorization header")

    if not authorization.startswith(BEARER_PREFIX):
        raise _unauthorized(
            "Invalid Authorization header format. Expected 'Bearer <token>'"
        )

    token = authorization[len(BEARER_PREFIX) :].strip()
    if not token:
        raise _unauthorized("Invalid Authorization header format")
    return token


# ==============================================================================
# AUTHENTICATION DEPENDENCIES
# ==============================================================================


def get_current_user(authorization: Optional[str] = Header(None)):
    """Verify the Supabase access token of the request and return its claims.

    Raises:
        HTTPException(401): missing or malformed header, or a token that
            fails verification.
    """
    try:
        token = extract_bearer_token(authorization)
        print__token_debug(f"🔍 AUTH TOKEN: bearer token received (length: {len(token)})")

        claims = verify_supabase_jwt(token)
        print__token_debug(
            f"✅ AUTH SUCCESS: {claims.get('email') or claims.get('sub', 'Unknown')}"
        )
        return claims

    except HTTPException as he:
        print__token_debug(f"❌ AUTH HTTP EXCEPTION: {he.status_code} - {he.detail}")
        raise
    except Exception as e:
        print__token_debug(f"❌ AUTH TRACE: Full traceback:\n{traceback.format_exc()}")
        log_comprehensive_error("authentication", e)
        raise HTTPException(status_code=401, detail="Authentication failed")
