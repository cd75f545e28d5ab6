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

import time
import traceback

# Standard imports
import jwt
from fastapi import HTTPException

import api.config.settings as settings

# Import debug utilities
from api.utils.debug import print__token_debug


# ============================================================
# AUTHENTICATION - JWT VERIFICATION
# ============================================================
def _rejected(detail: str) -> HTTPException:
    settings._JWT_REJECTED_COUNT += 1
    # Reduce log noise - only log 1st, 11th, 21st, etc.
    if settings._JWT_REJECTED_COUNT % 10 == 1:
        print__token_debug(
            f"JWT rejected (#{settings._JWT_REJECTED_COUNT}): {detail}"
        )
    return HTTPException(status_code=401, detail=detail)


def verify_supabase_jwt(token: str):
    """Verify a Supabase user access token and return its claims.

    Supabase signs access tokens with the project JWT secret (HS256) and the
    audience ``authenticated``. Every failure is reported as HTTP 401.
    """
    try:
        # EARLY VALIDATION: JWT tokens must have exactly 3 parts (header.payload.signature)
        token_parts = token.split(".")
        if len(token_parts) != 3:
            raise _rejected("Invalid JWT token format")

        for part in token_parts:
            if not part or len(part) < 4:
                raise _rejected("Invalid JWT token format")

        try:
            unverified_payload = jwt.decode(token, options={"verify_signature": False})
        except jwt.DecodeError as e:
            print__token_debug(f"JWT decode error after pre-validation: {e}")
            raise _rejected("Invalid JWT token format")

        print__token_debug(f"Token aud: {unverified_payload.get('aud')}")
        print__token_debug(f"Token iss: {unverified_payload.get('iss')}")

        # TEST MODE: only when USE_TEST_TOKENS=1
        if unverified_payload.get("iss") == "test_issuer":
            if not settings.USE_TEST_TOKENS:
                print__token_debug(
                    "🚫 TEST MODE DISABLED: Test token detected - rejecting token"
                )
                raise _rejected("Test tokens are not allowed in this environment")
            if unverified_payload.get("aud") != settings.SUPABASE_JWT_AUDIENCE:
                raise _rejected("Invalid test token audience")
            if int(unverified_payload.get("exp", 0)) < time.time():
                raise _rejected("Test token has expired")
            print__token_debug("✅ TEST MODE: Test token validation successful")
            return unverified_payload

        if not settings.SUPABASE_JWT_SECRET:
            print__token_debug("SUPABASE_JWT_SECRET is not set - cannot verify tokens")
            raise _rejected("Token verification is not configured")

        try:
            payload = jwt.decode(
                token,
                settings.SUPABASE_JWT_SECRET,
                algorithms=["HS256"],
                audience=settings.SUPABASE_JWT_AUDIENCE,
            )
        except jwt.ExpiredSignatureError:
            raise _rejected("Token has expired")
        except jwt.InvalidAudienceError:
            raise _rejected("Invalid token audience")
        except jwt.InvalidSignatureError:
            raise _rejected("Invalid token signature")
        except jwt.PyJWTError as e:
            raise _rejected(f"Invalid token: {e}")

        print__token_debug(
            f"✅ JWT verified for {payload.get('email') or payload.get('sub')}"
        )
        return payload

    except HTTPException:
        raise
    except Exception as e:
        print__token_debug(f"JWT verification error: {type(e).__name__}: {e}")
        print__token_debug(traceback.format_exc())
        raise HTTPException(status_code=401, detail="Token verification failed")
