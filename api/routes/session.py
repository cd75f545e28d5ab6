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

from fastapi import APIRouter, Depends

from api.dependencies.watchdog import get_runtime
from api.models.requests import LoginRequest
from api.models.responses import SessionResponse
from api.utils.debug import print__token_debug
from auth_watchdog.factory import WatchdogRuntime

router = APIRouter()


@router.post("/auth/login", response_model=SessionResponse)
async def login(request: LoginRequest, runtime: WatchdogRuntime = Depends(get_runtime)):
    """Sign in with email and password and update both auth sources.

    GoTrue credential errors propagate as SupabaseError and are mapped to
    their status code by the exception handlers.
    """
    session = await runtime.client.sign_in_with_password(
        request.email, request.password
    )
    runtime.context.set_session(session)
    runtime.store.login(session.access_token, session.user)
    print__token_debug(f"Login succeeded for {session.user.get('email')}")

    return SessionResponse(
        is_authenticated=runtime.store.is_authenticated,
        user=session.user,
        expires_at=session.expires_at,
    )


@router.post("/auth/logout", response_model=SessionResponse)
async def logout(runtime: WatchdogRuntime = Depends(get_runtime)):
    await runtime.store.logout()
    runtime.context.clear_session()
    print__token_debug("Logout completed")
    return SessionResponse(is_authenticated=False)
