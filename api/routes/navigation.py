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
from api.models.requests import NavigationRequest
from api.models.responses import NavigationResponse, RedirectInstruction
from api.utils.debug import print__navigation_debug
from auth_watchdog.factory import WatchdogRuntime

router = APIRouter()


@router.post("/navigation", response_model=NavigationResponse)
async def report_navigation(
    request: NavigationRequest, runtime: WatchdogRuntime = Depends(get_runtime)
):
    """Publish a client-side route change and wait for the watchdog's check.

    The live session flag is refreshed first so the check compares current
    state. A repeated report of the current path is still delivered; the
    watchdog skips it while the path's cooldown is running. When the check
    invalidates the session on a protected route the response carries the
    login redirect the client must follow.
    """
    print__navigation_debug(f"POST /navigation {request.path}{request.search}")

    await runtime.context.refresh()

    previous_task = runtime.watchdog.last_navigation_task
    runtime.navigator.navigate(
        request.path, state=request.state, search=request.search, force=True
    )
    task = runtime.watchdog.last_navigation_task
    await runtime.watchdog.wait_idle()

    outcome = None
    if (
        task is not None
        and task is not previous_task
        and task.done()
        and not task.cancelled()
        and task.exception() is None
    ):
        outcome = task.result()

    redirects = runtime.navigator.take_redirects()
    redirect = RedirectInstruction(**redirects[0]) if redirects else None

    return NavigationResponse(
        path=request.path,
        checked=outcome is not None and not outcome.debounced,
        outcome=outcome,
        redirect=redirect,
    )
