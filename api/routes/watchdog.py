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

from typing import Optional

from fastapi import APIRouter, Depends

from api.dependencies.watchdog import get_runtime
from api.models.requests import WatchdogCheckRequest
from api.models.responses import (
    ReconcileResponse,
    RedirectInstruction,
    WatchdogStatusResponse,
)
from api.utils.debug import print__watchdog_debug
from auth_watchdog.factory import WatchdogRuntime
from auth_watchdog.models import Location
from auth_watchdog.reconciler import TRIGGER_MANUAL

router = APIRouter()


@router.get("/watchdog/status", response_model=WatchdogStatusResponse)
async def watchdog_status(runtime: WatchdogRuntime = Depends(get_runtime)):
    return runtime.watchdog.status()


@router.post("/watchdog/check", response_model=ReconcileResponse)
async def watchdog_check(
    request: Optional[WatchdogCheckRequest] = None,
    runtime: WatchdogRuntime = Depends(get_runtime),
):
    """Run one reconciliation now, outside both triggers.

    Not debounced. Without a path the navigator's current location is used.
    """
    await runtime.context.refresh()

    if request is not None and request.path:
        location = Location(path=request.path)
    else:
        location = runtime.navigator.location
    print__watchdog_debug(f"Manual check requested for {location.path}")

    outcome = await runtime.reconciler.reconcile(location, TRIGGER_MANUAL)
    await runtime.watchdog.wait_idle()

    return ReconcileResponse(
        outcome=outcome,
        redirects=[
            RedirectInstruction(**r) for r in runtime.navigator.take_redirects()
        ],
    )
