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
import time
from datetime import datetime

from fastapi import APIRouter
from fastapi.responses import JSONResponse

import api.config.settings as settings
from api.config.settings import APP_VERSION, start_time
from api.helpers import traceback_json_response
from api.utils.memory import memory_snapshot
from auth_watchdog.factory import get_global_runtime

# Create router for health endpoints
router = APIRouter()


def _watchdog_health():
    runtime = get_global_runtime()
    if runtime is None:
        return {"running": False, "backend_configured": False, "cycles": 0}
    return {
        "running": runtime.watchdog.running,
        "backend_configured": runtime.client.configured,
        "cycles": runtime.reconciler.cycles,
        "periodic_runs": runtime.watchdog.periodic_runs,
    }


@router.get("/health")
async def health_check():
    """Liveness plus watchdog state.

    Returns 503 (status "degraded") while the watchdog is not running, so a
    load balancer stops routing navigation reports to this process.
    """
    try:
        watchdog = _watchdog_health()
        health_data = {
            "status": "healthy" if watchdog["running"] else "degraded",
            "timestamp": datetime.now().isoformat(),
            "uptime_seconds": round(time.time() - start_time, 1),
            "requests_served": settings._REQUEST_COUNT,
            "memory": memory_snapshot(),
            "watchdog": watchdog,
            "version": APP_VERSION,
        }
        if not watchdog["running"]:
            return JSONResponse(status_code=503, content=health_data)
        return health_data

    except Exception as e:  # pylint: disable=broad-except
        resp = traceback_json_response(e)
        if resp:
            return resp
        return JSONResponse(
            status_code=500,
            content={
                "status": "error",
                "error": str(e),
                "timestamp": datetime.now().isoformat(),
            },
        )
