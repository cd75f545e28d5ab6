"""
MODULE_DESCRIPTION: Memory Monitoring Middleware - Request Counting and RSS Tracking

Counts every request (exposed through /health) and logs RSS before and after
the endpoints that load the most data into memory: the event log page and the
diagnostics snapshot. Everything else passes through untouched.

Output goes to the print__memory_monitoring channel (DEBUG=1).
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
from fastapi import FastAPI, Request

import api.config.settings as settings
from api.utils.debug import print__memory_monitoring
from api.utils.memory import log_memory_usage

HEAVY_PATHS = ("/debug/logs", "/debug/auth-diagnostics")
HEAVY_REQUEST_GROWTH_WARN_MB = float(os.environ.get("HEAVY_REQUEST_GROWTH_WARN_MB", "50"))

# ==============================================================================
# MEMORY MONITORING MIDDLEWARE
# ==============================================================================


async def memory_monitoring_middleware(request: Request, call_next):
    settings._REQUEST_COUNT += 1

    request_path = request.url.path
    if request_path not in HEAVY_PATHS:
        return await call_next(request)

    label = request_path.strip("/").replace("/", "_")
    rss_before = log_memory_usage(f"before_{label}")
    response = await call_next(request)
    rss_after = log_memory_usage(f"after_{label}")

    growth = rss_after - rss_before
    if growth > HEAVY_REQUEST_GROWTH_WARN_MB:
        print__memory_monitoring(
            f"⚠️ {request.method} {request_path} grew RSS by {growth:.1f}MB "
            f"(request #{settings._REQUEST_COUNT})"
        )
    return response


def setup_memory_monitoring_middleware(app: FastAPI):
    app.middleware("http")(memory_monitoring_middleware)
