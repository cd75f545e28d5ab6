"""Auth Watchdog FastAPI Backend Application

Hosts the auth consistency watchdog for a browser frontend. See
MODULE_DESCRIPTION below for the full overview.
"""

MODULE_DESCRIPTION = r"""Auth Watchdog FastAPI Backend Application

This module is the entry point of the backend that hosts the auth consistency
watchdog. The frontend reports every route change to the API; the watchdog
compares the cached auth store with the live Supabase session, repairs any
divergence and hands a login redirect back when the session turned out to be
invalid.

Key Features:
-------------
1. Watchdog Lifecycle:
   - initialize_watchdog() at startup builds the process-wide runtime
     (token storage, auth store, session context, Supabase client, event log,
     remediation, navigator, reconciler) and starts both triggers
   - cleanup_watchdog() at shutdown cancels the periodic task and in-flight
     checks, drains the event log and closes the HTTP client

2. HTTP Surface:
   - GET  /health                     status, uptime, memory, watchdog flag
   - POST /navigation                 report a route change, get the redirect
   - POST /auth/login, /auth/logout   update both auth sources
   - GET  /watchdog/status            flags, policy, debounce state
   - POST /watchdog/check             run one reconciliation now
   - /debug/*                         diagnostics, manual fix, event log
                                      (Supabase JWT required)

3. Error Handling:
   - Handlers from api.exceptions.handlers for validation (422), HTTP errors
     (401 tracing), Supabase backend errors (4xx passthrough / 502),
     remediation failures (500), ValueError (400) and a catch-all (500)
   - DEBUG_TRACEBACK=1 adds tracebacks to 5xx bodies

4. Memory Monitoring:
   - RSS baseline after startup, growth report at shutdown
   - Per-request memory logging for the heavy /debug endpoints

Usage Example:
-------------
uvicorn api.main:app --host 0.0.0.0 --port 8000 --reload
"""

# ==============================================================================
# CRITICAL WINDOWS COMPATIBILITY SETUP
# ==============================================================================
import os
import sys

if sys.platform == "win32":
    import asyncio

    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# ==============================================================================
# ENVIRONMENT VARIABLES LOADING
# ==============================================================================
from dotenv import load_dotenv

load_dotenv()

# ==============================================================================
# PROJECT ROOT DIRECTORY CONFIGURATION
# ==============================================================================
try:
    from pathlib import Path

    BASE_DIR = Path(__file__).resolve().parents[1]
except NameError:
    BASE_DIR = Path(os.getcwd())

if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

# ==============================================================================
# STANDARD LIBRARY AND THIRD-PARTY IMPORTS
# ==============================================================================
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

import api.config.settings as settings
from api.config.settings import APP_TITLE, APP_VERSION, DEBUG_ROUTES_ENABLED
from api.exceptions.handlers import (
    general_exception_handler,
    http_exception_handler,
    remediation_error_handler,
    supabase_error_handler,
    validation_exception_handler,
    value_error_handler,
)
from api.middleware.cors import setup_brotli_middleware, setup_cors_middleware
from api.middleware.memory_monitoring import setup_memory_monitoring_middleware
from api.routes import (
    debug_router,
    health_router,
    navigation_router,
    session_router,
    watchdog_router,
)
from api.utils.debug import print__memory_monitoring, print__startup_debug
from api.utils.memory import GC_MEMORY_THRESHOLD, get_rss_mb, log_memory_usage
from auth_watchdog.errors import RemediationError, SupabaseError
from auth_watchdog.factory import cleanup_watchdog, initialize_watchdog


# ==============================================================================
# APPLICATION LIFESPAN MANAGEMENT
# ==============================================================================
@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Start the watchdog on startup and release it on shutdown.

    Startup: record startup time, initialize the global watchdog runtime,
    establish the memory baseline.
    Shutdown: stop the watchdog (timer, subscription, in-flight checks),
    drain the event log, report memory growth.
    """
    settings._APP_STARTUP_TIME = datetime.now()
    print__startup_debug("🚀 FastAPI application starting up...")
    log_memory_usage("app_startup")

    runtime = await initialize_watchdog()
    print__startup_debug(
        f"✅ Auth watchdog running (backend configured: {runtime.client.configured})"
    )

    if settings._MEMORY_BASELINE is None:
        settings._MEMORY_BASELINE = get_rss_mb()
        print__memory_monitoring(
            f"Memory baseline established: {settings._MEMORY_BASELINE:.1f}MB RSS"
        )

    log_memory_usage("app_ready")
    print__startup_debug("✅ FastAPI application ready to serve requests")

    yield

    print__startup_debug("🛑 FastAPI application shutting down...")
    print__memory_monitoring(
        f"Application ran for {datetime.now() - settings._APP_STARTUP_TIME}"
    )

    await cleanup_watchdog()

    if settings._MEMORY_BASELINE:
        final_memory = get_rss_mb()
        total_growth = final_memory - settings._MEMORY_BASELINE
        print__memory_monitoring(
            f"Final memory stats: Started={settings._MEMORY_BASELINE:.1f}MB, "
            f"Final={final_memory:.1f}MB, Growth={total_growth:.1f}MB"
        )
        if total_growth > GC_MEMORY_THRESHOLD:
            print__memory_monitoring(
                "🚨 SIGNIFICANT MEMORY GROWTH DETECTED - investigate for leaks!"
            )


# ==============================================================================
# FASTAPI APPLICATION INITIALIZATION
# ==============================================================================
app = FastAPI(
    title=APP_TITLE,
    description="""Keeps the cached auth store and the live Supabase session in agreement.

## Authentication
`/debug/*` endpoints require a Supabase access token (`Authorization: Bearer <token>`).
    """,
    version=APP_VERSION,
    lifespan=lifespan,
    responses={
        401: {
            "description": "Unauthorized - Invalid or missing authentication token",
            "content": {
                "application/json": {"example": {"detail": "Missing Authorization header"}}
            },
        },
        503: {
            "description": "Auth watchdog is not running",
            "content": {
                "application/json": {"example": {"detail": "Auth watchdog is not running"}}
            },
        },
    },
)

# ==============================================================================
# MIDDLEWARE REGISTRATION
# ==============================================================================
setup_cors_middleware(app)
setup_brotli_middleware(app)
setup_memory_monitoring_middleware(app)

# ==============================================================================
# EXCEPTION HANDLERS
# ==============================================================================
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(SupabaseError, supabase_error_handler)
app.add_exception_handler(RemediationError, remediation_error_handler)
app.add_exception_handler(ValueError, value_error_handler)
app.add_exception_handler(Exception, general_exception_handler)

# ==============================================================================
# ROUTE REGISTRATION
# ==============================================================================
print__startup_debug("[ROUTES] Registering route routers...")

app.include_router(health_router, tags=["Health & Monitoring"])
app.include_router(navigation_router, tags=["Navigation"])
app.include_router(session_router, tags=["Session"])
app.include_router(watchdog_router, tags=["Watchdog"])
if DEBUG_ROUTES_ENABLED:
    app.include_router(debug_router, tags=["Debug & Diagnostics"])

print__startup_debug("[SUCCESS] All route routers registered successfully")
