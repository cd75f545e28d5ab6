"""
MODULE_DESCRIPTION: API Configuration Settings - Global State and Application Constants

===================================================================================
PURPOSE AND OVERVIEW
===================================================================================

This module is the configuration hub of the auth watchdog API. It defines the
application constants, the JWT verification settings used by the protected
diagnostics endpoints, and the small amount of process-wide state shared by
the routes (startup time, memory baseline, rejected-token counter).

Watchdog policy (cooldowns, intervals, redirect rules) lives in
auth_watchdog.config; this module only covers the HTTP host.

===================================================================================
KEY FEATURES
===================================================================================

1. Application Lifecycle Tracking
   - Startup time for uptime calculations
   - Memory baseline for growth reporting on shutdown

2. JWT Authentication Configuration
   - Supabase JWT secret (HS256) and expected audience
   - Test-token switch for local development
   - Rejected-token counter to throttle repeated log lines

3. Debug Surface
   - DEBUG_ROUTES_ENABLED toggles the /debug endpoints

===================================================================================
WINDOWS COMPATIBILITY
===================================================================================

Event Loop Policy:
    WindowsSelectorEventLoopPolicy is set before anything else imports asyncio
    so every module sees the same loop implementation.
"""

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

# ==============================================================================
# CONFIGURATION AND CONSTANTS
# ==============================================================================

# =======================================================================
# APPLICATION LIFECYCLE TRACKING
# =======================================================================

# Process start (wall clock) for /health uptime
start_time = time.time()

# Set by the lifespan handler
_APP_STARTUP_TIME = None

# RSS memory at startup, MB
_MEMORY_BASELINE = None

# Requests served since startup (memory monitoring middleware)
_REQUEST_COUNT = 0

APP_TITLE = "Auth Watchdog API"
APP_VERSION = "1.0.0"

# =======================================================================
# JWT AUTHENTICATION
# =======================================================================

# Supabase signs user access tokens with the project JWT secret (HS256)
SUPABASE_JWT_SECRET = os.environ.get("SUPABASE_JWT_SECRET", "")

# Audience claim of user access tokens
SUPABASE_JWT_AUDIENCE = os.environ.get("SUPABASE_JWT_AUDIENCE", "authenticated")

# Only "1" enables tokens issued by "test_issuer" (development only)
USE_TEST_TOKENS = os.environ.get("USE_TEST_TOKENS", "0") == "1"

# Incremented on every rejected token; only every 10th is logged
_JWT_REJECTED_COUNT = 0

# =======================================================================
# DEBUG SURFACE
# =======================================================================

DEBUG_ROUTES_ENABLED = os.environ.get("DEBUG_ROUTES_ENABLED", "1") == "1"
