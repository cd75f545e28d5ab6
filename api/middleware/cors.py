"""
MODULE_DESCRIPTION: CORS and Compression Middleware - Cross-Origin and Performance Setup

===================================================================================
PURPOSE AND OVERVIEW
===================================================================================

The watchdog API is called by a browser frontend on a different origin, which
reports navigations and reads the login redirect back. This module registers:

    setup_cors_middleware(app)    CORS for the frontend origins
    setup_brotli_middleware(app)  Brotli compression for larger JSON bodies
                                  (event log pages, diagnostics)

===================================================================================
CONFIGURATION
===================================================================================

    CORS_ALLOWED_ORIGINS   comma-separated origins
                           (default: http://localhost:3000,http://localhost:8000)
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
from brotli_asgi import BrotliMiddleware
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.utils.debug import print__startup_debug

# ==============================================================================
# MIDDLEWARE SETUP - CORS AND BROTLI
# ==============================================================================


def get_allowed_origins():
    allowed_origins_str = os.getenv(
        "CORS_ALLOWED_ORIGINS",
        "http://localhost:3000,http://localhost:8000",
    )
    return [origin.strip() for origin in allowed_origins_str.split(",") if origin.strip()]


def setup_cors_middleware(app: FastAPI):
    """Allow the frontend origins to call the API.

    Credentials are allowed because the frontend sends the Supabase bearer
    token to the /debug endpoints. Browsers refuse credentialed responses for
    a wildcard origin, so "*" switches credentials off.
    """
    allowed_origins = get_allowed_origins()
    allow_credentials = "*" not in allowed_origins
    print__startup_debug(
        f"📋 CORS allowed origins: {allowed_origins} (credentials: {allow_credentials})"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=allow_credentials,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )


def setup_brotli_middleware(app: FastAPI):
    """Brotli for responses of at least BROTLI_MINIMUM_SIZE bytes (default 1000)."""
    minimum_size = int(os.getenv("BROTLI_MINIMUM_SIZE", "1000"))
    print__startup_debug(f"📋 Brotli compression for responses >= {minimum_size} bytes")
    app.add_middleware(BrotliMiddleware, minimum_size=minimum_size)
