#!/usr/bin/env python3
"""
Auth Watchdog API Server
Development entry point: serves api.main:app with uvicorn.

HOST / PORT pick the bind address, UVICORN_RELOAD=0 turns the code reloader
off (the watchdog's periodic task restarts with every reload).
"""

import os
import sys

# CRITICAL: Set Windows event loop policy FIRST, before any other imports
if sys.platform == "win32":
    import asyncio

    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Load environment variables early
from dotenv import load_dotenv

load_dotenv()


def main():
    import uvicorn

    reload_enabled = os.environ.get("UVICORN_RELOAD", "1") == "1"
    uvicorn.run(
        "api.main:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8000")),
        reload=reload_enabled,
        reload_dirs=["api", "auth_watchdog"] if reload_enabled else None,
        reload_delay=0.25,
        log_level=os.environ.get("UVICORN_LOG_LEVEL", "info"),
        access_log=True,
    )


if __name__ == "__main__":
    main()
