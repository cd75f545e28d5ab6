"""
Routes package for the API server.

This package contains FastAPI route handlers for health checks, navigation
reporting, session login/logout, watchdog status and the protected debug
endpoints.
"""

# Routes module initialization
from .debug import router as debug_router
from .health import router as health_router
from .navigation import router as navigation_router
from .session import router as session_router
from .watchdog import router as watchdog_router

# Export all routers for easy import
__all__ = [
    "debug_router",
    "health_router",
    "navigation_router",
    "session_router",
    "watchdog_router",
]
