"""
Configuration package for the API server.

This package contains settings, constants, and configuration management
for the auth watchdog API.
"""

from .settings import (
    APP_TITLE,
    APP_VERSION,
    BASE_DIR,
    DEBUG_ROUTES_ENABLED,
    SUPABASE_JWT_AUDIENCE,
    start_time,
)

__all__ = [
    "APP_TITLE",
    "APP_VERSION",
    "BASE_DIR",
    "DEBUG_ROUTES_ENABLED",
    "SUPABASE_JWT_AUDIENCE",
    "start_time",
]
