"""
Data models package for the API server.

This package contains Pydantic models for request/response validation
of the auth watchdog API.
"""

# Import request models
from .requests import (
    LoginRequest,
    NavigationRequest,
    WatchdogCheckRequest,
)

# Import response models
from .responses import (
    AuthFixResponse,
    LogsResponse,
    NavigationResponse,
    ReconcileResponse,
    RedirectInstruction,
    SessionResponse,
    WatchdogStatusResponse,
)

# Export all models for easier access
__all__ = [
    # Request models
    'LoginRequest',
    'NavigationRequest',
    'WatchdogCheckRequest',

    # Response models
    'AuthFixResponse',
    'LogsResponse',
    'NavigationResponse',
    'ReconcileResponse',
    'RedirectInstruction',
    'SessionResponse',
    'WatchdogStatusResponse',
]
