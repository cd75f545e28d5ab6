"""
Dependencies package for the API server.

This package contains FastAPI dependencies for authentication and access to
the running watchdog.
"""

from .auth import get_current_user
from .watchdog import get_runtime

__all__ = [
    'get_current_user',
    'get_runtime',
]
