"""
API package for the auth watchdog service.

This package contains the FastAPI host of the auth consistency watchdog:
navigation intake, session login/logout, watchdog status and the
authentication diagnostics endpoints.
"""

__version__ = "1.0.0"

__all__ = []
