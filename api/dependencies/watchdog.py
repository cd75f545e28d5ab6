"""FastAPI dependency giving routes access to the running watchdog runtime."""

from fastapi import HTTPException

from api.utils.debug import print__watchdog_debug
from auth_watchdog.factory import WatchdogRuntime, get_global_runtime


def get_runtime() -> WatchdogRuntime:
    """Return the process-wide runtime, or 503 while it is not initialized."""
    runtime = get_global_runtime()
    if runtime is None:
        print__watchdog_debug("Request received before the watchdog was initialized")
        raise HTTPException(status_code=503, detail="Auth watchdog is not running")
    return runtime
