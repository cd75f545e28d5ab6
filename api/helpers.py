"""
MODULE_DESCRIPTION: API Helper Functions - Debug Error Responses

traceback_json_response() builds a JSON error response that includes the
full traceback, but only when DEBUG_TRACEBACK=1. In every other case it
returns None and the caller falls back to its own generic response:

    resp = traceback_json_response(e)
    if resp:
        return resp
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})

Only enable DEBUG_TRACEBACK in development; tracebacks expose file paths and
implementation details.
"""

import os
import traceback

from fastapi.responses import JSONResponse


# ============================================================
# ERROR RESPONSE HELPERS
# ============================================================
def traceback_json_response(e, status_code=500, path=None):
    """Create a JSON response with traceback information when in debug mode.

    Args:
        e: The exception that occurred
        status_code: HTTP status code for the response (default: 500)
        path: Optional route path to include for correlation with the
            watchdog's auth events

    Returns:
        JSONResponse if DEBUG_TRACEBACK=1, None otherwise
    """
    if os.environ.get("DEBUG_TRACEBACK") == "1":
        tb_str = "".join(traceback.format_exception(type(e), e, e.__traceback__))

        response_content = {
            "detail": str(e),
            "traceback": tb_str,
        }
        if path:
            response_content["path"] = path

        return JSONResponse(
            status_code=status_code,
            content=response_content,
        )

    return None
