"""
MODULE_DESCRIPTION: Process Memory Snapshots and Comprehensive Error Reporting

===================================================================================
PURPOSE AND OVERVIEW
===================================================================================

Process-level observability helpers shared by the API layer:

    - memory_snapshot(): RSS / VMS / percent of the current process (psutil),
      as served by GET /health
    - log_memory_usage(): one-line RSS report with a context label, with a
      garbage-collection pass when GC_MEMORY_THRESHOLD is exceeded
    - log_comprehensive_error(): JSON error dump (type, message, timestamp,
      optional request and watchdog context) written to the debug channel

None of the helpers raise. They are called from exception handlers, the
lifespan hooks and the /debug routes' failure paths.

===================================================================================
CONFIGURATION
===================================================================================

    GC_MEMORY_THRESHOLD (MB, default 1900): RSS above which gc.collect() runs
"""

import os
import sys

if sys.platform == "win32":
    import asyncio

    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Load environment variables early
from dotenv import load_dotenv

load_dotenv()

# ============================================================
# IMPORTS
# ============================================================
import gc
import json
from datetime import datetime
from typing import Any, Dict, Optional

import psutil
from fastapi import Request

from api.utils.debug import print__debug, print__memory_monitoring

GC_MEMORY_THRESHOLD = int(os.environ.get("GC_MEMORY_THRESHOLD", "1900"))  # MB

_MB = 1024 * 1024


def memory_snapshot() -> Dict[str, float]:
    """Current process memory in MB; zeros when psutil cannot read it."""
    try:
        process = psutil.Process()
        info = process.memory_info()
        return {
            "rss_mb": round(info.rss / _MB, 2),
            "vms_mb": round(info.vms / _MB, 2),
            "percent": round(process.memory_percent(), 2),
        }
    except psutil.Error as e:
        print__memory_monitoring(f"❌ psutil could not read process memory: {e}")
        return {"rss_mb": 0.0, "vms_mb": 0.0, "percent": 0.0}


def get_rss_mb() -> float:
    return memory_snapshot()["rss_mb"]


def log_memory_usage(context: str = "") -> float:
    """Report RSS for ``context`` and collect garbage above the threshold.

    Returns the RSS that was reported, in MB.
    """
    rss_mb = get_rss_mb()
    label = f" [{context}]" if context else ""
    print__memory_monitoring(f"📊 Memory usage{label}: {rss_mb:.1f}MB RSS")

    if rss_mb > GC_MEMORY_THRESHOLD:
        collected = gc.collect()
        print__memory_monitoring(
            f"🧹 RSS above {GC_MEMORY_THRESHOLD}MB{label} - gc collected {collected} objects"
        )
    return rss_mb


def log_comprehensive_error(
    context: str,
    error: Exception,
    request: Optional[Request] = None,
    extra: Optional[Dict[str, Any]] = None,
):
    """Dump an error as JSON to the debug channel.

    Args:
        context: where the error happened (e.g. "auth_fix_error")
        error: the exception
        request: adds method, URL and client IP when given
        extra: additional fields, e.g. the watchdog's current path
    """
    error_details: Dict[str, Any] = {
        "context": context,
        "error_type": type(error).__name__,
        "error_message": str(error),
        "timestamp": datetime.now().isoformat(),
    }
    cause = error.__cause__
    if cause is not None:
        error_details["caused_by"] = f"{type(cause).__name__}: {cause}"

    if request is not None:
        error_details.update(
            {
                "method": request.method,
                "url": str(request.url),
                "client_ip": request.client.host if request.client else "unknown",
            }
        )
    if extra:
        error_details.update(extra)

    print__debug(f"🚨 ERROR: {json.dumps(error_details, indent=2, default=str)}")
