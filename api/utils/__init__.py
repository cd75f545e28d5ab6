"""
Utility functions package for the API server.

This package contains the env-gated debug printers and the process memory /
error reporting helpers shared by the API and the auth watchdog.
"""

from .debug import (
    DEBUG_CHANNELS,
    print__debug,
    print__event_log_debug,
    print__memory_monitoring,
    print__navigation_debug,
    print__remediation_debug,
    print__startup_debug,
    print__token_debug,
    print__watchdog_debug,
)
from .memory import (
    get_rss_mb,
    log_comprehensive_error,
    log_memory_usage,
    memory_snapshot,
)

__all__ = [
    "DEBUG_CHANNELS",
    "print__debug",
    "print__event_log_debug",
    "print__memory_monitoring",
    "print__navigation_debug",
    "print__remediation_debug",
    "print__startup_debug",
    "print__token_debug",
    "print__watchdog_debug",
    "get_rss_mb",
    "log_comprehensive_error",
    "log_memory_usage",
    "memory_snapshot",
]
