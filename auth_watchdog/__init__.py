"""Auth consistency watchdog.

Detects divergence between two independently maintained authentication
flags (the cached auth store and the live session context), runs the
self-healing remediation routine and redirects to the login route when the
session turned out to be invalid.

This package is organized into the following modules:
- config: policy and environment handling
- models: sessions, locations, diagnostics, remediation results
- state: token storage and the two flag sources
- backend: Supabase REST client
- event_log: structured event sink
- remediation: diagnostics and the fix ladder
- navigation: route classifier and navigator
- reconciler / watchdog: the reconciliation cycle and its triggers
- factory: assembly and the process-wide runtime
"""

from auth_watchdog.config import WatchdogPolicy
from auth_watchdog.event_log import EventLogger, LogSeverity
from auth_watchdog.models import (
    Location,
    ReconcileOutcome,
    RemediationAction,
    RemediationResult,
)
from auth_watchdog.navigation import Navigator, RouteClassifier
from auth_watchdog.reconciler import Reconciler
from auth_watchdog.watchdog import AuthConsistencyWatchdog

__all__ = [
    "AuthConsistencyWatchdog",
    "EventLogger",
    "Location",
    "LogSeverity",
    "Navigator",
    "ReconcileOutcome",
    "Reconciler",
    "RemediationAction",
    "RemediationResult",
    "RouteClassifier",
    "WatchdogPolicy",
]
