from __future__ import annotations

MODULE_DESCRIPTION = r"""Structured Event Log for Authentication Events

Every watchdog observation (inconsistency, diagnostics, fix applied, failure)
is recorded as a structured event:

    event     short machine name, e.g. "auth_inconsistency", "auth_fix"
    message   human readable description
    severity  LogSeverity: info | warning | error | critical
    context   free-form key/value map (JSON serialisable)

Delivery:
---------
1. Always: the Python ``logging`` logger "auth_watchdog.events" at the
   matching level, plus the print__event_log_debug channel.
2. When a SupabaseClient is configured: one row in LOG_TABLE
   (columns evento, descricao, severidade, metadata, timestamp).
3. CRITICAL events sent through log_critical_error() are also POSTed to
   NOTIFICATION_WEBHOOK_URL when it is set.

The logger never raises into its caller. A failed table insert falls back to
the Python logger with the original event attached, and emit() schedules the
insert in the background so the watchdog never waits on the log sink.
"""

import asyncio
import logging
from collections import deque
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Deque, Dict, Optional, Set

import httpx

from api.utils.debug import print__event_log_debug
from auth_watchdog.config import LOG_TABLE, NOTIFICATION_WEBHOOK_URL
from auth_watchdog.backend.supabase_client import SupabaseClient

logger = logging.getLogger("auth_watchdog.events")

RECENT_EVENTS_LIMIT = 200


class LogSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


_LEVELS = {
    LogSeverity.INFO: logging.INFO,
    LogSeverity.WARNING: logging.WARNING,
    LogSeverity.ERROR: logging.ERROR,
    LogSeverity.CRITICAL: logging.CRITICAL,
}


class EventLogger:
    """Fire-and-forget structured event sink backed by a Supabase table."""

    def __init__(
        self,
        client: Optional[SupabaseClient] = None,
        table: str = LOG_TABLE,
        webhook_url: Optional[str] = None,
        webhook_client: Optional[httpx.AsyncClient] = None,
    ):
        self.client = client
        self.table = table
        self.webhook_url = (
            webhook_url if webhook_url is not None else NOTIFICATION_WEBHOOK_URL
        )
        self._webhook_client = webhook_client
        self._pending: Set[asyncio.Task] = set()
        self.recent: Deque[Dict[str, Any]] = deque(maxlen=RECENT_EVENTS_LIMIT)

    # ------------------------------------------------------------------
    # recording
    # ------------------------------------------------------------------
    def _record(
        self,
        event: str,
        message: str,
        severity: LogSeverity,
        context: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        row = {
            "evento": event,
            "descricao": message,
            "severidade": LogSeverity(severity).value,
            "metadata": context or {},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        self.recent.append(row)
        logger.log(
            _LEVELS[LogSeverity(severity)],
            "%s: %s %s",
            event,
            message,
            row["metadata"],
        )
        print__event_log_debug(f"{row['severidade'].upper()} {event}: {message} {row['metadata']}")
        return row

    async def _store(self, row: Dict[str, Any]) -> bool:
        if self.client is None or not self.client.configured:
            return True
        try:
            await self.client.insert(self.table, row)
            return True
        except Exception as e:  # pylint: disable=broad-except
            logger.error("Failed to store event in %s: %s", self.table, e)
            logger.error("Original event: %s", row)
            return False

    async def log_event(
        self,
        event: str,
        message: str,
        severity: LogSeverity = LogSeverity.INFO,
        context: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Record an event and wait for the table insert. Returns False when
        the insert failed (the event still reached the Python logger)."""
        try:
            row = self._record(event, message, severity, context)
        except Exception as e:  # pylint: disable=broad-except
            print__event_log_debug(f"Could not record event {event}: {e}")
            return False
        return await self._store(row)

    def emit(
        self,
        event: str,
        message: str,
        severity: LogSeverity = LogSeverity.INFO,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Record an event without waiting for the table insert."""
        try:
            row = self._record(event, message, severity, context)
        except Exception as e:  # pylint: disable=broad-except
            print__event_log_debug(f"Could not record event {event}: {e}")
            return

        if self.client is None or not self.client.configured:
            return
        try:
            task = asyncio.get_running_loop().create_task(self._store(row))
        except RuntimeError:
            # No running loop: the Python logger already has the event
            return
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for background inserts scheduled by emit()."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ------------------------------------------------------------------
    # critical + queries
    # ------------------------------------------------------------------
    async def log_critical_error(
        self, event: str, message: str, context: Optional[Dict[str, Any]] = None
    ) -> bool:
        """Record a CRITICAL event and notify the webhook (if configured)."""
        logged = await self.log_event(event, message, LogSeverity.CRITICAL, context)

        if self.webhook_url:
            payload = {
                "event": event,
                "description": message,
                "severity": LogSeverity.CRITICAL.value,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "metadata": context or {},
            }
            try:
                if self._webhook_client is not None:
                    response = await self._webhook_client.post(self.webhook_url, json=payload)
                else:
                    async with httpx.AsyncClient(timeout=10) as http:
                        response = await http.post(self.webhook_url, json=payload)
                if response.status_code >= 400:
                    logger.error(
                        "Notification webhook returned %s: %s",
                        response.status_code,
                        response.text,
                    )
            except httpx.HTTPError as e:
                logger.error("Failed to send notification webhook: %s", e)

        return logged

    async def get_recent_logs(
        self,
        severity: Optional[LogSeverity] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> Dict[str, Any]:
        """Newest events first. Falls back to the in-process buffer when no
        Supabase client is configured."""
        if self.client is None or not self.client.configured:
            rows = list(reversed(self.recent))
            if severity is not None:
                rows = [r for r in rows if r["severidade"] == LogSeverity(severity).value]
            return {"success": True, "logs": rows[offset : offset + limit]}

        filters = None
        if severity is not None:
            filters = {"severidade": f"eq.{LogSeverity(severity).value}"}
        try:
            rows = await self.client.select(
                self.table,
                order="timestamp.desc",
                limit=limit,
                offset=offset,
                filters=filters,
            )
        except Exception as e:  # pylint: disable=broad-except
            logger.error("Failed to fetch logs from %s: %s", self.table, e)
            return {"success": False, "error": str(e)}
        return {"success": True, "logs": rows}
