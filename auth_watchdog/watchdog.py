"""Auth consistency watchdog: owns the two reconciliation triggers.

Resources held while running (acquired by ``start()``, released by
``stop()``):

    - the navigator subscription (navigation trigger)
    - the periodic asyncio task (periodic trigger, when enabled)
    - navigation checks still in flight

Use as ``async with AuthConsistencyWatchdog(...) as watchdog:`` or call
``start()`` / ``await stop()`` from an application lifespan.
"""

import asyncio
from typing import Any, Callable, Dict, Optional, Set

from api.utils.debug import print__watchdog_debug
from api.utils.memory import log_comprehensive_error
from auth_watchdog.config import WatchdogPolicy
from auth_watchdog.event_log import LogSeverity
from auth_watchdog.models import Location
from auth_watchdog.navigation import Navigator
from auth_watchdog.reconciler import TRIGGER_NAVIGATION, Reconciler


class AuthConsistencyWatchdog:
    def __init__(
        self,
        reconciler: Reconciler,
        navigator: Navigator,
        policy: Optional[WatchdogPolicy] = None,
    ):
        self.reconciler = reconciler
        self.navigator = navigator
        self.policy = policy or reconciler.policy
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._periodic_task: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()
        self.last_navigation_task: Optional[asyncio.Task] = None
        self.periodic_runs = 0
        self.failed_checks = 0

    @property
    def running(self) -> bool:
        return self._unsubscribe is not None

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        """Subscribe to navigation and start the timer. Must be called from
        inside a running event loop; a second call is a no-op."""
        if self.running:
            return
        loop = asyncio.get_running_loop()
        self._unsubscribe = self.navigator.subscribe(self._on_location_change)
        if self.policy.periodic_enabled:
            self._periodic_task = loop.create_task(self._periodic_loop())
        print__watchdog_debug(
            f"Watchdog started (periodic={'on' if self._periodic_task else 'off'})"
        )

    async def stop(self) -> None:
        if not self.running:
            return
        self._unsubscribe()
        self._unsubscribe = None

        tasks = list(self._inflight)
        if self._periodic_task is not None:
            tasks.append(self._periodic_task)
            self._periodic_task = None
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight.clear()
        self.last_navigation_task = None
        self.reconciler.reset()
        print__watchdog_debug("Watchdog stopped")

    async def __aenter__(self) -> "AuthConsistencyWatchdog":
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # triggers
    # ------------------------------------------------------------------
    def _on_location_change(self, location: Location) -> None:
        if not self.running:
            return
        task = asyncio.get_running_loop().create_task(
            self.reconciler.on_navigation(location)
        )
        self._inflight.add(task)
        self.last_navigation_task = task
        task.add_done_callback(self._navigation_check_done)

    def _navigation_check_done(self, task: asyncio.Task) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is None:
            return
        self.failed_checks += 1
        path = self.navigator.location.path
        log_comprehensive_error("navigation_check_error", error, extra={"path": path})
        self.reconciler.emit_event(
            "auth_reconcile_error",
            "Navigation check crashed",
            LogSeverity.ERROR,
            {"path": path, "trigger": TRIGGER_NAVIGATION, "error": str(error)},
        )

    async def _periodic_loop(self) -> None:
        interval = self.policy.periodic_interval_seconds
        while True:
            await asyncio.sleep(interval)
            self.periodic_runs += 1
            try:
                await self.reconciler.run_periodic_check()
            except Exception as e:  # pylint: disable=broad-except
                print__watchdog_debug(f"Periodic check crashed, will retry: {e}")

    async def wait_idle(self) -> None:
        """Wait until navigation checks scheduled so far have finished."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    def status(self) -> Dict[str, Any]:
        debounce = self.reconciler.debounce
        return {
            "running": self.running,
            "periodic_enabled": self._periodic_task is not None,
            "periodic_runs": self.periodic_runs,
            "failed_checks": self.failed_checks,
            "cycles": self.reconciler.cycles,
            "inflight_checks": len(self._inflight),
            "store_authenticated": bool(self.reconciler.store_source.is_authenticated),
            "context_authenticated": bool(
                self.reconciler.context_source.is_authenticated
            ),
            "current_path": self.navigator.location.path,
            "debounce": debounce.model_dump(),
            "policy": self.policy.model_dump(mode="json"),
            "last_outcome": (
                self.reconciler.last_outcome.model_dump(mode="json")
                if self.reconciler.last_outcome
                else None
            ),
        }
