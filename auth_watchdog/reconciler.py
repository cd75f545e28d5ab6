from __future__ import annotations

MODULE_DESCRIPTION = r"""Auth State Reconciler

Compares the two independently maintained authentication flags and drives
remediation and the login redirect when they disagree.

Cycle (reconcile):
------------------
    flags equal       -> nothing is logged, nothing is called
    flags differ      -> 1. one WARNING "auth_inconsistency" {store, context, path}
                         2. await remediation
                         3. redirect to the login route (replace, state.from)
                            when the remediation succeeded, its action is in
                            policy.redirect_actions and the path is not public
    remediation fails -> one ERROR "auth_reconcile_error", no state change;
                         the next trigger retries

Triggers:
---------
    on_navigation(location)  debounced per path: a repeat check of the same
                             path within policy.navigation_cooldown_seconds of
                             the previous executed one is skipped
    run_periodic_check()     never debounced; re-derives the session flag
                             through refresh_context first so drift between
                             route changes is seen. With
                             policy.periodic_always_remediate the timer runs
                             remediation without comparing the flags first

The reconciler only reads the flag sources. Remediation is the component that
corrects them. Logging and navigation failures never propagate out of a cycle.
"""

import time
import traceback
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from api.utils.debug import print__watchdog_debug
from auth_watchdog.config import WatchdogPolicy
from auth_watchdog.event_log import LogSeverity
from auth_watchdog.models import (
    DebounceState,
    Location,
    ReconcileOutcome,
    RemediationAction,
    RemediationResult,
)
from auth_watchdog.navigation import Navigator, RouteClassifier, login_redirect_state

TRIGGER_NAVIGATION = "navigation"
TRIGGER_PERIODIC = "periodic"
TRIGGER_MANUAL = "manual"

Remediation = Callable[[], Awaitable[RemediationResult]]
Refresher = Callable[[], Awaitable[Any]]


class Reconciler:
    """One reconciler per watchdog. Flag sources are any objects exposing a
    boolean ``is_authenticated`` attribute.

    ``refresh_context`` is awaited before each periodic check, typically
    ``SessionAuthContext.refresh``."""

    def __init__(
        self,
        store_source,
        context_source,
        remediate: Remediation,
        event_log,
        navigator: Navigator,
        policy: Optional[WatchdogPolicy] = None,
        classifier: Optional[RouteClassifier] = None,
        clock: Callable[[], float] = time.monotonic,
        refresh_context: Optional[Refresher] = None,
    ):
        self.store_source = store_source
        self.context_source = context_source
        self.remediate = remediate
        self.event_log = event_log
        self.navigator = navigator
        self.policy = policy or WatchdogPolicy()
        self.classifier = classifier or RouteClassifier(self.policy.public_routes)
        self.clock = clock
        self.refresh_context = refresh_context
        self.debounce = DebounceState()
        self.cycles = 0
        self.last_outcome: Optional[ReconcileOutcome] = None

    # ==========================================================================
    # TRIGGERS
    # ==========================================================================
    async def on_navigation(self, location: Union[Location, str]) -> ReconcileOutcome:
        location = _as_location(location)
        now = self.clock()

        if (
            self.debounce.last_path == location.path
            and self.debounce.last_checked_at is not None
            and now - self.debounce.last_checked_at < self.policy.navigation_cooldown_seconds
        ):
            print__watchdog_debug(f"Navigation check for {location.path} debounced")
            return ReconcileOutcome(
                trigger=TRIGGER_NAVIGATION, path=location.path, debounced=True
            )

        self.debounce.last_path = location.path
        self.debounce.last_checked_at = now
        return await self.reconcile(location, TRIGGER_NAVIGATION)

    async def run_periodic_check(self) -> ReconcileOutcome:
        location = self.navigator.location
        await self._refresh_context()
        if self.policy.periodic_always_remediate:
            return await self._remediate_unconditionally(location)
        return await self.reconcile(location, TRIGGER_PERIODIC)

    def reset(self) -> None:
        self.debounce = DebounceState()

    async def _refresh_context(self) -> None:
        if self.refresh_context is None:
            return
        try:
            await self.refresh_context()
        except Exception as e:  # pylint: disable=broad-except
            # compare against the last known flag
            print__watchdog_debug(f"Session refresh before periodic check failed: {e}")

    # ==========================================================================
    # CYCLE
    # ==========================================================================
    async def reconcile(
        self, location: Union[Location, str], trigger: str = TRIGGER_MANUAL
    ) -> ReconcileOutcome:
        location = _as_location(location)
        self.cycles += 1

        store_flag = bool(self.store_source.is_authenticated)
        context_flag = bool(self.context_source.is_authenticated)
        outcome = ReconcileOutcome(
            trigger=trigger,
            path=location.path,
            store_authenticated=store_flag,
            context_authenticated=context_flag,
        )

        if store_flag == context_flag:
            self.last_outcome = outcome
            return outcome

        outcome.consistent = False
        print__watchdog_debug(
            f"Auth inconsistency on {location.path} ({trigger}): "
            f"store={store_flag}, context={context_flag}"
        )
        self.emit_event(
            "auth_inconsistency",
            "Authentication inconsistency between store and context",
            LogSeverity.WARNING,
            {"store": store_flag, "context": context_flag, "path": location.path},
        )

        result = await self._run_remediation(location, trigger, outcome)
        if result is not None and result.success:
            print__watchdog_debug(f"Remediation applied: {_action_value(result)}")
            if self._should_redirect(result, location):
                outcome.redirected_to = self._redirect_to_login(location)

        self.last_outcome = outcome
        return outcome

    async def _remediate_unconditionally(self, location: Location) -> ReconcileOutcome:
        self.cycles += 1
        outcome = ReconcileOutcome(
            trigger=TRIGGER_PERIODIC,
            path=location.path,
            store_authenticated=bool(self.store_source.is_authenticated),
            context_authenticated=bool(self.context_source.is_authenticated),
        )
        outcome.consistent = outcome.store_authenticated == outcome.context_authenticated

        result = await self._run_remediation(location, TRIGGER_PERIODIC, outcome)
        if (
            result is not None
            and result.success
            and result.action != RemediationAction.NONE_NEEDED
        ):
            print__watchdog_debug(f"Periodic check: {_action_value(result)}")
            if self._should_redirect(result, location):
                outcome.redirected_to = self._redirect_to_login(location)

        self.last_outcome = outcome
        return outcome

    async def _run_remediation(
        self, location: Location, trigger: str, outcome: ReconcileOutcome
    ) -> Optional[RemediationResult]:
        try:
            result = await self.remediate()
        except Exception as e:  # pylint: disable=broad-except
            print__watchdog_debug(
                f"Remediation failed on {location.path}: {type(e).__name__}: {e}\n"
                f"{traceback.format_exc()}"
            )
            outcome.error = f"{type(e).__name__}: {e}"
            self.emit_event(
                "auth_reconcile_error",
                "Error while checking/fixing authentication",
                LogSeverity.ERROR,
                {"path": location.path, "trigger": trigger, "error": str(e)},
            )
            return None
        outcome.result = result
        return result

    def _should_redirect(self, result: RemediationResult, location: Location) -> bool:
        if _action_value(result) not in self.policy.redirect_actions:
            return False
        return not self.classifier.is_public(location.path)

    def _redirect_to_login(self, location: Location) -> Optional[str]:
        target = self.policy.login_route
        try:
            self.navigator.redirect(
                target, replace=True, state=login_redirect_state(location)
            )
        except Exception as e:  # pylint: disable=broad-except
            print__watchdog_debug(f"Redirect to {target} failed: {e}")
            return None
        return target

    def emit_event(
        self, event: str, message: str, severity: LogSeverity, context: Dict[str, Any]
    ) -> None:
        try:
            self.event_log.emit(event, message, severity, context)
        except Exception as e:  # pylint: disable=broad-except
            print__watchdog_debug(f"Event log failed for {event}: {e}")


def _as_location(location: Union[Location, str]) -> Location:
    if isinstance(location, Location):
        return location
    return Location(path=location)


def _action_value(result: RemediationResult) -> Optional[str]:
    action = result.action
    if action is None:
        return None
    return action.value if isinstance(action, RemediationAction) else str(action)
