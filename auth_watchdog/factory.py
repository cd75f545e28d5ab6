"""Watchdog assembly and the process-wide runtime.

``create_watchdog_runtime()`` wires one complete watchdog (storage, flag
sources, backend client, event log, remediation, navigator, reconciler,
watchdog). ``initialize_watchdog()`` / ``cleanup_watchdog()`` manage the
global instance used by the API and are meant for an application lifespan:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await initialize_watchdog()
        yield
        await cleanup_watchdog()
"""

import time
from typing import Callable, Optional

from api.utils.debug import print__watchdog_debug
from auth_watchdog.backend.supabase_client import SupabaseClient
from auth_watchdog.config import AUTH_TOKEN_FILE, WatchdogPolicy, check_supabase_env_vars
from auth_watchdog.event_log import EventLogger
from auth_watchdog.navigation import Navigator, RouteClassifier
from auth_watchdog.reconciler import Reconciler
from auth_watchdog.remediation.remediator import AuthRemediator
from auth_watchdog.state.auth_store import AuthStore
from auth_watchdog.state.session_context import SessionAuthContext
from auth_watchdog.state.token_storage import FileTokenStorage, TokenStorage
from auth_watchdog.watchdog import AuthConsistencyWatchdog

_GLOBAL_RUNTIME: Optional["WatchdogRuntime"] = None


class WatchdogRuntime:
    """Every collaborator of one watchdog, kept together for the host."""

    def __init__(
        self,
        storage: TokenStorage,
        client: SupabaseClient,
        store: AuthStore,
        context: SessionAuthContext,
        event_log: EventLogger,
        remediator: AuthRemediator,
        navigator: Navigator,
        reconciler: Reconciler,
        watchdog: AuthConsistencyWatchdog,
        policy: WatchdogPolicy,
    ):
        self.storage = storage
        self.client = client
        self.store = store
        self.context = context
        self.event_log = event_log
        self.remediator = remediator
        self.navigator = navigator
        self.reconciler = reconciler
        self.watchdog = watchdog
        self.policy = policy

    async def close(self) -> None:
        await self.watchdog.stop()
        await self.event_log.drain()
        await self.client.aclose()


def create_watchdog_runtime(
    storage: Optional[TokenStorage] = None,
    client: Optional[SupabaseClient] = None,
    policy: Optional[WatchdogPolicy] = None,
    event_log: Optional[EventLogger] = None,
    wall_clock: Callable[[], float] = time.time,
    monotonic_clock: Callable[[], float] = time.monotonic,
    initial_path: str = "/",
) -> WatchdogRuntime:
    policy = policy or WatchdogPolicy.from_env()
    storage = storage if storage is not None else FileTokenStorage(AUTH_TOKEN_FILE)
    client = client if client is not None else SupabaseClient()
    event_log = event_log if event_log is not None else EventLogger(client)

    store = AuthStore(storage, client).load()
    context = SessionAuthContext(client, storage, clock=wall_clock).load()
    remediator = AuthRemediator(
        storage,
        store,
        context,
        client,
        event_log,
        renew_threshold_minutes=policy.session_renew_threshold_minutes,
        clock=wall_clock,
    )
    navigator = Navigator(initial_path)
    reconciler = Reconciler(
        store,
        context,
        remediator,
        event_log,
        navigator,
        policy=policy,
        classifier=RouteClassifier(policy.public_routes),
        clock=monotonic_clock,
        refresh_context=context.refresh,
    )
    watchdog = AuthConsistencyWatchdog(reconciler, navigator, policy)
    return WatchdogRuntime(
        storage=storage,
        client=client,
        store=store,
        context=context,
        event_log=event_log,
        remediator=remediator,
        navigator=navigator,
        reconciler=reconciler,
        watchdog=watchdog,
        policy=policy,
    )


async def initialize_watchdog(runtime: Optional[WatchdogRuntime] = None) -> WatchdogRuntime:
    """Create (or adopt) the global runtime and start its watchdog. Idempotent."""
    global _GLOBAL_RUNTIME
    if _GLOBAL_RUNTIME is None:
        missing = check_supabase_env_vars()
        if missing and runtime is None:
            print__watchdog_debug(
                f"Supabase not configured ({missing}) - session checks use local expiry only"
            )
        _GLOBAL_RUNTIME = runtime or create_watchdog_runtime()
        await _GLOBAL_RUNTIME.context.refresh()
    _GLOBAL_RUNTIME.watchdog.start()
    return _GLOBAL_RUNTIME


async def cleanup_watchdog() -> None:
    global _GLOBAL_RUNTIME
    if _GLOBAL_RUNTIME is not None:
        await _GLOBAL_RUNTIME.close()
        _GLOBAL_RUNTIME = None


def get_global_runtime() -> Optional[WatchdogRuntime]:
    return _GLOBAL_RUNTIME
