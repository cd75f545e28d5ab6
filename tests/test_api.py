#!/usr/bin/env python3
"""
Tests for the HTTP surface, run in-process over httpx.ASGITransport.
"""

import os
import sys

if sys.platform == "win32":
    import asyncio

    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

try:
    from pathlib import Path

    BASE_DIR = Path(__file__).resolve().parents[1]
except NameError:
    BASE_DIR = Path(os.getcwd()).parents[0]

sys.path.insert(0, str(BASE_DIR))


import time

import httpx
import pytest
import pytest_asyncio

import api.config.settings as settings
from api.main import app
from auth_watchdog import factory
from auth_watchdog.config import WatchdogPolicy
from auth_watchdog.errors import RemediationError
from auth_watchdog.factory import (
    cleanup_watchdog,
    create_watchdog_runtime,
    initialize_watchdog,
)
from auth_watchdog.state import MemoryTokenStorage
from tests.helpers import (
    JWT_TEST_SECRET,
    TEST_USER,
    FakeClock,
    SupabaseStub,
    make_jwt,
    session_payload,
    unconfigured_client,
)


def stale_login_storage():
    """Store and token claim a login, but no backend session exists."""
    return MemoryTokenStorage(
        {
            "token": "stale-token",
            "auth_store": {"is_authenticated": True, "user": dict(TEST_USER)},
        }
    )


@pytest_asyncio.fixture
async def start_runtime(monkeypatch):
    monkeypatch.setattr(factory, "_GLOBAL_RUNTIME", None)
    monkeypatch.setattr(settings, "SUPABASE_JWT_SECRET", JWT_TEST_SECRET)
    monkeypatch.delenv("DEBUG_TRACEBACK", raising=False)

    async def start(storage=None, client=None, initial_path="/", monotonic_clock=time.monotonic):
        runtime = create_watchdog_runtime(
            storage=storage if storage is not None else MemoryTokenStorage(),
            client=client or unconfigured_client(),
            policy=WatchdogPolicy(periodic_enabled=False),
            initial_path=initial_path,
            monotonic_clock=monotonic_clock,
        )
        return await initialize_watchdog(runtime)

    yield start
    await cleanup_watchdog()


@pytest_asyncio.fixture
async def api_client():
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


def auth_headers():
    return {"Authorization": f"Bearer {make_jwt()}"}


# ==============================================================================
# HEALTH
# ==============================================================================
@pytest.mark.asyncio
async def test_health_reports_running_watchdog(start_runtime, api_client):
    await start_runtime()

    response = await api_client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["watchdog"]["running"] is True
    assert data["watchdog"]["backend_configured"] is False
    assert data["memory"]["rss_mb"] > 0
    assert data["version"] == settings.APP_VERSION


@pytest.mark.asyncio
async def test_endpoints_without_watchdog(monkeypatch, api_client):
    monkeypatch.setattr(factory, "_GLOBAL_RUNTIME", None)

    health = await api_client.get("/health")
    status = await api_client.get("/watchdog/status")

    assert health.status_code == 503
    assert health.json()["status"] == "degraded"
    assert status.status_code == 503
    assert status.json() == {"detail": "Auth watchdog is not running"}


# ==============================================================================
# NAVIGATION
# ==============================================================================
@pytest.mark.asyncio
async def test_navigation_to_protected_route_returns_login_redirect(start_runtime, api_client):
    runtime = await start_runtime(storage=stale_login_storage())

    response = await api_client.post(
        "/navigation", json={"path": "/dashboard", "search": "tab=1"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["checked"] is True
    assert data["outcome"]["consistent"] is False
    assert data["outcome"]["result"]["action"] == "token_removed"
    assert data["redirect"]["path"] == "/login"
    assert data["redirect"]["replace"] is True
    assert data["redirect"]["state"]["from"]["path"] == "/dashboard"
    assert data["redirect"]["state"]["from"]["search"] == "?tab=1"
    assert runtime.store.is_authenticated is False
    assert runtime.navigator.location.path == "/login"


@pytest.mark.asyncio
async def test_navigation_to_public_route_fixes_without_redirect(start_runtime, api_client):
    runtime = await start_runtime(storage=stale_login_storage())

    response = await api_client.post("/navigation", json={"path": "/register"})

    data = response.json()
    assert data["checked"] is True
    assert data["outcome"]["result"]["action"] == "token_removed"
    assert data["redirect"] is None
    assert runtime.storage.get("token") is None


@pytest.mark.asyncio
async def test_navigation_with_consistent_state(start_runtime, api_client):
    runtime = await start_runtime()

    response = await api_client.post("/navigation", json={"path": "/dashboard"})

    data = response.json()
    assert data["checked"] is True
    assert data["outcome"]["consistent"] is True
    assert data["redirect"] is None
    assert len(runtime.event_log.recent) == 0


@pytest.mark.asyncio
async def test_repeated_path_waits_for_cooldown(start_runtime, api_client):
    clock = FakeClock()
    runtime = await start_runtime(monotonic_clock=clock)

    first = await api_client.post("/navigation", json={"path": "/dashboard"})
    assert first.json()["checked"] is True

    # store drifts after the first check
    runtime.store.is_authenticated = True
    clock.advance(3)
    within_cooldown = await api_client.post("/navigation", json={"path": "/dashboard"})

    data = within_cooldown.json()
    assert data["checked"] is False
    assert data["outcome"]["debounced"] is True
    assert runtime.store.is_authenticated is True

    clock.advance(60)
    after_cooldown = await api_client.post("/navigation", json={"path": "/dashboard"})

    data = after_cooldown.json()
    assert data["checked"] is True
    assert data["outcome"]["consistent"] is False
    assert data["outcome"]["result"]["action"] == "store_fixed"
    assert data["redirect"] is None
    assert runtime.store.is_authenticated is False
    assert runtime.reconciler.cycles == 2


@pytest.mark.asyncio
async def test_navigation_rejects_relative_path(start_runtime, api_client):
    await start_runtime()

    response = await api_client.post("/navigation", json={"path": "dashboard"})

    assert response.status_code == 422
    assert response.json()["detail"] == "Validation error"


# ==============================================================================
# WATCHDOG
# ==============================================================================
@pytest.mark.asyncio
async def test_watchdog_status(start_runtime, api_client):
    await start_runtime(initial_path="/reports")

    response = await api_client.get("/watchdog/status")

    data = response.json()
    assert data["running"] is True
    assert data["periodic_enabled"] is False
    assert data["current_path"] == "/reports"
    assert data["policy"]["login_route"] == "/login"


@pytest.mark.asyncio
async def test_manual_check_returns_redirects(start_runtime, api_client):
    await start_runtime(storage=stale_login_storage(), initial_path="/dashboard")

    response = await api_client.post("/watchdog/check")

    data = response.json()
    assert data["outcome"]["trigger"] == "manual"
    assert data["outcome"]["path"] == "/dashboard"
    assert [r["path"] for r in data["redirects"]] == ["/login"]


@pytest.mark.asyncio
async def test_manual_check_for_explicit_path(start_runtime, api_client):
    await start_runtime()

    response = await api_client.post("/watchdog/check", json={"path": "/settings"})

    data = response.json()
    assert data["outcome"]["path"] == "/settings"
    assert data["outcome"]["consistent"] is True
    assert data["redirects"] == []


# ==============================================================================
# SESSION
# ==============================================================================
@pytest.mark.asyncio
async def test_login_updates_both_sources(start_runtime, api_client):
    stub = SupabaseStub(
        {
            ("POST", "/auth/v1/token"): httpx.Response(
                200, json=session_payload(time.time() + 3600)
            )
        }
    )
    runtime = await start_runtime(client=stub.client())

    response = await api_client.post(
        "/auth/login", json={"email": "user@example.com", "password": "secret"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["is_authenticated"] is True
    assert data["user"]["email"] == TEST_USER["email"]
    assert runtime.store.is_authenticated is True
    assert runtime.context.is_authenticated is True
    assert runtime.storage.get("token") == "access-token-2"


@pytest.mark.asyncio
async def test_login_with_wrong_password_passes_status_through(start_runtime, api_client):
    stub = SupabaseStub(
        {
            ("POST", "/auth/v1/token"): httpx.Response(
                400, json={"error_description": "Invalid login credentials"}
            )
        }
    )
    runtime = await start_runtime(client=stub.client())

    response = await api_client.post(
        "/auth/login", json={"email": "user@example.com", "password": "wrong"}
    )

    assert response.status_code == 400
    assert response.json() == {"detail": "Invalid login credentials"}
    assert runtime.store.is_authenticated is False


@pytest.mark.asyncio
async def test_login_backend_outage_is_bad_gateway(start_runtime, api_client):
    stub = SupabaseStub({("POST", "/auth/v1/token"): httpx.Response(500, text="boom")})
    await start_runtime(client=stub.client())

    response = await api_client.post(
        "/auth/login", json={"email": "user@example.com", "password": "secret"}
    )

    assert response.status_code == 502


@pytest.mark.asyncio
async def test_logout_clears_both_sources(start_runtime, api_client):
    runtime = await start_runtime(storage=stale_login_storage())

    response = await api_client.post("/auth/logout")

    assert response.json()["is_authenticated"] is False
    assert runtime.store.is_authenticated is False
    assert runtime.context.is_authenticated is False
    assert runtime.storage.get("token") is None


# ==============================================================================
# DEBUG
# ==============================================================================
@pytest.mark.asyncio
async def test_debug_endpoints_require_token(start_runtime, api_client):
    await start_runtime()

    response = await api_client.get("/debug/auth-diagnostics")

    assert response.status_code == 401
    assert response.json() == {"detail": "Missing Authorization header"}


@pytest.mark.asyncio
async def test_debug_diagnostics(start_runtime, api_client):
    await start_runtime(storage=stale_login_storage())

    response = await api_client.get("/debug/auth-diagnostics", headers=auth_headers())

    assert response.status_code == 200
    data = response.json()
    assert data["has_local_token"] is True
    assert data["has_valid_session"] is False
    assert data["auth_store_state"]["is_authenticated"] is True
    assert data["state_consistency"]["store_matches_session"] is False


@pytest.mark.asyncio
async def test_debug_fix(start_runtime, api_client):
    await start_runtime(storage=stale_login_storage())

    response = await api_client.post("/debug/auth-fix", headers=auth_headers())

    data = response.json()
    assert data["result"] == {"success": True, "action": "token_removed", "error": None}
    assert data["store_authenticated"] is False
    assert data["context_authenticated"] is False


@pytest.mark.asyncio
async def test_debug_fix_failure_is_logged_and_reported(start_runtime, api_client):
    runtime = await start_runtime()

    async def broken_fix():
        raise RemediationError("Auth remediation failed: storage unavailable")

    runtime.remediator.fix_auth_issues = broken_fix

    response = await api_client.post("/debug/auth-fix", headers=auth_headers())

    assert response.status_code == 500
    assert response.json() == {"detail": "Auth remediation failed: storage unavailable"}
    errors = [row for row in runtime.event_log.recent if row["severidade"] == "error"]
    assert [row["evento"] for row in errors] == ["auth_fix_error"]


@pytest.mark.asyncio
async def test_debug_logs(start_runtime, api_client):
    runtime = await start_runtime(storage=stale_login_storage())
    await runtime.reconciler.reconcile("/dashboard")

    response = await api_client.get(
        "/debug/logs", params={"severity": "warning"}, headers=auth_headers()
    )

    data = response.json()
    assert data["success"] is True
    events = [row["evento"] for row in data["logs"]]
    assert "auth_inconsistency" in events
    assert all(row["severidade"] == "warning" for row in data["logs"])


@pytest.mark.asyncio
async def test_debug_logs_validates_limit(start_runtime, api_client):
    await start_runtime()

    response = await api_client.get(
        "/debug/logs", params={"limit": 0}, headers=auth_headers()
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_set_env_only_accepts_debug_channels(start_runtime, api_client, monkeypatch):
    await start_runtime()
    monkeypatch.setenv("print__watchdog_debug", "0")

    rejected = await api_client.post(
        "/debug/set-env", json={"SUPABASE_URL": "https://evil.test"}, headers=auth_headers()
    )
    accepted = await api_client.post(
        "/debug/set-env", json={"print__watchdog_debug": "1"}, headers=auth_headers()
    )

    assert rejected.status_code == 400
    assert accepted.status_code == 200
    assert accepted.json()["variables"] == {"print__watchdog_debug": "1"}
    assert os.environ["print__watchdog_debug"] == "1"
