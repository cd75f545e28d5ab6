#!/usr/bin/env python3
"""
Tests for the Supabase REST client and session payload parsing.
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


import json
import time

import httpx
import pytest

from auth_watchdog.backend.supabase_client import SupabaseClient
from auth_watchdog.errors import SupabaseError
from auth_watchdog.models import Session
from tests.helpers import (
    SUPABASE_TEST_KEY,
    TEST_USER,
    SupabaseStub,
    make_jwt,
    session_payload,
    unconfigured_client,
)


# ==============================================================================
# AUTH ENDPOINTS
# ==============================================================================
@pytest.mark.asyncio
async def test_get_user_sends_apikey_and_bearer():
    stub = SupabaseStub({("GET", "/auth/v1/user"): httpx.Response(200, json=TEST_USER)})

    user = await stub.client().get_user("user-token")

    assert user == TEST_USER
    headers = stub.requests[0].headers
    assert headers["apikey"] == SUPABASE_TEST_KEY
    assert headers["Authorization"] == "Bearer user-token"


@pytest.mark.asyncio
async def test_rejected_token_raises_with_status():
    stub = SupabaseStub(
        {("GET", "/auth/v1/user"): httpx.Response(401, json={"msg": "invalid JWT"})}
    )

    with pytest.raises(SupabaseError) as exc_info:
        await stub.client().get_user("dead-token")

    assert exc_info.value.status_code == 401
    assert exc_info.value.message == "invalid JWT"
    assert str(exc_info.value) == "401: invalid JWT"


@pytest.mark.asyncio
async def test_connection_error_has_no_status():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    stub = SupabaseStub({("GET", "/auth/v1/user"): refuse})

    with pytest.raises(SupabaseError) as exc_info:
        await stub.client().get_user("token")

    assert exc_info.value.status_code is None
    assert "connection refused" in str(exc_info.value)


@pytest.mark.asyncio
async def test_unconfigured_client_refuses_requests():
    client = unconfigured_client()

    assert client.configured is False
    with pytest.raises(SupabaseError, match="SUPABASE_URL is not configured"):
        await client.get_user("token")


@pytest.mark.asyncio
async def test_sign_in_with_password_returns_session():
    expires_at = time.time() + 3600
    stub = SupabaseStub(
        {("POST", "/auth/v1/token"): httpx.Response(200, json=session_payload(expires_at))}
    )

    session = await stub.client().sign_in_with_password("user@example.com", "secret")

    assert session.access_token == "access-token-2"
    assert session.expires_at == int(expires_at)
    assert session.user_id == TEST_USER["id"]
    request = stub.requests[0]
    assert request.url.params["grant_type"] == "password"
    assert json.loads(request.content) == {"email": "user@example.com", "password": "secret"}
    # password grant authenticates with the anon key only
    assert request.headers["Authorization"] == f"Bearer {SUPABASE_TEST_KEY}"


@pytest.mark.asyncio
async def test_invalid_credentials_surface_gotrue_message():
    stub = SupabaseStub(
        {
            ("POST", "/auth/v1/token"): httpx.Response(
                400,
                json={"error": "invalid_grant", "error_description": "Invalid login credentials"},
            )
        }
    )

    with pytest.raises(SupabaseError) as exc_info:
        await stub.client().sign_in_with_password("user@example.com", "wrong")

    assert exc_info.value.status_code == 400
    assert exc_info.value.message == "Invalid login credentials"


@pytest.mark.asyncio
async def test_sign_out_posts_to_logout():
    stub = SupabaseStub({("POST", "/auth/v1/logout"): httpx.Response(204)})

    await stub.client().sign_out("user-token")

    assert stub.requests[0].headers["Authorization"] == "Bearer user-token"


# ==============================================================================
# TABLE ENDPOINTS
# ==============================================================================
@pytest.mark.asyncio
async def test_select_builds_postgrest_params():
    stub = SupabaseStub({("GET", "/rest/v1/events"): httpx.Response(200, json=[])})

    rows = await stub.client().select(
        "events", order="timestamp.desc", limit=5, filters={"severidade": "eq.error"}
    )

    assert rows == []
    params = stub.requests[0].url.params
    assert params["select"] == "*"
    assert params["order"] == "timestamp.desc"
    assert params["limit"] == "5"
    assert params["offset"] == "0"
    assert params["severidade"] == "eq.error"


@pytest.mark.asyncio
async def test_plain_text_error_body_is_used_as_message():
    stub = SupabaseStub({("POST", "/rest/v1/events"): httpx.Response(502, text="bad gateway")})

    with pytest.raises(SupabaseError) as exc_info:
        await stub.client().insert("events", {"evento": "x"})

    assert exc_info.value.message == "bad gateway"


@pytest.mark.asyncio
async def test_owned_http_client_is_closed():
    client = SupabaseClient(url="https://project.supabase.test", anon_key="key")
    http = client._client()

    await client.aclose()

    assert http.is_closed
    assert client._http is None


# ==============================================================================
# SESSION PAYLOADS
# ==============================================================================
def test_session_expiry_from_expires_in():
    before = int(time.time())
    session = Session.from_payload({"access_token": "t", "expires_in": 3600})

    assert before + 3600 <= session.expires_at <= int(time.time()) + 3600


def test_session_expiry_from_token_claim():
    token = make_jwt(exp_in=600)
    session = Session.from_payload({"access_token": token})

    assert abs(session.expires_at - (time.time() + 600)) < 5


def test_session_without_expiry_never_expires():
    session = Session.from_payload({"access_token": "not-a-jwt"})

    assert session.expires_at is None
    assert session.is_expired() is False
    assert session.seconds_until_expiry() is None


def test_session_is_expired():
    session = Session(access_token="t", expires_at=1000)

    assert session.is_expired(now=999) is False
    assert session.is_expired(now=1001) is True
