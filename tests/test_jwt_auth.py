#!/usr/bin/env python3
"""
Tests for Supabase JWT verification and the bearer-token dependency.
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


import jwt
import pytest
from fastapi import HTTPException

import api.config.settings as settings
from api.auth.jwt_auth import verify_supabase_jwt
from api.dependencies.auth import get_current_user
from tests.helpers import JWT_TEST_SECRET, TEST_USER, make_jwt


@pytest.fixture(autouse=True)
def jwt_settings(monkeypatch):
    monkeypatch.setattr(settings, "SUPABASE_JWT_SECRET", JWT_TEST_SECRET)
    monkeypatch.setattr(settings, "SUPABASE_JWT_AUDIENCE", "authenticated")
    monkeypatch.setattr(settings, "USE_TEST_TOKENS", False)
    return monkeypatch


def create_test_token(audience="authenticated", exp_in=3600, issuer="test_issuer"):
    """Unsigned-check test token (only accepted with USE_TEST_TOKENS=1)."""
    return make_jwt(
        {"iss": issuer, "aud": audience},
        secret="test-issuer-secret-not-checked-0123456789abcdef",
        exp_in=exp_in,
    )


def rejected(token):
    with pytest.raises(HTTPException) as exc_info:
        verify_supabase_jwt(token)
    assert exc_info.value.status_code == 401
    return exc_info.value.detail


# ==============================================================================
# verify_supabase_jwt
# ==============================================================================
def test_valid_token_returns_claims():
    claims = verify_supabase_jwt(make_jwt())

    assert claims["sub"] == TEST_USER["id"]
    assert claims["email"] == TEST_USER["email"]


def test_expired_token():
    assert rejected(make_jwt(exp_in=-60)) == "Token has expired"


def test_wrong_audience():
    assert rejected(make_jwt({"aud": "anon-app"})) == "Invalid token audience"


def test_wrong_signature():
    token = make_jwt(secret="another-secret-that-is-also-long-enough-000000")
    assert rejected(token) == "Invalid token signature"


@pytest.mark.parametrize("token", ["not-a-token", "a.b.c", "abcd.efgh", "abcd..ijkl"])
def test_malformed_tokens(token):
    assert rejected(token) == "Invalid JWT token format"


def test_garbage_with_three_parts_is_rejected():
    assert rejected("abcd.efgh.ijkl") == "Invalid JWT token format"


def test_missing_secret_rejects_everything(jwt_settings):
    jwt_settings.setattr(settings, "SUPABASE_JWT_SECRET", "")

    assert rejected(make_jwt()) == "Token verification is not configured"


def test_rejections_are_counted(jwt_settings):
    jwt_settings.setattr(settings, "_JWT_REJECTED_COUNT", 0)

    rejected(make_jwt(exp_in=-60))
    rejected("a.b.c")

    assert settings._JWT_REJECTED_COUNT == 2


def test_test_tokens_disabled_by_default():
    assert rejected(create_test_token()) == "Test tokens are not allowed in this environment"


def test_test_tokens_when_enabled(jwt_settings):
    jwt_settings.setattr(settings, "USE_TEST_TOKENS", True)

    claims = verify_supabase_jwt(create_test_token())
    assert claims["iss"] == "test_issuer"

    assert rejected(create_test_token(audience="other")) == "Invalid test token audience"
    assert rejected(create_test_token(exp_in=-60)) == "Test token has expired"


def test_disallowed_algorithm_is_rejected():
    token = jwt.encode(
        {"sub": "x", "aud": "authenticated"}, JWT_TEST_SECRET, algorithm="HS512"
    )
    assert rejected(token).startswith("Invalid token")


# ==============================================================================
# get_current_user
# ==============================================================================
def test_missing_header():
    with pytest.raises(HTTPException) as exc_info:
        get_current_user(None)
    assert exc_info.value.detail == "Missing Authorization header"


@pytest.mark.parametrize("header", ["Token abc", "bearer abc", "Basic dXNlcjpwYXNz"])
def test_non_bearer_header(header):
    with pytest.raises(HTTPException) as exc_info:
        get_current_user(header)
    assert exc_info.value.status_code == 401
    assert exc_info.value.detail.startswith("Invalid Authorization header format")


def test_empty_bearer_token():
    with pytest.raises(HTTPException) as exc_info:
        get_current_user("Bearer    ")
    assert exc_info.value.detail == "Invalid Authorization header format"


def test_bearer_header_returns_claims():
    claims = get_current_user(f"Bearer {make_jwt()}")

    assert claims["email"] == TEST_USER["email"]
