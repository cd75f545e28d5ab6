from __future__ import annotations

MODULE_DESCRIPTION = r"""Supabase REST Client (GoTrue auth + PostgREST tables)

Thin async wrapper over the two Supabase HTTP APIs the watchdog needs. The
hosted backend is treated as an opaque remote service: only the endpoints
below are used, and every failure is surfaced as SupabaseError.

Auth (GoTrue, /auth/v1):
    - get_user(access_token)            GET  /user
    - sign_in_with_password(email, pw)  POST /token?grant_type=password
    - refresh_session(refresh_token)    POST /token?grant_type=refresh_token
    - sign_out(access_token)            POST /logout

Tables (PostgREST, /rest/v1):
    - insert(table, row)                POST /<table>
    - select(table, ...)                GET  /<table>?select=*...

Every request carries the project's anon key in the ``apikey`` header. User
calls add ``Authorization: Bearer <access_token>``; table calls fall back to the
anon key as bearer.

The underlying httpx.AsyncClient is created lazily and can be injected (tests
pass one built on httpx.MockTransport).
"""

from typing import Any, Dict, List, Optional

import httpx

from api.utils.debug import print__token_debug
from auth_watchdog.config import get_supabase_config
from auth_watchdog.errors import SupabaseError
from auth_watchdog.models import Session


class SupabaseClient:
    """Async client for the Supabase auth and table endpoints."""

    def __init__(
        self,
        url: Optional[str] = None,
        anon_key: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        config = get_supabase_config()
        self.url = (url if url is not None else config["url"]).rstrip("/")
        self.anon_key = anon_key if anon_key is not None else config["anon_key"]
        self.timeout = timeout if timeout is not None else config["timeout"]
        self._http = http_client
        self._owns_http = http_client is None

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    @property
    def configured(self) -> bool:
        return bool(self.url and self.anon_key)

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout)
        return self._http

    async def aclose(self) -> None:
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> "SupabaseClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # request plumbing
    # ------------------------------------------------------------------
    def _headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        return {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {access_token or self.anon_key}",
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        access_token: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        if not self.url:
            raise SupabaseError("SUPABASE_URL is not configured")

        headers = self._headers(access_token)
        if extra_headers:
            headers.update(extra_headers)

        try:
            response = await self._client().request(
                method, f"{self.url}{path}", params=params, json=json, headers=headers
            )
        except httpx.HTTPError as e:
            raise SupabaseError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 400:
            raise SupabaseError(_error_message(response), response.status_code)
        return response

    # ------------------------------------------------------------------
    # auth
    # ------------------------------------------------------------------
    async def get_user(self, access_token: str) -> Dict[str, Any]:
        """Return the user owning ``access_token``; 401/403 mean the token is dead."""
        response = await self._request("GET", "/auth/v1/user", access_token=access_token)
        user = response.json()
        print__token_debug(f"GoTrue user lookup ok: {user.get('id')}")
        return user

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        response = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        return Session.from_payload(response.json())

    async def refresh_session(self, refresh_token: str) -> Session:
        response = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )
        session = Session.from_payload(response.json())
        print__token_debug(f"GoTrue session refreshed, expires_at={session.expires_at}")
        return session

    async def sign_out(self, access_token: str) -> None:
        await self._request("POST", "/auth/v1/logout", access_token=access_token)

    # ------------------------------------------------------------------
    # tables
    # ------------------------------------------------------------------
    async def insert(self, table: str, row: Dict[str, Any]) -> None:
        await self._request(
            "POST",
            f"/rest/v1/{table}",
            json=row,
            extra_headers={"Prefer": "return=minimal"},
        )

    async def select(
        self,
        table: str,
        *,
        order: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        filters: Optional[Dict[str, str]] = None,
    ) -> List[Dict[str, Any]]:
        """Select rows. ``order`` is PostgREST syntax (``column.desc``);
        ``filters`` maps columns to PostgREST operators (``eq.warning``)."""
        params: Dict[str, Any] = {"select": "*"}
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = limit
            params["offset"] = offset
        if filters:
            params.update(filters)
        response = await self._request("GET", f"/rest/v1/{table}", params=params)
        return response.json()


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        for key in ("error_description", "msg", "message", "error"):
            if body.get(key):
                return str(body[key])
    return str(body)
