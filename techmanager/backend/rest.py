"""HTTP client for the hosted backend: auth, PostgREST-style rows, functions."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from techmanager.backend.base import Backend, BackendError
from techmanager.config import BackendConfig
from techmanager.schemas import AuthEvent, AuthSession

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(data, dict):
        for key in ("error_description", "msg", "message", "error", "detail"):
            if data.get(key):
                return str(data[key])
    return response.reason_phrase


def _filter_params(filters: dict[str, Any] | None) -> dict[str, str]:
    params = {}
    for column, value in (filters or {}).items():
        params[column] = "is.null" if value is None else f"eq.{value}"
    return params


class RestBackend(Backend):
    def __init__(
        self,
        config: BackendConfig,
        client: httpx.AsyncClient | None = None,
        *,
        emit_initial_session: bool = True,
    ):
        super().__init__(emit_initial_session=emit_initial_session)
        self.config = config
        self._client = client or httpx.AsyncClient(base_url=config.url, timeout=config.timeout)
        self._owns_client = client is None

    def _headers(self, token: str | None = None) -> dict[str, str]:
        bearer = token or (self._session.access_token if self._session else self.config.anon_key)
        return {"apikey": self.config.anon_key, "Authorization": f"Bearer {bearer}"}

    async def _request(self, method: str, path: str, *, token: str | None = None, **kwargs) -> Any:
        headers = {**self._headers(token), **kwargs.pop("headers", {})}
        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise BackendError(f"Network error: {exc}") from exc
        if response.status_code >= 400:
            logger.debug("%s %s -> %s", method, path, response.status_code)
            raise BackendError(_error_message(response), response.status_code)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise BackendError("Invalid JSON in backend response", response.status_code) from exc

    # ── Auth ─────────────────────────────────────────────

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        data = await self._request(
            "POST", "/auth/v1/token", params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        session = AuthSession.model_validate(data)
        self._set_session(AuthEvent.SIGNED_IN, session)
        return session

    async def sign_up(self, email: str, password: str, full_name: str) -> AuthSession:
        data = await self._request(
            "POST", "/auth/v1/signup",
            json={"email": email, "password": password, "data": {"full_name": full_name, "role": "technician"}},
        )
        session = AuthSession.model_validate(data)
        self._set_session(AuthEvent.SIGNED_IN, session)
        return session

    async def refresh_session(self) -> AuthSession:
        if not self._session:
            raise BackendError("Auth session missing!", 401)
        data = await self._request(
            "POST", "/auth/v1/token", params={"grant_type": "refresh_token"},
            json={"refresh_token": self._session.refresh_token},
        )
        session = AuthSession.model_validate(data)
        self._set_session(AuthEvent.TOKEN_REFRESHED, session)
        return session

    async def sign_out(self) -> None:
        try:
            if self._session:
                await self._request("POST", "/auth/v1/logout")
        finally:
            self._set_session(AuthEvent.SIGNED_OUT, None)

    # ── Rows ─────────────────────────────────────────────

    async def select(self, table, *, filters=None, order=None, descending=False):
        params = {"select": "*", **_filter_params(filters)}
        if order:
            params["order"] = f"{order}.{'desc' if descending else 'asc'}"
        return await self._request("GET", f"/rest/v1/{table}", params=params) or []

    async def insert(self, table: str, values: dict[str, Any]) -> dict[str, Any]:
        rows = await self._request(
            "POST", f"/rest/v1/{table}", json=values,
            headers={"Prefer": "return=representation"},
        )
        if not rows:
            raise BackendError(f"Insert into {table} returned no row")
        return rows[0]

    async def update(self, table, values, *, filters):
        return await self._request(
            "PATCH", f"/rest/v1/{table}", params=_filter_params(filters), json=values,
            headers={"Prefer": "return=representation"},
        ) or []

    async def delete(self, table, *, filters):
        await self._request("DELETE", f"/rest/v1/{table}", params=_filter_params(filters))

    # ── Functions ────────────────────────────────────────

    async def invoke(self, function, *, method, body, token):
        return await self._request(method, f"/functions/v1/{function}", token=token, json=body) or {}

    async def aclose(self) -> None:
        await super().aclose()
        if self._owns_client:
            await self._client.aclose()
