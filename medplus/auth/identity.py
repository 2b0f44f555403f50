"""Identity provider admin client (Supabase GoTrue admin REST API).

All calls go through one ``httpx.AsyncClient`` authenticated with the
service-role key. Every non-success response is turned into a
:class:`BackendError` here.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import httpx

from medplus.backend.errors import (
    BackendError,
    BackendErrorKind,
    classify_message,
    kind_for_provider_code,
)
from medplus.backend.records import IdentityRecord
from medplus.config import ServiceCredentials

_ADMIN_USERS_PATH = "/auth/v1/admin/users"
_PAGE_SIZE = 200


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _identity_from_json(data: dict[str, Any]) -> IdentityRecord:
    return IdentityRecord(
        id=data["id"],
        email=data.get("email"),
        email_confirmed_at=_parse_timestamp(data.get("email_confirmed_at")),
        last_sign_in_at=_parse_timestamp(data.get("last_sign_in_at")),
    )


def _error_from_response(resp: httpx.Response) -> BackendError:
    """Translate a failed admin API response."""
    try:
        body = resp.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = (
        body.get("msg")
        or body.get("message")
        or body.get("error_description")
        or body.get("error")
        or resp.text
        or f"HTTP {resp.status_code}"
    )
    kind = kind_for_provider_code(body.get("error_code") or body.get("code"))
    if kind is None:
        if resp.status_code in (401, 403):
            kind = BackendErrorKind.PERMISSION_DENIED
        elif resp.status_code == 404:
            kind = BackendErrorKind.NOT_FOUND
        else:
            kind = classify_message(str(message))
    return BackendError(kind, str(message))


class SupabaseIdentityProvider:
    """Create, list and delete identities with elevated credentials."""

    def __init__(
        self,
        credentials: ServiceCredentials,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        credentials.require()
        self._base_url = credentials.url
        self._headers = {
            "apikey": credentials.service_role_key,
            "Authorization": f"Bearer {credentials.service_role_key}",
            "Content-Type": "application/json",
        }
        self._owns_client = client is None
        self._http = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> SupabaseIdentityProvider:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        body: dict | None = None,
        params: dict | None = None,
    ) -> dict[str, Any]:
        try:
            resp = await self._http.request(
                method,
                f"{self._base_url}{path}",
                headers=self._headers,
                json=body,
                params=params,
            )
        except httpx.HTTPError as exc:
            raise BackendError(BackendErrorKind.OTHER, f"Identity provider unreachable: {exc}") from exc
        if resp.status_code >= 400:
            raise _error_from_response(resp)
        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as exc:
            raise BackendError(
                BackendErrorKind.OTHER,
                f"Identity provider returned a non-JSON response ({resp.status_code})",
            ) from exc

    async def create_identity(
        self, email: str, password: str, email_confirm: bool = True
    ) -> IdentityRecord:
        data = await self._request(
            "POST",
            _ADMIN_USERS_PATH,
            body={"email": email, "password": password, "email_confirm": email_confirm},
        )
        # Older GoTrue versions wrap the user object
        user = data.get("user", data)
        if not user.get("id"):
            raise BackendError(BackendErrorKind.OTHER, "Failed to get user ID from auth creation")
        return _identity_from_json(user)

    async def list_identities(self) -> list[IdentityRecord]:
        """Walk every page of the admin user listing."""
        identities: list[IdentityRecord] = []
        page = 1
        while True:
            data = await self._request(
                "GET", _ADMIN_USERS_PATH, params={"page": page, "per_page": _PAGE_SIZE}
            )
            users = data.get("users") or []
            identities.extend(_identity_from_json(u) for u in users)
            if len(users) < _PAGE_SIZE:
                return identities
            page += 1

    async def delete_identity(self, identity_id: str) -> None:
        await self._request("DELETE", f"{_ADMIN_USERS_PATH}/{identity_id}")
