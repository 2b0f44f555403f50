"""Contracts for the backend collaborators.

Implementations raise :class:`medplus.backend.errors.BackendError` for every
failure the backend reports.
"""

from typing import Any, Protocol

from medplus.backend.records import (
    CompanyRecord,
    IdentityRecord,
    PermissionRecord,
    ProfileRecord,
)


class TenantStore(Protocol):
    async def first_company(self) -> CompanyRecord | None: ...

    async def get_company(self, company_id: str) -> CompanyRecord | None: ...

    async def create_company(self, name: str, email: str, currency: str) -> CompanyRecord: ...


class IdentityProvider(Protocol):
    async def create_identity(
        self, email: str, password: str, email_confirm: bool = True
    ) -> IdentityRecord: ...

    async def list_identities(self) -> list[IdentityRecord]: ...

    async def delete_identity(self, identity_id: str) -> None: ...


class ProfileStore(Protocol):
    async def upsert_profile(self, profile: ProfileRecord) -> None: ...

    async def update_profile(self, profile_id: str, values: dict[str, Any]) -> int:
        """Apply ``values`` to one profile; returns the number of rows changed."""
        ...

    async def get_profile_by_email(self, email: str) -> ProfileRecord | None: ...


class PermissionStore(Protocol):
    async def grant_permission(
        self, user_id: str, permission_name: str, granted: bool = True
    ) -> None: ...

    async def list_permissions(self, user_id: str) -> list[PermissionRecord]: ...


class RelationProbe(Protocol):
    async def probe(self, relation: str) -> bool:
        """Read at most one row of ``relation``; True when it holds any rows."""
        ...
