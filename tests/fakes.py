"""In-memory backend used by the tests.

One object plays every backend role (tenant store, identity provider, profile
store, permission store, relation probe). ``fail_on`` maps a method name to
the exception it should raise instead of doing its work.
"""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from medplus.backend.errors import BackendError, BackendErrorKind
from medplus.backend.records import (
    CompanyRecord,
    IdentityRecord,
    PermissionRecord,
    ProfileRecord,
    ProfileRole,
    ProfileStatus,
)


class FakeBackend:
    def __init__(self, relations: set[str] | None = None):
        self.companies: list[CompanyRecord] = []
        self.identities: dict[str, IdentityRecord] = {}
        self.passwords: dict[str, str] = {}
        self.profiles: dict[str, ProfileRecord] = {}
        self.permissions: list[PermissionRecord] = []
        self.relations = relations if relations is not None else set()
        self.fail_on: dict[str, Exception] = {}
        self.relation_errors: dict[str, Exception] = {}
        self.calls: list[str] = []

    def _enter(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail_on:
            raise self.fail_on[name]

    # tenant store

    async def first_company(self) -> CompanyRecord | None:
        self._enter("first_company")
        return self.companies[0] if self.companies else None

    async def get_company(self, company_id: str) -> CompanyRecord | None:
        self._enter("get_company")
        return next((c for c in self.companies if c.id == company_id), None)

    async def create_company(self, name: str, email: str, currency: str) -> CompanyRecord:
        self._enter("create_company")
        company = CompanyRecord(id=str(uuid4()), name=name, email=email, currency=currency)
        self.companies.append(company)
        return company

    # identity provider

    async def create_identity(
        self, email: str, password: str, email_confirm: bool = True
    ) -> IdentityRecord:
        self._enter("create_identity")
        if any(i.email == email for i in self.identities.values()):
            raise BackendError(
                BackendErrorKind.ALREADY_EXISTS,
                "A user with this email address has already been registered",
            )
        identity = IdentityRecord(
            id=str(uuid4()),
            email=email,
            email_confirmed_at=datetime.now(timezone.utc) if email_confirm else None,
        )
        self.identities[identity.id] = identity
        self.passwords[identity.id] = password
        return identity

    async def list_identities(self) -> list[IdentityRecord]:
        self._enter("list_identities")
        return list(self.identities.values())

    async def delete_identity(self, identity_id: str) -> None:
        self._enter("delete_identity")
        if identity_id not in self.identities:
            raise BackendError(BackendErrorKind.NOT_FOUND, "User not found")
        del self.identities[identity_id]
        self.passwords.pop(identity_id, None)

    # profile store

    async def upsert_profile(self, profile: ProfileRecord) -> None:
        self._enter("upsert_profile")
        self.profiles[profile.id] = replace(profile)

    async def update_profile(self, profile_id: str, values: dict[str, Any]) -> int:
        self._enter("update_profile")
        profile = self.profiles.get(profile_id)
        if profile is None:
            return 0
        for key, value in values.items():
            if key == "role":
                value = ProfileRole(value)
            elif key == "status":
                value = ProfileStatus(value)
            setattr(profile, key, value)
        return 1

    async def get_profile_by_email(self, email: str) -> ProfileRecord | None:
        self._enter("get_profile_by_email")
        return next((p for p in self.profiles.values() if p.email.lower() == email.lower()), None)

    # permission store

    async def grant_permission(
        self, user_id: str, permission_name: str, granted: bool = True
    ) -> None:
        self._enter("grant_permission")
        if any(
            p.user_id == user_id and p.permission_name == permission_name
            for p in self.permissions
        ):
            raise BackendError(
                BackendErrorKind.DUPLICATE,
                'duplicate key value violates unique constraint "uq_user_permissions_user_permission"',
            )
        self.permissions.append(PermissionRecord(user_id, permission_name, granted))

    async def list_permissions(self, user_id: str) -> list[PermissionRecord]:
        self._enter("list_permissions")
        return [p for p in self.permissions if p.user_id == user_id]

    # relation probe

    async def probe(self, relation: str) -> bool:
        self.calls.append(f"probe:{relation}")
        if relation in self.relation_errors:
            raise self.relation_errors[relation]
        if relation not in self.relations:
            raise BackendError(
                BackendErrorKind.MISSING_RELATION,
                f'relation "public.{relation}" does not exist',
            )
        if relation == "profiles":
            return bool(self.profiles)
        return False
