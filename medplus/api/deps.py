"""FastAPI dependencies wiring the backend adapters."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends

from medplus.auth.identity import SupabaseIdentityProvider
from medplus.backend.protocols import (
    IdentityProvider,
    PermissionStore,
    ProfileStore,
    RelationProbe,
    TenantStore,
)
from medplus.config import Settings, settings
from medplus.database import async_session_maker, engine
from medplus.provisioning.saga import AdminProvisioningSaga, SagaDefaults
from medplus.storage.repositories import (
    SqlPermissionStore,
    SqlProfileStore,
    SqlRelationProbe,
    SqlTenantStore,
)


def get_settings() -> Settings:
    return settings


def get_tenant_store() -> TenantStore:
    return SqlTenantStore(async_session_maker)


def get_profile_store() -> ProfileStore:
    return SqlProfileStore(async_session_maker)


def get_permission_store() -> PermissionStore:
    return SqlPermissionStore(async_session_maker)


def get_relation_probe() -> RelationProbe:
    return SqlRelationProbe(engine)


async def get_identity_provider(
    cfg: Annotated[Settings, Depends(get_settings)],
) -> AsyncGenerator[IdentityProvider, None]:
    async with SupabaseIdentityProvider(
        cfg.get_credentials(), timeout=cfg.identity_request_timeout
    ) as provider:
        yield provider


def saga_defaults(cfg: Settings) -> SagaDefaults:
    return SagaDefaults(
        company_name=cfg.default_company_name,
        currency=cfg.default_currency,
        permission_name=cfg.default_admin_permission,
    )


def get_admin_saga(
    cfg: Annotated[Settings, Depends(get_settings)],
    tenants: Annotated[TenantStore, Depends(get_tenant_store)],
    identities: Annotated[IdentityProvider, Depends(get_identity_provider)],
    profiles: Annotated[ProfileStore, Depends(get_profile_store)],
    permissions: Annotated[PermissionStore, Depends(get_permission_store)],
) -> AdminProvisioningSaga:
    return AdminProvisioningSaga(
        credentials=cfg.get_credentials(),
        tenants=tenants,
        identities=identities,
        profiles=profiles,
        permissions=permissions,
        defaults=saga_defaults(cfg),
    )
