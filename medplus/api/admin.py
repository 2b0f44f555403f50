"""Admin endpoints - setup status, bootstrap, verification."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from medplus.api.deps import (
    get_admin_saga,
    get_identity_provider,
    get_permission_store,
    get_profile_store,
    get_relation_probe,
    get_tenant_store,
)
from medplus.auth.middleware import ServiceKeyDep
from medplus.backend.protocols import (
    IdentityProvider,
    PermissionStore,
    ProfileStore,
    RelationProbe,
    TenantStore,
)
from medplus.diagnostics.tables import get_database_status
from medplus.provisioning.saga import AdminProvisioningSaga
from medplus.provisioning.verify import verify_admin_setup
from medplus.schemas.admin import (
    CreateAdminRequest,
    DatabaseStatusResponse,
    ProvisioningResponse,
    VerificationResponse,
)

router = APIRouter(dependencies=[ServiceKeyDep])


@router.get("/setup-status", response_model=DatabaseStatusResponse)
async def setup_status(probe: Annotated[RelationProbe, Depends(get_relation_probe)]):
    """Which required tables exist and whether any user has been created."""
    return DatabaseStatusResponse.from_status(await get_database_status(probe))


@router.post("/bootstrap", response_model=ProvisioningResponse)
async def bootstrap_admin(
    body: CreateAdminRequest,
    saga: Annotated[AdminProvisioningSaga, Depends(get_admin_saga)],
):
    """Create the first admin (or promote an existing user to admin)."""
    progress: list[str] = []
    result = await saga.run(
        email=body.email,
        password=body.password,
        full_name=body.full_name,
        confirm_password=body.confirm_password,
        on_progress=progress.append,
    )
    response = ProvisioningResponse.from_result(result, progress)
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=response.model_dump(mode="json"),
        )
    return response


@router.get("/verify", response_model=VerificationResponse)
async def verify_admin(
    email: Annotated[str, Query(min_length=3)],
    profiles: Annotated[ProfileStore, Depends(get_profile_store)],
    tenants: Annotated[TenantStore, Depends(get_tenant_store)],
    permissions: Annotated[PermissionStore, Depends(get_permission_store)],
    identities: Annotated[IdentityProvider, Depends(get_identity_provider)],
):
    report = await verify_admin_setup(email, profiles, tenants, permissions, identities)
    return VerificationResponse.from_report(report)
