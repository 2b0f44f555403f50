"""Public company endpoints - login page data and branding."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from medplus.api.deps import get_tenant_store
from medplus.backend.errors import BackendError
from medplus.backend.protocols import TenantStore
from medplus.schemas.company import BrandingResponse, PublicCompany
from medplus.utils.colors import (
    DEFAULT_PRIMARY_COLOR,
    branding_css_variables,
    get_color_as_rgb_array,
    get_contrast_color,
    hex_to_rgb,
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def _first_company_or_none(tenants: TenantStore):
    try:
        return await tenants.first_company()
    except BackendError as e:
        logger.warning("Failed to fetch company data: %s", e.message)
        return None


@router.get("/public", response_model=PublicCompany)
async def public_company(tenants: Annotated[TenantStore, Depends(get_tenant_store)]):
    """Company shown on public pages; 404 when no company is set up yet."""
    company = await _first_company_or_none(tenants)
    if company is None:
        raise HTTPException(status_code=404, detail="No company configured")
    return PublicCompany(
        id=company.id,
        name=company.name,
        logo_url=company.logo_url,
        primary_color=company.primary_color,
    )


@router.get("/branding", response_model=BrandingResponse)
async def branding(tenants: Annotated[TenantStore, Depends(get_tenant_store)]):
    company = await _first_company_or_none(tenants)
    color = company.primary_color if company else None
    if not color or hex_to_rgb(color) is None:
        color = DEFAULT_PRIMARY_COLOR
    return BrandingResponse(
        primary_color=color,
        contrast_color=get_contrast_color(color),
        css_variables=branding_css_variables(color),
        rgb_array=get_color_as_rgb_array(color),
    )
