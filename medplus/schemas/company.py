"""Company API schemas."""

from pydantic import BaseModel


class PublicCompany(BaseModel):
    """Fields safe to show on public pages (login)."""

    id: str
    name: str
    logo_url: str | None = None
    primary_color: str | None = None


class BrandingResponse(BaseModel):
    primary_color: str
    contrast_color: str
    css_variables: dict[str, str]
    rgb_array: list[int]
