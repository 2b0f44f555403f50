"""Plain records exchanged across the backend boundary."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ProfileRole(str, Enum):
    ADMIN = "admin"
    ACCOUNTANT = "accountant"
    STOCK_MANAGER = "stock_manager"
    USER = "user"


class ProfileStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"


@dataclass
class CompanyRecord:
    id: str
    name: str
    email: str | None = None
    currency: str | None = None
    logo_url: str | None = None
    primary_color: str | None = None


@dataclass
class IdentityRecord:
    """Authentication principal owned by the identity provider."""

    id: str
    email: str | None
    email_confirmed_at: datetime | None = None
    last_sign_in_at: datetime | None = None

    @property
    def email_confirmed(self) -> bool:
        return self.email_confirmed_at is not None


@dataclass
class ProfileRecord:
    id: str
    email: str
    full_name: str | None
    role: ProfileRole
    status: ProfileStatus
    company_id: str | None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class PermissionRecord:
    user_id: str
    permission_name: str
    granted: bool
