"""Post-bootstrap verification of an admin account."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from medplus.backend.errors import BackendError
from medplus.backend.protocols import (
    IdentityProvider,
    PermissionStore,
    ProfileStore,
    TenantStore,
)
from medplus.backend.records import ProfileRecord, ProfileRole, ProfileStatus

logger = logging.getLogger(__name__)


class CheckLevel(str, Enum):
    OK = "ok"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class VerificationCheck:
    name: str
    level: CheckLevel
    detail: str


@dataclass
class VerificationReport:
    email: str
    profile: ProfileRecord | None = None
    checks: list[VerificationCheck] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not any(c.level is CheckLevel.ERROR for c in self.checks)

    def add(self, name: str, level: CheckLevel, detail: str) -> None:
        self.checks.append(VerificationCheck(name, level, detail))


async def verify_admin_setup(
    email: str,
    profiles: ProfileStore,
    tenants: TenantStore,
    permissions: PermissionStore,
    identities: IdentityProvider,
) -> VerificationReport:
    """Check that ``email`` can sign in as an active admin.

    Stops at the first blocking problem (missing profile, inactive status,
    non-admin role); company and permission findings never block.
    """
    report = VerificationReport(email=email)

    try:
        profile = await profiles.get_profile_by_email(email)
    except BackendError as e:
        report.add("profile", CheckLevel.ERROR, f"Error fetching profile: {e.message}")
        return report
    if profile is None:
        report.add("profile", CheckLevel.ERROR, f"No profile found for {email}")
        return report
    report.profile = profile
    report.add("profile", CheckLevel.OK, f"Profile found ({profile.id[:8]}...)")

    if profile.status is not ProfileStatus.ACTIVE:
        report.add(
            "status",
            CheckLevel.ERROR,
            f'Account status is "{profile.status.value}" (should be "active")',
        )
        return report
    report.add("status", CheckLevel.OK, "Account status is active")

    if profile.role is not ProfileRole.ADMIN:
        report.add(
            "role", CheckLevel.ERROR, f'Role is "{profile.role.value}" (should be "admin")'
        )
        return report
    report.add("role", CheckLevel.OK, "User has admin role")

    if not profile.company_id:
        report.add("company", CheckLevel.WARNING, "No company assigned")
    else:
        try:
            company = await tenants.get_company(profile.company_id)
        except BackendError as e:
            logger.warning("Company lookup failed: %s", e.message)
            company = None
        if company is not None:
            report.add("company", CheckLevel.OK, f"Company: {company.name}")
        else:
            report.add("company", CheckLevel.WARNING, "Company not found")

    try:
        grants = await permissions.list_permissions(profile.id)
    except BackendError as e:
        logger.warning("Permission lookup failed: %s", e.message)
        grants = []
    if grants:
        names = ", ".join(
            f"{g.permission_name}={'granted' if g.granted else 'denied'}" for g in grants
        )
        report.add("permissions", CheckLevel.OK, f"Found {len(grants)} permission(s): {names}")
    else:
        report.add(
            "permissions",
            CheckLevel.INFO,
            "No specific permissions assigned (admin role grants all)",
        )

    try:
        users = await identities.list_identities()
    except BackendError as e:
        report.add("auth_user", CheckLevel.WARNING, f"Could not verify auth user: {e.message}")
        return report
    auth_user = next(
        (u for u in users if u.email and u.email.lower() == email.lower()), None
    )
    if auth_user is None:
        report.add("auth_user", CheckLevel.ERROR, "Auth user not found")
    else:
        confirmed = "yes" if auth_user.email_confirmed else "no"
        report.add("auth_user", CheckLevel.OK, f"Auth user exists (email confirmed: {confirmed})")

    return report
