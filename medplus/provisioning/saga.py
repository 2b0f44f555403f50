"""Admin provisioning saga.

Bootstraps the first administrator of a deployment::

    START -> TENANT_RESOLVED -> IDENTITY_READY -> PROFILE_READY -> PERMISSIONS_ASSIGNED
                            \\-> PROMOTED          (identity already exists)
                                          \\-> PROFILE_FAILED -> COMPENSATING -> FAILED

``FAILED`` is reachable from every non-terminal state. Each state that leaves
something behind in the backend declares its compensating action in
``AdminProvisioningSaga._compensations``; only a freshly created identity has one.

Concurrent runs are not serialized: two runs against an empty deployment may
each create a company.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from medplus.backend.errors import BackendError, BackendErrorKind
from medplus.backend.protocols import (
    IdentityProvider,
    PermissionStore,
    ProfileStore,
    TenantStore,
)
from medplus.backend.records import (
    CompanyRecord,
    IdentityRecord,
    ProfileRecord,
    ProfileRole,
    ProfileStatus,
)
from medplus.config import ServiceCredentials
from medplus.provisioning.validation import validate_email, validate_password

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


class SagaState(str, Enum):
    START = "start"
    TENANT_RESOLVED = "tenant_resolved"
    IDENTITY_READY = "identity_ready"
    PROFILE_READY = "profile_ready"
    PERMISSIONS_ASSIGNED = "permissions_assigned"
    PROMOTED = "promoted"
    PROFILE_FAILED = "profile_failed"
    COMPENSATING = "compensating"
    FAILED = "failed"


TERMINAL_STATES = frozenset(
    {SagaState.PERMISSIONS_ASSIGNED, SagaState.PROMOTED, SagaState.FAILED}
)

_TRANSITIONS: dict[SagaState, frozenset[SagaState]] = {
    SagaState.START: frozenset({SagaState.TENANT_RESOLVED, SagaState.FAILED}),
    SagaState.TENANT_RESOLVED: frozenset(
        {SagaState.IDENTITY_READY, SagaState.PROMOTED, SagaState.FAILED}
    ),
    SagaState.IDENTITY_READY: frozenset(
        {SagaState.PROFILE_READY, SagaState.PROFILE_FAILED, SagaState.FAILED}
    ),
    SagaState.PROFILE_FAILED: frozenset({SagaState.COMPENSATING}),
    SagaState.COMPENSATING: frozenset({SagaState.FAILED}),
    SagaState.PROFILE_READY: frozenset({SagaState.PERMISSIONS_ASSIGNED, SagaState.FAILED}),
}


class ProvisioningOutcome(str, Enum):
    CREATED = "created"
    PROMOTED = "promoted"


class CompensationStatus(str, Enum):
    NOT_NEEDED = "not_needed"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class IllegalTransition(RuntimeError):
    pass


@dataclass(frozen=True)
class SagaDefaults:
    """Values used when the saga has to create things on its own."""

    company_name: str = "Medical Supplies"
    currency: str = "KES"
    permission_name: str = "view_dashboard_summary"


@dataclass
class ProvisioningResult:
    email: str
    state: SagaState = SagaState.START
    outcome: ProvisioningOutcome | None = None
    user_id: str | None = None
    company_id: str | None = None
    error: str | None = None
    compensation: CompensationStatus = CompensationStatus.NOT_NEEDED
    warnings: list[str] = field(default_factory=list)
    history: list[SagaState] = field(default_factory=lambda: [SagaState.START])
    message: str | None = None

    @property
    def success(self) -> bool:
        return self.state in (SagaState.PERMISSIONS_ASSIGNED, SagaState.PROMOTED)

    @property
    def compensation_failed(self) -> bool:
        return self.compensation is CompensationStatus.FAILED


class _SagaRun:
    """Mutable state of one invocation."""

    def __init__(self, email: str, on_progress: ProgressCallback | None):
        self.result = ProvisioningResult(email=email)
        self.identity: IdentityRecord | None = None
        self._on_progress = on_progress

    @property
    def state(self) -> SagaState:
        return self.result.state

    def advance(self, new_state: SagaState) -> None:
        if new_state not in _TRANSITIONS.get(self.state, frozenset()):
            raise IllegalTransition(f"{self.state.value} -> {new_state.value}")
        logger.debug("Saga for %s: %s -> %s", self.result.email, self.state.value, new_state.value)
        self.result.state = new_state
        self.result.history.append(new_state)

    def progress(self, message: str) -> None:
        if self._on_progress is not None:
            self._on_progress(message)

    def fail(self, error: str) -> ProvisioningResult:
        self.advance(SagaState.FAILED)
        self.result.error = error
        logger.error("Admin provisioning for %s failed: %s", self.result.email, error)
        self.progress(f"Error: {error}")
        return self.result


class AdminProvisioningSaga:
    """Create (or promote) the administrator account of a deployment.

    The backend collaborators are injected so the saga can run against the
    real SQL/identity adapters or against in-memory fakes.
    """

    def __init__(
        self,
        credentials: ServiceCredentials,
        tenants: TenantStore,
        identities: IdentityProvider,
        profiles: ProfileStore,
        permissions: PermissionStore,
        defaults: SagaDefaults | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._credentials = credentials
        self._tenants = tenants
        self._identities = identities
        self._profiles = profiles
        self._permissions = permissions
        self._defaults = defaults or SagaDefaults()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._compensations: dict[
            SagaState, Callable[[_SagaRun], Awaitable[CompensationStatus]]
        ] = {
            SagaState.IDENTITY_READY: self._delete_created_identity,
        }

    async def run(
        self,
        email: str,
        password: str,
        full_name: str,
        confirm_password: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> ProvisioningResult:
        """Run the saga to a terminal state.

        Raises:
            ConfigurationError: elevated credentials are missing.
            ValidationError: email or password rejected.

        Backend failures do not raise; they end in ``SagaState.FAILED`` with
        ``result.error`` set.
        """
        self._credentials.require()
        validate_email(email)
        validate_password(password, confirm_password)

        run = _SagaRun(email, on_progress)

        company = await self._resolve_tenant(run, email)
        if company is None:
            return run.result

        identity = await self._create_identity(run, email, password, full_name)
        if run.state in TERMINAL_STATES:
            return run.result

        if not await self._upsert_profile(run, identity, email, full_name, company):
            return run.result

        await self._grant_permission(run, identity.id)
        run.result.outcome = ProvisioningOutcome.CREATED
        run.result.message = f"Admin user {email} created successfully"
        run.progress("Admin user created successfully!")
        return run.result

    async def _resolve_tenant(self, run: _SagaRun, email: str) -> CompanyRecord | None:
        run.progress("Checking for default company...")
        try:
            company = await self._tenants.first_company()
            if company is not None:
                run.progress(f"Found company: {company.name}")
            else:
                run.progress("Creating default company...")
                company = await self._tenants.create_company(
                    name=self._defaults.company_name,
                    email=email,
                    currency=self._defaults.currency,
                )
                run.progress(f"Created default company: {company.name}")
        except BackendError as e:
            run.fail(f"Failed to get or create company: {e.message}")
            return None

        run.result.company_id = company.id
        run.advance(SagaState.TENANT_RESOLVED)
        return company

    async def _create_identity(
        self, run: _SagaRun, email: str, password: str, full_name: str
    ) -> IdentityRecord | None:
        run.progress("Creating authentication user...")
        try:
            identity = await self._identities.create_identity(email, password, email_confirm=True)
        except BackendError as e:
            if e.kind is BackendErrorKind.ALREADY_EXISTS:
                await self._promote_existing(run, email, full_name, e)
            else:
                run.fail(f"Failed to create auth user: {e.message}")
            return None

        run.identity = identity
        run.result.user_id = identity.id
        run.advance(SagaState.IDENTITY_READY)
        run.progress(f"Auth user created (ID: {identity.id[:8]}...)")
        return identity

    async def _promote_existing(
        self, run: _SagaRun, email: str, full_name: str, create_error: BackendError
    ) -> None:
        run.progress("User already exists, retrieving...")
        try:
            existing = next(
                (
                    i
                    for i in await self._identities.list_identities()
                    if i.email and i.email.lower() == email.lower()
                ),
                None,
            )
        except BackendError as e:
            run.fail(f"Failed to create auth user: {create_error.message} ({e.message})")
            return
        if existing is None:
            run.fail(f"Failed to create auth user: {create_error.message}")
            return

        try:
            updated = await self._profiles.update_profile(
                existing.id,
                {
                    "role": ProfileRole.ADMIN.value,
                    "status": ProfileStatus.ACTIVE.value,
                    "full_name": full_name,
                    "updated_at": self._clock(),
                },
            )
        except BackendError as e:
            run.fail(f"Failed to update existing user: {e.message}")
            return

        if not updated:
            run.result.warnings.append(f"No profile found for existing user {existing.id}")
            logger.warning("Existing auth user %s has no profile to promote", existing.id)

        run.result.user_id = existing.id
        run.result.outcome = ProvisioningOutcome.PROMOTED
        run.result.message = "Admin updated successfully"
        run.advance(SagaState.PROMOTED)
        run.progress("Updated existing user to admin")

    async def _upsert_profile(
        self,
        run: _SagaRun,
        identity: IdentityRecord,
        email: str,
        full_name: str,
        company: CompanyRecord,
    ) -> bool:
        run.progress("Creating user profile...")
        now = self._clock()
        try:
            await self._profiles.upsert_profile(
                ProfileRecord(
                    id=identity.id,
                    email=email,
                    full_name=full_name,
                    role=ProfileRole.ADMIN,
                    status=ProfileStatus.ACTIVE,
                    company_id=company.id,
                    created_at=now,
                    updated_at=now,
                )
            )
        except Exception as e:
            # the identity exists by now, so any failure here has to compensate
            if isinstance(e, BackendError):
                reason = e.message
            else:
                logger.exception("Unexpected error writing profile for %s", identity.id)
                reason = str(e) or type(e).__name__
            compensate = self._compensations[run.state]
            run.advance(SagaState.PROFILE_FAILED)
            run.advance(SagaState.COMPENSATING)
            run.result.compensation = await compensate(run)
            error = f"Failed to create profile: {reason}"
            if run.result.compensation_failed:
                error += f" (auth user {identity.id} could not be removed)"
            run.fail(error)
            return False

        run.advance(SagaState.PROFILE_READY)
        run.progress("Profile created")
        return True

    async def _grant_permission(self, run: _SagaRun, user_id: str) -> None:
        run.progress("Assigning permissions...")
        name = self._defaults.permission_name
        try:
            await self._permissions.grant_permission(user_id, name, granted=True)
        except BackendError as e:
            if e.kind is BackendErrorKind.DUPLICATE:
                logger.info("Permission %s already granted to %s", name, user_id)
                run.progress("Permissions assigned")
            else:
                logger.warning("Permission assignment warning for %s: %s", user_id, e.message)
                run.result.warnings.append(f"Could not assign {name} permission: {e.message}")
        else:
            run.progress("Permissions assigned")
        run.advance(SagaState.PERMISSIONS_ASSIGNED)

    async def _delete_created_identity(self, run: _SagaRun) -> CompensationStatus:
        identity_id = run.identity.id
        try:
            await self._identities.delete_identity(identity_id)
        except Exception as e:
            logger.warning("Cleanup of auth user %s failed: %s", identity_id, e)
            return CompensationStatus.FAILED
        logger.info("Cleaned up auth user %s", identity_id)
        return CompensationStatus.SUCCEEDED
