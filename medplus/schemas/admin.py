"""Admin API schemas."""

from pydantic import BaseModel, Field

from medplus.diagnostics.tables import DatabaseStatus
from medplus.provisioning.saga import (
    CompensationStatus,
    ProvisioningOutcome,
    ProvisioningResult,
    SagaState,
)
from medplus.provisioning.verify import VerificationReport


class CreateAdminRequest(BaseModel):
    """POST /v1/admin/bootstrap request."""

    email: str
    password: str
    full_name: str = "Admin User"
    confirm_password: str | None = None


class ProvisioningResponse(BaseModel):
    success: bool
    state: SagaState
    outcome: ProvisioningOutcome | None = None
    user_id: str | None = None
    email: str
    company_id: str | None = None
    message: str | None = None
    error: str | None = None
    compensation: CompensationStatus
    warnings: list[str] = Field(default_factory=list)
    progress: list[str] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: ProvisioningResult, progress: list[str]) -> "ProvisioningResponse":
        return cls(
            success=result.success,
            state=result.state,
            outcome=result.outcome,
            user_id=result.user_id,
            email=result.email,
            company_id=result.company_id,
            message=result.message,
            error=result.error,
            compensation=result.compensation,
            warnings=result.warnings,
            progress=progress,
        )


class TableCheck(BaseModel):
    table_name: str
    exists: bool
    error: str | None = None


class DatabaseStatusResponse(BaseModel):
    """GET /v1/admin/setup-status response."""

    tables_ready: bool
    users_exist: bool
    ready: bool
    status: str
    total_tables_found: int
    total_tables_required: int
    missing_tables: list[TableCheck]
    ambiguous_tables: list[TableCheck]

    @classmethod
    def from_status(cls, status: DatabaseStatus) -> "DatabaseStatusResponse":
        return cls(
            tables_ready=status.tables_ready,
            users_exist=status.users_exist,
            ready=status.ready,
            status=status.status,
            total_tables_found=status.total_tables_found,
            total_tables_required=status.total_tables_required,
            missing_tables=[TableCheck(**vars(t)) for t in status.missing_tables],
            ambiguous_tables=[TableCheck(**vars(t)) for t in status.ambiguous_tables],
        )


class VerificationCheckOut(BaseModel):
    name: str
    level: str
    detail: str


class VerificationResponse(BaseModel):
    """GET /v1/admin/verify response."""

    email: str
    ok: bool
    user_id: str | None = None
    checks: list[VerificationCheckOut]

    @classmethod
    def from_report(cls, report: VerificationReport) -> "VerificationResponse":
        return cls(
            email=report.email,
            ok=report.ok,
            user_id=report.profile.id if report.profile else None,
            checks=[
                VerificationCheckOut(name=c.name, level=c.level.value, detail=c.detail)
                for c in report.checks
            ],
        )
