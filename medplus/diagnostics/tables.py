"""Table existence checks for the backing database.

Returns result objects; does not print or exit. Callers decide whether to
fail startup, return 503, or exit with code 1.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from medplus.backend.errors import BackendError, BackendErrorKind
from medplus.backend.protocols import RelationProbe

logger = logging.getLogger(__name__)

REQUIRED_TABLES: tuple[str, ...] = (
    "companies",
    "profiles",
    "user_permissions",
    "user_invitations",
    "customers",
    "product_categories",
    "products",
    "quotations",
    "quotation_items",
    "proforma_invoices",
    "proforma_items",
    "invoices",
    "invoice_items",
    "credit_notes",
    "credit_note_items",
    "payments",
    "payment_allocations",
    "delivery_notes",
    "delivery_note_items",
    "stock_movements",
    "tax_settings",
    "lpos",
    "lpo_items",
)


@dataclass
class TableCheckResult:
    table_name: str
    exists: bool
    error: str | None = None


@dataclass
class TableStatus:
    tables: list[TableCheckResult]
    total_checked: int
    total_exists: int
    all_tables_exist: bool

    @property
    def missing_tables(self) -> list[TableCheckResult]:
        return [t for t in self.tables if not t.exists]

    @property
    def ambiguous_tables(self) -> list[TableCheckResult]:
        """Tables counted as existing although the probe reported an error."""
        return [t for t in self.tables if t.exists and t.error]


@dataclass
class DatabaseStatus:
    tables_ready: bool
    missing_tables: list[TableCheckResult]
    users_exist: bool
    total_tables_found: int
    total_tables_required: int
    ready: bool
    status: str
    ambiguous_tables: list[TableCheckResult] = field(default_factory=list)


async def _check_table(probe: RelationProbe, table_name: str) -> TableCheckResult:
    try:
        await probe.probe(table_name)
    except BackendError as e:
        if e.kind is BackendErrorKind.MISSING_RELATION:
            return TableCheckResult(
                table_name, exists=False, error=f'Table "{table_name}" does not exist'
            )
        # Not a missing relation (e.g. permission denied): count as present, keep the message
        return TableCheckResult(table_name, exists=True, error=e.message)
    except Exception as e:
        logger.warning("Probe for %s failed unexpectedly: %s", table_name, e)
        return TableCheckResult(table_name, exists=False, error=str(e))
    return TableCheckResult(table_name, exists=True)


async def check_database_tables(
    probe: RelationProbe, tables: Sequence[str] = REQUIRED_TABLES
) -> TableStatus:
    """Probe each table once, in order. Read-only; no retries."""
    results = [await _check_table(probe, name) for name in tables]
    total_exists = sum(1 for r in results if r.exists)
    return TableStatus(
        tables=results,
        total_checked=len(tables),
        total_exists=total_exists,
        all_tables_exist=total_exists == len(tables),
    )


async def check_users_exist(probe: RelationProbe) -> bool:
    """Whether at least one profile row exists."""
    try:
        return await probe.probe("profiles")
    except BackendError as e:
        logger.warning("Could not check users: %s", e.message)
        return False


async def get_database_status(
    probe: RelationProbe, tables: Sequence[str] = REQUIRED_TABLES
) -> DatabaseStatus:
    table_status = await check_database_tables(probe, tables)
    users_exist = await check_users_exist(probe) if table_status.all_tables_exist else False

    if not table_status.all_tables_exist:
        missing = table_status.total_checked - table_status.total_exists
        status = f"{missing} tables missing"
    elif users_exist:
        status = "Ready"
    else:
        status = "Tables ready, no users yet"

    return DatabaseStatus(
        tables_ready=table_status.all_tables_exist,
        missing_tables=table_status.missing_tables,
        users_exist=users_exist,
        total_tables_found=table_status.total_exists,
        total_tables_required=table_status.total_checked,
        ready=table_status.all_tables_exist and users_exist,
        status=status,
        ambiguous_tables=table_status.ambiguous_tables,
    )
