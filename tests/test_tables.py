"""Unit tests for the table existence prober and database status."""

import pytest

from medplus.backend.errors import BackendError, BackendErrorKind
from medplus.backend.records import ProfileRecord, ProfileRole, ProfileStatus
from medplus.diagnostics.tables import (
    REQUIRED_TABLES,
    check_database_tables,
    check_users_exist,
    get_database_status,
)
from tests.fakes import FakeBackend


@pytest.mark.asyncio
async def test_all_tables_exist():
    probe = FakeBackend(relations=set(REQUIRED_TABLES))
    status = await check_database_tables(probe)

    assert status.all_tables_exist
    assert status.total_checked == len(REQUIRED_TABLES) == 23
    assert status.total_exists == status.total_checked
    assert [t.table_name for t in status.tables] == list(REQUIRED_TABLES)
    assert all(t.error is None for t in status.tables)


@pytest.mark.asyncio
async def test_one_missing_table_is_reported():
    probe = FakeBackend(relations=set(REQUIRED_TABLES) - {"lpo_items"})
    status = await check_database_tables(probe)

    assert not status.all_tables_exist
    assert status.total_exists == status.total_checked - 1
    missing = status.missing_tables
    assert len(missing) == 1
    assert missing[0].table_name == "lpo_items"
    assert missing[0].error == 'Table "lpo_items" does not exist'


@pytest.mark.asyncio
async def test_other_backend_errors_count_as_existing():
    probe = FakeBackend(relations={"companies"})
    probe.relation_errors["profiles"] = BackendError(
        BackendErrorKind.PERMISSION_DENIED, "permission denied for table profiles"
    )
    status = await check_database_tables(probe, ["companies", "profiles"])

    assert status.all_tables_exist
    assert status.tables[1].exists
    assert status.tables[1].error == "permission denied for table profiles"
    assert [t.table_name for t in status.ambiguous_tables] == ["profiles"]


@pytest.mark.asyncio
async def test_unexpected_exception_counts_as_missing():
    probe = FakeBackend(relations={"companies"})
    probe.relation_errors["companies"] = RuntimeError("connection reset")
    status = await check_database_tables(probe, ["companies"])

    assert not status.tables[0].exists
    assert status.tables[0].error == "connection reset"


@pytest.mark.asyncio
async def test_probes_each_table_once_in_order():
    probe = FakeBackend(relations=set(REQUIRED_TABLES))
    await check_database_tables(probe, ["b", "a", "companies"])
    assert probe.calls == ["probe:b", "probe:a", "probe:companies"]


@pytest.mark.asyncio
async def test_status_tables_missing():
    probe = FakeBackend(relations={"companies", "profiles"})
    status = await get_database_status(probe)

    assert not status.tables_ready
    assert not status.users_exist
    assert not status.ready
    assert status.status == f"{len(REQUIRED_TABLES) - 2} tables missing"
    # users are only checked once every table exists
    assert probe.calls.count("probe:profiles") == 1


@pytest.mark.asyncio
async def test_status_tables_ready_without_users():
    probe = FakeBackend(relations=set(REQUIRED_TABLES))
    status = await get_database_status(probe)

    assert status.tables_ready
    assert not status.users_exist
    assert status.status == "Tables ready, no users yet"


@pytest.mark.asyncio
async def test_status_ready_with_users():
    probe = FakeBackend(relations=set(REQUIRED_TABLES))
    probe.profiles["u1"] = ProfileRecord(
        id="u1",
        email="admin@mail.com",
        full_name="Admin",
        role=ProfileRole.ADMIN,
        status=ProfileStatus.ACTIVE,
        company_id=None,
    )
    status = await get_database_status(probe)

    assert status.ready
    assert status.status == "Ready"
    assert status.total_tables_found == status.total_tables_required


@pytest.mark.asyncio
async def test_check_users_exist_false_on_error():
    probe = FakeBackend(relations=set())
    assert await check_users_exist(probe) is False
