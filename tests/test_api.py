"""HTTP tests against the FastAPI app with in-memory backend overrides."""

import pytest
from httpx import ASGITransport, AsyncClient

from medplus.api.deps import (
    get_admin_saga,
    get_identity_provider,
    get_permission_store,
    get_profile_store,
    get_relation_probe,
    get_settings,
    get_tenant_store,
)
from medplus.backend.records import CompanyRecord
from medplus.config import Settings
from medplus.diagnostics.tables import REQUIRED_TABLES
from medplus.main import app
from medplus.provisioning.saga import AdminProvisioningSaga
from tests.fakes import FakeBackend

SERVICE_KEY = "test-service-key"
AUTH = {"Authorization": f"Bearer {SERVICE_KEY}"}


def _settings(**overrides) -> Settings:
    values = {
        "supabase_url": "https://example.supabase.co",
        "supabase_service_role_key": SERVICE_KEY,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend(relations=set(REQUIRED_TABLES))


@pytest.fixture
async def client(backend):
    cfg = _settings()
    app.dependency_overrides.update(
        {
            get_settings: lambda: cfg,
            get_tenant_store: lambda: backend,
            get_profile_store: lambda: backend,
            get_permission_store: lambda: backend,
            get_identity_provider: lambda: backend,
            get_relation_probe: lambda: backend,
            get_admin_saga: lambda: AdminProvisioningSaga(
                cfg.get_credentials(), backend, backend, backend, backend
            ),
        }
    )
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_admin_endpoints_require_bearer(client):
    resp = await client.get("/v1/admin/setup-status")
    assert resp.status_code == 401

    resp = await client.get("/v1/admin/setup-status", headers={"Authorization": "Bearer wrong"})
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_missing_service_key_is_a_configuration_error(client):
    app.dependency_overrides[get_settings] = lambda: _settings(supabase_service_role_key=None)
    resp = await client.get("/v1/admin/setup-status", headers=AUTH)
    assert resp.status_code == 503


@pytest.mark.asyncio
async def test_setup_status(client, backend):
    backend.relations.discard("lpos")
    resp = await client.get("/v1/admin/setup-status", headers=AUTH)

    assert resp.status_code == 200
    body = resp.json()
    assert body["tables_ready"] is False
    assert body["status"] == "1 tables missing"
    assert body["missing_tables"] == [
        {"table_name": "lpos", "exists": False, "error": 'Table "lpos" does not exist'}
    ]


@pytest.mark.asyncio
async def test_bootstrap_then_verify(client, backend):
    payload = {"email": "admin@mail.com", "password": "Admin.12", "full_name": "System Admin"}
    resp = await client.post("/v1/admin/bootstrap", json=payload, headers=AUTH)

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["state"] == "permissions_assigned"
    assert body["outcome"] == "created"
    assert body["progress"][0] == "Checking for default company..."

    resp = await client.get("/v1/admin/verify", params={"email": "admin@mail.com"}, headers=AUTH)
    assert resp.status_code == 200
    assert resp.json()["ok"] is True
    assert resp.json()["user_id"] == body["user_id"]

    again = await client.post("/v1/admin/bootstrap", json=payload, headers=AUTH)
    assert again.json()["outcome"] == "promoted"
    assert len(backend.identities) == 1


@pytest.mark.asyncio
async def test_bootstrap_rejects_short_password(client, backend):
    payload = {"email": "admin@mail.com", "password": "short"}
    resp = await client.post("/v1/admin/bootstrap", json=payload, headers=AUTH)

    assert resp.status_code == 422
    assert resp.json()["detail"] == "Password must be at least 8 characters"
    assert backend.calls == []


@pytest.mark.asyncio
async def test_bootstrap_failure_is_bad_gateway(client, backend):
    from medplus.backend.errors import BackendError, BackendErrorKind

    backend.fail_on["upsert_profile"] = BackendError(BackendErrorKind.OTHER, "boom")
    payload = {"email": "admin@mail.com", "password": "Admin.12"}
    resp = await client.post("/v1/admin/bootstrap", json=payload, headers=AUTH)

    assert resp.status_code == 502
    detail = resp.json()["detail"]
    assert detail["state"] == "failed"
    assert detail["compensation"] == "succeeded"
    assert backend.identities == {}


@pytest.mark.asyncio
async def test_public_company_and_branding(client, backend):
    resp = await client.get("/v1/company/public")
    assert resp.status_code == 404

    resp = await client.get("/v1/company/branding")
    assert resp.json()["primary_color"] == "#FF8C42"

    backend.companies.append(
        CompanyRecord(id="c1", name="Acme Pharma", primary_color="#1E40AF")
    )
    resp = await client.get("/v1/company/public")
    assert resp.json() == {
        "id": "c1",
        "name": "Acme Pharma",
        "logo_url": None,
        "primary_color": "#1E40AF",
    }

    resp = await client.get("/v1/company/branding")
    body = resp.json()
    assert body["contrast_color"] == "#ffffff"
    assert body["rgb_array"] == [30, 64, 175]
    assert body["css_variables"]["--primary"] == "226 71% 40%"
