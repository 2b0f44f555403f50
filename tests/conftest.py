"""Pytest fixtures for medplus."""

import pytest

from medplus.config import ServiceCredentials
from medplus.provisioning.saga import AdminProvisioningSaga, SagaDefaults
from tests.fakes import FakeBackend

CREDENTIALS = ServiceCredentials(url="https://example.supabase.co", service_role_key="service-key")


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def saga(backend: FakeBackend) -> AdminProvisioningSaga:
    return AdminProvisioningSaga(
        credentials=CREDENTIALS,
        tenants=backend,
        identities=backend,
        profiles=backend,
        permissions=backend,
        defaults=SagaDefaults(),
    )
