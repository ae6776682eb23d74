"""
Pytest configuration and fixtures for testing.

Every test gets its own local platform: a SQLite file and an fsspec storage root under
``tmp_path``. Tenants are created the way real ones are, by an admin signing up.
"""
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from fleetdesk.binding import QueryClient
from fleetdesk.main import create_app
from fleetdesk.platform.base import Platform
from fleetdesk.platform.local import build_local_platform
from fleetdesk.services import Services
from tests.fixtures import (
    PUBLIC_URL,
    TEST_SECRET_KEY,
    CountingTables,
    driver_payload,
    signup_headers,
    signup_request,
    vehicle_payload,
)


# ==========================================
# Platform and services
# ==========================================

@pytest.fixture(scope="function")
def platform(tmp_path):
    """Local platform backed by a fresh SQLite file and storage directory."""
    platform = build_local_platform(
        f"sqlite:///{tmp_path / 'fleetdesk.db'}",
        storage_url=f"file://{tmp_path / 'storage'}",
        public_url=PUBLIC_URL,
        secret_key=TEST_SECRET_KEY,
    )
    yield platform
    platform.tables.database.dispose()


@pytest.fixture(scope="function")
def counting_tables(platform):
    return CountingTables(platform.tables)


@pytest.fixture(scope="function")
def services(platform, counting_tables):
    return Services(Platform(tables=counting_tables, auth=platform.auth, storage=platform.storage))


@pytest.fixture(scope="function")
def query_client():
    return QueryClient(maxsize=256, ttl=300)


async def register(services: Services, email: str, company_name: str, **overrides):
    """Sign up an admin (creating their company) and resolve their session context."""
    signed_up = await services.auth.sign_up(signup_request(email, company_name, **overrides))
    assert signed_up.ok, signed_up.error
    ctx = await services.auth.resolve_context(signed_up.data.session.access_token)
    assert ctx.ok, ctx.error
    return ctx.data


@pytest_asyncio.fixture
async def admin_ctx(services, counting_tables):
    ctx = await register(services, "dana@acmefleet.com", "Acme Fleet")
    counting_tables.reset()
    return ctx


@pytest_asyncio.fixture
async def other_ctx(services, counting_tables):
    ctx = await register(services, "lee@northwindhaulage.com", "Northwind Haulage")
    counting_tables.reset()
    return ctx


@pytest_asyncio.fixture
async def create_driver(services, admin_ctx):
    async def _create(ctx=None, **overrides):
        result = await services.drivers.create(ctx or admin_ctx, driver_payload(**overrides))
        assert result.ok, result.error
        return result.data

    return _create


@pytest_asyncio.fixture
async def create_vehicle(services, admin_ctx):
    async def _create(ctx=None, **overrides):
        result = await services.vehicles.create(ctx or admin_ctx, vehicle_payload(**overrides))
        assert result.ok, result.error
        return result.data

    return _create


# ==========================================
# API client
# ==========================================

@pytest.fixture(scope="function")
def client(platform):
    """
    Create a test client around the local platform.
    """
    app = create_app(platform=platform, query_client=QueryClient(maxsize=256, ttl=300))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(scope="function")
def admin_headers(client):
    return signup_headers(client, "dana@acmefleet.com", "Acme Fleet")


@pytest.fixture(scope="function")
def other_headers(client):
    return signup_headers(client, "lee@northwindhaulage.com", "Northwind Haulage")
