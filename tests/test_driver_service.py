"""Driver access-layer operations against the local platform."""
from datetime import date, timedelta

import pytest

from fleetdesk.core.context import SessionContext
from fleetdesk.core.errors import ErrorKind
from fleetdesk.schemas.driver import DriverUpdate
from tests.fixtures import driver_payload

pytestmark = pytest.mark.asyncio

TODAY = date(2026, 3, 1)


class TestDriverCrud:

    async def test_create_defaults_company_to_tenant(self, services, admin_ctx):
        result = await services.drivers.create(admin_ctx, driver_payload())
        assert result.ok
        assert result.data.company_id == admin_ctx.tenant_id
        assert result.data.full_name == "Marcus Reyes"
        assert result.data.status == "active"

    async def test_create_rejects_invalid_payload_before_any_remote_call(self, services, admin_ctx, counting_tables):
        result = await services.drivers.create(admin_ctx, {"last_name": "Reyes", "license_class": "CDL-Z"})
        assert result.error.kind is ErrorKind.VALIDATION_ERROR
        assert counting_tables.calls == []

    async def test_get_by_id(self, services, admin_ctx, create_driver):
        driver = await create_driver()
        result = await services.drivers.get_by_id(admin_ctx, driver.id)
        assert result.data.id == driver.id

    async def test_get_by_id_unknown(self, services, admin_ctx):
        result = await services.drivers.get_by_id(admin_ctx, "does-not-exist")
        assert result.error.kind is ErrorKind.NOT_FOUND

    async def test_get_by_id_of_other_tenant_is_not_found(self, services, admin_ctx, other_ctx, create_driver):
        driver = await create_driver(other_ctx)
        result = await services.drivers.get_by_id(admin_ctx, driver.id)
        assert result.error.kind is ErrorKind.NOT_FOUND

    async def test_update_merges_only_set_fields(self, services, admin_ctx, create_driver):
        driver = await create_driver()
        result = await services.drivers.update(admin_ctx, driver.id, DriverUpdate(phone="555-0199"))
        assert result.data.phone == "555-0199"
        assert result.data.first_name == "Marcus"
        assert result.data.license_number == "D1234567"

    async def test_update_never_moves_company(self, services, admin_ctx, other_ctx, create_driver):
        driver = await create_driver()
        result = await services.drivers.update(
            admin_ctx, driver.id, {"company_id": other_ctx.tenant_id, "phone": "555-0142"}
        )
        assert result.ok
        assert result.data.company_id == admin_ctx.tenant_id

    async def test_empty_update_returns_current_row(self, services, admin_ctx, create_driver, counting_tables):
        driver = await create_driver()
        counting_tables.reset()
        result = await services.drivers.update(admin_ctx, driver.id, {})
        assert result.data.id == driver.id
        assert counting_tables.count("update") == 0

    async def test_update_unknown_id_is_not_found(self, services, admin_ctx):
        result = await services.drivers.update(admin_ctx, "does-not-exist", {"phone": "555-0000"})
        assert result.error.kind is ErrorKind.NOT_FOUND

    async def test_delete(self, services, admin_ctx, create_driver):
        driver = await create_driver()
        deleted = await services.drivers.delete(admin_ctx, driver.id)
        assert deleted.ok
        assert deleted.data is None
        assert (await services.drivers.get_by_id(admin_ctx, driver.id)).error.kind is ErrorKind.NOT_FOUND

    async def test_delete_removes_document_files(self, services, platform, admin_ctx, create_driver):
        driver = await create_driver()
        ticket = await services.documents.request_upload(admin_ctx, {
            "filename": "license.pdf",
            "content_type": "application/pdf",
            "driver_id": driver.id,
            "document_type": "license",
            "size": 8,
        })
        document = ticket.data.document
        await platform.storage.upload_to_signed_url(
            services.documents.bucket, document.file_path, ticket.data.token, b"%PDF-1.4"
        )
        stored_path = f"{platform.storage.root}/{services.documents.bucket}/{document.file_path}"
        assert platform.storage.fs.exists(stored_path)

        assert (await services.drivers.delete(admin_ctx, driver.id)).ok

        assert not platform.storage.fs.exists(stored_path)
        assert (await services.documents.get_by_id(admin_ctx, document.id)).error.kind is ErrorKind.NOT_FOUND

    async def test_delete_unknown_id_is_not_found(self, services, admin_ctx):
        result = await services.drivers.delete(admin_ctx, "does-not-exist")
        assert result.error.kind is ErrorKind.NOT_FOUND

    async def test_create_without_tenant_is_unauthorized(self, services, admin_ctx):
        ctx = SessionContext(access_token=admin_ctx.access_token, user_id=admin_ctx.user_id)
        result = await services.drivers.create(ctx, driver_payload())
        assert result.error.kind is ErrorKind.UNAUTHORIZED


class TestDriverQueries:

    async def test_get_all_filters_by_status(self, services, admin_ctx, create_driver):
        await create_driver()
        await create_driver(first_name="Ana", license_number="D7654321", status="on-leave")

        on_leave = await services.drivers.get_by_status(admin_ctx, "on-leave")
        assert [d.first_name for d in on_leave.data] == ["Ana"]

        everyone = await services.drivers.get_all(admin_ctx)
        assert {d.first_name for d in everyone.data} == {"Marcus", "Ana"}

    async def test_get_by_status_rejects_unknown_status(self, services, admin_ctx, counting_tables):
        result = await services.drivers.get_by_status(admin_ctx, "retired")
        assert result.error.kind is ErrorKind.VALIDATION_ERROR
        assert counting_tables.calls == []

    async def test_expiring_licenses_bound_is_exclusive(self, services, admin_ctx, create_driver):
        await create_driver(first_name="Expired", license_number="L1", license_expiry=(TODAY - timedelta(days=3)).isoformat())
        await create_driver(first_name="Soon", license_number="L2", license_expiry=(TODAY + timedelta(days=29)).isoformat())
        await create_driver(first_name="Boundary", license_number="L3", license_expiry=(TODAY + timedelta(days=30)).isoformat())
        await create_driver(first_name="Later", license_number="L4", license_expiry=(TODAY + timedelta(days=90)).isoformat())
        await create_driver(first_name="Unknown", license_number="L5", license_expiry=None)

        result = await services.drivers.get_with_expiring_licenses(admin_ctx, 30, today=TODAY)
        assert {d.first_name for d in result.data} == {"Expired", "Soon"}

    async def test_expiring_licenses_custom_threshold(self, services, admin_ctx, create_driver):
        await create_driver(first_name="Later", license_number="L4", license_expiry=(TODAY + timedelta(days=90)).isoformat())
        result = await services.drivers.get_with_expiring_licenses(admin_ctx, 91, today=TODAY)
        assert [d.first_name for d in result.data] == ["Later"]

    async def test_negative_threshold_is_rejected(self, services, admin_ctx):
        result = await services.drivers.get_with_expiring_licenses(admin_ctx, -1, today=TODAY)
        assert result.error.kind is ErrorKind.VALIDATION_ERROR
