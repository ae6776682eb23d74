"""Local platform adapter: tenant row rules, error classification and signed storage."""
import logging
import threading

import pytest

from fleetdesk.core.errors import ErrorKind
from fleetdesk.core.security import create_access_token
from fleetdesk.platform.local import Rejected, TokenVerifier
from fleetdesk.platform.query import TableQuery
from tests.fixtures import TEST_SECRET_KEY, driver_payload

pytestmark = pytest.mark.asyncio


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


class TestTenantRowRules:

    async def test_reads_are_limited_to_own_company(self, platform, admin_ctx, other_ctx, create_driver):
        await create_driver()
        await create_driver(other_ctx, first_name="Priya", license_number="N0000001")

        mine = await platform.tables.select(admin_ctx.access_token, TableQuery("drivers"))
        theirs = await platform.tables.select(other_ctx.access_token, TableQuery("drivers"))

        assert [row["first_name"] for row in mine.data] == ["Marcus"]
        assert [row["first_name"] for row in theirs.data] == ["Priya"]

    async def test_insert_into_another_company_is_rejected(self, platform, admin_ctx, other_ctx):
        row = dict(driver_payload(), company_id=other_ctx.tenant_id)
        result = await platform.tables.insert(admin_ctx.access_token, "drivers", [row], single=True)
        assert result.error.kind is ErrorKind.UNAUTHORIZED
        assert result.error.code == "42501"

    async def test_update_of_foreign_row_matches_nothing(self, platform, admin_ctx, other_ctx, create_driver):
        driver = await create_driver(other_ctx)
        query = TableQuery("drivers").where(id=driver.id).one()
        result = await platform.tables.update(admin_ctx.access_token, query, {"status": "inactive"})
        assert result.error.kind is ErrorKind.NOT_FOUND
        assert result.error.code == "PGRST116"

    async def test_moving_a_row_to_another_company_is_rejected(self, platform, admin_ctx, other_ctx, create_driver):
        driver = await create_driver()
        query = TableQuery("drivers").where(id=driver.id).one()
        result = await platform.tables.update(admin_ctx.access_token, query, {"company_id": other_ctx.tenant_id})
        assert result.error.kind is ErrorKind.UNAUTHORIZED

    async def test_only_own_company_is_visible(self, platform, admin_ctx, other_ctx):
        rows = await platform.tables.select(admin_ctx.access_token, TableQuery("companies"))
        assert [row["id"] for row in rows.data] == [admin_ctx.tenant_id]

    async def test_companies_cannot_be_deleted(self, platform, admin_ctx):
        query = TableQuery("companies").where(id=admin_ctx.tenant_id).one()
        result = await platform.tables.delete(admin_ctx.access_token, query)
        assert result.error.kind is ErrorKind.UNAUTHORIZED

    async def test_member_cannot_create_a_second_company(self, platform, admin_ctx):
        result = await platform.tables.insert(admin_ctx.access_token, "companies", [{"name": "Shadow Co"}], single=True)
        assert result.error.kind is ErrorKind.UNAUTHORIZED

    async def test_missing_or_bad_token_is_unauthorized(self, platform, admin_ctx):
        missing = await platform.tables.select(None, TableQuery("drivers"))
        forged = await platform.tables.select("not-a-jwt", TableQuery("drivers"))
        assert missing.error.kind is ErrorKind.UNAUTHORIZED
        assert forged.error.kind is ErrorKind.UNAUTHORIZED


class TestErrorClassification:

    async def test_unknown_table(self, platform, admin_ctx):
        result = await platform.tables.select(admin_ctx.access_token, TableQuery("trailers"))
        assert result.error.kind is ErrorKind.NOT_FOUND
        assert result.error.code == "42P01"

    async def test_unknown_column(self, platform, admin_ctx):
        result = await platform.tables.select(admin_ctx.access_token, TableQuery("drivers").where(nickname="x"))
        assert result.error.kind is ErrorKind.VALIDATION_ERROR
        assert result.error.code == "42703"

    async def test_unique_violation_is_validation_error(self, platform, admin_ctx, create_driver):
        await create_driver()
        row = dict(driver_payload(), company_id=admin_ctx.tenant_id)
        result = await platform.tables.insert(admin_ctx.access_token, "drivers", [row], single=True)
        assert result.error.kind is ErrorKind.VALIDATION_ERROR

    async def test_check_constraint_is_validation_error(self, platform, admin_ctx):
        row = dict(driver_payload(), company_id=admin_ctx.tenant_id, status="retired")
        result = await platform.tables.insert(admin_ctx.access_token, "drivers", [row], single=True)
        assert result.error.kind is ErrorKind.VALIDATION_ERROR

    async def test_bad_date_is_validation_error(self, platform, admin_ctx):
        row = dict(driver_payload(), company_id=admin_ctx.tenant_id, license_expiry="31/12/2026")
        result = await platform.tables.insert(admin_ctx.access_token, "drivers", [row], single=True)
        assert result.error.kind is ErrorKind.VALIDATION_ERROR

    async def test_delete_of_missing_row_is_not_found(self, platform, admin_ctx):
        query = TableQuery("drivers").where(id="00000000-0000-0000-0000-000000000000").one()
        result = await platform.tables.delete(admin_ctx.access_token, query)
        assert result.error.kind is ErrorKind.NOT_FOUND


class TestLocalAuth:

    async def test_sign_in_with_wrong_password(self, platform, admin_ctx):
        result = await platform.auth.sign_in_with_password("dana@acmefleet.com", "wrong-password")
        assert result.error.kind is ErrorKind.UNAUTHORIZED
        assert result.error.code == "invalid_grant"

    async def test_sign_in_is_case_insensitive_on_email(self, platform, admin_ctx):
        result = await platform.auth.sign_in_with_password("Dana@AcmeFleet.com", "s3cret-pass")
        assert result.ok
        assert result.data.user.id == admin_ctx.user_id

    async def test_duplicate_sign_up(self, platform, admin_ctx):
        result = await platform.auth.sign_up("dana@acmefleet.com", "another-pass")
        assert result.error.kind is ErrorKind.VALIDATION_ERROR
        assert result.error.code == "user_already_exists"

    async def test_signed_out_token_is_revoked(self, platform, admin_ctx):
        assert (await platform.auth.sign_out(admin_ctx.access_token)).ok
        result = await platform.auth.get_user(admin_ctx.access_token)
        assert result.error.kind is ErrorKind.UNAUTHORIZED


class TestLocalStorage:

    async def test_signed_upload_then_download(self, platform, admin_ctx):
        storage = platform.storage
        ticket = await storage.create_signed_upload_url(admin_ctx.access_token, "driver-documents", "documents/d1/a.pdf")
        assert ticket.ok
        assert ticket.data.url.startswith("http://testserver/api/v1/storage/object/driver-documents/documents/d1/a.pdf?token=")

        stored = await storage.upload_to_signed_url("driver-documents", "documents/d1/a.pdf", ticket.data.token, b"%PDF-1.4")
        assert stored.data == {"Key": "driver-documents/documents/d1/a.pdf", "size": 8}

        url = await storage.create_signed_url(admin_ctx.access_token, "driver-documents", "documents/d1/a.pdf", 60)
        token = url.data.split("token=", 1)[1]
        content = await storage.read_signed("driver-documents", "documents/d1/a.pdf", token)
        assert content.data == b"%PDF-1.4"

    async def test_upload_token_cannot_be_reused_for_another_path(self, platform, admin_ctx):
        storage = platform.storage
        ticket = await storage.create_signed_upload_url(admin_ctx.access_token, "driver-documents", "documents/d1/a.pdf")
        result = await storage.upload_to_signed_url("driver-documents", "documents/d2/b.pdf", ticket.data.token, b"x")
        assert result.error.kind is ErrorKind.UNAUTHORIZED

    async def test_download_url_for_missing_object(self, platform, admin_ctx):
        result = await platform.storage.create_signed_url(admin_ctx.access_token, "driver-documents", "nope.pdf", 60)
        assert result.error.kind is ErrorKind.NOT_FOUND

    async def test_path_traversal_is_rejected(self, platform, admin_ctx):
        result = await platform.storage.create_signed_upload_url(admin_ctx.access_token, "driver-documents", "../escape.pdf")
        assert result.error.kind is ErrorKind.VALIDATION_ERROR

    async def test_remove_deletes_object(self, platform, admin_ctx):
        storage = platform.storage
        ticket = await storage.create_signed_upload_url(admin_ctx.access_token, "driver-documents", "documents/d1/a.pdf")
        await storage.upload_to_signed_url("driver-documents", "documents/d1/a.pdf", ticket.data.token, b"data")
        assert (await storage.remove(admin_ctx.access_token, "driver-documents", ["documents/d1/a.pdf"])).ok
        result = await storage.create_signed_url(admin_ctx.access_token, "driver-documents", "documents/d1/a.pdf", 60)
        assert result.error.kind is ErrorKind.NOT_FOUND

    async def test_upload_cannot_exceed_the_signed_size(self, platform, admin_ctx):
        storage = platform.storage
        ticket = await storage.create_signed_upload_url(
            admin_ctx.access_token, "driver-documents", "documents/d1/a.pdf", max_size=10
        )

        result = await storage.upload_to_signed_url("driver-documents", "documents/d1/a.pdf", ticket.data.token, b"x" * 11)

        assert result.error.kind is ErrorKind.VALIDATION_ERROR
        assert result.error.code == "EntityTooLarge"
        assert not storage.fs.exists(storage._object_path("driver-documents", "documents/d1/a.pdf"))

        exact = await storage.upload_to_signed_url("driver-documents", "documents/d1/a.pdf", ticket.data.token, b"x" * 10)
        assert exact.data["size"] == 10

    async def test_filesystem_calls_run_off_the_event_loop(self, platform, admin_ctx, monkeypatch):
        storage = platform.storage
        loop_thread = threading.get_ident()
        threads = []
        exists = storage.fs.exists

        def recording_exists(path, **kwargs):
            threads.append(threading.get_ident())
            return exists(path, **kwargs)

        monkeypatch.setattr(storage.fs, "exists", recording_exists)
        ticket = await storage.create_signed_upload_url(admin_ctx.access_token, "driver-documents", "documents/d1/a.pdf")
        await storage.upload_to_signed_url("driver-documents", "documents/d1/a.pdf", ticket.data.token, b"data")
        await storage.create_signed_url(admin_ctx.access_token, "driver-documents", "documents/d1/a.pdf", 60)
        await storage.remove(admin_ctx.access_token, "driver-documents", ["documents/d1/a.pdf"])

        assert threads
        assert loop_thread not in threads


class TestRecoveryTokens:

    @pytest.fixture
    def recovery_token(self, admin_ctx):
        return create_access_token(
            admin_ctx.user_id,
            "dana@acmefleet.com",
            custom_claims={"token_type": "recovery"},
            secret_key=TEST_SECRET_KEY,
        )

    async def test_recovery_token_cannot_read_tables(self, platform, recovery_token):
        result = await platform.tables.select(recovery_token, TableQuery("drivers"))
        assert result.error.kind is ErrorKind.UNAUTHORIZED

    async def test_recovery_token_is_not_a_session(self, platform, recovery_token):
        result = await platform.auth.get_user(recovery_token)
        assert result.error.kind is ErrorKind.UNAUTHORIZED

    async def test_recovery_token_cannot_sign_storage_urls(self, platform, recovery_token):
        result = await platform.storage.create_signed_upload_url(recovery_token, "driver-documents", "documents/d1/a.pdf")
        assert result.error.kind is ErrorKind.UNAUTHORIZED

    async def test_recovery_token_sets_a_new_password(self, platform, recovery_token):
        assert (await platform.auth.update_user(recovery_token, password="n3w-password")).ok
        assert (await platform.auth.sign_in_with_password("dana@acmefleet.com", "n3w-password")).ok

    async def test_recovery_link_goes_to_the_outbox_not_the_log(self, platform, admin_ctx, caplog):
        with caplog.at_level(logging.INFO):
            assert (await platform.auth.reset_password_for_email("dana@acmefleet.com")).ok

        link = platform.auth.outbox[-1]
        assert link.email == "dana@acmefleet.com"
        assert link.token not in caplog.text
        assert link.url.endswith(f"#access_token={link.token}&type=recovery")
        assert (await platform.auth.update_user(link.token, password="n3w-password")).ok


class TestRevokedSessions:

    async def test_revoked_token_is_forgotten_after_it_expires(self):
        clock = FakeClock(1_000.0)
        verifier = TokenVerifier(TEST_SECRET_KEY, timer=clock)

        verifier.revoke("token-a", expires_at=1_060.0)
        verifier.revoke("token-b", expires_at=2_000.0)
        assert verifier.is_revoked("token-a")
        assert verifier.revoked_count() == 2

        clock.now = 1_061.0
        assert not verifier.is_revoked("token-a")
        assert verifier.is_revoked("token-b")
        assert verifier.revoked_count() == 1

    async def test_revoked_live_token_is_rejected(self, admin_ctx):
        verifier = TokenVerifier(TEST_SECRET_KEY)
        claims = verifier.verify(admin_ctx.access_token)

        verifier.revoke(admin_ctx.access_token, claims["exp"])

        with pytest.raises(Rejected) as exc_info:
            verifier.verify(admin_ctx.access_token)
        assert exc_info.value.error.code == "session_not_found"


class TestSearch:

    async def test_wildcards_in_search_terms_match_literally(self, services, admin_ctx, create_vehicle):
        await create_vehicle(make="Ford", model="F-150", vin="1FTFW1E50NFA00001", license_plate="TRK-500")
        racer = await create_vehicle(make="Ford", model="F_1 Racer", vin="1FTFW1E50NFA00002", license_plate="TRK-501")

        underscore = await services.vehicles.get_vehicles(admin_ctx, search="F_1")
        percent = await services.vehicles.get_vehicles(admin_ctx, search="50%")

        assert [v.id for v in underscore.data.items] == [racer.id]
        assert percent.data.items == []
