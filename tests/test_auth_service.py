"""Sign-up, sign-in and session resolution."""
import pytest

from fleetdesk.core.errors import ErrorKind
from tests.fixtures import PASSWORD, signup_request

pytestmark = pytest.mark.asyncio


class TestSignUp:

    async def test_admin_sign_up_bootstraps_company(self, services):
        result = await services.auth.sign_up(signup_request("ops@redrockfreight.com", "Red Rock Freight", timezone="America/Phoenix"))
        assert result.ok
        profile = result.data.profile
        assert profile.role == "admin"
        assert profile.company_id is not None
        assert result.data.session.access_token

        ctx = (await services.auth.resolve_context(result.data.session.access_token)).data
        company = await services.companies.get_current(ctx)
        assert company.data.name == "Red Rock Freight"
        assert company.data.settings.timezone == "America/Phoenix"

    async def test_company_name_defaults_from_first_name(self, services):
        result = await services.auth.sign_up(signup_request("solo@redrockfreight.com", None))
        ctx = (await services.auth.resolve_context(result.data.session.access_token)).data
        company = await services.companies.get_current(ctx)
        assert company.data.name == "Dana's Company"

    async def test_dispatcher_joining_existing_company(self, services, admin_ctx):
        result = await services.auth.sign_up(
            signup_request("dispatch@acmefleet.com", None, role="dispatcher", company_id=admin_ctx.tenant_id)
        )
        assert result.data.profile.company_id == admin_ctx.tenant_id
        assert result.data.profile.role == "dispatcher"

    async def test_duplicate_email(self, services, admin_ctx):
        result = await services.auth.sign_up(signup_request("dana@acmefleet.com", "Acme Again"))
        assert result.error.kind is ErrorKind.VALIDATION_ERROR

    async def test_invalid_payload(self, services, counting_tables):
        result = await services.auth.sign_up({"email": "not-an-email", "password": "x"})
        assert result.error.kind is ErrorKind.VALIDATION_ERROR
        assert counting_tables.calls == []


class TestSessions:

    async def test_sign_in_loads_profile(self, services, admin_ctx):
        result = await services.auth.sign_in("dana@acmefleet.com", PASSWORD)
        assert result.data.user.id == admin_ctx.user_id
        assert result.data.profile.company_id == admin_ctx.tenant_id

    async def test_sign_in_with_bad_password(self, services, admin_ctx):
        result = await services.auth.sign_in("dana@acmefleet.com", "wrong-password")
        assert result.error.kind is ErrorKind.UNAUTHORIZED

    async def test_resolve_context(self, services, admin_ctx):
        assert admin_ctx.tenant_id
        assert admin_ctx.role == "admin"
        assert admin_ctx.email == "dana@acmefleet.com"
        assert admin_ctx.has_tenant

    async def test_resolve_context_without_token(self, services):
        result = await services.auth.resolve_context(None)
        assert result.error.kind is ErrorKind.UNAUTHORIZED

    async def test_sign_out_revokes_session(self, services, admin_ctx):
        assert (await services.auth.sign_out(admin_ctx)).ok
        result = await services.auth.get_current_user(admin_ctx)
        assert result.error.kind is ErrorKind.UNAUTHORIZED

    async def test_update_password(self, services, admin_ctx):
        assert (await services.auth.update_password(admin_ctx, "n3w-password")).ok
        assert (await services.auth.sign_in("dana@acmefleet.com", "n3w-password")).ok
        assert not (await services.auth.sign_in("dana@acmefleet.com", PASSWORD)).ok

    async def test_short_password_is_rejected(self, services, admin_ctx):
        result = await services.auth.update_password(admin_ctx, "123")
        assert result.error.kind is ErrorKind.VALIDATION_ERROR

    async def test_reset_password_for_unknown_email_succeeds(self, services):
        assert (await services.auth.reset_password("nobody@acmefleet.com")).ok
