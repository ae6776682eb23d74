from typing import Optional

from pydantic import ValidationError

from fleetdesk.config import settings
from fleetdesk.core.context import SessionContext
from fleetdesk.core.errors import ErrorKind, Result, ServiceError
from fleetdesk.core.logging_config import get_logger
from fleetdesk.models.profile import UserRoleEnum
from fleetdesk.platform.base import AuthGateway, TableGateway
from fleetdesk.platform.query import TableQuery
from fleetdesk.schemas.auth import AuthResult, SignUpRequest
from fleetdesk.schemas.company import CompanyCreate, CompanySettings
from fleetdesk.schemas.profile import ProfileResponse, ProfileUpsert
from fleetdesk.services.base import Payload, validation_failure
from fleetdesk.services.company_service import CompanyService

logger = get_logger(__name__)


class AuthService:
    """
    Sign-in, sign-up and session resolution.

    Every call returns a ``Result``, transport failures included.
    """

    def __init__(self, auth: AuthGateway, tables: TableGateway, companies: CompanyService):
        self.auth = auth
        self.tables = tables
        self.companies = companies

    async def _profile(self, access_token: str, user_id: str) -> Result:
        """The user's profile, or ``None`` when none exists yet."""
        query = TableQuery("profiles").where(user_id=user_id).one()
        result = await self.tables.select(access_token, query)
        if not result.ok:
            if result.error.kind is ErrorKind.NOT_FOUND:
                return Result.success(None)
            return result
        return Result.success(ProfileResponse.model_validate(result.data))

    async def sign_in(self, email: str, password: str) -> Result:
        session = await self.auth.sign_in_with_password(email, password)
        if not session.ok:
            logger.warning(f"[AuthSignIn] Sign-in failed for {email}: {session.error.message}")
            return session

        profile = await self._profile(session.data.access_token, session.data.user.id)
        if not profile.ok:
            # a missing profile does not block sign-in
            logger.error(f"[AuthSignIn] Could not load profile for {email}: {profile.error.message}")
        return Result.success(AuthResult(user=session.data.user, session=session.data, profile=profile.data))

    async def sign_up(self, request: Payload) -> Result:
        """
        Create the account and its profile.

        An admin signing up without a ``company_id`` bootstraps a new company with default
        settings and becomes its first member.
        """
        try:
            request = request if isinstance(request, SignUpRequest) else SignUpRequest.model_validate(request)
        except ValidationError as exc:
            return validation_failure(exc)

        metadata = {"email": request.email, "first_name": request.first_name, "last_name": request.last_name}
        session = await self.auth.sign_up(
            request.email, request.password, metadata, redirect_to=f"{settings.FRONTEND_URL}/auth/callback"
        )
        if not session.ok:
            logger.warning(f"[AuthSignUp] Sign-up failed for {request.email}: {session.error.message}")
            return session

        auth_session = session.data
        if not auth_session.access_token:
            logger.info(f"[AuthSignUp] {request.email} registered, awaiting email confirmation")
            return Result.success(AuthResult(user=auth_session.user, session=auth_session))

        ctx = SessionContext(access_token=auth_session.access_token, user_id=auth_session.user.id, email=request.email)
        company_id = request.company_id
        if request.role == UserRoleEnum.ADMIN.value and not company_id:
            company = await self.companies.create(
                ctx,
                CompanyCreate(
                    name=request.company_name or f"{request.first_name}'s Company",
                    settings=CompanySettings(timezone=request.timezone),
                ),
            )
            if not company.ok:
                return company
            company_id = company.data.id
            logger.info(f"[AuthSignUp] Created company {company_id} for {request.email}")

        profile = ProfileUpsert(
            user_id=auth_session.user.id,
            email=request.email,
            company_id=company_id,
            first_name=request.first_name,
            last_name=request.last_name,
            role=request.role,
        )
        upserted = await self.tables.upsert(
            ctx.access_token, "profiles", [profile.model_dump()], on_conflict="user_id", single=True
        )
        if not upserted.ok:
            logger.error(f"[AuthSignUp] Profile upsert failed for {request.email}: {upserted.error.message}")
            return upserted

        return Result.success(
            AuthResult(
                user=auth_session.user,
                session=auth_session,
                profile=ProfileResponse.model_validate(upserted.data),
            )
        )

    async def sign_out(self, ctx: SessionContext) -> Result:
        if not ctx.access_token:
            return Result.failure(ServiceError.unauthorized("Not signed in"))
        return await self.auth.sign_out(ctx.access_token)

    async def get_current_user(self, ctx: SessionContext) -> Result:
        if not ctx.access_token:
            return Result.failure(ServiceError.unauthorized("Not signed in"))
        user = await self.auth.get_user(ctx.access_token)
        if not user.ok:
            return user
        profile = await self._profile(ctx.access_token, user.data.id)
        if not profile.ok:
            return profile
        return Result.success(AuthResult(user=user.data, profile=profile.data))

    async def resolve_context(self, access_token: Optional[str]) -> Result:
        """Build the ``SessionContext`` (user, tenant, role) a bearer token stands for."""
        if not access_token:
            return Result.failure(ServiceError.unauthorized("Missing access token"))
        current = await self.get_current_user(SessionContext(access_token=access_token))
        if not current.ok:
            return current

        profile = current.data.profile
        return Result.success(
            SessionContext(
                access_token=access_token,
                user_id=current.data.user.id,
                tenant_id=profile.company_id if profile else None,
                role=profile.role if profile else None,
                email=current.data.user.email,
            )
        )

    async def reset_password(self, email: str) -> Result:
        return await self.auth.reset_password_for_email(email, redirect_to=f"{settings.FRONTEND_URL}/reset-password")

    async def update_password(self, ctx: SessionContext, password: str) -> Result:
        if len(password or "") < 6:
            return Result.failure(ServiceError.validation("Password should be at least 6 characters"))
        if not ctx.access_token:
            return Result.failure(ServiceError.unauthorized("Not signed in"))
        return await self.auth.update_user(ctx.access_token, password=password)
