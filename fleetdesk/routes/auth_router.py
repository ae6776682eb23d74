from fastapi import APIRouter, Depends, HTTPException, status

from fleetdesk.core.context import SessionContext
from fleetdesk.core.logging_config import get_logger
from fleetdesk.routes.deps import get_bearer_token, get_services, get_session_context
from fleetdesk.schemas.auth import PasswordResetRequest, PasswordUpdateRequest, SignInRequest, SignUpRequest
from fleetdesk.services import Services
from fleetdesk.utils.response_utils import ResponseWrapper, handle_http_error, unwrap_or_raise

logger = get_logger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"]
)


@router.post("/signin", response_model=dict, status_code=status.HTTP_200_OK)
async def sign_in(payload: SignInRequest, services: Services = Depends(get_services)):
    """Exchange email and password for a session."""
    try:
        result = unwrap_or_raise(await services.auth.sign_in(payload.email, payload.password))
        logger.info(f"User {payload.email} signed in")
        return ResponseWrapper.success(data=result, message="Signed in successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error during sign-in: {e}")
        raise handle_http_error(e)


@router.post("/signup", response_model=dict, status_code=status.HTTP_201_CREATED)
async def sign_up(payload: SignUpRequest, services: Services = Depends(get_services)):
    """
    Register a new account.

    An admin without a ``company_id`` gets a new company created with default settings.
    """
    try:
        result = unwrap_or_raise(await services.auth.sign_up(payload))
        logger.info(f"User {payload.email} signed up")
        return ResponseWrapper.created(data=result, message="Account created successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error during sign-up: {e}")
        raise handle_http_error(e)


@router.post("/signout", response_model=dict, status_code=status.HTTP_200_OK)
async def sign_out(
    ctx: SessionContext = Depends(get_session_context),
    services: Services = Depends(get_services),
):
    try:
        unwrap_or_raise(await services.auth.sign_out(ctx))
        return ResponseWrapper.success(message="Signed out successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error during sign-out: {e}")
        raise handle_http_error(e)


@router.get("/me", response_model=dict, status_code=status.HTTP_200_OK)
async def get_me(
    ctx: SessionContext = Depends(get_session_context),
    services: Services = Depends(get_services),
):
    try:
        result = unwrap_or_raise(await services.auth.get_current_user(ctx))
        return ResponseWrapper.success(data=result, message="Current user fetched successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error fetching current user: {e}")
        raise handle_http_error(e)


@router.post("/reset-password", response_model=dict, status_code=status.HTTP_200_OK)
async def reset_password(payload: PasswordResetRequest, services: Services = Depends(get_services)):
    try:
        unwrap_or_raise(await services.auth.reset_password(payload.email))
        return ResponseWrapper.success(message="If the account exists, a reset link has been sent")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error requesting password reset: {e}")
        raise handle_http_error(e)


@router.put("/password", response_model=dict, status_code=status.HTTP_200_OK)
async def update_password(
    payload: PasswordUpdateRequest,
    token: str = Depends(get_bearer_token),
    services: Services = Depends(get_services),
):
    """Set a new password with a session token or the token from a recovery link."""
    try:
        user = unwrap_or_raise(await services.auth.update_password(SessionContext(access_token=token), payload.password))
        return ResponseWrapper.updated(data=user, message="Password updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error updating password: {e}")
        raise handle_http_error(e)
