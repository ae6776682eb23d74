from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from fleetdesk.binding import (
    AssignmentBinding,
    CompanyBinding,
    DocumentBinding,
    DriverBinding,
    QueryClient,
    VehicleBinding,
)
from fleetdesk.core.context import SessionContext
from fleetdesk.platform.base import Platform
from fleetdesk.services import Services
from fleetdesk.utils.response_utils import ResponseWrapper, unwrap_or_raise

# Create a security instance
security = HTTPBearer(auto_error=False)


def get_platform(request: Request) -> Platform:
    return request.app.state.platform


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_query_client(request: Request) -> QueryClient:
    return request.app.state.query_client


def get_bearer_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> str:
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=ResponseWrapper.error("Unauthorized: Must be authenticated", "UNAUTHORIZED"),
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


async def get_session_context(
    token: str = Depends(get_bearer_token),
    services: Services = Depends(get_services),
) -> SessionContext:
    """Resolve the bearer token to the caller's user, tenant and role."""
    return unwrap_or_raise(await services.auth.resolve_context(token))


def get_driver_binding(
    ctx: SessionContext = Depends(get_session_context),
    services: Services = Depends(get_services),
    client: QueryClient = Depends(get_query_client),
) -> DriverBinding:
    return DriverBinding(services.drivers, client, ctx)


def get_vehicle_binding(
    ctx: SessionContext = Depends(get_session_context),
    services: Services = Depends(get_services),
    client: QueryClient = Depends(get_query_client),
) -> VehicleBinding:
    return VehicleBinding(services.vehicles, client, ctx)


def get_company_binding(
    ctx: SessionContext = Depends(get_session_context),
    services: Services = Depends(get_services),
    client: QueryClient = Depends(get_query_client),
) -> CompanyBinding:
    return CompanyBinding(services.companies, client, ctx)


def get_document_binding(
    ctx: SessionContext = Depends(get_session_context),
    services: Services = Depends(get_services),
    client: QueryClient = Depends(get_query_client),
) -> DocumentBinding:
    return DocumentBinding(services.documents, client, ctx)


def get_assignment_binding(
    ctx: SessionContext = Depends(get_session_context),
    services: Services = Depends(get_services),
    client: QueryClient = Depends(get_query_client),
) -> AssignmentBinding:
    return AssignmentBinding(services.assignments, client, ctx)


def require_found(data, resource: str):
    """Raise 404 when a binding returned nothing (unknown id or no tenant yet)."""
    if data is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=ResponseWrapper.error(f"{resource} not found", "NOT_FOUND"),
        )
    return data
