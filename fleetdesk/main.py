from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fleetdesk.binding import QueryClient
from fleetdesk.config import settings
from fleetdesk.core.logging_config import get_logger, setup_logging
from fleetdesk.platform import build_platform
from fleetdesk.platform.base import Platform
from fleetdesk.routes import (
    assignment_router,
    auth_router,
    company_router,
    document_router,
    driver_router,
    storage_router,
    vehicle_router,
)
from fleetdesk.services import Services
from fleetdesk.utils.error_messages import first_error_message
from fleetdesk.utils.response_utils import ResponseWrapper

logger = get_logger(__name__)


def create_app(platform: Optional[Platform] = None, query_client: Optional[QueryClient] = None) -> FastAPI:
    """
    Build the API around a platform adapter.

    When no platform is passed one is built from settings, and closed again on shutdown.
    """
    setup_logging(log_level=settings.LOG_LEVEL)
    owns_platform = platform is None
    platform = platform or build_platform()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"{settings.APP_NAME} starting up (env={settings.ENV}, platform={settings.PLATFORM_MODE})")
        yield
        if owns_platform:
            await platform.aclose()
        logger.info(f"{settings.APP_NAME} shutting down")

    app = FastAPI(
        title=f"{settings.APP_NAME} API",
        description="Drivers, vehicles, documents and company settings for fleet operators",
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )
    app.state.platform = platform
    app.state.services = Services(platform)
    app.state.query_client = query_client or QueryClient()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for router in (
        auth_router,
        company_router,
        driver_router,
        vehicle_router,
        assignment_router,
        document_router,
        storage_router,
    ):
        app.include_router(router, prefix=settings.API_PREFIX)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        logger.warning(f"Request validation failed on {request.url.path}: {errors}")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "detail": ResponseWrapper.error(
                    message=first_error_message(errors, "Invalid request"),
                    error_code="VALIDATION_ERROR",
                    details=errors,
                )
            },
        )

    @app.get("/health")
    async def health_check():
        return {"message": "I Am Alive!!", "platform": settings.PLATFORM_MODE}

    return app


if __name__ == "__main__":
    uvicorn.run("fleetdesk.main:create_app", factory=True, host="0.0.0.0", port=8000, reload=True)
