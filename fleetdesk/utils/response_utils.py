from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from fastapi.encoders import jsonable_encoder

from fleetdesk.core.errors import ErrorKind, Result, ServiceError
from fleetdesk.core.logging_config import get_logger
from fleetdesk.schemas.base import (
    create_success_response,
    create_error_response,
    create_paginated_response
)
from fleetdesk.utils.error_messages import first_error_message

logger = get_logger(__name__)

HTTP_STATUS = {
    ErrorKind.NETWORK_ERROR: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.UNKNOWN: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

ERROR_CODES = {
    ErrorKind.NETWORK_ERROR: "NETWORK_ERROR",
    ErrorKind.NOT_FOUND: "NOT_FOUND",
    ErrorKind.VALIDATION_ERROR: "VALIDATION_ERROR",
    ErrorKind.UNAUTHORIZED: "UNAUTHORIZED",
    ErrorKind.UNKNOWN: "INTERNAL_SERVER_ERROR",
}


class ResponseWrapper:
    """Utility class for wrapping responses in standard format"""

    @staticmethod
    def success(data: Any = None, message: str = "Success") -> Dict[str, Any]:
        return create_success_response(jsonable_encoder(data), message)

    @staticmethod
    def error(
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Any] = None
    ) -> Dict[str, Any]:
        """Wrap error response and make it JSON-safe"""
        raw = create_error_response(message, error_code, details)
        return jsonable_encoder(raw)

    @staticmethod
    def paginated(
        items: List[Any],
        total: int,
        page: int = 1,
        per_page: int = 10,
        message: str = "Success"
    ) -> Dict[str, Any]:
        return create_paginated_response(jsonable_encoder(items), total, page, per_page, message)

    @staticmethod
    def created(data: Any = None, message: str = "Resource created successfully") -> Dict[str, Any]:
        return create_success_response(jsonable_encoder(data), message)

    @staticmethod
    def updated(data: Any = None, message: str = "Resource updated successfully") -> Dict[str, Any]:
        return create_success_response(jsonable_encoder(data), message)

    @staticmethod
    def deleted(message: str = "Resource deleted successfully") -> Dict[str, Any]:
        return create_success_response(None, message)


def handle_service_error(error: ServiceError) -> HTTPException:
    """Convert a service error into an HTTP exception carrying the error envelope"""
    if error.kind is ErrorKind.UNKNOWN or error.kind is ErrorKind.NETWORK_ERROR:
        logger.error(f"Service failure ({error.kind.value}): {error.message}")

    status_code = HTTP_STATUS[error.kind]
    if error.kind is ErrorKind.UNAUTHORIZED and error.status_code == status.HTTP_403_FORBIDDEN:
        status_code = status.HTTP_403_FORBIDDEN

    detail = ResponseWrapper.error(
        message=first_error_message(error),
        error_code=ERROR_CODES[error.kind],
        details={"kind": error.kind.value, "code": error.code, "details": error.details},
    )
    return HTTPException(status_code=status_code, detail=detail)


def unwrap_or_raise(result: Result) -> Any:
    """Data of a successful result; raises the mapped HTTPException otherwise"""
    if not result.ok:
        raise handle_service_error(result.error)
    return result.data


def handle_http_error(error: Exception) -> HTTPException:
    """Convert HTTP and generic exceptions into structured ResponseWrapper format"""
    if isinstance(error, HTTPException):
        detail = getattr(error, "detail", str(error))
        if isinstance(detail, dict) and detail.get("success") is not None:
            return error

        detail = ResponseWrapper.error(
            message=str(detail),
            error_code="HTTP_ERROR",
            details={"original_error": detail},
        )
        return HTTPException(status_code=error.status_code, detail=detail)

    logger.exception(f"Unexpected HTTP error: {error}")
    detail = ResponseWrapper.error(
        message="Unexpected server error",
        error_code="INTERNAL_SERVER_ERROR",
        details={"original_error": str(error)},
    )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
