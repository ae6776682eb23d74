"""
Error taxonomy and the tagged result type shared by every layer.

Access-layer calls, platform adapters and binding-layer mutations all hand back a
``Result``: either ``Result.success(data)`` or ``Result.failure(ServiceError)``.
Expected remote failures are values, never exceptions. ``Result.unwrap()`` is the one
place where a failure turns into a raised ``ServiceError``.
"""
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    NETWORK_ERROR = "networkError"
    NOT_FOUND = "notFound"
    VALIDATION_ERROR = "validationError"
    UNAUTHORIZED = "unauthorized"
    UNKNOWN = "unknown"


_DEFAULT_STATUS = {
    ErrorKind.NETWORK_ERROR: 502,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.VALIDATION_ERROR: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.UNKNOWN: 500,
}


class ServiceError(Exception):
    """A classified failure reported by the platform or raised by local validation."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        code: Optional[str] = None,
        details: Any = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.kind = ErrorKind(kind)
        self.message = message
        self.code = code
        self.details = details
        self.status_code = status_code or _DEFAULT_STATUS[self.kind]

    @classmethod
    def network(cls, message: str, **kwargs) -> "ServiceError":
        return cls(ErrorKind.NETWORK_ERROR, message, **kwargs)

    @classmethod
    def not_found(cls, message: str, **kwargs) -> "ServiceError":
        return cls(ErrorKind.NOT_FOUND, message, **kwargs)

    @classmethod
    def validation(cls, message: str, **kwargs) -> "ServiceError":
        return cls(ErrorKind.VALIDATION_ERROR, message, **kwargs)

    @classmethod
    def unauthorized(cls, message: str, **kwargs) -> "ServiceError":
        return cls(ErrorKind.UNAUTHORIZED, message, **kwargs)

    @classmethod
    def unknown(cls, message: str, **kwargs) -> "ServiceError":
        return cls(ErrorKind.UNKNOWN, message, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"ServiceError(kind={self.kind.value!r}, message={self.message!r}, code={self.code!r})"


class Result(Generic[T]):
    """Tagged success/failure value: ``data`` is ``None`` whenever ``error`` is set."""

    __slots__ = ("data", "error", "count")

    def __init__(self, data: Optional[T] = None, error: Optional[ServiceError] = None, count: Optional[int] = None):
        if error is not None and data is not None:
            raise ValueError("A failed Result cannot carry data")
        self.data = data
        self.error = error
        self.count = count

    @classmethod
    def success(cls, data: Optional[T] = None, count: Optional[int] = None) -> "Result[T]":
        return cls(data=data, count=count)

    @classmethod
    def failure(cls, error: ServiceError) -> "Result[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.data

    def map(self, fn) -> "Result":
        """Apply ``fn`` to the data of a successful result; failures pass through untouched."""
        if self.error is not None:
            return self
        return Result.success(fn(self.data), count=self.count)

    def __repr__(self) -> str:
        if self.error is not None:
            return f"Result.failure({self.error!r})"
        return f"Result.success({self.data!r})"
