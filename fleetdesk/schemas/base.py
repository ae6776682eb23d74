from typing import Any, Dict, Generic, List, Optional, TypeVar
from pydantic import BaseModel, ConfigDict
from datetime import datetime, timezone

# Generic type for data payload
DataType = TypeVar('DataType')

# Fields the platform assigns; never accepted from clients
SERVER_ASSIGNED_FIELDS = frozenset({"id", "created_at", "updated_at"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaginationMeta(BaseModel):
    total: int
    page: int
    per_page: int
    total_pages: int
    has_next: bool
    has_prev: bool


class Page(BaseModel, Generic[DataType]):
    """One page of rows plus the total row count reported by the platform."""
    items: List[DataType]
    total: int
    page: int
    per_page: int

    @property
    def meta(self) -> PaginationMeta:
        total_pages = (self.total + self.per_page - 1) // self.per_page if self.per_page else 0
        return PaginationMeta(
            total=self.total,
            page=self.page,
            per_page=self.per_page,
            total_pages=total_pages,
            has_next=self.page < total_pages,
            has_prev=self.page > 1,
        )


class RowModel(BaseModel):
    """Common base for rows read back from the platform."""
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


# Utility functions for creating consistent responses
def create_success_response(data: Any = None, message: str = "Success") -> Dict[str, Any]:
    """Create a success response with UTC timestamp"""
    return {
        "success": True,
        "message": message,
        "data": data,
        "timestamp": _utcnow().strftime("%Y-%m-%d %H:%M:%S")
    }


def create_error_response(message: str, error_code: Optional[str] = None, details: Optional[Any] = None) -> Dict[str, Any]:
    """Create an error response with UTC timestamp"""
    return {
        "success": False,
        "message": message,
        "error_code": error_code,
        "details": details,
        "timestamp": _utcnow().strftime("%Y-%m-%d %H:%M:%S")
    }


def create_paginated_response(
    items: List[Any],
    total: int,
    page: int,
    per_page: int,
    message: str = "Success"
) -> Dict[str, Any]:
    """Create a paginated response with UTC timestamp"""
    total_pages = (total + per_page - 1) // per_page if per_page else 0

    return {
        "success": True,
        "message": message,
        "data": items,
        "meta": {
            "total": total,
            "page": page,
            "per_page": per_page,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1
        },
        "timestamp": _utcnow().strftime("%Y-%m-%d %H:%M:%S")
    }
