from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, Any, Dict
from datetime import datetime, date
from enum import Enum

from fleetdesk.models.document import DocumentTypeEnum, DocumentStatusEnum
from fleetdesk.schemas.base import RowModel


class DocumentValidity(str, Enum):
    VALID = "valid"
    EXPIRING_SOON = "expiring_soon"
    EXPIRED = "expired"


class DocumentUploadRequest(BaseModel):
    filename: str = Field(..., min_length=1)
    content_type: str = Field(..., min_length=1)
    driver_id: str = Field(..., min_length=1)
    document_type: DocumentTypeEnum
    size: int = Field(..., ge=1)
    expiry_date: Optional[date] = None

    model_config = ConfigDict(use_enum_values=True)

    @field_validator("filename")
    @classmethod
    def filename_has_extension(cls, value: str) -> str:
        if "." not in value.strip("."):
            raise ValueError("filename must include an extension")
        return value


class DocumentCreate(BaseModel):
    driver_id: str
    document_type: DocumentTypeEnum
    file_name: str
    file_path: str
    file_type: Optional[str] = None
    file_size: Optional[int] = Field(None, ge=0)
    status: DocumentStatusEnum = DocumentStatusEnum.PENDING
    expiry_date: Optional[date] = None
    uploaded_by: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    company_id: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True)


class DocumentUpdate(BaseModel):
    status: Optional[DocumentStatusEnum] = None
    review_notes: Optional[str] = None
    expiry_date: Optional[date] = None

    model_config = ConfigDict(use_enum_values=True)


class DocumentReview(BaseModel):
    status: DocumentStatusEnum
    notes: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True)


class DocumentResponse(RowModel):
    company_id: str
    driver_id: str
    document_type: DocumentTypeEnum
    file_name: str
    file_path: str
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    status: DocumentStatusEnum
    expiry_date: Optional[date] = None
    review_notes: Optional[str] = None
    uploaded_by: Optional[str] = None
    uploaded_at: Optional[datetime] = None


class SignedUpload(BaseModel):
    """Direct-transfer target handed out by the storage interface."""
    path: str
    url: str
    token: Optional[str] = None


class DocumentUploadTicket(BaseModel):
    document: DocumentResponse
    upload_url: str
    token: Optional[str] = None


class DocumentDownload(BaseModel):
    id: str
    driver_id: str
    name: str
    type: DocumentTypeEnum
    url: str
    status: DocumentStatusEnum
    validity: DocumentValidity
    uploaded_at: Optional[datetime] = None
    expiry_date: Optional[date] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(use_enum_values=True)
