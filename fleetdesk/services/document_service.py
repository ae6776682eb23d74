import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional

from pydantic import ValidationError

from fleetdesk.config import settings
from fleetdesk.core.context import SessionContext
from fleetdesk.core.errors import ErrorKind, Result, ServiceError
from fleetdesk.core.logging_config import get_logger
from fleetdesk.models.document import DocumentStatusEnum
from fleetdesk.models.driver import DriverStatusEnum
from fleetdesk.platform.base import StorageGateway, TableGateway
from fleetdesk.platform.query import lt, neq
from fleetdesk.schemas.document import (
    DocumentCreate,
    DocumentDownload,
    DocumentResponse,
    DocumentUpdate,
    DocumentUploadRequest,
    DocumentUploadTicket,
    DocumentValidity,
)
from fleetdesk.services.base import BaseService, Payload, validation_failure

logger = get_logger(__name__)

REVIEW_OUTCOMES = {DocumentStatusEnum.APPROVED.value, DocumentStatusEnum.REJECTED.value}


def document_validity(document: DocumentResponse, today: date, warning_days: int) -> DocumentValidity:
    if document.status == DocumentStatusEnum.EXPIRED.value:
        return DocumentValidity.EXPIRED
    if document.expiry_date is not None:
        if document.expiry_date < today:
            return DocumentValidity.EXPIRED
        if document.expiry_date < today + timedelta(days=warning_days):
            return DocumentValidity.EXPIRING_SOON
    return DocumentValidity.VALID


class DocumentService(BaseService[DocumentCreate, DocumentUpdate, DocumentResponse]):
    """
    Driver documents: a row in ``documents`` plus the file in the document bucket.

    Uploads are two-step. ``request_upload`` validates the file, stores a ``pending`` row and
    hands back a signed target; the client then transfers the content to that target directly.
    """
    table = "documents"
    create_schema = DocumentCreate
    update_schema = DocumentUpdate
    response_schema = DocumentResponse

    def __init__(
        self,
        tables: TableGateway,
        storage: StorageGateway,
        *,
        bucket: Optional[str] = None,
        max_size_mb: Optional[int] = None,
        allowed_types: Optional[Iterable[str]] = None,
        signed_url_expiry: Optional[int] = None,
        warning_days: Optional[int] = None,
    ):
        super().__init__(tables)
        self.storage = storage
        self.bucket = bucket or settings.DOCUMENT_BUCKET
        self.max_size_bytes = (max_size_mb or settings.MAX_DOCUMENT_SIZE_MB) * 1024 * 1024
        self.allowed_types = set(allowed_types or settings.ALLOWED_DOCUMENT_TYPES)
        self.signed_url_expiry = signed_url_expiry or settings.SIGNED_URL_EXPIRY_SECONDS
        self.warning_days = warning_days if warning_days is not None else settings.DOCUMENT_EXPIRY_WARNING_DAYS

    async def _active_driver(self, ctx: SessionContext, driver_id: str, action: str) -> Result:
        """The driver row, provided it exists in the tenant and is active."""
        query = self.query(ctx, "drivers").where(id=driver_id).one()
        driver = await self.tables.select(ctx.access_token, query)
        if not driver.ok:
            if driver.error.kind is ErrorKind.NOT_FOUND:
                return Result.failure(ServiceError.not_found("Driver not found"))
            return self.finish(action, driver)
        if driver.data.get("status") != DriverStatusEnum.ACTIVE.value:
            return Result.failure(
                ServiceError.unauthorized(f"Cannot {action} documents for inactive drivers", status_code=403)
            )
        return driver

    async def list_for_driver(self, ctx: SessionContext, driver_id: str) -> Result:
        return await self.get_all(ctx, {"driver_id": driver_id})

    async def request_upload(self, ctx: SessionContext, request: Payload) -> Result:
        try:
            request = request if isinstance(request, DocumentUploadRequest) else DocumentUploadRequest.model_validate(request)
        except ValidationError as exc:
            return validation_failure(exc)

        if request.content_type not in self.allowed_types:
            return Result.failure(
                ServiceError.validation(
                    f"Invalid file type: {request.content_type}",
                    details={"allowed_types": sorted(self.allowed_types)},
                )
            )
        if request.size > self.max_size_bytes:
            return Result.failure(
                ServiceError.validation(
                    "File size exceeds maximum allowed size",
                    details={"max_size": self.max_size_bytes, "actual_size": request.size},
                )
            )

        driver = await self._active_driver(ctx, request.driver_id, "upload")
        if not driver.ok:
            return driver

        extension = request.filename.rsplit(".", 1)[1].lower()
        file_path = f"documents/{request.driver_id}/{uuid.uuid4()}.{extension}"

        signed = await self.storage.create_signed_upload_url(
            ctx.access_token, self.bucket, file_path, upsert=True, max_size=request.size
        )
        if not signed.ok:
            return self.finish("request_upload", signed)

        created = await self.create(
            ctx,
            DocumentCreate(
                driver_id=request.driver_id,
                company_id=driver.data.get("company_id"),
                document_type=request.document_type,
                file_name=request.filename,
                file_path=file_path,
                file_type=request.content_type,
                file_size=request.size,
                expiry_date=request.expiry_date,
                uploaded_by=ctx.user_id,
                uploaded_at=datetime.now(timezone.utc),
            ),
        )
        if not created.ok:
            return created

        logger.info(f"[DocumentUpload] driver_id={request.driver_id}, path={file_path}, size={request.size}")
        return Result.success(
            DocumentUploadTicket(document=created.data, upload_url=signed.data.url, token=signed.data.token)
        )

    async def get_download(self, ctx: SessionContext, id: str, today: Optional[date] = None) -> Result:
        document = await self.get_by_id(ctx, id)
        if not document.ok:
            return document
        doc = document.data

        driver = await self._active_driver(ctx, doc.driver_id, "access")
        if not driver.ok:
            return driver

        url = await self.storage.create_signed_url(ctx.access_token, self.bucket, doc.file_path, self.signed_url_expiry)
        if not url.ok:
            return self.finish("get_download", url)

        return Result.success(
            DocumentDownload(
                id=doc.id,
                driver_id=doc.driver_id,
                name=doc.file_name,
                type=doc.document_type,
                url=url.data,
                status=doc.status,
                validity=document_validity(doc, today or date.today(), self.warning_days),
                uploaded_at=doc.uploaded_at,
                expiry_date=doc.expiry_date,
                metadata={
                    "size": doc.file_size,
                    "mime_type": doc.file_type,
                    "uploaded_by": doc.uploaded_by,
                },
            )
        )

    async def review(self, ctx: SessionContext, id: str, status: str, notes: Optional[str] = None) -> Result:
        """Approve or reject a pending document."""
        if status not in REVIEW_OUTCOMES:
            return Result.failure(ServiceError.validation(f"A review must approve or reject, not '{status}'"))

        current = await self.get_by_id(ctx, id)
        if not current.ok:
            return current
        if current.data.status != DocumentStatusEnum.PENDING.value:
            return Result.failure(
                ServiceError.validation(f"Only pending documents can be reviewed (status is {current.data.status})")
            )
        return await self.update_values(ctx, id, {"status": status, "review_notes": notes}, operation="review")

    async def expire_documents(self, ctx: SessionContext, today: Optional[date] = None) -> Result:
        """Mark every document past its expiry date as ``expired``; returns the rows changed."""
        query = self.query(ctx).where(
            expiry_date=lt(today or date.today()),
            status=neq(DocumentStatusEnum.EXPIRED.value),
        )
        result = await self.tables.update(ctx.access_token, query, {"status": DocumentStatusEnum.EXPIRED.value})
        result = self.finish("expire_documents", result, self.parse_many)
        if result.ok and result.data:
            logger.info(f"[DocumentExpiry] {len(result.data)} document(s) marked expired")
        return result

    async def remove_driver_files(self, ctx: SessionContext, driver_id: str) -> Result:
        """Remove the stored files of every document of ``driver_id``; the rows stay."""
        documents = await self.list_for_driver(ctx, driver_id)
        if not documents.ok:
            return documents
        paths = [document.file_path for document in documents.data if document.file_path]
        if not paths:
            return Result.success([])

        removed = await self.storage.remove(ctx.access_token, self.bucket, paths)
        if not removed.ok:
            return self.finish("remove_driver_files", removed)
        logger.info(f"[DocumentCleanup] removed {len(paths)} file(s) of driver {driver_id}")
        return Result.success(paths)

    async def delete(self, ctx: SessionContext, id: str) -> Result:
        """Remove the stored file, then the row."""
        document = await self.get_by_id(ctx, id)
        if not document.ok:
            return document

        driver = await self._active_driver(ctx, document.data.driver_id, "delete")
        if not driver.ok:
            return driver

        removed = await self.storage.remove(ctx.access_token, self.bucket, [document.data.file_path])
        if not removed.ok:
            return self.finish("delete", removed)
        return await super().delete(ctx, id)
