from fastapi import APIRouter, Depends, HTTPException, Query, status

from fleetdesk.binding import DocumentBinding
from fleetdesk.core.logging_config import get_logger
from fleetdesk.routes.deps import get_document_binding, require_found
from fleetdesk.schemas.document import DocumentReview, DocumentUploadRequest
from fleetdesk.utils.response_utils import ResponseWrapper, handle_http_error, unwrap_or_raise

logger = get_logger(__name__)
router = APIRouter(prefix="/documents", tags=["documents"])


@router.get("/", response_model=dict, status_code=status.HTTP_200_OK)
async def list_driver_documents(
    driver_id: str = Query(..., min_length=1),
    documents: DocumentBinding = Depends(get_document_binding),
):
    try:
        items = unwrap_or_raise(await documents.for_driver(driver_id))
        return ResponseWrapper.success(
            data={"items": items, "total": len(items)}, message="Documents fetched successfully"
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error listing documents for driver {driver_id}: {e}")
        raise handle_http_error(e)


@router.post("/upload-url", response_model=dict, status_code=status.HTTP_201_CREATED)
async def request_document_upload(
    payload: DocumentUploadRequest,
    documents: DocumentBinding = Depends(get_document_binding),
):
    """
    Register a pending document and return the signed URL its content must be PUT to.

    The file type and size are checked here, before anything is stored.
    """
    try:
        ticket = unwrap_or_raise(await documents.request_upload(payload))
        return ResponseWrapper.created(data=ticket, message="Upload URL created successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error requesting upload for driver {payload.driver_id}: {e}")
        raise handle_http_error(e)


@router.post("/expire", response_model=dict, status_code=status.HTTP_200_OK)
async def expire_documents(documents: DocumentBinding = Depends(get_document_binding)):
    try:
        expired = unwrap_or_raise(await documents.expire()) or []
        return ResponseWrapper.success(
            data={"items": expired, "total": len(expired)},
            message=f"{len(expired)} document(s) marked expired",
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error expiring documents: {e}")
        raise handle_http_error(e)


@router.get("/{document_id}", response_model=dict, status_code=status.HTTP_200_OK)
async def get_document(document_id: str, documents: DocumentBinding = Depends(get_document_binding)):
    """Document details with a short-lived signed download URL."""
    try:
        download = require_found(unwrap_or_raise(await documents.download(document_id)), "Document")
        return ResponseWrapper.success(data=download, message="Document fetched successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error fetching document {document_id}: {e}")
        raise handle_http_error(e)


@router.patch("/{document_id}/review", response_model=dict, status_code=status.HTTP_200_OK)
async def review_document(
    document_id: str,
    payload: DocumentReview,
    documents: DocumentBinding = Depends(get_document_binding),
):
    try:
        document = unwrap_or_raise(await documents.review(document_id, payload.status, payload.notes))
        logger.info(f"Document {document_id} reviewed: {payload.status}")
        return ResponseWrapper.updated(data=document, message="Document reviewed successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error reviewing document {document_id}: {e}")
        raise handle_http_error(e)


@router.delete("/{document_id}", response_model=dict, status_code=status.HTTP_200_OK)
async def delete_document(document_id: str, documents: DocumentBinding = Depends(get_document_binding)):
    try:
        unwrap_or_raise(await documents.delete(document_id))
        logger.info(f"Document {document_id} deleted")
        return ResponseWrapper.deleted(message="Document deleted successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error deleting document {document_id}: {e}")
        raise handle_http_error(e)
