import mimetypes
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from fleetdesk.config import settings
from fleetdesk.core.logging_config import get_logger
from fleetdesk.platform.base import Platform
from fleetdesk.routes.deps import get_platform
from fleetdesk.utils.response_utils import ResponseWrapper, handle_http_error, unwrap_or_raise

logger = get_logger(__name__)
router = APIRouter(prefix="/storage", tags=["storage"])


def _signed_storage(platform: Platform):
    storage = platform.storage
    if not hasattr(storage, "upload_to_signed_url") or not hasattr(storage, "read_signed"):
        # remote storage serves its own signed URLs
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=ResponseWrapper.error("Signed storage URLs are not served by this API", "NOT_FOUND"),
        )
    return storage


def _too_large(limit: int) -> HTTPException:
    return HTTPException(
        status_code=413,
        detail=ResponseWrapper.error(f"Upload exceeds the {limit} byte limit", "PAYLOAD_TOO_LARGE", {"max_size": limit}),
    )


async def read_capped_body(request: Request, limit: int) -> bytes:
    """The request body, refused with 413 as soon as it grows past ``limit`` bytes."""
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        raise _too_large(limit)

    chunks = []
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > limit:
            raise _too_large(limit)
        chunks.append(chunk)
    return b"".join(chunks)


@router.put("/object/{bucket}/{path:path}", response_model=dict, status_code=status.HTTP_200_OK)
async def upload_object(
    bucket: str,
    path: str,
    request: Request,
    token: Optional[str] = None,
    platform: Platform = Depends(get_platform),
):
    """Receive the raw content for a signed upload URL."""
    try:
        storage = _signed_storage(platform)
        content = await read_capped_body(request, settings.MAX_DOCUMENT_SIZE_MB * 1024 * 1024)
        stored = unwrap_or_raise(await storage.upload_to_signed_url(bucket, path, token, content))
        return ResponseWrapper.success(data=stored, message="File uploaded successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error storing {bucket}/{path}: {e}")
        raise handle_http_error(e)


@router.get("/object/{bucket}/{path:path}")
async def download_object(
    bucket: str,
    path: str,
    token: Optional[str] = None,
    platform: Platform = Depends(get_platform),
):
    try:
        storage = _signed_storage(platform)
        content = unwrap_or_raise(await storage.read_signed(bucket, path, token))
        media_type, _ = mimetypes.guess_type(path)
        return Response(content=content, media_type=media_type or "application/octet-stream")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error reading {bucket}/{path}: {e}")
        raise handle_http_error(e)
