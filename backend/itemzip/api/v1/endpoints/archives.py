"""Zip import and export endpoints."""

from pathlib import Path
from typing import AsyncIterator, List, Optional
from urllib.parse import quote

import aiofiles
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask
from starlette.datastructures import UploadFile

from itemzip.api import deps
from itemzip.core.config import settings
from itemzip.core.exceptions import MissingArchiveFileError, UploadTooLargeError
from itemzip.core.logging import ContextualLogger
from itemzip.core.zip_service import ExportedArchive, zip_service
from itemzip.platform.archive.builder import ContentRetriever
from itemzip.platform.items import ItemService
from itemzip.platform.storage import StorageUploader
from itemzip.schemas.item import ContentItem

router = APIRouter()

STREAM_CHUNK_SIZE = 64 * 1024


def content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback and an RFC 5987 UTF-8 name."""
    fallback = "".join(c for c in filename if 32 <= ord(c) < 127 and c not in '"\\')
    fallback = fallback or "archive.zip"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


async def _iter_archive(archive: ExportedArchive) -> AsyncIterator[bytes]:
    try:
        async with aiofiles.open(archive.path, "rb") as f:
            while chunk := await f.read(STREAM_CHUNK_SIZE):
                yield chunk
    finally:
        # The background task is skipped when the client disconnects mid-stream
        await archive.workspace.cleanup()


def archive_response(archive: ExportedArchive) -> StreamingResponse:
    """Stream a built archive and remove its workspace once sent."""
    return StreamingResponse(
        _iter_archive(archive),
        media_type="application/zip",
        headers={
            "Content-Disposition": content_disposition(archive.filename),
            "Content-Length": str(archive.size),
        },
        background=BackgroundTask(archive.workspace.cleanup),
    )


def _check_content_length(request: Request) -> None:
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit():
        if int(content_length) > settings.MAX_UPLOAD_SIZE_BYTES:
            raise UploadTooLargeError(data={"limit": settings.MAX_UPLOAD_SIZE_BYTES})


@router.post("/zip-import", response_model=List[ContentItem])
async def import_zip(
    request: Request,
    parent_id: Optional[str] = Query(None, alias="parentId"),
    item_service: ItemService = Depends(deps.get_item_service),
    uploader: StorageUploader = Depends(deps.get_uploader),
    logger: ContextualLogger = Depends(deps.get_logger),
) -> List[ContentItem]:
    """Import a zip archive as a tree of items.

    The request must be multipart with a single file field. The archive's root
    folder is created under ``parentId`` (or at the root when omitted).
    """
    _check_content_length(request)
    logger = logger.with_context(parent_id=parent_id)

    async with request.form(max_files=1, max_fields=0) as form:
        uploads = [value for value in form.values() if isinstance(value, UploadFile)]
        if not uploads:
            raise MissingArchiveFileError()

        upload = uploads[0]
        logger.info(f"Received archive {upload.filename} ({upload.content_type})")
        return await zip_service.import_archive(upload, parent_id, item_service, uploader, logger)


@router.get("/zip-export/{item_id}")
async def export_zip(
    item_id: str,
    item_service: ItemService = Depends(deps.get_item_service),
    retriever: ContentRetriever = Depends(deps.get_content_retriever),
    logger: ContextualLogger = Depends(deps.get_logger),
) -> StreamingResponse:
    """Download an item and its descendants as a zip archive."""
    archive = await zip_service.export_item(item_id, item_service, retriever, logger)
    return archive_response(archive)
