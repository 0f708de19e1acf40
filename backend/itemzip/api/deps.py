"""Dependencies that are used in the API endpoints."""

import uuid
from typing import Dict

from fastapi import Depends, Request

from itemzip.core.config import settings
from itemzip.core.logging import ContextualLogger, logger
from itemzip.platform.items import ItemService
from itemzip.platform.storage import FileStorage, StorageContentRetriever, StorageUploader
from itemzip.schemas.item import ItemType


async def get_logger(request: Request) -> ContextualLogger:
    """Request logger carrying a fresh request id and the route path."""
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    return logger.with_context(request_id=request_id, path=request.url.path)


async def get_item_service(request: Request) -> ItemService:
    """Item service installed on the application."""
    return request.app.state.item_service


async def get_storages(request: Request) -> Dict[ItemType, FileStorage]:
    """File storage backends installed on the application."""
    return request.app.state.storages


async def get_content_retriever(
    storages: Dict[ItemType, FileStorage] = Depends(get_storages),
) -> StorageContentRetriever:
    """Retriever used by exports."""
    return StorageContentRetriever(storages)


async def get_uploader(
    storages: Dict[ItemType, FileStorage] = Depends(get_storages),
) -> StorageUploader:
    """Uploader for the configured file item type."""
    item_type = ItemType(settings.FILE_ITEM_TYPE)
    return StorageUploader(storages[item_type], item_type, settings.FILE_PATH_PREFIX)
