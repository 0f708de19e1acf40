"""Uploader and content retriever used by the archive pipelines."""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Dict
from uuid import uuid4

import aiofiles.os

from itemzip.core.exceptions import InvalidFileItemError
from itemzip.core.logging import ContextualLogger
from itemzip.platform.storage.backend import FileStorage
from itemzip.schemas.item import ContentItem, FilePayload, ItemType


@dataclass(frozen=True)
class FileReference:
    """Where an uploaded file now lives."""

    path: str
    mimetype: str
    size: int


def build_file_path(prefix: str) -> str:
    """Build a fresh storage key: ``<prefix>/<hex4>/<hex32>-<epoch ms>``."""
    return f"{prefix}/{uuid4().hex[:4]}/{uuid4().hex}-{int(time.time() * 1000)}"


class StorageUploader:
    """Stores imported files; every call creates a new object."""

    def __init__(self, storage: FileStorage, item_type: ItemType, path_prefix: str):
        """Initialize the uploader.

        Args:
            storage: Backend receiving the bytes
            item_type: File item type the stored objects belong to
            path_prefix: Prefix of the generated storage keys
        """
        self.storage = storage
        self.item_type = item_type
        self.path_prefix = path_prefix

    async def upload(
        self, source: Path, mimetype: str, logger: ContextualLogger
    ) -> FileReference:
        """Upload a local file.

        Raises:
            StorageException: If the backend fails
        """
        size = (await aiofiles.os.stat(source)).st_size
        path = build_file_path(self.path_prefix)
        logger.with_context(file=source.name, path=path).debug("Uploading file")
        await self.storage.upload(source, path, mimetype)
        return FileReference(path=path, mimetype=mimetype, size=size)

    async def discard(self, reference: FileReference, logger: ContextualLogger) -> None:
        """Best-effort removal of an object uploaded for a batch that failed."""
        deleted = await self.storage.delete(reference.path)
        if not deleted:
            logger.warning(f"Uploaded file {reference.path} could not be removed")


class StorageContentRetriever:
    """Opens the content of file items, picking the backend by item type."""

    def __init__(self, storages: Dict[ItemType, FileStorage]):
        """Initialize the retriever.

        Args:
            storages: Backend per file item type (local and/or S3)
        """
        self.storages = storages

    async def retrieve(self, item: ContentItem) -> AsyncIterator[bytes]:
        """Open the byte stream of a file item.

        Raises:
            InvalidFileItemError: If the item has no usable storage reference
            StorageNotFoundError: If the stored object is missing
        """
        payload = item.payload
        if not isinstance(payload, FilePayload) or not payload.path or not payload.mimetype:
            raise InvalidFileItemError(data={"id": item.id, "name": item.name})

        storage = self.storages.get(payload.kind)
        if storage is None:
            raise InvalidFileItemError(
                f"No storage configured for {payload.kind.value} items",
                data={"id": item.id, "name": item.name},
            )

        return await storage.open_stream(payload.path)
