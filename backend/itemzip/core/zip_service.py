"""Request-level zip export and import flows.

Each call owns a TempWorkspace that is removed on every exit path: right away
for imports and failed exports, after the response has been streamed for
successful exports.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol

import aiofiles

from itemzip.core.config import Settings, settings
from itemzip.core.exceptions import UploadTooLargeError
from itemzip.core.logging import ContextualLogger
from itemzip.platform.archive import (
    ArchiveBuilder,
    TempWorkspace,
    TreeParser,
    ensure_zip_media_type,
    extract_archive,
    validate_archive_root,
)
from itemzip.platform.archive.builder import ContentRetriever
from itemzip.platform.items import ItemService
from itemzip.platform.storage import StorageUploader
from itemzip.schemas.item import ContentItem

UPLOAD_CHUNK_SIZE = 1024 * 1024


class ArchiveUpload(Protocol):
    """Uploaded archive as exposed by the multipart parser."""

    content_type: Optional[str]

    async def read(self, size: int = -1) -> bytes:
        """Read the next chunk of the upload."""
        ...


@dataclass
class ExportedArchive:
    """Built archive waiting to be streamed to the client."""

    path: Path
    filename: str
    size: int
    workspace: TempWorkspace


class ZipService:
    """Wires workspaces, adapters and pipelines for one request."""

    def __init__(self, config: Settings = settings):
        """Initialize the service.

        Args:
            config: Settings providing limits and the temporary folder
        """
        self.config = config

    async def export_item(
        self,
        item_id: str,
        item_service: ItemService,
        retriever: ContentRetriever,
        logger: ContextualLogger,
        public: bool = False,
    ) -> ExportedArchive:
        """Build the archive of an item.

        The caller must run ``workspace.cleanup()`` once the archive is sent.

        Raises:
            ItemNotFoundError: If the item doesn't exist (or isn't public)
            ArchiveExportError: If building the archive failed
        """
        if public:
            root = await item_service.get_public_item(item_id)
        else:
            root = await item_service.get_item(item_id)

        logger = logger.with_context(item_id=root.id)
        workspace = TempWorkspace.create(self.config.TMP_FOLDER_PATH, logger)
        try:
            archive_path = workspace.path / f"{workspace.id}.zip"
            builder = ArchiveBuilder(
                item_service.get_children,
                retriever,
                logger,
                max_depth=self.config.MAX_TREE_DEPTH,
                fetch_concurrency=self.config.EXPORT_FETCH_CONCURRENCY,
                compression=self.config.ARCHIVE_COMPRESSION,
            )
            await builder.build(root, archive_path)
            size = os.path.getsize(archive_path)
        except BaseException:
            await workspace.cleanup()
            raise

        return ExportedArchive(
            path=archive_path, filename=f"{root.name}.zip", size=size, workspace=workspace
        )

    async def import_archive(
        self,
        upload: ArchiveUpload,
        parent_id: Optional[str],
        item_service: ItemService,
        uploader: StorageUploader,
        logger: ContextualLogger,
    ) -> List[ContentItem]:
        """Create the items contained in an uploaded zip archive.

        Returns:
            The created top-level items (the archive's root folder)

        Raises:
            FileIsNotAValidArchiveError: If the upload is not a zip archive
            UploadTooLargeError: If the upload exceeds MAX_UPLOAD_SIZE_BYTES
            InvalidArchiveStructureError: If the archive has no single root folder
            ArchiveImportError: If an upload or item creation failed
        """
        ensure_zip_media_type(upload.content_type or "")
        logger.debug("Import zip content")

        workspace = TempWorkspace.create(self.config.TMP_FOLDER_PATH, logger)
        try:
            zip_path = workspace.path / f"{workspace.id}.zip"
            await self._save_upload(upload, zip_path)

            content_dir = workspace.path / "content"
            await extract_archive(zip_path, content_dir, logger)
            validate_archive_root(content_dir)

            parser = TreeParser(
                item_service.create_items,
                item_service.update_description,
                uploader,
                logger,
                max_depth=self.config.MAX_TREE_DEPTH,
                truncate_limit=self.config.FILENAME_TRUNCATE_LIMIT,
            )
            items = await parser.parse(content_dir, parent_id)
        finally:
            await workspace.cleanup()

        logger.info(f"Imported archive into {len(items)} top-level items")
        return items

    async def _save_upload(self, upload: ArchiveUpload, target: Path) -> int:
        """Spool the upload to disk, enforcing the size limit."""
        limit = self.config.MAX_UPLOAD_SIZE_BYTES
        written = 0
        async with aiofiles.open(target, "wb") as f:
            while chunk := await upload.read(UPLOAD_CHUNK_SIZE):
                written += len(chunk)
                if written > limit:
                    raise UploadTooLargeError(data={"limit": limit})
                await f.write(chunk)
        return written


zip_service = ZipService()
