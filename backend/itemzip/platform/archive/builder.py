"""Export pipeline: serialize an item tree into a zip archive."""

import asyncio
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, List, Protocol

from itemzip.core.config import settings
from itemzip.core.exceptions import ArchiveExportError, ItemZipError, TreeTooDeepError
from itemzip.core.logging import ContextualLogger
from itemzip.platform.archive.writer import ArchiveWriter
from itemzip.platform.naming.convention import (
    description_entry_name,
    encode_content,
    encode_entry_name,
    unique_entry_names,
)
from itemzip.platform.storage.exceptions import StorageException
from itemzip.schemas.item import ContentItem, FilePayload, FolderPayload

ChildFetcher = Callable[[ContentItem], Awaitable[List[ContentItem]]]


class ContentRetriever(Protocol):
    """Anything that opens the byte stream of a file item."""

    async def retrieve(self, item: ContentItem) -> AsyncIterator[bytes]:
        """Open the content of a file item."""
        ...


def _join(parent_path: str, name: str) -> str:
    return f"{parent_path}/{name}" if parent_path else name


async def _gather_or_cancel(coros) -> None:
    """Run sibling coroutines concurrently; on the first failure cancel the rest."""
    tasks = [asyncio.create_task(coro) for coro in coros]
    if not tasks:
        return
    try:
        await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class ArchiveBuilder:
    """Builds the zip archive of an item and all its descendants.

    The tree is walked depth-first. A folder's directory entry and description
    are written before its children are fetched; siblings are then processed
    concurrently while the ArchiveWriter serializes the actual appends.
    """

    def __init__(
        self,
        get_children: ChildFetcher,
        retriever: ContentRetriever,
        logger: ContextualLogger,
        max_depth: int = settings.MAX_TREE_DEPTH,
        fetch_concurrency: int = settings.EXPORT_FETCH_CONCURRENCY,
        compression: str = settings.ARCHIVE_COMPRESSION,
    ):
        """Initialize the builder.

        Args:
            get_children: Lists the children of a folder item
            retriever: Opens file item content
            logger: Request logger
            max_depth: Maximum folder nesting below the root
            fetch_concurrency: Maximum concurrent content retrievals
            compression: Archive compression ("stored" or "deflated")
        """
        self.get_children = get_children
        self.retriever = retriever
        self.logger = logger
        self.max_depth = max_depth
        self.fetch_concurrency = fetch_concurrency
        self.compression = compression
        self._semaphore = None

    async def build(self, root: ContentItem, archive_path: Path) -> Path:
        """Write the archive of ``root`` to ``archive_path``.

        Raises:
            ArchiveExportError: If an item could not be fetched or written
            TreeTooDeepError: If folders are nested deeper than max_depth
            InvalidFileItemError: If a file item has no storage reference
        """
        self._semaphore = asyncio.Semaphore(self.fetch_concurrency)
        self.logger.info(f"Building archive for item {root.id} ({root.name})")

        try:
            async with ArchiveWriter(archive_path, self.compression) as writer:
                await self._add_item(writer, root, encode_entry_name(root), "", 0)
        except ItemZipError:
            raise
        except Exception as e:
            raise ArchiveExportError(
                f"Error during exporting zip: {e}", data={"item_id": root.id}
            ) from e

        self.logger.info(f"Archive for item {root.id} complete ({writer.entry_count} entries)")
        return archive_path

    async def _add_item(
        self,
        writer: ArchiveWriter,
        item: ContentItem,
        entry_name: str,
        parent_path: str,
        depth: int,
    ) -> None:
        entry_path = _join(parent_path, entry_name)

        match item.payload:
            case FolderPayload():
                await self._add_folder(writer, item, entry_name, entry_path, depth)
                return
            case FilePayload():
                await self._add_file(writer, item, entry_path)
            case _:
                await writer.add_bytes(entry_path, encode_content(item))

        if item.description:
            await writer.add_bytes(
                _join(parent_path, description_entry_name(entry_name)),
                item.description.encode("utf-8"),
            )
        self.logger.debug(f"Added {entry_path}")

    async def _add_folder(
        self,
        writer: ArchiveWriter,
        item: ContentItem,
        entry_name: str,
        entry_path: str,
        depth: int,
    ) -> None:
        if depth > self.max_depth:
            raise TreeTooDeepError(
                f"Folder nesting exceeds {self.max_depth} levels", data=entry_path
            )

        await writer.add_directory(entry_path)

        # The folder description lives inside the folder, named after it
        own_description = description_entry_name(entry_name)
        if item.description:
            await writer.add_bytes(
                _join(entry_path, own_description), item.description.encode("utf-8")
            )

        children = await self.get_children(item)
        # Leaf descriptions sit beside their entry and compete for the same names
        names = unique_entry_names(
            (encode_entry_name(child) for child in children),
            reserved=(own_description,),
            with_sidecar=(
                bool(child.description) and not isinstance(child.payload, FolderPayload)
                for child in children
            ),
        )
        await _gather_or_cancel(
            self._add_item(writer, child, name, entry_path, depth + 1)
            for child, name in zip(children, names)
        )

    async def _add_file(self, writer: ArchiveWriter, item: ContentItem, entry_path: str) -> None:
        try:
            async with self._semaphore:
                stream = await self.retriever.retrieve(item)
            await writer.add_stream(entry_path, stream)
        except StorageException as e:
            raise ArchiveExportError(
                f"Failed to retrieve content of '{item.name}': {e}",
                data={"item_id": item.id, "path": entry_path},
            ) from e
