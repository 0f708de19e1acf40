"""Import pipeline: turn an extracted archive directory into items."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Tuple

import aiofiles

from itemzip.core.config import settings
from itemzip.core.exceptions import (
    ArchiveImportError,
    InvalidArchiveStructureError,
    ItemZipError,
    TreeTooDeepError,
)
from itemzip.core.logging import ContextualLogger
from itemzip.platform.naming.convention import (
    DescriptionTarget,
    EntryKind,
    classify_entry,
    decode_document,
    decode_file,
    decode_folder,
    decode_shortcut,
    description_target,
)
from itemzip.platform.storage.adapters import FileReference, StorageUploader
from itemzip.platform.storage.exceptions import StorageException
from itemzip.platform.utils.async_helpers import run_in_thread_pool
from itemzip.platform.utils.media_type import MediaTypeSniffer, media_type_sniffer
from itemzip.schemas.item import ContentItem, FilePayload, ItemSpec, ItemType

ItemCreator = Callable[[Optional[str], List[ItemSpec]], Awaitable[List[ContentItem]]]
DescriptionUpdater = Callable[[str, str], Awaitable[None]]


@dataclass
class PendingItem:
    """Decoded entry waiting for batch creation."""

    spec: ItemSpec
    source: Path
    reference: Optional[FileReference] = None

    def matches(self, target: DescriptionTarget) -> bool:
        """Whether a sidecar target designates this item (same kind and name)."""
        if self.spec.kind not in target.kinds:
            return False
        if self.spec.name == target.name:
            return True
        payload = self.spec.payload
        return isinstance(payload, FilePayload) and payload.name == target.name


@dataclass(frozen=True)
class _Level:
    directory: Path
    parent_id: Optional[str]
    depth: int


def _list_entries(directory: Path) -> List[Tuple[str, bool]]:
    return [(name, (directory / name).is_dir()) for name in sorted(os.listdir(directory))]


async def _read_text(path: Path) -> str:
    try:
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            return await f.read()
    except UnicodeDecodeError as e:
        raise InvalidArchiveStructureError(
            f"Entry {path.name} is not valid UTF-8 text", data=path.name
        ) from e


class TreeParser:
    """Creates items from an extracted directory tree, one batch per folder.

    Levels are processed from an explicit stack, depth-first: after a level is
    created, its folders are pushed with their new ids as parents.
    """

    def __init__(
        self,
        create_items: ItemCreator,
        update_description: DescriptionUpdater,
        uploader: StorageUploader,
        logger: ContextualLogger,
        sniffer: MediaTypeSniffer = media_type_sniffer,
        max_depth: int = settings.MAX_TREE_DEPTH,
        truncate_limit: int = settings.FILENAME_TRUNCATE_LIMIT,
    ):
        """Initialize the parser.

        Args:
            create_items: Creates a batch of items under a parent
            update_description: Sets the description of an existing item
            uploader: Stores binary file content
            logger: Request logger
            sniffer: Media type detection for binary files
            max_depth: Maximum folder nesting below the starting directory
            truncate_limit: Maximum length of file item names
        """
        self.create_items = create_items
        self.update_description = update_description
        self.uploader = uploader
        self.logger = logger
        self.sniffer = sniffer
        self.max_depth = max_depth
        self.truncate_limit = truncate_limit

    async def parse(self, directory: Path, parent_id: Optional[str]) -> List[ContentItem]:
        """Create items for ``directory`` and everything below it.

        Args:
            directory: Extracted directory whose entries become items
            parent_id: Parent of the first level (None for the root)

        Returns:
            The items created for the first level
        """
        stack = [_Level(directory, parent_id, 0)]
        top_level: Optional[List[ContentItem]] = None

        while stack:
            level = stack.pop()
            if level.depth > self.max_depth:
                raise TreeTooDeepError(
                    f"Folder nesting exceeds {self.max_depth} levels", data=level.directory.name
                )

            created = await self._import_level(level)
            if top_level is None:
                top_level = [item for item, _ in created]

            folders = [(item, source) for item, source in created if item.kind == ItemType.FOLDER]
            for item, source in reversed(folders):
                stack.append(_Level(source, item.id, level.depth + 1))

        return top_level or []

    async def _import_level(self, level: _Level) -> List[Tuple[ContentItem, Path]]:
        logger = self.logger.with_context(directory=level.directory.name, parent_id=level.parent_id)
        entries = await run_in_thread_pool(_list_entries, level.directory)

        sidecars: List[str] = []
        pending: List[PendingItem] = []
        try:
            for name, is_dir in entries:
                kind = classify_entry(name, is_dir)
                if kind == EntryKind.HIDDEN:
                    continue
                if kind == EntryKind.DESCRIPTION:
                    sidecars.append(name)
                    continue

                pending.append(await self._decode_entry(level.directory / name, name, kind, logger))

            for name in sidecars:
                await self._apply_description(level, name, pending, logger)

            if not pending:
                return []

            created = await self.create_items(level.parent_id, [p.spec for p in pending])
            if len(created) != len(pending):
                raise ArchiveImportError(
                    f"Item service returned {len(created)} items for {len(pending)} requests",
                    data={"directory": level.directory.name},
                )
        except ItemZipError:
            await self._discard_uploads(pending, logger)
            raise
        except Exception as e:
            await self._discard_uploads(pending, logger)
            raise ArchiveImportError(
                f"Failed to create items of '{level.directory.name}': {e}",
                data={"directory": level.directory.name, "parent_id": level.parent_id},
            ) from e

        logger.info(f"Created {len(created)} items")
        return [(item, p.source) for item, p in zip(created, pending)]

    async def _decode_entry(
        self, path: Path, name: str, kind: EntryKind, logger: ContextualLogger
    ) -> PendingItem:
        match kind:
            case EntryKind.FOLDER:
                return PendingItem(spec=decode_folder(name), source=path)
            case EntryKind.SHORTCUT:
                return PendingItem(spec=decode_shortcut(name, await _read_text(path)), source=path)
            case EntryKind.DOCUMENT:
                return PendingItem(spec=decode_document(name, await _read_text(path)), source=path)
            case EntryKind.FILE:
                return await self._upload_file(path, name, logger)
        raise ValueError(f"Entry {name} of kind {kind} does not produce an item")

    async def _upload_file(self, path: Path, name: str, logger: ContextualLogger) -> PendingItem:
        mimetype = await run_in_thread_pool(self.sniffer.detect_file, path)
        try:
            reference = await self.uploader.upload(path, mimetype, logger)
        except StorageException as e:
            raise ArchiveImportError(
                f"Failed to upload '{name}': {e}", data={"file": name}
            ) from e

        spec = decode_file(
            name,
            reference.path,
            reference.mimetype,
            reference.size,
            self.uploader.item_type,
            self.truncate_limit,
        )
        return PendingItem(spec=spec, source=path, reference=reference)

    async def _apply_description(
        self,
        level: _Level,
        filename: str,
        pending: List[PendingItem],
        logger: ContextualLogger,
    ) -> None:
        content = await _read_text(level.directory / filename)
        target = description_target(filename, level.directory.name)

        if target.is_parent:
            if level.parent_id is None:
                logger.warning(f"No parent item for folder description {filename}")
                return
            await self.update_description(level.parent_id, content)
            return

        for item in pending:
            if item.matches(target):
                item.spec.description = content
                return

        logger.warning(f"Cannot find item with name {target.name} for {filename}")

    async def _discard_uploads(self, pending: List[PendingItem], logger: ContextualLogger) -> None:
        for item in pending:
            if item.reference is not None:
                await self.uploader.discard(item.reference, logger)
