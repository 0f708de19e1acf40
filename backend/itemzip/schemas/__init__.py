"""Schemas for itemzip."""

from itemzip.schemas.item import (
    FILE_ITEM_TYPES,
    AppPayload,
    ContentItem,
    DocumentPayload,
    FilePayload,
    FolderPayload,
    ItemPayload,
    ItemSpec,
    ItemType,
    LinkPayload,
)

__all__ = [
    "FILE_ITEM_TYPES",
    "AppPayload",
    "ContentItem",
    "DocumentPayload",
    "FilePayload",
    "FolderPayload",
    "ItemPayload",
    "ItemSpec",
    "ItemType",
    "LinkPayload",
]
