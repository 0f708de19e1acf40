"""Schemas for content items and item creation requests."""

from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ItemType(str, Enum):
    """Item kinds handled by the archive pipelines."""

    FOLDER = "folder"
    DOCUMENT = "document"
    LINK = "embeddedLink"
    APP = "app"
    LOCAL_FILE = "file"
    S3_FILE = "s3File"


FILE_ITEM_TYPES = (ItemType.LOCAL_FILE, ItemType.S3_FILE)


class FolderPayload(BaseModel):
    """Folders carry no payload."""

    kind: Literal[ItemType.FOLDER] = ItemType.FOLDER


class DocumentPayload(BaseModel):
    """Inline document text."""

    kind: Literal[ItemType.DOCUMENT] = ItemType.DOCUMENT
    content: str = ""


class LinkPayload(BaseModel):
    """Embedded link."""

    kind: Literal[ItemType.LINK] = ItemType.LINK
    url: str


class AppPayload(BaseModel):
    """Executable app, addressed by URL."""

    kind: Literal[ItemType.APP] = ItemType.APP
    url: str


class FilePayload(BaseModel):
    """Stored binary file (local disk or S3)."""

    kind: Literal[ItemType.LOCAL_FILE, ItemType.S3_FILE]
    name: str = Field(..., description="Original filename")
    path: str = Field(..., description="Storage key of the file content")
    mimetype: str = Field(..., description="Media type of the file content")
    size: int = Field(0, ge=0, description="Size in bytes")


ItemPayload = Annotated[
    Union[FolderPayload, DocumentPayload, LinkPayload, AppPayload, FilePayload],
    Field(discriminator="kind"),
]


class ItemSpec(BaseModel):
    """Request to create one item."""

    model_config = ConfigDict(from_attributes=True)

    name: str
    description: Optional[str] = None
    payload: ItemPayload
    settings: Dict[str, Any] = Field(default_factory=dict)

    @property
    def kind(self) -> ItemType:
        """Kind of the item, taken from its payload."""
        return self.payload.kind


class ContentItem(ItemSpec):
    """Persisted item as returned by the item service."""

    id: str
