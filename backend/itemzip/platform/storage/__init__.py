"""Storage integration module for itemzip."""

from typing import Dict

from itemzip.core.config import Settings, settings
from itemzip.platform.storage.adapters import (
    FileReference,
    StorageContentRetriever,
    StorageUploader,
)
from itemzip.platform.storage.backend import FileStorage, LocalFileStorage, S3FileStorage
from itemzip.platform.storage.exceptions import (
    StorageAuthenticationError,
    StorageConnectionError,
    StorageException,
    StorageNotFoundError,
)
from itemzip.schemas.item import ItemType

__all__ = [
    "FileStorage",
    "LocalFileStorage",
    "S3FileStorage",
    "FileReference",
    "StorageUploader",
    "StorageContentRetriever",
    "StorageException",
    "StorageConnectionError",
    "StorageAuthenticationError",
    "StorageNotFoundError",
    "get_file_storages",
]


def get_file_storages(config: Settings = settings) -> Dict[ItemType, FileStorage]:
    """Build the storage backend of the configured file item type."""
    item_type = ItemType(config.FILE_ITEM_TYPE)
    if item_type == ItemType.LOCAL_FILE:
        return {item_type: LocalFileStorage(base_path=config.STORAGE_PATH)}
    elif item_type == ItemType.S3_FILE:
        if not config.S3_BUCKET:
            raise ValueError("S3_BUCKET must be set when FILE_ITEM_TYPE is s3File")
        return {
            item_type: S3FileStorage(
                bucket=config.S3_BUCKET,
                region=config.S3_REGION,
                access_key_id=config.S3_ACCESS_KEY_ID,
                secret_access_key=config.S3_SECRET_ACCESS_KEY,
                endpoint_url=config.S3_ENDPOINT_URL,
                use_ssl=config.S3_USE_SSL,
            )
        }
    else:
        raise ValueError(f"Unsupported file item type: {config.FILE_ITEM_TYPE}")
