"""Unit test conftest for setting up test environment."""

import os
import tempfile

# Set environment variables before importing any itemzip modules so that the
# settings singleton never points at a real storage or tmp folder
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("TMP_FOLDER_PATH", tempfile.mkdtemp(prefix="itemzip-tmp-"))
os.environ.setdefault("STORAGE_PATH", tempfile.mkdtemp(prefix="itemzip-storage-"))
os.environ.setdefault("FILE_ITEM_TYPE", "file")

import zipfile  # noqa: E402
from pathlib import Path  # noqa: E402
from typing import Dict, Optional  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402

from itemzip.platform.items import InMemoryItemService  # noqa: E402
from itemzip.platform.storage import (  # noqa: E402
    LocalFileStorage,
    StorageContentRetriever,
    StorageUploader,
)
from itemzip.schemas.item import ItemType  # noqa: E402


@pytest.fixture
def mock_logger():
    """MagicMock logger whose with_context returns itself, so calls can be asserted."""
    logger = MagicMock()
    logger.with_context.return_value = logger
    return logger


@pytest.fixture
def storage(tmp_path) -> LocalFileStorage:
    """Local storage rooted in the test's tmp directory."""
    return LocalFileStorage(tmp_path / "storage")


@pytest.fixture
def uploader(storage) -> StorageUploader:
    """Uploader writing local file items."""
    return StorageUploader(storage, ItemType.LOCAL_FILE, "files")


@pytest.fixture
def retriever(storage) -> StorageContentRetriever:
    """Retriever reading local file items."""
    return StorageContentRetriever({ItemType.LOCAL_FILE: storage})


@pytest.fixture
def item_service() -> InMemoryItemService:
    """Empty in-memory item store."""
    return InMemoryItemService()


@pytest.fixture
def make_zip(tmp_path):
    """Build a zip file from a {name: bytes} mapping; None values are directories."""

    def _make_zip(entries: Dict[str, Optional[bytes]], name: str = "upload.zip") -> Path:
        path = tmp_path / name
        with zipfile.ZipFile(path, "w") as zf:
            for entry_name, content in entries.items():
                if content is None:
                    zf.writestr(entry_name.rstrip("/") + "/", b"")
                else:
                    zf.writestr(entry_name, content)
        return path

    return _make_zip


def read_zip(path: Path) -> Dict[str, bytes]:
    """Read every entry of a zip file (directories map to b'')."""
    with zipfile.ZipFile(path) as zf:
        return {info.filename: zf.read(info) for info in zf.infolist()}


@pytest.fixture
def zip_reader():
    """Expose read_zip to test modules."""
    return read_zip
