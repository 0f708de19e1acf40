"""Archive extraction and top-level structure validation for imports."""

import os
import zipfile
from pathlib import Path
from typing import List

from itemzip.core.exceptions import FileIsNotAValidArchiveError, InvalidArchiveStructureError
from itemzip.core.logging import ContextualLogger
from itemzip.platform.naming.convention import is_hidden
from itemzip.platform.utils.async_helpers import run_in_thread_pool

ZIP_FILE_MIME_TYPES = (
    "application/zip",
    "application/x-zip-compressed",
    "multipart/x-zip",
    "application/x-zip",
)


def ensure_zip_media_type(mimetype: str) -> None:
    """Reject uploads whose declared media type is not a zip type."""
    if mimetype not in ZIP_FILE_MIME_TYPES:
        raise FileIsNotAValidArchiveError(data=mimetype)


def _extract(zip_path: Path, target_dir: Path) -> int:
    if not zipfile.is_zipfile(zip_path):
        raise FileIsNotAValidArchiveError("File content is not a zip archive")

    target = target_dir.resolve()
    try:
        with zipfile.ZipFile(zip_path) as zf:
            members = zf.infolist()
            # Check every member before writing anything
            for member in members:
                destination = (target / member.filename).resolve()
                if destination != target and not destination.is_relative_to(target):
                    raise InvalidArchiveStructureError(
                        "Archive entry escapes the extraction directory", data=member.filename
                    )
            target.mkdir(parents=True, exist_ok=True)
            zf.extractall(target)
    except zipfile.BadZipFile as e:
        raise FileIsNotAValidArchiveError(f"Corrupted zip archive: {e}") from e
    return len(members)


async def extract_archive(zip_path: Path, target_dir: Path, logger: ContextualLogger) -> None:
    """Extract a zip archive into ``target_dir``.

    Raises:
        FileIsNotAValidArchiveError: If the file is not a readable zip archive
        InvalidArchiveStructureError: If an entry would land outside target_dir
    """
    count = await run_in_thread_pool(_extract, zip_path, target_dir)
    logger.debug(f"Extracted {count} entries from {zip_path.name}")


def list_visible_entries(directory: Path) -> List[str]:
    """Sorted names of the non-hidden entries of a directory."""
    return sorted(name for name in os.listdir(directory) if not is_hidden(name))


def validate_archive_root(content_dir: Path) -> Path:
    """Check that the extracted archive holds exactly one root folder.

    Returns:
        Path of the root folder

    Raises:
        InvalidArchiveStructureError: On zero or several top-level entries, or a
            single top-level file
    """
    entries = list_visible_entries(content_dir) if content_dir.exists() else []
    if len(entries) != 1:
        raise InvalidArchiveStructureError(
            f"Archive must contain exactly one top-level folder, found {len(entries)} entries",
            data=entries,
        )

    root = content_dir / entries[0]
    if not root.is_dir():
        raise InvalidArchiveStructureError(
            "Archive top-level entry must be a folder", data=entries[0]
        )
    return root
