"""Archive pipelines: export (ArchiveBuilder) and import (TreeParser)."""

from itemzip.platform.archive.builder import ArchiveBuilder
from itemzip.platform.archive.extractor import (
    ZIP_FILE_MIME_TYPES,
    ensure_zip_media_type,
    extract_archive,
    validate_archive_root,
)
from itemzip.platform.archive.parser import TreeParser
from itemzip.platform.archive.workspace import TempWorkspace
from itemzip.platform.archive.writer import ArchiveWriter

__all__ = [
    "ArchiveBuilder",
    "ArchiveWriter",
    "TempWorkspace",
    "TreeParser",
    "ZIP_FILE_MIME_TYPES",
    "ensure_zip_media_type",
    "extract_archive",
    "validate_archive_root",
]
