"""Errors raised by the import/export flows.

Every error belongs to exactly one ``ErrorKind``. The API layer turns a kind
into a status code through ``STATUS_CODE_BY_KIND``, which covers every member.
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Closed set of failure categories."""

    INVALID_INPUT = "invalid_input"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    STRUCTURAL_VIOLATION = "structural_violation"
    NOT_FOUND = "not_found"
    INVALID_ITEM = "invalid_item"
    EXPORT_FAILURE = "export_failure"
    IMPORT_FAILURE = "import_failure"


STATUS_CODE_BY_KIND = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.PAYLOAD_TOO_LARGE: 413,
    ErrorKind.STRUCTURAL_VIOLATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_ITEM: 500,
    ErrorKind.EXPORT_FAILURE: 500,
    ErrorKind.IMPORT_FAILURE: 500,
}


class ItemZipError(Exception):
    """Base class for all import/export errors.

    Subclasses fix ``kind``, ``code`` and a default message.
    """

    kind: ErrorKind = ErrorKind.EXPORT_FAILURE
    code: str = "IZERR000"
    default_message: str = "Archive operation failed"

    def __init__(self, message: Optional[str] = None, data: Any = None):
        """Initialize the error.

        Args:
            message: Human-readable message (defaults to the class message)
            data: Extra payload returned to the caller (offending value, path...)
        """
        self.message = message or self.default_message
        self.data = data
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        """HTTP status code for this error."""
        return STATUS_CODE_BY_KIND[self.kind]

    def to_dict(self) -> dict:
        """Serialize the error for a response body."""
        return {"code": self.code, "message": self.message, "data": self.data}


class FileIsNotAValidArchiveError(ItemZipError):
    """Raised when the uploaded file is not a zip archive."""

    kind = ErrorKind.INVALID_INPUT
    code = "IZERR001"
    default_message = "File is not a zip archive"


class InvalidArchiveStructureError(ItemZipError):
    """Raised when the extracted archive does not hold a single root folder."""

    kind = ErrorKind.STRUCTURAL_VIOLATION
    code = "IZERR002"
    default_message = "Zip structure is invalid"


class MissingArchiveFileError(ItemZipError):
    """Raised when an import request carries no file field."""

    kind = ErrorKind.INVALID_INPUT
    code = "IZERR003"
    default_message = "Request does not contain a zip file"


class UploadTooLargeError(ItemZipError):
    """Raised when the uploaded archive exceeds the configured size limit."""

    kind = ErrorKind.PAYLOAD_TOO_LARGE
    code = "IZERR004"
    default_message = "Uploaded archive is too large"


class TreeTooDeepError(ItemZipError):
    """Raised when folder nesting exceeds MAX_TREE_DEPTH."""

    kind = ErrorKind.STRUCTURAL_VIOLATION
    code = "IZERR005"
    default_message = "Folder nesting is too deep"


class ItemNotFoundError(ItemZipError):
    """Raised by item services when an item does not exist or is not visible."""

    kind = ErrorKind.NOT_FOUND
    code = "IZERR006"
    default_message = "Item not found"


class InvalidFileItemError(ItemZipError):
    """Raised when a file item lacks the storage path or media type to fetch it."""

    kind = ErrorKind.INVALID_ITEM
    code = "IZERR007"
    default_message = "File item is invalid"


class ArchiveExportError(ItemZipError):
    """Raised when building the archive fails (retrieval or backend error)."""

    kind = ErrorKind.EXPORT_FAILURE
    code = "IZERR008"
    default_message = "Error during exporting zip"


class ArchiveImportError(ItemZipError):
    """Raised when an upload or item creation fails during import."""

    kind = ErrorKind.IMPORT_FAILURE
    code = "IZERR009"
    default_message = "Error during importing zip"
