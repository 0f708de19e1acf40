"""Storage exceptions for itemzip.

All storage-related exceptions inherit from StorageException.
"""


class StorageException(Exception):
    """Base exception for storage operations."""

    pass


class StorageConnectionError(StorageException):
    """Raised when the storage backend cannot be reached."""

    pass


class StorageAuthenticationError(StorageException):
    """Raised when storage credentials are missing or rejected."""

    pass


class StorageNotFoundError(StorageException):
    """Raised when a requested object is not found in storage."""

    pass
