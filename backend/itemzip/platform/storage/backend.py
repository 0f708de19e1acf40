"""File storage backends for file item content.

Provides one abstract interface with local filesystem and S3 implementations.
All methods are async-first; content is read back as a stream of byte chunks
so large files never need to fit in memory.

Usage:
    from itemzip.platform.storage import get_file_storages

    storage = get_file_storages()[ItemType.LOCAL_FILE]
    await storage.upload(Path("/tmp/photo.png"), "files/ab12/photo", "image/png")
    stream = await storage.open_stream("files/ab12/photo")
    async for chunk in stream:
        ...
"""

import os
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import AsyncIterator, Optional, Union

import aioboto3
import aiofiles
import aiofiles.os
from botocore.exceptions import (
    ClientError,
    EndpointConnectionError,
    NoCredentialsError,
)
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from itemzip.core.logging import logger
from itemzip.platform.storage.exceptions import (
    StorageAuthenticationError,
    StorageConnectionError,
    StorageException,
    StorageNotFoundError,
)

CHUNK_SIZE = 64 * 1024


class FileStorage(ABC):
    """Abstract file storage interface.

    All paths are relative storage keys (e.g., "files/3f2a/9c1e...-1700000000000").
    Implementations handle the actual storage location.
    """

    @abstractmethod
    async def upload(self, source: Path, path: str, mimetype: str) -> None:
        """Store the content of a local file.

        Args:
            source: Local file to read
            path: Storage key to write
            mimetype: Media type stored alongside the content
        """
        pass

    @abstractmethod
    async def open_stream(self, path: str) -> AsyncIterator[bytes]:
        """Open a stored object for reading.

        Args:
            path: Storage key

        Returns:
            Async iterator over the content, consumable once

        Raises:
            StorageNotFoundError: If the object doesn't exist
        """
        pass

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Check if an object exists."""
        pass

    @abstractmethod
    async def delete(self, path: str) -> bool:
        """Delete an object.

        Returns:
            True if deleted, False if it didn't exist
        """
        pass


class LocalFileStorage(FileStorage):
    """Filesystem-based storage backend.

    Works with:
    - Local development: ./local_storage
    - Kubernetes: PVC-mounted path
    """

    def __init__(self, base_path: Union[str, Path]):
        """Initialize filesystem backend.

        Args:
            base_path: Root directory for all storage operations
        """
        self.base_path = Path(base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)
        logger.debug(f"LocalFileStorage initialized at {self.base_path}")

    def _resolve(self, path: str) -> Path:
        """Resolve a storage key to an absolute path inside the base path."""
        normalized = path.replace("/", os.sep)
        full_path = (self.base_path / normalized).resolve()
        if not full_path.is_relative_to(self.base_path):
            raise StorageException(f"Path escapes storage root: {path}")
        return full_path

    async def upload(self, source: Path, path: str, mimetype: str) -> None:
        """Copy a local file into the storage root."""
        full_path = self._resolve(path)
        full_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            async with aiofiles.open(source, "rb") as src, aiofiles.open(full_path, "wb") as dst:
                while chunk := await src.read(CHUNK_SIZE):
                    await dst.write(chunk)
        except OSError as e:
            raise StorageException(f"Failed to write file to {path}: {e}") from e

    async def open_stream(self, path: str) -> AsyncIterator[bytes]:
        """Open a stored file for chunked reading."""
        full_path = self._resolve(path)
        if not full_path.is_file():
            raise StorageNotFoundError(f"Path not found: {path}")
        return self._iter_file(full_path)

    @staticmethod
    async def _iter_file(full_path: Path) -> AsyncIterator[bytes]:
        async with aiofiles.open(full_path, "rb") as f:
            while chunk := await f.read(CHUNK_SIZE):
                yield chunk

    async def exists(self, path: str) -> bool:
        """Check if path exists on filesystem."""
        return self._resolve(path).exists()

    async def delete(self, path: str) -> bool:
        """Delete file or directory from filesystem."""
        full_path = self._resolve(path)

        if not full_path.exists():
            return False

        try:
            if full_path.is_dir():
                shutil.rmtree(full_path)
            else:
                await aiofiles.os.remove(full_path)
            return True
        except OSError as e:
            logger.error(f"Failed to delete {path}: {e}")
            return False


class S3FileStorage(FileStorage):
    """S3-compatible storage backend.

    Supports AWS S3, MinIO, LocalStack or any S3 API-compatible service.
    Transient connection failures are retried.
    """

    def __init__(
        self,
        bucket: str,
        region: str = "us-east-1",
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        use_ssl: bool = True,
        session: Optional[aioboto3.Session] = None,
    ):
        """Initialize S3 backend.

        Args:
            bucket: Bucket holding file item content
            region: AWS region
            access_key_id: Access key (falls back to the default credential chain)
            secret_access_key: Secret key
            endpoint_url: Custom endpoint for S3-compatible services
            use_ssl: Use SSL/TLS
            session: Preconfigured aioboto3 session
        """
        self.bucket = bucket
        self._region = region
        self._access_key_id = access_key_id
        self._secret_access_key = secret_access_key
        self._endpoint_url = endpoint_url
        self._use_ssl = use_ssl
        self.session = session or aioboto3.Session()

        logger.debug(f"S3FileStorage initialized: {bucket} (endpoint: {endpoint_url or 'AWS S3'})")

    def _client(self):
        return self.session.client(
            "s3",
            endpoint_url=self._endpoint_url,
            aws_access_key_id=self._access_key_id,
            aws_secret_access_key=self._secret_access_key,
            region_name=self._region,
            use_ssl=self._use_ssl,
        )

    def _translate_error(self, path: str, e: Exception) -> StorageException:
        """Map botocore errors onto the storage exception family."""
        if isinstance(e, NoCredentialsError):
            return StorageAuthenticationError(f"S3 credentials not configured: {e}")
        if isinstance(e, EndpointConnectionError):
            return StorageConnectionError(f"Failed to connect to S3: {e}")
        if isinstance(e, ClientError):
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in ("404", "NoSuchKey", "NotFound"):
                return StorageNotFoundError(f"Path not found: {path}")
            if error_code in ("403", "AccessDenied"):
                return StorageAuthenticationError(f"Access denied to s3://{self.bucket}/{path}")
        return StorageException(f"S3 operation failed for {path}: {e}")

    @retry(
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(StorageConnectionError),
        wait=wait_exponential(multiplier=0.5, max=5),
        reraise=True,
    )
    async def upload(self, source: Path, path: str, mimetype: str) -> None:
        """Upload a local file to the bucket."""
        try:
            async with self._client() as s3:
                await s3.upload_file(
                    str(source), self.bucket, path, ExtraArgs={"ContentType": mimetype}
                )
        except (ClientError, NoCredentialsError, EndpointConnectionError) as e:
            raise self._translate_error(path, e) from e

    @retry(
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(StorageConnectionError),
        wait=wait_exponential(multiplier=0.5, max=5),
        reraise=True,
    )
    async def open_stream(self, path: str) -> AsyncIterator[bytes]:
        """Check the object exists, then stream it lazily."""
        try:
            async with self._client() as s3:
                await s3.head_object(Bucket=self.bucket, Key=path)
        except (ClientError, NoCredentialsError, EndpointConnectionError) as e:
            raise self._translate_error(path, e) from e
        return self._iter_object(path)

    async def _iter_object(self, path: str) -> AsyncIterator[bytes]:
        try:
            async with self._client() as s3:
                response = await s3.get_object(Bucket=self.bucket, Key=path)
                async for chunk in response["Body"].iter_chunks(CHUNK_SIZE):
                    yield chunk
        except (ClientError, NoCredentialsError, EndpointConnectionError) as e:
            raise self._translate_error(path, e) from e

    async def exists(self, path: str) -> bool:
        """Check if the object exists."""
        try:
            async with self._client() as s3:
                await s3.head_object(Bucket=self.bucket, Key=path)
            return True
        except ClientError as e:
            if isinstance(self._translate_error(path, e), StorageNotFoundError):
                return False
            raise self._translate_error(path, e) from e

    async def delete(self, path: str) -> bool:
        """Delete the object (S3 deletes are idempotent)."""
        try:
            if not await self.exists(path):
                return False
            async with self._client() as s3:
                await s3.delete_object(Bucket=self.bucket, Key=path)
            return True
        except (StorageException, ClientError) as e:
            logger.error(f"Failed to delete {path}: {e}")
            return False
