"""Single-writer async wrapper around ``zipfile.ZipFile``.

``ZipFile`` does not support interleaved writes, so every append holds one
lock for the whole entry. Callers may prepare content concurrently (e.g. open
storage streams for sibling files) but entries are written one at a time.
"""

import asyncio
import zipfile
from pathlib import Path
from typing import AsyncIterator, Optional, Union

from itemzip.platform.utils.async_helpers import run_in_thread_pool

# Fixed entry timestamp so that identical trees produce identical entries
ENTRY_DATE_TIME = (1980, 1, 1, 0, 0, 0)

FILE_MODE = 0o100644 << 16
DIRECTORY_MODE = (0o040755 << 16) | 0x10

COMPRESSION_METHODS = {
    "stored": zipfile.ZIP_STORED,
    "deflated": zipfile.ZIP_DEFLATED,
}


class ArchiveWriter:
    """Appends entries to a zip file on disk.

    Usage:
        async with ArchiveWriter(path) as writer:
            await writer.add_directory("Demo")
            await writer.add_bytes("Demo/Notes.graasp", b"hello")
    """

    def __init__(self, path: Union[str, Path], compression: str = "stored"):
        """Initialize the writer.

        Args:
            path: Destination zip file
            compression: Key of COMPRESSION_METHODS
        """
        self.path = Path(path)
        self.compression = COMPRESSION_METHODS[compression]
        self._zip: Optional[zipfile.ZipFile] = None
        self._lock = asyncio.Lock()
        self.entry_count = 0

    async def __aenter__(self) -> "ArchiveWriter":
        self._zip = await run_in_thread_pool(
            zipfile.ZipFile, self.path, "w", compression=self.compression, allowZip64=True
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Write the central directory and close the file."""
        async with self._lock:
            if self._zip is not None:
                await run_in_thread_pool(self._zip.close)
                self._zip = None

    def _entry_info(self, name: str, is_dir: bool = False) -> zipfile.ZipInfo:
        info = zipfile.ZipInfo(f"{name}/" if is_dir else name, date_time=ENTRY_DATE_TIME)
        info.external_attr = DIRECTORY_MODE if is_dir else FILE_MODE
        info.compress_type = zipfile.ZIP_STORED if is_dir else self.compression
        return info

    def _require_open(self) -> zipfile.ZipFile:
        if self._zip is None:
            raise RuntimeError("Archive writer is not open")
        return self._zip

    async def add_directory(self, name: str) -> None:
        """Append an explicit directory entry (keeps empty folders)."""
        async with self._lock:
            zf = self._require_open()
            await run_in_thread_pool(zf.writestr, self._entry_info(name, is_dir=True), b"")
            self.entry_count += 1

    async def add_bytes(self, name: str, data: bytes) -> None:
        """Append an entry from in-memory content."""
        async with self._lock:
            zf = self._require_open()
            await run_in_thread_pool(zf.writestr, self._entry_info(name), data)
            self.entry_count += 1

    async def add_stream(self, name: str, chunks: AsyncIterator[bytes]) -> int:
        """Append an entry from an async byte stream.

        The lock is held until the stream is exhausted.

        Returns:
            Number of bytes written
        """
        written = 0
        async with self._lock:
            zf = self._require_open()
            entry = await run_in_thread_pool(
                zf.open, self._entry_info(name), "w", force_zip64=True
            )
            try:
                async for chunk in chunks:
                    await run_in_thread_pool(entry.write, chunk)
                    written += len(chunk)
            finally:
                await run_in_thread_pool(entry.close)
            self.entry_count += 1
        return written
