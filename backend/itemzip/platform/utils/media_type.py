"""Media type detection from file content (magic bytes).

The filename extension of an imported file is not trusted; the media type is
read from the leading bytes, with a look inside zip containers for office and
epub formats.
"""

import zipfile
from pathlib import Path
from typing import Dict, Optional, Union

from itemzip.core.logging import logger

DEFAULT_MEDIA_TYPE = "application/octet-stream"
HEADER_SIZE = 8192

# Order matters: longer signatures sharing a prefix come first
MAGIC_SIGNATURES: Dict[bytes, str] = {
    b"%PDF": "application/pdf",
    b"PK\x03\x04": "application/zip",
    b"PK\x05\x06": "application/zip",
    b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1": "application/x-ole-storage",
    b"\x89PNG\r\n\x1a\n": "image/png",
    b"\xff\xd8\xff": "image/jpeg",
    b"GIF87a": "image/gif",
    b"GIF89a": "image/gif",
    b"II*\x00": "image/tiff",
    b"MM\x00*": "image/tiff",
    b"BM": "image/bmp",
    b"\x00\x00\x01\x00": "image/x-icon",
    b"\x1f\x8b": "application/gzip",
    b"7z\xbc\xaf\x27\x1c": "application/x-7z-compressed",
    b"Rar!\x1a\x07": "application/x-rar",
    b"ID3": "audio/mpeg",
    b"\xff\xfb": "audio/mpeg",
    b"OggS": "audio/ogg",
    b"fLaC": "audio/flac",
    b"\x1aE\xdf\xa3": "video/webm",
    b"{\\rtf": "text/rtf",
    b"<?xml": "text/xml",
}

# Zip-based formats, detected by a marker member
ZIP_INTERNAL_MARKERS: Dict[str, str] = {
    "word/document.xml": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xl/workbook.xml": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "ppt/presentation.xml": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "META-INF/container.xml": "application/epub+zip",
    "h5p.json": "application/zip",
}


class MediaTypeSniffer:
    """Stateless content sniffer: bytes -> media type string.

    Instantiated once per process and injected into the import pipeline.
    """

    def detect_bytes(self, data: bytes) -> str:
        """Detect the media type of a content header."""
        riff = self._detect_riff(data)
        if riff:
            return riff

        if len(data) > 8 and data[4:8] == b"ftyp":
            return "video/quicktime" if data[8:10] == b"qt" else "video/mp4"

        for signature, media_type in MAGIC_SIGNATURES.items():
            if data.startswith(signature):
                return media_type

        markup = self._detect_markup(data)
        if markup:
            return markup

        if self._looks_like_text(data):
            return "text/plain"

        return DEFAULT_MEDIA_TYPE

    def detect_file(self, path: Union[str, Path]) -> str:
        """Detect the media type of a file on disk (blocking)."""
        with open(path, "rb") as f:
            header = f.read(HEADER_SIZE)

        media_type = self.detect_bytes(header)
        if media_type == "application/zip":
            return self._detect_zip_based_format(path) or media_type
        return media_type

    @staticmethod
    def _detect_riff(data: bytes) -> Optional[str]:
        if not data.startswith(b"RIFF") or len(data) < 12:
            return None
        return {
            b"WEBP": "image/webp",
            b"WAVE": "audio/wav",
            b"AVI ": "video/x-msvideo",
        }.get(data[8:12])

    @staticmethod
    def _detect_markup(data: bytes) -> Optional[str]:
        text_start = data[:1000].decode("utf-8", errors="ignore").lstrip().lower()
        if text_start.startswith("<!doctype html") or text_start.startswith("<html"):
            return "text/html"
        if text_start.startswith("<svg"):
            return "image/svg+xml"
        return None

    @staticmethod
    def _looks_like_text(data: bytes) -> bool:
        if not data:
            return False
        if b"\x00" in data:
            return False
        try:
            data.decode("utf-8")
        except UnicodeDecodeError as e:
            # A multi-byte character may be cut at the end of the header
            if e.start < len(data) - 4:
                return False
        return True

    @staticmethod
    def _detect_zip_based_format(path: Union[str, Path]) -> Optional[str]:
        try:
            with zipfile.ZipFile(path) as zf:
                names = set(zf.namelist())
        except (zipfile.BadZipFile, OSError) as e:
            logger.debug(f"Failed to inspect zip container {path}: {e}")
            return None

        for marker, media_type in ZIP_INTERNAL_MARKERS.items():
            if marker in names:
                return media_type
        return None


media_type_sniffer = MediaTypeSniffer()
