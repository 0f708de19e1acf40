import os
import re
import unicodedata

UNTITLED = "untitled"


def safe_segment(name: str) -> str:
    """Return a Unicode-normalized archive path segment.

    Path separators are replaced with underscores so an item name can never
    create extra nesting. Falls back to 'untitled' for empty, '.' and '..'.
    """
    name = unicodedata.normalize("NFC", name)
    name = re.sub(r"[\\/]+", "_", name)
    name = name.replace("\x00", "")

    if name.strip() in ("", ".", ".."):
        return UNTITLED

    return name


def split_known_suffix(name: str, suffixes) -> tuple:
    """Split ``name`` into (stem, suffix) for the first matching known suffix.

    Unknown suffixes fall back to the regular extension split.
    """
    for suffix in suffixes:
        if suffix and name.endswith(suffix) and len(name) > len(suffix):
            return name[: -len(suffix)], suffix
    return os.path.splitext(name)


def numbered_name(name: str, index: int, suffixes=()) -> str:
    """Insert ' (index)' before the extension: ``notes.url`` -> ``notes (1).url``."""
    stem, suffix = split_known_suffix(name, suffixes)
    return f"{stem} ({index}){suffix}"
