"""Archive naming convention shared by the export and import pipelines.

Encoding maps an item to the name (and, for textual kinds, the content) of its
archive entry. Decoding classifies a single extracted directory entry and turns
it back into an item creation request.

    Folder      <name>/                 description: <name>/<name>.description.html
    Document    <name>.graasp           inline text
    Link        <name>.url              [InternetShortcut] / URL=<url>
    App         <name>.url              [InternetShortcut] / URL=<url> / AppURL=1
    File        <name>[.<ext>]          raw bytes, extension derived from media type
    Leaf desc.  <entry>.description.html
"""

import mimetypes
import os
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from itemzip.core.exceptions import InvalidArchiveStructureError
from itemzip.platform.utils.filename_utils import numbered_name, safe_segment
from itemzip.schemas.item import (
    FILE_ITEM_TYPES,
    AppPayload,
    DocumentPayload,
    FilePayload,
    FolderPayload,
    ItemSpec,
    ItemType,
    LinkPayload,
)

DESCRIPTION_EXTENSION = ".description.html"
DOCUMENT_EXTENSION = ".graasp"
LINK_EXTENSION = ".url"

SHORTCUT_HEADER = "[InternetShortcut]"
URL_PREFIX = "URL="
APP_URL_PREFIX = "AppURL="

# macOS archivers add resource forks under this top-level directory
MACOS_RESOURCE_DIR = "__MACOSX"

KNOWN_SUFFIXES = (DOCUMENT_EXTENSION, LINK_EXTENSION)

# Longest suffix first; a bare sidecar follows a folder or a binary file
SIDECAR_TARGET_KINDS = (
    (f"{LINK_EXTENSION}{DESCRIPTION_EXTENSION}", (ItemType.LINK, ItemType.APP)),
    (f"{DOCUMENT_EXTENSION}{DESCRIPTION_EXTENSION}", (ItemType.DOCUMENT,)),
    (DESCRIPTION_EXTENSION, (ItemType.FOLDER, *FILE_ITEM_TYPES)),
)


class EntryKind(str, Enum):
    """What an extracted directory entry decodes to."""

    HIDDEN = "hidden"
    FOLDER = "folder"
    DESCRIPTION = "description"
    SHORTCUT = "shortcut"
    DOCUMENT = "document"
    FILE = "file"


@dataclass(frozen=True)
class DescriptionTarget:
    """Item a description sidecar belongs to.

    ``is_parent`` marks the containing folder's own description, in which case
    ``name`` is None. ``kinds`` are the item types the sidecar suffix allows, so
    that a document and a link sharing a name each get their own description.
    """

    name: Optional[str]
    is_parent: bool = False
    kinds: Tuple[ItemType, ...] = ()


# ---------------------------------------------------------------------------
# Encode
# ---------------------------------------------------------------------------


def build_shortcut_content(url: str, is_app: bool = False) -> str:
    """Build the text of a ``.url`` shortcut for a link or an app."""
    content = f"{SHORTCUT_HEADER}\n{URL_PREFIX}{url}\n"
    if is_app:
        content += f"{APP_URL_PREFIX}1\n"
    return content


def file_entry_name(name: str, mimetype: Optional[str]) -> str:
    """Name of a binary file entry.

    Keeps the name's own extension; otherwise derives one from the media type.
    """
    name = safe_segment(name)
    _, ext = os.path.splitext(name)
    if ext or not mimetype:
        return name
    return f"{name}{mimetypes.guess_extension(mimetype) or ''}"


def encode_entry_name(item: ItemSpec) -> str:
    """Archive entry name (last path segment) of an item."""
    payload = item.payload
    match payload:
        case FolderPayload():
            return safe_segment(item.name)
        case DocumentPayload():
            return f"{safe_segment(item.name)}{DOCUMENT_EXTENSION}"
        case LinkPayload() | AppPayload():
            return f"{safe_segment(item.name)}{LINK_EXTENSION}"
        case FilePayload():
            return file_entry_name(item.name, payload.mimetype)
    raise ValueError(f"Unsupported item kind: {item.kind}")


def encode_content(item: ItemSpec) -> Optional[bytes]:
    """Inline content of an item's entry.

    Returns None for folders (directory entries) and files (streamed from storage).
    """
    payload = item.payload
    match payload:
        case DocumentPayload():
            return payload.content.encode("utf-8")
        case LinkPayload():
            return build_shortcut_content(payload.url).encode("utf-8")
        case AppPayload():
            return build_shortcut_content(payload.url, is_app=True).encode("utf-8")
        case _:
            return None


def description_entry_name(entry_name: str) -> str:
    """Name of the description sidecar of an entry.

    For folders the sidecar lives inside the folder itself.
    """
    return f"{entry_name}{DESCRIPTION_EXTENSION}"


def unique_entry_names(
    names: Iterable[str],
    reserved: Iterable[str] = (),
    with_sidecar: Optional[Iterable[bool]] = None,
) -> List[str]:
    """Make sibling entry names unique, keeping the first occurrence as is.

    Later duplicates (and names in ``reserved``) get a ' (n)' counter before
    their extension, in order, so the result only depends on the input order.
    Entries flagged in ``with_sidecar`` also need a free description name,
    which is then taken as well.
    """
    names = list(names)
    flags = list(with_sidecar) if with_sidecar is not None else [False] * len(names)
    taken = set(reserved)
    result = []
    for name, has_sidecar in zip(names, flags):
        candidate = name
        index = 1
        while candidate in taken or (
            has_sidecar and description_entry_name(candidate) in taken
        ):
            candidate = numbered_name(name, index, KNOWN_SUFFIXES)
            index += 1
        taken.add(candidate)
        if has_sidecar:
            taken.add(description_entry_name(candidate))
        result.append(candidate)
    return result


# ---------------------------------------------------------------------------
# Decode
# ---------------------------------------------------------------------------


def is_hidden(filename: str) -> bool:
    """Hidden/system entries (.DS_Store, __MACOSX...) are never imported."""
    return filename.startswith(".") or filename == MACOS_RESOURCE_DIR


def classify_entry(filename: str, is_dir: bool) -> EntryKind:
    """Classify one directory entry by its name."""
    if is_hidden(filename):
        return EntryKind.HIDDEN
    if is_dir:
        return EntryKind.FOLDER
    if filename.endswith(DESCRIPTION_EXTENSION):
        return EntryKind.DESCRIPTION
    if filename.endswith(LINK_EXTENSION):
        return EntryKind.SHORTCUT
    if filename.endswith(DOCUMENT_EXTENSION):
        return EntryKind.DOCUMENT
    return EntryKind.FILE


def strip_suffix(filename: str, suffix: str) -> str:
    """Remove a known suffix; dots elsewhere in the name are kept."""
    if suffix and filename.endswith(suffix):
        return filename[: -len(suffix)]
    return filename


def parse_shortcut(content: str) -> Tuple[str, bool]:
    """Read a ``.url`` shortcut.

    Returns:
        Tuple of (url, is_app)

    Raises:
        InvalidArchiveStructureError: If the second line is not ``URL=<value>``
    """
    lines = content.splitlines()
    if len(lines) < 2 or not lines[1].startswith(URL_PREFIX):
        raise InvalidArchiveStructureError("Shortcut file has no URL line", data=content[:200])

    url = lines[1][len(URL_PREFIX) :].strip()
    is_app = len(lines) > 2 and "1" in lines[2]
    return url, is_app


def decode_folder(filename: str) -> ItemSpec:
    """Folder entries keep their name verbatim."""
    return ItemSpec(name=filename, payload=FolderPayload())


def decode_shortcut(filename: str, content: str) -> ItemSpec:
    """Decode a ``.url`` entry into a link or app."""
    url, is_app = parse_shortcut(content)
    name = strip_suffix(filename, LINK_EXTENSION)
    payload = AppPayload(url=url) if is_app else LinkPayload(url=url)
    return ItemSpec(name=name, payload=payload)


def decode_document(filename: str, content: str) -> ItemSpec:
    """Decode a ``.graasp`` entry into a document."""
    return ItemSpec(
        name=strip_suffix(filename, DOCUMENT_EXTENSION),
        payload=DocumentPayload(content=content),
    )


def decode_file(
    filename: str,
    path: str,
    mimetype: str,
    size: int,
    kind: ItemType,
    truncate_limit: int,
) -> ItemSpec:
    """Build the creation request of an uploaded binary file.

    Args:
        filename: Entry name, kept whole in the payload
        path: Storage key returned by the uploader
        mimetype: Sniffed media type
        size: Size in bytes
        kind: File item type of the configured storage
        truncate_limit: Maximum length of the item name
    """
    if kind not in FILE_ITEM_TYPES:
        raise ValueError(f"{kind} is not a file item type")

    return ItemSpec(
        name=filename[:truncate_limit],
        payload=FilePayload(kind=kind, name=filename, path=path, mimetype=mimetype, size=size),
        settings=build_settings(mimetype),
    )


def build_settings(mimetype: str) -> dict:
    """Item settings for a new file; images get thumbnails."""
    if mimetype.startswith("image"):
        return {"hasThumbnail": True}
    return {}


def description_target(filename: str, folder_name: str) -> DescriptionTarget:
    """Resolve which item a description sidecar belongs to.

    Args:
        filename: Sidecar filename (ends with ``.description.html``)
        folder_name: Name of the directory containing the sidecar
    """
    if filename == f"{folder_name}{DESCRIPTION_EXTENSION}":
        return DescriptionTarget(name=None, is_parent=True)

    for suffix, kinds in SIDECAR_TARGET_KINDS:
        if filename.endswith(suffix):
            return DescriptionTarget(name=strip_suffix(filename, suffix), kinds=kinds)

    raise ValueError(f"{filename} is not a description file")
