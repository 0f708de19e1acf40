"""Archive entry naming convention."""

from itemzip.platform.naming.convention import (
    DESCRIPTION_EXTENSION,
    DOCUMENT_EXTENSION,
    LINK_EXTENSION,
    DescriptionTarget,
    EntryKind,
    classify_entry,
    decode_document,
    decode_file,
    decode_folder,
    decode_shortcut,
    description_entry_name,
    description_target,
    encode_content,
    encode_entry_name,
    unique_entry_names,
)

__all__ = [
    "DESCRIPTION_EXTENSION",
    "DOCUMENT_EXTENSION",
    "LINK_EXTENSION",
    "DescriptionTarget",
    "EntryKind",
    "classify_entry",
    "decode_document",
    "decode_file",
    "decode_folder",
    "decode_shortcut",
    "description_entry_name",
    "description_target",
    "encode_content",
    "encode_entry_name",
    "unique_entry_names",
]
