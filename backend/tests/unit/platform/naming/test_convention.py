"""Tests for the archive naming convention (encode and decode)."""

import pytest

from itemzip.core.exceptions import InvalidArchiveStructureError
from itemzip.platform.naming.convention import (
    EntryKind,
    build_shortcut_content,
    classify_entry,
    decode_document,
    decode_file,
    decode_folder,
    decode_shortcut,
    description_entry_name,
    description_target,
    encode_content,
    encode_entry_name,
    file_entry_name,
    parse_shortcut,
    unique_entry_names,
)
from itemzip.schemas.item import (
    AppPayload,
    DocumentPayload,
    FilePayload,
    FolderPayload,
    ItemSpec,
    ItemType,
    LinkPayload,
)


class TestEncode:
    """Item -> entry name and content."""

    def test_folder_keeps_its_name(self):
        item = ItemSpec(name="Demo", payload=FolderPayload())
        assert encode_entry_name(item) == "Demo"
        assert encode_content(item) is None

    def test_document_gets_graasp_extension(self):
        item = ItemSpec(name="Notes", payload=DocumentPayload(content="hello"))
        assert encode_entry_name(item) == "Notes.graasp"
        assert encode_content(item) == b"hello"

    def test_link_is_an_internet_shortcut(self):
        item = ItemSpec(name="site", payload=LinkPayload(url="https://example.org"))
        assert encode_entry_name(item) == "site.url"
        assert encode_content(item) == b"[InternetShortcut]\nURL=https://example.org\n"

    def test_app_shortcut_has_app_flag(self):
        item = ItemSpec(name="tool", payload=AppPayload(url="https://app.example.org"))
        assert encode_entry_name(item) == "tool.url"
        assert encode_content(item).decode().splitlines() == [
            "[InternetShortcut]",
            "URL=https://app.example.org",
            "AppURL=1",
        ]

    def test_file_without_extension_gets_one_from_mimetype(self):
        assert file_entry_name("report", "application/pdf") == "report.pdf"

    def test_file_with_extension_is_kept(self):
        assert file_entry_name("photo.jpeg", "image/png") == "photo.jpeg"

    def test_file_with_unknown_mimetype_keeps_bare_name(self):
        assert file_entry_name("blob", "application/x-unknown-thing") == "blob"

    def test_file_content_is_streamed_not_inlined(self):
        item = ItemSpec(
            name="a.txt",
            payload=FilePayload(
                kind=ItemType.LOCAL_FILE, name="a.txt", path="files/a", mimetype="text/plain"
            ),
        )
        assert encode_entry_name(item) == "a.txt"
        assert encode_content(item) is None

    def test_path_separators_are_replaced(self):
        item = ItemSpec(name="a/b\\c", payload=FolderPayload())
        assert encode_entry_name(item) == "a_b_c"

    def test_empty_name_becomes_untitled(self):
        item = ItemSpec(name="..", payload=DocumentPayload(content=""))
        assert encode_entry_name(item) == "untitled.graasp"

    def test_encoding_is_deterministic(self):
        item = ItemSpec(name="site", payload=AppPayload(url="https://example.org"))
        assert encode_content(item) == encode_content(item)

    def test_description_entry_name(self):
        assert description_entry_name("Notes.graasp") == "Notes.graasp.description.html"
        assert description_entry_name("Demo") == "Demo.description.html"


class TestUniqueEntryNames:
    """Sibling de-duplication."""

    def test_unique_names_untouched(self):
        assert unique_entry_names(["a.url", "b.url"]) == ["a.url", "b.url"]

    def test_duplicates_get_counter_before_extension(self):
        assert unique_entry_names(["x.url", "x.url", "x.url"]) == [
            "x.url",
            "x (1).url",
            "x (2).url",
        ]

    def test_reserved_names_are_avoided(self):
        assert unique_entry_names(
            ["Demo.description.html"], reserved=["Demo.description.html"]
        ) == ["Demo.description (1).html"]

    def test_counter_skips_names_already_taken(self):
        assert unique_entry_names(["x (1).url", "x.url", "x.url"]) == [
            "x (1).url",
            "x.url",
            "x (2).url",
        ]

    def test_sidecar_name_must_be_free(self):
        assert unique_entry_names(
            ["Demo"], reserved=["Demo.description.html"], with_sidecar=[True]
        ) == ["Demo (1)"]

    def test_sidecar_name_is_taken_for_later_siblings(self):
        assert unique_entry_names(
            ["a", "a.description.html"], with_sidecar=[True, False]
        ) == ["a", "a.description (1).html"]

    def test_entries_without_sidecar_ignore_sidecar_names(self):
        assert unique_entry_names(
            ["Demo"], reserved=["Demo.description.html"], with_sidecar=[False]
        ) == ["Demo"]


class TestClassify:
    """Directory entry classification."""

    @pytest.mark.parametrize(
        "filename,is_dir,expected",
        [
            (".DS_Store", False, EntryKind.HIDDEN),
            ("__MACOSX", True, EntryKind.HIDDEN),
            ("Demo", True, EntryKind.FOLDER),
            ("site.url", False, EntryKind.SHORTCUT),
            ("Notes.graasp", False, EntryKind.DOCUMENT),
            ("Notes.graasp.description.html", False, EntryKind.DESCRIPTION),
            ("photo.png", False, EntryKind.FILE),
            ("page.html", False, EntryKind.FILE),
        ],
    )
    def test_classify_entry(self, filename, is_dir, expected):
        assert classify_entry(filename, is_dir) == expected


class TestDecode:
    """Entry -> item creation request."""

    def test_demo_link_with_app_flag_is_an_app(self):
        content = "[InternetShortcut]\nURL=https://example.org\nAppURL=1\n"
        spec = decode_shortcut("Demo_link.url", content)
        assert spec.name == "Demo_link"
        assert spec.kind == ItemType.APP
        assert spec.payload.url == "https://example.org"

    def test_shortcut_without_app_flag_is_a_link(self):
        spec = decode_shortcut("site.url", build_shortcut_content("https://example.org"))
        assert spec.kind == ItemType.LINK
        assert spec.payload.url == "https://example.org"

    def test_shortcut_with_crlf_line_endings(self):
        url, is_app = parse_shortcut("[InternetShortcut]\r\nURL=https://a.b\r\n")
        assert url == "https://a.b"
        assert is_app is False

    def test_shortcut_without_url_line_is_rejected(self):
        with pytest.raises(InvalidArchiveStructureError):
            parse_shortcut("[InternetShortcut]\n")

    def test_dotted_names_keep_inner_dots(self):
        assert decode_shortcut("v1.2.notes.url", build_shortcut_content("https://a")).name == (
            "v1.2.notes"
        )
        assert decode_document("v1.2.graasp", "x").name == "v1.2"

    def test_folder_and_document(self):
        assert decode_folder("Demo").kind == ItemType.FOLDER
        spec = decode_document("Notes.graasp", "hello")
        assert spec.name == "Notes"
        assert spec.payload.content == "hello"

    def test_file_name_is_truncated_but_payload_keeps_full_name(self):
        name = "x" * 120 + ".png"
        spec = decode_file(name, "files/ab/cd", "image/png", 10, ItemType.LOCAL_FILE, 100)
        assert spec.name == name[:100]
        assert spec.payload.name == name
        assert spec.settings == {"hasThumbnail": True}

    def test_non_image_file_has_no_thumbnail(self):
        spec = decode_file("a.pdf", "p", "application/pdf", 1, ItemType.S3_FILE, 100)
        assert spec.kind == ItemType.S3_FILE
        assert spec.settings == {}

    def test_decode_file_rejects_non_file_kind(self):
        with pytest.raises(ValueError):
            decode_file("a.pdf", "p", "application/pdf", 1, ItemType.FOLDER, 100)


class TestDescriptionTarget:
    """Sidecar -> item resolution."""

    def test_parent_description(self):
        target = description_target("Demo.description.html", "Demo")
        assert target.is_parent
        assert target.name is None

    @pytest.mark.parametrize(
        "filename,expected",
        [
            ("site.url.description.html", "site"),
            ("Notes.graasp.description.html", "Notes"),
            ("photo.png.description.html", "photo.png"),
            ("Sub.description.html", "Sub"),
        ],
    )
    def test_sibling_description(self, filename, expected):
        target = description_target(filename, "Demo")
        assert not target.is_parent
        assert target.name == expected

    @pytest.mark.parametrize(
        "filename,kinds",
        [
            ("foo.url.description.html", {ItemType.LINK, ItemType.APP}),
            ("foo.graasp.description.html", {ItemType.DOCUMENT}),
            (
                "foo.description.html",
                {ItemType.FOLDER, ItemType.LOCAL_FILE, ItemType.S3_FILE},
            ),
        ],
    )
    def test_sidecar_suffix_restricts_kinds(self, filename, kinds):
        target = description_target(filename, "Demo")
        assert target.name == "foo"
        assert set(target.kinds) == kinds


class TestBijection:
    """decode(encode(item)) == item for every textual kind."""

    @pytest.mark.parametrize(
        "item",
        [
            ItemSpec(name="Demo", payload=FolderPayload()),
            ItemSpec(name="Notes", payload=DocumentPayload(content="<p>hello</p>")),
            ItemSpec(name="site", payload=LinkPayload(url="https://example.org")),
            ItemSpec(name="tool", payload=AppPayload(url="https://example.org/app")),
        ],
    )
    def test_round_trip(self, item):
        entry_name = encode_entry_name(item)
        content = encode_content(item)
        kind = classify_entry(entry_name, is_dir=content is None)

        if kind == EntryKind.FOLDER:
            decoded = decode_folder(entry_name)
        elif kind == EntryKind.SHORTCUT:
            decoded = decode_shortcut(entry_name, content.decode())
        else:
            decoded = decode_document(entry_name, content.decode())

        assert decoded == item
