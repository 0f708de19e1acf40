"""Tests for the import pipeline."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from itemzip.core.exceptions import (
    ArchiveImportError,
    InvalidArchiveStructureError,
    TreeTooDeepError,
)
from itemzip.platform.archive.parser import TreeParser
from itemzip.platform.storage.exceptions import StorageConnectionError
from itemzip.schemas.item import FolderPayload, ItemSpec, ItemType

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def _write(path: Path, content) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")
    return path


def _stored_files(storage) -> list:
    return [p for p in storage.base_path.rglob("*") if p.is_file()]


@pytest.fixture
def parser(item_service, uploader, mock_logger):
    return TreeParser(
        item_service.create_items, item_service.update_description, uploader, mock_logger
    )


@pytest.fixture
def demo_tree(tmp_path) -> Path:
    content = tmp_path / "content"
    demo = content / "Demo"
    _write(demo / "Demo.description.html", "<p>about demo</p>")
    _write(demo / "Demo_link.url", "[InternetShortcut]\nURL=https://example.org\nAppURL=1\n")
    _write(demo / "Notes.graasp", "hello")
    _write(demo / "Notes.graasp.description.html", "<p>notes</p>")
    _write(demo / "photo.png", PNG_BYTES)
    _write(demo / "Sub" / "inner.graasp", "inner")
    _write(demo / ".DS_Store", b"\x00\x00")
    return content


@pytest.mark.asyncio
async def test_imports_demo_tree(parser, item_service, demo_tree):
    created = await parser.parse(demo_tree, None)

    assert [item.name for item in created] == ["Demo"]
    demo = await item_service.get_item(created[0].id)
    assert demo.description == "<p>about demo</p>"

    children = {child.name: child for child in await item_service.get_children(demo)}
    assert sorted(children) == ["Demo_link", "Notes", "Sub", "photo.png"]

    app = children["Demo_link"]
    assert app.kind == ItemType.APP
    assert app.payload.url == "https://example.org"

    notes = children["Notes"]
    assert notes.payload.content == "hello"
    assert notes.description == "<p>notes</p>"

    photo = children["photo.png"]
    assert photo.kind == ItemType.LOCAL_FILE
    assert photo.payload.mimetype == "image/png"
    assert photo.payload.size == len(PNG_BYTES)
    assert photo.settings == {"hasThumbnail": True}

    inner = await item_service.get_children(children["Sub"])
    assert [(i.name, i.payload.content) for i in inner] == [("inner", "inner")]


@pytest.mark.asyncio
async def test_imports_under_parent(parser, item_service, demo_tree):
    parent = item_service.add(ItemSpec(name="Parent", payload=FolderPayload()))

    created = await parser.parse(demo_tree, parent.id)

    assert [c.id for c in await item_service.get_children(parent)] == [created[0].id]
    assert item_service.roots() == [parent]


@pytest.mark.asyncio
async def test_one_create_call_per_level(item_service, uploader, mock_logger, demo_tree):
    create_items = AsyncMock(side_effect=item_service.create_items)
    parser = TreeParser(create_items, item_service.update_description, uploader, mock_logger)

    await parser.parse(demo_tree, None)

    # content/, Demo/ and Demo/Sub/
    assert create_items.await_count == 3


@pytest.mark.asyncio
async def test_orphan_description_is_a_warning(parser, item_service, mock_logger, tmp_path):
    content = tmp_path / "content"
    _write(content / "Demo" / "orphan.description.html", "<p>lost</p>")
    _write(content / "Demo" / "kept.graasp", "x")

    created = await parser.parse(content, None)

    children = await item_service.get_children(created[0])
    assert [c.name for c in children] == ["kept"]
    assert children[0].description is None
    mock_logger.warning.assert_any_call(
        "Cannot find item with name orphan for orphan.description.html"
    )


@pytest.mark.asyncio
async def test_empty_files_are_imported(parser, item_service, storage, tmp_path):
    content = tmp_path / "content"
    _write(content / "Demo" / "empty.txt", b"")
    _write(content / "Demo" / "full.txt", b"data")

    created = await parser.parse(content, None)

    children = await item_service.get_children(created[0])
    assert [c.name for c in children] == ["empty.txt", "full.txt"]
    empty = children[0]
    assert empty.kind == ItemType.LOCAL_FILE
    assert empty.payload.size == 0
    assert await storage.exists(empty.payload.path)


@pytest.mark.asyncio
async def test_same_named_siblings_keep_their_own_descriptions(parser, item_service, tmp_path):
    content = tmp_path / "content"
    _write(content / "Demo" / "foo.graasp", "text")
    _write(content / "Demo" / "foo.graasp.description.html", "<p>document</p>")
    _write(content / "Demo" / "foo.url", "[InternetShortcut]\nURL=https://example.org\n")
    _write(content / "Demo" / "foo.url.description.html", "<p>link</p>")

    created = await parser.parse(content, None)

    children = await item_service.get_children(created[0])
    assert {c.kind: c.description for c in children} == {
        ItemType.DOCUMENT: "<p>document</p>",
        ItemType.LINK: "<p>link</p>",
    }


@pytest.mark.asyncio
async def test_sidecar_matches_truncated_file_name(parser, item_service, tmp_path):
    long_name = "x" * 120 + ".txt"
    content = tmp_path / "content"
    _write(content / "Demo" / long_name, b"data")
    _write(content / "Demo" / f"{long_name}.description.html", "<p>long</p>")

    created = await parser.parse(content, None)

    [child] = await item_service.get_children(created[0])
    assert child.name == long_name[:100]
    assert child.payload.name == long_name
    assert child.description == "<p>long</p>"


@pytest.mark.asyncio
async def test_failed_creation_discards_uploads(
    item_service, uploader, storage, mock_logger, tmp_path
):
    content = tmp_path / "content"
    _write(content / "a.png", PNG_BYTES)
    create_items = AsyncMock(side_effect=RuntimeError("item store down"))
    parser = TreeParser(create_items, item_service.update_description, uploader, mock_logger)

    with pytest.raises(ArchiveImportError) as exc_info:
        await parser.parse(content, None)

    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert _stored_files(storage) == []


@pytest.mark.asyncio
async def test_failed_upload_discards_level(parser, storage, tmp_path):
    content = tmp_path / "content"
    _write(content / "a.bin", b"first")
    _write(content / "b.bin", b"second")

    real_upload = storage.upload

    async def flaky_upload(source, path, mimetype):
        if source.name == "b.bin":
            raise StorageConnectionError("storage unreachable")
        await real_upload(source, path, mimetype)

    storage.upload = flaky_upload

    with pytest.raises(ArchiveImportError) as exc_info:
        await parser.parse(content, None)

    assert exc_info.value.data == {"file": "b.bin"}
    assert _stored_files(storage) == []


@pytest.mark.asyncio
async def test_invalid_shortcut_stops_import(parser, item_service, tmp_path):
    content = tmp_path / "content"
    _write(content / "Demo" / "broken.url", "no header\n")

    with pytest.raises(InvalidArchiveStructureError):
        await parser.parse(content, None)

    # The root level was created before the broken level was reached
    assert [r.name for r in item_service.roots()] == ["Demo"]


@pytest.mark.asyncio
async def test_mismatched_creation_result_discards_uploads(
    item_service, uploader, storage, mock_logger, tmp_path
):
    content = tmp_path / "content"
    _write(content / "a.graasp", "a")
    _write(content / "b.png", PNG_BYTES)
    parser = TreeParser(
        AsyncMock(return_value=[]), item_service.update_description, uploader, mock_logger
    )

    with pytest.raises(ArchiveImportError):
        await parser.parse(content, None)

    assert _stored_files(storage) == []


@pytest.mark.asyncio
async def test_non_utf8_text_entry_is_invalid(parser, storage, tmp_path):
    content = tmp_path / "content"
    _write(content / "a.png", PNG_BYTES)
    _write(content / "broken.graasp", b"\xff\xfe caf\xe9")

    with pytest.raises(InvalidArchiveStructureError) as exc_info:
        await parser.parse(content, None)

    assert exc_info.value.data == "broken.graasp"
    assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)
    # The upload of the failed level is rolled back
    assert _stored_files(storage) == []


@pytest.mark.asyncio
async def test_depth_guard(item_service, uploader, mock_logger, tmp_path):
    content = tmp_path / "content"
    _write(content / "L1" / "L2" / "L3" / "doc.graasp", "deep")
    parser = TreeParser(
        item_service.create_items,
        item_service.update_description,
        uploader,
        mock_logger,
        max_depth=2,
    )

    with pytest.raises(TreeTooDeepError):
        await parser.parse(content, None)
