"""Item service boundary.

The host application owns item persistence. The archive pipelines only need
the operations declared on ``ItemService``; the host injects its own
implementation, and ``InMemoryItemService`` serves local runs and tests.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Set
from uuid import uuid4

from itemzip.core.exceptions import ItemNotFoundError
from itemzip.schemas.item import ContentItem, ItemSpec, ItemType


class ItemService(ABC):
    """Operations the archive pipelines need from the item store."""

    @abstractmethod
    async def get_item(self, item_id: str) -> ContentItem:
        """Fetch one item.

        Raises:
            ItemNotFoundError: If the item does not exist
        """
        pass

    @abstractmethod
    async def get_public_item(self, item_id: str) -> ContentItem:
        """Fetch an item that is publicly visible.

        Raises:
            ItemNotFoundError: If the item does not exist or is not public
        """
        pass

    @abstractmethod
    async def get_children(self, item: ContentItem) -> List[ContentItem]:
        """List the immediate children of a folder, as currently persisted."""
        pass

    @abstractmethod
    async def create_items(
        self, parent_id: Optional[str], specs: List[ItemSpec]
    ) -> List[ContentItem]:
        """Create a batch of items under a parent (None for the root).

        Returned items are in the same order as ``specs``.
        """
        pass

    @abstractmethod
    async def update_description(self, item_id: str, description: str) -> None:
        """Replace the description of an item."""
        pass


class InMemoryItemService(ItemService):
    """Dict-backed item store."""

    def __init__(self):
        """Initialize an empty store."""
        self._items: Dict[str, ContentItem] = {}
        self._parents: Dict[str, Optional[str]] = {}
        self._children: Dict[Optional[str], List[str]] = {None: []}
        self._public: Set[str] = set()
        self._lock = asyncio.Lock()

    def add(
        self, spec: ItemSpec, parent_id: Optional[str] = None, public: bool = False
    ) -> ContentItem:
        """Insert an item synchronously (fixtures and seeding)."""
        if parent_id is not None:
            self._require_folder(parent_id)

        item = ContentItem(id=str(uuid4()), **spec.model_dump())
        self._items[item.id] = item
        self._parents[item.id] = parent_id
        self._children.setdefault(parent_id, []).append(item.id)
        self._children[item.id] = []
        if public:
            self._public.add(item.id)
        return item

    def roots(self) -> List[ContentItem]:
        """Items created without a parent."""
        return [self._items[item_id] for item_id in self._children[None]]

    def _require_folder(self, item_id: str) -> ContentItem:
        item = self._items.get(item_id)
        if item is None:
            raise ItemNotFoundError(data=item_id)
        if item.kind != ItemType.FOLDER:
            raise ItemNotFoundError(f"Item {item_id} is not a folder", data=item_id)
        return item

    def _is_public(self, item_id: str) -> bool:
        current: Optional[str] = item_id
        while current is not None:
            if current in self._public:
                return True
            current = self._parents.get(current)
        return False

    async def get_item(self, item_id: str) -> ContentItem:
        """Fetch one item."""
        item = self._items.get(item_id)
        if item is None:
            raise ItemNotFoundError(data=item_id)
        return item

    async def get_public_item(self, item_id: str) -> ContentItem:
        """Fetch an item visible through itself or a public ancestor."""
        item = await self.get_item(item_id)
        if not self._is_public(item_id):
            raise ItemNotFoundError(data=item_id)
        return item

    async def get_children(self, item: ContentItem) -> List[ContentItem]:
        """List children in insertion order."""
        return [self._items[child_id] for child_id in self._children.get(item.id, [])]

    async def create_items(
        self, parent_id: Optional[str], specs: List[ItemSpec]
    ) -> List[ContentItem]:
        """Create all items of a batch under the same parent."""
        async with self._lock:
            return [self.add(spec, parent_id) for spec in specs]

    async def update_description(self, item_id: str, description: str) -> None:
        """Replace the description of an item."""
        item = await self.get_item(item_id)
        self._items[item_id] = item.model_copy(update={"description": description})
