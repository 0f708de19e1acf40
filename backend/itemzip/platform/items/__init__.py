"""Item service boundary."""

from itemzip.platform.items.service import InMemoryItemService, ItemService

__all__ = ["ItemService", "InMemoryItemService"]
