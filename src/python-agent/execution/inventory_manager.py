from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from constants import NORMAL_FERTILIZER_ID
from planning.models import to_int


@dataclass
class BagEntry:
    item_id: int
    count: int


class InventoryManager:
    """
    Looks up item stacks in the player's bag.
    Pure state reader - no side effects.
    """

    def __init__(self, items: Iterable[Any]):
        """Parse bag items (ItemCount objects or raw {"id", "count"} dicts)."""
        self.entries: List[BagEntry] = []
        self._parse(items)

    def _parse(self, items: Iterable[Any]) -> None:
        for item in items or []:
            if item is None:
                continue
            if isinstance(item, dict):
                item_id, count = to_int(item.get("id")), to_int(item.get("count"))
            else:
                item_id, count = to_int(getattr(item, "id", 0)), to_int(getattr(item, "count", 0))
            if item_id:
                self.entries.append(BagEntry(item_id=item_id, count=count))

    def count(self, item_id: int) -> Optional[int]:
        """Stack size of an item, None if the bag has no entry for it."""
        for entry in self.entries:
            if entry.item_id == item_id:
                return entry.count
        return None

    def fertilizer_count(self, fertilizer_id: int = NORMAL_FERTILIZER_ID) -> int:
        return self.count(fertilizer_id) or 0
