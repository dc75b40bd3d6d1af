from execution.inventory_manager import InventoryManager
from farm_client import ItemCount


def test_fertilizer_count_from_dicts():
    """Raw bag dicts with long-encoded counts."""
    inv = [
        {"id": 20002, "count": 5},
        None,
        {"id": 1011, "count": {"low": 12, "high": 0}},
    ]
    mgr = InventoryManager(inv)
    assert mgr.fertilizer_count() == 12
    assert mgr.count(20002) == 5


def test_missing_fertilizer_is_zero():
    mgr = InventoryManager([ItemCount(id=20002, count=5)])
    assert mgr.count(1011) is None
    assert mgr.fertilizer_count() == 0
