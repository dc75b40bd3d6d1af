"""Execution modules: remote operations for one farm check."""

from .inventory_manager import BagEntry, InventoryManager
from .farm_executor import CycleReport, FarmExecutor, SeedPick

__all__ = [
    "BagEntry",
    "InventoryManager",
    "CycleReport",
    "FarmExecutor",
    "SeedPick",
]
