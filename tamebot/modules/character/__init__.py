"""
Character Module
================

Services
--------
- LedgerService: stamina, hearts and token balances with row locking
- InventoryService: item stacks and consumption
"""

from .inventory_service import InventoryService
from .ledger_service import LedgerService

__all__ = [
    "InventoryService",
    "LedgerService",
]
