"""
ORM models. Importing this package registers every mapper on Base.
"""

from tamebot.database.models.character import Character
from tamebot.database.models.inventory import InventoryItem
from tamebot.database.models.ledger_entry import LedgerEntry
from tamebot.database.models.mount import Mount
from tamebot.database.models.mount_encounter import MountEncounterRecord
from tamebot.database.models.user_account import UserAccount

__all__ = [
    "Character",
    "InventoryItem",
    "LedgerEntry",
    "Mount",
    "MountEncounterRecord",
    "UserAccount",
]
