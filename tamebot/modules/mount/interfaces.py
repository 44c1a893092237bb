"""
Collaborator contracts consumed by the mount encounter service.

Protocol classes define what the encounter flow needs from storage, the
resource ledger, inventory and the mount registry. SQL-backed
implementations live in ``repository.py`` and ``tamebot.modules.character``;
tests swap in in-memory fakes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, List, Optional, Protocol

if TYPE_CHECKING:
    from tamebot.modules.mount.encounter import Encounter


# ============================================================================
# VALUE OBJECTS
# ============================================================================


@dataclass(frozen=True)
class CharacterSnapshot:
    id: int
    user_id: str
    name: str
    current_stamina: int
    max_stamina: int
    current_hearts: int = 0
    max_hearts: int = 0
    job: Optional[str] = None
    has_mount: bool = False


@dataclass(frozen=True)
class StaminaDebit:
    """Result of a stamina debit. ``ok`` is False when the character had none left."""

    ok: bool
    new_balance: int

    @property
    def exhausted(self) -> bool:
        return not self.ok


@dataclass(frozen=True)
class CurrencyDebit:
    """
    Result of a token debit.

    ``replayed`` marks a debit whose reference was already charged; nothing
    new was taken and ``charged`` repeats the original amount.
    """

    ok: bool
    new_balance: int
    charged: int = 0
    replayed: bool = False

    @property
    def insufficient(self) -> bool:
        return not self.ok


@dataclass(frozen=True)
class InventoryEntry:
    item_name: str
    quantity: int


@dataclass
class MountSnapshot:
    user_id: str
    character_id: int
    name: str
    species: str
    level: str
    stamina: int
    owner: str
    region: str
    traits: List[str] = field(default_factory=list)
    is_rare: bool = False
    source_encounter_id: str = ""
    current_stamina: Optional[int] = None
    last_mount_travel: Optional[date] = None
    id: Optional[int] = None


# ============================================================================
# CONTRACTS
# ============================================================================


class EncounterStore(Protocol):
    async def get(self, encounter_id: str) -> Optional[Encounter]:
        """Return the latest persisted encounter, or None."""
        ...

    async def put(self, encounter: Encounter) -> Encounter:
        """Insert or update; returns the encounter with its new version."""
        ...

    async def delete(self, encounter_id: str) -> None:
        ...


class ResourceLedger(Protocol):
    async def get_character(self, user_id: str, character_name: str) -> Optional[CharacterSnapshot]:
        ...

    async def get_character_by_id(self, character_id: int) -> Optional[CharacterSnapshot]:
        ...

    async def debit_stamina(self, character_id: int, amount: int) -> StaminaDebit:
        """Atomically take stamina; never drives it below zero."""
        ...

    async def credit_stamina(self, character_id: int, amount: int) -> int:
        ...

    async def credit_hearts(self, character_id: int, amount: int) -> int:
        ...

    async def get_balance(self, user_id: str) -> int:
        ...

    async def debit_currency(self, user_id: str, amount: int, reference: str) -> CurrencyDebit:
        """Atomically take tokens; idempotent per reference."""
        ...

    async def mark_has_mount(self, character_id: int) -> None:
        ...


class Inventory(Protocol):
    async def list_items(self, character_id: int) -> List[InventoryEntry]:
        """Raw rows; several entries may share a name."""
        ...

    async def consume_item(self, character_id: int, item_name: str, quantity: int = 1) -> bool:
        """Remove units of an item; False when not enough are held."""
        ...


class MountRegistry(Protocol):
    async def create_mount(self, mount: MountSnapshot) -> MountSnapshot:
        """Persist a mount; returns the existing one for a repeated source encounter."""
        ...

    async def get_for_character(self, character_id: int) -> Optional[MountSnapshot]:
        ...

    async def save(self, mount: MountSnapshot) -> MountSnapshot:
        ...
