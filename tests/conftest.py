"""
Pytest Configuration and Fixtures for Tamebot Tests
===================================================

Purpose
-------
Centralized fixtures for the Tamebot test suite.

Responsibilities
----------------
- In-memory fakes for the encounter store, ledger, inventory and mount registry
- Scripted dice for reproducible encounter outcomes
- A recording event bus for asserting emitted domain events
- Testcontainers PostgreSQL for integration tests

Architecture Notes
------------------
- Unit tests use fakes (fast, isolated)
- Integration tests use testcontainers (real PostgreSQL through DatabaseService)
"""

from __future__ import annotations

import os
import tempfile

# Must be set before tamebot.core.config loads the environment
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("LOGS_DIR", tempfile.mkdtemp(prefix="tamebot-logs-"))

import random
from collections import deque
from dataclasses import replace
from datetime import date
from typing import Any, Dict, Generator, Iterable, List, Optional, Tuple

import pytest
import pytest_asyncio
from testcontainers.postgres import PostgresContainer

from tamebot.core.config.manager import ConfigManager
from tamebot.core.logging.logger import get_logger
from tamebot.modules.mount.encounter import Encounter, EncounterState, Participant
from tamebot.modules.mount.interfaces import (
    CharacterSnapshot,
    CurrencyDebit,
    InventoryEntry,
    MountSnapshot,
    StaminaDebit,
)
from tamebot.modules.mount.service import MountEncounterService
from tamebot.modules.shared.exceptions import EncounterConflictError

logger = get_logger(__name__)

USER_ID = "100"
OTHER_USER_ID = "200"
CHARACTER_NAME = "Link"


# ============================================================================
# DICE
# ============================================================================


class ScriptedRandom(random.Random):
    """
    ``random.Random`` whose ``randint`` returns queued values first.

    Once the queue is empty it falls back to the seeded generator, so only
    the rolls a test cares about need scripting.
    """

    def __init__(self, rolls: Iterable[int] = (), seed: int = 1234) -> None:
        super().__init__(seed)
        self.queue: deque[int] = deque(rolls)
        self.randint_calls: List[Tuple[int, int]] = []

    def push(self, *rolls: int) -> None:
        self.queue.extend(rolls)

    def randint(self, a: int, b: int) -> int:
        self.randint_calls.append((a, b))
        if self.queue:
            return self.queue.popleft()
        return super().randint(a, b)


# ============================================================================
# FAKES
# ============================================================================


class FakeEncounterStore:
    """Keeps serialized documents, so every ``get`` returns a fresh copy."""

    def __init__(self) -> None:
        self.documents: Dict[str, Dict[str, Any]] = {}
        self.puts = 0
        self.deleted: List[str] = []

    async def get(self, encounter_id: str) -> Optional[Encounter]:
        document = self.documents.get(encounter_id)
        return Encounter.from_dict(document) if document is not None else None

    async def put(self, encounter: Encounter) -> Encounter:
        current = self.documents.get(encounter.id)
        current_version = current["version"] if current is not None else 0
        if encounter.version != current_version:
            raise EncounterConflictError(encounter.id, encounter.version, current_version)
        stored = replace(encounter, version=current_version + 1)
        self.documents[encounter.id] = stored.to_dict()
        self.puts += 1
        return Encounter.from_dict(self.documents[encounter.id])

    async def delete(self, encounter_id: str) -> None:
        self.documents.pop(encounter_id, None)
        self.deleted.append(encounter_id)

    def seed(self, encounter: Encounter) -> Encounter:
        encounter.version = 1
        self.documents[encounter.id] = encounter.to_dict()
        return encounter


class FakeLedger:
    def __init__(self) -> None:
        self.characters: Dict[int, CharacterSnapshot] = {}
        self.balances: Dict[str, int] = {}
        self.references: Dict[str, int] = {}
        self.stamina_debits: List[Tuple[int, int]] = []
        self.currency_debits: List[Tuple[str, int, str]] = []

    def add_character(
        self,
        user_id: str = USER_ID,
        name: str = CHARACTER_NAME,
        stamina: int = 5,
        max_stamina: int = 5,
        has_mount: bool = False,
    ) -> CharacterSnapshot:
        character = CharacterSnapshot(
            id=len(self.characters) + 1,
            user_id=user_id,
            name=name,
            current_stamina=stamina,
            max_stamina=max_stamina,
            current_hearts=3,
            max_hearts=3,
            has_mount=has_mount,
        )
        self.characters[character.id] = character
        return character

    def stamina_of(self, character_id: int) -> int:
        return self.characters[character_id].current_stamina

    async def get_character(self, user_id: str, character_name: str) -> Optional[CharacterSnapshot]:
        for character in self.characters.values():
            if character.user_id == str(user_id) and character.name == character_name:
                return character
        return None

    async def get_character_by_id(self, character_id: int) -> Optional[CharacterSnapshot]:
        return self.characters.get(character_id)

    async def debit_stamina(self, character_id: int, amount: int) -> StaminaDebit:
        character = self.characters[character_id]
        if character.current_stamina < amount:
            return StaminaDebit(ok=False, new_balance=character.current_stamina)
        self.characters[character_id] = replace(
            character, current_stamina=character.current_stamina - amount
        )
        self.stamina_debits.append((character_id, amount))
        return StaminaDebit(ok=True, new_balance=self.characters[character_id].current_stamina)

    async def credit_stamina(self, character_id: int, amount: int) -> int:
        character = self.characters[character_id]
        new_value = min(character.max_stamina, character.current_stamina + amount)
        self.characters[character_id] = replace(character, current_stamina=new_value)
        return new_value

    async def credit_hearts(self, character_id: int, amount: int) -> int:
        character = self.characters[character_id]
        new_value = min(character.max_hearts, character.current_hearts + amount)
        self.characters[character_id] = replace(character, current_hearts=new_value)
        return new_value

    async def get_balance(self, user_id: str) -> int:
        return self.balances.get(str(user_id), 0)

    async def debit_currency(self, user_id: str, amount: int, reference: str) -> CurrencyDebit:
        balance = self.balances.get(str(user_id), 0)
        if reference in self.references:
            return CurrencyDebit(
                ok=True, new_balance=balance, charged=self.references[reference], replayed=True
            )
        if balance < amount:
            return CurrencyDebit(ok=False, new_balance=balance)
        self.balances[str(user_id)] = balance - amount
        self.references[reference] = amount
        self.currency_debits.append((str(user_id), amount, reference))
        return CurrencyDebit(ok=True, new_balance=balance - amount, charged=amount)

    async def mark_has_mount(self, character_id: int) -> None:
        self.characters[character_id] = replace(self.characters[character_id], has_mount=True)


class FakeInventory:
    def __init__(self) -> None:
        self.stacks: Dict[int, List[List[Any]]] = {}
        self.consumed: List[Tuple[int, str, int]] = []

    def give(self, character_id: int, item_name: str, quantity: int = 1) -> None:
        self.stacks.setdefault(character_id, []).append([item_name, quantity])

    def held(self, character_id: int, item_name: str) -> int:
        return sum(
            quantity
            for name, quantity in self.stacks.get(character_id, [])
            if name.lower() == item_name.lower()
        )

    async def list_items(self, character_id: int) -> List[InventoryEntry]:
        return [
            InventoryEntry(item_name=name, quantity=quantity)
            for name, quantity in self.stacks.get(character_id, [])
            if quantity > 0
        ]

    async def consume_item(self, character_id: int, item_name: str, quantity: int = 1) -> bool:
        if self.held(character_id, item_name) < quantity:
            return False
        remaining = quantity
        for stack in self.stacks[character_id]:
            if stack[0].lower() != item_name.lower() or remaining == 0:
                continue
            taken = min(stack[1], remaining)
            stack[1] -= taken
            remaining -= taken
        self.consumed.append((character_id, item_name, quantity))
        return True


class FakeMountRegistry:
    def __init__(self) -> None:
        self.mounts: List[MountSnapshot] = []
        self.saves = 0

    async def create_mount(self, mount: MountSnapshot) -> MountSnapshot:
        for existing in self.mounts:
            if existing.source_encounter_id == mount.source_encounter_id:
                return existing
        mount.id = len(self.mounts) + 1
        self.mounts.append(mount)
        return mount

    async def get_for_character(self, character_id: int) -> Optional[MountSnapshot]:
        for mount in self.mounts:
            if mount.character_id == character_id:
                return replace(mount)
        return None

    async def save(self, mount: MountSnapshot) -> MountSnapshot:
        self.saves += 1
        for index, existing in enumerate(self.mounts):
            if existing.id == mount.id:
                self.mounts[index] = replace(mount)
                return mount
        raise AssertionError(f"unknown mount {mount.id}")


class RecordingEventBus:
    def __init__(self) -> None:
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    async def publish(self, event_name: str, data: Dict[str, Any]) -> list:
        self.events.append((event_name, dict(data)))
        return []

    def names(self) -> List[str]:
        return [name for name, _ in self.events]

    def payload(self, event_name: str) -> Optional[Dict[str, Any]]:
        for name, data in reversed(self.events):
            if name == event_name:
                return data
        return None


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture(autouse=True)
def reset_config_manager():
    """Each test starts from the YAML defaults with no overrides."""
    ConfigManager.reset()
    yield
    ConfigManager.reset()


@pytest.fixture
def rng() -> ScriptedRandom:
    return ScriptedRandom()


@pytest.fixture
def store() -> FakeEncounterStore:
    return FakeEncounterStore()


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def inventory() -> FakeInventory:
    return FakeInventory()


@pytest.fixture
def mounts() -> FakeMountRegistry:
    return FakeMountRegistry()


@pytest.fixture
def events() -> RecordingEventBus:
    return RecordingEventBus()


@pytest.fixture
def today() -> date:
    return date(2026, 3, 14)


@pytest.fixture
def service(store, ledger, inventory, mounts, events, rng, today) -> MountEncounterService:
    return MountEncounterService(
        store=store,
        ledger=ledger,
        inventory=inventory,
        mounts=mounts,
        config_manager=ConfigManager,
        event_bus=events,
        logger=get_logger("tests.mount.service"),
        rng=rng,
        today=lambda: today,
    )


@pytest.fixture
def character(ledger) -> CharacterSnapshot:
    return ledger.add_character(stamina=5)


def make_encounter(
    state: EncounterState = EncounterState.AWAITING_ACTION,
    encounter_id: str = "enc-1",
    species: str = "Horse",
    level: str = "Basic",
    rarity: str = "Regular",
    mount_stamina: int = 2,
    environment: str = "Plains",
    village: str = "Rudania",
    user_id: str = USER_ID,
    character_name: str = CHARACTER_NAME,
    **fields: Any,
) -> Encounter:
    """A promoted encounter already sitting in ``state``."""
    return Encounter(
        id=encounter_id,
        village=village,
        environment=environment,
        mount_type=species,
        mount_level=level,
        rarity=rarity,
        mount_stamina=mount_stamina,
        roller_id=user_id,
        users=[Participant(character_name=character_name, user_id=user_id)],
        state=state,
        **fields,
    )


# ============================================================================
# TESTCONTAINERS FIXTURES (Integration Tests)
# ============================================================================


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start a PostgreSQL testcontainer for integration tests.

    Scope: session (container persists across all tests)
    """
    logger.info("Starting PostgreSQL testcontainer...")
    container = PostgresContainer(image="postgres:17-alpine", driver="asyncpg")
    container.start()
    yield container
    logger.info("Stopping PostgreSQL testcontainer...")
    container.stop()


@pytest_asyncio.fixture
async def database(postgres_container):
    """
    Initialize DatabaseService against the container with a clean schema.

    Scope: function (rows are cleared after each test)
    """
    from tamebot.core.database.base import Base
    from tamebot.core.database.service import DatabaseService

    await DatabaseService.initialize(postgres_container.get_connection_url())
    await DatabaseService.create_all()
    yield DatabaseService

    async with DatabaseService.get_transaction() as session:
        for table in reversed(Base.metadata.sorted_tables):
            await session.execute(table.delete())
    await DatabaseService.shutdown()
