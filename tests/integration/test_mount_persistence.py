"""
Integration tests for the SQL adapters against PostgreSQL (testcontainers).

Covers the encounter store, the resource ledger, inventory and the mount
registry, then one full encounter through MountEncounterService.
"""

from datetime import date

import pytest

from tamebot.core.config.manager import ConfigManager
from tamebot.core.database.service import DatabaseService
from tamebot.core.logging.logger import get_logger
from tamebot.database.models import Character, InventoryItem, LedgerEntry, UserAccount
from tamebot.modules.character import InventoryService, LedgerService
from tamebot.modules.mount.encounter import Encounter, EncounterState
from tamebot.modules.mount.interfaces import MountSnapshot
from tamebot.modules.mount.repository import SqlEncounterStore, SqlMountRegistry
from tamebot.modules.mount.service import MountEncounterService
from tamebot.modules.mount.steps import StepKind
from tamebot.modules.shared.exceptions import EncounterConflictError, NotFoundError
from tests.conftest import CHARACTER_NAME, USER_ID, RecordingEventBus, ScriptedRandom

pytestmark = [pytest.mark.integration, pytest.mark.database, pytest.mark.asyncio]


async def insert_character(stamina: int = 5, **fields) -> int:
    async with DatabaseService.get_transaction() as session:
        character = Character(
            user_id=int(USER_ID),
            name=CHARACTER_NAME,
            current_stamina=stamina,
            max_stamina=max(stamina, 5),
            current_hearts=3,
            max_hearts=3,
            **fields,
        )
        session.add(character)
        await session.flush()
        return character.id


async def insert_account(tokens: int) -> None:
    async with DatabaseService.get_transaction() as session:
        session.add(UserAccount(user_id=int(USER_ID), tokens=tokens))


@pytest.fixture
def events() -> RecordingEventBus:
    return RecordingEventBus()


@pytest.fixture
def ledger(database, events) -> LedgerService:
    return LedgerService(ConfigManager, events, get_logger("tests.ledger"))


@pytest.fixture
def inventory(database, events) -> InventoryService:
    return InventoryService(ConfigManager, events, get_logger("tests.inventory"))


def snapshot(character_id: int, encounter_id: str = "enc-1") -> MountSnapshot:
    return MountSnapshot(
        user_id=USER_ID,
        character_id=character_id,
        name="Epona",
        species="Horse",
        level="Basic",
        stamina=2,
        current_stamina=2,
        owner=CHARACTER_NAME,
        region="Rudania",
        traits=["coatMane: Black Coat + Black Mane"],
        source_encounter_id=encounter_id,
    )


class TestEncounterStore:
    async def test_put_get_roundtrip(self, database):
        """Versions start at 1 and increase with every write."""
        # Arrange
        store = SqlEncounterStore()

        # Act
        created = await store.put(Encounter.placeholder("enc-1", "Rudania"))
        created.environment = "Forest"
        updated = await store.put(created)
        loaded = await store.get("enc-1")

        # Assert
        assert created.version == 1
        assert updated.version == 2
        assert loaded.environment == "Forest"
        assert loaded.version == 2
        assert loaded.state is EncounterState.DISCOVERY

    async def test_stale_write_conflicts(self, database):
        store = SqlEncounterStore()
        first = await store.put(Encounter.placeholder("enc-1", "Rudania"))
        second = await store.get("enc-1")
        await store.put(first)

        with pytest.raises(EncounterConflictError):
            await store.put(second)

        assert (await store.get("enc-1")).version == 2

    async def test_new_encounter_must_be_unversioned(self, database):
        store = SqlEncounterStore()
        encounter = Encounter.placeholder("enc-1", "Vhintl")
        encounter.version = 3

        with pytest.raises(EncounterConflictError):
            await store.put(encounter)

    async def test_delete(self, database):
        store = SqlEncounterStore()
        await store.put(Encounter.placeholder("enc-1", "Rudania"))

        await store.delete("enc-1")
        await store.delete("enc-1")

        assert await store.get("enc-1") is None


class TestLedger:
    async def test_stamina_never_goes_negative(self, ledger, events):
        character_id = await insert_character(stamina=1)

        first = await ledger.debit_stamina(character_id, 1)
        second = await ledger.debit_stamina(character_id, 1)

        assert (first.ok, first.new_balance) == (True, 0)
        assert second.exhausted
        assert (await ledger.get_character_by_id(character_id)).current_stamina == 0
        assert events.names() == ["character.stamina.debited"]

    async def test_unknown_character(self, ledger):
        with pytest.raises(NotFoundError):
            await ledger.debit_stamina(999, 1)

    async def test_credit_is_capped(self, ledger):
        character_id = await insert_character(stamina=4)

        assert await ledger.credit_stamina(character_id, 3) == 5
        assert await ledger.credit_hearts(character_id, 1) == 3

    async def test_currency_debit_is_idempotent(self, ledger):
        # Arrange
        await insert_account(50)

        # Act
        first = await ledger.debit_currency(USER_ID, 20, "enc-1:registration")
        replay = await ledger.debit_currency(USER_ID, 20, "enc-1:registration")

        # Assert
        assert (first.ok, first.charged, first.new_balance) == (True, 20, 30)
        assert replay.replayed is True
        assert replay.charged == 20
        assert await ledger.get_balance(USER_ID) == 30
        async with DatabaseService.get_session() as session:
            entry = (await session.execute(LedgerEntry.__table__.select())).one()
        assert entry.delta == -20
        assert entry.balance_after == 30

    async def test_insufficient_balance(self, ledger, events):
        await insert_account(5)

        result = await ledger.debit_currency(USER_ID, 10, "enc-1:trait:muzzleColor")

        assert result.insufficient
        assert await ledger.get_balance(USER_ID) == 5
        assert events.names() == []

    async def test_missing_account_has_zero_balance(self, ledger):
        assert await ledger.get_balance(USER_ID) == 0
        assert (await ledger.debit_currency(USER_ID, 1, "ref-1")).insufficient

    async def test_credit_creates_account_once_per_reference(self, ledger):
        assert await ledger.credit_currency(USER_ID, 25, "grant-1") == 25
        assert await ledger.credit_currency(USER_ID, 25, "grant-1") == 25
        assert await ledger.credit_currency(USER_ID, 5, "grant-2") == 30

    async def test_mark_has_mount(self, ledger):
        character_id = await insert_character()

        await ledger.mark_has_mount(character_id)

        character = await ledger.get_character(USER_ID, CHARACTER_NAME)
        assert character.has_mount is True


class TestInventory:
    async def test_consume_across_stacks(self, inventory, events):
        """Stacks are matched case-insensitively and emptied ones removed."""
        # Arrange
        character_id = await insert_character()
        async with DatabaseService.get_transaction() as session:
            session.add_all(
                [
                    InventoryItem(character_id=character_id, item_name="apple", quantity=1),
                    InventoryItem(character_id=character_id, item_name="Apple", quantity=2),
                    InventoryItem(character_id=character_id, item_name="Acorn", quantity=1),
                ]
            )

        # Act
        consumed = await inventory.consume_item(character_id, "APPLE", 2)

        # Assert
        assert consumed is True
        items = {entry.item_name: entry.quantity for entry in await inventory.list_items(character_id)}
        assert items == {"Apple": 1, "Acorn": 1}
        assert events.payload("inventory.item.consumed")["quantity"] == 2

    async def test_not_enough_units(self, inventory):
        character_id = await insert_character()
        async with DatabaseService.get_transaction() as session:
            session.add(InventoryItem(character_id=character_id, item_name="Apple", quantity=1))

        assert await inventory.consume_item(character_id, "Apple", 2) is False
        assert (await inventory.list_items(character_id))[0].quantity == 1


class TestMountRegistry:
    async def test_create_is_idempotent_per_encounter(self, database):
        registry = SqlMountRegistry()
        character_id = await insert_character()

        first = await registry.create_mount(snapshot(character_id))
        again = await registry.create_mount(snapshot(character_id))

        assert first.id is not None
        assert again.id == first.id
        assert (await registry.get_for_character(character_id)).traits == [
            "coatMane: Black Coat + Black Mane"
        ]

    async def test_save_updates_stamina(self, database):
        registry = SqlMountRegistry()
        character_id = await insert_character()
        mount = await registry.create_mount(snapshot(character_id))
        mount.current_stamina = 1
        mount.last_mount_travel = date(2026, 3, 13)

        await registry.save(mount)

        stored = await registry.get_for_character(character_id)
        assert stored.current_stamina == 1
        assert stored.last_mount_travel == date(2026, 3, 13)

    async def test_save_unknown_mount(self, database):
        with pytest.raises(NotFoundError):
            await SqlMountRegistry().save(snapshot(1, encounter_id="missing"))


class TestEncounterFlow:
    async def test_full_encounter_persists(self, ledger, inventory, events):
        """Discovery to registration against real tables."""
        # Arrange
        character_id = await insert_character(stamina=3)
        await insert_account(100)
        store = SqlEncounterStore()
        await store.put(
            Encounter(
                id="enc-db",
                village="Inariko",
                environment="Mountainous",
                mount_type="Horse",
                mount_level="Basic",
                rarity="Regular",
                mount_stamina=1,
            )
        )
        service = MountEncounterService(
            store=store,
            ledger=ledger,
            inventory=inventory,
            mounts=SqlMountRegistry(),
            config_manager=ConfigManager,
            event_bus=events,
            logger=get_logger("tests.mount.flow"),
            rng=ScriptedRandom([20, 3, 9, 9, 9], seed=99),
        )

        # Act: roll 20, corner 3+4, tame pool of two nines, skip, register
        await service.handle("enc-db", USER_ID, "roll", character_name=CHARACTER_NAME)
        await service.handle("enc-db", USER_ID, "corner")
        await service.handle("enc-db", USER_ID, "tame")
        await service.handle("enc-db", USER_ID, "skip")
        step = await service.handle("enc-db", USER_ID, "register", mount_name="Epona")

        # Assert
        assert step.kind is StepKind.REGISTERED
        assert await store.get("enc-db") is None
        assert await ledger.get_balance(USER_ID) == 80
        character = await ledger.get_character_by_id(character_id)
        assert character.current_stamina == 1
        assert character.has_mount is True
        mount = await SqlMountRegistry().get_for_character(character_id)
        assert mount.name == "Epona"
        assert mount.region == "Inariko"
        assert len(mount.traits) == 8
