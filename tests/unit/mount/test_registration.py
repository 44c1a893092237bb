"""
Unit tests for the registration finalizer.
"""

import pytest

from tamebot.core.config.manager import ConfigManager
from tamebot.modules.mount.encounter import EncounterState
from tamebot.modules.mount.interfaces import MountSnapshot
from tamebot.modules.mount.steps import StepKind
from tests.conftest import CHARACTER_NAME, USER_ID, make_encounter


@pytest.fixture
def ready(store):
    return store.seed(
        make_encounter(
            EncounterState.AWAITING_REGISTRATION,
            tame_status=True,
            traits={"coatMane": "Buckskin Coat + Black Mane", "eyeColor": "Amber"},
            total_spent=100,
        )
    )


@pytest.mark.unit
@pytest.mark.asyncio
class TestRegistration:
    async def test_registers_mount_and_removes_encounter(self, service, store, ledger, mounts, events, character, ready):
        # Arrange
        ledger.balances[USER_ID] = 50

        # Act
        step = await service.handle("enc-1", USER_ID, "register", mount_name="  Epona ")

        # Assert
        assert step.kind is StepKind.REGISTERED
        assert step.state is EncounterState.REGISTERED
        assert step.title == "Epona joins the stable"
        assert step.display["owner"] == CHARACTER_NAME
        mount = mounts.mounts[0]
        assert mount.name == "Epona"
        assert mount.species == "Horse"
        assert mount.stamina == 2
        assert mount.region == "Rudania"
        assert mount.traits == ["coatMane: Buckskin Coat + Black Mane", "eyeColor: Amber"]
        assert mount.source_encounter_id == "enc-1"
        assert ledger.characters[character.id].has_mount is True
        assert ledger.currency_debits == [(USER_ID, 20, "enc-1:registration")]
        assert store.deleted == ["enc-1"]
        assert await store.get("enc-1") is None
        assert events.payload("mount.registered")["total_spent"] == 100

    @pytest.mark.parametrize("name", [None, "", "   ", "x" * 65])
    async def test_invalid_names_are_rejected(self, service, store, ledger, mounts, character, ready, name):
        ledger.balances[USER_ID] = 50

        step = await service.register("enc-1", USER_ID, name)

        assert step.kind is StepKind.REJECTED
        assert step.error_code == "VALIDATION_MOUNT_NAME"
        assert ledger.currency_debits == []
        assert mounts.mounts == []

    async def test_longest_name_is_accepted(self, service, ledger, mounts, character, ready):
        ledger.balances[USER_ID] = 20

        step = await service.register("enc-1", USER_ID, "y" * 64)

        assert step.kind is StepKind.REGISTERED

    async def test_fee_must_be_covered(self, service, store, ledger, mounts, character, ready):
        """A short balance leaves the encounter waiting for registration."""
        ledger.balances[USER_ID] = 19

        step = await service.register("enc-1", USER_ID, "Epona")

        assert step.kind is StepKind.REJECTED
        assert step.error_code == "INSUFFICIENT_TOKENS"
        assert step.action_ids() == ["register"]
        assert mounts.mounts == []
        assert (await store.get("enc-1")).state is EncounterState.AWAITING_REGISTRATION

    async def test_one_mount_per_character(self, service, ledger, mounts, ready):
        ledger.add_character(has_mount=True)
        ledger.balances[USER_ID] = 50

        step = await service.register("enc-1", USER_ID, "Epona")

        assert step.kind is StepKind.REJECTED
        assert step.error_code == "INVALID_REGISTER"
        assert ledger.currency_debits == []

    async def test_interrupted_registration_resumes(self, service, store, ledger, mounts, ready):
        """Fee charged and mount created, but the encounter survived: finish without recharging."""
        # Arrange
        character = ledger.add_character(has_mount=True)
        ledger.references["enc-1:registration"] = 20
        await mounts.create_mount(
            MountSnapshot(
                user_id=USER_ID,
                character_id=character.id,
                name="Epona",
                species="Horse",
                level="Basic",
                stamina=2,
                owner=CHARACTER_NAME,
                region="Rudania",
                source_encounter_id="enc-1",
            )
        )

        # Act
        step = await service.register("enc-1", USER_ID, "Epona")

        # Assert
        assert step.kind is StepKind.REGISTERED
        assert len(mounts.mounts) == 1
        assert ledger.currency_debits == []
        assert store.deleted == ["enc-1"]

    async def test_free_registration(self, service, ledger, mounts, character, ready):
        ConfigManager.set_override("mount.registration_fee", 0)

        step = await service.register("enc-1", USER_ID, "Epona")

        assert step.kind is StepKind.REGISTERED
        assert ledger.currency_debits == []

    async def test_register_before_customization_is_rejected(self, service, store, ledger, character):
        store.seed(make_encounter(EncounterState.AWAITING_CUSTOMIZATION_CHOICE))
        ledger.balances[USER_ID] = 50

        step = await service.register("enc-1", USER_ID, "Epona")

        assert step.kind is StepKind.REJECTED
        assert step.error_code == "INVALID_STATE_TRANSITION"
        assert ledger.currency_debits == []
