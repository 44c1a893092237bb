"""
End-to-end encounter scenarios driven through ``MountEncounterService.handle``,
the same entry point the Discord view uses.
"""

import pytest

from tamebot.modules.mount.encounter import Encounter, EncounterState
from tamebot.modules.mount.steps import StepKind
from tests.conftest import CHARACTER_NAME, USER_ID


@pytest.mark.unit
@pytest.mark.asyncio
class TestEncounterScenarios:
    async def test_sneak_tame_skip_register(self, service, store, ledger, mounts, rng, events):
        """A Rudania horse found, snuck up on, tamed in one attempt and registered as Epona."""
        # Arrange
        character = ledger.add_character(stamina=3, max_stamina=3)
        ledger.balances[USER_ID] = 30
        store.seed(
            Encounter(
                id="enc-e",
                village="Rudania",
                environment="Plains",
                mount_type="Horse",
                mount_level="Basic",
                rarity="Regular",
                mount_stamina=2,
            )
        )

        # Act: discovery
        rng.push(20)
        step = await service.handle("enc-e", USER_ID, "roll", character_name=CHARACTER_NAME)
        assert step.state is EncounterState.AWAITING_ACTION

        # Act: capture
        rng.push(10)
        step = await service.handle("enc-e", USER_ID, step.actions[0].id)
        assert step.state is EncounterState.AWAITING_TAME
        assert ledger.stamina_of(character.id) == 2

        # Act: taming with a two-die pool
        rng.push(6, 7)
        step = await service.handle("enc-e", USER_ID, "tame")
        assert step.display["rolls"] == [6, 7]
        assert step.state is EncounterState.AWAITING_CUSTOMIZATION_CHOICE

        # Act: random traits, then registration
        step = await service.handle("enc-e", USER_ID, "skip")
        assert step.state is EncounterState.AWAITING_REGISTRATION
        step = await service.handle("enc-e", USER_ID, "register", mount_name="Epona")

        # Assert
        assert step.kind is StepKind.REGISTERED
        assert step.display["mount_name"] == "Epona"
        assert step.display["owner"] == CHARACTER_NAME
        assert len(step.display["mount_traits"]) == 8
        assert await store.get("enc-e") is None
        assert ledger.stamina_of(character.id) == 1
        assert ledger.balances[USER_ID] == 10
        assert ledger.characters[character.id].has_mount is True
        assert mounts.mounts[0].name == "Epona"
        assert events.names() == [
            "mount.encounter.promoted",
            "mount.maneuver.resolved",
            "mount.tame.resolved",
            "mount.customization.chosen",
            "mount.registered",
        ]

    async def test_stamina_runs_out_during_taming(self, service, store, ledger, rng, events):
        """Repeated failed attempts drain stamina until the mount escapes."""
        # Arrange
        character = ledger.add_character(stamina=2, max_stamina=2)
        store.seed(
            Encounter(
                id="enc-f",
                village="Vhintl",
                environment="Forest",
                mount_type="Bear",
                mount_level="High",
                rarity="Regular",
                mount_stamina=6,
                users=[],
                state=EncounterState.DISCOVERY,
            )
        )
        rng.push(20, 17)
        await service.handle("enc-f", USER_ID, "roll", character_name=CHARACTER_NAME)
        step = await service.handle("enc-f", USER_ID, "sneak")
        assert step.state is EncounterState.AWAITING_TAME

        # Act
        rng.push(2)
        first = await service.handle("enc-f", USER_ID, "tame")
        second = await service.handle("enc-f", USER_ID, "tame")

        # Assert
        assert first.state is EncounterState.AWAITING_TAME
        assert first.display["stamina_remaining"] == 0
        assert second.kind is StepKind.ESCAPED
        assert await store.get("enc-f") is None
        assert ledger.stamina_of(character.id) == 0
        assert events.names()[-1] == "mount.escaped"

    async def test_actions_on_escaped_encounter_are_not_found(self, service, store, ledger, rng):
        ledger.add_character(stamina=0)
        store.seed(
            Encounter(
                id="enc-g",
                village="Inariko",
                environment="Plains",
                mount_type="Mountain Goat",
                mount_level="Basic",
                rarity="Regular",
                mount_stamina=1,
            )
        )
        rng.push(20)
        await service.handle("enc-g", USER_ID, "roll", character_name=CHARACTER_NAME)
        escaped = await service.handle("enc-g", USER_ID, "corner")

        step = await service.handle("enc-g", USER_ID, "corner")

        assert escaped.kind is StepKind.ESCAPED
        assert step.kind is StepKind.NOT_FOUND

    async def test_unknown_action_id_is_rejected(self, service, store, ledger):
        ledger.add_character()
        await service.start_encounter("enc-h", "Rudania")

        step = await service.handle("enc-h", USER_ID, "teleport")

        assert step.kind is StepKind.REJECTED
        assert step.error_code == "INVALID_SELECTION"
        assert step.action_ids() == ["roll"]
