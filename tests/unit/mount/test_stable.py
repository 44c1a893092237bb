"""
Unit tests for stable helpers: mount pricing and daily stamina recovery.
"""

from dataclasses import replace
from datetime import date

import pytest

from tamebot.modules.mount.interfaces import MountSnapshot
from tamebot.modules.mount.logic import (
    apply_daily_recovery,
    calculate_mount_price,
    is_low_stamina,
)
from tamebot.modules.shared.exceptions import NotFoundError
from tests.conftest import CHARACTER_NAME, USER_ID

TODAY = date(2026, 3, 14)
YESTERDAY = date(2026, 3, 13)


def make_mount(**fields) -> MountSnapshot:
    mount = MountSnapshot(
        user_id=USER_ID,
        character_id=1,
        name="Epona",
        species="Horse",
        level="Basic",
        stamina=3,
        owner=CHARACTER_NAME,
        region="Rudania",
        source_encounter_id="enc-1",
        current_stamina=3,
    )
    return replace(mount, **fields)


@pytest.mark.unit
class TestMountPrice:
    """(level base + home-region bonus) x rarity multiplier."""

    @pytest.mark.parametrize(
        "level,is_rare,species,region,expected",
        [
            ("Basic", False, "Horse", "Rudania", 50),
            ("Basic", False, "Ostrich", "Rudania", 100),
            ("Mid", False, "Wolfos", "Rudania", 100),
            ("High", True, "Bear", "Vhintl", 600),
            ("High", True, "Donkey", "Inariko", 500),
        ],
    )
    def test_price(self, level, is_rare, species, region, expected):
        assert calculate_mount_price(level, is_rare, species, region) == expected


@pytest.mark.unit
class TestDailyRecovery:
    def test_unset_stamina_starts_full(self):
        mount = make_mount(current_stamina=None)

        assert apply_daily_recovery(mount, TODAY) is True
        assert mount.current_stamina == 3

    def test_one_point_after_a_day_without_travel(self):
        mount = make_mount(current_stamina=1, last_mount_travel=YESTERDAY)

        assert apply_daily_recovery(mount, TODAY) is True
        assert mount.current_stamina == 2
        assert mount.last_mount_travel == TODAY

    def test_same_day_changes_nothing(self):
        mount = make_mount(current_stamina=1, last_mount_travel=TODAY)

        assert apply_daily_recovery(mount, TODAY) is False
        assert mount.current_stamina == 1

    def test_mount_that_never_travelled_recovers(self):
        mount = make_mount(current_stamina=1, last_mount_travel=None)

        assert apply_daily_recovery(mount, TODAY) is True
        assert mount.current_stamina == 2
        assert mount.last_mount_travel == TODAY

    def test_recovery_is_capped(self):
        mount = make_mount(current_stamina=3, last_mount_travel=YESTERDAY)

        apply_daily_recovery(mount, TODAY)

        assert mount.current_stamina == 3

    def test_low_stamina(self):
        assert is_low_stamina(make_mount(current_stamina=1))
        assert not is_low_stamina(make_mount(current_stamina=2))


@pytest.mark.unit
@pytest.mark.asyncio
class TestViewMount:
    async def test_view_applies_recovery(self, service, mounts, character):
        # Arrange
        await mounts.create_mount(make_mount(current_stamina=1, last_mount_travel=YESTERDAY))

        # Act
        mount = await service.view_mount(USER_ID, CHARACTER_NAME)

        # Assert
        assert mount.current_stamina == 2
        assert mounts.saves == 1
        assert service.mount_price(mount) == 50

    async def test_view_without_changes_does_not_save(self, service, mounts, character):
        await mounts.create_mount(make_mount(last_mount_travel=TODAY))

        await service.view_mount(USER_ID, CHARACTER_NAME)

        assert mounts.saves == 0

    async def test_character_without_mount(self, service, character):
        with pytest.raises(NotFoundError) as exc_info:
            await service.view_mount(USER_ID, CHARACTER_NAME)
        assert exc_info.value.error_code == "MOUNT_NOT_FOUND"
