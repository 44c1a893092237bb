"""
Unit tests for the outcome resolver.

Dice are scripted through ScriptedRandom so every outcome is exact.
"""

import pytest

from tamebot.core.config.manager import ConfigManager
from tamebot.modules.mount import constants as C
from tamebot.modules.mount.resolver import (
    DEFAULT_SETTINGS,
    Maneuver,
    ResolverSettings,
    evaluate_taming,
    is_promoting_roll,
    maneuver_modifier,
    resolve_distraction,
    resolve_maneuver,
    resolve_taming,
    roll_environment,
    roll_mount,
    roll_mount_stamina,
    roll_rarity,
    species_for,
)
from tests.conftest import ScriptedRandom


@pytest.mark.unit
class TestManeuverRolls:
    """d20 + modifiers against per-maneuver thresholds."""

    def test_sneak_at_threshold_succeeds(self):
        outcome = resolve_maneuver(Maneuver.SNEAK, "Plains", "Rudania", ScriptedRandom([5]))
        assert outcome.adjusted == 5
        assert outcome.success is True

    def test_sneak_below_threshold_fails(self):
        outcome = resolve_maneuver(Maneuver.SNEAK, "Plains", "Rudania", ScriptedRandom([4]))
        assert outcome.success is False

    def test_tall_grass_in_rudania_helps_sneak(self):
        # Arrange: +1 sneak in Rudania's tall grass
        rng = ScriptedRandom([4])

        # Act
        outcome = resolve_maneuver(Maneuver.SNEAK, "Tall grass", "Rudania", rng)

        # Assert
        assert outcome.modifier == 1
        assert outcome.success is True

    def test_tall_grass_in_rudania_hinders_rush(self):
        outcome = resolve_maneuver(Maneuver.RUSH, "Tall grass", "Rudania", ScriptedRandom([19]))
        assert outcome.modifier == -3
        assert outcome.adjusted == 16
        assert outcome.success is False

    def test_modifiers_only_apply_to_their_village(self):
        assert maneuver_modifier(Maneuver.SNEAK, "Tall grass", "Inariko") == 0

    def test_glide_always_gets_bonus(self):
        assert maneuver_modifier(Maneuver.GLIDE, "Plains", "Vhintl") == C.DEFAULT_GLIDE_BONUS

    def test_glide_in_inariko_mountains_stacks_bonuses(self):
        outcome = resolve_maneuver(Maneuver.GLIDE, "Mountainous", "Inariko", ScriptedRandom([12]))
        assert outcome.modifier == 5
        assert outcome.threshold == 17
        assert outcome.success is True

    def test_corner_in_inariko_mountains(self):
        outcome = resolve_maneuver(Maneuver.CORNER, "Mountainous", "Inariko", ScriptedRandom([3]))
        assert outcome.adjusted == 7
        assert outcome.success is True

    def test_distract_is_not_a_plain_maneuver(self):
        with pytest.raises(ValueError):
            resolve_maneuver(Maneuver.DISTRACT, "Plains", "Rudania", ScriptedRandom([10]))

    def test_only_distract_is_free(self):
        assert [m for m in Maneuver if not m.costs_stamina] == [Maneuver.DISTRACT]


@pytest.mark.unit
class TestDistractionRolls:
    def test_item_bonus_applies_to_matching_species(self):
        outcome = resolve_distraction("Apple", "Horse", ScriptedRandom([4]))
        assert outcome.modifier == 3
        assert outcome.threshold == 7
        assert outcome.success is True

    def test_item_without_effect_on_species_gets_no_bonus(self):
        outcome = resolve_distraction("Raw Meat", "Horse", ScriptedRandom([6]))
        assert outcome.modifier == 0
        assert outcome.success is False

    def test_universal_items_work_on_predators(self):
        outcome = resolve_distraction("Acorn", "Bear", ScriptedRandom([6]))
        assert outcome.modifier == 1
        assert outcome.success is True


@pytest.mark.unit
class TestTamingCheck:
    def test_exactly_enough_successes_tames(self):
        outcome = evaluate_taming([5, 9, 17], mount_stamina=3)
        assert outcome.successes == 3
        assert outcome.natural_twenty is False
        assert outcome.success is True

    def test_one_success_short_fails(self):
        outcome = evaluate_taming([5, 9, 4], mount_stamina=3)
        assert outcome.successes == 2
        assert outcome.success is False

    def test_natural_twenty_always_tames(self):
        outcome = evaluate_taming([1, 20], mount_stamina=6)
        assert outcome.successes == 1
        assert outcome.natural_twenty is True
        assert outcome.success is True

    def test_pool_draws_one_die_per_stamina(self):
        rng = ScriptedRandom([6, 7, 2])
        outcome = resolve_taming(3, mount_stamina=2, rng=rng)
        assert outcome.rolls == (6, 7, 2)
        assert rng.randint_calls == [(1, 20)] * 3
        assert outcome.success is True

    def test_empty_pool_cannot_tame(self):
        outcome = resolve_taming(0, mount_stamina=1, rng=ScriptedRandom())
        assert outcome.rolls == ()
        assert outcome.success is False


@pytest.mark.unit
class TestDiscoveryRolls:
    def test_only_natural_twenty_promotes(self):
        assert is_promoting_roll(20) is True
        assert is_promoting_roll(19) is False

    def test_rarity_is_rare_only_on_top_face(self):
        assert roll_rarity(ScriptedRandom([50])) == C.RARITY_RARE
        assert roll_rarity(ScriptedRandom([49])) == C.RARITY_REGULAR

    def test_species_are_filtered_by_village(self):
        basic_rudania = species_for("Basic", "Rudania")
        assert "Ostrich" in basic_rudania
        assert "Horse" in basic_rudania
        assert "Deer" not in basic_rudania

    def test_rolled_species_belongs_to_rolled_level(self):
        species, level = roll_mount(ScriptedRandom(seed=7), "Vhintl")
        assert species in species_for(level, "Vhintl")

    def test_rare_mounts_roll_the_high_stamina_band(self):
        rng = ScriptedRandom([6])
        assert roll_mount_stamina(rng, "Basic", is_rare=True) == 6
        assert rng.randint_calls == [(5, 6)]

    @pytest.mark.parametrize(
        "village,expected",
        [("Rudania", "Tall grass"), ("Inariko", "Mountainous"), ("Vhintl", "Forest")],
    )
    def test_fifth_environment_face_is_village_home(self, village, expected):
        assert roll_environment(ScriptedRandom([5]), village) == expected

    def test_first_environment_face_is_plains(self):
        assert roll_environment(ScriptedRandom([1]), "Rudania") == "Plains"


@pytest.mark.unit
class TestResolverSettings:
    def test_defaults_match_balance_table(self):
        assert DEFAULT_SETTINGS.threshold(Maneuver.SNEAK) == 5
        assert DEFAULT_SETTINGS.threshold(Maneuver.CORNER) == 7
        assert DEFAULT_SETTINGS.threshold(Maneuver.RUSH) == 17
        assert DEFAULT_SETTINGS.threshold(Maneuver.GLIDE) == 17
        assert DEFAULT_SETTINGS.threshold(Maneuver.DISTRACT) == 7

    def test_loaded_config_matches_defaults(self):
        settings = ResolverSettings.from_config(ConfigManager)
        assert settings.thresholds == DEFAULT_SETTINGS.thresholds
        assert settings.environment_modifiers == DEFAULT_SETTINGS.environment_modifiers
        assert settings.glide_bonus == 3

    def test_threshold_override_keeps_other_defaults(self):
        ConfigManager.set_override("mount.thresholds", {"sneak": 10})

        settings = ResolverSettings.from_config(ConfigManager)

        assert settings.threshold(Maneuver.SNEAK) == 10
        assert settings.threshold(Maneuver.CORNER) == 7

    def test_environment_modifier_override(self):
        ConfigManager.set_override(
            "mount.environment_modifiers",
            [{"environment": "Forest", "village": "Vhintl", "modifiers": {"sneak": 2}}],
        )

        settings = ResolverSettings.from_config(ConfigManager)

        assert maneuver_modifier(Maneuver.SNEAK, "Forest", "Vhintl", settings) == 2
        assert maneuver_modifier(Maneuver.SNEAK, "Tall grass", "Rudania", settings) == 0
