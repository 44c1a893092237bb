"""
Outcome Resolver: dice, thresholds and modifiers of a mount encounter.

Pure functions over an injected ``random.Random``. Nothing here touches the
store, the ledger or Discord, so every outcome is reproducible from a seed.

Balance values come from ``ResolverSettings``, built from ConfigManager
(``mount.*`` keys) with the defaults in ``constants``.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Tuple

from tamebot.modules.mount import constants as C


class Maneuver(str, Enum):
    SNEAK = "sneak"
    DISTRACT = "distract"
    CORNER = "corner"
    RUSH = "rush"
    GLIDE = "glide"

    @property
    def costs_stamina(self) -> bool:
        return self is not Maneuver.DISTRACT


# ============================================================================
# SETTINGS
# ============================================================================


@dataclass(frozen=True)
class ResolverSettings:
    thresholds: Mapping[str, int] = field(default_factory=lambda: dict(C.DEFAULT_THRESHOLDS))
    glide_bonus: int = C.DEFAULT_GLIDE_BONUS
    environment_modifiers: Mapping[Tuple[str, str], Mapping[str, int]] = field(
        default_factory=lambda: dict(C.DEFAULT_ENVIRONMENT_MODIFIERS)
    )
    level_weights: Mapping[str, int] = field(default_factory=lambda: dict(C.LEVEL_WEIGHTS))
    tame_success_face: int = C.DEFAULT_TAME_SUCCESS_FACE

    @classmethod
    def from_config(cls, config: Any) -> "ResolverSettings":
        """
        Build settings from a ConfigManager-like object (``get(key, default)``).

        ``mount.environment_modifiers`` is a list of
        ``{environment, village, modifiers: {maneuver: int}}`` entries.
        """
        thresholds = dict(C.DEFAULT_THRESHOLDS)
        thresholds.update(config.get("mount.thresholds", {}) or {})

        modifiers: Dict[Tuple[str, str], Dict[str, int]] = dict(C.DEFAULT_ENVIRONMENT_MODIFIERS)
        configured = config.get("mount.environment_modifiers")
        if configured:
            modifiers = {
                (entry["environment"], entry["village"]): dict(entry.get("modifiers", {}))
                for entry in configured
            }

        return cls(
            thresholds=thresholds,
            glide_bonus=int(config.get("mount.glide_bonus", C.DEFAULT_GLIDE_BONUS)),
            environment_modifiers=modifiers,
            level_weights=dict(config.get("mount.level_weights", C.LEVEL_WEIGHTS)),
            tame_success_face=int(config.get("mount.tame.success_face", C.DEFAULT_TAME_SUCCESS_FACE)),
        )

    def threshold(self, maneuver: Maneuver) -> int:
        return int(self.thresholds[maneuver.value])


DEFAULT_SETTINGS = ResolverSettings()


def roll_die(rng: random.Random, sides: int = 20) -> int:
    return rng.randint(1, sides)


# ============================================================================
# DISCOVERY
# ============================================================================


def roll_discovery(rng: random.Random) -> int:
    """d20; only a natural 20 promotes a placeholder encounter."""
    return roll_die(rng, C.DISCOVERY_DIE)


def is_promoting_roll(roll: int) -> bool:
    return roll == C.NATURAL_TWENTY


def roll_rarity(rng: random.Random) -> str:
    return C.RARITY_RARE if roll_die(rng, C.RARITY_DIE) == C.RARITY_DIE else C.RARITY_REGULAR


def species_for(level: str, village: str) -> List[str]:
    """Species of a level that can appear in a village."""
    return [
        species
        for species in C.SPECIES_BY_LEVEL[level]
        if C.SPECIES_HOME_REGION.get(species) in (village, C.ALL_VILLAGES)
    ]


def roll_mount(
    rng: random.Random,
    village: str,
    settings: ResolverSettings = DEFAULT_SETTINGS,
) -> Tuple[str, str]:
    """Weighted level roll, then a species native to the village; returns (species, level)."""
    levels = [level for level in C.MOUNT_LEVELS if species_for(level, village)]
    weights = [settings.level_weights.get(level, 0) for level in levels]
    level = rng.choices(levels, weights=weights, k=1)[0]
    return rng.choice(species_for(level, village)), level


def roll_mount_stamina(rng: random.Random, level: str, is_rare: bool) -> int:
    low, high = C.STAMINA_RANGES[C.RARITY_RARE if is_rare else level]
    return rng.randint(low, high)


def roll_environment(rng: random.Random, village: str) -> str:
    face = roll_die(rng, len(C.ENVIRONMENTS) + 1)
    if face <= len(C.ENVIRONMENTS):
        return C.ENVIRONMENTS[face - 1]
    return C.VILLAGE_HOME_ENVIRONMENT.get(village, "Forest")


# ============================================================================
# CAPTURE
# ============================================================================


@dataclass(frozen=True)
class RollOutcome:
    roll: int
    modifier: int
    threshold: int

    @property
    def adjusted(self) -> int:
        return self.roll + self.modifier

    @property
    def success(self) -> bool:
        return self.adjusted >= self.threshold


def maneuver_modifier(
    maneuver: Maneuver,
    environment: str,
    village: str,
    settings: ResolverSettings = DEFAULT_SETTINGS,
) -> int:
    modifiers = settings.environment_modifiers.get((environment, village), {})
    total = int(modifiers.get(maneuver.value, 0))
    if maneuver is Maneuver.GLIDE:
        total += settings.glide_bonus
    return total


def resolve_maneuver(
    maneuver: Maneuver,
    environment: str,
    village: str,
    rng: random.Random,
    settings: ResolverSettings = DEFAULT_SETTINGS,
    extra_modifier: int = 0,
) -> RollOutcome:
    if maneuver is Maneuver.DISTRACT:
        raise ValueError("distract resolves through resolve_distraction")
    return RollOutcome(
        roll=roll_die(rng),
        modifier=maneuver_modifier(maneuver, environment, village, settings) + extra_modifier,
        threshold=settings.threshold(maneuver),
    )


def distraction_bonus(item_name: str, species: str) -> int:
    """Bonus of an item against a species; 0 when the item does not work on it."""
    entry = C.DISTRACTION_ITEMS.get(item_name)
    if entry is None:
        return 0
    bonus, species_list = entry
    if species_list is None or species in species_list:
        return bonus
    return 0


def resolve_distraction(
    item_name: str,
    species: str,
    rng: random.Random,
    settings: ResolverSettings = DEFAULT_SETTINGS,
) -> RollOutcome:
    return RollOutcome(
        roll=roll_die(rng),
        modifier=distraction_bonus(item_name, species),
        threshold=settings.threshold(Maneuver.DISTRACT),
    )


# ============================================================================
# TAMING
# ============================================================================


@dataclass(frozen=True)
class TamingOutcome:
    rolls: Tuple[int, ...]
    successes: int
    required: int
    natural_twenty: bool

    @property
    def success(self) -> bool:
        return self.natural_twenty or self.successes >= self.required


def evaluate_taming(
    rolls: List[int] | Tuple[int, ...],
    mount_stamina: int,
    success_face: int = C.DEFAULT_TAME_SUCCESS_FACE,
) -> TamingOutcome:
    """Score a set of d20 rolls against the mount's stamina threshold."""
    rolls = tuple(rolls)
    return TamingOutcome(
        rolls=rolls,
        successes=sum(1 for roll in rolls if roll >= success_face),
        required=mount_stamina,
        natural_twenty=C.NATURAL_TWENTY in rolls,
    )


def resolve_taming(
    pool_size: int,
    mount_stamina: int,
    rng: random.Random,
    settings: ResolverSettings = DEFAULT_SETTINGS,
) -> TamingOutcome:
    rolls = [roll_die(rng) for _ in range(max(0, pool_size))]
    return evaluate_taming(rolls, mount_stamina, settings.tame_success_face)
