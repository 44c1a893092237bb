"""
Pure phase logic of the mount encounter.

Every function takes the encounter plus whatever the service already read
or charged (a stamina debit, a character snapshot, the rng) and mutates the
encounter in memory. No I/O happens here: the service persists the result
and performs the ledger calls, always charging before it stores a
transition.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional

from tamebot.modules.mount import constants as C
from tamebot.modules.mount.catalog import SpeciesProfile
from tamebot.modules.mount.encounter import CAPTURE_STATES, Encounter, EncounterState
from tamebot.modules.mount.interfaces import (
    CharacterSnapshot,
    InventoryEntry,
    MountSnapshot,
    StaminaDebit,
)
from tamebot.modules.mount.resolver import (
    Maneuver,
    ResolverSettings,
    RollOutcome,
    TamingOutcome,
    distraction_bonus,
    is_promoting_roll,
    resolve_distraction,
    resolve_maneuver,
    resolve_taming,
    roll_environment,
    roll_mount,
    roll_mount_stamina,
    roll_rarity,
)
from tamebot.modules.shared.exceptions import (
    InvalidOperationError,
    InvalidSelectionError,
    UnauthorizedActionError,
    ValidationError,
)

# ============================================================================
# AUTHORIZATION
# ============================================================================


def authorize(
    encounter: Encounter,
    user_id: str,
    action: str,
    character_name: Optional[str] = None,
) -> None:
    """
    Only the tracked participant may act.

    The user id must match; a supplied character name must match as well.
    """
    participant = encounter.participant
    if participant is None:
        raise UnauthorizedActionError(action, user_id, "encounter has no tracked participant")
    if participant.user_id != str(user_id):
        raise UnauthorizedActionError(action, user_id)
    if character_name is not None and character_name != participant.character_name:
        raise UnauthorizedActionError(
            action, user_id, f"encounter is tracked for {participant.character_name}"
        )


# ============================================================================
# DISCOVERY
# ============================================================================


def promote_encounter(
    encounter: Encounter,
    character: CharacterSnapshot,
    rng: random.Random,
    settings: ResolverSettings,
) -> None:
    """
    Turn a placeholder into a concrete encounter after a natural 20.

    Only fields still holding the placeholder are rolled, so a pre-seeded
    encounter keeps its species, stamina and environment.
    """
    if encounter.rarity == C.PLACEHOLDER:
        encounter.rarity = roll_rarity(rng)
    if encounter.mount_type == C.PLACEHOLDER or encounter.mount_level == C.PLACEHOLDER:
        encounter.mount_type, encounter.mount_level = roll_mount(rng, encounter.village, settings)
    if encounter.mount_stamina is None:
        encounter.mount_stamina = roll_mount_stamina(rng, encounter.mount_level, encounter.is_rare)
    if encounter.environment == C.PLACEHOLDER:
        encounter.environment = roll_environment(rng, encounter.village)

    encounter.track(character.name, character.user_id)
    encounter.roller_id = str(character.user_id)
    encounter.transition_to(EncounterState.AWAITING_ACTION)


def apply_discovery_roll(
    encounter: Encounter,
    roll: int,
    character: CharacterSnapshot,
    rng: random.Random,
    settings: ResolverSettings,
) -> bool:
    encounter.require_state(EncounterState.DISCOVERY)
    if not is_promoting_roll(roll):
        return False
    promote_encounter(encounter, character, rng, settings)
    return True


# ============================================================================
# CAPTURE
# ============================================================================


def check_maneuver(encounter: Encounter, maneuver: Maneuver) -> None:
    """Guards that run before any cost is charged."""
    if maneuver is Maneuver.GLIDE and encounter.glide_used:
        raise InvalidOperationError("glide", "Glide can only be used once per encounter")
    encounter.require_state(*CAPTURE_STATES)


@dataclass(frozen=True)
class ManeuverResult:
    maneuver: Maneuver
    outcome: Optional[RollOutcome]
    escaped: bool

    @property
    def success(self) -> bool:
        return self.outcome is not None and self.outcome.success


def apply_maneuver(
    encounter: Encounter,
    maneuver: Maneuver,
    debit: StaminaDebit,
    rng: random.Random,
    settings: ResolverSettings,
) -> ManeuverResult:
    """
    Resolve a stamina-costing maneuver after its debit.

    An exhausted debit means the creature escapes and nothing is rolled.
    """
    if debit.exhausted:
        encounter.transition_to(EncounterState.ESCAPED)
        return ManeuverResult(maneuver=maneuver, outcome=None, escaped=True)

    if maneuver is Maneuver.GLIDE:
        encounter.glide_used = True

    outcome = resolve_maneuver(maneuver, encounter.environment, encounter.village, rng, settings)
    encounter.transition_to(
        EncounterState.AWAITING_TAME if outcome.success else EncounterState.AWAITING_ACTION
    )
    return ManeuverResult(maneuver=maneuver, outcome=outcome, escaped=False)


def distraction_menu(items: List[InventoryEntry], species: str) -> List[InventoryEntry]:
    """
    Items that can distract this species, merged by case-insensitive name.

    The first spelling seen is kept; quantities are summed.
    """
    merged: Dict[str, InventoryEntry] = {}
    for entry in items:
        if entry.quantity <= 0:
            continue
        canonical = _canonical_item_name(entry.item_name)
        if canonical is None or distraction_bonus(canonical, species) <= 0:
            continue
        key = canonical.lower()
        existing = merged.get(key)
        if existing is None:
            merged[key] = InventoryEntry(item_name=canonical, quantity=entry.quantity)
        else:
            merged[key] = InventoryEntry(
                item_name=existing.item_name, quantity=existing.quantity + entry.quantity
            )
    return sorted(merged.values(), key=lambda entry: entry.item_name)


def _canonical_item_name(name: str) -> Optional[str]:
    lowered = name.strip().lower()
    for item_name in C.DISTRACTION_ITEMS:
        if item_name.lower() == lowered:
            return item_name
    return None


def open_distraction(encounter: Encounter) -> None:
    encounter.transition_to(EncounterState.AWAITING_DISTRACTION_ITEM)


def check_distraction_item(encounter: Encounter, item_name: str, menu: List[InventoryEntry]) -> str:
    """Validate a picked item against the current menu; returns its canonical name."""
    encounter.require_state(EncounterState.AWAITING_DISTRACTION_ITEM)
    for entry in menu:
        if entry.item_name.lower() == item_name.strip().lower():
            return entry.item_name
    raise InvalidSelectionError(item_name, "item is not a usable distraction for this mount")


def apply_distraction(
    encounter: Encounter,
    item_name: str,
    rng: random.Random,
    settings: ResolverSettings,
) -> RollOutcome:
    """Resolve a distraction after the item unit was consumed. No stamina is spent."""
    outcome = resolve_distraction(item_name, encounter.mount_type, rng, settings)
    encounter.distraction_result = outcome.success
    encounter.transition_to(
        EncounterState.AWAITING_TAME if outcome.success else EncounterState.AWAITING_ACTION
    )
    return outcome


# ============================================================================
# TAMING
# ============================================================================


@dataclass(frozen=True)
class TamingResult:
    outcome: Optional[TamingOutcome]
    escaped: bool

    @property
    def success(self) -> bool:
        return self.outcome is not None and self.outcome.success


def apply_taming(
    encounter: Encounter,
    debit: StaminaDebit,
    stamina_cost: int,
    rng: random.Random,
    settings: ResolverSettings,
) -> TamingResult:
    """
    Roll the taming pool after the attempt was charged.

    The pool is the stamina the character held when attempting, i.e. the
    balance before this debit.
    """
    encounter.require_state(EncounterState.AWAITING_TAME)
    if debit.exhausted:
        encounter.transition_to(EncounterState.ESCAPED)
        return TamingResult(outcome=None, escaped=True)

    pool_size = debit.new_balance + stamina_cost
    outcome = resolve_taming(pool_size, int(encounter.mount_stamina or 0), rng, settings)
    if outcome.success:
        encounter.tame_status = True
        encounter.transition_to(EncounterState.AWAITING_CUSTOMIZATION_CHOICE)
    else:
        encounter.transition_to(EncounterState.AWAITING_TAME)
    return TamingResult(outcome=outcome, escaped=False)


# ============================================================================
# CUSTOMIZATION
# ============================================================================


def skip_customization(encounter: Encounter, profile: SpeciesProfile, rng: random.Random) -> None:
    encounter.require_state(EncounterState.AWAITING_CUSTOMIZATION_CHOICE)
    encounter.traits = profile.generate_traits(rng, encounter.is_rare)
    encounter.transition_to(EncounterState.AWAITING_REGISTRATION)


def start_customization(encounter: Encounter, profile: SpeciesProfile) -> None:
    encounter.require_state(EncounterState.AWAITING_CUSTOMIZATION_CHOICE)
    encounter.trait_cursor = 0
    if profile.trait_plan(encounter.is_rare):
        encounter.transition_to(EncounterState.AWAITING_TRAIT_SELECTION)
    else:
        encounter.transition_to(EncounterState.AWAITING_REGISTRATION)


def current_trait_key(encounter: Encounter, profile: SpeciesProfile) -> Optional[str]:
    plan = profile.trait_plan(encounter.is_rare)
    if encounter.trait_cursor < len(plan):
        return plan[encounter.trait_cursor]
    return None


def is_replayed_selection(encounter: Encounter, profile: SpeciesProfile, trait_key: str) -> bool:
    """True when the key was already resolved; the step is re-presented without charging."""
    plan = profile.trait_plan(encounter.is_rare)
    return trait_key in plan[: encounter.trait_cursor] and trait_key in encounter.traits


def check_trait_selection(encounter: Encounter, profile: SpeciesProfile, trait_key: str) -> None:
    encounter.require_state(EncounterState.AWAITING_TRAIT_SELECTION)
    expected = current_trait_key(encounter, profile)
    if trait_key != expected:
        raise InvalidSelectionError(trait_key, f"the current trait is {expected}")


def apply_trait_selection(
    encounter: Encounter,
    profile: SpeciesProfile,
    trait_key: str,
    value: str,
    cost: int,
    is_random: bool = False,
) -> Optional[str]:
    """
    Record a resolved trait and advance the cursor.

    Every explicit pick lands in ``customized_traits``, priced or not.
    ``cost`` is what was actually charged and only it feeds ``total_spent``.
    Returns the next trait key, or None when the encounter moved to
    registration.
    """
    check_trait_selection(encounter, profile, trait_key)
    encounter.traits[trait_key] = value
    if not is_random:
        encounter.customized_traits.append(trait_key)
    encounter.total_spent += cost
    encounter.trait_cursor += 1

    next_key = current_trait_key(encounter, profile)
    if next_key is None:
        encounter.transition_to(EncounterState.AWAITING_REGISTRATION)
    else:
        encounter.transition_to(EncounterState.AWAITING_TRAIT_SELECTION)
    return next_key


def trait_reference(encounter_id: str, trait_key: str) -> str:
    return f"{encounter_id}:trait:{trait_key}"


# ============================================================================
# REGISTRATION
# ============================================================================


def registration_reference(encounter_id: str) -> str:
    return f"{encounter_id}:registration"


def validate_mount_name(name: Optional[str]) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("mount_name", "a mount needs a name")
    if len(cleaned) > C.MOUNT_NAME_MAX_LENGTH:
        raise ValidationError(
            "mount_name", f"names are limited to {C.MOUNT_NAME_MAX_LENGTH} characters"
        )
    return cleaned


def format_traits(traits: Dict[str, str]) -> List[str]:
    return [f"{key}: {value}" for key, value in traits.items()]


def build_mount(encounter: Encounter, character: CharacterSnapshot, name: str) -> MountSnapshot:
    """Snapshot of the encounter as a persistent mount."""
    encounter.require_state(EncounterState.AWAITING_REGISTRATION)
    return MountSnapshot(
        user_id=str(character.user_id),
        character_id=character.id,
        name=name,
        species=encounter.mount_type,
        level=encounter.mount_level,
        stamina=int(encounter.mount_stamina or 0),
        current_stamina=int(encounter.mount_stamina or 0),
        owner=character.name,
        traits=format_traits(encounter.traits),
        region=encounter.village,
        is_rare=encounter.is_rare,
        source_encounter_id=encounter.id,
    )


# ============================================================================
# STABLE
# ============================================================================


def calculate_mount_price(level: str, is_rare: bool, species: str, region: str) -> int:
    """(level base + home-region bonus) x rarity multiplier."""
    base = C.BASE_MOUNT_PRICES.get(level, C.BASE_MOUNT_PRICES["Basic"])
    home = C.SPECIES_HOME_REGION.get(species)
    bonus = C.REGIONAL_PRICE_BONUS if home and home != C.ALL_VILLAGES and home == region else 0
    multiplier = C.RARE_PRICE_MULTIPLIER if is_rare else 1
    return (base + bonus) * multiplier


def apply_daily_recovery(mount: MountSnapshot, today: date) -> bool:
    """
    Restore one stamina once per day the mount did not travel, capped at max.
    A mount that never travelled counts as rested.

    A mount with no recorded current stamina starts full. Returns whether
    anything changed.
    """
    if mount.current_stamina is None:
        mount.current_stamina = mount.stamina
        return True
    if mount.last_mount_travel is None or mount.last_mount_travel < today:
        mount.current_stamina = min(mount.stamina, mount.current_stamina + 1)
        mount.last_mount_travel = today
        return True
    return False


def is_low_stamina(mount: MountSnapshot) -> bool:
    return (mount.current_stamina or 0) <= 1
