"""
Next-step descriptors handed from the encounter service to presentation.

A ``Step`` says where the encounter stands, which actions are available and
what to display. The cog renders it into an embed plus buttons/selects; the
service never depends on rendering succeeding.

Action ids are short strings so they fit Discord custom ids:

    roll
    sneak | distract | corner | rush | glide | tame
    customize | skip
    item:<item name>
    trait:<trait key>:<option index> | trait:<trait key>:random
    register
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from tamebot.modules.mount.catalog import SpeciesProfile
from tamebot.modules.mount.encounter import Encounter, EncounterState
from tamebot.modules.mount.interfaces import InventoryEntry
from tamebot.modules.mount.resolver import Maneuver
from tamebot.modules.shared.exceptions import InvalidSelectionError

RANDOM_OPTION = "random"
CUSTOMIZE = "customize"
SKIP = "skip"
TAME = "tame"
ROLL = "roll"
REGISTER = "register"


class StepKind(str, Enum):
    PROMPT = "prompt"  # waiting for the participant's next input
    MISSED = "missed"  # discovery roll did not promote the encounter
    REJECTED = "rejected"  # guard failed; encounter unchanged
    ESCAPED = "escaped"  # terminal; encounter deleted
    NOT_FOUND = "not_found"  # terminal for the call
    REGISTERED = "registered"  # terminal; mount created


@dataclass(frozen=True)
class StepAction:
    id: str
    label: str
    cost: int = 0


@dataclass
class Step:
    encounter_id: str
    state: Optional[EncounterState]
    kind: StepKind
    title: str
    message: str = ""
    actions: List[StepAction] = field(default_factory=list)
    display: Dict[str, Any] = field(default_factory=dict)
    error_code: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.kind in (StepKind.ESCAPED, StepKind.NOT_FOUND, StepKind.REGISTERED)

    def action_ids(self) -> List[str]:
        return [action.id for action in self.actions]


# ============================================================================
# ACTION IDS
# ============================================================================


@dataclass(frozen=True)
class ParsedAction:
    kind: str
    maneuver: Optional[Maneuver] = None
    item_name: Optional[str] = None
    trait_key: Optional[str] = None
    option: Optional[str] = None  # option index as text, or RANDOM_OPTION


def parse_action_id(action_id: str) -> ParsedAction:
    """Turn an action id back into a structured action; malformed ids are invalid selections."""
    if not action_id or not isinstance(action_id, str):
        raise InvalidSelectionError(action_id, "empty action")

    if action_id in {m.value for m in Maneuver}:
        return ParsedAction(kind="maneuver", maneuver=Maneuver(action_id))
    if action_id in (ROLL, TAME, CUSTOMIZE, SKIP, REGISTER):
        return ParsedAction(kind=action_id)

    prefix, _, rest = action_id.partition(":")
    if prefix == "item" and rest:
        return ParsedAction(kind="item", item_name=rest)
    if prefix == "trait":
        trait_key, _, option = rest.rpartition(":")
        if trait_key and (option == RANDOM_OPTION or option.isdigit()):
            return ParsedAction(kind="trait", trait_key=trait_key, option=option)

    raise InvalidSelectionError(action_id, "unknown action")


def trait_action_id(trait_key: str, option: str | int) -> str:
    return f"trait:{trait_key}:{option}"


# ============================================================================
# BUILDERS
# ============================================================================


def encounter_display(encounter: Encounter, **extra: Any) -> Dict[str, Any]:
    display: Dict[str, Any] = {
        "village": encounter.village,
        "environment": encounter.environment,
        "species": encounter.mount_type,
        "level": encounter.mount_level,
        "rarity": encounter.rarity,
        "mount_stamina": encounter.mount_stamina,
        "glide_used": encounter.glide_used,
        "total_spent": encounter.total_spent,
    }
    if encounter.participant is not None:
        display["character_name"] = encounter.participant.character_name
    display.update(extra)
    return display


def discovery_actions() -> List[StepAction]:
    return [StepAction(id=ROLL, label="Roll for a mount")]


def capture_actions(encounter: Encounter) -> List[StepAction]:
    """Maneuver menu; Glide disappears once used."""
    return [
        StepAction(id=m.value, label=m.value.capitalize(), cost=1 if m.costs_stamina else 0)
        for m in Maneuver
        if not (m is Maneuver.GLIDE and encounter.glide_used)
    ]


def distraction_actions(items: List[InventoryEntry]) -> List[StepAction]:
    return [
        StepAction(id=f"item:{entry.item_name}", label=f"{entry.item_name} x{entry.quantity}")
        for entry in items
    ]


def tame_actions(stamina_cost: int) -> List[StepAction]:
    return [StepAction(id=TAME, label="Tame", cost=stamina_cost)]


def customization_choice_actions() -> List[StepAction]:
    return [
        StepAction(id=CUSTOMIZE, label="Customize traits"),
        StepAction(id=SKIP, label="Random traits"),
    ]


def trait_actions(profile: SpeciesProfile, trait_key: str) -> List[StepAction]:
    price = profile.price(trait_key)
    actions = [
        StepAction(id=trait_action_id(trait_key, index), label=value, cost=price)
        for index, value in enumerate(profile.options(trait_key))
    ]
    actions.append(StepAction(id=trait_action_id(trait_key, RANDOM_OPTION), label="Random"))
    return actions


def registration_actions(fee: int) -> List[StepAction]:
    return [StepAction(id=REGISTER, label="Register mount", cost=fee)]


def resolve_trait_option(profile: SpeciesProfile, trait_key: str, option: str) -> Tuple[Optional[str], bool]:
    """
    Map a trait option token to a value.

    Returns ``(value, is_random)``; value is None for the random option.
    """
    if option == RANDOM_OPTION:
        return None, True
    options = profile.options(trait_key)
    index = int(option)
    if not 0 <= index < len(options):
        raise InvalidSelectionError(
            trait_action_id(trait_key, option), f"no option {index} for {trait_key}"
        )
    return options[index], False
