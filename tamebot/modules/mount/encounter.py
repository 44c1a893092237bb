"""
Encounter record and its explicit state machine.

Purpose
-------
``Encounter`` is the only state carried between interactions of a mount
encounter. It is persisted whole (see ``to_dict`` / ``from_dict``, which use
the document's camelCase field names) and re-read at the start of every
interaction.

State Machine
-------------
    DISCOVERY ──natural 20──▶ AWAITING_ACTION ◀──────────────┐
                                 │   │  distract            │ failed item roll
                                 │   └──────▶ AWAITING_DISTRACTION_ITEM
                                 │ maneuver / item success │
                                 ▼                         ▼
                             AWAITING_TAME ──success──▶ AWAITING_CUSTOMIZATION_CHOICE
                                                           │ skip      │ customize
                                                           ▼           ▼
                                           AWAITING_REGISTRATION ◀── AWAITING_TRAIT_SELECTION
                                                           │
                                                           ▼
                                                      REGISTERED

Any stamina-gated state may also move to ESCAPED, after which the record is
deleted. ``transition_to`` rejects every other edge.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from tamebot.modules.mount.constants import PLACEHOLDER, RARITY_RARE, RARITY_REGULAR
from tamebot.modules.shared.exceptions import (
    InvalidOperationError,
    InvalidStateTransitionError,
)


class EncounterState(str, Enum):
    DISCOVERY = "discovery"
    AWAITING_ACTION = "awaiting_action"
    AWAITING_DISTRACTION_ITEM = "awaiting_distraction_item"
    AWAITING_TAME = "awaiting_tame"
    AWAITING_CUSTOMIZATION_CHOICE = "awaiting_customization_choice"
    AWAITING_TRAIT_SELECTION = "awaiting_trait_selection"
    AWAITING_REGISTRATION = "awaiting_registration"
    REGISTERED = "registered"
    ESCAPED = "escaped"

    @property
    def is_terminal(self) -> bool:
        return self in (EncounterState.REGISTERED, EncounterState.ESCAPED)


S = EncounterState

ALLOWED_TRANSITIONS: Dict[EncounterState, FrozenSet[EncounterState]] = {
    S.DISCOVERY: frozenset({S.AWAITING_ACTION}),
    S.AWAITING_ACTION: frozenset(
        {S.AWAITING_ACTION, S.AWAITING_DISTRACTION_ITEM, S.AWAITING_TAME, S.ESCAPED}
    ),
    S.AWAITING_DISTRACTION_ITEM: frozenset(
        {S.AWAITING_ACTION, S.AWAITING_DISTRACTION_ITEM, S.AWAITING_TAME, S.ESCAPED}
    ),
    S.AWAITING_TAME: frozenset({S.AWAITING_TAME, S.AWAITING_CUSTOMIZATION_CHOICE, S.ESCAPED}),
    S.AWAITING_CUSTOMIZATION_CHOICE: frozenset(
        {S.AWAITING_TRAIT_SELECTION, S.AWAITING_REGISTRATION}
    ),
    S.AWAITING_TRAIT_SELECTION: frozenset({S.AWAITING_TRAIT_SELECTION, S.AWAITING_REGISTRATION}),
    S.AWAITING_REGISTRATION: frozenset({S.REGISTERED}),
    S.REGISTERED: frozenset(),
    S.ESCAPED: frozenset(),
}

CAPTURE_STATES = frozenset({S.AWAITING_ACTION, S.AWAITING_DISTRACTION_ITEM})


def can_transition(current: EncounterState, target: EncounterState) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


@dataclass
class Participant:
    character_name: str
    user_id: str

    def to_dict(self) -> Dict[str, str]:
        return {"characterName": self.character_name, "userId": self.user_id}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Participant":
        return cls(character_name=str(data["characterName"]), user_id=str(data["userId"]))


@dataclass
class Encounter:
    id: str
    village: str
    environment: str = PLACEHOLDER
    mount_type: str = PLACEHOLDER
    mount_level: str = PLACEHOLDER
    rarity: str = PLACEHOLDER
    mount_stamina: Optional[int] = None
    glide_used: bool = False
    roller_id: Optional[str] = None
    users: List[Participant] = field(default_factory=list)
    traits: Dict[str, str] = field(default_factory=dict)
    customized_traits: List[str] = field(default_factory=list)
    total_spent: int = 0
    tame_status: bool = False
    distraction_result: Optional[bool] = None
    state: EncounterState = EncounterState.DISCOVERY
    trait_cursor: int = 0
    version: int = 0

    # ------------------------------------------------------------------ #
    # Construction
    # ------------------------------------------------------------------ #

    @classmethod
    def placeholder(cls, encounter_id: str, village: str) -> "Encounter":
        return cls(id=encounter_id, village=village)

    @property
    def is_placeholder(self) -> bool:
        return self.mount_type == PLACEHOLDER

    @property
    def is_rare(self) -> bool:
        return self.rarity == RARITY_RARE

    # ------------------------------------------------------------------ #
    # Participants
    # ------------------------------------------------------------------ #

    @property
    def participant(self) -> Optional[Participant]:
        return self.users[0] if self.users else None

    def track(self, character_name: str, user_id: str) -> None:
        """Record the single participant allowed to act on this encounter."""
        existing = self.participant
        if existing is not None:
            if existing.character_name == character_name and existing.user_id == user_id:
                return
            raise InvalidOperationError(
                "track_participant",
                f"encounter already tracked for {existing.character_name}",
            )
        self.users.append(Participant(character_name=character_name, user_id=str(user_id)))

    # ------------------------------------------------------------------ #
    # State
    # ------------------------------------------------------------------ #

    def transition_to(self, target: EncounterState) -> None:
        if not can_transition(self.state, target):
            raise InvalidStateTransitionError(self.state.value, target.value)
        self.state = target

    def require_state(self, *allowed: EncounterState) -> None:
        if self.state not in allowed:
            raise InvalidStateTransitionError(
                self.state.value, "/".join(state.value for state in allowed)
            )

    # ------------------------------------------------------------------ #
    # Serialization
    # ------------------------------------------------------------------ #

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "village": self.village,
            "environment": self.environment,
            "mountType": self.mount_type,
            "mountLevel": self.mount_level,
            "rarity": self.rarity,
            "mountStamina": self.mount_stamina,
            "glideUsed": self.glide_used,
            "rollerId": self.roller_id,
            "users": [user.to_dict() for user in self.users],
            "traits": dict(self.traits),
            "customizedTraits": list(self.customized_traits),
            "totalSpent": self.total_spent,
            "tameStatus": self.tame_status,
            "distractionResult": self.distraction_result,
            "state": self.state.value,
            "traitCursor": self.trait_cursor,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Encounter":
        return cls(
            id=str(data["id"]),
            village=data["village"],
            environment=data.get("environment", PLACEHOLDER),
            mount_type=data.get("mountType", PLACEHOLDER),
            mount_level=data.get("mountLevel", PLACEHOLDER),
            rarity=data.get("rarity", PLACEHOLDER),
            mount_stamina=data.get("mountStamina"),
            glide_used=bool(data.get("glideUsed", False)),
            roller_id=data.get("rollerId"),
            users=[Participant.from_dict(user) for user in data.get("users", [])],
            traits=dict(data.get("traits") or {}),
            customized_traits=list(data.get("customizedTraits") or []),
            total_spent=int(data.get("totalSpent", 0)),
            tame_status=bool(data.get("tameStatus", False)),
            distraction_result=data.get("distractionResult"),
            state=EncounterState(data.get("state", EncounterState.DISCOVERY.value)),
            trait_cursor=int(data.get("traitCursor", 0)),
            version=int(data.get("version", 0)),
        )

    def copy(self) -> "Encounter":
        return Encounter.from_dict(self.to_dict())


__all__ = [
    "ALLOWED_TRANSITIONS",
    "CAPTURE_STATES",
    "Encounter",
    "EncounterState",
    "Participant",
    "RARITY_RARE",
    "RARITY_REGULAR",
    "can_transition",
]
