"""
Mount Encounter Service
=======================

Purpose
-------
Thin I/O adapter around the pure phase logic in ``logic.py``. Each public
operation re-reads the encounter, checks guards, performs ledger and
inventory calls, persists the transition and answers with a ``Step``.

Responsibilities
----------------
- Discovery: create placeholders, resolve discovery rolls
- Capture: maneuvers and the distraction item flow
- Taming: stamina-gated dice pool checks
- Customization: skip or paid trait-by-trait selection
- Registration: fee, mount creation, encounter cleanup
- Stable: mount view with daily stamina recovery

Every domain exception raised while handling an interaction is turned into a
``Step`` (rejected, escaped or not found). Charges always happen before the
encounter is stored; token charges carry a reference so a retried
interaction is never charged twice.
"""

from __future__ import annotations

import random
from datetime import date
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional

from tamebot.core.database.base import utc_now
from tamebot.core.logging.logger import LogContext
from tamebot.modules.mount import constants as C
from tamebot.modules.mount import logic
from tamebot.modules.mount.catalog import SpeciesCatalog
from tamebot.modules.mount.encounter import Encounter, EncounterState
from tamebot.modules.mount.interfaces import (
    CharacterSnapshot,
    EncounterStore,
    Inventory,
    MountRegistry,
    MountSnapshot,
    ResourceLedger,
)
from tamebot.modules.mount.resolver import Maneuver, ResolverSettings, roll_discovery
from tamebot.modules.mount.steps import (
    CUSTOMIZE,
    REGISTER,
    ROLL,
    SKIP,
    TAME,
    Step,
    StepKind,
    capture_actions,
    customization_choice_actions,
    discovery_actions,
    distraction_actions,
    encounter_display,
    parse_action_id,
    registration_actions,
    resolve_trait_option,
    tame_actions,
    trait_actions,
)
from tamebot.modules.shared.base_service import BaseService
from tamebot.modules.shared.exceptions import (
    InsufficientResourcesError,
    InvalidOperationError,
    NotFoundError,
    ResourceExhaustedError,
    TameBotDomainException,
    ValidationError,
)

if TYPE_CHECKING:
    from logging import Logger

    from tamebot.core.config.manager import ConfigManager
    from tamebot.core.event.bus import EventBus


class MountEncounterService(BaseService):
    """
    Drives a mount encounter from discovery to registration.

    Dependencies
    ------------
    - EncounterStore: persisted encounter documents
    - ResourceLedger: character stamina and user tokens
    - Inventory: distraction items
    - MountRegistry: registered mounts
    - SpeciesCatalog: trait plans, options and prices
    - random.Random: every die roll, injectable for reproducible tests
    """

    def __init__(
        self,
        store: EncounterStore,
        ledger: ResourceLedger,
        inventory: Inventory,
        mounts: MountRegistry,
        config_manager: type[ConfigManager] | ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        catalog: Optional[SpeciesCatalog] = None,
        rng: Optional[random.Random] = None,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._store = store
        self._ledger = ledger
        self._inventory = inventory
        self._mounts = mounts
        self._catalog = catalog or SpeciesCatalog.default()
        self._rng = rng or random.Random()
        self._today = today or (lambda: utc_now().date())

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    @property
    def settings(self) -> ResolverSettings:
        return ResolverSettings.from_config(self._config)

    @property
    def tame_stamina_cost(self) -> int:
        return int(self.get_config("mount.tame.stamina_cost", C.DEFAULT_TAME_STAMINA_COST))

    @property
    def registration_fee(self) -> int:
        return int(self.get_config("mount.registration_fee", C.DEFAULT_REGISTRATION_FEE))

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    async def handle(
        self,
        encounter_id: str,
        user_id: str | int,
        action_id: str,
        character_name: Optional[str] = None,
        mount_name: Optional[str] = None,
    ) -> Step:
        """
        Route an action id produced by a previous ``Step`` to its operation.

        ``character_name`` is required for the discovery roll and optional
        everywhere else; ``mount_name`` is only used by ``register``.
        """
        try:
            action = parse_action_id(action_id)
        except TameBotDomainException as exc:
            return await self._rejected(encounter_id, exc)

        if action.kind == ROLL:
            if not character_name:
                return await self._rejected(
                    encounter_id, ValidationError("character_name", "rolling needs a character")
                )
            return await self.roll_for_encounter(encounter_id, user_id, character_name)
        if action.kind == "maneuver":
            return await self.maneuver(encounter_id, user_id, action.maneuver, character_name)
        if action.kind == "item":
            return await self.select_distraction_item(
                encounter_id, user_id, action.item_name, character_name
            )
        if action.kind == TAME:
            return await self.tame(encounter_id, user_id, character_name)
        if action.kind in (CUSTOMIZE, SKIP):
            return await self.choose_customization(
                encounter_id, user_id, action.kind == CUSTOMIZE, character_name
            )
        if action.kind == "trait":
            return await self.select_trait(
                encounter_id, user_id, action.trait_key, action.option, character_name
            )
        return await self.register(encounter_id, user_id, mount_name, character_name)

    async def _run(
        self,
        operation: str,
        encounter_id: str,
        user_id: Optional[str | int],
        handler: Callable[[], Awaitable[Step]],
    ) -> Step:
        async with LogContext(
            user_id=user_id, encounter_id=encounter_id, operation=operation, component="mount"
        ):
            self.log_operation(operation, encounter_id=encounter_id, user_id=str(user_id))
            try:
                return await handler()
            except NotFoundError as exc:
                self.log.info(
                    f"{operation}: {exc.message}",
                    extra={"encounter_id": encounter_id, "error_code": exc.error_code},
                )
                return Step(
                    encounter_id=encounter_id,
                    state=None,
                    kind=StepKind.NOT_FOUND,
                    title="Nothing here",
                    message=exc.message,
                    error_code=exc.error_code,
                )
            except ResourceExhaustedError as exc:
                return await self._escaped(encounter_id, user_id, exc)
            except TameBotDomainException as exc:
                self.log.warning(
                    f"{operation} rejected: {exc.message}",
                    extra={
                        "encounter_id": encounter_id,
                        "error_code": exc.error_code,
                        "details": exc.details,
                    },
                )
                return await self._rejected(encounter_id, exc)
            except Exception as exc:
                self.log_error(operation, exc, encounter_id=encounter_id, user_id=str(user_id))
                raise

    # -------------------------------------------------------------------------
    # Discovery
    # -------------------------------------------------------------------------

    async def start_encounter(self, encounter_id: str, village: str) -> Step:
        """Create a placeholder encounter; an existing one is presented as is."""

        async def run() -> Step:
            if village not in C.VILLAGES:
                raise ValidationError("village", f"unknown village {village!r}")
            existing = await self._store.get(encounter_id)
            if existing is not None:
                return await self._prompt(existing)

            encounter = await self._store.put(Encounter.placeholder(encounter_id, village))
            await self.emit_event(
                "mount.encounter.started", {"encounter_id": encounter_id, "village": village}
            )
            return await self._prompt(encounter, message=f"Rumors of a wild mount near {village}.")

        return await self._run("mount.start_encounter", encounter_id, None, run)

    async def roll_for_encounter(
        self, encounter_id: str, user_id: str | int, character_name: str
    ) -> Step:
        """d20 discovery roll; only a natural 20 reveals the mount."""

        async def run() -> Step:
            encounter = await self._load(encounter_id)
            encounter.require_state(EncounterState.DISCOVERY)
            character = await self._owned_character(user_id, character_name)

            roll = roll_discovery(self._rng)
            promoted = logic.apply_discovery_roll(
                encounter, roll, character, self._rng, self.settings
            )
            if not promoted:
                self.log.info(
                    f"Discovery roll {roll} by {character.name} found nothing",
                    extra={"encounter_id": encounter_id, "roll": roll},
                )
                return Step(
                    encounter_id=encounter_id,
                    state=encounter.state,
                    kind=StepKind.MISSED,
                    title="No mount found",
                    message=f"{character.name} rolled {roll}. The tracks go cold.",
                    actions=discovery_actions(),
                    display={"roll": roll},
                )

            encounter = await self._store.put(encounter)
            await self.emit_event(
                "mount.encounter.promoted",
                {
                    "encounter_id": encounter_id,
                    "user_id": str(user_id),
                    "character_name": character.name,
                    "species": encounter.mount_type,
                    "level": encounter.mount_level,
                    "rarity": encounter.rarity,
                },
            )
            self.log.info(
                f"{character.name} found a {encounter.rarity} {encounter.mount_type}",
                extra={
                    "encounter_id": encounter_id,
                    "species": encounter.mount_type,
                    "level": encounter.mount_level,
                    "environment": encounter.environment,
                },
            )
            return await self._prompt(
                encounter,
                message=f"{character.name} rolled a natural 20 and spotted a wild {encounter.mount_type}!",
                roll=roll,
            )

        return await self._run("mount.roll", encounter_id, user_id, run)

    # -------------------------------------------------------------------------
    # Capture
    # -------------------------------------------------------------------------

    async def maneuver(
        self,
        encounter_id: str,
        user_id: str | int,
        maneuver: Maneuver,
        character_name: Optional[str] = None,
    ) -> Step:
        async def run() -> Step:
            encounter = await self._load(encounter_id)
            logic.check_maneuver(encounter, maneuver)
            logic.authorize(encounter, str(user_id), maneuver.value, character_name)
            character = await self._participant_character(encounter)

            if maneuver is Maneuver.DISTRACT:
                return await self._open_distraction(encounter, character)

            debit = await self._ledger.debit_stamina(character.id, 1)
            result = logic.apply_maneuver(encounter, maneuver, debit, self._rng, self.settings)
            if result.escaped:
                raise ResourceExhaustedError("stamina", character.name)

            encounter = await self._store.put(encounter)
            outcome = result.outcome
            await self.emit_event(
                "mount.maneuver.resolved",
                {
                    "encounter_id": encounter_id,
                    "user_id": str(user_id),
                    "maneuver": maneuver.value,
                    "roll": outcome.roll,
                    "modifier": outcome.modifier,
                    "threshold": outcome.threshold,
                    "success": outcome.success,
                    "stamina_remaining": debit.new_balance,
                },
            )
            self.log.info(
                f"{maneuver.value} by {character.name}: {outcome.roll}+{outcome.modifier} "
                f"vs {outcome.threshold} ({'success' if outcome.success else 'failure'})",
                extra={"encounter_id": encounter_id, "maneuver": maneuver.value},
            )

            verdict = "The mount is cornered!" if outcome.success else "The mount slips away."
            return await self._prompt(
                encounter,
                message=f"{maneuver.value.capitalize()}: rolled {outcome.roll} "
                f"(+{outcome.modifier}) against {outcome.threshold}. {verdict}",
                roll=outcome.roll,
                modifier=outcome.modifier,
                threshold=outcome.threshold,
                stamina_remaining=debit.new_balance,
            )

        return await self._run(f"mount.{maneuver.value}", encounter_id, user_id, run)

    async def _open_distraction(self, encounter: Encounter, character: CharacterSnapshot) -> Step:
        menu = logic.distraction_menu(
            await self._inventory.list_items(character.id), encounter.mount_type
        )
        if not menu:
            raise InvalidOperationError(
                "distract", f"{character.name} has nothing that would distract a {encounter.mount_type}"
            )
        logic.open_distraction(encounter)
        encounter = await self._store.put(encounter)
        return Step(
            encounter_id=encounter.id,
            state=encounter.state,
            kind=StepKind.PROMPT,
            title="Choose a distraction",
            message=f"Pick an item to distract the {encounter.mount_type}.",
            actions=distraction_actions(menu),
            display=encounter_display(encounter),
        )

    async def select_distraction_item(
        self,
        encounter_id: str,
        user_id: str | int,
        item_name: str,
        character_name: Optional[str] = None,
    ) -> Step:
        """Consume one unit of the item, then roll d20 + item bonus against the distract threshold."""

        async def run() -> Step:
            encounter = await self._load(encounter_id)
            logic.authorize(encounter, str(user_id), "distract", character_name)
            encounter.require_state(EncounterState.AWAITING_DISTRACTION_ITEM)
            character = await self._participant_character(encounter)

            menu = logic.distraction_menu(
                await self._inventory.list_items(character.id), encounter.mount_type
            )
            item = logic.check_distraction_item(encounter, item_name, menu)
            if not await self._inventory.consume_item(character.id, item, 1):
                raise InsufficientResourcesError(item, 1, 0)

            outcome = logic.apply_distraction(encounter, item, self._rng, self.settings)
            encounter = await self._store.put(encounter)
            await self.emit_event(
                "mount.distraction.resolved",
                {
                    "encounter_id": encounter_id,
                    "user_id": str(user_id),
                    "item_name": item,
                    "roll": outcome.roll,
                    "bonus": outcome.modifier,
                    "success": outcome.success,
                },
            )

            verdict = (
                f"The {encounter.mount_type} is busy with the {item}!"
                if outcome.success
                else f"The {encounter.mount_type} ignores the {item}."
            )
            return await self._prompt(
                encounter,
                message=f"Rolled {outcome.roll} (+{outcome.modifier}). {verdict}",
                roll=outcome.roll,
                modifier=outcome.modifier,
                item_name=item,
            )

        return await self._run("mount.distract_item", encounter_id, user_id, run)

    # -------------------------------------------------------------------------
    # Taming
    # -------------------------------------------------------------------------

    async def tame(
        self, encounter_id: str, user_id: str | int, character_name: Optional[str] = None
    ) -> Step:
        async def run() -> Step:
            encounter = await self._load(encounter_id)
            logic.authorize(encounter, str(user_id), "tame", character_name)
            encounter.require_state(EncounterState.AWAITING_TAME)
            character = await self._participant_character(encounter)

            cost = self.tame_stamina_cost
            debit = await self._ledger.debit_stamina(character.id, cost)
            result = logic.apply_taming(encounter, debit, cost, self._rng, self.settings)
            if result.escaped:
                raise ResourceExhaustedError("stamina", character.name)

            encounter = await self._store.put(encounter)
            outcome = result.outcome
            await self.emit_event(
                "mount.tame.resolved",
                {
                    "encounter_id": encounter_id,
                    "user_id": str(user_id),
                    "rolls": list(outcome.rolls),
                    "successes": outcome.successes,
                    "required": outcome.required,
                    "natural_twenty": outcome.natural_twenty,
                    "success": outcome.success,
                },
            )
            self.log.info(
                f"Taming by {character.name}: {outcome.successes}/{outcome.required} successes",
                extra={
                    "encounter_id": encounter_id,
                    "pool_size": len(outcome.rolls),
                    "natural_twenty": outcome.natural_twenty,
                    "success": outcome.success,
                },
            )

            if outcome.success:
                message = f"{character.name} tamed the {encounter.mount_type}!"
            else:
                message = (
                    f"{outcome.successes} of {outcome.required} needed successes. "
                    f"The {encounter.mount_type} resists."
                )
            return await self._prompt(
                encounter,
                message=message,
                rolls=list(outcome.rolls),
                successes=outcome.successes,
                required=outcome.required,
                stamina_remaining=debit.new_balance,
            )

        return await self._run("mount.tame", encounter_id, user_id, run)

    # -------------------------------------------------------------------------
    # Customization
    # -------------------------------------------------------------------------

    async def choose_customization(
        self,
        encounter_id: str,
        user_id: str | int,
        customize: bool,
        character_name: Optional[str] = None,
    ) -> Step:
        async def run() -> Step:
            encounter = await self._load(encounter_id)
            logic.authorize(encounter, str(user_id), CUSTOMIZE if customize else SKIP, character_name)
            profile = self._catalog.get(encounter.mount_type)

            if customize:
                logic.start_customization(encounter, profile)
                message = "Choose each trait, or let fate decide."
            else:
                logic.skip_customization(encounter, profile, self._rng)
                message = "Traits were rolled at random."

            encounter = await self._store.put(encounter)
            await self.emit_event(
                "mount.customization.chosen",
                {"encounter_id": encounter_id, "user_id": str(user_id), "customize": customize},
            )
            return await self._prompt(encounter, message=message)

        return await self._run("mount.customization", encounter_id, user_id, run)

    async def select_trait(
        self,
        encounter_id: str,
        user_id: str | int,
        trait_key: str,
        option: str,
        character_name: Optional[str] = None,
    ) -> Step:
        """
        Resolve the current trait key with an explicit option or ``random``.

        An explicit option is charged the species price under the reference
        ``"{encounter_id}:trait:{key}"`` before the encounter is stored.
        A selection for a key already resolved re-presents the current step.
        """

        async def run() -> Step:
            encounter = await self._load(encounter_id)
            logic.authorize(encounter, str(user_id), "select_trait", character_name)
            profile = self._catalog.get(encounter.mount_type)

            if logic.is_replayed_selection(encounter, profile, trait_key):
                return await self._prompt(encounter, message=f"{trait_key} is already set.")

            logic.check_trait_selection(encounter, profile, trait_key)
            value, is_random = resolve_trait_option(profile, trait_key, option)
            cost = 0
            if is_random:
                value = profile.random_value(trait_key, self._rng)
            else:
                cost = profile.price(trait_key)
                if cost > 0:
                    debit = await self._ledger.debit_currency(
                        str(user_id), cost, logic.trait_reference(encounter_id, trait_key)
                    )
                    if debit.insufficient:
                        raise InsufficientResourcesError("tokens", cost, debit.new_balance)

            logic.apply_trait_selection(encounter, profile, trait_key, value, cost, is_random=is_random)
            encounter = await self._store.put(encounter)
            await self.emit_event(
                "mount.trait.resolved",
                {
                    "encounter_id": encounter_id,
                    "user_id": str(user_id),
                    "trait_key": trait_key,
                    "value": value,
                    "random": is_random,
                    "cost": cost,
                    "total_spent": encounter.total_spent,
                },
            )
            return await self._prompt(encounter, message=f"{trait_key}: {value}")

        return await self._run("mount.select_trait", encounter_id, user_id, run)

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    async def register(
        self,
        encounter_id: str,
        user_id: str | int,
        mount_name: Optional[str],
        character_name: Optional[str] = None,
    ) -> Step:
        """
        Pay the registration fee and turn the encounter into a mount.

        The fee reference is ``"{encounter_id}:registration"`` and mount
        creation is keyed by the encounter id, so a retried registration
        completes without a second charge or a second mount.
        """

        async def run() -> Step:
            encounter = await self._load(encounter_id)
            logic.authorize(encounter, str(user_id), REGISTER, character_name)
            encounter.require_state(EncounterState.AWAITING_REGISTRATION)
            name = logic.validate_mount_name(mount_name)
            character = await self._participant_character(encounter)

            existing = await self._mounts.get_for_character(character.id)
            resuming = existing is not None and existing.source_encounter_id == encounter.id
            if (existing is not None or character.has_mount) and not resuming:
                raise InvalidOperationError("register", f"{character.name} already owns a mount")

            fee = self.registration_fee
            if fee > 0:
                debit = await self._ledger.debit_currency(
                    str(user_id), fee, logic.registration_reference(encounter_id)
                )
                if debit.insufficient:
                    raise InsufficientResourcesError("tokens", fee, debit.new_balance)

            mount = await self._mounts.create_mount(logic.build_mount(encounter, character, name))
            await self._ledger.mark_has_mount(character.id)
            encounter.transition_to(EncounterState.REGISTERED)
            await self._store.delete(encounter_id)

            await self.emit_event(
                "mount.registered",
                {
                    "encounter_id": encounter_id,
                    "user_id": str(user_id),
                    "character_id": character.id,
                    "mount_name": mount.name,
                    "species": mount.species,
                    "fee": fee,
                    "total_spent": encounter.total_spent,
                },
            )
            self.log.info(
                f"{character.name} registered {mount.name} the {mount.species}",
                extra={"encounter_id": encounter_id, "mount_id": mount.id, "fee": fee},
            )
            return Step(
                encounter_id=encounter_id,
                state=EncounterState.REGISTERED,
                kind=StepKind.REGISTERED,
                title=f"{mount.name} joins the stable",
                message=f"{character.name} registered {mount.name} the {mount.species}.",
                display={**encounter_display(encounter), **self._mount_display(mount)},
            )

        return await self._run("mount.register", encounter_id, user_id, run)

    # -------------------------------------------------------------------------
    # Stable
    # -------------------------------------------------------------------------

    async def view_mount(self, user_id: str | int, character_name: str) -> MountSnapshot:
        """Return the character's mount after applying daily stamina recovery."""
        async with LogContext(user_id=user_id, operation="mount.view", component="mount"):
            character = await self._owned_character(user_id, character_name)
            mount = await self._mounts.get_for_character(character.id)
            if mount is None:
                raise NotFoundError("Mount", character.name)

            if logic.apply_daily_recovery(mount, self._today()):
                mount = await self._mounts.save(mount)
                self.log.info(
                    f"Daily recovery for {mount.name}",
                    extra={"mount_id": mount.id, "current_stamina": mount.current_stamina},
                )
            return mount

    def mount_price(self, mount: MountSnapshot) -> int:
        return logic.calculate_mount_price(mount.level, mount.is_rare, mount.species, mount.region)

    async def current_step(self, encounter_id: str, user_id: Optional[str | int] = None) -> Step:
        """Re-present the encounter as it stands."""

        async def run() -> Step:
            return await self._prompt(await self._load(encounter_id))

        return await self._run("mount.view_encounter", encounter_id, user_id, run)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _load(self, encounter_id: str) -> Encounter:
        encounter = await self._store.get(encounter_id)
        if encounter is None:
            raise NotFoundError("Encounter", encounter_id)
        return encounter

    async def _owned_character(self, user_id: str | int, character_name: str) -> CharacterSnapshot:
        character = await self._ledger.get_character(str(user_id), character_name)
        if character is None:
            raise NotFoundError("Character", character_name)
        return character

    async def _participant_character(self, encounter: Encounter) -> CharacterSnapshot:
        participant = encounter.participant
        if participant is None:
            raise InvalidOperationError("act", "encounter has no tracked participant")
        return await self._owned_character(participant.user_id, participant.character_name)

    async def _prompt(self, encounter: Encounter, message: str = "", **display: Any) -> Step:
        """Build the PROMPT step for the encounter's current state."""
        state = encounter.state
        step = Step(
            encounter_id=encounter.id,
            state=state,
            kind=StepKind.PROMPT,
            title=self._title_for(encounter),
            message=message,
            display=encounter_display(encounter, **display),
        )

        if state is EncounterState.DISCOVERY:
            step.actions = discovery_actions()
        elif state is EncounterState.AWAITING_ACTION:
            step.actions = capture_actions(encounter)
        elif state is EncounterState.AWAITING_DISTRACTION_ITEM:
            character = await self._participant_character(encounter)
            menu = logic.distraction_menu(
                await self._inventory.list_items(character.id), encounter.mount_type
            )
            step.actions = distraction_actions(menu) or capture_actions(encounter)
        elif state is EncounterState.AWAITING_TAME:
            step.actions = tame_actions(self.tame_stamina_cost)
        elif state is EncounterState.AWAITING_CUSTOMIZATION_CHOICE:
            step.actions = customization_choice_actions()
        elif state is EncounterState.AWAITING_TRAIT_SELECTION:
            profile = self._catalog.get(encounter.mount_type)
            trait_key = logic.current_trait_key(encounter, profile)
            step.actions = trait_actions(profile, trait_key)
            step.display.update(
                trait_key=trait_key,
                trait_price=profile.price(trait_key),
                traits=dict(encounter.traits),
            )
        elif state is EncounterState.AWAITING_REGISTRATION:
            step.actions = registration_actions(self.registration_fee)
            step.display["traits"] = dict(encounter.traits)
        return step

    @staticmethod
    def _title_for(encounter: Encounter) -> str:
        if encounter.is_placeholder:
            return f"Wild mount sighted near {encounter.village}"
        titles: Dict[EncounterState, str] = {
            EncounterState.AWAITING_ACTION: "Approach the mount",
            EncounterState.AWAITING_DISTRACTION_ITEM: "Choose a distraction",
            EncounterState.AWAITING_TAME: "Attempt to tame",
            EncounterState.AWAITING_CUSTOMIZATION_CHOICE: "Customize your mount?",
            EncounterState.AWAITING_TRAIT_SELECTION: "Choose a trait",
            EncounterState.AWAITING_REGISTRATION: "Register your mount",
        }
        emoji = C.SPECIES_EMOJI.get(encounter.mount_type, "")
        title = titles.get(encounter.state, "Mount encounter")
        return f"{emoji} {title}".strip()

    async def _rejected(self, encounter_id: str, exc: TameBotDomainException) -> Step:
        """Rejection re-presents the unchanged encounter when it can still be shown."""
        step = Step(
            encounter_id=encounter_id,
            state=None,
            kind=StepKind.REJECTED,
            title="Action rejected",
            message=exc.message,
            error_code=exc.error_code,
        )
        encounter = await self._store.get(encounter_id)
        if encounter is None:
            return step

        try:
            current = await self._prompt(encounter)
        except TameBotDomainException as prompt_error:
            self.log.warning(
                f"Could not re-present encounter: {prompt_error.message}",
                extra={"encounter_id": encounter_id, "error_code": prompt_error.error_code},
            )
            step.state = encounter.state
            return step

        step.state = current.state
        step.actions = current.actions
        step.display = current.display
        return step

    async def _escaped(
        self, encounter_id: str, user_id: Optional[str | int], exc: ResourceExhaustedError
    ) -> Step:
        await self._store.delete(encounter_id)
        await self.emit_event(
            "mount.escaped",
            {"encounter_id": encounter_id, "user_id": str(user_id), "reason": exc.error_code},
        )
        self.log.info(
            f"Mount escaped: {exc.message}",
            extra={"encounter_id": encounter_id, "error_code": exc.error_code},
        )
        return Step(
            encounter_id=encounter_id,
            state=EncounterState.ESCAPED,
            kind=StepKind.ESCAPED,
            title="The mount escaped!",
            message=f"{exc.message} The wild mount bolts out of sight.",
            error_code=exc.error_code,
        )

    @staticmethod
    def _mount_display(mount: MountSnapshot) -> Dict[str, Any]:
        return {
            "mount_id": mount.id,
            "mount_name": mount.name,
            "owner": mount.owner,
            "mount_traits": list(mount.traits),
            "region": mount.region,
        }
