"""
Mount Cog - Discord commands for wild mount encounters
=======================================================

Commands:
- /mount encounter  start a placeholder encounter in a village
- /mount roll       roll for the encounter with one of your characters
- /mount view       show a character's mount

All game rules live in MountEncounterService; this cog only renders the
``Step`` it returns into an embed plus buttons, selects and a naming modal.
"""

from __future__ import annotations

import time
import uuid
from typing import List, Optional

import discord
from discord import app_commands
from discord.ext import commands

from tamebot.core.config.manager import ConfigManager
from tamebot.core.event import event_bus
from tamebot.core.logging.logger import get_logger
from tamebot.modules.character import InventoryService, LedgerService
from tamebot.modules.mount import constants as C
from tamebot.modules.mount.interfaces import MountSnapshot
from tamebot.modules.mount.logic import is_low_stamina
from tamebot.modules.mount.repository import SqlEncounterStore, SqlMountRegistry
from tamebot.modules.mount.service import MountEncounterService
from tamebot.modules.mount.steps import REGISTER, Step, StepAction, StepKind
from tamebot.modules.shared.exceptions import TameBotDomainException

logger = get_logger(__name__)

VIEW_TIMEOUT_SECONDS = 300
SELECT_OPTION_LIMIT = 25
GENERIC_ERROR_MESSAGE = "An error occurred while processing your interaction. Please try again."

STEP_COLORS = {
    StepKind.PROMPT: discord.Color.blurple(),
    StepKind.MISSED: discord.Color.light_grey(),
    StepKind.REJECTED: discord.Color.orange(),
    StepKind.ESCAPED: discord.Color.red(),
    StepKind.NOT_FOUND: discord.Color.dark_grey(),
    StepKind.REGISTERED: discord.Color.green(),
}


def build_service() -> MountEncounterService:
    service_logger = get_logger("tamebot.modules.mount.service")
    return MountEncounterService(
        store=SqlEncounterStore(),
        ledger=LedgerService(ConfigManager, event_bus, get_logger("tamebot.modules.character.ledger")),
        inventory=InventoryService(
            ConfigManager, event_bus, get_logger("tamebot.modules.character.inventory")
        ),
        mounts=SqlMountRegistry(),
        config_manager=ConfigManager,
        event_bus=event_bus,
        logger=service_logger,
    )


def step_embed(step: Step) -> discord.Embed:
    embed = discord.Embed(
        title=step.title,
        description=step.message or None,
        color=STEP_COLORS.get(step.kind, discord.Color.blurple()),
    )
    display = step.display
    if "species" in display and display["species"] != C.PLACEHOLDER:
        embed.add_field(
            name="Mount",
            value=f"{display.get('rarity')} {display.get('level')} {display['species']}",
            inline=True,
        )
        embed.add_field(name="Environment", value=str(display.get("environment")), inline=True)
        embed.add_field(name="Village", value=str(display.get("village")), inline=True)
    if "rolls" in display:
        embed.add_field(
            name="Taming rolls",
            value=", ".join(str(roll) for roll in display["rolls"]) or "none",
            inline=False,
        )
    if display.get("trait_key"):
        embed.add_field(
            name="Choosing",
            value=f"{display['trait_key']} ({display.get('trait_price', 0)} tokens, random is free)",
            inline=False,
        )
    if display.get("traits"):
        embed.add_field(
            name="Traits",
            value="\n".join(f"**{key}**: {value}" for key, value in display["traits"].items()),
            inline=False,
        )
    if "stamina_remaining" in display:
        embed.set_footer(text=f"Stamina left: {display['stamina_remaining']}")
    if step.error_code:
        embed.set_footer(text=step.error_code)
    return embed


def mount_embed(mount: MountSnapshot, price: int) -> discord.Embed:
    emoji = C.SPECIES_EMOJI.get(mount.species, "")
    embed = discord.Embed(
        title=f"{emoji} {mount.name}".strip(),
        description=f"{mount.owner}'s {mount.level} {mount.species}",
        color=discord.Color.green(),
    )
    embed.add_field(name="Stamina", value=f"{mount.current_stamina}/{mount.stamina}", inline=True)
    embed.add_field(name="Region", value=mount.region, inline=True)
    embed.add_field(name="Value", value=f"{price} tokens", inline=True)
    if mount.traits:
        embed.add_field(name="Traits", value="\n".join(mount.traits), inline=False)
    if is_low_stamina(mount):
        embed.add_field(
            name="\u26a0\ufe0f Low stamina",
            value=f"{mount.name} is tired. Rest a day to recover 1 stamina.",
            inline=False,
        )
        embed.color = discord.Color.orange()
    return embed


async def send_error(
    interaction: discord.Interaction, error: Exception, operation: str, **context
) -> None:
    """Log an unexpected failure and tell the user, whether or not the interaction was answered."""
    logger.error(
        f"{operation} failed: {error}",
        extra={
            "operation": operation,
            "error_type": type(error).__name__,
            "user_id": interaction.user.id,
            **context,
        },
        exc_info=error,
    )
    embed = discord.Embed(
        title="Something went wrong",
        description=GENERIC_ERROR_MESSAGE,
        color=discord.Color.red(),
    )
    try:
        if interaction.response.is_done():
            await interaction.followup.send(embed=embed, ephemeral=True)
        else:
            await interaction.response.send_message(embed=embed, ephemeral=True)
    except discord.HTTPException as exc:
        logger.warning(
            "Could not send error message", extra={"operation": operation, "error": str(exc)}
        )


class MountNameModal(discord.ui.Modal, title="Name your mount"):
    mount_name = discord.ui.TextInput(
        label="Mount name",
        min_length=1,
        max_length=C.MOUNT_NAME_MAX_LENGTH,
        placeholder="Epona",
    )

    def __init__(self, view: "EncounterView") -> None:
        super().__init__()
        self.encounter_view = view

    async def on_submit(self, interaction: discord.Interaction) -> None:
        await self.encounter_view.run_action(interaction, REGISTER, mount_name=str(self.mount_name))

    async def on_error(self, interaction: discord.Interaction, error: Exception) -> None:
        await send_error(
            interaction, error, "mount.register", encounter_id=self.encounter_view.step.encounter_id
        )


class StepButton(discord.ui.Button["EncounterView"]):
    def __init__(self, action: StepAction, row: int) -> None:
        label = f"{action.label} ({action.cost})" if action.cost else action.label
        super().__init__(
            label=label[:80],
            style=discord.ButtonStyle.success if action.id == REGISTER else discord.ButtonStyle.primary,
            row=row,
        )
        self.action_id = action.id

    async def callback(self, interaction: discord.Interaction) -> None:
        assert self.view is not None
        if self.action_id == REGISTER:
            if not await self.view.check_user(interaction):
                return
            await interaction.response.send_modal(MountNameModal(self.view))
            return
        await self.view.run_action(interaction, self.action_id)


class StepSelect(discord.ui.Select["EncounterView"]):
    def __init__(self, actions: List[StepAction], row: int) -> None:
        super().__init__(
            placeholder="Choose an option",
            options=[
                discord.SelectOption(
                    label=action.label[:100],
                    value=action.id,
                    description=f"{action.cost} tokens" if action.cost else "Free",
                )
                for action in actions
            ],
            row=row,
        )

    async def callback(self, interaction: discord.Interaction) -> None:
        assert self.view is not None
        await self.view.run_action(interaction, self.values[0])


class EncounterView(discord.ui.View):
    """Renders the actions of one step; each click hands an action id back to the service."""

    def __init__(
        self,
        service: MountEncounterService,
        step: Step,
        user_id: int,
        character_name: Optional[str],
    ) -> None:
        super().__init__(timeout=VIEW_TIMEOUT_SECONDS)
        self.service = service
        self.step = step
        self.user_id = user_id
        self.character_name = character_name
        self.message: Optional[discord.Message] = None
        self._add_actions(step.actions)

    def _add_actions(self, actions: List[StepAction]) -> None:
        if len(actions) <= 5:
            for action in actions:
                self.add_item(StepButton(action, row=0))
            return
        for row, start in enumerate(range(0, len(actions), SELECT_OPTION_LIMIT)):
            if row >= 5:
                logger.warning(
                    "Too many actions to render",
                    extra={"encounter_id": self.step.encounter_id, "actions": len(actions)},
                )
                break
            self.add_item(StepSelect(actions[start : start + SELECT_OPTION_LIMIT], row=row))

    async def check_user(self, interaction: discord.Interaction) -> bool:
        if interaction.user.id != self.user_id:
            await interaction.response.send_message("This encounter is not yours!", ephemeral=True)
            return False
        return True

    async def run_action(
        self,
        interaction: discord.Interaction,
        action_id: str,
        mount_name: Optional[str] = None,
    ) -> None:
        if not await self.check_user(interaction):
            return
        await interaction.response.defer()

        step = await self.service.handle(
            self.step.encounter_id,
            interaction.user.id,
            action_id,
            character_name=self.character_name,
            mount_name=mount_name,
        )
        self.stop()
        next_view = None if step.is_terminal else EncounterView(
            self.service, step, self.user_id, self.character_name
        )
        message = await interaction.edit_original_response(embed=step_embed(step), view=next_view)
        if next_view is not None:
            next_view.message = message

    async def on_error(
        self, interaction: discord.Interaction, error: Exception, item: discord.ui.Item
    ) -> None:
        await send_error(interaction, error, "mount.encounter_action", encounter_id=self.step.encounter_id)

    async def on_timeout(self) -> None:
        for item in self.children:
            if isinstance(item, (discord.ui.Button, discord.ui.Select)):
                item.disabled = True
        try:
            if self.message:
                await self.message.edit(view=self)
        except discord.HTTPException:
            pass


class MountCog(commands.Cog):
    """Wild mount encounters and the stable."""

    mount = app_commands.Group(name="mount", description="Wild mounts and your stable")

    def __init__(self, bot: commands.Bot, service: Optional[MountEncounterService] = None) -> None:
        self.bot = bot
        self.service = service or build_service()

    async def cog_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        if isinstance(error, app_commands.CommandInvokeError):
            error = error.original
        command = interaction.command.qualified_name if interaction.command else "mount"
        await send_error(interaction, error, command.replace(" ", "."))

    @mount.command(name="encounter", description="Start a wild mount encounter in a village")
    @app_commands.choices(
        village=[app_commands.Choice(name=village, value=village) for village in C.VILLAGES]
    )
    async def encounter(self, interaction: discord.Interaction, village: str) -> None:
        start_time = time.perf_counter()
        encounter_id = uuid.uuid4().hex[:12]
        step = await self.service.start_encounter(encounter_id, village)
        await interaction.response.send_message(
            content=f"Encounter id: `{encounter_id}`", embed=step_embed(step)
        )
        logger.info(
            "Command used: mount encounter",
            extra={
                "user_id": interaction.user.id,
                "encounter_id": encounter_id,
                "latency_ms": round((time.perf_counter() - start_time) * 1000, 2),
            },
        )

    @mount.command(name="roll", description="Roll for a wild mount with one of your characters")
    async def roll(self, interaction: discord.Interaction, encounter_id: str, character: str) -> None:
        await interaction.response.defer()
        step = await self.service.roll_for_encounter(encounter_id, interaction.user.id, character)
        view = None
        if not step.is_terminal:
            view = EncounterView(self.service, step, interaction.user.id, character)
        message = await interaction.followup.send(embed=step_embed(step), view=view, wait=True)
        if view is not None:
            view.message = message

    @mount.command(name="view", description="Show a character's mount")
    async def view(self, interaction: discord.Interaction, character: str) -> None:
        try:
            mount = await self.service.view_mount(interaction.user.id, character)
        except TameBotDomainException as exc:
            await interaction.response.send_message(exc.message, ephemeral=True)
            return

        await interaction.response.send_message(embed=mount_embed(mount, self.service.mount_price(mount)))


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(MountCog(bot))
