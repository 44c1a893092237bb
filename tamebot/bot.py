"""
Tamebot Discord Bot

Purpose
-------
Discord integration: intents, cog loading, slash command sync and the
audit listeners. Infrastructure (database, config) is initialized by
``tamebot.main`` before the bot starts.
"""

from __future__ import annotations

import time
from typing import Tuple

import discord
from discord.ext import commands

from tamebot.core.config.config import Config
from tamebot.core.event.bus import EventBus
from tamebot.core.logging.logger import get_logger
from tamebot.modules.mount.audit import register_audit_listeners

logger = get_logger(__name__)

EXTENSIONS: Tuple[str, ...] = ("tamebot.modules.mount.cog",)


class TameBot(commands.Bot):
    def __init__(self, event_bus: EventBus) -> None:
        self._event_bus = event_bus

        intents = discord.Intents.default()
        intents.guilds = True

        super().__init__(
            command_prefix=commands.when_mentioned_or(Config.COMMAND_PREFIX),
            intents=intents,
            help_command=None,
        )

    async def setup_hook(self) -> None:
        """Load cogs, register audit listeners and sync slash commands."""
        start = time.perf_counter()
        for extension in EXTENSIONS:
            await self.load_extension(extension)
            logger.info("✓ Loaded extension %s", extension)

        register_audit_listeners(self._event_bus)

        if Config.DISCORD_GUILD_ID:
            guild = discord.Object(id=Config.DISCORD_GUILD_ID)
            self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
        else:
            synced = await self.tree.sync()

        logger.info(
            "✓ Bot setup complete",
            extra={
                "commands_synced": len(synced),
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )

    async def on_ready(self) -> None:
        logger.info("Bot is ONLINE as %s (%d guilds)", self.user, len(self.guilds))

    async def close(self) -> None:
        await self._event_bus.drain()
        await super().close()
        logger.info("✓ Bot shutdown complete")
