"""
Process entry point: ``tamebot`` console script or ``python -m tamebot.main``.

Startup validates ``Config``, loads the YAML balance files, opens the
database and only then connects to Discord. Shutdown runs in reverse and
always flushes the log queue last.
"""

from __future__ import annotations

import asyncio
import contextlib
import signal
import sys

from tamebot.bot import TameBot
from tamebot.core.config.config import Config
from tamebot.core.config.manager import ConfigManager
from tamebot.core.database.service import DatabaseService
from tamebot.core.event import event_bus
from tamebot.core.logging.logger import get_logger, shutdown_logging

logger = get_logger(__name__)


async def _prepare_infrastructure() -> None:
    Config.validate()
    await ConfigManager.initialize()
    await DatabaseService.initialize()
    await DatabaseService.create_all()
    logger.info(
        "Infrastructure ready",
        extra={"environment": Config.ENVIRONMENT, "fee": ConfigManager.get("mount.registration_fee")},
    )


async def _stop(bot: TameBot | None) -> None:
    if bot is not None and not bot.is_closed():
        try:
            await bot.close()
        except Exception:
            logger.error("Bot did not close cleanly", exc_info=True)
    await DatabaseService.shutdown()
    logger.info("Shutdown complete")


async def main() -> None:
    bot: TameBot | None = None
    loop = asyncio.get_running_loop()
    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGTERM, lambda: asyncio.ensure_future(_stop(bot)))

    try:
        await _prepare_infrastructure()
        bot = TameBot(event_bus)
        await bot.start(Config.DISCORD_TOKEN)
    except Exception:
        logger.critical("Fatal error during startup", exc_info=True)
        raise
    finally:
        await _stop(bot)


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Stopped from keyboard")
    except Exception:
        sys.exit(1)
    finally:
        shutdown_logging()


if __name__ == "__main__":
    run()
