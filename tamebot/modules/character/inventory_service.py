"""
Inventory gateway for character item stacks.

Item names are matched case-insensitively; a character may hold several
stacks of the same item and consumption drains them oldest first.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List

from sqlalchemy import func

from tamebot.core.database.service import DatabaseService
from tamebot.core.logging.logger import get_logger
from tamebot.database.models import InventoryItem
from tamebot.modules.mount.interfaces import InventoryEntry
from tamebot.modules.shared.base_repository import BaseRepository
from tamebot.modules.shared.base_service import BaseService

if TYPE_CHECKING:
    from logging import Logger

    from tamebot.core.config.manager import ConfigManager
    from tamebot.core.event.bus import EventBus


class InventoryService(BaseService):
    def __init__(
        self,
        config_manager: type[ConfigManager] | ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._items = BaseRepository[InventoryItem](
            InventoryItem, get_logger(f"{__name__}.InventoryItemRepository")
        )

    async def list_items(self, character_id: int) -> List[InventoryEntry]:
        async with DatabaseService.get_session() as session:
            rows = await self._items.all(
                session,
                InventoryItem.character_id == character_id,
                InventoryItem.quantity > 0,
            )
            return [InventoryEntry(item_name=row.item_name, quantity=row.quantity) for row in rows]

    async def consume_item(self, character_id: int, item_name: str, quantity: int = 1) -> bool:
        """
        Remove ``quantity`` units across the character's stacks of an item.

        Returns False, changing nothing, when fewer units are held.
        """
        self.validate_positive_int(quantity, "quantity")

        async with DatabaseService.get_transaction() as session:
            stacks = await self._items.all(
                session,
                InventoryItem.character_id == character_id,
                func.lower(InventoryItem.item_name) == item_name.strip().lower(),
                InventoryItem.quantity > 0,
                lock=True,
            )
            held = sum(stack.quantity for stack in stacks)
            if held < quantity:
                self.log.info(
                    f"Not enough {item_name} to consume",
                    extra={"character_id": character_id, "held": held, "requested": quantity},
                )
                return False

            remaining = quantity
            for stack in sorted(stacks, key=lambda row: row.id):
                taken = min(stack.quantity, remaining)
                stack.quantity -= taken
                remaining -= taken
                if stack.quantity == 0:
                    await self._items.delete(session, stack)
                if remaining == 0:
                    break

            await self.emit_event(
                "inventory.item.consumed",
                {"character_id": character_id, "item_name": item_name, "quantity": quantity},
            )
            self.log.info(
                f"Consumed {quantity} x {item_name}",
                extra={"character_id": character_id, "item_name": item_name, "quantity": quantity},
            )
            return True
