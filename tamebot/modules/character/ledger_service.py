"""
Resource Ledger Service
=======================

Purpose
-------
Owns every change to character stamina, hearts and user tokens. Each write
runs in its own transaction with the affected row locked
(``SELECT ... FOR UPDATE``), so concurrent interactions never drive a
balance below zero.

Domain
------
- Stamina: debited by capture maneuvers and taming attempts, credited by rest
- Hearts: credited by healing
- Tokens: debited by trait customization and registration fees

Token debits carry a caller-chosen ``reference``. A reference is recorded in
``ledger_entries`` exactly once; repeating a debit with the same reference
returns the original charge flagged ``replayed`` and takes nothing.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from tamebot.core.database.service import DatabaseService
from tamebot.core.logging.logger import get_logger
from tamebot.database.models import Character, LedgerEntry, UserAccount
from tamebot.modules.mount.interfaces import CharacterSnapshot, CurrencyDebit, StaminaDebit
from tamebot.modules.shared.base_repository import BaseRepository
from tamebot.modules.shared.base_service import BaseService
from tamebot.modules.shared.exceptions import NotFoundError

if TYPE_CHECKING:
    from logging import Logger

    from tamebot.core.config.manager import ConfigManager
    from tamebot.core.event.bus import EventBus


class LedgerService(BaseService):
    """
    SQL implementation of the resource ledger.

    Public Methods
    --------------
    - get_character() / get_character_by_id() -> read a character snapshot
    - debit_stamina() / credit_stamina() -> bounded stamina changes
    - credit_hearts() -> bounded heart changes
    - get_balance() -> user token balance
    - debit_currency() / credit_currency() -> referenced token movements
    - mark_has_mount() -> flag a character as mount owner
    """

    def __init__(
        self,
        config_manager: type[ConfigManager] | ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._characters = BaseRepository[Character](
            Character, get_logger(f"{__name__}.CharacterRepository")
        )
        self._accounts = BaseRepository[UserAccount](
            UserAccount, get_logger(f"{__name__}.UserAccountRepository")
        )
        self._entries = BaseRepository[LedgerEntry](
            LedgerEntry, get_logger(f"{__name__}.LedgerEntryRepository")
        )

    # -------------------------------------------------------------------------
    # Characters
    # -------------------------------------------------------------------------

    async def get_character(self, user_id: str, character_name: str) -> Optional[CharacterSnapshot]:
        async with DatabaseService.get_session() as session:
            character = await self._characters.first(
                session,
                Character.user_id == int(user_id),
                Character.name == character_name,
            )
            return self._snapshot(character) if character is not None else None

    async def get_character_by_id(self, character_id: int) -> Optional[CharacterSnapshot]:
        async with DatabaseService.get_session() as session:
            character = await self._characters.get(session, character_id)
            return self._snapshot(character) if character is not None else None

    async def debit_stamina(self, character_id: int, amount: int) -> StaminaDebit:
        """
        Take ``amount`` stamina from a character.

        Returns ``ok=False`` without changing anything when the character
        holds less than ``amount``.

        Raises:
            NotFoundError: character does not exist
        """
        self.validate_positive_int(amount, "amount")
        self.log_operation("debit_stamina", character_id=character_id, amount=amount)

        async with DatabaseService.get_transaction() as session:
            character = await self._characters.get(session, character_id, lock=True)
            if character is None:
                raise NotFoundError("Character", character_id)

            old_stamina = character.current_stamina
            if old_stamina < amount:
                self.log.info(
                    f"{character.name} is out of stamina",
                    extra={"character_id": character_id, "current_stamina": old_stamina, "amount": amount},
                )
                return StaminaDebit(ok=False, new_balance=old_stamina)

            character.current_stamina = old_stamina - amount

            await self.emit_event(
                "character.stamina.debited",
                {
                    "character_id": character_id,
                    "amount": amount,
                    "old_stamina": old_stamina,
                    "new_stamina": character.current_stamina,
                },
            )
            self.log.info(
                f"Stamina debited: {character.name} {old_stamina} -> {character.current_stamina}",
                extra={
                    "character_id": character_id,
                    "amount": amount,
                    "old_stamina": old_stamina,
                    "new_stamina": character.current_stamina,
                },
            )
            return StaminaDebit(ok=True, new_balance=character.current_stamina)

    async def credit_stamina(self, character_id: int, amount: int) -> int:
        """Add stamina, capped at the character's maximum; returns the new value."""
        self.validate_positive_int(amount, "amount")

        async with DatabaseService.get_transaction() as session:
            character = await self._characters.get(session, character_id, lock=True)
            if character is None:
                raise NotFoundError("Character", character_id)

            old_stamina = character.current_stamina
            character.current_stamina = min(character.max_stamina, old_stamina + amount)
            await self.emit_event(
                "character.stamina.credited",
                {
                    "character_id": character_id,
                    "amount": amount,
                    "old_stamina": old_stamina,
                    "new_stamina": character.current_stamina,
                },
            )
            return character.current_stamina

    async def credit_hearts(self, character_id: int, amount: int) -> int:
        """Add hearts, capped at the character's maximum; returns the new value."""
        self.validate_positive_int(amount, "amount")

        async with DatabaseService.get_transaction() as session:
            character = await self._characters.get(session, character_id, lock=True)
            if character is None:
                raise NotFoundError("Character", character_id)

            old_hearts = character.current_hearts
            character.current_hearts = min(character.max_hearts, old_hearts + amount)
            await self.emit_event(
                "character.hearts.credited",
                {
                    "character_id": character_id,
                    "amount": amount,
                    "old_hearts": old_hearts,
                    "new_hearts": character.current_hearts,
                },
            )
            return character.current_hearts

    async def mark_has_mount(self, character_id: int) -> None:
        async with DatabaseService.get_transaction() as session:
            character = await self._characters.get(session, character_id, lock=True)
            if character is None:
                raise NotFoundError("Character", character_id)
            character.has_mount = True

    # -------------------------------------------------------------------------
    # Tokens
    # -------------------------------------------------------------------------

    async def get_balance(self, user_id: str) -> int:
        async with DatabaseService.get_session() as session:
            account = await self._accounts.get(session, int(user_id))
            return account.tokens if account is not None else 0

    async def debit_currency(
        self,
        user_id: str,
        amount: int,
        reference: str,
        reason: str = "mount",
        details: Optional[Dict[str, Any]] = None,
    ) -> CurrencyDebit:
        """
        Take ``amount`` tokens from a user, once per ``reference``.

        The account row is locked before the reference is checked, so two
        concurrent debits with the same reference serialize and the second
        one sees the first one's entry.

        Returns:
            CurrencyDebit with ``ok=False`` when the balance is too low,
            ``replayed=True`` when the reference was already charged.
        """
        self.validate_positive_int(amount, "amount")
        self.log_operation("debit_currency", user_id=str(user_id), amount=amount, reference=reference)

        async with DatabaseService.get_transaction() as session:
            account = await self._accounts.get(session, int(user_id), lock=True)
            balance = account.tokens if account is not None else 0

            existing = await self._entries.first(session, LedgerEntry.reference == reference)
            if existing is not None:
                self.log.info(
                    f"Debit already recorded for {reference}",
                    extra={"user_id": str(user_id), "reference": reference, "charged": -existing.delta},
                )
                return CurrencyDebit(
                    ok=True, new_balance=balance, charged=-existing.delta, replayed=True
                )

            if account is None or balance < amount:
                self.log.info(
                    f"Insufficient tokens for {reference}",
                    extra={"user_id": str(user_id), "required": amount, "balance": balance},
                )
                return CurrencyDebit(ok=False, new_balance=balance)

            account.tokens = balance - amount
            self._entries.add(
                session,
                LedgerEntry(
                    user_id=int(user_id),
                    reference=reference,
                    delta=-amount,
                    balance_after=account.tokens,
                    reason=reason,
                    details=details or {},
                ),
            )

            await self.emit_event(
                "currency.debited",
                {
                    "user_id": str(user_id),
                    "amount": amount,
                    "reference": reference,
                    "old_balance": balance,
                    "new_balance": account.tokens,
                },
            )
            self.log.info(
                f"Tokens debited: {amount} for {reference}",
                extra={
                    "user_id": str(user_id),
                    "amount": amount,
                    "reference": reference,
                    "old_balance": balance,
                    "new_balance": account.tokens,
                },
            )
            return CurrencyDebit(ok=True, new_balance=account.tokens, charged=amount)

    async def credit_currency(
        self,
        user_id: str,
        amount: int,
        reference: str,
        reason: str = "grant",
    ) -> int:
        """Give tokens, creating the account on first use; idempotent per reference."""
        self.validate_positive_int(amount, "amount")

        async with DatabaseService.get_transaction() as session:
            account = await self._accounts.get(session, int(user_id), lock=True)
            if account is None:
                account = self._accounts.add(session, UserAccount(user_id=int(user_id), tokens=0))

            if await self._entries.exists(session, LedgerEntry.reference == reference):
                return account.tokens

            old_balance = account.tokens
            account.tokens = old_balance + amount
            self._entries.add(
                session,
                LedgerEntry(
                    user_id=int(user_id),
                    reference=reference,
                    delta=amount,
                    balance_after=account.tokens,
                    reason=reason,
                    details={},
                ),
            )
            await self.emit_event(
                "currency.credited",
                {
                    "user_id": str(user_id),
                    "amount": amount,
                    "reference": reference,
                    "old_balance": old_balance,
                    "new_balance": account.tokens,
                },
            )
            return account.tokens

    @staticmethod
    def _snapshot(character: Character) -> CharacterSnapshot:
        return CharacterSnapshot(
            id=character.id,
            user_id=str(character.user_id),
            name=character.name,
            current_stamina=character.current_stamina,
            max_stamina=character.max_stamina,
            current_hearts=character.current_hearts,
            max_hearts=character.max_hearts,
            job=character.job,
            has_mount=character.has_mount,
        )
