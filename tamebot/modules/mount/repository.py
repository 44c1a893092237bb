"""
SQL implementations of the encounter store and the mount registry.

Both open their own short transactions through DatabaseService. The
encounter store keeps each encounter as a JSON document guarded by an
optimistic ``version``: a write based on a stale read raises
EncounterConflictError instead of overwriting a concurrent change.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tamebot.core.database.service import DatabaseService
from tamebot.core.logging.logger import get_logger
from tamebot.database.models import Mount, MountEncounterRecord
from tamebot.modules.mount.encounter import Encounter
from tamebot.modules.mount.interfaces import MountSnapshot
from tamebot.modules.shared.base_repository import BaseRepository
from tamebot.modules.shared.exceptions import EncounterConflictError, NotFoundError

logger = get_logger(__name__)


class SqlEncounterStore:
    """EncounterStore backed by the ``mount_encounters`` table."""

    def __init__(self) -> None:
        self._records = BaseRepository(MountEncounterRecord, logger)

    async def get(self, encounter_id: str) -> Optional[Encounter]:
        async with DatabaseService.get_session() as session:
            record = await self._records.get(session, encounter_id)
            if record is None:
                return None
            return self._to_encounter(record)

    async def put(self, encounter: Encounter) -> Encounter:
        async with DatabaseService.get_transaction() as session:
            record = await self._records.get(session, encounter.id, lock=True)
            if record is None:
                if encounter.version != 0:
                    raise EncounterConflictError(encounter.id, encounter.version, None)
                stored = replace(encounter, version=1)
                self._records.add(
                    session,
                    MountEncounterRecord(
                        id=encounter.id,
                        state=stored.state.value,
                        version=1,
                        data=stored.to_dict(),
                    ),
                )
            else:
                if record.version != encounter.version:
                    raise EncounterConflictError(encounter.id, encounter.version, record.version)
                stored = replace(encounter, version=record.version + 1)
                record.version = stored.version
                record.state = stored.state.value
                record.data = stored.to_dict()

        logger.debug(
            "Encounter stored",
            extra={"encounter_id": encounter.id, "state": stored.state.value, "version": stored.version},
        )
        return stored

    async def delete(self, encounter_id: str) -> None:
        async with DatabaseService.get_transaction() as session:
            record = await self._records.get(session, encounter_id, lock=True)
            if record is not None:
                await self._records.delete(session, record)
        logger.debug("Encounter deleted", extra={"encounter_id": encounter_id})

    @staticmethod
    def _to_encounter(record: MountEncounterRecord) -> Encounter:
        encounter = Encounter.from_dict(record.data)
        encounter.version = record.version
        return encounter


class SqlMountRegistry(BaseRepository[Mount]):
    """MountRegistry backed by the ``mounts`` table."""

    def __init__(self) -> None:
        super().__init__(Mount, logger)

    async def create_mount(self, mount: MountSnapshot) -> MountSnapshot:
        async with DatabaseService.get_transaction() as session:
            existing = await self.first(
                session, Mount.source_encounter_id == mount.source_encounter_id
            )
            if existing is not None:
                logger.info(
                    "Mount already registered for encounter",
                    extra={"encounter_id": mount.source_encounter_id, "mount_id": existing.id},
                )
                return self._to_snapshot(existing)

            row = self.add(
                session,
                Mount(
                    user_id=int(mount.user_id),
                    character_id=mount.character_id,
                    name=mount.name,
                    species=mount.species,
                    level=mount.level,
                    stamina=mount.stamina,
                    current_stamina=mount.current_stamina,
                    owner=mount.owner,
                    traits=list(mount.traits),
                    region=mount.region,
                    is_rare=mount.is_rare,
                    source_encounter_id=mount.source_encounter_id,
                    last_mount_travel=mount.last_mount_travel,
                ),
            )
            await self.flush(session)
            return self._to_snapshot(row)

    async def get_for_character(self, character_id: int) -> Optional[MountSnapshot]:
        async with DatabaseService.get_session() as session:
            row = await self.first(session, Mount.character_id == character_id)
            return self._to_snapshot(row) if row is not None else None

    async def save(self, mount: MountSnapshot) -> MountSnapshot:
        async with DatabaseService.get_transaction() as session:
            row = await self._locked_row(session, mount)
            row.name = mount.name
            row.current_stamina = mount.current_stamina
            row.last_mount_travel = mount.last_mount_travel
            row.traits = list(mount.traits)
            return self._to_snapshot(row)

    async def _locked_row(self, session: AsyncSession, mount: MountSnapshot) -> Mount:
        row = await self.get(session, mount.id, lock=True) if mount.id is not None else None
        if row is None:
            row = await self.first(
                session,
                Mount.source_encounter_id == mount.source_encounter_id,
                lock=True,
            )
        if row is None:
            raise NotFoundError("Mount", mount.source_encounter_id)
        return row

    @staticmethod
    def _to_snapshot(row: Mount) -> MountSnapshot:
        return MountSnapshot(
            id=row.id,
            user_id=str(row.user_id),
            character_id=row.character_id,
            name=row.name,
            species=row.species,
            level=row.level,
            stamina=row.stamina,
            current_stamina=row.current_stamina,
            owner=row.owner,
            traits=list(row.traits or []),
            region=row.region,
            is_rare=row.is_rare,
            source_encounter_id=row.source_encounter_id,
            last_mount_travel=row.last_mount_travel,
        )
