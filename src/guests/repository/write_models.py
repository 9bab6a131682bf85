"""Guest rows write model - returns DTOs, never ORM models."""

from abc import ABC, abstractmethod
from datetime import UTC, datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.database import async_session_manager
from src.config.table_names import TableNames
from src.guests.dtos import GuestEditDTO, GuestRowDTO, NewGuestRowDTO, NoteMeta
from src.guests.notes import decode_note, encode_note
from src.guests.repository.change_feed import ChangeEvent, ChangeType, LocalChangeFeed
from src.guests.repository.orm_models import GuestRow, InvitationUnit


class GuestRowsWriteModel(ABC):
    """Remote write operations on invitation units and their guest rows."""

    @abstractmethod
    async def insert_unit(self) -> int:
        """Create an invitation unit and return its generated id."""
        raise NotImplementedError

    @abstractmethod
    async def insert_rows(self, rows: list[NewGuestRowDTO]) -> list[GuestRowDTO]:
        """Insert rows in one batch and return them as stored, in input order."""
        raise NotImplementedError

    @abstractmethod
    async def update_rows_by_unit(self, unit_id: int, confirmed: bool) -> int:
        """Set the confirmed flag on every row of a unit. Returns rows touched."""
        raise NotImplementedError

    @abstractmethod
    async def rewrite_notes_by_unit(
        self,
        unit_id: int,
        deleted_at: str | None,
        confirmed: bool | None = None,
    ) -> int:
        """Set or clear deleted_at in every row's note, keeping each row's allergies.

        When ``confirmed`` is given the flag is written in the same transaction.
        """
        raise NotImplementedError

    @abstractmethod
    async def rewrite_unit(self, edit: GuestEditDTO) -> list[GuestRowDTO]:
        """Update the primary row and replace every companion row of a unit.

        The primary keeps its ``confirmed`` flag and ``deleted_at``; new
        companion rows inherit both from it. Returns the primary followed by
        the new companions, as stored.
        """
        raise NotImplementedError

    @abstractmethod
    async def delete_rows_by_unit(self, unit_id: int) -> int:
        raise NotImplementedError

    @abstractmethod
    async def delete_unit(self, unit_id: int) -> None:
        raise NotImplementedError


class SqlGuestRowsWriteModel(GuestRowsWriteModel):
    """SQL implementation of guest rows write operations."""

    def __init__(
        self,
        session_overwrite: AsyncSession | None = None,
        change_feed: LocalChangeFeed | None = None,
    ) -> None:
        self._session_overwrite = session_overwrite
        self._change_feed = change_feed

    def _publish(self, change_type: ChangeType, unit_id: int, row_ids: list[int]) -> None:
        """Tell in-process listeners about committed changes."""
        if self._change_feed is None:
            return
        for row_id in row_ids:
            self._change_feed.publish(
                ChangeEvent(
                    type=change_type,
                    table=TableNames.GUESTS.value,
                    row_id=row_id,
                    unit_id=unit_id,
                )
            )

    async def _row_ids(self, session, unit_id: int) -> list[int]:
        result = await session.execute(select(GuestRow.id).where(GuestRow.unit_id == unit_id))
        return list(result.scalars().all())

    async def insert_unit(self) -> int:
        async with async_session_manager(session_overwrite=self._session_overwrite) as session:
            unit = InvitationUnit()
            session.add(unit)
            await session.flush()  # Get unit.id
            return unit.id

    async def insert_rows(self, rows: list[NewGuestRowDTO]) -> list[GuestRowDTO]:
        # One timestamp for the whole batch so a unit's rows sort together
        created_at = datetime.now(UTC)
        async with async_session_manager(session_overwrite=self._session_overwrite) as session:
            orm_rows = [
                GuestRow(
                    unit_id=row.unit_id,
                    is_primary=row.is_primary,
                    display_name=row.display_name,
                    category=row.category,
                    confirmed=row.confirmed,
                    note=row.note,
                    created_at=created_at,
                )
                for row in rows
            ]
            session.add_all(orm_rows)
            await session.flush()
            stored = [GuestRowDTO.from_orm(row) for row in orm_rows]

        for row in stored:
            self._publish(ChangeType.INSERT, row.unit_id, [row.id])
        return stored

    async def update_rows_by_unit(self, unit_id: int, confirmed: bool) -> int:
        async with async_session_manager(session_overwrite=self._session_overwrite) as session:
            row_ids = await self._row_ids(session, unit_id)
            await session.execute(
                update(GuestRow).where(GuestRow.unit_id == unit_id).values(confirmed=confirmed)
            )

        self._publish(ChangeType.UPDATE, unit_id, row_ids)
        return len(row_ids)

    async def rewrite_notes_by_unit(
        self,
        unit_id: int,
        deleted_at: str | None,
        confirmed: bool | None = None,
    ) -> int:
        async with async_session_manager(session_overwrite=self._session_overwrite) as session:
            result = await session.execute(select(GuestRow).where(GuestRow.unit_id == unit_id))
            rows = result.scalars().all()
            for row in rows:
                # Re-encoding also upgrades legacy notes to the JSON form
                meta = decode_note(row.note)
                row.note = encode_note(NoteMeta(allergies=meta.allergies, deleted_at=deleted_at))
                if confirmed is not None:
                    row.confirmed = confirmed
            await session.flush()
            row_ids = [row.id for row in rows]

        self._publish(ChangeType.UPDATE, unit_id, row_ids)
        return len(row_ids)

    async def rewrite_unit(self, edit: GuestEditDTO) -> list[GuestRowDTO]:
        async with async_session_manager(session_overwrite=self._session_overwrite) as session:
            result = await session.execute(
                select(GuestRow).where(GuestRow.unit_id == edit.unit_id).order_by(GuestRow.id)
            )
            rows = list(result.scalars().all())
            if not rows:
                return []
            primary = next((row for row in rows if row.is_primary), rows[0])
            deleted_at = decode_note(primary.note).deleted_at

            primary.display_name = edit.display_name
            primary.category = edit.category
            primary.note = encode_note(NoteMeta(allergies=edit.allergies, deleted_at=deleted_at))

            removed_ids = [row.id for row in rows if row is not primary]
            await session.execute(delete(GuestRow).where(GuestRow.id.in_(removed_ids)))

            companions = [
                GuestRow(
                    unit_id=edit.unit_id,
                    is_primary=False,
                    display_name=companion.name,
                    category=edit.category,
                    confirmed=primary.confirmed,
                    note=encode_note(NoteMeta(allergies=companion.allergies, deleted_at=deleted_at)),
                    created_at=primary.created_at,
                )
                for companion in edit.companions
            ]
            session.add_all(companions)
            await session.flush()
            stored = [GuestRowDTO.from_orm(row) for row in [primary, *companions]]

        self._publish(ChangeType.UPDATE, edit.unit_id, [stored[0].id])
        self._publish(ChangeType.DELETE, edit.unit_id, removed_ids)
        self._publish(ChangeType.INSERT, edit.unit_id, [row.id for row in stored[1:]])
        return stored

    async def delete_rows_by_unit(self, unit_id: int) -> int:
        async with async_session_manager(session_overwrite=self._session_overwrite) as session:
            row_ids = await self._row_ids(session, unit_id)
            await session.execute(delete(GuestRow).where(GuestRow.unit_id == unit_id))

        self._publish(ChangeType.DELETE, unit_id, row_ids)
        return len(row_ids)

    async def delete_unit(self, unit_id: int) -> None:
        async with async_session_manager(session_overwrite=self._session_overwrite) as session:
            await session.execute(delete(InvitationUnit).where(InvitationUnit.id == unit_id))
