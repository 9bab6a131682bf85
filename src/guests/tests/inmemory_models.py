"""In-memory models for testing - no database required."""

import asyncio
from dataclasses import replace
from datetime import UTC, datetime, timedelta

from src.config.table_names import TableNames
from src.guests.dtos import GuestEditDTO, GuestRowDTO, NewGuestRowDTO, NoteMeta
from src.guests.engine import GuestEngine
from src.guests.notes import decode_note, encode_note
from src.guests.repository.change_feed import ChangeEvent, ChangeType, LocalChangeFeed
from src.guests.repository.read_models import GuestRowsReadModel
from src.guests.repository.write_models import GuestRowsWriteModel

# =============================================================================
# In-Memory Storage
# =============================================================================

EPOCH = datetime(2026, 6, 1, 12, 0, tzinfo=UTC)


class RemoteUnavailableError(ConnectionError):
    """Simulated transport failure."""


class InMemoryGuestDatabase:
    """Stands in for the unit and rows tables, with an optional change feed."""

    def __init__(self, change_feed: LocalChangeFeed | None = None):
        self.units: dict[int, datetime] = {}
        self.rows: dict[int, GuestRowDTO] = {}
        self.change_feed = change_feed
        self._next_unit_id = 1
        self._next_row_id = 1
        self._ticks = 0

    def now(self) -> datetime:
        """Strictly increasing timestamps so newest-first order is deterministic."""
        self._ticks += 1
        return EPOCH + timedelta(minutes=self._ticks)

    def new_unit(self) -> int:
        unit_id = self._next_unit_id
        self._next_unit_id += 1
        self.units[unit_id] = self.now()
        return unit_id

    def new_rows(self, rows: list[NewGuestRowDTO], created_at: datetime | None = None) -> list[GuestRowDTO]:
        created_at = created_at or self.now()
        stored = []
        for row in rows:
            stored_row = GuestRowDTO(
                id=self._next_row_id,
                unit_id=row.unit_id,
                is_primary=row.is_primary,
                display_name=row.display_name,
                created_at=created_at,
                category=row.category,
                confirmed=row.confirmed,
                note=row.note,
            )
            self._next_row_id += 1
            self.rows[stored_row.id] = stored_row
            stored.append(stored_row)
        return stored

    def seed_unit(
        self,
        name: str,
        companions: list[str] | None = None,
        category: str | None = "friends",
        confirmed: bool | None = False,
        note: str | None = None,
        companion_note: str | None = None,
        primary_flag: bool = True,
    ) -> int:
        """Insert a unit directly, bypassing the change feed."""
        unit_id = self.new_unit()
        new_rows = [
            NewGuestRowDTO(
                unit_id=unit_id,
                is_primary=primary_flag,
                display_name=name,
                category=category,
                confirmed=confirmed,
                note=note,
            )
        ]
        for companion in companions or []:
            new_rows.append(
                NewGuestRowDTO(
                    unit_id=unit_id,
                    is_primary=False,
                    display_name=companion,
                    category=category,
                    confirmed=confirmed,
                    note=companion_note,
                )
            )
        self.new_rows(new_rows)
        return unit_id

    def rows_of(self, unit_id: int) -> list[GuestRowDTO]:
        return [row for row in self.rows.values() if row.unit_id == unit_id]

    def publish(self, change_type: ChangeType, row: GuestRowDTO) -> None:
        if self.change_feed is not None:
            self.change_feed.publish(
                ChangeEvent(
                    type=change_type,
                    table=TableNames.GUESTS.value,
                    row_id=row.id,
                    unit_id=row.unit_id,
                )
            )


# =============================================================================
# In-Memory Read Model
# =============================================================================


class InMemoryGuestRowsReadModel(GuestRowsReadModel):
    def __init__(self, database: InMemoryGuestDatabase):
        self._database = database
        self.fail = False
        self.calls = 0

    async def list_rows(self) -> list[GuestRowDTO]:
        self.calls += 1
        await asyncio.sleep(0)
        if self.fail:
            raise RemoteUnavailableError("select failed")
        by_id = sorted(self._database.rows.values(), key=lambda row: row.id)
        return sorted(by_id, key=lambda row: row.created_at, reverse=True)


# =============================================================================
# In-Memory Write Model
# =============================================================================


class InMemoryGuestRowsWriteModel(GuestRowsWriteModel):
    """Write model with failure injection.

    Put an operation name in ``failing`` to make it raise. Set ``gate`` to
    hold every write until the event is set.
    """

    def __init__(self, database: InMemoryGuestDatabase):
        self._database = database
        self.failing: set[str] = set()
        self.calls: list[tuple] = []
        self.gate: asyncio.Event | None = None

    async def _enter(self, operation: str, *args) -> None:
        self.calls.append((operation, *args))
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        if operation in self.failing:
            raise RemoteUnavailableError(f"{operation} failed")

    async def insert_unit(self) -> int:
        await self._enter("insert_unit")
        return self._database.new_unit()

    async def insert_rows(self, rows: list[NewGuestRowDTO]) -> list[GuestRowDTO]:
        await self._enter("insert_rows", len(rows))
        stored = self._database.new_rows(rows)
        for row in stored:
            self._database.publish(ChangeType.INSERT, row)
        return stored

    async def update_rows_by_unit(self, unit_id: int, confirmed: bool) -> int:
        await self._enter("update_rows_by_unit", unit_id, confirmed)
        rows = self._database.rows_of(unit_id)
        for row in rows:
            self._database.rows[row.id] = replace(row, confirmed=confirmed)
        for row in rows:
            self._database.publish(ChangeType.UPDATE, row)
        return len(rows)

    async def rewrite_notes_by_unit(
        self,
        unit_id: int,
        deleted_at: str | None,
        confirmed: bool | None = None,
    ) -> int:
        await self._enter("rewrite_notes_by_unit", unit_id, deleted_at, confirmed)
        rows = self._database.rows_of(unit_id)
        for row in rows:
            meta = decode_note(row.note)
            updated = replace(
                row, note=encode_note(NoteMeta(allergies=meta.allergies, deleted_at=deleted_at))
            )
            if confirmed is not None:
                updated = replace(updated, confirmed=confirmed)
            self._database.rows[row.id] = updated
        for row in rows:
            self._database.publish(ChangeType.UPDATE, row)
        return len(rows)

    async def rewrite_unit(self, edit: GuestEditDTO) -> list[GuestRowDTO]:
        await self._enter("rewrite_unit", edit.unit_id)
        rows = sorted(self._database.rows_of(edit.unit_id), key=lambda row: row.id)
        if not rows:
            return []
        primary = next((row for row in rows if row.is_primary), rows[0])
        deleted_at = decode_note(primary.note).deleted_at

        primary = replace(
            primary,
            display_name=edit.display_name,
            category=edit.category,
            note=encode_note(NoteMeta(allergies=edit.allergies, deleted_at=deleted_at)),
        )
        self._database.rows[primary.id] = primary
        removed = [row for row in rows if row.id != primary.id]
        for row in removed:
            del self._database.rows[row.id]
        companions = self._database.new_rows(
            [
                NewGuestRowDTO(
                    unit_id=edit.unit_id,
                    is_primary=False,
                    display_name=companion.name,
                    category=edit.category,
                    confirmed=primary.confirmed,
                    note=encode_note(NoteMeta(allergies=companion.allergies, deleted_at=deleted_at)),
                )
                for companion in edit.companions
            ],
            created_at=primary.created_at,
        )

        self._database.publish(ChangeType.UPDATE, primary)
        for row in removed:
            self._database.publish(ChangeType.DELETE, row)
        for row in companions:
            self._database.publish(ChangeType.INSERT, row)
        return [primary, *companions]

    async def delete_rows_by_unit(self, unit_id: int) -> int:
        await self._enter("delete_rows_by_unit", unit_id)
        rows = self._database.rows_of(unit_id)
        for row in rows:
            del self._database.rows[row.id]
        for row in rows:
            self._database.publish(ChangeType.DELETE, row)
        return len(rows)

    async def delete_unit(self, unit_id: int) -> None:
        await self._enter("delete_unit", unit_id)
        self._database.units.pop(unit_id, None)


# =============================================================================
# Factory Functions for Tests
# =============================================================================


def create_test_database(realtime: bool = False) -> InMemoryGuestDatabase:
    return InMemoryGuestDatabase(change_feed=LocalChangeFeed() if realtime else None)


def create_test_engine(
    database: InMemoryGuestDatabase,
    read_model: InMemoryGuestRowsReadModel | None = None,
    write_model: InMemoryGuestRowsWriteModel | None = None,
) -> GuestEngine:
    """Engine over in-memory models; subscribes to the database feed if it has one."""
    return GuestEngine(
        read_model=read_model or InMemoryGuestRowsReadModel(database),
        write_model=write_model or InMemoryGuestRowsWriteModel(database),
        change_feed=database.change_feed,
    )
