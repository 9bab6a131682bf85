"""Optimistic mutations with snapshot rollback.

Each run snapshots the unit's aggregate, applies the change to the store
before awaiting anything, then issues the remote write. A failed write puts
the snapshot back and raises ``RemoteWriteError``.
"""

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime
from enum import Enum

from src.guests.dtos import (
    CompanionDTO,
    GuestCategory,
    GuestDTO,
    GuestEditDTO,
    GuestNotFoundError,
    GuestStatus,
    RemoteWriteError,
    derive_status,
)
from src.guests.grouping import build_guest
from src.guests.repository.write_models import GuestRowsWriteModel
from src.guests.store import GuestStore

logger = logging.getLogger(__name__)


class StatusTransition(str, Enum):
    CONFIRM = "confirm"
    REVERT_TO_PENDING = "revert_to_pending"
    SOFT_DELETE = "soft_delete"
    RESTORE = "restore"


def utcnow() -> datetime:
    return datetime.now(UTC)


def apply_transition(guest: GuestDTO, transition: StatusTransition, now: datetime) -> GuestDTO:
    """Return the aggregate as it will look once the remote write lands."""
    if transition == StatusTransition.CONFIRM:
        return replace(guest, status=derive_status(guest.deleted_at, True), updated_at=now)
    if transition == StatusTransition.REVERT_TO_PENDING:
        return replace(guest, status=derive_status(guest.deleted_at, False), updated_at=now)
    if transition == StatusTransition.SOFT_DELETE:
        return replace(
            guest,
            status=GuestStatus.DELETED,
            deleted_at=now.isoformat(),
            updated_at=now,
        )
    # Restore is lossy: a unit confirmed before deletion comes back pending
    return replace(guest, status=GuestStatus.PENDING, deleted_at=None, updated_at=now)


def apply_edit(guest: GuestDTO, edit: GuestEditDTO, now: datetime) -> GuestDTO:
    """Return the aggregate with the edited details; status and deletion are kept.

    Companion rows are replaced remotely, so until the write lands the new
    companions carry id 0.
    """
    return replace(
        guest,
        name=edit.display_name,
        category=GuestCategory.parse(edit.category),
        allergies=edit.allergies,
        companions=tuple(
            CompanionDTO(id=0, name=companion.name, allergies=companion.allergies)
            for companion in edit.companions
        ),
        updated_at=now,
    )


class OptimisticMutationExecutor:
    def __init__(
        self,
        store: GuestStore,
        write_model: GuestRowsWriteModel,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._write_model = write_model
        self._clock = clock

    def _snapshot(self, unit_id: str) -> GuestDTO:
        snapshot = self._store.get(unit_id)
        if snapshot is None:
            raise GuestNotFoundError(unit_id)
        return snapshot

    async def _remote_write(self, transition: StatusTransition, mutated: GuestDTO) -> None:
        unit_id = mutated.unit_id
        if transition == StatusTransition.CONFIRM:
            await self._write_model.update_rows_by_unit(unit_id, confirmed=True)
        elif transition == StatusTransition.REVERT_TO_PENDING:
            await self._write_model.update_rows_by_unit(unit_id, confirmed=False)
        elif transition == StatusTransition.SOFT_DELETE:
            await self._write_model.rewrite_notes_by_unit(unit_id, deleted_at=mutated.deleted_at)
        else:
            await self._write_model.rewrite_notes_by_unit(unit_id, deleted_at=None, confirmed=False)

    async def run(self, unit_id: str, transition: StatusTransition) -> GuestDTO:
        snapshot = self._snapshot(unit_id)
        mutated = apply_transition(snapshot, transition, self._clock())
        self._store.put(mutated)

        try:
            await self._remote_write(transition, mutated)
        except Exception as e:
            # A reload may have dropped the unit meanwhile, put() is then a no-op
            self._store.put(snapshot)
            logger.warning(f"Rolled back {transition.value} on guest {unit_id}: {e}")
            raise RemoteWriteError(transition.value, unit_id) from e

        return mutated

    async def remove(self, unit_id: str) -> GuestDTO:
        """Permanently delete a unit; a failed delete re-appends it at the end."""
        snapshot = self._snapshot(unit_id)
        self._store.remove(unit_id)

        try:
            await self._write_model.delete_rows_by_unit(snapshot.unit_id)
            await self._write_model.delete_unit(snapshot.unit_id)
        except Exception as e:
            if self._store.get(unit_id) is None:
                self._store.append(snapshot)
            logger.warning(f"Rolled back permanent delete of guest {unit_id}: {e}")
            raise RemoteWriteError("permanently_delete", unit_id) from e

        return snapshot

    async def edit(self, edit: GuestEditDTO) -> GuestDTO:
        """Change a unit's details, then swap in the rows the database stored."""
        unit_id = str(edit.unit_id)
        snapshot = self._snapshot(unit_id)
        mutated = apply_edit(snapshot, edit, self._clock())
        self._store.put(mutated)

        try:
            stored_rows = await self._write_model.rewrite_unit(edit)
            if not stored_rows:
                raise GuestNotFoundError(unit_id)
        except Exception as e:
            self._store.put(snapshot)
            logger.warning(f"Rolled back update of guest {unit_id}: {e}")
            raise RemoteWriteError("update_guest", unit_id) from e

        stored = replace(build_guest(stored_rows), updated_at=mutated.updated_at)
        self._store.put(stored)
        return stored
