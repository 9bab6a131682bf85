"""Guest engine: the session object behind every guest list consumer.

It owns the store, the optimistic mutation executor and the realtime
reconciler. Build it with ``build_guest_engine()`` (or inject your own read
and write models), call ``start()`` once and ``close()`` on teardown.
"""

import logging
from collections.abc import Callable

from src.config.settings import settings
from src.guests.dtos import (
    GuestDTO,
    GuestEditDTO,
    GuestFormData,
    GuestNotFoundError,
    GuestStatsDTO,
    GuestStatus,
    NewGuestRowDTO,
    NoteMeta,
    RemoteWriteError,
)
from src.guests.grouping import build_guest, group_rows
from src.guests.mutations import OptimisticMutationExecutor, StatusTransition
from src.guests.notes import encode_note
from src.guests.reconciler import RealtimeReconciler
from src.guests.repository.change_feed import ChangeFeed, LocalChangeFeed, PostgresChangeFeed
from src.guests.repository.read_models import GuestRowsReadModel, SqlGuestRowsReadModel
from src.guests.repository.write_models import GuestRowsWriteModel, SqlGuestRowsWriteModel
from src.guests.store import GuestStore

logger = logging.getLogger(__name__)

ReloadListener = Callable[["GuestEngine"], None]


class GuestEngine:
    def __init__(
        self,
        read_model: GuestRowsReadModel,
        write_model: GuestRowsWriteModel,
        change_feed: ChangeFeed | None = None,
        store: GuestStore | None = None,
    ) -> None:
        self.store = store or GuestStore()
        self._read_model = read_model
        self._write_model = write_model
        self._executor = OptimisticMutationExecutor(self.store, write_model)
        self._reconciler = (
            RealtimeReconciler(change_feed, self.reload) if change_feed is not None else None
        )
        self._reload_listeners: list[ReloadListener] = []

    @property
    def reconciler(self) -> RealtimeReconciler | None:
        return self._reconciler

    # Session lifecycle

    async def start(self) -> bool:
        """Load the guest list and subscribe to remote changes."""
        loaded = await self.reload()
        if self._reconciler is not None:
            await self._reconciler.start()
        return loaded

    async def close(self) -> None:
        if self._reconciler is not None:
            await self._reconciler.close()

    def add_reload_listener(self, listener: ReloadListener) -> None:
        self._reload_listeners.append(listener)

    async def reload(self) -> bool:
        """Rebuild the store from a fresh fetch.

        On failure the store keeps its previous contents and False is returned;
        there is no retry.
        """
        try:
            rows = await self._read_model.list_rows()
        except Exception:
            logger.exception("Failed to load guests, keeping the cached list")
            return False

        self.store.replace_all(group_rows(rows))
        logger.debug(f"Guest store rebuilt from {len(rows)} rows ({len(self.store)} units)")
        for listener in list(self._reload_listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Reload listener failed")
        return True

    # Read accessors

    def all(self) -> list[GuestDTO]:
        return self.store.all()

    def by_status(self, status: GuestStatus) -> list[GuestDTO]:
        return self.store.by_status(status)

    def get(self, unit_id: str) -> GuestDTO | None:
        return self.store.get(unit_id)

    def stats(self) -> GuestStatsDTO:
        return self.store.stats()

    # Mutations

    async def add_guest(self, form: GuestFormData) -> GuestDTO:
        """Create the unit and its rows remotely, then append the stored result.

        Not optimistic: nothing local changes until the remote insert succeeds.
        """
        try:
            unit_id = await self._write_model.insert_unit()
        except Exception as e:
            raise RemoteWriteError("add_guest") from e

        new_rows = [
            NewGuestRowDTO(
                unit_id=unit_id,
                is_primary=True,
                display_name=form.name,
                category=form.category.value,
                note=encode_note(NoteMeta(allergies=form.allergies)),
            )
        ]
        for companion in form.companions:
            new_rows.append(
                NewGuestRowDTO(
                    unit_id=unit_id,
                    is_primary=False,
                    display_name=companion.name,
                    category=form.category.value,
                    note=encode_note(NoteMeta(allergies=companion.allergies)),
                )
            )

        try:
            stored_rows = await self._write_model.insert_rows(new_rows)
        except Exception as e:
            await self._discard_unit(unit_id)
            raise RemoteWriteError("add_guest", str(unit_id)) from e

        guest = build_guest(stored_rows)
        # A realtime reload may already have picked the new unit up
        if not self.store.put(guest):
            self.store.append(guest)
        logger.info(f"Added guest {guest.id} with {len(guest.companions)} companions")
        return guest

    async def _discard_unit(self, unit_id: int) -> None:
        try:
            await self._write_model.delete_unit(unit_id)
        except Exception:
            logger.exception(f"Could not remove empty invitation unit {unit_id}")

    async def confirm_guest(self, unit_id: str) -> GuestDTO:
        return await self._executor.run(unit_id, StatusTransition.CONFIRM)

    async def revert_to_pending(self, unit_id: str) -> GuestDTO:
        return await self._executor.run(unit_id, StatusTransition.REVERT_TO_PENDING)

    async def soft_delete(self, unit_id: str) -> GuestDTO:
        return await self._executor.run(unit_id, StatusTransition.SOFT_DELETE)

    async def restore(self, unit_id: str) -> GuestDTO:
        return await self._executor.run(unit_id, StatusTransition.RESTORE)

    async def update_guest(self, unit_id: str, form: GuestFormData) -> GuestDTO:
        """Edit name, category, allergies and companions; status is untouched."""
        if self.store.get(unit_id) is None:
            raise GuestNotFoundError(unit_id)
        return await self._executor.edit(GuestEditDTO.from_form(int(unit_id), form))

    async def permanently_delete(self, unit_id: str) -> GuestDTO:
        return await self._executor.remove(unit_id)

    async def update_guest_status(self, unit_id: str, status: GuestStatus) -> GuestDTO:
        """Move a unit to ``status`` using the matching transition."""
        current = self.store.get(unit_id)
        if current is None:
            raise GuestNotFoundError(unit_id)

        if status == GuestStatus.CONFIRMED:
            return await self.confirm_guest(unit_id)
        if status == GuestStatus.DELETED:
            return await self.soft_delete(unit_id)
        if current.status == GuestStatus.DELETED:
            return await self.restore(unit_id)
        return await self.revert_to_pending(unit_id)


def build_guest_engine(realtime_backend: str | None = None) -> GuestEngine:
    """Wire the SQL models and the configured change feed.

    ``realtime_backend`` overrides ``settings.realtime_backend``; "off" skips
    the change feed entirely.
    """
    backend = realtime_backend or settings.realtime_backend
    local_feed = None
    change_feed: ChangeFeed | None = None
    if backend == "postgres":
        change_feed = PostgresChangeFeed()
    elif backend == "local":
        local_feed = LocalChangeFeed()
        change_feed = local_feed

    return GuestEngine(
        read_model=SqlGuestRowsReadModel(),
        write_model=SqlGuestRowsWriteModel(change_feed=local_feed),
        change_feed=change_feed,
    )
