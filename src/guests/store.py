"""In-memory cache of guest aggregates read by the rest of the application."""

from collections.abc import Iterable

from src.guests.dtos import GuestDTO, GuestStatsDTO, GuestStatus


def compute_stats(guests: Iterable[GuestDTO]) -> GuestStatsDTO:
    total = 0
    total_with_companions = 0
    counts = {status: 0 for status in GuestStatus}
    by_category: dict[str, int] = {}

    for guest in guests:
        total += 1
        counts[guest.status] += 1
        if guest.status == GuestStatus.DELETED:
            continue
        total_with_companions += guest.headcount
        category = guest.category.value
        by_category[category] = by_category.get(category, 0) + guest.headcount

    return GuestStatsDTO(
        total=total,
        total_with_companions=total_with_companions,
        confirmed=counts[GuestStatus.CONFIRMED],
        pending=counts[GuestStatus.PENDING],
        deleted=counts[GuestStatus.DELETED],
        by_category=by_category,
    )


class GuestStore:
    """Holds the authoritative list of guests.

    Readers get copies. Only the engine, the mutation executor and the
    reconciler call the mutating methods.
    """

    def __init__(self, guests: Iterable[GuestDTO] = ()) -> None:
        self._guests: list[GuestDTO] = list(guests)
        self.loaded = False
        self.version = 0

    def __len__(self) -> int:
        return len(self._guests)

    def all(self) -> list[GuestDTO]:
        return list(self._guests)

    def by_status(self, status: GuestStatus) -> list[GuestDTO]:
        return [guest for guest in self._guests if guest.status == status]

    def get(self, unit_id: str) -> GuestDTO | None:
        for guest in self._guests:
            if guest.id == unit_id:
                return guest
        return None

    def stats(self) -> GuestStatsDTO:
        return compute_stats(self._guests)

    def replace_all(self, guests: Iterable[GuestDTO]) -> None:
        self._guests = list(guests)
        self.loaded = True
        self._touch()

    def put(self, guest: GuestDTO) -> bool:
        """Swap the aggregate with the same id in place. False if it is gone."""
        for index, current in enumerate(self._guests):
            if current.id == guest.id:
                self._guests[index] = guest
                self._touch()
                return True
        return False

    def append(self, guest: GuestDTO) -> None:
        self._guests.append(guest)
        self._touch()

    def remove(self, unit_id: str) -> GuestDTO | None:
        for index, current in enumerate(self._guests):
            if current.id == unit_id:
                self._touch()
                return self._guests.pop(index)
        return None

    def _touch(self) -> None:
        self.version += 1
