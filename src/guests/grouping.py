"""Fold flat guest rows into one aggregate per invitation unit."""

from collections.abc import Iterable

from src.guests.dtos import (
    CompanionDTO,
    GuestCategory,
    GuestDTO,
    GuestRowDTO,
    derive_status,
)
from src.guests.notes import decode_note


def pick_primary(rows: list[GuestRowDTO]) -> GuestRowDTO:
    """Return the first row flagged primary, or the first row when none is.

    The result depends on row order when zero or several rows are flagged.
    """
    for row in rows:
        if row.is_primary:
            return row
    return rows[0]


def build_guest(rows: list[GuestRowDTO]) -> GuestDTO:
    primary = pick_primary(rows)
    meta = decode_note(primary.note)

    # A companion's own deleted_at is ignored, deletion is per unit
    companions = tuple(
        CompanionDTO(
            id=row.id,
            name=row.display_name,
            allergies=decode_note(row.note).allergies,
        )
        for row in rows
        if row is not primary
    )

    return GuestDTO(
        id=str(primary.unit_id),
        name=primary.display_name,
        category=GuestCategory.parse(primary.category),
        status=derive_status(meta.deleted_at, primary.confirmed),
        created_at=primary.created_at,
        updated_at=primary.created_at,
        allergies=meta.allergies,
        companions=companions,
        deleted_at=meta.deleted_at,
    )


def group_rows(rows: Iterable[GuestRowDTO]) -> list[GuestDTO]:
    """Group rows by unit id; units keep the order they are first seen in."""
    units: dict[int, list[GuestRowDTO]] = {}
    for row in rows:
        units.setdefault(row.unit_id, []).append(row)
    return [build_guest(unit_rows) for unit_rows in units.values()]
