from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Annotated

from pydantic import BaseModel, Field, StringConstraints, field_validator

if TYPE_CHECKING:
    from src.guests.repository.orm_models import GuestRow


class GuestNotFoundError(Exception):
    """Raised when a mutation targets an invitation unit that is not in the store."""

    def __init__(self, unit_id: str) -> None:
        self.unit_id = unit_id
        super().__init__(f"Guest '{unit_id}' not found")


class RemoteWriteError(Exception):
    """Raised when the remote store rejects an insert, update or delete.

    The in-memory store has already been rolled back when this is raised.
    """

    def __init__(self, operation: str, unit_id: str | None = None) -> None:
        self.operation = operation
        self.unit_id = unit_id
        target = f" for guest '{unit_id}'" if unit_id else ""
        super().__init__(f"Remote write '{operation}' failed{target}")


class GuestStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DELETED = "deleted"


class GuestCategory(str, Enum):
    FAMILY_HIS = "family-his"
    FAMILY_HERS = "family-hers"
    FRIENDS = "friends"
    COLLEAGUES = "colleagues"

    @classmethod
    def parse(cls, value: str | None) -> "GuestCategory":
        """Map a stored category to an enum member, falling back to friends."""
        try:
            return cls(value)
        except ValueError:
            return cls.FRIENDS


def derive_status(deleted_at: str | None, confirmed: bool | None) -> GuestStatus:
    """Deletion dominates confirmation, anything else is pending."""
    if deleted_at:
        return GuestStatus.DELETED
    if confirmed:
        return GuestStatus.CONFIRMED
    return GuestStatus.PENDING


@dataclass(frozen=True)
class NoteMeta:
    """Decoded contents of a row's note column."""

    allergies: str | None = None
    deleted_at: str | None = None


@dataclass(frozen=True)
class GuestRowDTO:
    """One physical row of the guests table."""

    id: int
    unit_id: int
    is_primary: bool
    display_name: str
    created_at: datetime
    category: str | None = None
    confirmed: bool | None = None
    note: str | None = None

    @classmethod
    def from_orm(cls, row: "GuestRow") -> "GuestRowDTO":
        """Create GuestRowDTO from GuestRow ORM model."""
        return cls(
            id=row.id,
            unit_id=row.unit_id,
            is_primary=row.is_primary,
            display_name=row.display_name,
            created_at=row.created_at,
            category=row.category,
            confirmed=row.confirmed,
            note=row.note,
        )


@dataclass(frozen=True)
class NewGuestRowDTO:
    """Values for a row about to be inserted; ids are generated remotely."""

    unit_id: int
    is_primary: bool
    display_name: str
    category: str | None
    note: str | None
    confirmed: bool = False


@dataclass(frozen=True)
class NewCompanionDTO:
    name: str
    allergies: str | None = None


@dataclass(frozen=True)
class GuestEditDTO:
    """New details for an existing unit; companions are replaced as a whole."""

    unit_id: int
    display_name: str
    category: str
    allergies: str | None = None
    companions: tuple[NewCompanionDTO, ...] = ()

    @classmethod
    def from_form(cls, unit_id: int, form: "GuestFormData") -> "GuestEditDTO":
        return cls(
            unit_id=unit_id,
            display_name=form.name,
            category=form.category.value,
            allergies=form.allergies,
            companions=tuple(
                NewCompanionDTO(name=companion.name, allergies=companion.allergies)
                for companion in form.companions
            ),
        )


@dataclass(frozen=True)
class CompanionDTO:
    id: int
    name: str
    allergies: str | None = None


@dataclass(frozen=True)
class GuestDTO:
    """Unit-level aggregate: the primary guest and their companions."""

    id: str
    name: str
    category: GuestCategory
    status: GuestStatus
    created_at: datetime
    updated_at: datetime
    allergies: str | None = None
    companions: tuple[CompanionDTO, ...] = ()
    deleted_at: str | None = None

    @property
    def unit_id(self) -> int:
        return int(self.id)

    @property
    def headcount(self) -> int:
        return 1 + len(self.companions)


@dataclass(frozen=True)
class GuestStatsDTO:
    total: int = 0
    total_with_companions: int = 0
    confirmed: int = 0
    pending: int = 0
    deleted: int = 0
    by_category: dict[str, int] = field(default_factory=dict)


PersonName = Annotated[
    str,
    StringConstraints(
        strip_whitespace=True,
        min_length=2,
        max_length=100,
        pattern=r"^[a-zA-ZÀ-ÿ\s'-]+$",
    ),
]

AllergyText = Annotated[str, StringConstraints(strip_whitespace=True, max_length=200)]


class CompanionFormData(BaseModel):
    name: PersonName
    allergies: AllergyText | None = None

    @field_validator("allergies", mode="before")
    @classmethod
    def blank_allergies_to_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value


class GuestFormData(BaseModel):
    """Input for creating an invitation unit."""

    name: PersonName
    category: GuestCategory = GuestCategory.FRIENDS
    allergies: AllergyText | None = None
    companions: list[CompanionFormData] = Field(default_factory=list, max_length=20)

    @field_validator("allergies", mode="before")
    @classmethod
    def blank_allergies_to_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value
