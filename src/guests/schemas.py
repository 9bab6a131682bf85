from datetime import datetime

from pydantic import BaseModel

from src.guests.dtos import GuestCategory, GuestDTO, GuestStatsDTO, GuestStatus


class CompanionResponse(BaseModel):
    id: int
    name: str
    allergies: str | None = None


class GuestResponse(BaseModel):
    id: str
    name: str
    category: GuestCategory
    status: GuestStatus
    allergies: str | None = None
    companions: list[CompanionResponse] = []
    created_at: datetime
    updated_at: datetime
    deleted_at: str | None = None

    @classmethod
    def from_dto(cls, guest: GuestDTO) -> "GuestResponse":
        return cls(
            id=guest.id,
            name=guest.name,
            category=guest.category,
            status=guest.status,
            allergies=guest.allergies,
            companions=[
                CompanionResponse(id=c.id, name=c.name, allergies=c.allergies)
                for c in guest.companions
            ],
            created_at=guest.created_at,
            updated_at=guest.updated_at,
            deleted_at=guest.deleted_at,
        )


class GuestListResponse(BaseModel):
    guests: list[GuestResponse]
    total: int
    loaded: bool


class GuestStatsResponse(BaseModel):
    total: int
    total_with_companions: int
    confirmed: int
    pending: int
    deleted: int
    by_category: dict[str, int]

    @classmethod
    def from_dto(cls, stats: GuestStatsDTO) -> "GuestStatsResponse":
        return cls(
            total=stats.total,
            total_with_companions=stats.total_with_companions,
            confirmed=stats.confirmed,
            pending=stats.pending,
            deleted=stats.deleted,
            by_category=stats.by_category,
        )
