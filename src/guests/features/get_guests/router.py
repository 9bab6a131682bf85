from fastapi import APIRouter, Depends, HTTPException, Query

from src.guests.dependencies import get_guest_engine
from src.guests.dtos import GuestStatus
from src.guests.engine import GuestEngine
from src.guests.schemas import GuestListResponse, GuestResponse, GuestStatsResponse
from src.guests.urls import GUEST_STATS_URL, GUEST_URL, GUESTS_URL

router = APIRouter()


@router.get(GUESTS_URL, response_model=GuestListResponse)
async def list_guests(
    status: GuestStatus | None = Query(None, description="Filter by derived status"),
    engine: GuestEngine = Depends(get_guest_engine),
) -> GuestListResponse:
    """
    List invitation units in load order, optionally filtered by status.
    """
    guests = engine.by_status(status) if status else engine.all()
    return GuestListResponse(
        guests=[GuestResponse.from_dto(guest) for guest in guests],
        total=len(guests),
        loaded=engine.store.loaded,
    )


# Declared before GUEST_URL so "stats" is not read as a unit id
@router.get(GUEST_STATS_URL, response_model=GuestStatsResponse)
async def guest_stats(
    engine: GuestEngine = Depends(get_guest_engine),
) -> GuestStatsResponse:
    """
    Summary counts over the cached guest list.
    """
    return GuestStatsResponse.from_dto(engine.stats())


@router.get(GUEST_URL, response_model=GuestResponse)
async def get_guest(
    unit_id: str,
    engine: GuestEngine = Depends(get_guest_engine),
) -> GuestResponse:
    guest = engine.get(unit_id)
    if not guest:
        raise HTTPException(status_code=404, detail="Guest not found")
    return GuestResponse.from_dto(guest)
