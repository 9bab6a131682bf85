from fastapi import APIRouter, Depends, HTTPException

from src.guests.dependencies import get_guest_engine
from src.guests.dtos import GuestFormData, RemoteWriteError
from src.guests.engine import GuestEngine
from src.guests.schemas import GuestResponse
from src.guests.urls import GUESTS_URL

router = APIRouter()


@router.post(GUESTS_URL, response_model=GuestResponse, status_code=201)
async def add_guest(
    form: GuestFormData,
    engine: GuestEngine = Depends(get_guest_engine),
) -> GuestResponse:
    """
    Create an invitation unit with its primary guest and companions.

    The guest is stored remotely first and returned as the database echoed it,
    always in pending status.
    """
    try:
        guest = await engine.add_guest(form)
    except RemoteWriteError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return GuestResponse.from_dto(guest)
