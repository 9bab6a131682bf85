from fastapi import APIRouter, Depends, HTTPException

from src.guests.dependencies import get_guest_engine
from src.guests.dtos import GuestFormData, GuestNotFoundError, RemoteWriteError
from src.guests.engine import GuestEngine
from src.guests.schemas import GuestResponse
from src.guests.urls import GUEST_URL

router = APIRouter()


@router.put(GUEST_URL, response_model=GuestResponse)
async def update_guest(
    unit_id: str,
    form: GuestFormData,
    engine: GuestEngine = Depends(get_guest_engine),
) -> GuestResponse:
    """
    Edit a unit's name, category, allergies and companions.

    Companions are replaced by the submitted list. Status and trash state
    are kept.
    """
    try:
        guest = await engine.update_guest(unit_id, form)
    except GuestNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RemoteWriteError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return GuestResponse.from_dto(guest)
